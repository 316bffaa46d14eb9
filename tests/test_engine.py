"""Tests for the action rule engine — generators, dedup, ranking."""

from __future__ import annotations

import pytest

from call_intelligence_mcp.actions import QUICK_ACTIONS, ActionRuleEngine, dedupe_actions, generate_actions
from call_intelligence_mcp.actions.generators import (
    buying_signal_actions,
    competitor_actions,
    conversion_actions,
    interest_actions,
    interest_score,
    objection_actions,
    pain_point_actions,
    sentiment_actions,
)
from call_intelligence_mcp.config import AnalysisConfig
from call_intelligence_mcp.metrics import round_half_up
from call_intelligence_mcp.models.actions import IntelligentAction
from call_intelligence_mcp.models.analysis import ConversationAnalysis


def _analysis(**fields) -> ConversationAnalysis:
    return ConversationAnalysis(**fields)


def _action(type_: str, priority: str = "medium", urgency: str = "today", id_: str | None = None) -> IntelligentAction:
    return IntelligentAction(
        id=id_ or f"{type_}_{priority}",
        type=type_,
        title="t",
        description="d",
        priority=priority,
        urgency=urgency,
        reasoning="r",
    )


RICH_ANALYSIS = dict(
    overall_sentiment="positive",
    sentiment_score=0.8,
    conversion_likelihood=0.75,
    buying_signals=[
        "Podemos agendar una reunión la próxima semana",
        "Quiero ver una demo",
        "¿Cuál es el precio?",
        "¿Cuándo podemos empezar?",
    ],
    objections=["Es muy caro", "Ya usamos otro proveedor", "Es complejo", "Tengo que consultarlo con mi jefe"],
    competitor_mentions=["CompetitorX"],
    main_pain_points=["Cobranza manual", "Reportes lentos"],
)


class TestBuyingSignals:
    def test_meeting_signal(self):
        actions = buying_signal_actions(_analysis(buying_signals=["Podemos agendar una reunión la próxima semana"]))
        assert [a.type for a in actions] == ["schedule_meeting"]
        meeting = actions[0]
        assert meeting.urgency == "immediate"
        assert meeting.priority == "high"
        assert meeting.suggested_time == "Esta semana"
        assert meeting.metadata["suggestedDuration"] == "30 min"
        assert "agendar una reunión" in meeting.reasoning

    def test_one_signal_can_trigger_several_cues(self):
        actions = buying_signal_actions(_analysis(buying_signals=["Cuándo podemos ver la demo y el precio"]))
        assert [a.type for a in actions] == ["send_demo_link", "send_proposal", "schedule_technical_call"]

    def test_english_cues(self):
        actions = buying_signal_actions(_analysis(buying_signals=["Can we set up a meeting to discuss budget?"]))
        assert {a.type for a in actions} == {"schedule_meeting", "send_proposal"}

    def test_ids_are_indexed(self):
        actions = buying_signal_actions(_analysis(buying_signals=["nada", "una junta"]))
        assert actions[0].id == "schedule_meeting_1"


class TestObjections:
    def test_price_objection(self):
        actions = objection_actions(_analysis(objections=["Es muy caro para nuestro presupuesto"]))
        assert [a.type for a in actions] == ["send_roi_calculator"]
        assert actions[0].priority == "high"
        assert actions[0].urgency == "immediate"

    def test_all_objection_cues(self):
        actions = objection_actions(_analysis(objections=RICH_ANALYSIS["objections"]))
        assert [a.type for a in actions] == [
            "send_roi_calculator", "send_comparison", "send_case_study", "schedule_meeting",
        ]
        escalation = actions[-1]
        assert escalation.id == "escalate_decision_3"
        assert escalation.urgency == "this_week"


class TestInterest:
    @pytest.mark.parametrize("score,expected", [
        (0.8, 9), (-1.0, 0), (0.2, 6), (0.5, 8), (-0.1, 5), (-0.5, 3), (0.3, 7),
    ])
    def test_interest_from_sentiment(self, score, expected):
        assert interest_score(_analysis(sentiment_score=score)) == expected

    def test_zero_sentiment_falls_back_to_interest_level(self):
        """GIVEN a sentiment score of exactly 0 THEN the lead interest level is used."""
        assert interest_score(_analysis(sentiment_score=0.0, lead_interest_level=9)) == 9
        assert interest_score(_analysis()) == 0

    def test_high_interest_tier(self):
        types = [a.type for a in interest_actions(_analysis(sentiment_score=0.8))]
        assert types == ["send_contract", "schedule_trial"]

    def test_medium_interest_tier(self):
        types = [a.type for a in interest_actions(_analysis(lead_interest_level=6))]
        assert types == ["send_case_study"]

    def test_half_point_sentiment_reaches_medium_tier(self):
        """GIVEN sentiment -0.1 (interest 4.5) THEN it rounds up into the 5-7 tier."""
        types = [a.type for a in interest_actions(_analysis(sentiment_score=-0.1))]
        assert types == ["send_case_study"]

    def test_low_interest_tier(self):
        types = [a.type for a in interest_actions(_analysis(lead_interest_level=2))]
        assert types == ["make_followup_call"]


class TestSentimentAndConversion:
    @pytest.mark.parametrize("sentiment,type_,urgency", [
        ("positive", "schedule_meeting", "immediate"),
        ("negative", "address_objection", "immediate"),
        ("neutral", "send_demo_link", "today"),
        ("mixed", "make_followup_call", "this_week"),
    ])
    def test_sentiment_switch(self, sentiment, type_, urgency):
        [action] = sentiment_actions(_analysis(overall_sentiment=sentiment))
        assert (action.type, action.urgency) == (type_, urgency)

    @pytest.mark.parametrize("likelihood,type_", [
        (0.7, "send_contract"),
        (0.95, "send_contract"),
        (0.4, "send_proposal"),
        (0.69, "send_proposal"),
        (0.39, "nurture_sequence"),
        (None, "nurture_sequence"),
    ])
    def test_conversion_tiers(self, likelihood, type_):
        [action] = conversion_actions(_analysis(conversion_likelihood=likelihood))
        assert action.type == type_

    @pytest.mark.parametrize("value,expected", [(4.5, 5), (2.5, 3), (69.5, 70), (6.4, 6), (0.0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestCompetitorsAndPainPoints:
    def test_competitor_mention(self):
        actions = competitor_actions(_analysis(competitor_mentions=["CompetitorX"]))
        assert [a.type for a in actions] == ["send_comparison", "send_references"]
        assert actions[0].metadata == {"competitors": ["CompetitorX"]}

    def test_no_competitors(self):
        assert competitor_actions(_analysis()) == []

    def test_one_case_study_per_pain_point(self):
        actions = pain_point_actions(_analysis(main_pain_points=["Cobranza manual", "Reportes lentos"]))
        assert [a.id for a in actions] == ["pain_solution_0", "pain_solution_1"]
        assert actions[1].reasoning == "Caso específico que resuelve: Reportes lentos"
        assert actions[1].metadata == {"painPoint": "Reportes lentos"}


class TestDedupe:
    def test_append_high_keeps_high_priority_duplicates(self):
        actions = [
            _action("send_case_study", "medium"),
            _action("send_case_study", "medium", id_="second"),
            _action("send_case_study", "high"),
        ]
        result = dedupe_actions(actions, "append_high")
        assert [a.id for a in result] == ["send_case_study_medium", "send_case_study_high"]

    def test_replace_keeps_one_per_type(self):
        actions = [
            _action("send_case_study", "medium"),
            _action("send_case_study", "high"),
            _action("send_case_study", "high", id_="later-high"),
        ]
        result = dedupe_actions(actions, "replace")
        assert [a.id for a in result] == ["send_case_study_high"]

    def test_replace_keeps_position_of_first_occurrence(self):
        actions = [_action("send_case_study", "medium"), _action("send_contract"), _action("send_case_study", "high")]
        result = dedupe_actions(actions, "replace")
        assert [a.type for a in result] == ["send_case_study", "send_contract"]
        assert result[0].priority == "high"


class TestEngine:
    def test_spanish_meeting_example(self):
        actions = generate_actions(_analysis(buying_signals=["Podemos agendar una reunión la próxima semana"]))
        meetings = [a for a in actions if a.type == "schedule_meeting"]
        assert len(meetings) == 1
        assert meetings[0].urgency == "immediate"

    def test_spanish_price_example(self):
        actions = generate_actions(_analysis(objections=["Es muy caro para nuestro presupuesto"]))
        assert any(a.type == "send_roi_calculator" and a.priority == "high" for a in actions)

    def test_competitor_example(self):
        types = {a.type for a in generate_actions(_analysis(competitor_mentions=["CompetitorX"]))}
        assert {"send_comparison", "send_references"} <= types

    @pytest.mark.parametrize("dedup_mode", ["append_high", "replace"])
    def test_output_is_bounded_and_sorted(self, dedup_mode):
        engine = ActionRuleEngine(dedup_mode=dedup_mode)
        actions = engine.generate_actions(_analysis(**RICH_ANALYSIS))
        assert len(actions) <= 6
        scores = [a.score for a in actions]
        assert scores == sorted(scores, reverse=True)

    def test_rich_analysis_top_actions(self):
        actions = generate_actions(_analysis(**RICH_ANALYSIS))
        assert len(actions) == 6
        assert all(a.score == 34 for a in actions[:4])
        assert actions[0].id == "schedule_meeting_0"

    def test_replace_mode_has_unique_types(self):
        actions = ActionRuleEngine(dedup_mode="replace").generate_actions(_analysis(**RICH_ANALYSIS))
        types = [a.type for a in actions]
        assert len(types) == len(set(types))

    def test_append_high_mode_can_repeat_types(self):
        """GIVEN two high-priority schedule_meeting candidates THEN both survive in append_high mode."""
        analysis = _analysis(
            overall_sentiment="positive",
            buying_signals=["Agendemos una reunión"],
        )
        types = [a.type for a in ActionRuleEngine(dedup_mode="append_high").generate_actions(analysis)]
        assert types.count("schedule_meeting") == 2
        types = [a.type for a in ActionRuleEngine(dedup_mode="replace").generate_actions(analysis)]
        assert types.count("schedule_meeting") == 1

    def test_idempotent(self):
        analysis = _analysis(**RICH_ANALYSIS)
        first = [a.model_dump_json() for a in generate_actions(analysis)]
        second = [a.model_dump_json() for a in generate_actions(analysis)]
        assert first == second

    def test_empty_analysis_still_yields_actions(self):
        actions = generate_actions(_analysis())
        assert [a.type for a in actions] == ["send_demo_link", "make_followup_call", "nurture_sequence"]

    def test_max_actions_from_config(self):
        engine = ActionRuleEngine.from_config(AnalysisConfig(max_actions=2, dedup_mode="replace"))
        assert engine.dedup_mode == "replace"
        assert len(engine.generate_actions(_analysis(**RICH_ANALYSIS))) == 2

    def test_failing_generator_is_skipped(self):
        def broken(analysis, cues):
            raise RuntimeError("boom")

        engine = ActionRuleEngine(generators=[broken, conversion_actions])
        assert [a.type for a in engine.generate_actions(_analysis())] == ["nurture_sequence"]

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValueError):
            ActionRuleEngine(max_actions=0)
        with pytest.raises(ValueError):
            ActionRuleEngine(dedup_mode="newest")

    def test_quick_actions(self):
        quick = ActionRuleEngine().quick_actions()
        assert [a.id for a in quick] == ["quick_followup", "quick_email", "quick_meeting"]
        assert quick == list(QUICK_ACTIONS)
