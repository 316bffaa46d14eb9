"""Action rule engine — ranks generator output into a short next-step list."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..models.actions import IntelligentAction
from ..models.analysis import ConversationAnalysis
from .generators import DEFAULT_GENERATORS, Generator
from .matchers import DEFAULT_CUES, CueTable

logger = logging.getLogger(__name__)

DEFAULT_MAX_ACTIONS = 6

QUICK_ACTIONS: tuple[IntelligentAction, ...] = (
    IntelligentAction(
        id="quick_followup",
        type="make_followup_call",
        title="Llamada de Seguimiento",
        description="Programar seguimiento telefónico",
        priority="medium",
        urgency="today",
        reasoning="Mantener contacto regular",
    ),
    IntelligentAction(
        id="quick_email",
        type="nurture_sequence",
        title="Enviar Email",
        description="Email personalizado de seguimiento",
        priority="medium",
        urgency="today",
        reasoning="Comunicación escrita de seguimiento",
    ),
    IntelligentAction(
        id="quick_meeting",
        type="schedule_meeting",
        title="Agendar Reunión",
        description="Programar meeting presencial/virtual",
        priority="high",
        urgency="this_week",
        reasoning="Reunión para avanzar en el proceso",
    ),
)


def dedupe_actions(actions: Iterable[IntelligentAction], mode: str = "append_high") -> list[IntelligentAction]:
    """Collapse candidates that share a ``type``.

    ``append_high`` keeps the first action of each type and additionally
    keeps any later high-priority action of a type already seen.
    ``replace`` keeps exactly one action per type: the first, unless a later
    candidate has high priority and the kept one does not.
    """
    if mode == "replace":
        kept: dict[str, IntelligentAction] = {}
        for action in actions:
            current = kept.get(action.type)
            if current is None or (action.priority == "high" and current.priority != "high"):
                kept[action.type] = action
        return list(kept.values())

    seen: set[str] = set()
    result: list[IntelligentAction] = []
    for action in actions:
        if action.type not in seen or action.priority == "high":
            result.append(action)
            seen.add(action.type)
    return result


def rank_actions(
    actions: Iterable[IntelligentAction],
    *,
    max_actions: int = DEFAULT_MAX_ACTIONS,
    dedup_mode: str = "append_high",
) -> list[IntelligentAction]:
    """Deduplicate, order by score (stable on ties) and truncate."""
    unique = dedupe_actions(actions, dedup_mode)
    # sorted() is stable, so equal scores keep generation order.
    ordered = sorted(unique, key=lambda a: a.score, reverse=True)
    return ordered[:max_actions]


class ActionRuleEngine:
    """Turns a ConversationAnalysis into at most ``max_actions`` ranked actions.

    Deterministic: the same analysis always yields the same list. A
    generator that raises is logged and skipped so a single bad rule never
    empties the result.
    """

    def __init__(
        self,
        *,
        cues: CueTable = DEFAULT_CUES,
        generators: Sequence[Generator] = DEFAULT_GENERATORS,
        max_actions: int = DEFAULT_MAX_ACTIONS,
        dedup_mode: str = "append_high",
    ) -> None:
        if max_actions < 1:
            raise ValueError(f"max_actions must be >= 1, got {max_actions}")
        if dedup_mode not in ("append_high", "replace"):
            raise ValueError(f"Unknown dedup_mode: {dedup_mode!r}")
        self.cues = cues
        self.generators = tuple(generators)
        self.max_actions = max_actions
        self.dedup_mode = dedup_mode

    @classmethod
    def from_config(cls, config) -> ActionRuleEngine:
        """Build an engine from an :class:`~call_intelligence_mcp.config.AnalysisConfig`."""
        return cls(max_actions=config.max_actions, dedup_mode=config.dedup_mode)

    def candidates(self, analysis: ConversationAnalysis) -> list[IntelligentAction]:
        """All generator output in evaluation order, before ranking."""
        actions: list[IntelligentAction] = []
        for generator in self.generators:
            try:
                actions.extend(generator(analysis, self.cues))
            except Exception:
                logger.warning("Action generator %s failed", getattr(generator, "__name__", generator), exc_info=True)
        return actions

    def generate_actions(self, analysis: ConversationAnalysis) -> list[IntelligentAction]:
        """Ranked, deduplicated next steps for *analysis*."""
        candidates = self.candidates(analysis)
        ranked = rank_actions(candidates, max_actions=self.max_actions, dedup_mode=self.dedup_mode)
        logger.debug(
            "Generated %d action(s) from %d candidate(s) for conversation %s",
            len(ranked), len(candidates), analysis.conversation_id,
        )
        return ranked

    def quick_actions(self) -> list[IntelligentAction]:
        """Fixed fallback set for when no analysis is available."""
        return list(QUICK_ACTIONS)


def generate_actions(analysis: ConversationAnalysis) -> list[IntelligentAction]:
    """Rank actions for *analysis* with the default engine settings."""
    return ActionRuleEngine().generate_actions(analysis)
