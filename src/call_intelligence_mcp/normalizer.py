"""Response normalization — raw model JSON to a storage-safe ConversationAnalysis.

The model is not bound to a single numeric scale, so every bounded value
is rescaled and clamped here. Structural problems (unparsable JSON, a
missing top-level group) raise :class:`AnalysisParseError`; missing or
malformed optional leaves fall back to defaults.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, get_args

from .errors import AnalysisParseError
from .metrics import TranscriptMetrics, round_half_up
from .models.analysis import (
    ConversationAnalysis,
    ConversationFlow,
    FollowUpTimeline,
    FullAnalysis,
    MessageInsight,
    MessageIntent,
    MessageUrgency,
    RecommendedAction,
    ResponseQuality,
    SentimentType,
    TalkTimeRatio,
    UrgencyLevel,
)
from .prompts.analysis import REQUIRED_GROUPS

logger = logging.getLogger(__name__)

MAX_PROCESSING_TIME_MS = 600_000
DEFAULT_SUGGESTED_APPROACH = "Seguimiento estándar basado en el interés mostrado"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _to_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings; anything else is None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_bounded(value: Any, max_value: float = 1.0) -> float | None:
    """Rescale and clamp *value* into ``[0, max_value]``.

    Values above *max_value* are assumed to be on a 0–100 scale and divided
    by 100 before clamping. ``None`` (or a non-numeric value) stays ``None``
    so the field is omitted. Idempotent.
    """
    number = _to_number(value)
    if number is None:
        return None
    if number > max_value:
        number = number / 100
    return max(0.0, min(number, max_value))


def normalize_signed(value: Any, limit: float = 1.0) -> float | None:
    """Like :func:`normalize_bounded` but for ``[-limit, limit]`` domains.

    Used for sentiment scores, where negative values carry meaning. A
    magnitude above *limit* is read as a ±100 scale.
    """
    number = _to_number(value)
    if number is None:
        return None
    if abs(number) > limit:
        number = number / 100
    return max(-limit, min(number, limit))


def normalize_quality_score(value: Any) -> int | None:
    """Clamp to an integer in ``[0, 100]``."""
    number = _to_number(value)
    if number is None:
        return None
    return max(0, min(100, round_half_up(number)))


def normalize_processing_time(value: Any) -> int | None:
    """Clamp milliseconds to ``[0, 600000]`` (ten minutes)."""
    number = _to_number(value)
    if number is None:
        return None
    return max(0, min(MAX_PROCESSING_TIME_MS, round_half_up(number)))


def normalize_interest_level(value: Any) -> int | None:
    """Interest on a 0–10 scale; values above 10 are read as 0–100."""
    number = _to_number(value)
    if number is None:
        return None
    if number > 10:
        number = number / 10
    return max(0, min(10, round_half_up(number)))


def _normalize_count(value: Any) -> int:
    number = _to_number(value)
    return max(0, round_half_up(number)) if number is not None else 0


def _string_list(value: Any) -> list[str]:
    """Keep string entries in order; anything that is not a list is empty."""
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _choice(value: Any, allowed: Any, default: str) -> str:
    """Lower-cased *value* if it is one of the Literal *allowed*, else *default*."""
    options = get_args(allowed)
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in options:
            return candidate
    return default


def _group(payload: dict, name: str) -> dict:
    value = payload.get(name)
    return value if isinstance(value, dict) else {}


def parse_model_json(raw: str) -> dict:
    """Parse the model's text into a dict, enforcing the required groups.

    Markdown code fences around the JSON are tolerated.

    Raises:
        AnalysisParseError: Not JSON, not an object, or a required group
            is missing or not an object.
    """
    text = _FENCE_RE.sub("", (raw or "").strip()).strip()
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as exc:
        # Also covers integers past the digit limit and runaway nesting
        raise AnalysisParseError(f"Model returned non-JSON: {text[:200]!r}") from exc

    if not isinstance(payload, dict):
        raise AnalysisParseError(f"Model returned {type(payload).__name__}, expected an object")

    for name in REQUIRED_GROUPS:
        if not isinstance(payload.get(name), dict):
            raise AnalysisParseError(f"Missing required group: {name}")

    if "keyTopics" in payload["insights"] and not isinstance(payload["insights"]["keyTopics"], list):
        raise AnalysisParseError("Field insights.keyTopics must be a list")
    return payload


def _message_insights(value: Any) -> list[MessageInsight]:
    if not isinstance(value, list):
        return []
    insights: list[MessageInsight] = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            continue
        intent = item.get("intent")
        insights.append(MessageInsight(
            message_index=_normalize_count(item.get("messageIndex", i)),
            content=str(item.get("content") or ""),
            sentiment=_choice(item.get("sentiment"), SentimentType, "neutral"),
            sentiment_score=normalize_signed(item.get("sentimentScore")) or 0.0,
            emotions=_string_list(item.get("emotions")),
            key_phrases=_string_list(item.get("keyPhrases")),
            intent=intent if intent in get_args(MessageIntent) else None,
            urgency_level=_choice(item.get("urgencyLevel"), MessageUrgency, "low"),
        ))
    return insights


def _full_analysis(value: Any) -> FullAnalysis | None:
    if not isinstance(value, dict):
        return None
    return FullAnalysis(
        summary=str(value.get("summary") or ""),
        sentiment_progression=str(value.get("sentimentProgression") or ""),
        client_moments=str(value.get("clientMoments") or ""),
        strengths=_string_list(value.get("strengths")),
        improvements=_string_list(value.get("improvements")),
        next_steps=_string_list(value.get("nextSteps")),
    )


def talk_time_from_metrics(metrics: TranscriptMetrics) -> TalkTimeRatio:
    """Convert percentage ratios to fractions summing to exactly 1.0."""
    agent = max(0.0, min(1.0, metrics.agent_time_ratio / 100))
    return TalkTimeRatio(agent=agent, client=round(1.0 - agent, 10))


def normalize_analysis(
    payload: dict,
    metrics: TranscriptMetrics,
    *,
    analysis_model: str = "",
    processing_time_ms: float | None = None,
    conversation_id: str | None = None,
    lead_id: str | None = None,
    call_log_id: str | None = None,
    tokens_used: int = 0,
    cost: float = 0.0,
    provider_used: str = "",
) -> ConversationAnalysis:
    """Merge transcript metrics with a parsed model payload.

    Talk-time and question counts always come from *metrics*, never from
    the model.

    Args:
        payload: Output of :func:`parse_model_json`.
        metrics: Deterministic transcript metrics.
        analysis_model: Model ID that produced *payload*.
        processing_time_ms: Wall-clock time of the run, clamped to ten minutes.

    Returns:
        A ConversationAnalysis whose numeric fields all lie in their domains.
    """
    sentiment = _group(payload, "sentiment")
    quality = _group(payload, "quality")
    insights = _group(payload, "insights")
    engagement = _group(payload, "engagement")
    predictions = _group(payload, "predictions")
    model_metrics = _group(payload, "metrics")

    price = insights.get("priceDiscussion")
    approach = predictions.get("suggestedApproach")

    analysis = ConversationAnalysis(
        conversation_id=conversation_id,
        lead_id=lead_id,
        call_log_id=call_log_id,
        overall_sentiment=_choice(sentiment.get("overall"), SentimentType, "neutral"),
        sentiment_score=normalize_signed(sentiment.get("score")),
        sentiment_confidence=normalize_bounded(sentiment.get("confidence"), 1),
        call_quality_score=normalize_quality_score(quality.get("overall")),
        agent_performance_score=normalize_quality_score(quality.get("agentPerformance")),
        conversation_flow=_choice(quality.get("flow"), ConversationFlow, "fair"),
        key_topics=_string_list(insights.get("keyTopics")),
        main_pain_points=_string_list(insights.get("painPoints")),
        buying_signals=_string_list(insights.get("buyingSignals")),
        objections=_string_list(insights.get("objections")),
        competitor_mentions=_string_list(insights.get("competitors")),
        action_items=_string_list(insights.get("actionItems")),
        follow_up_suggestions=_string_list(insights.get("followUpSuggestions")),
        decision_makers=_string_list(insights.get("decisionMakers")),
        timeframe_indicators=_string_list(insights.get("timeframe")),
        price_discussion=price.strip() if isinstance(price, str) and price.strip() else None,
        lead_interest_level=normalize_interest_level(engagement.get("interestLevel")),
        engagement_score=normalize_quality_score(engagement.get("score")),
        response_quality=_choice(engagement.get("responseQuality"), ResponseQuality, "fair"),
        conversion_likelihood=normalize_bounded(predictions.get("conversionLikelihood"), 1),
        recommended_action=_choice(predictions.get("recommendedAction"), RecommendedAction, "qualify_further"),
        urgency_level=_choice(predictions.get("urgency"), UrgencyLevel, "medium"),
        follow_up_timeline=_choice(predictions.get("followUpTimeline"), FollowUpTimeline, "1_week"),
        suggested_approach=approach.strip() if isinstance(approach, str) and approach.strip()
        else DEFAULT_SUGGESTED_APPROACH,
        questions_asked=metrics.total_questions,
        questions_answered=metrics.lead_questions,
        interruption_count=_normalize_count(model_metrics.get("interruptions")),
        talk_time_ratio=talk_time_from_metrics(metrics),
        analysis_model=analysis_model,
        confidence_score=normalize_bounded(payload.get("confidence"), 1),
        processing_time=normalize_processing_time(processing_time_ms) or 0,
        tokens_used=max(0, int(tokens_used)),
        cost=max(0.0, float(cost)),
        provider_used=provider_used,
        full_analysis=_full_analysis(payload.get("fullAnalysis")),
        message_analysis=_message_insights(payload.get("messageAnalysis")),
    )
    logger.debug(
        "Normalized analysis: sentiment=%s score=%s conversion=%s quality=%s",
        analysis.overall_sentiment, analysis.sentiment_score,
        analysis.conversion_likelihood, analysis.call_quality_score,
    )
    return analysis
