"""Call analysis tools — 4 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import AnalysisConfig, get_config
from ..errors import make_tool_error
from ..metrics import calculate_max_tokens, calculate_transcript_metrics
from ..models.analysis import ConversationAnalysis
from ..models.transcript import ConversationTranscript, TranscriptMessage
from ..pipeline import TranscriptAnalysisPipeline
from ..tracing import trace
from ..types import AnalysisParam, ConversationId, TranscriptFormat, TranscriptParam, coerce_json_param

logger = logging.getLogger(__name__)
calls_server = FastMCP("calls")

# One pipeline per config object; infra_configure swaps the config, which
# invalidates the cached pipeline.
_pipeline: TranscriptAnalysisPipeline | None = None
_pipeline_config: AnalysisConfig | None = None


def get_pipeline() -> TranscriptAnalysisPipeline:
    """Return the shared pipeline for the current server config."""
    global _pipeline, _pipeline_config
    cfg = get_config()
    if _pipeline is None or _pipeline_config is not cfg:
        _pipeline = TranscriptAnalysisPipeline(cfg)
        _pipeline_config = cfg
    return _pipeline


async def close_pipeline() -> bool:
    """Close the shared pipeline's provider clients. Returns True if one was open."""
    global _pipeline, _pipeline_config
    if _pipeline is None:
        return False
    pipeline, _pipeline, _pipeline_config = _pipeline, None, None
    await pipeline.aclose()
    return True


def load_transcript(value: list | dict | str, fmt: str = "canonical") -> ConversationTranscript:
    """Build a ConversationTranscript from a tool parameter.

    ``canonical`` turns carry ``role`` (agent/lead/system), ``content`` and
    ``timestamp``; ``voice_platform`` turns are converted with
    :meth:`ConversationTranscript.from_voice_platform`. Either may be
    wrapped in an object under ``messages`` (or ``transcript``).
    """
    value = coerce_json_param(value, list)
    value = coerce_json_param(value, dict)
    if isinstance(value, dict):
        value = value.get("messages", value.get("transcript"))
    if not isinstance(value, list):
        raise ValueError("Transcript must be a list of turns or an object with a 'messages' list")

    if fmt == "voice_platform":
        return ConversationTranscript.from_voice_platform(value)
    return ConversationTranscript.from_messages([TranscriptMessage.model_validate(t) for t in value])


@calls_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
@trace(name="call_analyze", span_type="TOOL")
async def call_analyze(
    transcript: TranscriptParam,
    transcript_format: TranscriptFormat = "canonical",
    conversation_id: ConversationId = None,
    lead_id: Annotated[str | None, Field(description="Lead ID echoed into the analysis")] = None,
    call_log_id: Annotated[str | None, Field(description="Call log ID echoed into the analysis")] = None,
) -> dict:
    """Analyze a call transcript and recommend next actions.

    Runs deterministic metrics, asks the configured language-model providers
    (with fallback) for a structured reading of the call, normalizes it, then
    ranks up to six follow-up actions.

    Args:
        transcript: Speaker turns, as a list or an object with ``messages``.
        transcript_format: "canonical" (role/content/timestamp) or
            "voice_platform" (role/message/time_in_call_secs).
        conversation_id: Optional conversation ID.
        lead_id: Optional lead ID.
        call_log_id: Optional call log ID.

    Returns:
        Dict with ``result`` (camelCase AnalysisResult) and ``actions``. When
        the analysis fails, ``actions`` holds the fixed quick actions and
        ``fallback`` is True.
        A successful analysis also carries ``timeline``, the lead's sentiment
        per time segment.
    """
    try:
        parsed = load_transcript(transcript, transcript_format)
    except Exception as exc:
        return make_tool_error(exc)

    pipeline = get_pipeline()
    result, actions = await pipeline.analyze_and_recommend(
        parsed,
        conversation_id=conversation_id,
        lead_id=lead_id,
        call_log_id=call_log_id,
    )
    fallback = not result.success
    if fallback:
        actions = pipeline.engine.quick_actions()
    out = {
        "result": result.model_dump(mode="json", by_alias=True, exclude_none=True),
        "actions": [a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in actions],
        "fallback": fallback,
    }
    if result.analysis is not None:
        out["timeline"] = pipeline.sentiment_timeline(parsed, result.analysis).model_dump(mode="json", by_alias=True)
    return out


@calls_server.tool(annotations=ToolAnnotations(readOnlyHint=True, idempotentHint=True, openWorldHint=False))
@trace(name="call_recommend_actions", span_type="TOOL")
async def call_recommend_actions(analysis: AnalysisParam) -> dict:
    """Rank next actions for an existing conversation analysis.

    Deterministic and offline: no language model is called.

    Args:
        analysis: A ConversationAnalysis as returned by ``call_analyze``.

    Returns:
        Dict with ``actions`` (at most six, highest score first) and ``count``.
    """
    try:
        data = coerce_json_param(analysis, dict)
        model = ConversationAnalysis.model_validate(data)
        actions = get_pipeline().recommend_actions(model)
    except Exception as exc:
        return make_tool_error(exc)
    return {
        "actions": [a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in actions],
        "count": len(actions),
    }


@calls_server.tool(annotations=ToolAnnotations(readOnlyHint=True, idempotentHint=True, openWorldHint=False))
@trace(name="call_sentiment_timeline", span_type="TOOL")
async def call_sentiment_timeline(
    transcript: TranscriptParam,
    analysis: AnalysisParam,
    transcript_format: TranscriptFormat = "canonical",
) -> dict:
    """Track the lead's sentiment through the call in overlapping time segments.

    Deterministic and offline: segment scores come from the analysis's
    ``messageAnalysis`` readings, matched to the transcript's lead messages.

    Args:
        transcript: The transcript the analysis was produced from.
        analysis: A ConversationAnalysis as returned by ``call_analyze``.
        transcript_format: "canonical" or "voice_platform".

    Returns:
        Dict with camelCase ``overallSentiment``, ``sentimentProgression``,
        ``sentimentChanges`` and ``criticalMoments``.
    """
    try:
        parsed = load_transcript(transcript, transcript_format)
        model = ConversationAnalysis.model_validate(coerce_json_param(analysis, dict))
        timeline = get_pipeline().sentiment_timeline(parsed, model)
    except Exception as exc:
        return make_tool_error(exc)
    return timeline.model_dump(mode="json", by_alias=True)


@calls_server.tool(annotations=ToolAnnotations(readOnlyHint=True, idempotentHint=True, openWorldHint=False))
@trace(name="call_transcript_metrics", span_type="TOOL")
async def call_transcript_metrics(
    transcript: TranscriptParam,
    transcript_format: TranscriptFormat = "canonical",
) -> dict:
    """Compute talk-time and question statistics without calling a model.

    Args:
        transcript: Speaker turns, as a list or an object with ``messages``.
        transcript_format: "canonical" or "voice_platform".

    Returns:
        Dict of per-role metrics plus ``max_tokens``, the output budget an
        analysis of this transcript would request.
    """
    try:
        parsed = load_transcript(transcript, transcript_format)
    except Exception as exc:
        return make_tool_error(exc)
    return {
        **calculate_transcript_metrics(parsed).to_dict(),
        "total_words": parsed.total_words,
        "duration_seconds": parsed.duration,
        "max_tokens": calculate_max_tokens(parsed),
    }
