"""Shared type aliases and helpers for tool parameters."""

from __future__ import annotations

import json
from typing import Annotated, Literal

from pydantic import Field


def coerce_json_param(value: str | dict | list | None, expected_type: type) -> dict | list | None:
    """Parse MCP JSON-RPC string params back to dict/list.

    MCP JSON-RPC transport may serialize dict/list params as JSON strings,
    which Pydantic v2 rejects.

    Args:
        value: The parameter value (possibly a JSON string).
        expected_type: Expected Python type (``dict`` or ``list``).

    Returns:
        Parsed value if coercion succeeded, original value otherwise.
    """
    if not isinstance(value, str):
        return value
    try:
        parsed = json.loads(value)
        if isinstance(parsed, expected_type):
            return parsed
    except (ValueError, TypeError, RecursionError):
        pass
    return value


# ── Literal enums ────────────────────────────────────────────────────────────

ProviderName = Literal["openai", "gemini", "anthropic"]
Language = Literal["es", "en"]
TranscriptFormat = Literal["canonical", "voice_platform"]
DedupMode = Literal["append_high", "replace"]

# ── Annotated aliases ────────────────────────────────────────────────────────

TranscriptParam = Annotated[list | dict | str, Field(
    description="Transcript as a list of turns, an object with a 'messages' list, "
    "or the same as a JSON string",
)]
AnalysisParam = Annotated[dict | str, Field(
    description="ConversationAnalysis object (camelCase or snake_case keys) or a JSON string",
)]
ConversationId = Annotated[str | None, Field(description="Conversation ID echoed into the analysis")]
