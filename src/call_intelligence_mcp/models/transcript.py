"""Call transcript models — the immutable input to every analysis.

A transcript is an ordered list of speaker turns. Instances are frozen;
the pipeline only ever reads them.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

Role = Literal["agent", "lead", "system"]


def count_words(text: str) -> int:
    """Naive whitespace word count; empty or blank text counts as zero."""
    return len(text.split()) if text else 0


class TranscriptMessage(BaseModel):
    """A single speaker turn."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    timestamp: float = Field(default=0.0, ge=0, description="Seconds from the start of the call")
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ConversationTranscript(BaseModel):
    """Ordered speaker turns plus call-level totals."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    messages: tuple[TranscriptMessage, ...] = ()
    duration: float = Field(default=0.0, ge=0, description="Call length in seconds")
    total_words: int = Field(default=0, ge=0, alias="totalWords")
    participant_count: int = Field(default=0, ge=0, alias="participantCount")

    @classmethod
    def from_messages(cls, messages: list[TranscriptMessage]) -> ConversationTranscript:
        """Build a transcript, deriving duration, word and participant totals."""
        msgs = tuple(messages)
        return cls(
            messages=msgs,
            duration=max((m.timestamp for m in msgs), default=0.0),
            total_words=sum(count_words(m.content) for m in msgs),
            participant_count=len({m.role for m in msgs if m.role != "system"}),
        )

    @classmethod
    def from_voice_platform(cls, raw: Any) -> ConversationTranscript:
        """Convert a voice platform's raw turn list into a transcript.

        Each raw turn looks like ``{"role": "agent"|"user", "message": str,
        "time_in_call_secs": int, "confidence": float}``; ``text`` is accepted
        in place of ``message``. Anything other than ``agent`` is the lead.
        Empty or non-list input yields an empty transcript.
        """
        if not isinstance(raw, list) or not raw:
            logger.debug("Raw transcript empty or not a list, returning empty transcript")
            return cls()

        messages = [
            TranscriptMessage(
                role="agent" if turn.get("role") == "agent" else "lead",
                content=turn.get("message") or turn.get("text") or "",
                timestamp=turn.get("time_in_call_secs") or 0,
                confidence=turn.get("confidence") or 0.9,
            )
            for turn in raw
            if isinstance(turn, dict)
        ]
        transcript = cls(
            messages=tuple(messages),
            duration=max((m.timestamp for m in messages), default=0.0),
            total_words=sum(count_words(m.content) for m in messages),
            participant_count=2 if messages else 0,
        )
        logger.debug(
            "Converted %d platform turn(s): duration=%.0fs words=%d",
            len(messages), transcript.duration, transcript.total_words,
        )
        return transcript
