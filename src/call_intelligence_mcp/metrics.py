"""Deterministic talk-time and question statistics for a transcript.

Nothing here depends on the language model: talk-time is measured from
word counts and questions from literal ``?`` characters.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from .models.transcript import ConversationTranscript, count_words


def round_half_up(value: float) -> int:
    """Round halves up (4.5 -> 5); the built-in ``round`` rounds halves to even."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class TranscriptMetrics:
    """Per-role counts for one transcript.

    ``agent_time_ratio`` and ``lead_time_ratio`` are integer percentages
    summing to 100 (±1 from rounding).
    """

    agent_time_ratio: int
    lead_time_ratio: int
    agent_messages: int
    lead_messages: int
    agent_word_count: int
    lead_word_count: int
    agent_questions: int
    lead_questions: int
    total_questions: int

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_transcript_metrics(transcript: ConversationTranscript) -> TranscriptMetrics:
    """Partition messages by role and count words and questions.

    System messages are not speech and are left out of both sides.
    With no words at all the ratios default to 50/50.
    """
    agent_messages = lead_messages = 0
    agent_words = lead_words = 0
    agent_questions = lead_questions = 0

    for msg in transcript.messages:
        words = count_words(msg.content)
        asked = "?" in msg.content
        if msg.role == "agent":
            agent_messages += 1
            agent_words += words
            agent_questions += asked
        elif msg.role == "lead":
            lead_messages += 1
            lead_words += words
            lead_questions += asked

    total_words = agent_words + lead_words
    if total_words > 0:
        agent_ratio = round_half_up(100 * agent_words / total_words)
        lead_ratio = round_half_up(100 * lead_words / total_words)
    else:
        agent_ratio = lead_ratio = 50

    return TranscriptMetrics(
        agent_time_ratio=agent_ratio,
        lead_time_ratio=lead_ratio,
        agent_messages=agent_messages,
        lead_messages=lead_messages,
        agent_word_count=agent_words,
        lead_word_count=lead_words,
        agent_questions=agent_questions,
        lead_questions=lead_questions,
        total_questions=agent_questions + lead_questions,
    )


def calculate_max_tokens(transcript: ConversationTranscript, *, complete: bool = True) -> int:
    """Output-token budget for analysing *transcript*.

    Grows with message count, call length, word count, back-and-forth and
    verbosity; clamped to [1000, 6000], or [1000, 8000] for long calls.
    """
    messages = transcript.messages
    n = len(messages)
    total_words = transcript.total_words

    tokens = 1500
    tokens += min(n * 50, 1000)
    tokens += min(int(transcript.duration // 60) * 100, 800)
    tokens += min((total_words // 100) * 25, 600)
    tokens += min((n - 10) * 30, 400) if n > 10 else 0

    words_per_message = total_words / max(n, 1)
    if words_per_message > 50:
        tokens += 300
    elif words_per_message > 25:
        tokens += 150

    if n < 5 and total_words > 200:
        tokens += 200

    if complete:
        tokens = int(tokens * 1.5)

    ceiling = 8000 if total_words > 1000 or n > 30 else 6000
    return max(1000, min(ceiling, tokens))
