"""Sentiment timeline — segment the call by time and track the lead's mood.

Deterministic post-processing over an existing analysis: each segment's
score is the mean ``sentimentScore`` of the lead messages it contains,
as read by the model in ``messageAnalysis``. No model call is made here.

Segments are ``segment_seconds`` long and start every
``segment_seconds - overlap_seconds``, so a message near a boundary can
fall in two neighbouring segments.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Sequence

from .models.analysis import ConversationAnalysis, MessageInsight
from .models.timeline import (
    CriticalMoment,
    OverallSentiment,
    SentimentChange,
    SentimentPoint,
    SentimentTimeline,
)
from .models.transcript import ConversationTranscript, TranscriptMessage

logger = logging.getLogger(__name__)

SEGMENT_SECONDS = 30.0
OVERLAP_SECONDS = 5.0
CHANGE_THRESHOLD = 0.4
LABEL_THRESHOLD = 0.2
DEFAULT_MESSAGE_CONFIDENCE = 0.8

CRITICAL_LOW = -0.6
CRITICAL_HIGH = 0.7
CRITICAL_EMOTIONS = frozenset({"frustrated", "excited", "angry"})

_TEXT = {
    "es": {
        "silent": "Sin participación del cliente",
        "change": "Cambio detectado",
        "objection": "Objeción del cliente",
        "interest_peak": "Pico de interés",
        "frustration": "Momento de frustración",
        "buying_signal": "Señal de compra",
    },
    "en": {
        "silent": "No lead participation",
        "change": "Change detected",
        "objection": "Lead objection",
        "interest_peak": "Interest peak",
        "frustration": "Frustration moment",
        "buying_signal": "Buying signal",
    },
}

Segment = tuple[tuple[int, TranscriptMessage], ...]


def create_time_segments(
    transcript: ConversationTranscript,
    segment_seconds: float = SEGMENT_SECONDS,
    overlap_seconds: float = OVERLAP_SECONDS,
) -> list[Segment]:
    """Group messages into overlapping time windows.

    Each window keeps ``(position, message)`` pairs, where *position* is the
    message's index in the transcript. Empty windows are skipped. A call
    whose messages all sit at second zero is a single window.

    Raises:
        ValueError: The overlap is negative or not shorter than a segment.
    """
    if segment_seconds <= 0 or not 0 <= overlap_seconds < segment_seconds:
        raise ValueError("Segments must be longer than their overlap, and the overlap >= 0")

    indexed = list(enumerate(transcript.messages))
    if not indexed:
        return []
    duration = max(transcript.duration, max(m.timestamp for _, m in indexed))
    if duration <= 0:
        return [tuple(indexed)]

    step = segment_seconds - overlap_seconds
    segments: list[Segment] = []
    start = 0.0
    while start < duration:
        end = min(start + segment_seconds, duration)
        window = tuple((i, m) for i, m in indexed if start <= m.timestamp <= end)
        if window:
            segments.append(window)
        start += step
    return segments


def match_insights(
    transcript: ConversationTranscript,
    insights: Sequence[MessageInsight],
) -> dict[int, MessageInsight]:
    """Map transcript positions of lead messages to the model's insight for them.

    ``messageIndex`` is the message's position in the conversation. An
    insight whose index does not land on a lead message is matched on its
    content instead; one that matches neither way is dropped.
    """
    lead_positions = {i for i, m in enumerate(transcript.messages) if m.role == "lead"}
    by_content: dict[str, int] = {}
    for i in sorted(lead_positions):
        by_content.setdefault(transcript.messages[i].content.strip().casefold(), i)

    matched: dict[int, MessageInsight] = {}
    for insight in insights:
        position = insight.message_index if insight.message_index in lead_positions else None
        if position is None or position in matched:
            position = by_content.get(insight.content.strip().casefold())
        if position is not None and position not in matched:
            matched[position] = insight
    return matched


def _dominant_emotion(insights: Sequence[MessageInsight]) -> str:
    counts = Counter(e.strip().lower() for ins in insights for e in ins.emotions if e.strip())
    if not counts:
        return "neutral"
    # Counter keeps first-seen order on ties
    return counts.most_common(1)[0][0]


def _key_phrases(insights: Sequence[MessageInsight]) -> list[str]:
    return list(dict.fromkeys(p for ins in insights for p in ins.key_phrases))


def segment_sentiment(
    segment: Segment,
    insights: dict[int, MessageInsight],
    language: str = "es",
) -> SentimentPoint:
    """Score one segment from the lead's messages in it."""
    time_start = segment[0][1].timestamp
    time_end = segment[-1][1].timestamp
    lead = [(i, m) for i, m in segment if m.role == "lead"]
    if not lead:
        return SentimentPoint(
            time_start=time_start,
            time_end=time_end,
            sentiment=0.0,
            confidence=0.1,
            dominant_emotion="neutral",
            key_phrases=[_TEXT[language]["silent"]],
        )

    read = [insights[i] for i, _ in lead if i in insights]
    confidence = sum(
        m.confidence if m.confidence is not None else DEFAULT_MESSAGE_CONFIDENCE for _, m in lead
    ) / len(lead)
    if not read:
        # Lead spoke, but the model gave no reading for these messages
        return SentimentPoint(
            time_start=time_start,
            time_end=time_end,
            sentiment=0.0,
            confidence=min(confidence, 0.3),
            dominant_emotion="uncertain",
        )

    return SentimentPoint(
        time_start=time_start,
        time_end=time_end,
        sentiment=max(-1.0, min(1.0, sum(ins.sentiment_score for ins in read) / len(read))),
        confidence=confidence,
        dominant_emotion=_dominant_emotion(read),
        key_phrases=_key_phrases(read),
    )


def detect_sentiment_changes(
    points: Sequence[SentimentPoint],
    threshold: float = CHANGE_THRESHOLD,
    language: str = "es",
) -> list[SentimentChange]:
    """Shifts of at least *threshold* between consecutive segments."""
    changes: list[SentimentChange] = []
    for previous, current in zip(points, points[1:]):
        magnitude = abs(current.sentiment - previous.sentiment)
        if magnitude >= threshold or math.isclose(magnitude, threshold):
            changes.append(SentimentChange(
                time_point=current.time_start,
                from_sentiment=previous.sentiment,
                to_sentiment=current.sentiment,
                magnitude=magnitude,
                trigger_phrase=current.key_phrases[0] if current.key_phrases else _TEXT[language]["change"],
            ))
    return changes


def is_critical(point: SentimentPoint) -> bool:
    return (
        point.sentiment <= CRITICAL_LOW
        or point.sentiment >= CRITICAL_HIGH
        or point.dominant_emotion in CRITICAL_EMOTIONS
    )


def classify_moment(
    point: SentimentPoint,
    insights: Sequence[MessageInsight] = (),
    language: str = "es",
) -> CriticalMoment:
    """Name a critical segment from its sentiment and the lead's intents."""
    intents = {ins.intent for ins in insights}
    if point.sentiment > 0:
        moment = "buying_signal" if "agreement" in intents else "interest_peak"
    else:
        moment = "objection" if "objection" in intents else "frustration"
    description = _TEXT[language][moment]
    if point.key_phrases:
        description = f"{description}: {point.key_phrases[0]}"
    return CriticalMoment(
        time_point=point.time_start,
        type=moment,
        description=description,
        impact="high" if abs(point.sentiment) > CRITICAL_HIGH else "medium",
    )


def calculate_overall_sentiment(points: Sequence[SentimentPoint]) -> OverallSentiment:
    """Confidence-weighted mean score, labelled at ±0.2."""
    if not points:
        return OverallSentiment(score=0.0, label="neutral", confidence=0.5)

    total_weight = sum(p.confidence for p in points)
    score = sum(p.sentiment * p.confidence for p in points) / total_weight if total_weight > 0 else 0.0
    if score > LABEL_THRESHOLD:
        label = "positive"
    elif score < -LABEL_THRESHOLD:
        label = "negative"
    else:
        label = "neutral"
    return OverallSentiment(
        score=max(-1.0, min(1.0, score)),
        label=label,
        confidence=total_weight / len(points),
    )


def build_sentiment_timeline(
    transcript: ConversationTranscript,
    analysis: ConversationAnalysis,
    *,
    segment_seconds: float = SEGMENT_SECONDS,
    overlap_seconds: float = OVERLAP_SECONDS,
    language: str = "es",
) -> SentimentTimeline:
    """Build the full timeline for *transcript* from *analysis*'s message readings.

    Args:
        transcript: The call the analysis was produced from.
        analysis: Supplies ``message_analysis``; other fields are unused.
        segment_seconds: Window length.
        overlap_seconds: Seconds shared by consecutive windows.
        language: ``es`` or ``en`` for generated labels.
    """
    insights = match_insights(transcript, analysis.message_analysis)
    segments = create_time_segments(transcript, segment_seconds, overlap_seconds)

    points: list[SentimentPoint] = []
    moments: list[CriticalMoment] = []
    for segment in segments:
        point = segment_sentiment(segment, insights, language)
        points.append(point)
        if is_critical(point):
            read = [insights[i] for i, _ in segment if i in insights]
            moments.append(classify_moment(point, read, language))

    timeline = SentimentTimeline(
        overall_sentiment=calculate_overall_sentiment(points),
        sentiment_progression=points,
        sentiment_changes=detect_sentiment_changes(points, language=language),
        critical_moments=moments,
    )
    logger.debug(
        "Sentiment timeline: %d segment(s), %d change(s), %d critical moment(s), overall %s",
        len(points), len(timeline.sentiment_changes), len(moments), timeline.overall_sentiment.label,
    )
    return timeline
