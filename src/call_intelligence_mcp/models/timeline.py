"""Sentiment timeline models — how the lead's mood moved through the call."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .analysis import _CamelModel

MomentType = Literal["objection", "interest_peak", "frustration", "buying_signal"]
MomentImpact = Literal["high", "medium", "low"]
TimelineLabel = Literal["positive", "neutral", "negative"]


class SentimentPoint(_CamelModel):
    """Lead sentiment over one time segment."""

    time_start: float = Field(ge=0)
    time_end: float = Field(ge=0)
    sentiment: float = Field(default=0.0, ge=-1.0, le=1.0)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    dominant_emotion: str = "neutral"
    key_phrases: list[str] = Field(default_factory=list)


class SentimentChange(_CamelModel):
    time_point: float = Field(ge=0)
    from_sentiment: float = Field(ge=-1.0, le=1.0)
    to_sentiment: float = Field(ge=-1.0, le=1.0)
    magnitude: float = Field(ge=0.0, le=2.0)
    trigger_phrase: str


class CriticalMoment(_CamelModel):
    time_point: float = Field(ge=0)
    type: MomentType
    description: str
    impact: MomentImpact = "medium"


class OverallSentiment(_CamelModel):
    """Confidence-weighted mean of the segment sentiments."""

    score: float = Field(default=0.0, ge=-1.0, le=1.0)
    label: TimelineLabel = "neutral"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class SentimentTimeline(_CamelModel):
    overall_sentiment: OverallSentiment = Field(default_factory=OverallSentiment)
    sentiment_progression: list[SentimentPoint] = Field(default_factory=list)
    sentiment_changes: list[SentimentChange] = Field(default_factory=list)
    critical_moments: list[CriticalMoment] = Field(default_factory=list)
