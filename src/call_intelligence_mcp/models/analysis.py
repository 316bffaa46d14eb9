"""Conversation analysis models — the canonical, storage-safe output.

Every bounded numeric field is declared with its domain so that a record
which escaped normalization fails validation instead of reaching storage.
Fields dump to camelCase with ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..errors import ErrorCategory

SentimentType = Literal["positive", "negative", "neutral", "mixed"]
ConversationFlow = Literal["excellent", "good", "fair", "poor"]
ResponseQuality = Literal["excellent", "good", "fair", "poor"]
UrgencyLevel = Literal["low", "medium", "high", "critical"]
FollowUpTimeline = Literal["immediate", "1_day", "3_days", "1_week", "2_weeks", "1_month"]
RecommendedAction = Literal[
    "immediate_follow_up",
    "send_proposal",
    "schedule_meeting",
    "nurture_lead",
    "qualify_further",
    "close_deal",
    "archive_lead",
    "escalate_to_manager",
    "send_technical_info",
    "address_objections",
]
MessageIntent = Literal["question", "objection", "interest", "agreement", "concern"]
MessageUrgency = Literal["low", "medium", "high"]

ANALYSIS_VERSION = "1.0"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TalkTimeRatio(_CamelModel):
    """Share of spoken words per side; always sums to 1.0."""

    agent: float = Field(default=0.5, ge=0.0, le=1.0)
    client: float = Field(default=0.5, ge=0.0, le=1.0)


class MessageInsight(_CamelModel):
    """Model-assessed reading of a single lead message."""

    message_index: int = Field(default=0, ge=0)
    content: str = ""
    sentiment: SentimentType = "neutral"
    sentiment_score: float = Field(default=0.0, ge=-1.0, le=1.0)
    emotions: list[str] = Field(default_factory=list)
    key_phrases: list[str] = Field(default_factory=list)
    intent: MessageIntent | None = None
    urgency_level: MessageUrgency = "low"


class FullAnalysis(_CamelModel):
    """Narrative summary of the call."""

    summary: str = ""
    sentiment_progression: str = ""
    client_moments: str = ""
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


class ConversationAnalysis(_CamelModel):
    """Canonical analysis of one call.

    Produced by :func:`~call_intelligence_mcp.normalizer.normalize_analysis`
    and consumed by the action engine and by persistence collaborators.
    """

    conversation_id: str | None = None
    lead_id: str | None = None
    call_log_id: str | None = None

    # Sentiment
    overall_sentiment: SentimentType = "neutral"
    sentiment_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    sentiment_confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    # Quality
    call_quality_score: int | None = Field(default=None, ge=0, le=100)
    agent_performance_score: int | None = Field(default=None, ge=0, le=100)
    conversation_flow: ConversationFlow = "fair"

    # Insights
    key_topics: list[str] = Field(default_factory=list)
    main_pain_points: list[str] = Field(default_factory=list)
    buying_signals: list[str] = Field(default_factory=list)
    objections: list[str] = Field(default_factory=list)
    competitor_mentions: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    follow_up_suggestions: list[str] = Field(default_factory=list)
    decision_makers: list[str] = Field(default_factory=list)
    timeframe_indicators: list[str] = Field(default_factory=list)
    price_discussion: str | None = None

    # Engagement
    lead_interest_level: int | None = Field(default=None, ge=0, le=10)
    engagement_score: int | None = Field(default=None, ge=0, le=100)
    response_quality: ResponseQuality = "fair"

    # Predictions
    conversion_likelihood: float | None = Field(default=None, ge=0.0, le=1.0)
    recommended_action: RecommendedAction = "qualify_further"
    urgency_level: UrgencyLevel = "medium"
    follow_up_timeline: FollowUpTimeline = "1_week"
    suggested_approach: str = ""

    # Metrics (deterministic, from the transcript)
    questions_asked: int = Field(default=0, ge=0)
    questions_answered: int = Field(default=0, ge=0)
    interruption_count: int = Field(default=0, ge=0)
    talk_time_ratio: TalkTimeRatio = Field(default_factory=TalkTimeRatio)

    # Metadata
    analysis_model: str = ""
    analysis_version: str = ANALYSIS_VERSION
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    processing_time: int = Field(default=0, ge=0, le=600_000)
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)
    provider_used: str = ""

    # Raw narrative
    full_analysis: FullAnalysis | None = None
    message_analysis: list[MessageInsight] = Field(default_factory=list)

    @field_validator(
        "key_topics", "main_pain_points", "buying_signals", "objections", "competitor_mentions",
        "action_items", "follow_up_suggestions", "decision_makers", "timeframe_indicators",
        mode="before",
    )
    @classmethod
    def _string_entries(cls, v: object) -> list:
        """Null or non-list insight groups read as empty; non-string entries are dropped."""
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]

    @field_validator("message_analysis", mode="before")
    @classmethod
    def _message_list(cls, v: object) -> list:
        return v if isinstance(v, list) else []


class AnalysisResult(_CamelModel):
    """Discriminated outcome of one pipeline run.

    ``success`` is True with ``analysis`` set, or False with ``error``,
    ``error_category`` and ``error_title`` set.
    """

    success: bool
    analysis: ConversationAnalysis | None = None
    error: str | None = None
    error_category: ErrorCategory | None = None
    error_title: str | None = None
    processing_time: int = Field(default=0, ge=0, le=600_000)
    tokens_used: int = 0
    cost: float = 0.0
    provider_used: str | None = None
