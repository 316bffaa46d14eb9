"""Recommended next-step actions produced by the action rule engine."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ActionType = Literal[
    "schedule_meeting",
    "send_proposal",
    "send_comparison",
    "send_pricing",
    "make_followup_call",
    "send_demo_link",
    "send_case_study",
    "schedule_technical_call",
    "send_contract",
    "address_objection",
    "nurture_sequence",
    "escalate_manager",
    "send_references",
    "schedule_trial",
    "send_roi_calculator",
]
Priority = Literal["high", "medium", "low"]
Urgency = Literal["immediate", "today", "this_week", "next_week"]

PRIORITY_WEIGHTS: dict[str, int] = {"high": 3, "medium": 2, "low": 1}
URGENCY_WEIGHTS: dict[str, int] = {"immediate": 4, "today": 3, "this_week": 2, "next_week": 1}


class IntelligentAction(BaseModel):
    """A typed next-step recommendation for the sales agent.

    Frozen: ranking may drop or reorder actions but never edits them.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    type: ActionType
    title: str
    description: str
    priority: Priority
    urgency: Urgency
    reasoning: str
    suggested_time: str | None = None
    template: str | None = None
    metadata: dict[str, Any] | None = Field(default=None)

    @property
    def score(self) -> int:
        """Ranking score: priority weight × 10 + urgency weight."""
        return PRIORITY_WEIGHTS[self.priority] * 10 + URGENCY_WEIGHTS[self.urgency]
