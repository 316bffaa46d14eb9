"""Deterministic next-step recommendations derived from a call analysis."""

from .engine import QUICK_ACTIONS, ActionRuleEngine, dedupe_actions, generate_actions, rank_actions
from .matchers import DEFAULT_CUES, CueTable, KeywordMatcher, RegexMatcher

__all__ = [
    "ActionRuleEngine",
    "CueTable",
    "DEFAULT_CUES",
    "KeywordMatcher",
    "QUICK_ACTIONS",
    "RegexMatcher",
    "dedupe_actions",
    "generate_actions",
    "rank_actions",
]
