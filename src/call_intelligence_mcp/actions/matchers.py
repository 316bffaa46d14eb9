"""Pluggable cue matchers for the action rule generators.

Generators ask a :class:`CueTable` whether a phrase carries a named cue
(``"meeting"``, ``"price"``...). The default table holds case-insensitive
Spanish and English substrings; callers can swap in regexes or extra
languages without touching generator control flow.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Protocol


class Matcher(Protocol):
    """Decides whether a free-text phrase carries one cue."""

    def matches(self, text: str) -> bool: ...


class KeywordMatcher:
    """Case-insensitive substring match against any of *keywords*."""

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords = tuple(k.lower() for k in keywords)

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return any(k in lowered for k in self.keywords)

    def __repr__(self) -> str:
        return f"KeywordMatcher({list(self.keywords)!r})"


class RegexMatcher:
    """Case-insensitive regex search."""

    def __init__(self, pattern: str) -> None:
        self.pattern = re.compile(pattern, re.IGNORECASE)

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))

    def __repr__(self) -> str:
        return f"RegexMatcher({self.pattern.pattern!r})"


# Buying-signal cues
MEETING = "meeting"
DEMO = "demo"
BUDGET = "budget"
IMPLEMENTATION = "implementation"
# Objection cues
PRICE = "price"
COMPETITOR = "competitor"
COMPLEXITY = "complexity"
AUTHORITY = "authority"

DEFAULT_KEYWORDS: dict[str, tuple[str, ...]] = {
    MEETING: ("reunión", "reunion", "meeting", "junta", "agendar"),
    DEMO: ("demo", "prueba", "mostrar", "trial", "show me"),
    BUDGET: ("presupuesto", "precio", "cost", "budget", "pricing", "quote"),
    IMPLEMENTATION: ("implementar", "empezar", "cuando", "cuándo", "implement", "get started", "onboard"),
    PRICE: ("caro", "precio", "cost", "expensive", "price"),
    COMPETITOR: ("competencia", "otro", "competitor", "another vendor", "alternative"),
    COMPLEXITY: ("tiempo", "complej", "dificil", "difícil", "complex", "complicated", "difficult"),
    AUTHORITY: ("jefe", "aprobar", "decidir", "boss", "approve", "approval", "decide"),
}


class CueTable:
    """Maps cue names to matchers."""

    def __init__(self, matchers: Mapping[str, Matcher]) -> None:
        self._matchers = dict(matchers)

    @classmethod
    def from_keywords(cls, keywords: Mapping[str, Iterable[str]]) -> CueTable:
        return cls({cue: KeywordMatcher(words) for cue, words in keywords.items()})

    def has(self, cue: str, text: str) -> bool:
        """True when *text* carries *cue*; unknown cues never match."""
        matcher = self._matchers.get(cue)
        return matcher is not None and matcher.matches(text)

    def with_matcher(self, cue: str, matcher: Matcher) -> CueTable:
        """Return a copy with *cue* bound to *matcher*."""
        return CueTable({**self._matchers, cue: matcher})


DEFAULT_CUES = CueTable.from_keywords(DEFAULT_KEYWORDS)
