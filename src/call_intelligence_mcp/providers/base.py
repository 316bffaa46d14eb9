"""Provider adapter interface for the analysis fallback chain."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderResponse:
    """Raw model output plus telemetry from one successful call.

    ``raw_json`` is untrusted text; only the normalizer may interpret it.
    """

    raw_json: str
    tokens_used: int
    cost: float
    provider: str
    model: str


class AnalysisProvider(ABC):
    """One language-model backend able to analyze a prompt.

    Implementations translate their SDK's failures into
    :class:`~call_intelligence_mcp.errors.ProviderError` so the client can
    decide between retrying and falling back.
    """

    name: str = ""

    def __init__(self, *, api_key: str, model: str, cost_per_token: float = 0.000015) -> None:
        self.api_key = api_key
        self.model = model
        self.cost_per_token = cost_per_token

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def cost_for(self, tokens: int) -> float:
        return tokens * self.cost_per_token

    @abstractmethod
    async def analyze(
        self,
        prompt: str,
        *,
        system_instruction: str,
        max_tokens: int,
        temperature: float,
    ) -> ProviderResponse:
        """Send *prompt* and return the model's JSON text."""

    async def aclose(self) -> None:
        """Release SDK clients. Default: nothing to release."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
