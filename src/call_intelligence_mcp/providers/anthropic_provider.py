"""Anthropic Claude messages adapter."""

from __future__ import annotations

import logging

import anthropic
from anthropic import AsyncAnthropic

from ..errors import ErrorCategory, ProviderError, classify_status
from .base import AnalysisProvider, ProviderResponse

logger = logging.getLogger(__name__)


def translate_anthropic_error(exc: Exception) -> ProviderError:
    """Map an Anthropic SDK exception to a classified ProviderError."""
    if isinstance(exc, anthropic.APIStatusError):
        retry_after = None
        header = exc.response.headers.get("retry-after") if exc.response is not None else None
        if header:
            try:
                retry_after = float(header)
            except ValueError:
                retry_after = None
        return ProviderError(
            classify_status(exc.status_code, exc.message),
            f"Claude API error: {exc.status_code} - {exc.message}",
            provider="anthropic",
            status_code=exc.status_code,
            retry_after=retry_after,
        )
    if isinstance(exc, anthropic.APIConnectionError):
        return ProviderError(
            ErrorCategory.NETWORK_ERROR,
            f"Claude network error: {exc}",
            provider="anthropic",
        )
    return ProviderError(ErrorCategory.UNKNOWN, f"Unexpected Claude error: {exc}", provider="anthropic")


class AnthropicProvider(AnalysisProvider):
    """Claude messages API; JSON is requested through the prompt."""

    name = "anthropic"

    def __init__(self, *, api_key: str, model: str, cost_per_token: float = 0.000015) -> None:
        super().__init__(api_key=api_key, model=model, cost_per_token=cost_per_token)
        self._client: AsyncAnthropic | None = None

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key)
            logger.info("Created Anthropic client (key …%s)", self.api_key[-4:])
        return self._client

    async def analyze(
        self,
        prompt: str,
        *,
        system_instruction: str,
        max_tokens: int,
        temperature: float,
    ) -> ProviderResponse:
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.model,
                system=system_instruction,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=min(temperature, 1.0),
            )
        except anthropic.AnthropicError as exc:
            raise translate_anthropic_error(exc) from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = response.usage
        tokens = (usage.input_tokens or 0) + (usage.output_tokens or 0) if usage else 0
        return ProviderResponse(
            raw_json=text,
            tokens_used=tokens,
            cost=self.cost_for(tokens),
            provider=self.name,
            model=self.model,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
