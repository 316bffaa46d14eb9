"""OpenAI chat-completions adapter (primary provider)."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from ..errors import ErrorCategory, ProviderError, classify_status
from .base import AnalysisProvider, ProviderResponse

logger = logging.getLogger(__name__)


def _retry_after(exc: openai.APIStatusError) -> float | None:
    """Read the ``retry-after`` header, if the provider sent one."""
    response = getattr(exc, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return float(value) if value else None
    except ValueError:
        return None


def translate_openai_error(exc: Exception) -> ProviderError:
    """Map an OpenAI SDK exception to a classified ProviderError."""
    if isinstance(exc, openai.APIStatusError):
        body = f"{exc.message} {getattr(exc, 'code', '') or ''}"
        return ProviderError(
            classify_status(exc.status_code, body),
            f"OpenAI API error: {exc.status_code} - {exc.message}",
            provider="openai",
            status_code=exc.status_code,
            retry_after=_retry_after(exc),
        )
    if isinstance(exc, openai.APIConnectionError):
        return ProviderError(
            ErrorCategory.NETWORK_ERROR,
            f"OpenAI network error: {exc}",
            provider="openai",
        )
    return ProviderError(ErrorCategory.UNKNOWN, f"Unexpected OpenAI error: {exc}", provider="openai")


class OpenAIProvider(AnalysisProvider):
    """Chat completion with JSON response format."""

    name = "openai"

    def __init__(self, *, api_key: str, model: str, cost_per_token: float = 0.000015) -> None:
        super().__init__(api_key=api_key, model=model, cost_per_token=cost_per_token)
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
            logger.info("Created OpenAI client (key …%s)", self.api_key[-4:])
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
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as exc:
            raise translate_openai_error(exc) from exc

        content = response.choices[0].message.content if response.choices else None
        tokens = response.usage.total_tokens if response.usage else 0
        return ProviderResponse(
            raw_json=content or "",
            tokens_used=tokens,
            cost=self.cost_for(tokens),
            provider=self.name,
            model=self.model,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
