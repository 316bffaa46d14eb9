"""Google Gemini adapter built on the google-genai SDK."""

from __future__ import annotations

import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..errors import ErrorCategory, ProviderError, classify_status
from .base import AnalysisProvider, ProviderResponse

logger = logging.getLogger(__name__)


def translate_gemini_error(exc: Exception) -> ProviderError:
    """Map a google-genai exception to a classified ProviderError."""
    if isinstance(exc, genai_errors.APIError):
        message = exc.message or str(exc)
        return ProviderError(
            classify_status(exc.code, f"{message} {exc.status or ''}"),
            f"Gemini API error: {exc.code} - {message}",
            provider="gemini",
            status_code=exc.code,
        )
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return ProviderError(
            ErrorCategory.NETWORK_ERROR,
            f"Gemini network error: {exc}",
            provider="gemini",
        )
    return ProviderError(ErrorCategory.UNKNOWN, f"Unexpected Gemini error: {exc}", provider="gemini")


class GeminiProvider(AnalysisProvider):
    """Gemini ``generate_content`` with JSON output mime type."""

    name = "gemini"

    def __init__(self, *, api_key: str, model: str, cost_per_token: float = 0.000015) -> None:
        super().__init__(api_key=api_key, model=model, cost_per_token=cost_per_token)
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
            logger.info("Created Gemini client (key …%s)", self.api_key[-4:])
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
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json",
        )
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise translate_gemini_error(exc) from exc

        # Drop thinking parts; keep user-visible text only
        content = response.candidates[0].content if response.candidates else None
        parts = content.parts if content else []
        text_parts = [p.text for p in parts or [] if p.text and not getattr(p, "thought", False)]
        text = "\n".join(text_parts) if text_parts else (response.text or "")

        usage = response.usage_metadata
        tokens = (usage.total_token_count or 0) if usage else 0
        return ProviderResponse(
            raw_json=text,
            tokens_used=tokens,
            cost=self.cost_for(tokens),
            provider=self.name,
            model=self.model,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            try:
                await self._client.aio.aclose()
            except Exception:
                logger.debug("Gemini async client close failed", exc_info=True)
            self._client = None
