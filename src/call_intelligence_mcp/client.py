"""Multi-provider analysis client — ordered fallback across LLM providers.

Providers are tried strictly in configured order. Transient failures
(rate limits, 5xx, timeouts) are retried on the same provider with
backoff; persistent failures (billing, credentials, bad requests) move
straight to the next provider. The call fails only when every provider
has been exhausted.
"""

from __future__ import annotations

import asyncio
import logging

from .config import AnalysisConfig
from .errors import (
    AllProvidersFailedError,
    ErrorCategory,
    ProviderError,
    ProviderNotConfiguredError,
)
from .prompts.analysis import ANALYSIS_SYSTEM
from .providers import build_providers
from .providers.base import AnalysisProvider, ProviderResponse
from .retry import with_retry

logger = logging.getLogger(__name__)


class MultiProviderAnalysisClient:
    """Stateless fallback chain over :class:`AnalysisProvider` adapters.

    Holds no per-analysis state, so one instance may serve concurrent
    analyses of different conversations.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        providers: list[AnalysisProvider] | None = None,
    ) -> None:
        self.config = config
        self.providers = providers if providers is not None else build_providers(config)

    async def _attempt(
        self,
        provider: AnalysisProvider,
        prompt: str,
        *,
        system_instruction: str,
        max_tokens: int,
    ) -> ProviderResponse:
        """One provider call bounded by the per-attempt timeout."""
        cfg = self.config
        try:
            return await asyncio.wait_for(
                provider.analyze(
                    prompt,
                    system_instruction=system_instruction,
                    max_tokens=max_tokens,
                    temperature=cfg.temperature,
                ),
                timeout=cfg.provider_timeout_seconds,
            )
        except ProviderError:
            raise
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                ErrorCategory.NETWORK_ERROR,
                f"Request timed out after {cfg.provider_timeout_seconds:.0f}s",
                provider=provider.name,
            ) from exc
        except Exception as exc:
            # Unclassified adapter failures still advance the chain
            raise ProviderError(
                ErrorCategory.UNKNOWN,
                f"Unexpected {type(exc).__name__}: {exc}",
                provider=provider.name,
            ) from exc

    async def analyze(
        self,
        prompt: str,
        *,
        max_tokens: int = 2000,
        system_instruction: str = ANALYSIS_SYSTEM,
    ) -> ProviderResponse:
        """Run *prompt* through the chain and return the first success.

        Raises:
            ProviderNotConfiguredError: The chain is empty.
            AllProvidersFailedError: Every provider failed; carries each attempt.
        """
        if not self.providers:
            raise ProviderNotConfiguredError()

        cfg = self.config
        failures: list[ProviderError] = []
        for index, provider in enumerate(self.providers):
            try:
                response = await with_retry(
                    lambda p=provider: self._attempt(
                        p, prompt, system_instruction=system_instruction, max_tokens=max_tokens,
                    ),
                    max_attempts=cfg.retry_max_attempts,
                    base_delay=cfg.retry_base_delay,
                    max_delay=cfg.retry_max_delay,
                )
            except ProviderError as exc:
                failures.append(exc)
                remaining = len(self.providers) - index - 1
                logger.warning(
                    "Provider %s failed (%s): %s — %d provider(s) left",
                    provider.name, exc.category.value, exc.message, remaining,
                )
                continue

            logger.info(
                "Analysis served by %s/%s (%d tokens)",
                response.provider, response.model, response.tokens_used,
            )
            return response

        raise AllProvidersFailedError(failures)

    async def aclose(self) -> None:
        """Close every provider's SDK client."""
        for provider in self.providers:
            await provider.aclose()
