"""Language-model provider adapters for call analysis.

Public API:
    build_providers() — the configured fallback chain, in priority order.
"""

from __future__ import annotations

import logging

from ..config import AnalysisConfig
from .anthropic_provider import AnthropicProvider
from .base import AnalysisProvider, ProviderResponse
from .gemini import GeminiProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AnalysisProvider]] = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "anthropic": AnthropicProvider,
}


def build_providers(config: AnalysisConfig) -> list[AnalysisProvider]:
    """Instantiate ``config.provider_order``, skipping providers without a key."""
    chain: list[AnalysisProvider] = []
    for name in config.provider_order:
        provider = PROVIDER_CLASSES[name](
            api_key=config.api_key_for(name),
            model=config.model_for(name),
            cost_per_token=config.cost_per_token,
        )
        if not provider.is_configured():
            logger.info("Skipping provider %s: no API key configured", name)
            continue
        chain.append(provider)
    return chain


__all__ = [
    "AnalysisProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "PROVIDER_CLASSES",
    "ProviderResponse",
    "build_providers",
]
