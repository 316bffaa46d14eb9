"""Infrastructure tools — 1 tool on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import _parse_provider_order, get_config, update_config
from ..errors import make_tool_error
from ..tracing import trace
from .calls import close_pipeline
from ..types import DedupMode, Language, ProviderName

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {
    "openai_api_key",
    "gemini_api_key",
    "anthropic_api_key",
}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    return get_config().model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)


def _configured_providers() -> list[str]:
    """Providers in the chain that have an API key, in priority order."""
    cfg = get_config()
    return [name for name in cfg.provider_order if cfg.api_key_for(name)]


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="infra_configure", span_type="TOOL")
async def infra_configure(
    provider_order: Annotated[list[ProviderName] | str | None, Field(
        description='Fallback order, e.g. ["gemini", "openai"] or "gemini,openai"',
    )] = None,
    openai_model: Annotated[str | None, Field(description="OpenAI model ID")] = None,
    gemini_model: Annotated[str | None, Field(description="Gemini model ID")] = None,
    anthropic_model: Annotated[str | None, Field(description="Anthropic model ID")] = None,
    language: Language | None = None,
    temperature: Annotated[float | None, Field(ge=0.0, le=2.0, description="Sampling temperature")] = None,
    dedup_mode: DedupMode | None = None,
) -> dict:
    """Reconfigure the analysis pipeline at runtime.

    Changes take effect for every subsequent ``call_analyze``. Calling with
    no arguments just reports the current configuration.

    Args:
        provider_order: Providers to try, first to last.
        openai_model: OpenAI model ID override.
        gemini_model: Gemini model ID override.
        anthropic_model: Anthropic model ID override.
        language: Language of the generated insights, "es" or "en".
        temperature: Sampling temperature (0.0–2.0).
        dedup_mode: "append_high" or "replace" duplicate handling for actions.

    Returns:
        Dict with current_config (API keys removed) and configured_providers.
    """
    try:
        if isinstance(provider_order, str):
            provider_order = _parse_provider_order(provider_order)
        overrides = {
            "provider_order": provider_order,
            "openai_model": openai_model,
            "gemini_model": gemini_model,
            "anthropic_model": anthropic_model,
            "language": language,
            "temperature": temperature,
            "dedup_mode": dedup_mode,
        }
        if any(v is not None for v in overrides.values()):
            update_config(**overrides)
            # The cached pipeline holds provider clients built for the old config
            await close_pipeline()
        return {
            "current_config": _redacted_config(),
            "configured_providers": _configured_providers(),
        }
    except Exception as exc:
        return make_tool_error(exc)
