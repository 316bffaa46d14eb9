"""Optional MLflow tracing integration.

Two instrumentation layers:

1. **Autolog**: ``mlflow.<flavor>.autolog()`` patches the OpenAI, Gemini and
   Anthropic SDKs so each provider call becomes a ``CHAT_MODEL`` span.
2. **Tool spans**: the ``trace()`` decorator wraps MCP tool entrypoints,
   producing ``TOOL`` root spans that parent the autolog child spans.

Guarded import: the server runs fine without ``mlflow-tracing`` installed.

Env vars (all optional):
    MLFLOW_TRACKING_URI: Where to store traces. Empty = tracing disabled.
    MLFLOW_EXPERIMENT_NAME: Experiment name (default ``call-intelligence-mcp``).
    CALL_ANALYSIS_TRACING_ENABLED: ``"false"`` force-disables even with a URI.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False

AUTOLOG_FLAVORS = ("openai", "gemini", "anthropic")


def is_enabled() -> bool:
    """Return True when mlflow-tracing is installed and not explicitly disabled."""
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """Drop-in replacement for ``@mlflow.trace``; identity when tracing is off.

    Usage::

        @trace(name="call_analyze", span_type="TOOL")
        async def call_analyze(...): ...
    """
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type, attributes=attributes)


def _enable_autolog(flavor: str) -> bool:
    try:
        module = importlib.import_module(f"mlflow.{flavor}")
        module.autolog()
    except Exception:
        logger.debug("MLflow %s autolog unavailable", flavor, exc_info=True)
        return False
    return True


def setup() -> None:
    """Configure MLflow tracking and enable provider autologging.

    No-op when ``is_enabled()`` returns False. Failures are logged and
    swallowed: tracing must never prevent the server from starting.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    tracking_uri = cfg.mlflow_tracking_uri
    experiment = cfg.mlflow_experiment_name

    try:
        mlflow.set_tracking_uri(tracking_uri)
        mlflow.set_experiment(experiment)
    except Exception:
        logger.warning("MLflow tracing setup failed, continuing without tracing", exc_info=True)
        return

    enabled = [flavor for flavor in AUTOLOG_FLAVORS if _enable_autolog(flavor)]
    logger.info(
        "MLflow tracing enabled (uri=%s, experiment=%s, autolog=%s)",
        tracking_uri, experiment, ",".join(enabled) or "none",
    )


def shutdown() -> None:
    """Flush pending async traces. No-op when tracing is off."""
    if not is_enabled():
        return

    try:
        mlflow.flush_trace_async_logging()
        logger.info("MLflow traces flushed")
    except Exception:
        logger.warning("MLflow trace flush failed", exc_info=True)
