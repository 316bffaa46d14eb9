"""Shared test fixtures for call-intelligence-mcp."""

from __future__ import annotations

import json
from typing import Any

import pytest

from call_intelligence_mcp.errors import ProviderError
from call_intelligence_mcp.models.transcript import ConversationTranscript, TranscriptMessage
from call_intelligence_mcp.providers.base import AnalysisProvider, ProviderResponse


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


@pytest.fixture(autouse=True, scope="session")
def _unwrap_fastmcp_tools():
    """Patch tool modules so FunctionTool objects become directly callable."""
    import importlib
    import pkgutil

    import call_intelligence_mcp.tools as tools_pkg

    modules = []
    for info in pkgutil.walk_packages(tools_pkg.__path__, tools_pkg.__name__ + "."):
        try:
            modules.append(importlib.import_module(info.name))
        except Exception:
            pass

    for mod in modules:
        for name in list(vars(mod)):
            obj = getattr(mod, name, None)
            if obj is not None and hasattr(obj, "fn") and not callable(obj):
                setattr(mod, name, obj.fn)


@pytest.fixture(autouse=True)
def _clear_provider_keys(monkeypatch):
    """Ensure tests never hit a real provider API."""
    for var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls.

    ``test_tracing.py`` patches the tracing module directly and does not
    rely on this fixture.
    """
    monkeypatch.setenv("CALL_ANALYSIS_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/call-intelligence-mcp/.env."""
    monkeypatch.setattr(
        "call_intelligence_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )
    monkeypatch.delenv("CALL_ANALYSIS_ENV_FILE", raising=False)


@pytest.fixture()
def clean_config():
    """Reset the config singleton (and the cached tool pipeline) between tests."""
    import call_intelligence_mcp.config as cfg_mod
    import call_intelligence_mcp.tools.calls as calls_mod

    cfg_mod._config = None
    calls_mod._pipeline = calls_mod._pipeline_config = None
    yield
    cfg_mod._config = None
    calls_mod._pipeline = calls_mod._pipeline_config = None


class FakeProvider(AnalysisProvider):
    """Scripted provider: each ``analyze`` call pops the next outcome.

    Outcomes are JSON strings (returned as the model's text) or exceptions
    (raised). The last outcome repeats once the script runs out.
    """

    def __init__(self, name: str, outcomes: list, *, model: str = "fake-model", tokens: int = 100) -> None:
        super().__init__(api_key="fake-key", model=model, cost_per_token=0.00001)
        self.name = name
        self.outcomes = list(outcomes)
        self.tokens = tokens
        self.calls: list[dict] = []
        self.closed = False

    async def analyze(self, prompt, *, system_instruction, max_tokens, temperature):
        self.calls.append({
            "prompt": prompt,
            "system_instruction": system_instruction,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return ProviderResponse(
            raw_json=outcome,
            tokens_used=self.tokens,
            cost=self.cost_for(self.tokens),
            provider=self.name,
            model=self.model,
        )

    async def aclose(self) -> None:
        self.closed = True


def make_model_payload(**overrides: Any) -> dict:
    """A well-formed model response; groups can be replaced via keyword."""
    payload = {
        "sentiment": {"overall": "positive", "score": 0.6, "confidence": 0.9},
        "quality": {"overall": 82, "agentPerformance": 78, "flow": "good"},
        "insights": {
            "keyTopics": ["precio", "implementación"],
            "painPoints": ["Procesos manuales lentos"],
            "buyingSignals": ["Podemos agendar una reunión la próxima semana"],
            "objections": ["Es muy caro para nuestro presupuesto"],
            "competitors": ["CompetitorX"],
            "actionItems": ["Enviar propuesta"],
            "followUpSuggestions": ["Llamar el lunes"],
            "decisionMakers": ["Director de operaciones"],
            "timeframe": ["este trimestre"],
            "priceDiscussion": "Le pareció caro el plan anual",
        },
        "engagement": {"interestLevel": 7, "score": 74, "responseQuality": "good"},
        "predictions": {
            "conversionLikelihood": 65,
            "recommendedAction": "send_proposal",
            "urgency": "high",
            "followUpTimeline": "3_days",
            "suggestedApproach": "Enfocarse en el ROI",
        },
        "metrics": {"interruptions": 2},
        "confidence": 0.85,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def model_payload() -> dict:
    return make_model_payload()


@pytest.fixture()
def model_json(model_payload) -> str:
    return json.dumps(model_payload, ensure_ascii=False)


@pytest.fixture()
def sample_transcript() -> ConversationTranscript:
    """A short agent/lead call with one question per side."""
    return ConversationTranscript.from_messages([
        TranscriptMessage(role="agent", content="Hola, ¿tiene un minuto para hablar?", timestamp=0),
        TranscriptMessage(role="lead", content="Sí, claro, cuénteme", timestamp=4),
        TranscriptMessage(role="agent", content="Le presento nuestra plataforma de cobranza", timestamp=9),
        TranscriptMessage(role="lead", content="¿Cuánto cuesta el plan anual?", timestamp=20),
        TranscriptMessage(role="system", content="Call recording started", timestamp=0),
    ])


@pytest.fixture()
def empty_transcript() -> ConversationTranscript:
    return ConversationTranscript()


@pytest.fixture()
def fake_provider_factory():
    """Build FakeProvider instances: ``factory("openai", [json_or_exc, ...])``."""
    return FakeProvider


@pytest.fixture()
def transient_error():
    from call_intelligence_mcp.errors import ErrorCategory

    return ProviderError(ErrorCategory.RATE_LIMITED, "429 Too Many Requests", provider="fake", status_code=429)
