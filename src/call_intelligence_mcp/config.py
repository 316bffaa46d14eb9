"""Analysis configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, ValidationInfo, field_validator

VALID_PROVIDERS = ("openai", "gemini", "anthropic")
VALID_LANGUAGES = {"es", "en"}
VALID_DEDUP_MODES = {"append_high", "replace"}

DEFAULT_PROVIDER_ORDER = ["openai", "gemini", "anthropic"]


def _env(name: str, default: str = "") -> str:
    """Read an env var; unset or blank returns *default*."""
    return os.getenv(name, "").strip() or default


def _env_flag(name: str, default: bool = True) -> bool:
    """Read a boolean env var; unset or blank returns *default*."""
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _parse_provider_order(raw: str) -> list[str]:
    """Split ``openai, gemini`` into ``["openai", "gemini"]``; blank → default."""
    names = [p.strip().lower() for p in raw.split(",") if p.strip()]
    return names or list(DEFAULT_PROVIDER_ORDER)


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Tracing is on when a tracking URI is set, unless explicitly disabled."""
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class AnalysisConfig(BaseModel):
    """Runtime configuration for the analysis pipeline and action engine."""

    openai_api_key: str = Field(default="")
    gemini_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4o-mini")
    gemini_model: str = Field(default="gemini-2.5-flash")
    anthropic_model: str = Field(default="claude-3-5-haiku-latest")
    provider_order: list[str] = Field(default_factory=lambda: list(DEFAULT_PROVIDER_ORDER))
    language: str = Field(default="es")
    include_emotion_analysis: bool = Field(default=True)
    include_topic_extraction: bool = Field(default=True)
    include_buying_signals: bool = Field(default=True)
    include_competitor_analysis: bool = Field(default=True)
    temperature: float = Field(default=0.3)
    provider_timeout_seconds: float = Field(default=90.0)
    retry_max_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=60.0)
    cost_per_token: float = Field(default=0.000015)
    max_actions: int = Field(default=6)
    dedup_mode: str = Field(default="append_high")
    timeline_segment_seconds: float = Field(default=30.0)
    timeline_overlap_seconds: float = Field(default=5.0)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="call-intelligence-mcp")

    @field_validator("provider_order")
    @classmethod
    def validate_provider_order(cls, value: list[str]) -> list[str]:
        names = [v.strip().lower() for v in value]
        unknown = [n for n in names if n not in VALID_PROVIDERS]
        if unknown:
            allowed = ", ".join(VALID_PROVIDERS)
            raise ValueError(f"Unknown provider(s) {unknown}. Allowed: {allowed}")
        if not names:
            raise ValueError("provider_order must name at least one provider")
        # Keep first occurrence only
        return list(dict.fromkeys(names))

    @field_validator("language")
    @classmethod
    def validate_language(cls, value: str) -> str:
        lang = value.strip().lower()
        if lang not in VALID_LANGUAGES:
            allowed = ", ".join(sorted(VALID_LANGUAGES))
            raise ValueError(f"Invalid language '{value}'. Allowed: {allowed}")
        return lang

    @field_validator("dedup_mode")
    @classmethod
    def validate_dedup_mode(cls, value: str) -> str:
        mode = value.strip().lower()
        if mode not in VALID_DEDUP_MODES:
            allowed = ", ".join(sorted(VALID_DEDUP_MODES))
            raise ValueError(f"Invalid dedup mode '{value}'. Allowed: {allowed}")
        return mode

    @field_validator("retry_max_attempts", "max_actions")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("retry_base_delay", "retry_max_delay", "provider_timeout_seconds", "timeline_segment_seconds")
    @classmethod
    def validate_positive_floats(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Delays and timeouts must be > 0")
        return value

    @field_validator("timeline_overlap_seconds")
    @classmethod
    def validate_timeline_overlap(cls, value: float, info: ValidationInfo) -> float:
        segment = info.data.get("timeline_segment_seconds")
        if value < 0 or (segment is not None and value >= segment):
            raise ValueError("timeline_overlap_seconds must be >= 0 and shorter than a segment")
        return value

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, value: float) -> float:
        if not 0.0 <= value <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        return value

    def api_key_for(self, provider: str) -> str:
        """Return the API key configured for *provider* (empty when unset)."""
        return getattr(self, f"{provider}_api_key", "")

    def model_for(self, provider: str) -> str:
        """Return the model ID configured for *provider*."""
        return getattr(self, f"{provider}_model")

    @classmethod
    def from_env(cls) -> AnalysisConfig:
        """Build config from environment variables."""
        return cls(
            openai_api_key=_env("OPENAI_API_KEY"),
            gemini_api_key=_env("GEMINI_API_KEY") or _env("GOOGLE_API_KEY"),
            anthropic_api_key=_env("ANTHROPIC_API_KEY"),
            openai_model=_env("OPENAI_MODEL", "gpt-4o-mini"),
            gemini_model=_env("GEMINI_MODEL", "gemini-2.5-flash"),
            anthropic_model=_env("ANTHROPIC_MODEL", "claude-3-5-haiku-latest"),
            provider_order=_parse_provider_order(_env("CALL_ANALYSIS_PROVIDERS")),
            language=_env("CALL_ANALYSIS_LANGUAGE", "es"),
            include_emotion_analysis=_env_flag("CALL_ANALYSIS_EMOTIONS"),
            include_topic_extraction=_env_flag("CALL_ANALYSIS_TOPICS"),
            include_buying_signals=_env_flag("CALL_ANALYSIS_BUYING_SIGNALS"),
            include_competitor_analysis=_env_flag("CALL_ANALYSIS_COMPETITORS"),
            temperature=float(_env("CALL_ANALYSIS_TEMPERATURE", "0.3")),
            provider_timeout_seconds=float(_env("CALL_ANALYSIS_PROVIDER_TIMEOUT", "90")),
            retry_max_attempts=int(_env("CALL_ANALYSIS_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(_env("CALL_ANALYSIS_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(_env("CALL_ANALYSIS_RETRY_MAX_DELAY", "60.0")),
            cost_per_token=float(_env("CALL_ANALYSIS_COST_PER_TOKEN", "0.000015")),
            max_actions=int(_env("CALL_ANALYSIS_MAX_ACTIONS", "6")),
            dedup_mode=_env("CALL_ANALYSIS_DEDUP_MODE", "append_high"),
            timeline_segment_seconds=float(_env("CALL_ANALYSIS_TIMELINE_SEGMENT_SECONDS", "30")),
            timeline_overlap_seconds=float(_env("CALL_ANALYSIS_TIMELINE_OVERLAP_SECONDS", "5")),
            tracing_enabled=_resolve_tracing_enabled(
                _env("CALL_ANALYSIS_TRACING_ENABLED"),
                _env("MLFLOW_TRACKING_URI"),
            ),
            mlflow_tracking_uri=_env("MLFLOW_TRACKING_URI"),
            mlflow_experiment_name=_env("MLFLOW_EXPERIMENT_NAME", "call-intelligence-mcp"),
        )


# Server-level config, created on first access. The pipeline itself never
# reads this; it receives an AnalysisConfig through its constructor.
_config: AnalysisConfig | None = None


def get_config() -> AnalysisConfig:
    """Return the server config, creating it on first access.

    Loads the optional ``.env`` file (``$CALL_ANALYSIS_ENV_FILE`` or
    ``~/.config/call-intelligence-mcp/.env``) before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = AnalysisConfig.from_env()
    return _config


def update_config(**overrides: object) -> AnalysisConfig:
    """Patch the server config (used by ``infra_configure`` tool)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = AnalysisConfig(**data)
    return _config
