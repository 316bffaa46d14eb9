"""Tests for configuration parsing and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

import call_intelligence_mcp.config as cfg_mod
from call_intelligence_mcp.config import AnalysisConfig


class TestFromEnv:
    def test_defaults(self):
        cfg = AnalysisConfig.from_env()
        assert cfg.provider_order == ["openai", "gemini", "anthropic"]
        assert cfg.language == "es"
        assert cfg.openai_model == "gpt-4o-mini"
        assert cfg.max_actions == 6
        assert cfg.dedup_mode == "append_high"
        assert cfg.include_competitor_analysis is True
        assert cfg.tracing_enabled is False

    def test_provider_keys_and_order(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        monkeypatch.setenv("GOOGLE_API_KEY", "g-fallback")
        monkeypatch.setenv("CALL_ANALYSIS_PROVIDERS", "Gemini, openai")
        cfg = AnalysisConfig.from_env()
        assert cfg.api_key_for("openai") == "sk-1"
        assert cfg.api_key_for("gemini") == "g-fallback"
        assert cfg.api_key_for("anthropic") == ""
        assert cfg.provider_order == ["gemini", "openai"]

    def test_gemini_key_preferred_over_google_key(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g-primary")
        monkeypatch.setenv("GOOGLE_API_KEY", "g-fallback")
        assert AnalysisConfig.from_env().gemini_api_key == "g-primary"

    def test_feature_toggles(self, monkeypatch):
        monkeypatch.setenv("CALL_ANALYSIS_EMOTIONS", "false")
        monkeypatch.setenv("CALL_ANALYSIS_TOPICS", "0")
        monkeypatch.setenv("CALL_ANALYSIS_COMPETITORS", "yes")
        cfg = AnalysisConfig.from_env()
        assert cfg.include_emotion_analysis is False
        assert cfg.include_topic_extraction is False
        assert cfg.include_competitor_analysis is True

    def test_timeline_window_from_env(self, monkeypatch):
        monkeypatch.setenv("CALL_ANALYSIS_TIMELINE_SEGMENT_SECONDS", "45")
        monkeypatch.setenv("CALL_ANALYSIS_TIMELINE_OVERLAP_SECONDS", "0")
        cfg = AnalysisConfig.from_env()
        assert (cfg.timeline_segment_seconds, cfg.timeline_overlap_seconds) == (45.0, 0.0)

    def test_blank_values_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("CALL_ANALYSIS_LANGUAGE", "")
        monkeypatch.setenv("CALL_ANALYSIS_TEMPERATURE", "  ")
        cfg = AnalysisConfig.from_env()
        assert cfg.language == "es"
        assert cfg.temperature == 0.3

    def test_tracing_enabled_by_tracking_uri(self, monkeypatch):
        monkeypatch.setenv("CALL_ANALYSIS_TRACING_ENABLED", "")
        monkeypatch.setenv("MLFLOW_TRACKING_URI", "http://127.0.0.1:5001")
        assert AnalysisConfig.from_env().tracing_enabled is True

    def test_tracing_force_disabled(self, monkeypatch):
        monkeypatch.setenv("MLFLOW_TRACKING_URI", "http://127.0.0.1:5001")
        monkeypatch.setenv("CALL_ANALYSIS_TRACING_ENABLED", "false")
        assert AnalysisConfig.from_env().tracing_enabled is False


class TestValidation:
    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError, match="Unknown provider"):
            AnalysisConfig(provider_order=["openai", "mistral"])

    def test_empty_provider_order_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisConfig(provider_order=[])

    def test_duplicate_providers_collapsed(self):
        assert AnalysisConfig(provider_order=["gemini", "GEMINI", "openai"]).provider_order == ["gemini", "openai"]

    @pytest.mark.parametrize("field,value", [
        ("language", "fr"),
        ("dedup_mode", "newest"),
        ("max_actions", 0),
        ("retry_max_attempts", 0),
        ("provider_timeout_seconds", 0),
        ("temperature", 2.5),
        ("timeline_segment_seconds", 0),
        ("timeline_overlap_seconds", 30),
        ("timeline_overlap_seconds", -1),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            AnalysisConfig(**{field: value})

    def test_timeline_window(self):
        cfg = AnalysisConfig(timeline_segment_seconds=60, timeline_overlap_seconds=10)
        assert (cfg.timeline_segment_seconds, cfg.timeline_overlap_seconds) == (60, 10)
        with pytest.raises(ValidationError):
            AnalysisConfig(timeline_segment_seconds=10, timeline_overlap_seconds=10)

    def test_language_normalized(self):
        assert AnalysisConfig(language=" EN ").language == "en"

    def test_model_for(self):
        cfg = AnalysisConfig(anthropic_model="claude-test")
        assert cfg.model_for("anthropic") == "claude-test"


class TestSingleton:
    def test_get_config_is_cached(self, clean_config):
        assert cfg_mod.get_config() is cfg_mod.get_config()

    def test_update_config_ignores_none(self, clean_config):
        cfg = cfg_mod.update_config(language="en", temperature=None)
        assert cfg.language == "en"
        assert cfg.temperature == 0.3
        assert cfg_mod.get_config() is cfg

    def test_update_config_validates(self, clean_config):
        with pytest.raises(ValidationError):
            cfg_mod.update_config(dedup_mode="bogus")
        assert cfg_mod.get_config().dedup_mode == "append_high"
