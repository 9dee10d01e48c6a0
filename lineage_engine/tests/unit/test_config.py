"""Unit tests for lineage_engine.config."""

from __future__ import annotations

from pathlib import Path

import pytest
from lineage_engine.config import PlatformEnv, Settings, load_settings
from pydantic import ValidationError

# ---------------------------------------------------------------------------
# Settings - default values
# ---------------------------------------------------------------------------


class TestSettingsDefaults:
    def test_default_env(self):
        assert Settings().env == PlatformEnv.DEV

    def test_default_logging(self):
        settings = Settings()
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.structured_logging is False

    def test_default_config_path_none(self):
        assert Settings().config_path is None

    def test_default_query_limits(self):
        settings = Settings()
        assert settings.default_lineage_depth is None
        assert settings.hub_limit == 8
        assert settings.snapshot_retention == 10


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


class TestSettingsEnvOverrides:
    def test_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PIPEVIZ_ENV", "prod")
        assert Settings().env == PlatformEnv.PROD

    def test_debug(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PIPEVIZ_DEBUG", "true")
        assert Settings().debug is True

    def test_config_path(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PIPEVIZ_CONFIG_PATH", "/etc/pipeviz/pipelines.yaml")
        assert Settings().config_path == Path("/etc/pipeviz/pipelines.yaml")

    def test_hub_limit(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PIPEVIZ_HUB_LIMIT", "3")
        assert Settings().hub_limit == 3

    def test_log_level_normalized(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PIPEVIZ_LOG_LEVEL", " debug ")
        assert Settings().log_level == "DEBUG"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestSettingsValidation:
    def test_unknown_log_level(self):
        with pytest.raises(ValidationError, match="Unknown log level"):
            Settings(log_level="LOUD")

    def test_retention_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(snapshot_retention=0)

    def test_lineage_depth_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(default_lineage_depth=0)


class TestLoadSettings:
    def test_overrides(self):
        settings = load_settings(hub_limit=4, debug=True)
        assert settings.hub_limit == 4
        assert settings.debug is True

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PIPEVIZ_STRUCTURED_LOGGING", "1")
        assert load_settings().structured_logging is True
