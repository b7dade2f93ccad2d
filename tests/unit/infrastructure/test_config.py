"""Unit tests for application configuration."""

from __future__ import annotations

import pytest

from deploy_engine.config import (
    EngineSettings,
    Environment,
    get_settings,
    ObservabilitySettings,
    Settings,
)


class TestEngineSettings:
    def test_defaults(self) -> None:
        settings = EngineSettings()
        assert settings.helm_binary == "helm"
        assert settings.terraform_binary == "terraform"
        assert settings.kubectl_binary == "kubectl"
        assert settings.helm_timeout_in_seconds == 600
        assert settings.max_concurrent_services == 4

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENGINE_WORKSPACE_ROOT_DIR", "/var/lib/deploy-engine")
        monkeypatch.setenv("ENGINE_READINESS_TIMEOUT_IN_SECONDS", "120")
        settings = EngineSettings()
        assert settings.workspace_root_dir == "/var/lib/deploy-engine"
        assert settings.readiness_timeout_in_seconds == 120

    def test_by_field_name(self) -> None:
        settings = EngineSettings(lib_root_dir="/opt/lib")
        assert settings.lib_root_dir == "/opt/lib"


class TestObservabilitySettings:
    def test_defaults(self) -> None:
        settings = ObservabilitySettings()
        assert settings.log_level == "INFO"
        assert settings.metrics_enabled is True
        assert settings.tracing_enabled is False
        assert settings.service_name == "deploy-engine"


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings()
        assert settings.environment == Environment.DEVELOPMENT
        assert settings.debug is False
        assert settings.api_prefix == "/api/v1"

    def test_nested_settings(self) -> None:
        settings = Settings()
        assert isinstance(settings.engine, EngineSettings)
        assert isinstance(settings.observability, ObservabilitySettings)

    def test_cached(self) -> None:
        assert get_settings() is get_settings()


class TestEnvironment:
    def test_values(self) -> None:
        assert Environment.DEVELOPMENT == "development"
        assert Environment.PRODUCTION == "production"
        assert Environment.TESTING == "testing"
        assert Environment.STAGING == "staging"
