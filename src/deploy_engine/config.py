"""Application configuration using pydantic-settings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class EngineSettings(BaseSettings):
    """Deployment engine configuration."""

    workspace_root_dir: str = Field(default="/tmp/deploy-engine", alias="ENGINE_WORKSPACE_ROOT_DIR")  # noqa: S108
    lib_root_dir: str = Field(default="./lib", alias="ENGINE_LIB_ROOT_DIR")
    helm_binary: str = Field(default="helm", alias="ENGINE_HELM_BINARY")
    terraform_binary: str = Field(default="terraform", alias="ENGINE_TERRAFORM_BINARY")
    kubectl_binary: str = Field(default="kubectl", alias="ENGINE_KUBECTL_BINARY")
    helm_timeout_in_seconds: int = Field(default=600, alias="ENGINE_HELM_TIMEOUT_IN_SECONDS")
    readiness_timeout_in_seconds: float = Field(default=600, alias="ENGINE_READINESS_TIMEOUT_IN_SECONDS")
    readiness_min_backoff_in_seconds: float = Field(default=1.0, alias="ENGINE_READINESS_MIN_BACKOFF_IN_SECONDS")
    readiness_max_backoff_in_seconds: float = Field(default=30.0, alias="ENGINE_READINESS_MAX_BACKOFF_IN_SECONDS")
    max_concurrent_services: int = Field(default=4, alias="ENGINE_MAX_CONCURRENT_SERVICES")

    model_config = {"env_prefix": "ENGINE_", "extra": "ignore", "populate_by_name": True}


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    otlp_endpoint: str | None = Field(default=None, alias="OTLP_ENDPOINT")
    service_name: str = Field(default="deploy-engine", alias="SERVICE_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    tracing_enabled: bool = Field(default=False, alias="TRACING_ENABLED")

    model_config = {"env_prefix": "OBS_", "extra": "ignore", "populate_by_name": True}


class Settings(BaseSettings):
    """Main application settings."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    host: str = Field(default="0.0.0.0", alias="HOST")  # noqa: S104
    port: int = Field(default=8000, alias="PORT")
    workers: int = Field(default=1, alias="WORKERS")
    graceful_shutdown_timeout: int = Field(default=30, alias="GRACEFUL_SHUTDOWN_TIMEOUT")

    engine: EngineSettings = Field(default_factory=EngineSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
