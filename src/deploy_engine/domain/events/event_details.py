"""Correlation details attached to every engine event and error."""

from __future__ import annotations

from enum import Enum

from deploy_engine.domain.models.base import ValueObject
from deploy_engine.domain.models.cloud_provider import CloudProviderKind


class EnvironmentStep(str, Enum):
    """Steps of an environment deployment cycle."""

    LOAD_CONFIGURATION = "load_configuration"
    BUILD = "build"
    DEPLOY = "deploy"
    PAUSE = "pause"
    RESUME = "resume"
    DELETE = "delete"
    SCALE_DOWN = "scale_down"
    RETRIEVE_CLUSTER_CONFIG = "retrieve_cluster_config"
    VALIDATE_SYSTEM_REQUIREMENTS = "validate_system_requirements"


class InfrastructureStep(str, Enum):
    """Steps of a cluster-level operation; only used for correlation."""

    LOAD_CONFIGURATION = "load_configuration"
    CREATE = "create"
    PAUSE = "pause"
    UPGRADE = "upgrade"
    DELETE = "delete"


class Stage(ValueObject):
    """Pipeline stage an event belongs to."""

    phase: str
    step: str

    @classmethod
    def environment(cls, step: EnvironmentStep) -> Stage:
        return cls(phase="environment", step=step.value)

    @classmethod
    def infrastructure(cls, step: InfrastructureStep) -> Stage:
        return cls(phase="infrastructure", step=step.value)

    def __str__(self) -> str:
        return f"{self.phase}:{self.step}"


class TransmitterKind(str, Enum):
    APPLICATION = "application"
    DATABASE = "database"
    ROUTER = "router"
    ENVIRONMENT = "environment"
    KUBERNETES = "kubernetes"


class Transmitter(ValueObject):
    """Entity emitting an event."""

    kind: TransmitterKind
    id: str
    name: str = ""


class EventDetails(ValueObject):
    """Binds an event to organization, cluster, execution and stage."""

    provider_kind: CloudProviderKind | None = None
    organization_id: str
    cluster_id: str
    execution_id: str
    region: str | None = None
    stage: Stage
    transmitter: Transmitter

    def with_stage(self, stage: Stage) -> EventDetails:
        """Return a copy of these details bound to another stage."""
        return self.model_copy(update={"stage": stage})
