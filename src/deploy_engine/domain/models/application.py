"""Stateless application workload."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field, SecretStr

from deploy_engine.domain.events.event_details import TransmitterKind
from deploy_engine.domain.events.progress_events import ProgressScope
from deploy_engine.domain.models.base import ValueObject
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.kubernetes import ScalingKind
from deploy_engine.domain.models.service import (
    default_template_context,
    HelmDeployable,
    Lifecycle,
    Listenable,
    Service,
    ServiceKind,
    ServiceType,
)

if TYPE_CHECKING:
    from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator


class Port(ValueObject):
    port: int
    public_port: int | None = None
    protocol: str = "HTTP"
    is_default: bool = False

    @property
    def publicly_accessible(self) -> bool:
        return self.public_port is not None


class EnvironmentVariable(ValueObject):
    key: str
    value: SecretStr


class Storage(ValueObject):
    id: str
    name: str
    storage_type: str = "ssd"
    size_in_gib: int
    mount_point: str


class Application(Service, Lifecycle, HelmDeployable, Listenable):
    """Container image run as a Deployment, or a StatefulSet when it has storage."""

    workspace_subdirectory: ClassVar[str] = "applications"
    transmitter_kind: ClassVar[TransmitterKind] = TransmitterKind.APPLICATION

    image: str
    ports: list[Port] = Field(default_factory=list)
    environment_variables: list[EnvironmentVariable] = Field(default_factory=list)
    storages: list[Storage] = Field(default_factory=list)

    @property
    def service_type(self) -> ServiceType:
        return ServiceType(kind=ServiceKind.APPLICATION)

    @property
    def selector(self) -> str:
        return f"appId={self.id}"

    @property
    def scaling_kind(self) -> ScalingKind:
        return ScalingKind.STATEFULSET if self.storages else ScalingKind.DEPLOYMENT

    @property
    def progress_scope(self) -> ProgressScope:
        return ProgressScope.application(str(self.long_id))

    @property
    def helm_release_name(self) -> str:
        return f"application-{self.id}"

    @property
    def helm_chart_dir(self) -> str:
        chart = "q-container-stateful" if self.storages else "q-container"
        return f"{self.context.lib_root_dir}/common/charts/{chart}"

    def template_context(self, target: DeploymentTarget) -> dict[str, Any]:
        context = default_template_context(self, target)
        context.update(
            {
                "image": self.image,
                "cpu_burst": self.cpu_burst,
                "ports": [p.model_dump() for p in self.ports],
                "is_public": any(p.publicly_accessible for p in self.ports),
                "environment_variables": [
                    {"key": e.key, "value": e.value.get_secret_value()}
                    for e in self.environment_variables
                ],
                "storages": [s.model_dump() for s in self.storages],
                "resource_expiration_in_seconds": self.context.resource_expiration_in_seconds,
            }
        )
        return context

    async def on_create(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.deploy_stateless_service(target, self)

    async def on_create_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None

    async def on_pause(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.scale_down_application(target, self, 0, self.scaling_kind)

    async def on_pause_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None

    async def on_delete(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.delete_stateless_service(target, self)

    async def on_delete_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None
