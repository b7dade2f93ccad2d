"""Service model: identity, lifecycle action and the capability interfaces.

Concrete entities (:class:`~deploy_engine.domain.models.application.Application`,
:class:`~deploy_engine.domain.models.router.Router`,
:class:`~deploy_engine.domain.models.database.Database`) derive from
:class:`Service` and compose the narrow interfaces they support. Callers
dispatch on those interfaces with ``isinstance`` rather than on the concrete
type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar
from uuid import UUID

from deploy_engine.domain.errors import CommandError
from deploy_engine.domain.events.event_details import EventDetails, Stage, Transmitter, TransmitterKind
from deploy_engine.domain.events.progress_events import ProgressScope
from deploy_engine.domain.models.base import DomainEntity, ValueObject, to_short_id
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.database_types import DatabaseEngine
from deploy_engine.domain.models.environment import DeploymentTarget, ExecutionContext

if TYPE_CHECKING:
    from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator


class Action(str, Enum):
    """What the current deployment cycle must do with a service."""

    CREATE = "create"
    PAUSE = "pause"
    DELETE = "delete"
    NOTHING = "nothing"


class ServiceKind(str, Enum):
    APPLICATION = "application"
    DATABASE = "database"
    ROUTER = "router"


class ServiceType(ValueObject):
    kind: ServiceKind
    engine: DatabaseEngine | None = None

    def __str__(self) -> str:
        if self.engine is not None:
            return f"Database({self.engine.display_name})"
        return self.kind.value.capitalize()


class Service(DomainEntity, ABC):
    """Identity and sizing shared by every deployable service."""

    workspace_subdirectory: ClassVar[str]
    transmitter_kind: ClassVar[TransmitterKind]

    context: ExecutionContext
    long_id: UUID
    name: str
    kube_name: str
    action: Action
    version: str
    private_port: int | None = None
    total_cpus: str = "500m"
    cpu_burst: str = "500m"
    total_ram_in_mib: int = 256
    min_instances: int = 1
    max_instances: int = 1
    publicly_accessible: bool = False

    @property
    def id(self) -> str:
        return to_short_id(self.long_id)

    @property
    @abstractmethod
    def service_type(self) -> ServiceType: ...

    @property
    @abstractmethod
    def selector(self) -> str:
        """Label selector addressing the pods of this service."""

    @property
    def provider_kind(self) -> CloudProviderKind | None:
        return None

    def sanitized_name(self) -> str:
        return self.kube_name

    def name_with_id(self) -> str:
        return f"{self.name} ({self.id})"

    def fqdn(self, target: DeploymentTarget, fallback_fqdn: str, is_managed: bool) -> str:
        if self.publicly_accessible:
            return fallback_fqdn
        namespace = target.environment.namespace
        if is_managed:
            return f"{self.id}-dns.{namespace}.svc.cluster.local"
        return f"{self.sanitized_name()}.{namespace}.svc.cluster.local"

    def workspace_directory(self) -> str:
        """Per-execution scratch directory, created on first use.

        Raises CommandError when the directory would fall outside the
        workspace root or cannot be created.
        """
        root = Path(self.context.workspace_root_dir).resolve()
        path = (root / self.context.execution_id / self.workspace_subdirectory / self.name).resolve()
        if not path.is_relative_to(root):
            raise CommandError(
                f"Workspace directory of `{self.name}` is outside the workspace root.",
                f"{path} is not under {root}",
            )
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CommandError(f"Cannot create workspace directory for `{self.name}`.", str(e)) from e
        return str(path)

    def get_event_details(self, stage: Stage) -> EventDetails:
        return self.context.get_event_details(
            Transmitter(kind=self.transmitter_kind, id=str(self.long_id), name=self.name),
            stage,
            provider_kind=self.provider_kind,
        )


class Lifecycle(ABC):
    """Hooks run by the action dispatcher, one per non-trivial action."""

    @abstractmethod
    async def on_create(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None: ...

    @abstractmethod
    async def on_create_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None: ...

    @abstractmethod
    async def on_pause(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None: ...

    @abstractmethod
    async def on_pause_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None: ...

    @abstractmethod
    async def on_delete(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None: ...

    @abstractmethod
    async def on_delete_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None: ...


class HelmDeployable(ABC):
    """Service shipped as a Helm release."""

    @property
    @abstractmethod
    def helm_release_name(self) -> str: ...

    @property
    @abstractmethod
    def helm_chart_dir(self) -> str: ...

    @abstractmethod
    def template_context(self, target: DeploymentTarget) -> dict[str, Any]:
        """Variables used to render the chart directory."""


class TerraformDeployable(ABC):
    """Service provisioned through Terraform modules."""

    @property
    @abstractmethod
    def terraform_common_resource_dir_path(self) -> str: ...

    @property
    @abstractmethod
    def terraform_resource_dir_path(self) -> str: ...

    @property
    @abstractmethod
    def helm_chart_external_name_service_dir(self) -> str: ...

    @abstractmethod
    def template_context_for_managed(self, target: DeploymentTarget) -> dict[str, Any]: ...


class Listenable(ABC):
    """Service whose progress is reported to listeners."""

    @property
    @abstractmethod
    def progress_scope(self) -> ProgressScope: ...


def default_template_context(service: Service, target: DeploymentTarget) -> dict[str, Any]:
    """Template variables every chart receives."""
    kubernetes = target.kubernetes
    environment = target.environment
    context: dict[str, Any] = {
        "id": service.id,
        "long_id": str(service.long_id),
        "owner_id": environment.owner_id,
        "project_id": environment.project_id,
        "project_long_id": str(environment.project_long_id),
        "organization_id": environment.organization_id,
        "organization_long_id": str(environment.organization_long_id),
        "environment_id": environment.id,
        "environment_long_id": str(environment.long_id),
        "region": kubernetes.region,
        "zone": kubernetes.zone,
        "name": service.name,
        "sanitized_name": service.sanitized_name(),
        "namespace": environment.namespace,
        "cluster_name": kubernetes.name,
        "total_cpus": service.total_cpus,
        "total_ram_in_mib": service.total_ram_in_mib,
        "min_instances": service.min_instances,
        "max_instances": service.max_instances,
        "is_private_port": service.private_port is not None,
        "version": service.version,
    }
    if service.private_port is not None:
        context["private_port"] = service.private_port
    return context
