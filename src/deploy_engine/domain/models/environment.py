"""Execution context and deployment target models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import Field

from deploy_engine.domain.events.event_details import EventDetails, Stage, Transmitter
from deploy_engine.domain.models.base import ValueObject
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.database_types import DatabaseEngine

if TYPE_CHECKING:
    from deploy_engine.domain.ports.services import CloudProvider


class ExecutionContext(ValueObject):
    """Constants shared by every entity of one engine execution."""

    organization_id: str
    cluster_id: str
    execution_id: str
    workspace_root_dir: str
    lib_root_dir: str
    resource_expiration_in_seconds: int | None = None
    is_dry_run_deploy: bool = False

    def get_event_details(
        self,
        transmitter: Transmitter,
        stage: Stage,
        provider_kind: CloudProviderKind | None = None,
        region: str | None = None,
    ) -> EventDetails:
        return EventDetails(
            provider_kind=provider_kind,
            organization_id=self.organization_id,
            cluster_id=self.cluster_id,
            execution_id=self.execution_id,
            region=region,
            stage=stage,
            transmitter=transmitter,
        )


class ClusterAdvancedSettings(ValueObject):
    """Cluster-wide knobs affecting how services are exposed and expire."""

    database_postgresql_deny_public_access: bool = False
    database_mysql_deny_public_access: bool = False
    database_mongodb_deny_public_access: bool = False
    database_redis_deny_public_access: bool = False
    resources_ttl_in_seconds: int | None = None

    def denies_public_access(self, engine: DatabaseEngine) -> bool:
        return {
            DatabaseEngine.POSTGRESQL: self.database_postgresql_deny_public_access,
            DatabaseEngine.MYSQL: self.database_mysql_deny_public_access,
            DatabaseEngine.MONGODB: self.database_mongodb_deny_public_access,
            DatabaseEngine.REDIS: self.database_redis_deny_public_access,
        }[engine]


class KubernetesCluster(ValueObject):
    id: str
    name: str
    region: str
    zone: str = ""
    kubeconfig_path: str
    advanced_settings: ClusterAdvancedSettings = Field(default_factory=ClusterAdvancedSettings)


class Environment(ValueObject):
    """Namespace-scoped environment the services are deployed into."""

    id: str
    long_id: UUID
    namespace: str
    project_id: str
    project_long_id: UUID
    organization_id: str
    organization_long_id: UUID
    owner_id: str


class ToolEnvironment(ValueObject):
    """Credentials handed explicitly to every external tool invocation."""

    kubeconfig_path: str
    env_vars: list[tuple[str, str]] = Field(default_factory=list)

    def as_process_env(self) -> dict[str, str]:
        env = dict(self.env_vars)
        env["KUBECONFIG"] = self.kubeconfig_path
        return env


@dataclass(frozen=True)
class DeploymentTarget:
    """Everything a pipeline needs to reach the cluster, built per invocation."""

    kubernetes: KubernetesCluster
    environment: Environment
    cloud_provider: CloudProvider
    context: ExecutionContext

    def tool_environment(self) -> ToolEnvironment:
        return ToolEnvironment(
            kubeconfig_path=self.kubernetes.kubeconfig_path,
            env_vars=list(self.cloud_provider.credentials_environment_variables()),
        )
