"""API schemas for environment deployment endpoints."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator, SecretStr

from deploy_engine.api.schemas.error_schemas import EngineErrorResponse
from deploy_engine.domain.models.application import Application, EnvironmentVariable, Port, Storage
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.database import Database, DatabaseOptions, InvalidDatabaseInstance
from deploy_engine.domain.models.database_types import DatabaseEngine, DatabaseMode, find_instance_type
from deploy_engine.domain.models.environment import (
    ClusterAdvancedSettings,
    Environment,
    ExecutionContext,
    KubernetesCluster,
)
from deploy_engine.domain.models.router import CustomDomain, Route, Router
from deploy_engine.domain.models.service import Action
from deploy_engine.domain.ports.services import CloudProvider
from deploy_engine.infrastructure.cloud.providers import (
    AwsCloudProvider,
    GcpCloudProvider,
    ScalewayCloudProvider,
)
from deploy_engine.workers.environment_worker import ServiceOutcome


class ExecutionContextRequest(BaseModel):
    organization_id: str
    cluster_id: str
    execution_id: str
    resource_expiration_in_seconds: int | None = None
    is_dry_run_deploy: bool = False

    def to_domain(self, workspace_root_dir: str, lib_root_dir: str) -> ExecutionContext:
        return ExecutionContext(
            organization_id=self.organization_id,
            cluster_id=self.cluster_id,
            execution_id=self.execution_id,
            workspace_root_dir=workspace_root_dir,
            lib_root_dir=lib_root_dir,
            resource_expiration_in_seconds=self.resource_expiration_in_seconds,
            is_dry_run_deploy=self.is_dry_run_deploy,
        )


class ClusterAdvancedSettingsRequest(BaseModel):
    database_postgresql_deny_public_access: bool = False
    database_mysql_deny_public_access: bool = False
    database_mongodb_deny_public_access: bool = False
    database_redis_deny_public_access: bool = False
    resources_ttl_in_seconds: int | None = None


class KubernetesClusterRequest(BaseModel):
    id: str
    name: str
    region: str
    zone: str = ""
    kubeconfig_path: str
    advanced_settings: ClusterAdvancedSettingsRequest = Field(default_factory=ClusterAdvancedSettingsRequest)

    def to_domain(self) -> KubernetesCluster:
        return KubernetesCluster(
            id=self.id,
            name=self.name,
            region=self.region,
            zone=self.zone,
            kubeconfig_path=self.kubeconfig_path,
            advanced_settings=ClusterAdvancedSettings(**self.advanced_settings.model_dump()),
        )


class EnvironmentInfoRequest(BaseModel):
    id: str
    long_id: UUID
    namespace: str = Field(..., min_length=1, max_length=63)
    project_id: str
    project_long_id: UUID
    organization_id: str
    organization_long_id: UUID
    owner_id: str

    def to_domain(self) -> Environment:
        return Environment(**self.model_dump())


class CloudProviderRequest(BaseModel):
    """Credentials of the cloud account; which fields are required depends on ``kind``."""

    kind: CloudProviderKind
    region: str
    access_key_id: str | None = None
    secret_access_key: SecretStr | None = None
    project_id: str | None = None
    credentials_json: SecretStr | None = None

    @model_validator(mode="after")
    def _check_credentials(self) -> CloudProviderRequest:
        required = {
            CloudProviderKind.AWS: ("access_key_id", "secret_access_key"),
            CloudProviderKind.SCW: ("access_key_id", "secret_access_key", "project_id"),
            CloudProviderKind.GCP: ("project_id", "credentials_json"),
        }[self.kind]
        missing = [name for name in required if getattr(self, name) is None]
        if missing:
            raise ValueError(f"missing {', '.join(missing)} for {self.kind.display_name}")
        return self

    def to_domain(self) -> CloudProvider:
        # Presence of the fields is checked by the validator above.
        if self.kind is CloudProviderKind.AWS:
            return AwsCloudProvider(self.access_key_id or "", self.secret_access_key or SecretStr(""), self.region)
        if self.kind is CloudProviderKind.SCW:
            return ScalewayCloudProvider(
                self.access_key_id or "",
                self.secret_access_key or SecretStr(""),
                self.project_id or "",
                self.region,
            )
        return GcpCloudProvider(self.project_id or "", self.credentials_json or SecretStr(""), self.region)


class ServiceRequest(BaseModel):
    long_id: UUID
    name: str = Field(..., min_length=1)
    kube_name: str = Field(..., min_length=1, max_length=63)
    action: Action
    version: str
    private_port: int | None = None
    total_cpus: str = "500m"
    cpu_burst: str = "500m"
    total_ram_in_mib: int = Field(default=256, gt=0)
    min_instances: int = Field(default=1, ge=0)
    max_instances: int = Field(default=1, ge=1)
    publicly_accessible: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        # The name is a path segment of the service workspace.
        if value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError("name must not contain path separators or be a relative path segment")
        return value

    def _service_fields(self) -> dict[str, object]:
        return self.model_dump(include=set(ServiceRequest.model_fields))


class PortRequest(BaseModel):
    port: int = Field(..., gt=0, lt=65536)
    public_port: int | None = None
    protocol: str = "HTTP"
    is_default: bool = False


class EnvironmentVariableRequest(BaseModel):
    key: str
    value: SecretStr


class StorageRequest(BaseModel):
    id: str
    name: str
    storage_type: str = "ssd"
    size_in_gib: int = Field(..., gt=0)
    mount_point: str


class ApplicationRequest(ServiceRequest):
    image: str
    ports: list[PortRequest] = Field(default_factory=list)
    environment_variables: list[EnvironmentVariableRequest] = Field(default_factory=list)
    storages: list[StorageRequest] = Field(default_factory=list)

    def to_domain(self, context: ExecutionContext) -> Application:
        return Application(
            context=context,
            **self._service_fields(),
            image=self.image,
            ports=[Port(**p.model_dump()) for p in self.ports],
            environment_variables=[
                EnvironmentVariable(key=e.key, value=e.value) for e in self.environment_variables
            ],
            storages=[Storage(**s.model_dump()) for s in self.storages],
        )


class CustomDomainRequest(BaseModel):
    domain: str
    target_domain: str
    generate_certificate: bool = True


class RouteRequest(BaseModel):
    path: str
    service_long_id: UUID


class RouterRequest(ServiceRequest):
    version: str = "1"
    default_domain: str
    public_port: int = 443
    custom_domains: list[CustomDomainRequest] = Field(default_factory=list)
    routes: list[RouteRequest] = Field(default_factory=list)

    def to_domain(self, context: ExecutionContext) -> Router:
        return Router(
            context=context,
            **self._service_fields(),
            default_domain=self.default_domain,
            public_port=self.public_port,
            custom_domains=[CustomDomain(**d.model_dump()) for d in self.custom_domains],
            routes=[Route(**r.model_dump()) for r in self.routes],
        )


class DatabaseOptionsRequest(BaseModel):
    login: str
    password: SecretStr
    host: str
    port: int
    disk_size_in_gib: int = Field(..., gt=0)
    database_disk_type: str = "gp2"
    encrypt_disk: bool = False
    activate_high_availability: bool = False
    activate_backups: bool = False


class DatabaseRequest(ServiceRequest):
    mode: DatabaseMode
    engine: DatabaseEngine
    fqdn_id: str
    fqdn: str
    total_disk_size_in_gb: int = Field(..., gt=0)
    instance_type: str | None = None
    options: DatabaseOptionsRequest

    def to_domain(self, context: ExecutionContext, cloud_provider: CloudProviderKind) -> Database:
        instance_type = None
        if self.instance_type is not None:
            instance_type = find_instance_type(self.instance_type)
            if instance_type is None:
                raise InvalidDatabaseInstance(self.instance_type, cloud_provider)

        return Database(
            context=context,
            **self._service_fields(),
            cloud_provider=cloud_provider,
            mode=self.mode,
            engine=self.engine,
            fqdn_id=self.fqdn_id,
            fqdn=self.fqdn,
            total_disk_size_in_gb=self.total_disk_size_in_gb,
            instance_type=instance_type,
            options=DatabaseOptions(
                **self.options.model_dump(),
                mode=self.mode,
                publicly_accessible=self.publicly_accessible,
            ),
        )


class EnvironmentRequest(BaseModel):
    context: ExecutionContextRequest
    cluster: KubernetesClusterRequest
    environment: EnvironmentInfoRequest
    cloud_provider: CloudProviderRequest
    applications: list[ApplicationRequest] = Field(default_factory=list)
    routers: list[RouterRequest] = Field(default_factory=list)
    databases: list[DatabaseRequest] = Field(default_factory=list)


class ServiceOutcomeResponse(BaseModel):
    service_id: str
    service_long_id: str
    service_type: str
    action: Action
    success: bool
    skipped: bool = False
    duration_seconds: float = 0.0
    error: EngineErrorResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: ServiceOutcome) -> ServiceOutcomeResponse:
        return cls(
            service_id=outcome.service_id,
            service_long_id=outcome.service_long_id,
            service_type=outcome.service_type,
            action=outcome.action,
            success=outcome.success,
            skipped=outcome.skipped,
            duration_seconds=outcome.duration_seconds,
            error=EngineErrorResponse.from_engine_error(outcome.error) if outcome.error else None,
        )


class EnvironmentResponse(BaseModel):
    execution_id: str
    success: bool
    services: list[ServiceOutcomeResponse] = Field(default_factory=list)
