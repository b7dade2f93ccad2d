"""Database service, containerized or managed by the cloud provider.

A single runtime entity covers every ``cloud provider x mode x engine``
combination; the behaviour that varies per combination is looked up in
:data:`~deploy_engine.domain.models.database_types.DATABASE_TYPES`.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ClassVar

from pydantic import Field, PrivateAttr, SecretStr

from deploy_engine.domain.errors import CommandError, EngineError
from deploy_engine.domain.events.event_details import EnvironmentStep, Stage, TransmitterKind
from deploy_engine.domain.events.progress_events import ProgressScope
from deploy_engine.domain.models.base import ValueObject, utc_now
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.database_types import (
    DatabaseEngine,
    DatabaseInstanceType,
    DatabaseMode,
    DatabaseTypeDescriptor,
    get_database_type,
    MANAGED_ENGINE_SUPPORT,
)
from deploy_engine.domain.models.database_utils import (
    is_allowed_containered_mongodb_version,
    is_allowed_containered_mysql_version,
    is_allowed_containered_postgres_version,
    is_allowed_containered_redis_version,
)
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.service import (
    default_template_context,
    HelmDeployable,
    Lifecycle,
    Listenable,
    Service,
    ServiceKind,
    ServiceType,
    TerraformDeployable,
)
from deploy_engine.domain.models.versions import VersionsNumber

if TYPE_CHECKING:
    from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator


CONTAINER_IMAGE_REGISTRY = "docker.io"

ALLOWED_VERSIONS: dict[DatabaseEngine, Callable[[VersionsNumber], VersionsNumber]] = {
    DatabaseEngine.POSTGRESQL: is_allowed_containered_postgres_version,
    DatabaseEngine.MYSQL: is_allowed_containered_mysql_version,
    DatabaseEngine.MONGODB: is_allowed_containered_mongodb_version,
    DatabaseEngine.REDIS: is_allowed_containered_redis_version,
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DatabaseError(Exception):
    """Database definition rejected before anything is deployed."""

    @classmethod
    def unsupported_managed_mode(
        cls, engine: DatabaseEngine, cloud_provider: CloudProviderKind
    ) -> UnsupportedManagedMode:
        return UnsupportedManagedMode(engine, cloud_provider)


class InvalidConfig(DatabaseError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Database invalid configuration: {message}")
        self.message = message


class UnsupportedManagedMode(DatabaseError):
    def __init__(self, engine: DatabaseEngine, cloud_provider: CloudProviderKind) -> None:
        super().__init__(
            f"Managed database for {engine.display_name} is not supported (yet) "
            f"by provider {cloud_provider.display_name}"
        )
        self.engine = engine
        self.cloud_provider = cloud_provider


class DatabaseNotFound(DatabaseError):
    def __init__(self, engine: DatabaseEngine, database_id: str) -> None:
        super().__init__(f"Database not found error for `{engine.display_name}/{database_id}`")
        self.engine = engine
        self.database_id = database_id


class UnknownDatabaseVersion(DatabaseError):
    def __init__(self, engine: DatabaseEngine, version: str) -> None:
        super().__init__(f"Version `{version}` for database for {engine.display_name} is unknown")
        self.engine = engine
        self.version = version


class UnsupportedDatabaseVersion(DatabaseError):
    def __init__(self, engine: DatabaseEngine, version: str) -> None:
        super().__init__(f"Version `{version}` for database for {engine.display_name} is not supported")
        self.engine = engine
        self.version = version


class InvalidDatabaseInstance(DatabaseError):
    def __init__(self, requested_instance_type: str, cloud_provider: CloudProviderKind) -> None:
        super().__init__(
            f"Database instance type `{requested_instance_type}` is invalid "
            f"for cloud provider `{cloud_provider.display_name}`."
        )
        self.requested_instance_type = requested_instance_type
        self.cloud_provider = cloud_provider


class DatabaseInstanceTypeMismatchCloudProvider(DatabaseError):
    def __init__(self, instance_type: str, cloud_provider: CloudProviderKind) -> None:
        super().__init__(
            f"Database instance type `{instance_type}` doesn't belong to "
            f"the database cloud provider `{cloud_provider.display_name}`"
        )
        self.instance_type = instance_type
        self.cloud_provider = cloud_provider


class DatabaseInstanceTypeMismatchDatabaseType(DatabaseError):
    def __init__(self, instance_type: str, engine: DatabaseEngine) -> None:
        super().__init__(
            f"Database instance type `{instance_type}` is not compatible "
            f"with database type `{engine.display_name}`"
        )
        self.instance_type = instance_type
        self.engine = engine


class UnknownDatabaseError(DatabaseError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Unknown Database error: {message}")


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class DatabaseOptions(ValueObject):
    login: str
    password: SecretStr
    host: str
    port: int
    mode: DatabaseMode
    disk_size_in_gib: int
    database_disk_type: str = "gp2"
    encrypt_disk: bool = False
    activate_high_availability: bool = False
    activate_backups: bool = False
    publicly_accessible: bool = False


class Database(Service, Lifecycle, HelmDeployable, TerraformDeployable, Listenable):
    """Database service; ``mode`` selects the Helm or the Terraform path."""

    workspace_subdirectory: ClassVar[str] = "databases"
    transmitter_kind: ClassVar[TransmitterKind] = TransmitterKind.DATABASE

    cloud_provider: CloudProviderKind
    mode: DatabaseMode
    engine: DatabaseEngine
    created_at: datetime = Field(default_factory=utc_now)
    fqdn_id: str
    fqdn_value: str = Field(alias="fqdn")
    total_disk_size_in_gb: int
    instance_type: DatabaseInstanceType | None = None
    options: DatabaseOptions

    _version_number: VersionsNumber = PrivateAttr()
    _workspace_directory: str = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        # Checks run in this order and before any remote call.
        if self.mode.is_managed and self.engine not in MANAGED_ENGINE_SUPPORT[self.cloud_provider]:
            raise DatabaseError.unsupported_managed_mode(self.engine, self.cloud_provider)

        if self.instance_type is not None:
            if self.instance_type.cloud_provider != self.cloud_provider:
                raise DatabaseInstanceTypeMismatchCloudProvider(
                    self.instance_type.to_cloud_provider_format(), self.cloud_provider
                )
            if not self.instance_type.is_instance_compatible_with(self.engine):
                raise DatabaseInstanceTypeMismatchDatabaseType(
                    self.instance_type.to_cloud_provider_format(), self.engine
                )

        try:
            self._version_number = VersionsNumber.parse(self.version)
        except CommandError as e:
            raise UnknownDatabaseVersion(self.engine, self.version) from e

        try:
            self._workspace_directory = super().workspace_directory()
        except CommandError as e:
            raise InvalidConfig(f"Can't create workspace directory: {e.message_safe}") from e

        descriptor = self.descriptor
        self.total_cpus = descriptor.cpu_validate(self.total_cpus)
        self.cpu_burst = descriptor.cpu_burst_value(self.total_cpus)
        self.total_ram_in_mib = descriptor.memory_validate(self.total_ram_in_mib)

    # -- identity --------------------------------------------------------

    @property
    def descriptor(self) -> DatabaseTypeDescriptor:
        return get_database_type(self.mode, self.engine)

    @property
    def service_type(self) -> ServiceType:
        return ServiceType(kind=ServiceKind.DATABASE, engine=self.engine)

    @property
    def selector(self) -> str:
        return f"databaseId={self.id}"

    @property
    def provider_kind(self) -> CloudProviderKind:
        return self.cloud_provider

    @property
    def progress_scope(self) -> ProgressScope:
        return ProgressScope.database(str(self.long_id))

    @property
    def version_number(self) -> VersionsNumber:
        return self._version_number

    def workspace_directory(self) -> str:
        return self._workspace_directory

    def is_managed_service(self) -> bool:
        return self.mode.is_managed

    def db_type(self) -> DatabaseEngine:
        return self.engine

    def db_instance_type(self) -> DatabaseInstanceType | None:
        return self.instance_type

    def cluster_denies_public_access(self, target: DeploymentTarget) -> bool:
        return target.kubernetes.advanced_settings.denies_public_access(self.engine)

    @property
    def tfstate_secret_name(self) -> str:
        return f"tfstate-default-{self.id}"

    # -- versions --------------------------------------------------------

    def matched_version(self) -> VersionsNumber:
        """Version actually deployed for the requested one.

        Managed databases are deployed with the requested version; the cloud
        provider validates it.
        """
        if self.is_managed_service():
            return self._version_number
        return ALLOWED_VERSIONS[self.engine](self._version_number)

    def _matched_version_or_raise(self) -> VersionsNumber:
        try:
            return self.matched_version()
        except CommandError as e:
            raise EngineError.new_unsupported_version_error(
                self.get_event_details(Stage.environment(EnvironmentStep.LOAD_CONFIGURATION)),
                self.engine.display_name,
                str(self._version_number),
            ) from e

    # -- container path --------------------------------------------------

    @property
    def helm_release_name(self) -> str:
        return f"{self.descriptor.lib_directory_name}-{self.id}"

    @property
    def helm_chart_dir(self) -> str:
        return f"{self.context.lib_root_dir}/common/services/{self.descriptor.lib_directory_name}"

    @property
    def helm_chart_values_dir(self) -> str:
        return (
            f"{self.context.lib_root_dir}/{self.cloud_provider.lib_directory_name}"
            f"/chart_values/{self.descriptor.lib_directory_name}"
        )

    def template_context(self, target: DeploymentTarget) -> dict[str, Any]:
        if self.is_managed_service():
            return self.template_context_for_managed(target)
        return self.template_context_for_container(target)

    def _database_context(self, target: DeploymentTarget) -> dict[str, Any]:
        kubernetes = target.kubernetes
        context = default_template_context(self, target)
        context.update(dict(target.cloud_provider.template_environment_variables()))
        context.update(
            {
                "kubeconfig_path": kubernetes.kubeconfig_path,
                "namespace": target.environment.namespace,
                "kubernetes_cluster_id": kubernetes.id,
                "kubernetes_cluster_name": kubernetes.name,
                "fqdn_id": self.fqdn_id,
                "fqdn": self.fqdn(target, self.fqdn_value, self.is_managed_service()),
                "service_name": self.fqdn_id,
                "database_db_name": self.name,
                "database_login": self.options.login,
                "database_password": self.options.password.get_secret_value(),
                "database_port": self.private_port,
                "database_disk_size_in_gib": self.options.disk_size_in_gib,
                "database_disk_type": self.options.database_disk_type,
                "database_ram_size_in_mib": self.total_ram_in_mib,
                "database_total_cpus": self.total_cpus,
                "database_total_cpus_burst": self.cpu_burst,
                "database_fqdn": self.options.host,
                "database_id": self.id,
                "resource_expiration_in_seconds": kubernetes.advanced_settings.resources_ttl_in_seconds,
            }
        )
        if self.instance_type is not None:
            context["database_instance_type"] = self.instance_type.to_cloud_provider_format()
        return context

    def template_context_for_container(self, target: DeploymentTarget) -> dict[str, Any]:
        context = self._database_context(target)
        repository = f"bitnami/{self.engine.value}"
        context.update(
            {
                "registry_name": CONTAINER_IMAGE_REGISTRY,
                "repository_name": repository,
                "repository_name_minideb": "bitnami/minideb",
                "repository_name_bitnami_shell": "bitnami/os-shell",
                "repository_with_registry": f"{CONTAINER_IMAGE_REGISTRY}/{repository}",
                "version": str(self._matched_version_or_raise()),
                "publicly_accessible": (
                    self.publicly_accessible and not self.cluster_denies_public_access(target)
                ),
            }
        )
        return context

    # -- managed path ----------------------------------------------------

    @property
    def helm_chart_external_name_service_dir(self) -> str:
        return f"{self.context.lib_root_dir}/common/charts/external-name-svc"

    @property
    def terraform_common_resource_dir_path(self) -> str:
        return f"{self.context.lib_root_dir}/{self.cloud_provider.lib_directory_name}/services/common"

    @property
    def terraform_resource_dir_path(self) -> str:
        return (
            f"{self.context.lib_root_dir}/{self.cloud_provider.lib_directory_name}"
            f"/services/{self.descriptor.lib_directory_name}"
        )

    def template_context_for_managed(self, target: DeploymentTarget) -> dict[str, Any]:
        context = self._database_context(target)
        context.update(
            {
                "version": str(self._version_number),
                "version_major": self._version_number.to_major_version_string(),
                "version_major_minor": self._version_number.to_major_minor_version_string(),
                "tfstate_suffix_name": self.id,
                "tfstate_name": self.tfstate_secret_name,
                "skip_final_snapshot": False,
                "final_snapshot_name": f"{self.fqdn_id}-final",
                "delete_automated_backups": False,
                "encrypt_disk": self.options.encrypt_disk,
                "activate_high_availability": self.options.activate_high_availability,
                "activate_backups": self.options.activate_backups,
                "publicly_accessible": self.publicly_accessible,
            }
        )
        return context

    # -- lifecycle -------------------------------------------------------

    async def on_create(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.deploy_stateful_service(target, self)

    async def on_create_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.check_database_version(self)
        if not self.is_managed_service():
            await orchestrator.check_database_storage(target, self)

    async def on_pause(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.scale_down_database(target, self, 0)

    async def on_pause_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None

    async def on_delete(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.delete_stateful_service(target, self)

    async def on_delete_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None
