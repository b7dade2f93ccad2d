"""Service port interfaces (hexagonal architecture).

Collaborator failures are raised as :class:`~deploy_engine.domain.errors.CommandError`
(or one of its subclasses); the orchestrator wraps them into
:class:`~deploy_engine.domain.errors.EngineError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from deploy_engine.domain.events.progress_events import ProgressInfo
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.environment import ToolEnvironment
from deploy_engine.domain.models.kubernetes import (
    ChartInfo,
    KubeEvent,
    Pod,
    ReleaseStatus,
    ScalingKind,
    StatefulsetVolume,
)


class TemplateRenderer(ABC):
    """Port for rendering a template directory."""

    @abstractmethod
    async def render(self, source_dir: str, target_dir: str, context: dict[str, Any]) -> None:
        """Render every file of source_dir into target_dir."""


class ChartManager(ABC):
    """Port for Helm-like release management."""

    @abstractmethod
    async def upgrade(self, env: ToolEnvironment, chart: ChartInfo) -> ReleaseStatus:
        """Install or upgrade a release. Raises HelmError."""

    @abstractmethod
    async def uninstall(self, env: ToolEnvironment, chart: ChartInfo) -> None:
        """Uninstall a release; a missing release is not an error."""


class InfraManager(ABC):
    """Port for Terraform-like infrastructure management."""

    @abstractmethod
    async def init_validate_plan_apply(self, env: ToolEnvironment, root_dir: str, dry_run: bool) -> None:
        """Run init, validate, plan and, unless dry_run, apply. Raises TerraformError."""

    @abstractmethod
    async def init_validate_destroy(self, env: ToolEnvironment, root_dir: str, force: bool) -> None:
        """Run init, validate and destroy. Raises TerraformError."""


class ClusterClient(ABC):
    """Port for kubectl-like cluster access."""

    @abstractmethod
    async def create_namespace(self, env: ToolEnvironment, namespace: str, labels: dict[str, str]) -> None:
        """Create a namespace; an existing namespace is success."""

    @abstractmethod
    async def get_pods(self, env: ToolEnvironment, namespace: str, selector: str) -> list[Pod]:
        """List the pods matching a label selector."""

    @abstractmethod
    async def delete_pod(self, env: ToolEnvironment, namespace: str, name: str) -> None: ...

    @abstractmethod
    async def delete_secret(self, env: ToolEnvironment, namespace: str, name: str) -> None:
        """Delete a secret; a missing secret is success."""

    @abstractmethod
    async def scale_replicas_by_selector(
        self,
        env: ToolEnvironment,
        namespace: str,
        kind: ScalingKind,
        selector: str,
        replicas: int,
    ) -> None: ...

    @abstractmethod
    async def get_logs(self, env: ToolEnvironment, namespace: str, selector: str) -> list[str]: ...

    @abstractmethod
    async def get_events(self, env: ToolEnvironment, namespace: str) -> list[KubeEvent]: ...

    @abstractmethod
    async def get_statefulset_volumes(
        self, env: ToolEnvironment, namespace: str, selector: str
    ) -> tuple[str, list[StatefulsetVolume]] | None:
        """Name and volume claim templates of the StatefulSet, None when absent."""

    @abstractmethod
    async def get_pvc_names(self, env: ToolEnvironment, namespace: str, selector: str) -> list[str]: ...


class CloudProvider(ABC):
    """Port describing the cloud provider hosting the cluster."""

    @property
    @abstractmethod
    def kind(self) -> CloudProviderKind: ...

    @property
    def lib_directory_name(self) -> str:
        return self.kind.lib_directory_name

    @abstractmethod
    def credentials_environment_variables(self) -> list[tuple[str, str]]:
        """Environment variables the tools need to authenticate."""

    @abstractmethod
    def template_environment_variables(self) -> list[tuple[str, str]]:
        """Variables exposed to the rendered templates."""


class ProgressListener(ABC):
    """Port receiving progress notifications; called synchronously."""

    @abstractmethod
    def deployment_in_progress(self, info: ProgressInfo) -> None: ...

    @abstractmethod
    def deployment_error(self, info: ProgressInfo) -> None: ...

    @abstractmethod
    def pause_in_progress(self, info: ProgressInfo) -> None: ...

    @abstractmethod
    def pause_error(self, info: ProgressInfo) -> None: ...

    @abstractmethod
    def delete_in_progress(self, info: ProgressInfo) -> None: ...

    @abstractmethod
    def delete_error(self, info: ProgressInfo) -> None: ...
