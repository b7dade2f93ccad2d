"""Deployment pipelines for stateless services and databases."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, RetryCallState, stop_after_delay, wait_exponential

from deploy_engine.domain.errors import CommandError, EngineError, HelmError
from deploy_engine.domain.events.event_details import EnvironmentStep, EventDetails, Stage
from deploy_engine.domain.models.application import Application
from deploy_engine.domain.models.database import Database
from deploy_engine.domain.models.environment import DeploymentTarget, ToolEnvironment
from deploy_engine.domain.models.kubernetes import (
    ChartInfo,
    ChartSetValue,
    DatabaseTerraformConfig,
    InvalidStatefulsetStorage,
    PodPhase,
    ScalingKind,
)
from deploy_engine.domain.models.router import Router
from deploy_engine.domain.models.service import Service, ServiceKind
from deploy_engine.domain.models.versions import ServiceVersionCheckResult
from deploy_engine.domain.ports.services import (
    ChartManager,
    ClusterClient,
    InfraManager,
    TemplateRenderer,
)
from deploy_engine.domain.services.database_checks import (
    check_service_version,
    get_database_with_invalid_storage_size,
)
from deploy_engine.domain.services.diagnostics import debug_logs
from deploy_engine.domain.services.listeners import ListenersHelper


logger = structlog.get_logger(__name__)

DATABASE_TERRAFORM_CONFIG_FILE = "database-tf-config.json"
EXTERNAL_NAME_SERVICE_DIR = "external-name-svc"


class PodsNotReadyError(CommandError):
    """Pods addressed by a selector are missing or not ready yet."""


StatelessService = Application | Router | Database


class DeploymentOrchestrator:
    """Runs the deployment pipelines against the injected collaborators.

    Each pipeline is a sequential chain of collaborator calls. Collaborator
    failures are wrapped into :class:`EngineError` at the step that failed;
    only the readiness poll is retried.
    """

    def __init__(
        self,
        renderer: TemplateRenderer,
        chart_manager: ChartManager,
        infra_manager: InfraManager,
        cluster_client: ClusterClient,
        listeners: ListenersHelper | None = None,
        helm_timeout_in_seconds: int = 600,
        readiness_timeout_in_seconds: float = 600,
        readiness_min_backoff_in_seconds: float = 1.0,
        readiness_max_backoff_in_seconds: float = 30.0,
    ) -> None:
        self._renderer = renderer
        self._chart_manager = chart_manager
        self._infra_manager = infra_manager
        self._cluster = cluster_client
        self._listeners = listeners or ListenersHelper()
        self._helm_timeout = helm_timeout_in_seconds
        self._readiness_timeout = readiness_timeout_in_seconds
        self._readiness_min_backoff = readiness_min_backoff_in_seconds
        self._readiness_max_backoff = readiness_max_backoff_in_seconds

    @property
    def listeners(self) -> ListenersHelper:
        return self._listeners

    @property
    def cluster_client(self) -> ClusterClient:
        return self._cluster

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _render(
        self, source_dir: str, target_dir: str, context: dict[str, Any], event_details: EventDetails
    ) -> None:
        try:
            await self._renderer.render(source_dir, target_dir, context)
        except CommandError as e:
            raise EngineError.new_cannot_copy_files_from_one_directory_to_another(
                event_details, source_dir, target_dir, e
            ) from e

    async def _ensure_namespace(
        self, target: DeploymentTarget, env: ToolEnvironment, event_details: EventDetails
    ) -> None:
        namespace = target.environment.namespace
        labels: dict[str, str] = {}
        expiration = target.context.resource_expiration_in_seconds
        if expiration is not None:
            labels["ttl"] = str(expiration)

        try:
            await self._cluster.create_namespace(env, namespace, labels)
        except CommandError as e:
            raise EngineError.new_k8s_create_namespace(event_details, namespace, e) from e

    async def _helm_upgrade(self, env: ToolEnvironment, chart: ChartInfo, event_details: EventDetails) -> None:
        try:
            status = await self._chart_manager.upgrade(env, chart)
        except HelmError as e:
            raise EngineError.new_helm_error(event_details, e) from e
        logger.info("helm_release_upgraded", release=chart.name, namespace=chart.namespace, status=status.value)

    async def _helm_uninstall(self, target: DeploymentTarget, release: str, event_details: EventDetails) -> None:
        chart = ChartInfo(name=release, path="", namespace=target.environment.namespace)
        try:
            await self._chart_manager.uninstall(target.tool_environment(), chart)
        except HelmError as e:
            raise EngineError.new_helm_error(event_details, e) from e
        logger.info("helm_release_uninstalled", release=release, namespace=chart.namespace)

    async def delete_pending_pods(
        self, env: ToolEnvironment, namespace: str, selector: str, event_details: EventDetails
    ) -> None:
        """Delete the pods stuck in Pending left by a previous scheduling attempt."""
        try:
            pods = await self._cluster.get_pods(env, namespace, selector)
            for pod in pods:
                if pod.phase is PodPhase.PENDING:
                    logger.info("deleting_pending_pod", pod=pod.name, namespace=pod.namespace)
                    await self._cluster.delete_pod(env, pod.namespace, pod.name)
        except CommandError as e:
            raise EngineError.new_k8s_service_issue(event_details, e) from e

    async def wait_for_pods_ready(self, env: ToolEnvironment, namespace: str, selector: str) -> None:
        """Poll until every pod of the selector is ready; raise the last CommandError otherwise."""
        retrying = AsyncRetrying(
            stop=stop_after_delay(self._readiness_timeout),
            wait=wait_exponential(min=self._readiness_min_backoff, max=self._readiness_max_backoff),
            retry=retry_if_exception_type(CommandError),
            before_sleep=_log_readiness_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                pods = await self._cluster.get_pods(env, namespace, selector)
                not_ready = [pod.name for pod in pods if not pod.is_ready]
                if not pods or not_ready:
                    raise PodsNotReadyError(
                        f"Pods with selector `{selector}` are not ready.",
                        f"not ready: {', '.join(not_ready) or 'no pod found'}",
                    )

    # ------------------------------------------------------------------
    # Stateless services
    # ------------------------------------------------------------------

    async def deploy_stateless_service(self, target: DeploymentTarget, service: StatelessService) -> None:
        """Render, ensure namespace, upgrade, clean pending pods and wait for readiness."""
        event_details = service.get_event_details(Stage.environment(EnvironmentStep.DEPLOY))
        env = target.tool_environment()
        namespace = target.environment.namespace
        try:
            workspace_dir = service.workspace_directory()
        except CommandError as e:
            raise EngineError.new_cannot_get_workspace_directory(event_details, e) from e

        await self._render(service.helm_chart_dir, workspace_dir, service.template_context(target), event_details)
        await self._ensure_namespace(target, env, event_details)

        values_files = []
        if service.service_type.kind is ServiceKind.DATABASE:
            values_files.append(f"{workspace_dir}/q-values.yaml")
        chart = ChartInfo(
            name=service.helm_release_name,
            path=workspace_dir,
            namespace=namespace,
            timeout_in_seconds=self._helm_timeout,
            values_files=values_files,
            selector=service.selector,
        )
        await self._helm_upgrade(env, chart, event_details)

        await self.delete_pending_pods(env, namespace, service.selector, event_details)

        try:
            await self.wait_for_pods_ready(env, namespace, service.selector)
        except CommandError as e:
            raise EngineError.new_k8s_pod_not_ready(event_details, service.selector, namespace, e) from e

        logger.info("stateless_service_deployed", service_id=service.id, release=service.helm_release_name)

    async def delete_stateless_service(self, target: DeploymentTarget, service: StatelessService) -> None:
        event_details = service.get_event_details(Stage.environment(EnvironmentStep.DELETE))
        await self._helm_uninstall(target, service.helm_release_name, event_details)

    async def scale_down_application(
        self,
        target: DeploymentTarget,
        service: Application,
        replicas: int,
        scaling_kind: ScalingKind,
    ) -> None:
        event_details = service.get_event_details(Stage.environment(EnvironmentStep.SCALE_DOWN))
        await self._scale(target, scaling_kind, service.selector, replicas, event_details)

    async def scale_down_database(self, target: DeploymentTarget, database: Database, replicas: int) -> None:
        """Scale the database StatefulSet; managed databases are left to the vendor."""
        if database.is_managed_service():
            logger.info("scale_down_skipped_for_managed_database", service_id=database.id)
            return
        event_details = database.get_event_details(Stage.environment(EnvironmentStep.SCALE_DOWN))
        await self._scale(target, ScalingKind.STATEFULSET, f"databaseId={database.id}", replicas, event_details)

    async def _scale(
        self,
        target: DeploymentTarget,
        kind: ScalingKind,
        selector: str,
        replicas: int,
        event_details: EventDetails,
    ) -> None:
        namespace = target.environment.namespace
        try:
            await self._cluster.scale_replicas_by_selector(
                target.tool_environment(), namespace, kind, selector, replicas
            )
        except CommandError as e:
            raise EngineError.new_k8s_scale_replicas(event_details, selector, namespace, replicas, e) from e
        logger.info("replicas_scaled", kind=kind.value, selector=selector, namespace=namespace, replicas=replicas)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def _render_managed_templates(
        self, target: DeploymentTarget, database: Database, event_details: EventDetails
    ) -> str:
        """Render the Terraform modules and the ExternalName chart; returns the chart dir.

        Apply and destroy both go through here so that they always see the
        same rendered files for the same inputs.
        """
        workspace_dir = database.workspace_directory()
        context = database.template_context_for_managed(target)
        external_svc_dir = f"{workspace_dir}/{EXTERNAL_NAME_SERVICE_DIR}"

        await self._render(database.terraform_common_resource_dir_path, workspace_dir, context, event_details)
        await self._render(database.terraform_resource_dir_path, workspace_dir, context, event_details)
        await self._render(database.helm_chart_external_name_service_dir, external_svc_dir, context, event_details)
        return external_svc_dir

    async def deploy_stateful_service(self, target: DeploymentTarget, database: Database) -> None:
        if database.is_managed_service():
            await self._deploy_managed_database(target, database)
        else:
            await self._deploy_container_database(target, database)

    async def _deploy_managed_database(self, target: DeploymentTarget, database: Database) -> None:
        event_details = database.get_event_details(Stage.environment(EnvironmentStep.DEPLOY))
        env = target.tool_environment()
        workspace_dir = database.workspace_directory()

        logger.info(
            "deploying_managed_database",
            service_id=database.id,
            service_type=str(database.service_type),
            execution_id=target.context.execution_id,
        )
        await self._ensure_namespace(target, env, event_details)
        external_svc_dir = await self._render_managed_templates(target, database, event_details)

        try:
            await self._infra_manager.init_validate_plan_apply(
                env, workspace_dir, database.context.is_dry_run_deploy
            )
        except CommandError as e:
            raise EngineError.new_terraform_error_while_executing_pipeline(event_details, e) from e

        try:
            config = read_database_terraform_config(f"{workspace_dir}/{DATABASE_TERRAFORM_CONFIG_FILE}")
        except CommandError as e:
            raise EngineError.new_terraform_database_config_mismatch(event_details, e) from e

        if config is None:
            # The ExternalName service is then handled by Terraform itself.
            return

        chart = ChartInfo(
            name=f"{config.target_id}-externalname",
            path=external_svc_dir,
            namespace=target.environment.namespace,
            timeout_in_seconds=self._helm_timeout,
            values=[
                ChartSetValue(key="target_hostname", value=config.target_hostname),
                ChartSetValue(key="source_fqdn", value=config.target_fqdn),
                ChartSetValue(key="app_id", value=database.id),
                ChartSetValue(key="service_name", value=config.target_fqdn_id),
                ChartSetValue(key="publicly_accessible", value=str(database.publicly_accessible).lower()),
            ],
            selector=database.selector,
        )
        await self._helm_upgrade(env, chart, event_details)

    async def _deploy_container_database(self, target: DeploymentTarget, database: Database) -> None:
        event_details = database.get_event_details(Stage.environment(EnvironmentStep.DEPLOY))
        env = target.tool_environment()
        namespace = target.environment.namespace
        workspace_dir = database.workspace_directory()

        logger.info(
            "deploying_container_database",
            service_id=database.id,
            service_type=str(database.service_type),
            execution_id=target.context.execution_id,
        )
        context = database.template_context_for_container(target)
        await self._render(database.helm_chart_dir, workspace_dir, context, event_details)
        await self._render(database.helm_chart_values_dir, workspace_dir, context, event_details)
        await self._ensure_namespace(target, env, event_details)

        chart = ChartInfo(
            name=database.helm_release_name,
            path=workspace_dir,
            namespace=namespace,
            timeout_in_seconds=self._helm_timeout,
            values_files=[f"{workspace_dir}/q-values.yaml"],
            selector=database.selector,
        )
        await self._helm_upgrade(env, chart, event_details)
        await self.delete_pending_pods(env, namespace, database.selector, event_details)

        try:
            await self.wait_for_pods_ready(env, namespace, database.selector)
        except CommandError as e:
            raise EngineError.new_database_failed_to_start_after_several_retries(
                event_details, database.name_with_id(), str(database.service_type), e
            ) from e

    async def delete_stateful_service(self, target: DeploymentTarget, database: Database) -> None:
        event_details = database.get_event_details(Stage.environment(EnvironmentStep.DELETE))
        if not database.is_managed_service():
            await self._helm_uninstall(target, database.helm_release_name, event_details)
            return

        env = target.tool_environment()
        await self._render_managed_templates(target, database, event_details)
        try:
            await self._infra_manager.init_validate_destroy(env, database.workspace_directory(), True)
        except CommandError as e:
            error = EngineError.new_terraform_error_while_executing_destroy_pipeline(event_details, e)
            logger.error("terraform_destroy_failed", service_id=database.id, tag=error.tag.name)
            raise error from e

        logger.info("deleting_tfstate_secret", service_id=database.id, secret=database.tfstate_secret_name)
        try:
            await self._cluster.delete_secret(env, target.environment.namespace, database.tfstate_secret_name)
        except CommandError as e:
            logger.warning(
                "tfstate_secret_deletion_failed",
                service_id=database.id,
                secret=database.tfstate_secret_name,
                error=e.message_safe,
            )

    async def check_database_version(self, database: Database) -> ServiceVersionCheckResult:
        event_details = database.get_event_details(Stage.environment(EnvironmentStep.LOAD_CONFIGURATION))
        return check_service_version(
            self._listeners, database, event_details, lambda: str(database.matched_version())
        )

    async def check_database_storage(
        self, target: DeploymentTarget, database: Database
    ) -> InvalidStatefulsetStorage | None:
        event_details = database.get_event_details(Stage.environment(EnvironmentStep.DEPLOY))
        invalid = await get_database_with_invalid_storage_size(self._cluster, target, database, event_details)
        if invalid is not None:
            logger.warning(
                "database_storage_needs_resize",
                service_id=database.id,
                statefulset=invalid.statefulset_name,
                pvcs=[p.pvc_name for p in invalid.invalid_pvcs],
                required_disk_size_in_gib=database.total_disk_size_in_gb,
            )
        return invalid

    async def debug_logs(self, target: DeploymentTarget, service: Service, event_details: EventDetails) -> list[str]:
        return await debug_logs(self._cluster, target, service, event_details)


def read_database_terraform_config(path: str) -> DatabaseTerraformConfig | None:
    """Endpoint written by Terraform; None when the file was not generated.

    Raises CommandError when the file exists but cannot be parsed.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("database_terraform_config_absent", path=path)
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise CommandError(f"Cannot read database terraform config file {path}", str(e)) from e

    try:
        return DatabaseTerraformConfig.model_validate_json(content)
    except ValidationError as e:
        raise CommandError(
            f"Error while parsing database terraform config file {path}",
            str(e),
        ) from e


def _log_readiness_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.info(
        "pods_not_ready_retrying",
        attempt=retry_state.attempt_number,
        error=error.message_safe if isinstance(error, CommandError) else str(error),
    )
