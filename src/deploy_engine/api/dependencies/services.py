"""Service dependencies for FastAPI dependency injection."""

from __future__ import annotations

from deploy_engine.config import get_settings, Settings
from deploy_engine.domain.ports.services import (
    ChartManager,
    ClusterClient,
    InfraManager,
    TemplateRenderer,
)
from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator
from deploy_engine.domain.services.listeners import ListenersHelper
from deploy_engine.infrastructure.helm.chart_manager import HelmChartManager
from deploy_engine.infrastructure.kubernetes.kubectl_client import KubectlClient
from deploy_engine.infrastructure.messaging.progress_listeners import StructlogProgressListener
from deploy_engine.infrastructure.process.runner import CommandRunner
from deploy_engine.infrastructure.templating.renderer import Jinja2DirectoryRenderer
from deploy_engine.infrastructure.terraform.executor import TerraformExecutor
from deploy_engine.workers.environment_worker import EnvironmentWorker


class ServiceContainer:
    """Simple dependency injection container.

    Implements the Composition Root pattern: the external tool adapters are
    built once from the engine settings and shared by every request.
    """

    _instance: ServiceContainer | None = None

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        engine = self._settings.engine

        runner = CommandRunner()
        self._renderer: TemplateRenderer = Jinja2DirectoryRenderer()
        self._chart_manager: ChartManager = HelmChartManager(runner, helm_binary=engine.helm_binary)
        self._infra_manager: InfraManager = TerraformExecutor(runner, terraform_binary=engine.terraform_binary)
        self._cluster_client: ClusterClient = KubectlClient(runner, kubectl_binary=engine.kubectl_binary)
        self._listeners = ListenersHelper([StructlogProgressListener()])

        self._orchestrator = DeploymentOrchestrator(
            renderer=self._renderer,
            chart_manager=self._chart_manager,
            infra_manager=self._infra_manager,
            cluster_client=self._cluster_client,
            listeners=self._listeners,
            helm_timeout_in_seconds=engine.helm_timeout_in_seconds,
            readiness_timeout_in_seconds=engine.readiness_timeout_in_seconds,
            readiness_min_backoff_in_seconds=engine.readiness_min_backoff_in_seconds,
            readiness_max_backoff_in_seconds=engine.readiness_max_backoff_in_seconds,
        )

    @classmethod
    def get_instance(cls) -> ServiceContainer:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def listeners(self) -> ListenersHelper:
        return self._listeners

    @property
    def orchestrator(self) -> DeploymentOrchestrator:
        return self._orchestrator

    def new_worker(self) -> EnvironmentWorker:
        """Workers hold per-run state, so each run gets its own."""
        return EnvironmentWorker(
            self._orchestrator,
            max_concurrent=self._settings.engine.max_concurrent_services,
        )


def get_service_container() -> ServiceContainer:
    return ServiceContainer.get_instance()
