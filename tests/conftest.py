"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from uuid import UUID

import pytest
from fakes import (
    FakeChartManager,
    FakeCloudProvider,
    FakeClusterClient,
    FakeInfraManager,
    FakeRenderer,
    make_application,
    make_database,
    make_router,
)

from deploy_engine.config import Environment as RuntimeEnvironment, Settings
from deploy_engine.domain.models.application import Application
from deploy_engine.domain.models.database import Database
from deploy_engine.domain.models.environment import (
    DeploymentTarget,
    Environment,
    ExecutionContext,
    KubernetesCluster,
)
from deploy_engine.domain.models.router import Router
from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator
from deploy_engine.domain.services.listeners import ListenersHelper
from deploy_engine.infrastructure.messaging.progress_listeners import InMemoryProgressListener


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    settings = Settings(environment=RuntimeEnvironment.TESTING, debug=True)
    settings.engine.workspace_root_dir = str(tmp_path / "workspace")
    settings.engine.lib_root_dir = str(tmp_path / "lib")
    return settings


@pytest.fixture
def context(tmp_path: Path) -> ExecutionContext:
    return ExecutionContext(
        organization_id="org-1",
        cluster_id="cluster-1",
        execution_id="exec-1",
        workspace_root_dir=str(tmp_path / "workspace"),
        lib_root_dir=str(tmp_path / "lib"),
    )


@pytest.fixture
def cloud_provider() -> FakeCloudProvider:
    return FakeCloudProvider()


@pytest.fixture
def target(context: ExecutionContext, cloud_provider: FakeCloudProvider) -> DeploymentTarget:
    return DeploymentTarget(
        kubernetes=KubernetesCluster(
            id="cluster-1",
            name="production",
            region="us-east-2",
            zone="us-east-2a",
            kubeconfig_path="/tmp/kubeconfig-cluster-1",  # noqa: S108
        ),
        environment=Environment(
            id="zenv0001",
            long_id=UUID("e0000000-0000-4000-8000-000000000001"),
            namespace="env-ns",
            project_id="zprj0001",
            project_long_id=UUID("e0000000-0000-4000-8000-000000000002"),
            organization_id="org-1",
            organization_long_id=UUID("e0000000-0000-4000-8000-000000000003"),
            owner_id="owner-1",
        ),
        cloud_provider=cloud_provider,
        context=context,
    )


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def chart_manager() -> FakeChartManager:
    return FakeChartManager()


@pytest.fixture
def infra_manager() -> FakeInfraManager:
    return FakeInfraManager()


@pytest.fixture
def cluster() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
def progress() -> InMemoryProgressListener:
    return InMemoryProgressListener()


@pytest.fixture
def orchestrator(
    renderer: FakeRenderer,
    chart_manager: FakeChartManager,
    infra_manager: FakeInfraManager,
    cluster: FakeClusterClient,
    progress: InMemoryProgressListener,
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        renderer=renderer,
        chart_manager=chart_manager,
        infra_manager=infra_manager,
        cluster_client=cluster,
        listeners=ListenersHelper([progress]),
        helm_timeout_in_seconds=300,
        readiness_timeout_in_seconds=0.2,
        readiness_min_backoff_in_seconds=0.01,
        readiness_max_backoff_in_seconds=0.02,
    )


@pytest.fixture
def application(context: ExecutionContext) -> Application:
    return make_application(context)


@pytest.fixture
def router(context: ExecutionContext) -> Router:
    return make_router(context)


@pytest.fixture
def database(context: ExecutionContext) -> Database:
    return make_database(context)
