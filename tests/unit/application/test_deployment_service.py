"""Unit tests for the deployment pipelines."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest
from fakes import (
    FakeChartManager,
    FakeClusterClient,
    FakeInfraManager,
    FakeRenderer,
    make_application,
    make_database,
    pending_pod,
    ready_pod,
)

from deploy_engine.domain.errors import (
    CommandError,
    EngineError,
    ErrorKind,
    HelmErrorKind,
    TerraformError,
    TerraformErrorKind,
)
from deploy_engine.domain.models.application import Application
from deploy_engine.domain.models.database import Database
from deploy_engine.domain.models.database_types import DatabaseMode
from deploy_engine.domain.models.environment import DeploymentTarget, ExecutionContext
from deploy_engine.domain.models.kubernetes import ScalingKind, StatefulsetVolume
from deploy_engine.domain.models.router import Router
from deploy_engine.domain.services.database_checks import volume_size_in_gib
from deploy_engine.domain.services.deployment_service import (
    DATABASE_TERRAFORM_CONFIG_FILE,
    DeploymentOrchestrator,
    read_database_terraform_config,
)
from deploy_engine.infrastructure.messaging.progress_listeners import InMemoryProgressListener


TERRAFORM_CONFIG = {
    "database_target_id": "zc1b2c3d4",
    "database_target_hostname": "orders.abc123.us-east-2.rds.amazonaws.com",
    "database_target_fqdn_id": "postgresql-zc1b2c3d4",
    "database_target_fqdn": "zc1b2c3d4.db.example.com",
}


def _write_terraform_config(database: Database, content: str) -> None:
    path = Path(database.workspace_directory()) / DATABASE_TERRAFORM_CONFIG_FILE
    path.write_text(content, encoding="utf-8")


class TestStatelessDeploy:
    @pytest.mark.asyncio
    async def test_pipeline_steps(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        renderer: FakeRenderer,
        chart_manager: FakeChartManager,
        cluster: FakeClusterClient,
    ) -> None:
        await orchestrator.deploy_stateless_service(target, application)

        source, workspace, template = renderer.calls[0]
        assert source == application.helm_chart_dir
        assert workspace == application.workspace_directory()
        assert template["id"] == "za1b2c3d4"
        assert "env-ns" in cluster.namespaces

        [chart] = chart_manager.upgrades
        assert chart.name == "application-za1b2c3d4"
        assert chart.path == workspace
        assert chart.timeout_in_seconds == 300
        assert chart.values_files == []
        assert chart.selector == "appId=za1b2c3d4"

    @pytest.mark.asyncio
    async def test_router_deploy(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        router: Router,
        chart_manager: FakeChartManager,
    ) -> None:
        await orchestrator.deploy_stateless_service(target, router)
        assert chart_manager.upgrades[0].name == "router-zb1b2c3d4"

    @pytest.mark.asyncio
    async def test_namespace_gets_ttl_label(
        self,
        target: DeploymentTarget,
        context: ExecutionContext,
        orchestrator: DeploymentOrchestrator,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        expiring = dataclasses.replace(
            target, context=context.model_copy(update={"resource_expiration_in_seconds": 3600})
        )
        await orchestrator.deploy_stateless_service(expiring, application)
        assert cluster.namespaces["env-ns"] == {"ttl": "3600"}

    @pytest.mark.asyncio
    async def test_redeploy_is_idempotent(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        renderer: FakeRenderer,
        chart_manager: FakeChartManager,
    ) -> None:
        await orchestrator.deploy_stateless_service(target, application)
        await orchestrator.deploy_stateless_service(target, application)
        assert renderer.calls[0] == renderer.calls[1]
        assert chart_manager.upgrades[0] == chart_manager.upgrades[1]

    @pytest.mark.asyncio
    async def test_pending_pods_are_deleted(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.pods[application.selector] = [ready_pod("api-0"), pending_pod("api-1")]
        await orchestrator.deploy_stateless_service(target, application)
        assert cluster.deleted_pods == ["api-1"]

    @pytest.mark.asyncio
    async def test_pending_pod_deletion_failure(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.pods[application.selector] = [pending_pod("api-1")]
        cluster.errors["delete_pod"] = CommandError("forbidden")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.K8S_SERVICE_ERROR

    @pytest.mark.asyncio
    async def test_pods_never_ready(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.pods[application.selector] = []
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.K8S_POD_IS_NOT_READY
        assert cluster.get_pods_calls > 2

    @pytest.mark.asyncio
    async def test_render_failure_stops_pipeline(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        renderer: FakeRenderer,
        chart_manager: FakeChartManager,
        cluster: FakeClusterClient,
    ) -> None:
        renderer.failing.add(application.helm_chart_dir)
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.CANNOT_COPY_FILES_FROM_DIRECTORY_TO_DIRECTORY
        assert cluster.namespaces == {}
        assert chart_manager.upgrades == []

    @pytest.mark.asyncio
    async def test_workspace_outside_root_stops_pipeline(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        context: ExecutionContext,
        chart_manager: FakeChartManager,
        cluster: FakeClusterClient,
        tmp_path: Path,
    ) -> None:
        application = make_application(context, name="../../../escaped")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.CANNOT_GET_WORKSPACE_DIRECTORY
        assert not (tmp_path / "escaped").exists()
        assert cluster.namespaces == {}
        assert chart_manager.upgrades == []

    @pytest.mark.asyncio
    async def test_namespace_failure(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.errors["create_namespace"] = CommandError("forbidden")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.K8S_CANNOT_CREATE_NAMESPACE

    @pytest.mark.asyncio
    async def test_helm_timeout(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        chart_manager: FakeChartManager,
    ) -> None:
        chart_manager.upgrade_error = HelmErrorKind.TIMEOUT
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.HELM_DEPLOY_TIMEOUT

    @pytest.mark.asyncio
    async def test_pod_listing_failure(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.errors["get_pods"] = CommandError("connection refused")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateless_service(target, application)
        assert exc_info.value.tag is ErrorKind.K8S_SERVICE_ERROR


class TestStatelessDeleteAndScale:
    @pytest.mark.asyncio
    async def test_delete_uninstalls_release(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        chart_manager: FakeChartManager,
    ) -> None:
        await orchestrator.delete_stateless_service(target, application)
        [chart] = chart_manager.uninstalls
        assert (chart.name, chart.namespace) == ("application-za1b2c3d4", "env-ns")

    @pytest.mark.asyncio
    async def test_delete_failure(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        router: Router,
        chart_manager: FakeChartManager,
    ) -> None:
        chart_manager.uninstall_error = HelmErrorKind.CMD_ERROR
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.delete_stateless_service(target, router)
        assert exc_info.value.tag is ErrorKind.HELM_CHART_UNINSTALL_ERROR

    @pytest.mark.asyncio
    async def test_scale_down_application(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        await orchestrator.scale_down_application(target, application, 0, ScalingKind.DEPLOYMENT)
        assert cluster.scaled == [(ScalingKind.DEPLOYMENT, "appId=za1b2c3d4", 0)]

    @pytest.mark.asyncio
    async def test_scale_failure(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        application: Application,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.errors["scale_replicas_by_selector"] = CommandError("not found")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.scale_down_application(target, application, 0, ScalingKind.DEPLOYMENT)
        assert exc_info.value.tag is ErrorKind.K8S_SCALE_REPLICAS

    @pytest.mark.asyncio
    async def test_scale_down_database(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
    ) -> None:
        await orchestrator.scale_down_database(target, database, 0)
        assert cluster.scaled == [(ScalingKind.STATEFULSET, "databaseId=zc1b2c3d4", 0)]

    @pytest.mark.asyncio
    async def test_managed_database_is_not_scaled(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        context: ExecutionContext,
        cluster: FakeClusterClient,
    ) -> None:
        await orchestrator.scale_down_database(target, make_database(context, mode=DatabaseMode.MANAGED), 0)
        assert cluster.scaled == []


class TestContainerDatabase:
    @pytest.mark.asyncio
    async def test_deploy(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        renderer: FakeRenderer,
        chart_manager: FakeChartManager,
    ) -> None:
        await orchestrator.deploy_stateful_service(target, database)

        assert [call[0] for call in renderer.calls] == [database.helm_chart_dir, database.helm_chart_values_dir]
        assert renderer.calls[0][2]["version"] == "13.13.0"
        [chart] = chart_manager.upgrades
        assert chart.name == "postgresql-zc1b2c3d4"
        assert chart.values_files == [f"{database.workspace_directory()}/q-values.yaml"]

    @pytest.mark.asyncio
    async def test_not_ready(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.pods[database.selector] = [pending_pod("postgresql-0")]
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateful_service(target, database)
        assert exc_info.value.tag is ErrorKind.DATABASE_FAILED_TO_START_AFTER_SEVERAL_RETRIES
        assert cluster.deleted_pods == ["postgresql-0"]

    @pytest.mark.asyncio
    async def test_delete(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        chart_manager: FakeChartManager,
        infra_manager: FakeInfraManager,
    ) -> None:
        await orchestrator.delete_stateful_service(target, database)
        assert chart_manager.uninstalls[0].name == "postgresql-zc1b2c3d4"
        assert infra_manager.destroys == []


class TestManagedDatabase:
    @pytest.fixture
    def managed(self, context: ExecutionContext) -> Database:
        return make_database(context, mode=DatabaseMode.MANAGED)

    @pytest.mark.asyncio
    async def test_deploy_without_endpoint_file(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        renderer: FakeRenderer,
        infra_manager: FakeInfraManager,
        chart_manager: FakeChartManager,
    ) -> None:
        await orchestrator.deploy_stateful_service(target, managed)

        assert [call[0] for call in renderer.calls] == [
            managed.terraform_common_resource_dir_path,
            managed.terraform_resource_dir_path,
            managed.helm_chart_external_name_service_dir,
        ]
        assert infra_manager.applies == [(managed.workspace_directory(), False)]
        assert chart_manager.upgrades == []

    @pytest.mark.asyncio
    async def test_dry_run_is_forwarded(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        context: ExecutionContext,
        infra_manager: FakeInfraManager,
    ) -> None:
        managed = make_database(
            context.model_copy(update={"is_dry_run_deploy": True}), mode=DatabaseMode.MANAGED
        )
        await orchestrator.deploy_stateful_service(target, managed)
        assert infra_manager.applies[0][1] is True

    @pytest.mark.asyncio
    async def test_deploy_installs_external_name_service(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        chart_manager: FakeChartManager,
    ) -> None:
        _write_terraform_config(managed, json.dumps(TERRAFORM_CONFIG))
        await orchestrator.deploy_stateful_service(target, managed)

        [chart] = chart_manager.upgrades
        assert chart.name == "zc1b2c3d4-externalname"
        assert chart.path == f"{managed.workspace_directory()}/external-name-svc"
        values = {value.key: value.value for value in chart.values}
        assert values == {
            "target_hostname": "orders.abc123.us-east-2.rds.amazonaws.com",
            "source_fqdn": "zc1b2c3d4.db.example.com",
            "app_id": "zc1b2c3d4",
            "service_name": "postgresql-zc1b2c3d4",
            "publicly_accessible": "false",
        }

    @pytest.mark.asyncio
    async def test_invalid_endpoint_file(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
    ) -> None:
        _write_terraform_config(managed, '{"database_target_id": "zc1b2c3d4"}')
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateful_service(target, managed)
        assert exc_info.value.tag is ErrorKind.TERRAFORM_CONFIG_MISMATCH

    @pytest.mark.asyncio
    async def test_undecodable_endpoint_file(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        chart_manager: FakeChartManager,
    ) -> None:
        path = Path(managed.workspace_directory()) / DATABASE_TERRAFORM_CONFIG_FILE
        path.write_bytes(b'{"database_target_id": "\xff\xfe"}')
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateful_service(target, managed)
        assert exc_info.value.tag is ErrorKind.TERRAFORM_CONFIG_MISMATCH
        assert chart_manager.upgrades == []

    @pytest.mark.asyncio
    async def test_apply_failure(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        infra_manager: FakeInfraManager,
    ) -> None:
        infra_manager.apply_error = TerraformError(TerraformErrorKind.QUOTAS_REACHED, "quota")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.deploy_stateful_service(target, managed)
        assert exc_info.value.tag is ErrorKind.TERRAFORM_CLOUD_PROVIDER_QUOTAS_REACHED

    @pytest.mark.asyncio
    async def test_delete_renders_same_files_then_destroys(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        renderer: FakeRenderer,
        infra_manager: FakeInfraManager,
        cluster: FakeClusterClient,
    ) -> None:
        await orchestrator.deploy_stateful_service(target, managed)
        deployed = list(renderer.calls)
        renderer.calls.clear()

        await orchestrator.delete_stateful_service(target, managed)

        assert renderer.calls == deployed
        assert infra_manager.destroys == [(managed.workspace_directory(), True)]
        assert cluster.deleted_secrets == ["tfstate-default-zc1b2c3d4"]

    @pytest.mark.asyncio
    async def test_destroy_failure_keeps_classified_kind(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        infra_manager: FakeInfraManager,
        cluster: FakeClusterClient,
    ) -> None:
        infra_manager.destroy_error = TerraformError(TerraformErrorKind.STATE_LOCKED, "locked")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.delete_stateful_service(target, managed)
        assert exc_info.value.tag is ErrorKind.TERRAFORM_STATE_LOCKED
        assert cluster.deleted_secrets == []

    @pytest.mark.asyncio
    async def test_secret_deletion_is_best_effort(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        managed: Database,
        infra_manager: FakeInfraManager,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.errors["delete_secret"] = CommandError("secret not found")
        await orchestrator.delete_stateful_service(target, managed)
        assert len(infra_manager.destroys) == 1


class TestReadDatabaseTerraformConfig:
    def test_absent(self, tmp_path: Path) -> None:
        assert read_database_terraform_config(str(tmp_path / "missing.json")) is None

    def test_valid(self, tmp_path: Path) -> None:
        path = tmp_path / DATABASE_TERRAFORM_CONFIG_FILE
        path.write_text(json.dumps(TERRAFORM_CONFIG), encoding="utf-8")
        config = read_database_terraform_config(str(path))
        assert config is not None
        assert config.target_fqdn_id == "postgresql-zc1b2c3d4"

    def test_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / DATABASE_TERRAFORM_CONFIG_FILE
        path.write_text("not json", encoding="utf-8")
        with pytest.raises(CommandError):
            read_database_terraform_config(str(path))

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / DATABASE_TERRAFORM_CONFIG_FILE
        path.write_bytes(b'{"database_target_id": "\xff\xfe"}')
        with pytest.raises(CommandError, match="Cannot read"):
            read_database_terraform_config(str(path))

    def test_unreadable_path_is_not_absent(self, tmp_path: Path) -> None:
        path = tmp_path / DATABASE_TERRAFORM_CONFIG_FILE
        path.mkdir()
        with pytest.raises(CommandError, match="Cannot read"):
            read_database_terraform_config(str(path))


class TestDatabaseVersionCheck:
    @pytest.mark.asyncio
    async def test_matched_version_is_reported(
        self,
        orchestrator: DeploymentOrchestrator,
        database: Database,
        progress: InMemoryProgressListener,
    ) -> None:
        result = await orchestrator.check_database_version(database)
        assert str(result.matched_version) == "13.13.0"
        assert result.differs
        [(channel, info)] = progress.events_for(str(database.long_id))
        assert channel == "deployment_in_progress"
        assert "13.13.0" in (info.message or "")

    @pytest.mark.asyncio
    async def test_unsupported_version(
        self,
        orchestrator: DeploymentOrchestrator,
        context: ExecutionContext,
        progress: InMemoryProgressListener,
    ) -> None:
        database = make_database(context, version="9")
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.check_database_version(database)
        assert exc_info.value.tag is ErrorKind.UNSUPPORTED_VERSION
        assert [channel for channel, _ in progress.events] == ["deployment_error"]


class TestDatabaseStorageCheck:
    @pytest.mark.asyncio
    async def test_no_statefulset(
        self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget, database: Database
    ) -> None:
        assert await orchestrator.check_database_storage(target, database) is None

    @pytest.mark.asyncio
    async def test_same_size(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.statefulsets[database.selector] = ("postgresql", [StatefulsetVolume(name="data", storage="10Gi")])
        assert await orchestrator.check_database_storage(target, database) is None

    @pytest.mark.asyncio
    async def test_grow(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.statefulsets[database.selector] = ("postgresql", [StatefulsetVolume(name="data", storage="8Gi")])
        cluster.pvc_names["app=postgresql-zc1b2c3d4"] = ["data-postgresql-0"]

        invalid = await orchestrator.check_database_storage(target, database)

        assert invalid is not None
        assert invalid.statefulset_name == "postgresql"
        assert [(p.pvc_name, p.required_disk_size_in_gib) for p in invalid.invalid_pvcs] == [
            ("data-postgresql-0", 10)
        ]

    @pytest.mark.asyncio
    async def test_shrink_rejected(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.statefulsets[database.selector] = ("postgresql", [StatefulsetVolume(name="data", storage="20Gi")])
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.check_database_storage(target, database)
        assert exc_info.value.tag is ErrorKind.INVALID_ENGINE_PAYLOAD

    @pytest.mark.asyncio
    @pytest.mark.parametrize("volume_count", [0, 2])
    async def test_expects_exactly_one_volume(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
        volume_count: int,
    ) -> None:
        volumes = [StatefulsetVolume(name=f"data-{i}", storage="10Gi") for i in range(volume_count)]
        cluster.statefulsets[database.selector] = ("postgresql", volumes)
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.check_database_storage(target, database)
        assert exc_info.value.tag is ErrorKind.SERVICE_MISSING_STORAGE

    @pytest.mark.asyncio
    async def test_unparseable_quantity(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeploymentTarget,
        database: Database,
        cluster: FakeClusterClient,
    ) -> None:
        cluster.statefulsets[database.selector] = ("postgresql", [StatefulsetVolume(name="data", storage="ten")])
        with pytest.raises(EngineError) as exc_info:
            await orchestrator.check_database_storage(target, database)
        assert exc_info.value.tag is ErrorKind.CANNOT_PARSE_STRING


class TestVolumeSize:
    @pytest.mark.parametrize(
        ("quantity", "expected"),
        [("10Gi", 10), ("10240Mi", 10), ("1Ti", 1024), ("10G", 10), ("1", 1), ("1.5Gi", 2)],
    )
    def test_conversion(self, quantity: str, expected: int) -> None:
        assert volume_size_in_gib(quantity) == expected

    def test_invalid(self) -> None:
        with pytest.raises(CommandError):
            volume_size_in_gib("10 gigs")
