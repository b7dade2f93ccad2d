"""Unit tests for API schemas."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from uuid import UUID

import pytest
from pydantic import SecretStr, ValidationError

from deploy_engine.api.schemas.environment_schemas import (
    ApplicationRequest,
    CloudProviderRequest,
    DatabaseRequest,
    RouterRequest,
)
from deploy_engine.api.schemas.error_schemas import EngineErrorResponse, Tag, to_tag
from deploy_engine.domain.errors import CommandError, EngineError, ErrorKind
from deploy_engine.domain.events.event_details import (
    EnvironmentStep,
    EventDetails,
    Stage,
    Transmitter,
    TransmitterKind,
)
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.database import InvalidDatabaseInstance
from deploy_engine.domain.models.database_types import DatabaseEngine, DatabaseMode
from deploy_engine.domain.models.environment import ExecutionContext
from deploy_engine.domain.models.service import Action
from deploy_engine.infrastructure.cloud.providers import (
    AwsCloudProvider,
    GcpCloudProvider,
    ScalewayCloudProvider,
)


def _event_details() -> EventDetails:
    return EventDetails(
        provider_kind=CloudProviderKind.AWS,
        organization_id="org-1",
        cluster_id="cluster-1",
        execution_id="exec-1",
        region="us-east-2",
        stage=Stage.environment(EnvironmentStep.DEPLOY),
        transmitter=Transmitter(kind=TransmitterKind.APPLICATION, id="za1b2c3d4", name="api"),
    )


def _database_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "long_id": "c1b2c3d4-0000-4000-8000-000000000003",
        "name": "orders",
        "kube_name": "postgresql-zc1b2c3d4",
        "action": "create",
        "version": "13",
        "private_port": 5432,
        "mode": "container",
        "engine": "postgresql",
        "fqdn_id": "postgresql-zc1b2c3d4",
        "fqdn": "zc1b2c3d4.db.example.com",
        "total_disk_size_in_gb": 10,
        "options": {
            "login": "superuser",
            "password": "p4ssw0rd",
            "host": "postgresql-zc1b2c3d4",
            "port": 5432,
            "disk_size_in_gib": 10,
        },
    }
    payload.update(overrides)
    return payload


class TestTags:
    def test_public_kinds_keep_their_name(self) -> None:
        assert to_tag(ErrorKind.HELM_DEPLOY_TIMEOUT) is Tag.HELM_DEPLOY_TIMEOUT
        assert to_tag(ErrorKind.TERRAFORM_STATE_LOCKED) is Tag.TERRAFORM_STATE_LOCKED
        assert to_tag(ErrorKind.TASK_CANCELLED) is Tag.TASK_CANCELLED

    @pytest.mark.parametrize(
        "kind",
        [
            ErrorKind.HELM_HISTORY_ERROR,
            ErrorKind.K8S_DESCRIBE,
            ErrorKind.K8S_HISTORY,
            ErrorKind.JSON_DESERIALIZATION_ERROR,
            ErrorKind.VAULT_CONNECTION_ERROR,
            ErrorKind.AWS_SDK_LIST_RDS_INSTANCES,
        ],
    )
    def test_diagnostic_kinds_keep_their_tag(self, kind: ErrorKind) -> None:
        assert to_tag(kind) is not Tag.UNKNOWN
        assert to_tag(kind).value == kind.name

    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_every_kind_has_a_tag(self, kind: ErrorKind) -> None:
        tag = to_tag(kind)
        assert tag.value == kind.name

    def test_tags_are_screaming_snake_case(self) -> None:
        assert all(tag.value == tag.name for tag in Tag)


class TestEngineErrorResponse:
    def test_from_engine_error(self) -> None:
        error = EngineError(
            ErrorKind.TERRAFORM_STATE_LOCKED,
            _event_details(),
            "Terraform state is locked.",
            CommandError("terraform apply failed", "Error acquiring the state lock"),
            hint_message="Wait for the other operation to finish.",
        )

        response = EngineErrorResponse.from_engine_error(error)

        assert response.tag is Tag.TERRAFORM_STATE_LOCKED
        assert response.event_details.stage == "environment:deploy"
        assert response.event_details.provider_kind == "aws"
        assert response.event_details.transmitter_kind == "application"
        assert response.underlying_error is not None
        assert response.underlying_error.full_details == "Error acquiring the state lock"
        assert response.hint_message == "Wait for the other operation to finish."

    def test_environment_variables_never_serialized(self) -> None:
        error = EngineError(
            ErrorKind.HELM_CHARTS_UPGRADE_ERROR,
            _event_details(),
            "Helm upgrade failed.",
            CommandError("helm failed", None, [("AWS_SECRET_ACCESS_KEY", "very-secret")]),
        )

        dumped = EngineErrorResponse.from_engine_error(error).model_dump_json()

        assert "very-secret" not in dumped
        assert "AWS_SECRET_ACCESS_KEY" not in dumped

    def test_without_underlying_error(self) -> None:
        error = EngineError.new_task_cancelled(_event_details())
        response = EngineErrorResponse.from_engine_error(error)
        assert response.underlying_error is None
        assert response.tag is Tag.TASK_CANCELLED


class TestCloudProviderRequest:
    def test_aws(self) -> None:
        request = CloudProviderRequest(
            kind=CloudProviderKind.AWS, region="us-east-2", access_key_id="AKIAFAKE", secret_access_key="s"
        )
        assert isinstance(request.to_domain(), AwsCloudProvider)

    def test_scaleway_needs_a_project(self) -> None:
        with pytest.raises(ValidationError, match="missing project_id for Scaleway"):
            CloudProviderRequest(
                kind=CloudProviderKind.SCW, region="fr-par", access_key_id="SCW", secret_access_key="s"
            )

        request = CloudProviderRequest(
            kind=CloudProviderKind.SCW,
            region="fr-par",
            access_key_id="SCW",
            secret_access_key="s",
            project_id="project-1",
        )
        assert isinstance(request.to_domain(), ScalewayCloudProvider)

    def test_gcp(self) -> None:
        with pytest.raises(ValidationError, match="credentials_json"):
            CloudProviderRequest(kind=CloudProviderKind.GCP, region="europe-west1", project_id="project-1")

        request = CloudProviderRequest(
            kind=CloudProviderKind.GCP, region="europe-west1", project_id="project-1", credentials_json="{}"
        )
        assert isinstance(request.to_domain(), GcpCloudProvider)

    def test_secret_hidden_in_repr(self) -> None:
        request = CloudProviderRequest(
            kind=CloudProviderKind.AWS, region="us-east-2", access_key_id="AKIAFAKE", secret_access_key="hidden"
        )
        assert "hidden" not in repr(request)
        assert request.secret_access_key == SecretStr("hidden")


class TestServiceRequests:
    def test_application_to_domain(self, context: ExecutionContext) -> None:
        request = ApplicationRequest(
            long_id=UUID("a1b2c3d4-0000-4000-8000-000000000001"),
            name="api",
            kube_name="app-za1b2c3d4-api",
            action=Action.CREATE,
            version="v1.2.0",
            image="registry.example.com/api:v1.2.0",
            ports=[{"port": 8080, "public_port": 443, "is_default": True}],
            environment_variables=[{"key": "DATABASE_URL", "value": "postgres://db"}],
        )

        application = request.to_domain(context)

        assert application.name == "api"
        assert application.image == "registry.example.com/api:v1.2.0"
        assert application.environment_variables[0].value.get_secret_value() == "postgres://db"

    def test_invalid_port_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ApplicationRequest(
                long_id=UUID("a1b2c3d4-0000-4000-8000-000000000001"),
                name="api",
                kube_name="api",
                action=Action.CREATE,
                version="1",
                image="api:1",
                ports=[{"port": 70000}],
            )

    def test_router_defaults(self, context: ExecutionContext) -> None:
        request = RouterRequest(
            long_id=UUID("b1b2c3d4-0000-4000-8000-000000000002"),
            name="main-router",
            kube_name="router-zb1b2c3d4",
            action=Action.CREATE,
            default_domain="zb1b2c3d4.example.com",
        )
        router = request.to_domain(context)
        assert router.version == "1"
        assert router.public_port == 443

    def test_database_to_domain(self, context: ExecutionContext) -> None:
        request = DatabaseRequest.model_validate(_database_payload(instance_type="db.t3.micro", mode="managed"))

        database = request.to_domain(context, CloudProviderKind.AWS)

        assert database.mode is DatabaseMode.MANAGED
        assert database.engine is DatabaseEngine.POSTGRESQL
        assert database.instance_type is not None
        assert database.instance_type.to_cloud_provider_format() == "db.t3.micro"
        assert database.options.mode is DatabaseMode.MANAGED
        assert Path(database.workspace_directory()).is_dir()

    def test_unknown_instance_type(self, context: ExecutionContext) -> None:
        request = DatabaseRequest.model_validate(_database_payload(instance_type="db.x9.huge"))

        with pytest.raises(InvalidDatabaseInstance, match="db.x9.huge"):
            request.to_domain(context, CloudProviderKind.AWS)

    def test_unknown_engine_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseRequest.model_validate(_database_payload(engine="oracle"))

    @pytest.mark.parametrize("name", ["../../../escaped", "a/b", "a\\b", "..", "."])
    def test_name_that_is_not_a_single_path_segment_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError, match="path"):
            DatabaseRequest.model_validate(_database_payload(name=name))
