"""Unit tests for the engine error taxonomy."""

from __future__ import annotations

import pytest

from deploy_engine.domain.errors import (
    CommandError,
    EngineError,
    ErrorKind,
    HELM_ERROR_KINDS,
    HelmError,
    HelmErrorKind,
    TERRAFORM_ERROR_KINDS,
    TerraformError,
    TerraformErrorKind,
)
from deploy_engine.domain.events.event_details import (
    EnvironmentStep,
    EventDetails,
    Stage,
    Transmitter,
    TransmitterKind,
)


@pytest.fixture
def event_details() -> EventDetails:
    return EventDetails(
        organization_id="org-1",
        cluster_id="cluster-1",
        execution_id="exec-1",
        stage=Stage.environment(EnvironmentStep.DEPLOY),
        transmitter=Transmitter(kind=TransmitterKind.APPLICATION, id="app-1", name="api"),
    )


class TestCommandError:
    def test_message_with_details(self) -> None:
        error = CommandError("Command failed.", "exit status 1")
        assert error.message() == "Command failed. / Full details: exit status 1"

    def test_message_without_details(self) -> None:
        assert CommandError("Command failed.").message() == "Command failed."

    def test_flattened_drops_env_vars(self) -> None:
        error = CommandError("Command failed.", "details", [("AWS_SECRET_ACCESS_KEY", "s3cr3t")])
        flat = error.flattened()
        assert flat.env_vars is None
        assert flat == error


class TestEngineError:
    def test_flattened_keeps_tag_and_strips_env(self, event_details: EventDetails) -> None:
        raw = CommandError("kubectl failed", "stderr", [("KUBECONFIG", "/secret")])
        error = EngineError.new_k8s_service_issue(event_details, raw)
        flat = error.flattened()
        assert flat.tag is ErrorKind.K8S_SERVICE_ERROR
        assert flat.user_log_message == error.user_log_message
        assert flat.underlying_error is not None
        assert flat.underlying_error.env_vars is None
        assert raw.env_vars is not None

    def test_repr(self, event_details: EventDetails) -> None:
        error = EngineError.new_task_cancelled(event_details)
        assert repr(error) == "EngineError(tag=TASK_CANCELLED, message='Task cancelled by user.')"

    def test_unknown_keeps_hint(self, event_details: EventDetails) -> None:
        error = EngineError.new_unknown(event_details, "boom", hint_message="try again")
        assert error.tag is ErrorKind.UNKNOWN
        assert error.hint_message == "try again"

    def test_with_stage(self, event_details: EventDetails) -> None:
        moved = event_details.with_stage(Stage.environment(EnvironmentStep.DELETE))
        assert moved.stage.step == "delete"
        assert event_details.stage.step == "deploy"


class TestHelmErrorTranslation:
    def test_classified_kinds(self, event_details: EventDetails) -> None:
        for kind, tag in HELM_ERROR_KINDS.items():
            error = HelmError(kind, "application-z1", "upgrade", "failed")
            assert EngineError.new_helm_error(event_details, error).tag is tag

    def test_timeout_has_hint(self, event_details: EventDetails) -> None:
        error = EngineError.new_helm_error(
            event_details, HelmError(HelmErrorKind.TIMEOUT, "application-z1", "upgrade", "failed")
        )
        assert error.tag is ErrorKind.HELM_DEPLOY_TIMEOUT
        assert error.hint_message is not None

    def test_unclassified_follows_action(self, event_details: EventDetails) -> None:
        upgrade = HelmError(HelmErrorKind.CMD_ERROR, "application-z1", "upgrade", "failed")
        uninstall = HelmError(HelmErrorKind.CMD_ERROR, "application-z1", "uninstall", "failed")
        assert EngineError.new_helm_error(event_details, upgrade).tag is ErrorKind.HELM_CHARTS_UPGRADE_ERROR
        assert EngineError.new_helm_error(event_details, uninstall).tag is ErrorKind.HELM_CHART_UNINSTALL_ERROR

    def test_keeps_underlying_error(self, event_details: EventDetails) -> None:
        raw = HelmError(HelmErrorKind.CMD_ERROR, "router-z1", "upgrade", "failed", "stderr")
        error = EngineError.new_helm_error(event_details, raw)
        assert error.underlying_error is raw
        assert "router-z1" in error.user_log_message


class TestTerraformErrorTranslation:
    def test_every_kind_is_mapped(self) -> None:
        unmapped = set(TerraformErrorKind) - set(TERRAFORM_ERROR_KINDS) - {TerraformErrorKind.UNKNOWN}
        assert unmapped == set()

    def test_classified_kind_wins(self, event_details: EventDetails) -> None:
        raw = TerraformError(TerraformErrorKind.STATE_LOCKED, "locked")
        error = EngineError.new_terraform_error_while_executing_pipeline(event_details, raw)
        assert error.tag is ErrorKind.TERRAFORM_STATE_LOCKED
        assert error.hint_message is not None

    def test_unknown_falls_back_to_pipeline(self, event_details: EventDetails) -> None:
        raw = TerraformError(TerraformErrorKind.UNKNOWN, "failed")
        error = EngineError.new_terraform_error_while_executing_pipeline(event_details, raw)
        assert error.tag is ErrorKind.TERRAFORM_ERROR_WHILE_EXECUTING_PIPELINE

    def test_plain_command_error_on_destroy(self, event_details: EventDetails) -> None:
        error = EngineError.new_terraform_error_while_executing_destroy_pipeline(
            event_details, CommandError("terraform not found")
        )
        assert error.tag is ErrorKind.TERRAFORM_ERROR_WHILE_EXECUTING_DESTROY_PIPELINE
