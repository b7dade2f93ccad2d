"""Unit tests for the Terraform executor."""

from __future__ import annotations

import pytest
from fakes import ScriptedRunner

from deploy_engine.domain.errors import CommandError, TerraformError, TerraformErrorKind
from deploy_engine.domain.models.environment import ToolEnvironment
from deploy_engine.infrastructure.terraform.executor import classify_terraform_error, TerraformExecutor


ENV = ToolEnvironment(kubeconfig_path="/tmp/kubeconfig", env_vars=[("AWS_ACCESS_KEY_ID", "AKIAFAKE")])  # noqa: S108
ROOT = "/work/databases/orders"


def _subcommands(runner: ScriptedRunner) -> list[str]:
    return [cmd[1] for cmd in runner.calls]


class TestClassifyTerraformError:
    @pytest.mark.parametrize(
        ("stderr", "kind"),
        [
            ("Error: Error acquiring the state lock", TerraformErrorKind.STATE_LOCKED),
            ("InvalidClientTokenId: The security token is invalid", TerraformErrorKind.INVALID_CREDENTIALS),
            (
                "AccessDenied: User is not authorized to perform rds:CreateDBInstance",
                TerraformErrorKind.NOT_ENOUGH_PERMISSIONS,
            ),
            ("InstanceQuotaExceeded: DB instance quota exceeded", TerraformErrorKind.QUOTAS_REACHED),
            ("DBInstanceAlreadyExists: DB instance already exists", TerraformErrorKind.ALREADY_EXISTING_RESOURCE),
            ("InvalidDBInstanceState: instance is not available", TerraformErrorKind.WRONG_STATE),
            ("Error: Unsupported argument", TerraformErrorKind.CONFIG_FILE_INVALID_CONTENT),
        ],
    )
    def test_patterns(self, stderr: str, kind: TerraformErrorKind) -> None:
        assert classify_terraform_error("apply", stderr) is kind

    def test_falls_back_to_subcommand(self) -> None:
        assert classify_terraform_error("plan", "Error: something odd") is TerraformErrorKind.PLAN
        assert classify_terraform_error("output", "Error: something odd") is TerraformErrorKind.UNKNOWN


class TestTerraformExecutor:
    @pytest.mark.asyncio
    async def test_apply_sequence(self) -> None:
        runner = ScriptedRunner()
        await TerraformExecutor(runner).init_validate_plan_apply(ENV, ROOT, dry_run=False)

        assert _subcommands(runner) == ["init", "validate", "plan", "apply"]
        assert runner.calls[2][-1] == "-out=tf_plan"
        assert runner.calls[3][-1] == "tf_plan"
        assert set(runner.cwds) == {ROOT}

    @pytest.mark.asyncio
    async def test_dry_run_skips_apply(self) -> None:
        runner = ScriptedRunner()
        await TerraformExecutor(runner).init_validate_plan_apply(ENV, ROOT, dry_run=True)
        assert _subcommands(runner) == ["init", "validate", "plan"]

    @pytest.mark.asyncio
    async def test_destroy(self) -> None:
        runner = ScriptedRunner()
        await TerraformExecutor(runner).init_validate_destroy(ENV, ROOT, force=False)
        assert _subcommands(runner) == ["init", "validate", "destroy"]

    @pytest.mark.asyncio
    async def test_forced_destroy_applies_first(self) -> None:
        runner = ScriptedRunner()
        await TerraformExecutor(runner).init_validate_destroy(ENV, ROOT, force=True)
        assert _subcommands(runner) == ["init", "validate", "apply", "destroy"]

    @pytest.mark.asyncio
    async def test_failure_stops_sequence(self) -> None:
        runner = ScriptedRunner()
        runner.on("terraform plan", returncode=1, stderr="Error: Error acquiring the state lock\n")

        with pytest.raises(TerraformError) as exc_info:
            await TerraformExecutor(runner).init_validate_plan_apply(ENV, ROOT, dry_run=False)

        error = exc_info.value
        assert error.kind is TerraformErrorKind.STATE_LOCKED
        assert error.env_vars == [("AWS_ACCESS_KEY_ID", "AKIAFAKE")]
        assert _subcommands(runner) == ["init", "validate", "plan"]

    @pytest.mark.asyncio
    async def test_unstartable_binary(self) -> None:
        runner = ScriptedRunner()
        runner.raise_on("tf init", CommandError("Cannot find binary `tf`."))
        with pytest.raises(TerraformError) as exc_info:
            await TerraformExecutor(runner, terraform_binary="tf").init_validate_destroy(ENV, ROOT, force=False)
        assert exc_info.value.kind is TerraformErrorKind.INIT
