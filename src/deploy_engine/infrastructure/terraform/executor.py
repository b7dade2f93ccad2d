"""Terraform executor implementation."""

from __future__ import annotations

import re

import structlog

from deploy_engine.domain.errors import CommandError, TerraformError, TerraformErrorKind
from deploy_engine.domain.models.environment import ToolEnvironment
from deploy_engine.domain.ports.services import InfraManager
from deploy_engine.infrastructure.process.runner import CommandResult, CommandRunner


logger = structlog.get_logger(__name__)

PLAN_FILE = "tf_plan"

# Checked in order; the first pattern found in stderr wins.
ERROR_PATTERNS: list[tuple[re.Pattern[str], TerraformErrorKind]] = [
    (re.compile(r"Two interrupts received"), TerraformErrorKind.MULTIPLE_INTERRUPTS_RECEIVED),
    (re.compile(r"Error acquiring the state lock"), TerraformErrorKind.STATE_LOCKED),
    (re.compile(r"Failed to delete .*lock"), TerraformErrorKind.CANNOT_DELETE_LOCK_FILE),
    (
        re.compile(r"InvalidClientTokenId|SignatureDoesNotMatch|AuthFailure|No valid credential sources"),
        TerraformErrorKind.INVALID_CREDENTIALS,
    ),
    (re.compile(r"OptInRequired"), TerraformErrorKind.SERVICE_NOT_ACTIVATED_OPT_IN_REQUIRED),
    (
        re.compile(r"PendingVerification|SubscriptionRequiredException|ActivationRequired"),
        TerraformErrorKind.ACTIVATION_REQUIRED,
    ),
    (re.compile(r"AccountBlocked|account is blocked", re.IGNORECASE), TerraformErrorKind.ACCOUNT_BLOCKED_BY_PROVIDER),
    (
        re.compile(r"AccessDenied|UnauthorizedOperation|is not authorized to perform"),
        TerraformErrorKind.NOT_ENOUGH_PERMISSIONS,
    ),
    (
        re.compile(r"QuotaExceeded|LimitExceeded|quota exceeded|quotas reached", re.IGNORECASE),
        TerraformErrorKind.QUOTAS_REACHED,
    ),
    (re.compile(r"timeout while waiting for (state|resource)"), TerraformErrorKind.WAITING_TIMEOUT_RESOURCE),
    (re.compile(r"AlreadyExists|already exists"), TerraformErrorKind.ALREADY_EXISTING_RESOURCE),
    (re.compile(r"DependencyViolation"), TerraformErrorKind.RESOURCE_DEPENDENCY_VIOLATION),
    (
        re.compile(r"InvalidDBInstanceState|InvalidCacheClusterState|is not in available state"),
        TerraformErrorKind.WRONG_STATE,
    ),
    (
        re.compile(r"Invalid DB Instance class|InvalidInstanceType|instance type .* does not exist"),
        TerraformErrorKind.INSTANCE_TYPE_DOESNT_EXIST,
    ),
    (
        re.compile(r"storage size .* cannot be reduced|Invalid storage size.*smaller", re.IGNORECASE),
        TerraformErrorKind.INSTANCE_VOLUME_CANNOT_BE_REDUCED,
    ),
    (re.compile(r"InvalidSubnet\.Range|invalid CIDR", re.IGNORECASE), TerraformErrorKind.INVALID_CIDR_BLOCK),
    (
        re.compile(r"Unsupported Kubernetes minor version update|UpgradeNotSupported"),
        TerraformErrorKind.CLUSTER_UNSUPPORTED_VERSION_UPDATE,
    ),
    (
        re.compile(r"InvalidParameterCombination|InvalidParameterValue"),
        TerraformErrorKind.CONTEXT_UNSUPPORTED_PARAMETER_VALUE,
    ),
    (
        re.compile(r"Unsupported argument|An argument named .* is not expected"),
        TerraformErrorKind.CONFIG_FILE_INVALID_CONTENT,
    ),
]

# Kind used when no pattern matched, per terraform subcommand.
COMMAND_ERROR_KINDS: dict[str, TerraformErrorKind] = {
    "init": TerraformErrorKind.INIT,
    "validate": TerraformErrorKind.VALIDATE,
    "plan": TerraformErrorKind.PLAN,
    "apply": TerraformErrorKind.APPLY,
    "destroy": TerraformErrorKind.DESTROY,
    "state": TerraformErrorKind.STATE_LIST,
}


def classify_terraform_error(subcommand: str, stderr: str) -> TerraformErrorKind:
    for pattern, kind in ERROR_PATTERNS:
        if pattern.search(stderr):
            return kind
    return COMMAND_ERROR_KINDS.get(subcommand, TerraformErrorKind.UNKNOWN)


class TerraformExecutor(InfraManager):
    """Runs the terraform binary in a rendered module directory."""

    def __init__(
        self,
        runner: CommandRunner,
        terraform_binary: str = "terraform",
        command_timeout_in_seconds: float | None = None,
    ) -> None:
        self._runner = runner
        self._binary = terraform_binary
        self._timeout = command_timeout_in_seconds

    async def _terraform(self, env: ToolEnvironment, root_dir: str, *args: str) -> CommandResult:
        subcommand = args[0]
        logger.info("terraform_command", subcommand=subcommand, working_dir=root_dir)
        try:
            result = await self._runner.run(
                [self._binary, *args], env, cwd=root_dir, timeout=self._timeout
            )
        except CommandError as e:
            raise TerraformError(
                COMMAND_ERROR_KINDS.get(subcommand, TerraformErrorKind.UNKNOWN),
                e.message_safe,
                e.full_details,
                env.env_vars,
            ) from e

        if not result.success:
            kind = classify_terraform_error(subcommand, result.stderr)
            logger.warning(
                "terraform_command_failed",
                subcommand=subcommand,
                working_dir=root_dir,
                kind=kind.value,
                returncode=result.returncode,
            )
            raise TerraformError(
                kind,
                f"Error while executing Terraform `{subcommand}` command.",
                result.stderr.strip(),
                env.env_vars,
            )
        return result

    async def _init_validate(self, env: ToolEnvironment, root_dir: str) -> None:
        await self._terraform(env, root_dir, "init", "-no-color", "-input=false", "-upgrade")
        await self._terraform(env, root_dir, "validate", "-no-color")

    async def init_validate_plan_apply(self, env: ToolEnvironment, root_dir: str, dry_run: bool) -> None:
        await self._init_validate(env, root_dir)
        await self._terraform(env, root_dir, "plan", "-no-color", "-input=false", f"-out={PLAN_FILE}")
        if dry_run:
            logger.info("terraform_apply_skipped_dry_run", working_dir=root_dir)
            return
        await self._terraform(env, root_dir, "apply", "-no-color", "-input=false", "-auto-approve", PLAN_FILE)

    async def init_validate_destroy(self, env: ToolEnvironment, root_dir: str, force: bool) -> None:
        """Destroy every resource of the module.

        With ``force`` the state is first reconciled through an apply, so
        resources created by an interrupted run are destroyed as well.
        """
        await self._init_validate(env, root_dir)
        if force:
            await self._terraform(env, root_dir, "apply", "-no-color", "-input=false", "-auto-approve")
        await self._terraform(env, root_dir, "destroy", "-no-color", "-input=false", "-auto-approve")
