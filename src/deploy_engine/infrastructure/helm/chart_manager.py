"""Helm implementation of the chart manager port."""

from __future__ import annotations

import json
import re

import structlog

from deploy_engine.domain.errors import CommandError, HelmError, HelmErrorKind
from deploy_engine.domain.models.environment import ToolEnvironment
from deploy_engine.domain.models.kubernetes import ChartInfo, ReleaseStatus
from deploy_engine.domain.ports.services import ChartManager
from deploy_engine.infrastructure.process.runner import CommandResult, CommandRunner


logger = structlog.get_logger(__name__)

ERROR_PATTERNS: list[tuple[re.Pattern[str], HelmErrorKind]] = [
    (
        re.compile(r"another operation \(install/upgrade/rollback\) is in progress"),
        HelmErrorKind.RELEASE_LOCKED,
    ),
    (re.compile(r"an error occurred while rolling back", re.IGNORECASE), HelmErrorKind.CANNOT_ROLLBACK),
    (re.compile(r"timed out waiting for the condition|context deadline exceeded"), HelmErrorKind.TIMEOUT),
    (re.compile(r"Kubernetes cluster unreachable|invalid configuration"), HelmErrorKind.INVALID_KUBECONFIG),
]

RELEASE_NOT_FOUND = re.compile(r"release: not found")


def classify_helm_error(stderr: str) -> HelmErrorKind:
    for pattern, kind in ERROR_PATTERNS:
        if pattern.search(stderr):
            return kind
    return HelmErrorKind.CMD_ERROR


def upgrade_command(binary: str, chart: ChartInfo) -> list[str]:
    """Command line installing or upgrading a release."""
    cmd = [
        binary,
        "upgrade",
        "--install",
        chart.name,
        chart.path,
        "--namespace",
        chart.namespace,
        "--timeout",
        f"{chart.timeout_in_seconds}s",
        "--history-max",
        "50",
    ]
    if chart.atomic:
        cmd.append("--atomic")
    if chart.wait:
        cmd.append("--wait")
    for values_file in chart.values_files:
        cmd.extend(["-f", values_file])
    for value in chart.values:
        cmd.extend(["--set", f"{value.key}={value.value}"])
    return cmd


class HelmChartManager(ChartManager):
    """Drives the helm binary for one release at a time."""

    def __init__(self, runner: CommandRunner, helm_binary: str = "helm") -> None:
        self._runner = runner
        self._binary = helm_binary

    async def _helm(self, env: ToolEnvironment, chart: ChartInfo, action: str, cmd: list[str]) -> CommandResult:
        try:
            return await self._runner.run(cmd, env)
        except CommandError as e:
            raise HelmError(
                HelmErrorKind.CMD_ERROR, chart.name, action, e.message_safe, e.full_details, env.env_vars
            ) from e

    async def upgrade(self, env: ToolEnvironment, chart: ChartInfo) -> ReleaseStatus:
        logger.info("helm_upgrade", release=chart.name, namespace=chart.namespace, chart_path=chart.path)
        result = await self._helm(env, chart, "upgrade", upgrade_command(self._binary, chart))
        if not result.success:
            kind = classify_helm_error(result.stderr)
            logger.warning("helm_upgrade_failed", release=chart.name, kind=kind.value)
            raise HelmError(
                kind,
                chart.name,
                "upgrade",
                f"Helm upgrade of release `{chart.name}` failed.",
                result.stderr.strip(),
                env.env_vars,
            )
        return await self._status(env, chart)

    async def _status(self, env: ToolEnvironment, chart: ChartInfo) -> ReleaseStatus:
        cmd = [self._binary, "status", chart.name, "--namespace", chart.namespace, "-o", "json"]
        result = await self._helm(env, chart, "status", cmd)
        if not result.success:
            return ReleaseStatus.UNKNOWN
        try:
            status = json.loads(result.stdout).get("info", {}).get("status", "")
        except json.JSONDecodeError:
            return ReleaseStatus.UNKNOWN
        if status.startswith("pending"):
            return ReleaseStatus.PENDING
        try:
            return ReleaseStatus(status)
        except ValueError:
            return ReleaseStatus.UNKNOWN

    async def uninstall(self, env: ToolEnvironment, chart: ChartInfo) -> None:
        logger.info("helm_uninstall", release=chart.name, namespace=chart.namespace)
        cmd = [self._binary, "uninstall", chart.name, "--namespace", chart.namespace, "--wait"]
        result = await self._helm(env, chart, "uninstall", cmd)
        if result.success:
            return
        if RELEASE_NOT_FOUND.search(result.stderr):
            logger.info("helm_release_already_absent", release=chart.name, namespace=chart.namespace)
            return
        raise HelmError(
            classify_helm_error(result.stderr),
            chart.name,
            "uninstall",
            f"Helm uninstall of release `{chart.name}` failed.",
            result.stderr.strip(),
            env.env_vars,
        )
