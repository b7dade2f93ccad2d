"""kubectl implementation of the cluster client port.

Every call shells out to kubectl with the kubeconfig of the deployment
target; list queries request ``-o json`` and are parsed into domain models.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from deploy_engine.domain.errors import CommandError
from deploy_engine.domain.models.environment import ToolEnvironment
from deploy_engine.domain.models.kubernetes import (
    ContainerStatus,
    KubeEvent,
    Pod,
    PodCondition,
    PodPhase,
    ScalingKind,
    StatefulsetVolume,
)
from deploy_engine.domain.ports.services import ClusterClient
from deploy_engine.infrastructure.process.runner import CommandRunner


logger = structlog.get_logger(__name__)

LOGS_TAIL_LINES = 1000


def parse_pod(item: dict[str, Any]) -> Pod:
    metadata = item.get("metadata", {})
    status = item.get("status", {})

    try:
        phase = PodPhase(status.get("phase", "Unknown"))
    except ValueError:
        phase = PodPhase.UNKNOWN

    conditions = [
        PodCondition(
            type=c.get("type", ""),
            status=c.get("status", ""),
            reason=c.get("reason"),
            message=c.get("message"),
        )
        for c in status.get("conditions") or []
    ]

    container_statuses = []
    for cs in status.get("containerStatuses") or []:
        waiting = (cs.get("state") or {}).get("waiting") or {}
        terminated = (cs.get("lastState") or {}).get("terminated") or {}
        container_statuses.append(
            ContainerStatus(
                name=cs.get("name", ""),
                ready=bool(cs.get("ready", False)),
                restart_count=int(cs.get("restartCount", 0)),
                waiting_reason=waiting.get("reason"),
                waiting_message=waiting.get("message"),
                last_terminated_reason=terminated.get("reason"),
                last_terminated_message=terminated.get("message"),
                last_terminated_exit_code=terminated.get("exitCode"),
            )
        )

    return Pod(
        name=metadata.get("name", ""),
        namespace=metadata.get("namespace", ""),
        phase=phase,
        conditions=conditions,
        container_statuses=container_statuses,
    )


def parse_event(item: dict[str, Any]) -> KubeEvent:
    return KubeEvent(
        type=item.get("type") or "",
        reason=item.get("reason") or "",
        message=item.get("message") or "",
        last_timestamp=item.get("lastTimestamp") or item.get("eventTime"),
    )


class KubectlClient(ClusterClient):
    """Cluster access through the kubectl binary."""

    def __init__(self, runner: CommandRunner, kubectl_binary: str = "kubectl") -> None:
        self._runner = runner
        self._binary = kubectl_binary

    async def _kubectl(self, env: ToolEnvironment, *args: str) -> str:
        return await self._runner.run_checked([self._binary, *args], env)

    async def _kubectl_json(self, env: ToolEnvironment, *args: str) -> dict[str, Any]:
        output = await self._kubectl(env, *args, "-o", "json")
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise CommandError(
                f"Cannot parse kubectl `{args[0]} {args[1]}` output.", str(e), env.env_vars
            ) from e

    async def create_namespace(self, env: ToolEnvironment, namespace: str, labels: dict[str, str]) -> None:
        result = await self._runner.run([self._binary, "create", "namespace", namespace], env)
        if not result.success:
            if "AlreadyExists" not in result.stderr:
                raise CommandError(
                    f"Cannot create namespace `{namespace}`.", result.stderr.strip(), env.env_vars
                )
            logger.debug("namespace_already_exists", namespace=namespace)

        if labels:
            await self._kubectl(
                env,
                "label",
                "namespace",
                namespace,
                *(f"{key}={value}" for key, value in sorted(labels.items())),
                "--overwrite",
            )

    async def get_pods(self, env: ToolEnvironment, namespace: str, selector: str) -> list[Pod]:
        data = await self._kubectl_json(env, "get", "pods", "-n", namespace, "-l", selector)
        return [parse_pod(item) for item in data.get("items", [])]

    async def delete_pod(self, env: ToolEnvironment, namespace: str, name: str) -> None:
        await self._kubectl(env, "delete", "pod", name, "-n", namespace, "--ignore-not-found")

    async def delete_secret(self, env: ToolEnvironment, namespace: str, name: str) -> None:
        await self._kubectl(env, "delete", "secret", name, "-n", namespace, "--ignore-not-found")

    async def scale_replicas_by_selector(
        self,
        env: ToolEnvironment,
        namespace: str,
        kind: ScalingKind,
        selector: str,
        replicas: int,
    ) -> None:
        await self._kubectl(
            env, "scale", kind.value, "-n", namespace, "-l", selector, f"--replicas={replicas}"
        )

    async def get_logs(self, env: ToolEnvironment, namespace: str, selector: str) -> list[str]:
        output = await self._kubectl(
            env,
            "logs",
            "-n",
            namespace,
            "-l",
            selector,
            "--all-containers",
            "--prefix",
            f"--tail={LOGS_TAIL_LINES}",
        )
        return [line for line in output.splitlines() if line]

    async def get_events(self, env: ToolEnvironment, namespace: str) -> list[KubeEvent]:
        data = await self._kubectl_json(env, "get", "events", "-n", namespace)
        return [parse_event(item) for item in data.get("items", [])]

    async def get_statefulset_volumes(
        self, env: ToolEnvironment, namespace: str, selector: str
    ) -> tuple[str, list[StatefulsetVolume]] | None:
        data = await self._kubectl_json(env, "get", "statefulsets", "-n", namespace, "-l", selector)
        items = data.get("items", [])
        if not items:
            return None

        statefulset = items[0]
        volumes = [
            StatefulsetVolume(
                name=template.get("metadata", {}).get("name", ""),
                storage=template.get("spec", {}).get("resources", {}).get("requests", {}).get("storage", ""),
            )
            for template in statefulset.get("spec", {}).get("volumeClaimTemplates") or []
        ]
        return statefulset.get("metadata", {}).get("name", ""), volumes

    async def get_pvc_names(self, env: ToolEnvironment, namespace: str, selector: str) -> list[str]:
        data = await self._kubectl_json(env, "get", "pvc", "-n", namespace, "-l", selector)
        return [item.get("metadata", {}).get("name", "") for item in data.get("items", [])]
