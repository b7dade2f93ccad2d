"""Evidence gathered from the cluster when a service fails to deploy."""

from __future__ import annotations

import structlog

from deploy_engine.domain.errors import CommandError, EngineError
from deploy_engine.domain.events.event_details import EventDetails
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.kubernetes import KubeEvent, Pod
from deploy_engine.domain.models.service import Service
from deploy_engine.domain.ports.services import ClusterClient


logger = structlog.get_logger(__name__)

NO_DEBUG_LOGS = "<no debug logs>"


def describe_pod(pod: Pod) -> list[str]:
    lines: list[str] = []
    for condition in pod.conditions:
        if condition.status.lower() == "false":
            lines.append(
                f"Condition not met to start the container: {condition.type} -> "
                f"{condition.reason}: {condition.message or ''}"
            )
    for status in pod.container_statuses:
        if status.last_terminated_message:
            lines.append(f"terminated state message: {status.last_terminated_message}")
        if status.last_terminated_exit_code is not None:
            lines.append(f"terminated state exit code: {status.last_terminated_exit_code}")
        if status.waiting_message:
            lines.append(f"waiting state message: {status.waiting_message}")
    return lines


def describe_event(event: KubeEvent) -> str | None:
    """One line for an abnormal event, None for normal or empty ones."""
    if event.is_normal or not event.message:
        return None
    timestamp = event.last_timestamp.isoformat() if event.last_timestamp else ""
    return f"{timestamp} {event.type} {event.reason}: {event.message}"


async def get_stateless_resource_information_for_user(
    cluster: ClusterClient,
    target: DeploymentTarget,
    service: Service,
    event_details: EventDetails,
) -> list[str]:
    """Logs, unmet pod conditions, container states and abnormal events.

    Raises EngineError when one of the cluster queries fails.
    """
    env = target.tool_environment()
    namespace = target.environment.namespace
    selector = service.selector
    result: list[str] = []

    try:
        result.extend(await cluster.get_logs(env, namespace, selector))
    except CommandError as e:
        raise EngineError.new_k8s_get_logs_error(event_details, selector, namespace, e) from e

    try:
        pods = await cluster.get_pods(env, namespace, selector)
    except CommandError as e:
        raise EngineError.new_k8s_cannot_get_pods(event_details, e) from e
    for pod in pods:
        result.extend(describe_pod(pod))

    try:
        events = await cluster.get_events(env, namespace)
    except CommandError as e:
        raise EngineError.new_k8s_get_json_events(event_details, namespace, e) from e
    for event in events:
        line = describe_event(event)
        if line is not None:
            result.append(line)

    return result


async def debug_logs(
    cluster: ClusterClient,
    target: DeploymentTarget,
    service: Service,
    event_details: EventDetails,
) -> list[str]:
    """Best-effort variant: a failing query is logged and yields no lines."""
    try:
        return await get_stateless_resource_information_for_user(cluster, target, service, event_details)
    except EngineError as e:
        logger.warning(
            "diagnostics_collection_failed",
            service_id=service.id,
            tag=e.tag.name,
            error=e.user_log_message,
        )
        return []
