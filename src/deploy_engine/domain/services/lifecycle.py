"""Action dispatch and progress reporting around a service lifecycle run."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum

import structlog

from deploy_engine.domain.errors import EngineError
from deploy_engine.domain.events.event_details import EnvironmentStep, EventDetails, Stage
from deploy_engine.domain.events.progress_events import ProgressInfo, ProgressLevel
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.service import Action, Lifecycle, Listenable, Service
from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator
from deploy_engine.domain.services.diagnostics import NO_DEBUG_LOGS
from deploy_engine.domain.services.listeners import ListenersHelper


logger = structlog.get_logger(__name__)


class CheckAction(str, Enum):
    """Listener channel a lifecycle run reports on."""

    DEPLOY = "deploy"
    PAUSE = "pause"
    DELETE = "delete"

    @property
    def verb(self) -> str:
        return {
            CheckAction.DEPLOY: "Deployment",
            CheckAction.PAUSE: "Pause",
            CheckAction.DELETE: "Deletion",
        }[self]

    @property
    def step(self) -> EnvironmentStep:
        return {
            CheckAction.DEPLOY: EnvironmentStep.DEPLOY,
            CheckAction.PAUSE: EnvironmentStep.PAUSE,
            CheckAction.DELETE: EnvironmentStep.DELETE,
        }[self]

    @classmethod
    def for_action(cls, action: Action) -> CheckAction | None:
        return {
            Action.CREATE: cls.DEPLOY,
            Action.PAUSE: cls.PAUSE,
            Action.DELETE: cls.DELETE,
        }.get(action)


def _require_lifecycle(service: Service) -> Lifecycle:
    if not isinstance(service, Lifecycle):
        raise TypeError(f"{type(service).__name__} does not implement the service lifecycle")
    return service


async def exec_action(service: Service, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
    """Run the lifecycle hook matching the service action; NOTHING does nothing."""
    if service.action is Action.NOTHING:
        return
    lifecycle = _require_lifecycle(service)
    if service.action is Action.CREATE:
        await lifecycle.on_create(orchestrator, target)
    elif service.action is Action.PAUSE:
        await lifecycle.on_pause(orchestrator, target)
    elif service.action is Action.DELETE:
        await lifecycle.on_delete(orchestrator, target)


async def exec_check_action(
    service: Service, orchestrator: DeploymentOrchestrator, target: DeploymentTarget
) -> None:
    """Run the pre-flight check hook matching the service action."""
    if service.action is Action.NOTHING:
        return
    lifecycle = _require_lifecycle(service)
    if service.action is Action.CREATE:
        await lifecycle.on_create_check(orchestrator, target)
    elif service.action is Action.PAUSE:
        await lifecycle.on_pause_check(orchestrator, target)
    elif service.action is Action.DELETE:
        await lifecycle.on_delete_check(orchestrator, target)


def _notify(listeners: ListenersHelper, action: CheckAction, info: ProgressInfo, error: bool = False) -> None:
    if action is CheckAction.DEPLOY:
        callback = listeners.deployment_error if error else listeners.deployment_in_progress
    elif action is CheckAction.PAUSE:
        callback = listeners.pause_error if error else listeners.pause_in_progress
    else:
        callback = listeners.delete_error if error else listeners.delete_in_progress
    callback(info)


async def check_kubernetes_service_error(
    run: Callable[[], Awaitable[None]],
    orchestrator: DeploymentOrchestrator,
    target: DeploymentTarget,
    service: Service,
    event_details: EventDetails,
    action: CheckAction,
) -> None:
    """Report one lifecycle run to the listeners.

    On failure the listeners get an error event followed by a debug event
    holding the diagnostics gathered from the cluster, and the error is
    raised again with its environment variables stripped.
    """
    if not isinstance(service, Listenable):
        await run()
        return

    listeners = orchestrator.listeners
    execution_id = target.context.execution_id
    service_type = service.service_type.kind.value
    message = f"{action.verb} {service_type} {service.name}"

    _notify(
        listeners,
        action,
        ProgressInfo(
            scope=service.progress_scope, level=ProgressLevel.INFO, message=message, execution_id=execution_id
        ),
    )
    logger.info("service_action_started", service_id=service.id, action=action.value, service_type=service_type)

    try:
        await run()
    except EngineError as e:
        error = e.flattened()
        _notify(
            listeners,
            action,
            ProgressInfo(
                scope=service.progress_scope,
                level=ProgressLevel.ERROR,
                message=f"{action.verb} error {service_type} {service.name} : error => {error!r}",
                execution_id=execution_id,
            ),
            error=True,
        )
        logger.error(
            "service_action_failed",
            service_id=service.id,
            action=action.value,
            service_type=service_type,
            tag=error.tag.name,
            error=error.user_log_message,
        )

        lines = await orchestrator.debug_logs(target, service, event_details)
        _notify(
            listeners,
            action,
            ProgressInfo(
                scope=service.progress_scope,
                level=ProgressLevel.DEBUG,
                message="\n".join(lines) if lines else NO_DEBUG_LOGS,
                execution_id=execution_id,
            ),
            error=True,
        )
        raise error from e

    _notify(
        listeners,
        action,
        ProgressInfo(
            scope=service.progress_scope,
            level=ProgressLevel.INFO,
            message=f"{action.verb} succeeded for {service_type} {service.name}",
            execution_id=execution_id,
        ),
    )
    logger.info("service_action_succeeded", service_id=service.id, action=action.value, service_type=service_type)


async def run_service_action(
    orchestrator: DeploymentOrchestrator, target: DeploymentTarget, service: Service
) -> None:
    """Pre-flight check then lifecycle hook, both reported to the listeners."""
    action = CheckAction.for_action(service.action)
    if action is None:
        logger.debug("service_action_skipped", service_id=service.id)
        return

    async def run() -> None:
        await exec_check_action(service, orchestrator, target)
        await exec_action(service, orchestrator, target)

    event_details = service.get_event_details(Stage.environment(action.step))
    await check_kubernetes_service_error(run, orchestrator, target, service, event_details, action)
