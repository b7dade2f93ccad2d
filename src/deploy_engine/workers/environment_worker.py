"""Worker driving every service of an environment through its lifecycle action."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from deploy_engine.domain.errors import CommandError, EngineError
from deploy_engine.domain.events.event_details import EnvironmentStep, Stage
from deploy_engine.domain.models.database import Database
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.router import Router
from deploy_engine.domain.models.service import Action, Service
from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator
from deploy_engine.domain.services.lifecycle import run_service_action
from deploy_engine.infrastructure.observability.logging import bind_execution, clear_execution
from deploy_engine.infrastructure.observability.metrics import (
    SERVICE_ACTION_DURATION,
    SERVICE_ACTIONS_IN_PROGRESS,
    SERVICE_ACTIONS_TOTAL,
)
from deploy_engine.infrastructure.observability.tracing import get_tracer


logger = structlog.get_logger(__name__)


@dataclass
class ServiceOutcome:
    """Result of one service action."""

    service_id: str
    service_long_id: str
    service_type: str
    action: Action
    success: bool
    duration_seconds: float = 0.0
    error: EngineError | None = None
    skipped: bool = False


def deployment_groups(services: Sequence[Service]) -> list[list[Service]]:
    """Databases, then applications, then routers; deletion runs in reverse.

    Routers point at applications which may depend on databases, so each
    group waits for the previous one.
    """
    databases = [s for s in services if isinstance(s, Database)]
    routers = [s for s in services if isinstance(s, Router)]
    others = [s for s in services if not isinstance(s, (Database, Router))]
    groups = [databases, others, routers]

    # Services left untouched do not decide the order.
    acting = [s for s in services if s.action is not Action.NOTHING]
    if acting and all(s.action in (Action.DELETE, Action.PAUSE) for s in acting):
        groups.reverse()
    return [group for group in groups if group]


class EnvironmentWorker:
    """Runs service actions with bounded concurrency.

    Services of one group run concurrently, at most ``max_concurrent`` at a
    time. Once cancelled, or once a group failed, no new pipeline is
    launched; pipelines already running are not interrupted.
    """

    def __init__(
        self,
        orchestrator: DeploymentOrchestrator,
        max_concurrent: int = 4,
        worker_id: str | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._worker_id = worker_id or f"worker-{uuid.uuid4().hex[:8]}"
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._cancelled = False
        self._active_services: set[str] = set()
        self._tracer = get_tracer(__name__)

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def active_service_count(self) -> int:
        return len(self._active_services)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop launching new pipelines."""
        self._cancelled = True
        logger.info("worker_cancelled", worker_id=self._worker_id, active_services=self.active_service_count)

    async def run(self, target: DeploymentTarget, services: Sequence[Service]) -> list[ServiceOutcome]:
        context = target.context
        bind_execution(context.execution_id, context.organization_id, context.cluster_id)
        logger.info(
            "environment_run_started",
            worker_id=self._worker_id,
            namespace=target.environment.namespace,
            services=len(services),
        )
        outcomes: list[ServiceOutcome] = []
        try:
            failed = False
            for group in deployment_groups(services):
                if failed or self._cancelled:
                    outcomes.extend(self._skip(service) for service in group)
                    continue
                results = await asyncio.gather(*(self._run_service(target, s) for s in group))
                outcomes.extend(results)
                failed = any(not r.success and not r.skipped for r in results)
        finally:
            logger.info(
                "environment_run_finished",
                worker_id=self._worker_id,
                succeeded=sum(1 for o in outcomes if o.success),
                failed=sum(1 for o in outcomes if not o.success and not o.skipped),
                skipped=sum(1 for o in outcomes if o.skipped),
            )
            clear_execution()
        return outcomes

    def _skip(self, service: Service) -> ServiceOutcome:
        logger.info("service_action_not_launched", service_id=service.id, action=service.action.value)
        return ServiceOutcome(
            service_id=service.id,
            service_long_id=str(service.long_id),
            service_type=service.service_type.kind.value,
            action=service.action,
            success=False,
            skipped=True,
        )

    async def _run_service(self, target: DeploymentTarget, service: Service) -> ServiceOutcome:
        async with self._semaphore:
            if self._cancelled:
                event_details = service.get_event_details(Stage.environment(EnvironmentStep.DEPLOY))
                outcome = self._skip(service)
                outcome.error = EngineError.new_task_cancelled(event_details)
                return outcome

            service_type = service.service_type.kind.value
            action = service.action.value
            self._active_services.add(service.id)
            SERVICE_ACTIONS_IN_PROGRESS.inc()
            started = time.monotonic()
            error: EngineError | None = None

            with self._tracer.start_as_current_span(
                "service_action",
                attributes={
                    "service.id": service.id,
                    "service.type": service_type,
                    "service.action": action,
                    "execution.id": target.context.execution_id,
                },
            ) as span:
                try:
                    await run_service_action(self._orchestrator, target, service)
                except EngineError as e:
                    error = e
                    span.set_attribute("error.tag", e.tag.name)
                except Exception as e:
                    logger.exception("service_action_crashed", service_id=service.id, error=str(e))
                    error = EngineError.new_unknown(
                        service.get_event_details(Stage.environment(EnvironmentStep.DEPLOY)),
                        f"Unexpected error while running {action} on {service_type} `{service.name}`.",
                        CommandError(type(e).__name__, str(e)),
                    )
                    span.record_exception(e)
                finally:
                    self._active_services.discard(service.id)
                    SERVICE_ACTIONS_IN_PROGRESS.dec()

            duration = time.monotonic() - started
            outcome = "success" if error is None else "failure"
            SERVICE_ACTIONS_TOTAL.labels(service_type=service_type, action=action, outcome=outcome).inc()
            SERVICE_ACTION_DURATION.labels(service_type=service_type, action=action).observe(duration)

            return ServiceOutcome(
                service_id=service.id,
                service_long_id=str(service.long_id),
                service_type=service_type,
                action=service.action,
                success=error is None,
                duration_seconds=duration,
                error=error,
            )

    def get_health(self) -> dict[str, Any]:
        """Return a health snapshot of the worker."""
        return {
            "worker_id": self._worker_id,
            "active_services": self.active_service_count,
            "cancelled": self._cancelled,
            "max_concurrent": self._max_concurrent,
        }
