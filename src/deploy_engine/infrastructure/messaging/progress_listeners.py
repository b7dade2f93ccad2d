"""Progress listener implementations."""

from __future__ import annotations

import structlog

from deploy_engine.domain.events.progress_events import ProgressInfo, ProgressLevel
from deploy_engine.domain.ports.services import ProgressListener


logger = structlog.get_logger(__name__)


class InMemoryProgressListener(ProgressListener):
    """Keeps every progress event, grouped by channel, for development/testing."""

    def __init__(self) -> None:
        self._events: list[tuple[str, ProgressInfo]] = []

    def _record(self, channel: str, info: ProgressInfo) -> None:
        self._events.append((channel, info))

    def deployment_in_progress(self, info: ProgressInfo) -> None:
        self._record("deployment_in_progress", info)

    def deployment_error(self, info: ProgressInfo) -> None:
        self._record("deployment_error", info)

    def pause_in_progress(self, info: ProgressInfo) -> None:
        self._record("pause_in_progress", info)

    def pause_error(self, info: ProgressInfo) -> None:
        self._record("pause_error", info)

    def delete_in_progress(self, info: ProgressInfo) -> None:
        self._record("delete_in_progress", info)

    def delete_error(self, info: ProgressInfo) -> None:
        self._record("delete_error", info)

    @property
    def events(self) -> list[tuple[str, ProgressInfo]]:
        return list(self._events)

    def events_for(self, scope_id: str) -> list[tuple[str, ProgressInfo]]:
        return [(channel, info) for channel, info in self._events if info.scope.id == scope_id]

    def clear(self) -> None:
        self._events.clear()


class StructlogProgressListener(ProgressListener):
    """Mirrors progress events into the structured log."""

    def _log(self, channel: str, info: ProgressInfo) -> None:
        log = logger.error if info.level is ProgressLevel.ERROR else logger.info
        if info.level is ProgressLevel.DEBUG:
            log = logger.debug
        log(
            "service_progress",
            channel=channel,
            scope=info.scope.kind.value,
            scope_id=info.scope.id,
            level=info.level.value,
            execution_id=info.execution_id,
            progress_message=info.message,
        )

    def deployment_in_progress(self, info: ProgressInfo) -> None:
        self._log("deployment_in_progress", info)

    def deployment_error(self, info: ProgressInfo) -> None:
        self._log("deployment_error", info)

    def pause_in_progress(self, info: ProgressInfo) -> None:
        self._log("pause_in_progress", info)

    def pause_error(self, info: ProgressInfo) -> None:
        self._log("pause_error", info)

    def delete_in_progress(self, info: ProgressInfo) -> None:
        self._log("delete_in_progress", info)

    def delete_error(self, info: ProgressInfo) -> None:
        self._log("delete_error", info)
