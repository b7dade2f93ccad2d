"""Fan-out of progress events to the registered listeners."""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from deploy_engine.domain.events.progress_events import ProgressInfo
from deploy_engine.domain.ports.services import ProgressListener


logger = structlog.get_logger(__name__)


class ListenersHelper:
    """Calls every listener in order; a failing listener never fails a pipeline."""

    def __init__(self, listeners: Iterable[ProgressListener] = ()) -> None:
        self._listeners = list(listeners)

    @property
    def listeners(self) -> list[ProgressListener]:
        return list(self._listeners)

    def add(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def _notify(self, event: str, info: ProgressInfo) -> None:
        for listener in self._listeners:
            callback: Callable[[ProgressInfo], None] = getattr(listener, event)
            try:
                callback(info)
            except Exception as e:
                logger.warning(
                    "progress_listener_failed",
                    listener=type(listener).__name__,
                    progress_event=event,
                    error=str(e),
                )

    def deployment_in_progress(self, info: ProgressInfo) -> None:
        self._notify("deployment_in_progress", info)

    def deployment_error(self, info: ProgressInfo) -> None:
        self._notify("deployment_error", info)

    def pause_in_progress(self, info: ProgressInfo) -> None:
        self._notify("pause_in_progress", info)

    def pause_error(self, info: ProgressInfo) -> None:
        self._notify("pause_error", info)

    def delete_in_progress(self, info: ProgressInfo) -> None:
        self._notify("delete_in_progress", info)

    def delete_error(self, info: ProgressInfo) -> None:
        self._notify("delete_error", info)
