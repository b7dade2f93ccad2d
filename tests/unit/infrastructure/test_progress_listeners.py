"""Unit tests for progress listener implementations."""

from __future__ import annotations

import pytest

from deploy_engine.domain.events.progress_events import ProgressInfo, ProgressLevel, ProgressScope
from deploy_engine.infrastructure.messaging.progress_listeners import (
    InMemoryProgressListener,
    StructlogProgressListener,
)


def _info(level: ProgressLevel) -> ProgressInfo:
    return ProgressInfo(
        scope=ProgressScope.database("c1b2c3d4-0000-4000-8000-000000000003"),
        level=level,
        message="Deployment database orders",
        execution_id="exec-1",
    )


class TestStructlogProgressListener:
    @pytest.mark.parametrize("level", list(ProgressLevel))
    def test_every_channel_logs(self, level: ProgressLevel) -> None:
        listener = StructlogProgressListener()
        listener.deployment_in_progress(_info(level))
        listener.deployment_error(_info(level))
        listener.pause_in_progress(_info(level))
        listener.pause_error(_info(level))
        listener.delete_in_progress(_info(level))
        listener.delete_error(_info(level))


class TestInMemoryProgressListener:
    def test_records_in_order(self) -> None:
        listener = InMemoryProgressListener()
        listener.delete_in_progress(_info(ProgressLevel.INFO))
        listener.delete_error(_info(ProgressLevel.ERROR))

        assert [(channel, info.level) for channel, info in listener.events] == [
            ("delete_in_progress", ProgressLevel.INFO),
            ("delete_error", ProgressLevel.ERROR),
        ]

    def test_events_are_a_copy(self) -> None:
        listener = InMemoryProgressListener()
        listener.deployment_in_progress(_info(ProgressLevel.INFO))
        listener.events.clear()
        assert len(listener.events) == 1
