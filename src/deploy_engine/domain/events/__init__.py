"""Domain events package."""

from deploy_engine.domain.events.event_details import (
    EnvironmentStep,
    EventDetails,
    InfrastructureStep,
    Stage,
    Transmitter,
    TransmitterKind,
)
from deploy_engine.domain.events.progress_events import (
    ProgressInfo,
    ProgressLevel,
    ProgressScope,
    ProgressScopeKind,
)


__all__ = [
    "EnvironmentStep",
    "EventDetails",
    "InfrastructureStep",
    "ProgressInfo",
    "ProgressLevel",
    "ProgressScope",
    "ProgressScopeKind",
    "Stage",
    "Transmitter",
    "TransmitterKind",
]
