"""Progress events sent to listeners while a service is being deployed."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from deploy_engine.domain.models.base import ValueObject, utc_now


class ProgressLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ProgressScopeKind(str, Enum):
    APPLICATION = "application"
    DATABASE = "database"
    ROUTER = "router"
    ENVIRONMENT = "environment"
    INFRASTRUCTURE = "infrastructure"


class ProgressScope(ValueObject):
    """Entity a progress event is about."""

    kind: ProgressScopeKind
    id: str

    @classmethod
    def application(cls, long_id: str) -> ProgressScope:
        return cls(kind=ProgressScopeKind.APPLICATION, id=long_id)

    @classmethod
    def database(cls, long_id: str) -> ProgressScope:
        return cls(kind=ProgressScopeKind.DATABASE, id=long_id)

    @classmethod
    def router(cls, long_id: str) -> ProgressScope:
        return cls(kind=ProgressScopeKind.ROUTER, id=long_id)


class ProgressInfo(ValueObject):
    """One progress notification."""

    scope: ProgressScope
    level: ProgressLevel
    message: str | None = None
    execution_id: str
    created_at: datetime = Field(default_factory=utc_now)
