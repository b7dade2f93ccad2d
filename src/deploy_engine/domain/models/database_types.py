"""Database modes, engines and the (mode, engine) strategy table."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from deploy_engine.domain.models.base import ValueObject
from deploy_engine.domain.models.cloud_provider import CloudProviderKind


class DatabaseMode(str, Enum):
    MANAGED = "managed"
    CONTAINER = "container"

    @property
    def is_managed(self) -> bool:
        return self is DatabaseMode.MANAGED


class DatabaseEngine(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    REDIS = "redis"

    @property
    def display_name(self) -> str:
        return _ENGINE_DISPLAY_NAMES[self]


_ENGINE_DISPLAY_NAMES: dict[DatabaseEngine, str] = {
    DatabaseEngine.POSTGRESQL: "PostgreSQL",
    DatabaseEngine.MYSQL: "MySQL",
    DatabaseEngine.MONGODB: "MongoDB",
    DatabaseEngine.REDIS: "Redis",
}


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class DatabaseTypeDescriptor:
    """Strategy entry describing how one engine is deployed in one mode.

    The resource hooks may auto-correct requested sizing; by default they
    keep the requested value.
    """

    mode: DatabaseMode
    engine: DatabaseEngine
    short_name: str
    lib_directory_name: str
    cpu_validate: Callable[[str], str] = field(default=_identity)
    cpu_burst_value: Callable[[str], str] = field(default=_identity)
    memory_validate: Callable[[int], int] = field(default=_identity)


def _descriptor(mode: DatabaseMode, engine: DatabaseEngine, short_name: str) -> DatabaseTypeDescriptor:
    return DatabaseTypeDescriptor(
        mode=mode,
        engine=engine,
        short_name=short_name,
        lib_directory_name=engine.value,
    )


DATABASE_TYPES: dict[tuple[DatabaseMode, DatabaseEngine], DatabaseTypeDescriptor] = {
    (mode, engine): _descriptor(mode, engine, short_name)
    for mode in DatabaseMode
    for engine, short_name in (
        (DatabaseEngine.POSTGRESQL, "PostgreSQL"),
        (DatabaseEngine.MYSQL, "MySQL"),
        (DatabaseEngine.MONGODB, "MongoDB"),
        (DatabaseEngine.REDIS, "Redis"),
    )
}

# Managed engines a provider can host through Terraform.
MANAGED_ENGINE_SUPPORT: dict[CloudProviderKind, frozenset[DatabaseEngine]] = {
    CloudProviderKind.AWS: frozenset(DatabaseEngine),
    CloudProviderKind.SCW: frozenset({DatabaseEngine.POSTGRESQL, DatabaseEngine.MYSQL}),
    CloudProviderKind.GCP: frozenset(),
}


def get_database_type(mode: DatabaseMode, engine: DatabaseEngine) -> DatabaseTypeDescriptor:
    return DATABASE_TYPES[(mode, engine)]


class DatabaseInstanceType(ValueObject):
    """Vendor instance class a managed database runs on."""

    cloud_provider: CloudProviderKind
    name: str
    allowed_engines: frozenset[DatabaseEngine]

    def to_cloud_provider_format(self) -> str:
        return self.name

    def is_instance_compatible_with(self, engine: DatabaseEngine) -> bool:
        return engine in self.allowed_engines

    def __str__(self) -> str:
        return self.name


_AWS_RDS = frozenset({DatabaseEngine.POSTGRESQL, DatabaseEngine.MYSQL, DatabaseEngine.MONGODB})
_AWS_ELASTICACHE = frozenset({DatabaseEngine.REDIS})
_SCW_RDB = frozenset({DatabaseEngine.POSTGRESQL, DatabaseEngine.MYSQL})


def _catalogue(
    cloud_provider: CloudProviderKind, entries: dict[str, frozenset[DatabaseEngine]]
) -> dict[str, DatabaseInstanceType]:
    return {
        name: DatabaseInstanceType(cloud_provider=cloud_provider, name=name, allowed_engines=engines)
        for name, engines in entries.items()
    }


INSTANCE_TYPES: dict[CloudProviderKind, dict[str, DatabaseInstanceType]] = {
    CloudProviderKind.AWS: _catalogue(
        CloudProviderKind.AWS,
        {
            "db.t3.micro": _AWS_RDS,
            "db.t3.small": _AWS_RDS,
            "db.t3.medium": _AWS_RDS,
            "db.t4g.medium": _AWS_RDS,
            "db.r5.large": _AWS_RDS,
            "db.r5.xlarge": _AWS_RDS,
            "cache.t3.micro": _AWS_ELASTICACHE,
            "cache.t3.small": _AWS_ELASTICACHE,
            "cache.t3.medium": _AWS_ELASTICACHE,
            "cache.r6g.large": _AWS_ELASTICACHE,
        },
    ),
    CloudProviderKind.SCW: _catalogue(
        CloudProviderKind.SCW,
        {
            "db-dev-s": _SCW_RDB,
            "db-dev-m": _SCW_RDB,
            "db-dev-l": _SCW_RDB,
            "db-dev-xl": _SCW_RDB,
            "db-gp-xs": _SCW_RDB,
            "db-gp-s": _SCW_RDB,
            "db-gp-m": _SCW_RDB,
        },
    ),
    CloudProviderKind.GCP: {},
}


def find_instance_type(name: str) -> DatabaseInstanceType | None:
    """Look an instance type up in every provider catalogue."""
    for catalogue in INSTANCE_TYPES.values():
        if name in catalogue:
            return catalogue[name]
    return None
