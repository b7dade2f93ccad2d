"""Deployable version allow-lists for containerized databases.

Each function maps a requested version to the pinned version that is
actually deployed, or raises :class:`CommandError` when the version is not
supported. A request may pin only the major (``"13"``) or major and minor
(``"8.0"``); the most recent pinned release of that line is then chosen.
"""

from __future__ import annotations

from deploy_engine.domain.errors import CommandError
from deploy_engine.domain.models.versions import VersionsNumber


def _pinned(versions: dict[str, str]) -> dict[str, VersionsNumber]:
    return {requested: VersionsNumber.parse(pinned) for requested, pinned in versions.items()}


_POSTGRES_VERSIONS = _pinned(
    {
        "10": "10.23.0",
        "11": "11.22.0",
        "12": "12.17.0",
        "13": "13.13.0",
        "14": "14.10.0",
        "15": "15.5.0",
        "16": "16.1.0",
    }
)

_MYSQL_VERSIONS = _pinned(
    {
        "5.7": "5.7.43",
        "8.0": "8.0.35",
        "8": "8.0.35",
    }
)

_MONGODB_VERSIONS = _pinned(
    {
        "4.4": "4.4.15",
        "5.0": "5.0.10",
        "6.0": "6.0.12",
        "7.0": "7.0.4",
        "4": "4.4.15",
        "5": "5.0.10",
        "6": "6.0.12",
        "7": "7.0.4",
    }
)

_REDIS_VERSIONS = _pinned(
    {
        "5": "5.0.14",
        "6": "6.2.14",
        "7": "7.2.3",
    }
)


def _lookup(product: str, requested: VersionsNumber, allowed: dict[str, VersionsNumber]) -> VersionsNumber:
    candidates = []
    if requested.minor is not None:
        candidates.append(f"{requested.major}.{requested.minor}")
    candidates.append(requested.major)

    for candidate in candidates:
        pinned = allowed.get(candidate)
        if pinned is None:
            continue
        # A requested minor line is never swapped for another one.
        if requested.minor is not None and int(requested.minor) != int(pinned.minor or 0):
            break
        # An explicit patch must match the pinned release exactly.
        if requested.patch is not None and str(requested) != str(pinned):
            break
        return pinned

    raise CommandError(
        f"{product} {requested} version is not supported.",
        f"Supported {product} versions: {', '.join(sorted({str(v) for v in allowed.values()}))}",
    )


def is_allowed_containered_postgres_version(requested: VersionsNumber) -> VersionsNumber:
    return _lookup("PostgreSQL", requested, _POSTGRES_VERSIONS)


def is_allowed_containered_mysql_version(requested: VersionsNumber) -> VersionsNumber:
    return _lookup("MySQL", requested, _MYSQL_VERSIONS)


def is_allowed_containered_mongodb_version(requested: VersionsNumber) -> VersionsNumber:
    return _lookup("MongoDB", requested, _MONGODB_VERSIONS)


def is_allowed_containered_redis_version(requested: VersionsNumber) -> VersionsNumber:
    return _lookup("Redis", requested, _REDIS_VERSIONS)
