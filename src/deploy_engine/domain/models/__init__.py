"""Domain models package."""

from deploy_engine.domain.models.base import (
    DomainEntity,
    generate_id,
    to_short_id,
    utc_now,
    ValueObject,
)
from deploy_engine.domain.models.cloud_provider import CloudProviderKind
from deploy_engine.domain.models.database_types import (
    DATABASE_TYPES,
    DatabaseEngine,
    DatabaseInstanceType,
    DatabaseMode,
    DatabaseTypeDescriptor,
    INSTANCE_TYPES,
    MANAGED_ENGINE_SUPPORT,
)


__all__ = [
    "CloudProviderKind",
    "DATABASE_TYPES",
    "DatabaseEngine",
    "DatabaseInstanceType",
    "DatabaseMode",
    "DatabaseTypeDescriptor",
    "DomainEntity",
    "INSTANCE_TYPES",
    "MANAGED_ENGINE_SUPPORT",
    "ValueObject",
    "generate_id",
    "to_short_id",
    "utc_now",
]
