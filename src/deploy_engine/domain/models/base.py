"""Base domain model classes."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel


def generate_id() -> str:
    """Generate a unique identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def to_short_id(long_id: uuid.UUID) -> str:
    """Derive the stable short identifier of a service from its long id.

    The short id is used in Kubernetes object names, so it must start with
    a letter: ``z`` followed by the first 8 hex chars of the UUID.
    """
    return f"z{str(long_id).split('-')[0]}"


class DomainEntity(BaseModel):
    """Base class for mutable domain entities."""

    model_config = {"frozen": False, "validate_assignment": True, "arbitrary_types_allowed": True}


class ValueObject(BaseModel):
    """Base class for value objects (immutable)."""

    model_config = {"frozen": True}
