"""Version number value objects."""

from __future__ import annotations

import re

from deploy_engine.domain.errors import CommandError
from deploy_engine.domain.models.base import ValueObject


_VERSION_PATTERN = re.compile(
    r"^v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?(?:-(?P<suffix>[0-9A-Za-z.-]+))?$"
)


class VersionsNumber(ValueObject):
    """Loosely specified version: ``major[.minor[.patch[-suffix]]]``."""

    major: str
    minor: str | None = None
    patch: str | None = None
    suffix: str | None = None

    @classmethod
    def parse(cls, value: str) -> VersionsNumber:
        """Parse a version string, raising CommandError when malformed."""
        match = _VERSION_PATTERN.match(value.strip())
        if match is None:
            raise CommandError(
                f"Cannot parse `{value}` as a version number.",
                f"`{value}` does not match major[.minor[.patch[-suffix]]]",
            )
        return cls(
            major=match.group("major"),
            minor=match.group("minor"),
            patch=match.group("patch"),
            suffix=match.group("suffix"),
        )

    def to_major_version_string(self) -> str:
        return self.major

    def to_major_minor_version_string(self, default_minor: str = "0") -> str:
        return f"{self.major}.{self.minor or default_minor}"

    def __str__(self) -> str:
        version = self.major
        if self.minor is not None:
            version += f".{self.minor}"
        if self.patch is not None:
            version += f".{self.patch}"
        if self.suffix is not None:
            version += f"-{self.suffix}"
        return version


class ServiceVersionCheckResult(ValueObject):
    """Outcome of matching a requested version against what can be deployed."""

    requested_version: VersionsNumber
    matched_version: VersionsNumber
    message: str | None = None

    @property
    def differs(self) -> bool:
        return str(self.requested_version) != str(self.matched_version)
