"""Cloud provider domain models."""

from __future__ import annotations

from enum import Enum


class CloudProviderKind(str, Enum):
    """Supported cloud providers."""

    AWS = "aws"
    SCW = "scw"
    GCP = "gcp"

    @property
    def lib_directory_name(self) -> str:
        """Directory holding this provider's charts and Terraform modules."""
        return _LIB_DIRECTORY_NAMES[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_LIB_DIRECTORY_NAMES: dict[CloudProviderKind, str] = {
    CloudProviderKind.AWS: "aws",
    CloudProviderKind.SCW: "scaleway",
    CloudProviderKind.GCP: "gcp",
}

_DISPLAY_NAMES: dict[CloudProviderKind, str] = {
    CloudProviderKind.AWS: "AWS",
    CloudProviderKind.SCW: "Scaleway",
    CloudProviderKind.GCP: "GCP",
}
