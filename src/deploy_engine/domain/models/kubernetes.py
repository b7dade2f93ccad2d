"""Kubernetes, Helm and Terraform value objects exchanged with collaborators."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field

from deploy_engine.domain.models.base import ValueObject


class PodPhase(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class PodCondition(ValueObject):
    type: str
    status: str
    reason: str | None = None
    message: str | None = None


class ContainerStatus(ValueObject):
    name: str
    ready: bool = False
    restart_count: int = 0
    waiting_reason: str | None = None
    waiting_message: str | None = None
    last_terminated_reason: str | None = None
    last_terminated_message: str | None = None
    last_terminated_exit_code: int | None = None


class Pod(ValueObject):
    name: str
    namespace: str
    phase: PodPhase = PodPhase.UNKNOWN
    conditions: list[PodCondition] = Field(default_factory=list)
    container_statuses: list[ContainerStatus] = Field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        if self.phase is not PodPhase.RUNNING:
            return False
        return any(c.type == "Ready" and c.status.lower() == "true" for c in self.conditions)


class KubeEvent(ValueObject):
    type: str
    reason: str = ""
    message: str = ""
    last_timestamp: datetime | None = None

    @property
    def is_normal(self) -> bool:
        return self.type.lower() == "normal"


class ScalingKind(str, Enum):
    DEPLOYMENT = "deployment"
    STATEFULSET = "statefulset"


class StatefulsetVolume(ValueObject):
    """Volume claim template of a StatefulSet with its requested size."""

    name: str
    storage: str


class InvalidPVCStorage(ValueObject):
    pvc_name: str
    required_disk_size_in_gib: int


class InvalidStatefulsetStorage(ValueObject):
    """Storage of a running database smaller than what is now requested."""

    service_type: str
    service_id: str
    statefulset_selector: str
    statefulset_name: str
    invalid_pvcs: list[InvalidPVCStorage]


class ChartSetValue(ValueObject):
    key: str
    value: str


class ChartInfo(ValueObject):
    """Helm release to install or upgrade."""

    name: str
    path: str
    namespace: str
    timeout_in_seconds: int = 600
    values_files: list[str] = Field(default_factory=list)
    values: list[ChartSetValue] = Field(default_factory=list)
    atomic: bool = True
    wait: bool = True
    selector: str | None = None


class ReleaseStatus(str, Enum):
    DEPLOYED = "deployed"
    FAILED = "failed"
    PENDING = "pending"
    UNKNOWN = "unknown"


class DatabaseTerraformConfig(ValueObject):
    """Endpoint of a managed database, written by Terraform after apply."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target_id: str = Field(alias="database_target_id")
    target_hostname: str = Field(alias="database_target_hostname")
    target_fqdn_id: str = Field(alias="database_target_fqdn_id")
    target_fqdn: str = Field(alias="database_target_fqdn")
