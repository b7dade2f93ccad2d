"""Pre-flight checks run before a database is (re)deployed."""

from __future__ import annotations

import math
import re
from collections.abc import Callable

import structlog

from deploy_engine.domain.errors import CommandError, EngineError
from deploy_engine.domain.events.event_details import EventDetails
from deploy_engine.domain.events.progress_events import ProgressInfo, ProgressLevel
from deploy_engine.domain.models.database import Database
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.kubernetes import InvalidPVCStorage, InvalidStatefulsetStorage
from deploy_engine.domain.models.service import Listenable, Service
from deploy_engine.domain.models.versions import ServiceVersionCheckResult, VersionsNumber
from deploy_engine.domain.ports.services import ClusterClient
from deploy_engine.domain.services.listeners import ListenersHelper


logger = structlog.get_logger(__name__)

_QUANTITY = re.compile(r"^(?P<value>\d+(?:\.\d+)?)(?P<unit>[KMGTP]i?|[kE]|Ei)?$")

_BYTES_PER_UNIT: dict[str, int] = {
    "": 1,
    "k": 10**3,
    "K": 10**3,
    "M": 10**6,
    "G": 10**9,
    "T": 10**12,
    "P": 10**15,
    "E": 10**18,
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}


def volume_size_in_gib(quantity: str) -> int:
    """Convert a Kubernetes storage quantity to GiB, rounding up."""
    match = _QUANTITY.match(quantity.strip())
    if match is None:
        raise CommandError(
            f"Cannot convert `{quantity}` to GiB.",
            "Expected a Kubernetes quantity such as 10Gi or 10240Mi",
        )
    size_in_bytes = float(match.group("value")) * _BYTES_PER_UNIT[match.group("unit") or ""]
    return math.ceil(size_in_bytes / 2**30)


def check_service_version(
    listeners: ListenersHelper,
    service: Service,
    event_details: EventDetails,
    resolve_version: Callable[[], str],
) -> ServiceVersionCheckResult:
    """Match the requested version against what can be deployed.

    ``resolve_version`` returns the deployable version or raises
    CommandError when the requested one is not supported.
    """
    scope = service.progress_scope if isinstance(service, Listenable) else None
    execution_id = service.context.execution_id
    service_type = str(service.service_type)

    try:
        version = resolve_version()
    except CommandError as e:
        message = f"{service_type} version {service.version} is not supported!"
        if scope is not None:
            listeners.deployment_error(
                ProgressInfo(scope=scope, level=ProgressLevel.ERROR, message=message, execution_id=execution_id)
            )
        error = EngineError.new_unsupported_version_error(event_details, service_type, service.version)
        logger.error("unsupported_service_version", service_id=service.id, version=service.version)
        raise error from e

    try:
        requested = VersionsNumber.parse(service.version)
    except CommandError as e:
        raise EngineError.new_version_number_parsing_error(event_details, service.version, e) from e
    try:
        matched = VersionsNumber.parse(version)
    except CommandError as e:
        raise EngineError.new_version_number_parsing_error(event_details, version, e) from e

    if service.version == version:
        return ServiceVersionCheckResult(requested_version=requested, matched_version=matched)

    message = (
        f"{service_type} version `{service.version}` has been requested by the user; "
        f"but matching version is `{version}`"
    )
    logger.info("service_version_matched", service_id=service.id, requested=service.version, matched=version)
    if scope is not None:
        listeners.deployment_in_progress(
            ProgressInfo(scope=scope, level=ProgressLevel.INFO, message=message, execution_id=execution_id)
        )
    return ServiceVersionCheckResult(requested_version=requested, matched_version=matched, message=message)


async def get_database_with_invalid_storage_size(
    cluster: ClusterClient,
    target: DeploymentTarget,
    database: Database,
    event_details: EventDetails,
) -> InvalidStatefulsetStorage | None:
    """Compare the requested disk size with the one bound to the running StatefulSet.

    Returns the PVCs to grow when more storage is requested; a smaller size
    is rejected since volumes can't shrink.
    """
    env = target.tool_environment()
    namespace = target.environment.namespace
    selector = database.selector

    try:
        found = await cluster.get_statefulset_volumes(env, namespace, selector)
    except CommandError as e:
        raise EngineError.new_k8s_cannot_get_statefulset(event_details, namespace, selector, e) from e
    if found is None:
        return None

    statefulset_name, volumes = found
    if len(volumes) != 1:
        raise EngineError.new_service_missing_storage(event_details, database.long_id)

    try:
        bound_size = volume_size_in_gib(volumes[0].storage)
    except CommandError as e:
        raise EngineError.new_cannot_parse_string(event_details, volumes[0].storage, e) from e

    requested_size = database.total_disk_size_in_gb
    if requested_size < bound_size:
        raise EngineError.new_invalid_engine_payload(
            event_details,
            f"new storage size ({requested_size}) should be equal or greater than "
            f"actual size ({bound_size})",
        )
    if requested_size == bound_size:
        return None

    try:
        pvc_names = await cluster.get_pvc_names(env, namespace, f"app={database.kube_name}")
    except CommandError as e:
        raise EngineError.new_k8s_cannot_get_pvcs(event_details, namespace, e) from e

    return InvalidStatefulsetStorage(
        service_type=str(database.service_type),
        service_id=str(database.long_id),
        statefulset_selector=selector,
        statefulset_name=statefulset_name,
        invalid_pvcs=[
            InvalidPVCStorage(pvc_name=name, required_disk_size_in_gib=requested_size) for name in pvc_names
        ],
    )
