"""HTTP router exposing applications on a default and custom domains."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, ClassVar
from uuid import UUID

from pydantic import Field, model_validator

from deploy_engine.domain.errors import EngineError
from deploy_engine.domain.events.event_details import EnvironmentStep, Stage, TransmitterKind
from deploy_engine.domain.events.progress_events import ProgressScope
from deploy_engine.domain.models.base import ValueObject
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.service import (
    default_template_context,
    HelmDeployable,
    Lifecycle,
    Listenable,
    Service,
    ServiceKind,
    ServiceType,
)

if TYPE_CHECKING:
    from deploy_engine.domain.services.deployment_service import DeploymentOrchestrator


_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def is_valid_hostname(hostname: str) -> bool:
    """Check a DNS hostname, allowing a single leading ``*.`` wildcard."""
    if hostname.startswith("*."):
        hostname = hostname[2:]
    hostname = hostname.rstrip(".")
    if not hostname or len(hostname) > 253:
        return False
    return all(_HOSTNAME_LABEL.match(label) for label in hostname.split("."))


class RouterError(Exception):
    """Router definition that cannot be turned into a deployable service."""

    @classmethod
    def invalid_config(cls, message: str) -> RouterError:
        return cls(f"Router invalid configuration: {message}")


class CustomDomain(ValueObject):
    domain: str
    target_domain: str
    generate_certificate: bool = True


class Route(ValueObject):
    path: str
    service_long_id: UUID


class Router(Service, Lifecycle, HelmDeployable, Listenable):
    workspace_subdirectory: ClassVar[str] = "routers"
    transmitter_kind: ClassVar[TransmitterKind] = TransmitterKind.ROUTER

    default_domain: str
    public_port: int = 443
    custom_domains: list[CustomDomain] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_default_domain(self) -> Router:
        if not self.default_domain:
            raise RouterError.invalid_config("a router needs a default domain")
        return self

    @property
    def service_type(self) -> ServiceType:
        return ServiceType(kind=ServiceKind.ROUTER)

    @property
    def selector(self) -> str:
        return f"routerId={self.id}"

    @property
    def progress_scope(self) -> ProgressScope:
        return ProgressScope.router(str(self.long_id))

    @property
    def helm_release_name(self) -> str:
        return f"router-{self.id}"

    @property
    def helm_chart_dir(self) -> str:
        return f"{self.context.lib_root_dir}/common/charts/q-ingress-tls"

    def template_context(self, target: DeploymentTarget) -> dict[str, Any]:
        context = default_template_context(self, target)
        context.update(
            {
                "router_default_domain": self.default_domain,
                "router_default_domain_hash": self.id,
                "public_port": self.public_port,
                "custom_domains": [d.model_dump() for d in self.custom_domains],
                "has_custom_domains": bool(self.custom_domains),
                "routes": [
                    {"path": r.path, "service_long_id": str(r.service_long_id)} for r in self.routes
                ],
            }
        )
        return context

    def validate_definition(self) -> None:
        """Raise INVALID_ENGINE_PAYLOAD on malformed domains or route paths."""
        event_details = self.get_event_details(Stage.environment(EnvironmentStep.VALIDATE_SYSTEM_REQUIREMENTS))
        for custom_domain in self.custom_domains:
            if not is_valid_hostname(custom_domain.domain):
                raise EngineError.new_invalid_engine_payload(
                    event_details, f"custom domain `{custom_domain.domain}` is not a valid hostname"
                )
        for route in self.routes:
            if not route.path.startswith("/"):
                raise EngineError.new_invalid_engine_payload(
                    event_details, f"route path `{route.path}` must start with `/`"
                )

    async def on_create(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.deploy_stateless_service(target, self)

    async def on_create_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        self.validate_definition()

    async def on_pause(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.delete_stateless_service(target, self)

    async def on_pause_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None

    async def on_delete(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        await orchestrator.delete_stateless_service(target, self)

    async def on_delete_check(self, orchestrator: DeploymentOrchestrator, target: DeploymentTarget) -> None:
        return None
