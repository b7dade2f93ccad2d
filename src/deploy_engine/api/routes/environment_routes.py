"""Environment deployment API routes."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from deploy_engine.api.dependencies.services import get_service_container, ServiceContainer
from deploy_engine.api.schemas.environment_schemas import (
    EnvironmentRequest,
    EnvironmentResponse,
    ServiceOutcomeResponse,
)
from deploy_engine.domain.models.environment import DeploymentTarget
from deploy_engine.domain.models.service import Service


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/environments", tags=["environments"])


@router.post("/deploy", response_model=EnvironmentResponse, status_code=status.HTTP_200_OK)
async def deploy_environment(
    request: EnvironmentRequest,
    container: Annotated[ServiceContainer, Depends(get_service_container)],
) -> EnvironmentResponse:
    """Run the requested action of every service of an environment.

    Service failures are reported per service in the response body; only
    invalid input is rejected with a 4xx status.
    """
    engine = container.settings.engine
    context = request.context.to_domain(engine.workspace_root_dir, engine.lib_root_dir)
    cloud_provider = request.cloud_provider.to_domain()
    target = DeploymentTarget(
        kubernetes=request.cluster.to_domain(),
        environment=request.environment.to_domain(),
        cloud_provider=cloud_provider,
        context=context,
    )

    services: list[Service] = [
        *(db.to_domain(context, cloud_provider.kind) for db in request.databases),
        *(app.to_domain(context) for app in request.applications),
        *(r.to_domain(context) for r in request.routers),
    ]
    logger.info(
        "environment_deploy_requested",
        execution_id=context.execution_id,
        namespace=target.environment.namespace,
        services=len(services),
    )

    outcomes = await container.new_worker().run(target, services)
    return EnvironmentResponse(
        execution_id=context.execution_id,
        success=all(o.success for o in outcomes),
        services=[ServiceOutcomeResponse.from_outcome(o) for o in outcomes],
    )
