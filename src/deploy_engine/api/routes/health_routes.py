"""Health check and metrics routes."""

from __future__ import annotations

import os
import shutil
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from deploy_engine.config import get_settings


router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "0.1.0",
    }


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """Readiness check - verifies the external tools and the workspace are usable."""
    engine = get_settings().engine
    checks: dict[str, str] = {}

    for name, binary in (
        ("helm", engine.helm_binary),
        ("terraform", engine.terraform_binary),
        ("kubectl", engine.kubectl_binary),
    ):
        checks[name] = "ok" if shutil.which(binary) else "missing"

    # The workspace root is created on first use, so its parent must be writable.
    workspace = engine.workspace_root_dir
    if not os.path.isdir(workspace):
        workspace = os.path.dirname(os.path.abspath(workspace))
    checks["workspace"] = "ok" if os.access(workspace, os.W_OK) else "not_writable"
    checks["lib"] = "ok" if os.path.isdir(engine.lib_root_dir) else "missing"

    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check - verifies the service is running."""
    return {"status": "alive"}


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    if not get_settings().observability.metrics_enabled:
        return Response(status_code=404)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
