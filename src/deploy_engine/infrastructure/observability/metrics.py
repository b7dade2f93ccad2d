"""Prometheus metrics configuration."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
)


# Application info
APP_INFO = Info("deploy_engine", "Deployment engine application info")
APP_INFO.info({
    "version": "0.1.0",
    "service": "deploy-engine",
})

# Service action metrics
SERVICE_ACTIONS_TOTAL = Counter(
    "deploy_engine_service_actions_total",
    "Total number of service lifecycle actions",
    ["service_type", "action", "outcome"],  # outcome: success/failure
)

SERVICE_ACTION_DURATION = Histogram(
    "deploy_engine_service_action_duration_seconds",
    "Time taken by a service lifecycle action",
    ["service_type", "action"],
    buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1200],
)

SERVICE_ACTIONS_IN_PROGRESS = Gauge(
    "deploy_engine_service_actions_in_progress",
    "Number of service lifecycle actions currently running",
)

# API metrics
API_REQUESTS_TOTAL = Counter(
    "deploy_engine_api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status_code"],
)
