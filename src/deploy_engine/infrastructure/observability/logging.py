"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structured logging with structlog."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def bind_execution(execution_id: str, organization_id: str, cluster_id: str) -> None:
    """Attach the execution identifiers to every log line of the current context."""
    structlog.contextvars.bind_contextvars(
        execution_id=execution_id,
        organization_id=organization_id,
        cluster_id=cluster_id,
    )


def clear_execution() -> None:
    structlog.contextvars.unbind_contextvars("execution_id", "organization_id", "cluster_id")
