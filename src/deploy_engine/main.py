"""Application entrypoint."""

from __future__ import annotations

import uvicorn

from deploy_engine.api.app import create_app
from deploy_engine.config import get_settings
from deploy_engine.infrastructure.observability.logging import setup_logging


app = create_app()


def main() -> None:
    """Run the engine API server."""
    settings = get_settings()
    setup_logging(settings.observability.log_level)

    uvicorn.run(
        "deploy_engine.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug,
        log_level=settings.observability.log_level.lower(),
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout,
    )


if __name__ == "__main__":
    main()
