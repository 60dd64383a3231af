"""FastAPI application factory."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from shiftwatch import __version__
from shiftwatch.adapters.base import BaseDirectoryClient
from shiftwatch.commands.base_slack import BaseSlackCommand
from shiftwatch.config import get_settings
from shiftwatch.infra.logging_config import LoggingConfig, get_logger
from shiftwatch.routers import agents_router, system, webhooks

logger = get_logger("main")


def create_app(
    testing: bool = False,
    directory_client: Optional[BaseDirectoryClient] = None,
) -> FastAPI:
    """
    Build the application.

    The directory client is constructed here once and shared by all requests
    through ``app.state``. Pass one explicitly to substitute it in tests.
    """
    settings = get_settings()
    if not testing:
        LoggingConfig()

    app = FastAPI(
        title="Shiftwatch API",
        description="Agent activity and response-time tracking from Slack events",
        version=__version__,
    )
    if directory_client is None and not testing:
        directory_client = BaseSlackCommand.build_directory_client(settings)
    app.state.directory_client = directory_client

    app.include_router(webhooks.router)
    app.include_router(system.router)
    app.include_router(agents_router.router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    if not settings.operations_channel_id:
        logger.warning("OPERATIONS_CHANNEL_ID is not set; all events will be ignored")
    return app


app = create_app()
