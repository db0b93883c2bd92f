"""
Application lifecycle management for walletchat.

Creates the ApplicationContainer on startup, publishes it on app.state and
shuts it down again when the server stops.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..container import ApplicationContainer
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once

logger = get_logger("walletchat.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    A container already placed on app.state (by tests, for example) is
    reused instead of building a new one.
    """
    logger.info("Starting walletchat server")

    container = getattr(app.state, "container", None)
    if container is None:
        container = ApplicationContainer(get_config())
        app.state.container = container

    try:
        await container.initialize()
    except Exception as error:
        log_exception_once(logger, "error", "Failed to initialize container", exc=error, lifespan_phase="startup")
        raise

    try:
        yield
    finally:
        await container.shutdown()
        logger.info("walletchat server stopped")
