"""
FastAPI application factory for walletchat.

This module handles FastAPI app creation, middleware configuration,
and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.health import health_router
from ..api.real_time import realtime_router
from ..auth.endpoints import auth_router
from ..config import get_config
from ..config.models import AppConfig
from ..container import ApplicationContainer
from ..error_handlers import register_error_handlers
from ..middleware.correlation_middleware import CorrelationMiddleware
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Configuration to build services from (defaults to get_config())

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = config or get_config()

    app = FastAPI(
        title="walletchat",
        description="Wallet-authenticated presence and direct-message signaling server",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Built eagerly so the services exist even when the lifespan is not run
    app.state.container = ApplicationContainer(config)

    cors_cfg = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors_cfg.allow_origins,
        allow_methods=cors_cfg.allow_methods,
        allow_headers=cors_cfg.allow_headers,
        allow_credentials=cors_cfg.allow_credentials,
        max_age=cors_cfg.max_age,
    )

    app.add_middleware(CorrelationMiddleware, correlation_header="X-Correlation-ID")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_cfg.allow_origins,
        allow_credentials=cors_cfg.allow_credentials,
        allow_methods=[str(m).upper() for m in cors_cfg.allow_methods],
        allow_headers=cors_cfg.allow_headers,
        max_age=cors_cfg.max_age,
    )

    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(realtime_router)
    app.include_router(health_router)

    return app
