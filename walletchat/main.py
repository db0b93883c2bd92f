"""
walletchat server - main application entry point.

Sets up logging from configuration and exposes the ASGI app for uvicorn:

    uvicorn walletchat.main:app
"""

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_app(config)


def main() -> None:
    """Start the walletchat server with uvicorn."""
    import uvicorn

    server_config = get_config().server
    uvicorn.run(
        "walletchat.main:app",
        host=server_config.host,
        port=server_config.port,
        reload=False,
        access_log=True,
        use_colors=False,  # Disable colors for structured logging
    )


if __name__ == "__main__":
    main()
