"""
Dependency injection providers for walletchat.

Endpoints reach shared services through the ApplicationContainer stored on
app.state instead of module-level globals.
"""

from fastapi import Depends, Request

from .container import ApplicationContainer
from .realtime.connection_manager import ConnectionManager


def get_container(request: Request) -> ApplicationContainer:
    """
    Get the application container from request state.

    This is the base dependency that all other dependencies use.
    """
    if not hasattr(request.app.state, "container"):
        raise RuntimeError(
            "ApplicationContainer not found in app.state - ensure container is initialized in lifespan context"
        )
    return request.app.state.container


def get_connection_manager(container: ApplicationContainer = Depends(get_container)) -> ConnectionManager:
    return container.connection_manager
