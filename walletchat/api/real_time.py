"""
Real-time communication API endpoints for walletchat.

The handshake carries the sign-in proof as query parameters:
/ws?address=0x...&signature=0x...&nonce=...
"""

from fastapi import APIRouter, WebSocket

from ..error_types import ErrorType, create_websocket_error_response
from ..realtime.connection_models import HandshakeCredentials
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])

# Try again later
SERVICE_UNAVAILABLE_CLOSE_CODE = 1013


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for presence, direct messages and chat membership."""
    container = getattr(websocket.app.state, "container", None)
    if container is None:
        await websocket.accept()
        await websocket.send_json(
            create_websocket_error_response(ErrorType.INTERNAL_ERROR, "Service temporarily unavailable")
        )
        await websocket.close(code=SERVICE_UNAVAILABLE_CLOSE_CODE)
        return

    credentials = HandshakeCredentials.from_mapping(websocket.query_params)
    logger.debug(
        "WebSocket connection attempt",
        address=credentials.address,
        remote_addr=websocket.client.host if websocket.client else "unknown",
    )

    await handle_websocket_connection(
        websocket,
        credentials,
        container.connection_manager,
        validator=container.message_validator,
    )
