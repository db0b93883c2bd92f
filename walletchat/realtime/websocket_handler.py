"""
WebSocket handler for walletchat real-time communication.

Runs the per-connection receive loop: rate limiting, frame validation and
dispatch through the message handler factory. Teardown always runs when the
loop exits, whatever the cause.
"""

from fastapi import WebSocket, WebSocketDisconnect

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..structured_logging.enhanced_logging_config import (
    bind_request_context,
    clear_request_context,
    get_logger,
)
from .connection_manager import ConnectionManager
from .connection_models import HandshakeCredentials
from .message_handler_factory import MessageHandlerFactory, message_handler_factory
from .message_validator import MessageValidationError, WebSocketMessageValidator

logger = get_logger(__name__)


async def _handle_websocket_message_loop(
    websocket: WebSocket,
    connection_id: str,
    connection_manager: ConnectionManager,
    validator: WebSocketMessageValidator,
    factory: MessageHandlerFactory,
) -> None:
    """Handle the main WebSocket message loop."""
    while True:
        try:
            data = await websocket.receive_text()

            if not connection_manager.rate_limiter.check_message_rate_limit(connection_id):
                rate_limit_info = connection_manager.rate_limiter.get_message_rate_limit_info(connection_id)
                error_response = create_websocket_error_response(
                    ErrorType.RATE_LIMIT_EXCEEDED,
                    f"Message rate limit exceeded. Limit: {rate_limit_info['max_attempts']} messages per minute.",
                    ErrorMessages.TOO_MANY_REQUESTS,
                    {"rate_limit_info": rate_limit_info},
                )
                await websocket.send_json(error_response)
                continue

            try:
                message = validator.parse_and_validate(data=data, connection_id=connection_id)
            except MessageValidationError as e:
                logger.warning(
                    "Message validation failed",
                    connection_id=connection_id,
                    error_type=e.error_type,
                    error_message=e.message,
                )
                error_response = create_websocket_error_response(
                    ErrorType.INVALID_FORMAT,
                    f"Message validation failed: {e.message}",
                    ErrorMessages.INVALID_FORMAT,
                    {"error_type": e.error_type},
                )
                await websocket.send_json(error_response)
                continue

            connection_manager.mark_seen(connection_id)
            await factory.handle_message(connection_manager, connection_id, message)

        except WebSocketDisconnect:
            logger.info("WebSocket disconnected", connection_id=connection_id)
            break

        except RuntimeError as e:
            error_message = str(e)
            if "WebSocket is not connected" in error_message or 'Need to call "accept" first' in error_message:
                logger.warning("WebSocket connection lost", connection_id=connection_id, error=error_message)
                break
            raise

        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a faulty frame must not kill the connection
            logger.error(
                "Error handling WebSocket message",
                connection_id=connection_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            error_response = create_websocket_error_response(
                ErrorType.MESSAGE_PROCESSING_ERROR,
                "Error processing message",
                ErrorMessages.MESSAGE_PROCESSING_ERROR,
                {"error_type": type(e).__name__},
            )
            if not await connection_manager.send_to_connection(connection_id, error_response):
                break


async def handle_websocket_connection(
    websocket: WebSocket,
    credentials: HandshakeCredentials,
    connection_manager: ConnectionManager,
    validator: WebSocketMessageValidator | None = None,
    factory: MessageHandlerFactory | None = None,
) -> None:
    """
    Handle a WebSocket connection from handshake to teardown.

    Args:
        websocket: The WebSocket connection
        credentials: Sign-in proof from the handshake metadata
        connection_manager: ConnectionManager instance (injected from endpoint)
        validator: Frame validator (defaults to one with standard limits)
        factory: Message router (defaults to the module-level factory)
    """
    metadata = await connection_manager.connect(websocket, credentials)
    if metadata is None:
        return

    connection_id = metadata.connection_id
    bind_request_context(connection_id=connection_id, address=metadata.address)
    try:
        await _handle_websocket_message_loop(
            websocket,
            connection_id,
            connection_manager,
            validator or WebSocketMessageValidator(),
            factory or message_handler_factory,
        )
    finally:
        await connection_manager.disconnect(connection_id)
        clear_request_context()
