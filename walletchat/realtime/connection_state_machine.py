"""
Lifecycle state machine for a client WebSocket connection.

States:
- connecting: Socket opened, handshake metadata not yet examined
- authenticating: Nonce redemption and signature recovery in progress
- authenticated: Identity proven and attached to the connection
- closed: Terminal; reached from any other state

A connection that fails authentication goes straight to closed. There is no
retry edge: the client must request a fresh nonce and reconnect.
"""

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ClientConnectionStateMachine(StateMachine):
    """State machine for one client connection."""

    connecting = State("Connecting", initial=True)
    authenticating = State("Authenticating")
    authenticated = State("Authenticated")
    closed = State("Closed", final=True)

    begin_authentication = connecting.to(authenticating)
    authentication_succeeded = authenticating.to(authenticated)
    close = connecting.to(closed) | authenticating.to(closed) | authenticated.to(closed)

    def __init__(self, connection_id: str):
        # Set before super().__init__() because on_enter_state fires for the initial state
        self.connection_id = connection_id
        self.address: str | None = None
        super().__init__()

    def on_enter_state(self, state: State, event=None) -> None:
        """Log every transition."""
        logger.debug(
            "Connection state transition",
            connection_id=self.connection_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )

    def on_authentication_succeeded(self, address: str) -> None:
        self.address = address

    @property
    def state_id(self) -> str:
        """Identifier of the current state."""
        return self.current_state.id

    @property
    def is_authenticated(self) -> bool:
        return self.current_state == self.authenticated

    @property
    def is_closed(self) -> bool:
        return self.current_state == self.closed
