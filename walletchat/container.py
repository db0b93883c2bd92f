"""
Dependency injection container for walletchat.

Builds the shared state objects (nonce store, session registry, chat
membership tracker, rate limiter) once per application and wires them into
the connection manager. Tests create a fresh container per app, so nothing
leaks between them.

USAGE:
    # In application startup (lifespan.py):
    container = ApplicationContainer(get_config())
    await container.initialize()
    app.state.container = container

    # In dependency injection (dependencies.py):
    def get_connection_manager(request: Request) -> ConnectionManager:
        return request.app.state.container.connection_manager
"""

import asyncio

from .auth.nonce_store import NonceChallengeStore
from .auth.typed_data import TypedDataVerifier
from .config.models import AppConfig
from .realtime.chat_membership import ChatMembershipTracker
from .realtime.connection_manager import ConnectionManager
from .realtime.message_validator import WebSocketMessageValidator
from .realtime.rate_limiter import RateLimiter
from .realtime.session_registry import SessionRegistry
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ApplicationContainer:
    """Owns every service of one walletchat application instance."""

    def __init__(self, config: AppConfig) -> None:
        """
        Build the services from configuration.

        Background tasks are not started here; use initialize().
        """
        self.config = config

        self.nonce_store = NonceChallengeStore(
            ttl_seconds=config.auth.nonce_ttl_seconds,
            max_pending=config.auth.max_pending_nonces,
        )
        self.verifier = TypedDataVerifier(
            app_name=config.auth.app_name,
            app_version=config.auth.app_version,
            statement=config.auth.statement,
        )
        self.session_registry = SessionRegistry()
        self.chat_membership = ChatMembershipTracker()
        self.rate_limiter = RateLimiter(
            max_nonce_requests=config.auth.nonce_requests_per_minute,
            max_messages_per_minute=config.realtime.max_messages_per_minute,
        )
        self.message_validator = WebSocketMessageValidator(max_message_size=config.realtime.max_message_size)
        self.connection_manager = ConnectionManager(
            nonce_store=self.nonce_store,
            verifier=self.verifier,
            session_registry=self.session_registry,
            chat_membership=self.chat_membership,
            rate_limiter=self.rate_limiter,
            max_dm_body_length=config.realtime.max_dm_body_length,
        )

        self._sweep_task: asyncio.Task | None = None
        self._cleanup_task: asyncio.Task | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Start background maintenance tasks."""
        if self._initialized:
            logger.warning("Container already initialized - skipping re-initialization")
            return

        self._sweep_task = asyncio.create_task(
            self.nonce_store.run_sweep_loop(self.config.auth.nonce_sweep_interval_seconds),
            name="nonce-sweep",
        )
        self._cleanup_task = asyncio.create_task(
            self.rate_limiter.run_cleanup_loop(self.config.auth.nonce_sweep_interval_seconds),
            name="rate-limit-cleanup",
        )
        self._initialized = True
        logger.info(
            "ApplicationContainer initialized",
            nonce_ttl_seconds=self.config.auth.nonce_ttl_seconds,
            max_pending_nonces=self.config.auth.max_pending_nonces,
        )

    async def shutdown(self) -> None:
        """Cancel background tasks."""
        for task in (self._sweep_task, self._cleanup_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None
        self._cleanup_task = None
        self._initialized = False
        logger.info("ApplicationContainer shut down")

    def is_initialized(self) -> bool:
        return self._initialized
