"""
Nonce challenge store for wallet sign-in.

Issues one-time, time-limited challenges keyed by a random nonce and tracks
their redemption. Redemption is split in two steps: redeem() validates a
challenge without spending it, consume() spends it once the signature has
been verified. A failed or aborted handshake therefore never burns a nonce,
while two handshakes racing on the same nonce cannot both succeed.
"""

import asyncio
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from ..exceptions import (
    ErrorContext,
    NonceAlreadyConsumedError,
    NonceCapacityError,
    NonceExpiredError,
    NonceNotFoundError,
)
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# 16 bytes of entropy, hex encoded
NONCE_BYTES = 16


def _utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
    """Return an ISO 8601 UTC timestamp with a 'Z' suffix."""
    return moment.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass
class NonceChallenge:
    """A pending sign-in challenge bound to one address and chain."""

    nonce: str
    address: str
    chain_id: int
    domain: str
    uri: str
    issued_at: datetime
    expiration_time: datetime
    consumed: bool = field(default=False)

    def is_expired(self, now: datetime) -> bool:
        """Return True when the challenge can no longer be redeemed."""
        return now >= self.expiration_time


class NonceChallengeStore:
    """
    In-memory store of pending sign-in challenges.

    All operations are guarded by a lock so the store can be shared between
    the HTTP issuance endpoint, the WebSocket handshake and the sweep task.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_pending: int = 10000,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Initialize the nonce store.

        Args:
            ttl_seconds: Lifetime of an issued challenge
            max_pending: Maximum number of stored challenges
            clock: Source of the current UTC time
        """
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_pending = max_pending
        self._clock = clock
        self._challenges: dict[str, NonceChallenge] = {}
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        """Number of stored challenges, including consumed ones awaiting expiry."""
        with self._lock:
            return len(self._challenges)

    def issue(self, address: str, chain_id: int, domain: str, uri: str) -> NonceChallenge:
        """
        Create and store a new challenge.

        Args:
            address: Canonical address the challenge is bound to
            chain_id: EVM chain ID the signature is scoped to
            domain: Domain the sign-in message is bound to
            uri: URI the sign-in message is bound to

        Returns:
            The stored challenge

        Raises:
            NonceCapacityError: If the store is full of unexpired challenges
        """
        now = self._clock()
        with self._lock:
            if len(self._challenges) >= self.max_pending:
                self._sweep_locked(now)
            if len(self._challenges) >= self.max_pending:
                raise NonceCapacityError(
                    "Too many pending sign-in challenges",
                    context=ErrorContext(address=address),
                    details={"max_pending": self.max_pending},
                )

            nonce = secrets.token_hex(NONCE_BYTES)
            while nonce in self._challenges:
                nonce = secrets.token_hex(NONCE_BYTES)

            challenge = NonceChallenge(
                nonce=nonce,
                address=address,
                chain_id=chain_id,
                domain=domain,
                uri=uri,
                # Whole seconds, so the signed timestamps round-trip exactly
                issued_at=now.replace(microsecond=0),
                expiration_time=now.replace(microsecond=0) + self.ttl,
            )
            self._challenges[nonce] = challenge

        logger.debug("Issued sign-in challenge", address=address, chain_id=chain_id)
        return challenge

    def _get_valid_locked(self, nonce: str, now: datetime) -> NonceChallenge:
        challenge = self._challenges.get(nonce)
        if challenge is None:
            raise NonceNotFoundError("Unknown nonce")
        if challenge.is_expired(now):
            del self._challenges[nonce]
            raise NonceExpiredError("Nonce expired", context=ErrorContext(address=challenge.address))
        if challenge.consumed:
            raise NonceAlreadyConsumedError("Nonce already used", context=ErrorContext(address=challenge.address))
        return challenge

    def redeem(self, nonce: str) -> NonceChallenge:
        """
        Look up a redeemable challenge without spending it.

        Raises:
            NonceNotFoundError: If no challenge exists for the nonce
            NonceExpiredError: If the challenge expired (it is deleted)
            NonceAlreadyConsumedError: If the challenge was already consumed
        """
        now = self._clock()
        with self._lock:
            return self._get_valid_locked(nonce, now)

    def consume(self, nonce: str) -> NonceChallenge:
        """
        Spend a challenge after its signature has been verified.

        Performs the same checks as redeem() and marks the challenge consumed
        in one atomic step.
        """
        now = self._clock()
        with self._lock:
            challenge = self._get_valid_locked(nonce, now)
            challenge.consumed = True
        logger.debug("Consumed sign-in challenge", address=challenge.address)
        return challenge

    def _sweep_locked(self, now: datetime) -> int:
        expired = [nonce for nonce, challenge in self._challenges.items() if challenge.is_expired(now)]
        for nonce in expired:
            del self._challenges[nonce]
        return len(expired)

    def sweep_expired(self) -> int:
        """
        Delete every expired challenge, consumed or not.

        Returns:
            Number of challenges removed
        """
        now = self._clock()
        with self._lock:
            removed = self._sweep_locked(now)
            remaining = len(self._challenges)
        if removed:
            logger.debug("Swept expired sign-in challenges", removed=removed, remaining=remaining)
        return removed

    async def run_sweep_loop(self, interval_seconds: float) -> None:
        """Sweep expired challenges every interval until cancelled."""
        logger.info("Nonce sweep loop started", interval_seconds=interval_seconds)
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                self.sweep_expired()
        except asyncio.CancelledError:
            logger.info("Nonce sweep loop stopped")
            raise
