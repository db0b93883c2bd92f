"""
Wallet sign-in for walletchat.

Nonce challenges, EIP-712 typed-data reconstruction and signer recovery,
and the HTTP endpoint that issues challenges.
"""

from .address import normalize_address, try_normalize_address
from .nonce_store import NonceChallenge, NonceChallengeStore
from .typed_data import TypedDataVerifier

__all__ = [
    "NonceChallenge",
    "NonceChallengeStore",
    "TypedDataVerifier",
    "normalize_address",
    "try_normalize_address",
]
