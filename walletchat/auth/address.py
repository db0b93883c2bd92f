"""
Wallet address canonicalization.

Addresses are compared case-insensitively; the canonical form used in every
registry and on the wire is the lower-case hex string.
"""

from typing import Any

from eth_utils import is_address

from ..exceptions import InvalidAddressError


def normalize_address(value: Any) -> str:
    """
    Return the canonical (lower-case) form of an EVM address.

    Mixed-case input must carry a valid EIP-55 checksum.

    Raises:
        InvalidAddressError: If value is not a well-formed address
    """
    if not isinstance(value, str) or not is_address(value.strip()):
        raise InvalidAddressError("Malformed wallet address", details={"value_type": type(value).__name__})
    candidate = value.strip().lower()
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"
    return candidate


def try_normalize_address(value: Any) -> str | None:
    """Like normalize_address, but returns None for malformed input without raising."""
    if not isinstance(value, str) or not is_address(value.strip()):
        return None
    candidate = value.strip().lower()
    return candidate if candidate.startswith("0x") else f"0x{candidate}"
