"""
EIP-712 sign-in message construction and signer recovery.

The typed-data payload is rebuilt from the stored challenge and server
constants only. Nothing the client sends during the handshake other than the
signature itself reaches the encoder.
"""

from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import decode_hex

from ..exceptions import InvalidSignatureError
from ..structured_logging.enhanced_logging_config import get_logger
from .nonce_store import NonceChallenge, format_timestamp

logger = get_logger(__name__)

PRIMARY_TYPE = "SignIn"

# r (32) + s (32) + v (1)
SIGNATURE_LENGTH = 65

# chainId is encoded as uint256
MAX_CHAIN_ID = 2**256 - 1

SIGN_IN_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
    ],
    PRIMARY_TYPE: [
        {"name": "domain", "type": "string"},
        {"name": "address", "type": "address"},
        {"name": "statement", "type": "string"},
        {"name": "uri", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "nonce", "type": "string"},
        {"name": "issuedAt", "type": "string"},
        {"name": "expirationTime", "type": "string"},
    ],
}


class TypedDataVerifier:
    """Builds the sign-in typed data for a challenge and recovers its signer."""

    def __init__(self, app_name: str, app_version: str, statement: str) -> None:
        self.app_name = app_name
        self.app_version = app_version
        self.statement = statement

    def build_message(self, challenge: NonceChallenge) -> dict[str, Any]:
        """
        Reconstruct the full EIP-712 message a wallet signs for this challenge.

        The result is deterministic for a given challenge and is the same
        document returned to the client by the nonce endpoint.
        """
        return {
            "types": {name: [dict(entry) for entry in fields] for name, fields in SIGN_IN_TYPES.items()},
            "primaryType": PRIMARY_TYPE,
            "domain": {
                "name": self.app_name,
                "version": self.app_version,
                "chainId": challenge.chain_id,
            },
            "message": {
                "domain": challenge.domain,
                "address": challenge.address,
                "statement": self.statement,
                "uri": challenge.uri,
                "version": self.app_version,
                "chainId": challenge.chain_id,
                "nonce": challenge.nonce,
                "issuedAt": format_timestamp(challenge.issued_at),
                "expirationTime": format_timestamp(challenge.expiration_time),
            },
        }

    def verify(self, message: dict[str, Any], signature: str) -> str:
        """
        Recover the address that signed the typed-data message.

        Args:
            message: Full EIP-712 message as produced by build_message
            signature: Hex-encoded 65-byte signature

        Returns:
            The recovered address in canonical lower-case form

        Raises:
            InvalidSignatureError: If the signature is malformed or recovery fails
        """
        try:
            signature_bytes = decode_hex(signature)
        except (TypeError, ValueError) as e:
            raise InvalidSignatureError("Signature is not valid hex", details={"error": type(e).__name__}) from e

        if len(signature_bytes) != SIGNATURE_LENGTH:
            raise InvalidSignatureError(
                "Signature has the wrong length",
                details={"length": len(signature_bytes), "expected": SIGNATURE_LENGTH},
            )

        try:
            signable = encode_typed_data(full_message=message)
            recovered = Account.recover_message(signable, signature=signature_bytes)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: eth_account raises several unrelated types for bad input
            raise InvalidSignatureError("Signer recovery failed", details={"error": type(e).__name__}) from e

        return recovered.lower()
