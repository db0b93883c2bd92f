"""
walletchat - presence and direct-message signaling for EVM wallet identities.

Clients prove ownership of an address by signing an EIP-712 challenge, then
exchange presence, chat membership and direct messages over a WebSocket.
"""

__version__ = "0.1.0"
