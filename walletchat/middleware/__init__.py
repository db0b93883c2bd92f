"""ASGI middleware for walletchat."""
