"""HTTP and WebSocket routers for walletchat."""
