"""Real-time presence, chat membership and direct-message relay over WebSocket."""
