"""Application factory and lifecycle management."""
