"""Health and presence statistics endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from ..dependencies import get_connection_manager
from ..realtime.connection_manager import ConnectionManager

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health(connection_manager: ConnectionManager = Depends(get_connection_manager)) -> dict[str, Any]:
    """Report liveness together with connection, presence and nonce counts."""
    return {"status": "ok", "stats": connection_manager.get_stats()}
