"""Session monitoring endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from assistant_bridge.api.deps import get_bridge
from assistant_bridge.bridge import Bridge

router = APIRouter()


# Admin endpoint for monitoring
@router.get("/sessions/stats")
async def get_session_stats(bridge: Bridge = Depends(get_bridge)) -> dict[str, Any]:
    """Get session statistics (admin endpoint)."""
    return await bridge.get_stats()
