"""FastAPI dependencies."""

from fastapi import HTTPException, Request

from assistant_bridge.bridge import Bridge


def get_bridge(request: Request) -> Bridge:
    """Get the running bridge from application state."""
    bridge = getattr(request.app.state, "bridge", None)
    if bridge is None:
        raise HTTPException(status_code=503, detail="Bridge not started")
    return bridge
