"""FastAPI application entry point."""

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from assistant_bridge.bridge import Bridge
from assistant_bridge.config import Settings

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    # Startup; a ConfigError here aborts the process
    settings = Settings.from_env()
    bridge = await Bridge.create(settings)
    await bridge.start()
    app.state.bridge = bridge
    logger.info(f"Assistant bridge started in {settings.telegram_mode} mode")

    yield

    # Shutdown
    await bridge.shutdown()
    app.state.bridge = None


app = FastAPI(
    title="Assistant Bridge",
    description="Relay Telegram chats to an OpenAI assistant",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers after app is created to avoid circular imports
from assistant_bridge.api import sessions, telegram  # noqa: E402

app.include_router(telegram.router, tags=["telegram"])
app.include_router(sessions.router, prefix="/api/v1", tags=["sessions"])
