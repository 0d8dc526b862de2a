"""Telegram webhook endpoint."""

import hmac
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException

from assistant_bridge.api.deps import get_bridge
from assistant_bridge.bridge import Bridge
from assistant_bridge.telegram.models import Update

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/telegram/webhook")
async def telegram_webhook(
    update: Update,
    background_tasks: BackgroundTasks,
    bridge: Bridge = Depends(get_bridge),
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> dict[str, bool]:
    """Receive an update from Telegram.

    The update is handled in a background task so Telegram gets its answer
    right away; the reply is sent through the Bot API once the run is done.
    """
    secret = bridge.settings.telegram_webhook_secret
    if secret and not hmac.compare_digest(
        x_telegram_bot_api_secret_token or "", secret
    ):
        raise HTTPException(status_code=403, detail="Invalid secret token")

    if update.chat_text is None:
        logger.debug(f"Ignoring update {update.update_id} without text message")
        return {"ok": True}

    background_tasks.add_task(bridge.handler.handle_update, update)
    return {"ok": True}
