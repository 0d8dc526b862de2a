"""Telegram chat transport."""

from assistant_bridge.telegram.client import TelegramClient, TelegramError
from assistant_bridge.telegram.models import Chat, Message, Update
from assistant_bridge.telegram.poller import UpdatePoller

__all__ = [
    "Chat",
    "Message",
    "TelegramClient",
    "TelegramError",
    "Update",
    "UpdatePoller",
]
