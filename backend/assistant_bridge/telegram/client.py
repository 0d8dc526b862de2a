"""Telegram Bot API client built on httpx."""

import logging
from typing import Any

import httpx

from assistant_bridge.telegram.models import Update

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_LIMIT = 4096
# Room for a "[12/34]\n" prefix on multipart replies
CHUNK_PREFIX_RESERVE = 16
REQUEST_TIMEOUT = 30.0  # seconds


class TelegramError(Exception):
    """A Bot API request failed."""

    def __init__(self, message: str, method: str, status_code: int | None = None):
        super().__init__(message)
        self.method = method
        self.status_code = status_code


def split_for_limit(text: str, limit: int) -> list[str]:
    """Split text into pieces of at most ``limit`` characters.

    Splits on the last newline inside the limit when there is one.
    """
    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= limit:
            chunks.append(remaining)
            break
        split_at = remaining.rfind("\n", 0, limit)
        if split_at <= 0:
            split_at = limit
        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].lstrip("\n")
    return chunks


def to_telegram_chunks(text: str) -> list[str]:
    """Split a reply into Telegram-sized messages, numbering multipart ones."""
    stripped = text.strip()
    if not stripped:
        return []

    chunks = split_for_limit(stripped, TELEGRAM_LIMIT - CHUNK_PREFIX_RESERVE)
    if len(chunks) == 1:
        return chunks

    total = len(chunks)
    return [f"[{i}/{total}]\n{chunk}" for i, chunk in enumerate(chunks, start=1)]


class TelegramClient:
    """Minimal async Bot API client.

    Implements the chat transport used by the session handler
    (``send_message``) plus the calls needed to receive updates.
    """

    def __init__(
        self,
        token: str,
        api_base: str = TELEGRAM_API_BASE,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            token: Bot token.
            api_base: Bot API base URL.
            http_client: Optional httpx client (used by tests).
        """
        self._base_url = f"{api_base.rstrip('/')}/bot{token}"
        self._http = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        payload: dict[str, Any],
        timeout: float | None = None,
    ) -> Any:
        """Call a Bot API method and return its ``result`` field.

        Raises:
            TelegramError: On transport errors, HTTP errors or ``ok: false``.
        """
        url = f"{self._base_url}/{method}"
        try:
            if timeout is None:
                response = await self._http.post(url, json=payload)
            else:
                response = await self._http.post(url, json=payload, timeout=timeout)
        except httpx.HTTPError as e:
            raise TelegramError(f"Telegram API {method} failed: {e}", method) from e

        try:
            decoded = response.json()
        except ValueError:
            decoded = {}

        if response.status_code >= 400 or not decoded.get("ok"):
            description = decoded.get("description", response.reason_phrase)
            raise TelegramError(
                f"Telegram API {method} failed: {description}",
                method,
                status_code=response.status_code,
            )
        return decoded.get("result")

    async def send_message(self, chat_id: int | str, text: str) -> None:
        """Send a reply, split into several messages when it is too long."""
        chunks = to_telegram_chunks(text)
        if not chunks:
            logger.debug(f"Not sending empty reply to chat {chat_id}")
            return
        for chunk in chunks:
            await self._request("sendMessage", {"chat_id": chat_id, "text": chunk})

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        """Register the webhook URL for message updates."""
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        await self._request("setWebhook", payload)
        logger.info(f"Registered Telegram webhook {url}")

    async def delete_webhook(self) -> None:
        """Remove the webhook so that getUpdates can be used."""
        await self._request("deleteWebhook", {})

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[Update]:
        """Long-poll for new updates."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        result = await self._request("getUpdates", payload, timeout=timeout + 10)
        if not isinstance(result, list):
            raise TelegramError("Invalid getUpdates response: result is not a list", "getUpdates")
        return [Update.model_validate(item) for item in result]
