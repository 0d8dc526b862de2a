"""Pydantic models for the parts of Telegram updates the bridge reads."""

from pydantic import BaseModel


class Chat(BaseModel):
    """A Telegram chat."""

    id: int
    type: str | None = None


class Message(BaseModel):
    """A Telegram message. Only text messages are relayed."""

    message_id: int
    chat: Chat
    date: int | None = None
    text: str | None = None


class Update(BaseModel):
    """An incoming Telegram update.

    Fields for update kinds the bridge does not handle (edited messages,
    callback queries, ...) are dropped during validation.
    """

    update_id: int
    message: Message | None = None

    @property
    def chat_text(self) -> tuple[int, str] | None:
        """The (chat id, text) pair for text messages, else None."""
        if self.message is None or self.message.text is None:
            return None
        return self.message.chat.id, self.message.text
