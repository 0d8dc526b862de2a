"""Process configuration loaded from environment variables."""

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field, ValidationError


class ConfigError(ValueError):
    """Required configuration is missing or invalid."""

    pass


class Settings(BaseModel):
    """Bridge settings.

    The Telegram token and the assistant id are required; everything else
    has a default.
    """

    telegram_token: str = Field(min_length=1)
    assistant_id: str = Field(min_length=1)
    openai_api_key: str | None = None
    database_path: str = "./data/sessions.db"
    log_level: str = "INFO"
    reset_command: str = "/restart"
    session_ttl_seconds: float | None = Field(default=None, gt=0)
    cleanup_interval_seconds: float = Field(default=15 * 60, gt=0)
    telegram_mode: Literal["webhook", "polling"] = "webhook"
    telegram_webhook_url: str | None = None
    telegram_webhook_secret: str | None = None
    telegram_api_base: str = "https://api.telegram.org"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from the environment.

        Raises:
            ConfigError: If a required variable is missing or a value is invalid.
        """
        env = os.environ if environ is None else environ

        token = env.get("TELEGRAM_TOKEN") or env.get("telegram_token")
        if not token:
            raise ConfigError("TELEGRAM_TOKEN must be set")
        assistant_id = env.get("ASSISTANT_ID")
        if not assistant_id:
            raise ConfigError("ASSISTANT_ID must be set")

        values: dict[str, object] = {
            "telegram_token": token,
            "assistant_id": assistant_id,
        }
        optional = {
            "openai_api_key": "OPENAI_API_KEY",
            "database_path": "DATABASE_PATH",
            "log_level": "LOG_LEVEL",
            "reset_command": "RESET_COMMAND",
            "session_ttl_seconds": "SESSION_TTL_SECONDS",
            "cleanup_interval_seconds": "CLEANUP_INTERVAL_SECONDS",
            "telegram_mode": "TELEGRAM_MODE",
            "telegram_webhook_url": "TELEGRAM_WEBHOOK_URL",
            "telegram_webhook_secret": "TELEGRAM_WEBHOOK_SECRET",
            "telegram_api_base": "TELEGRAM_API_BASE",
        }
        for field, var in optional.items():
            value = env.get(var)
            if value:
                values[field] = value

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
