"""Telegram to OpenAI assistant bridge."""
