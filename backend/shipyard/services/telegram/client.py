"""Telegram notification client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from telegram import Bot
from telegram.error import TelegramError as BotAPIError

from .config import TelegramConfig
from .exceptions import TelegramAuthError, TelegramConfigError
from .models import NotificationResult

logger = logging.getLogger(__name__)


class TelegramClient:
    """Async client posting messages to a single configured channel."""

    def __init__(self, config: TelegramConfig, bot: Bot | None = None):
        if not config.bot_token:
            raise TelegramConfigError("bot_token is required")
        if not config.chat_id:
            raise TelegramConfigError("chat_id is required")

        self.config = config
        self._bot = bot
        self._ready = False

    async def __aenter__(self) -> TelegramClient:
        if self._bot is None:
            self._bot = Bot(token=self.config.bot_token)
        try:
            await self._bot.initialize()
        except BotAPIError as e:
            logger.error(f"Failed to initialize Telegram bot: {e}")
            raise TelegramAuthError(f"Invalid bot token: {e}") from e
        self._ready = True
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._bot is not None and self._ready:
            await self._bot.shutdown()
            self._ready = False

    @property
    def bot(self) -> Bot:
        if self._bot is None or not self._ready:
            raise RuntimeError("TelegramClient must be used as async context manager")
        return self._bot

    async def send_message(self, text: str) -> NotificationResult:
        """Send text to the configured channel, retrying on API errors."""
        chat_id = self.config.chat_id
        attempts = max(1, self.config.max_retries)
        last_error: str | None = None

        for attempt in range(1, attempts + 1):
            try:
                message = await self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode=self.config.parse_mode,
                )
                logger.info(f"Notification sent to {chat_id} (message_id: {message.message_id})")
                return NotificationResult(
                    success=True,
                    chat_id=chat_id,
                    message_id=message.message_id,
                    attempts=attempt,
                )
            except BotAPIError as e:
                last_error = e.message or "Telegram error"
                logger.warning(f"Telegram send failed (attempt {attempt}/{attempts}): {last_error}")

            if attempt < attempts:
                await asyncio.sleep(self.config.retry_delay_seconds)

        return NotificationResult(
            success=False,
            chat_id=chat_id,
            attempts=attempts,
            error=last_error or "Message send failed",
        )


def create_telegram_client(
    bot_token: str,
    chat_id: str,
    **overrides: Any,
) -> TelegramClient:
    """Create a TelegramClient for one channel."""
    return TelegramClient(TelegramConfig(bot_token=bot_token, chat_id=chat_id, **overrides))
