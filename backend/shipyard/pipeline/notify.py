"""Pass/fail build notification sent once at the end of every run."""

import html
import logging

from shipyard.config import Settings
from shipyard.pipeline.models import BuildResult
from shipyard.services.telegram import (
    NotificationResult,
    TelegramClient,
    TelegramConfig,
    TelegramError,
)

logger = logging.getLogger(__name__)


def format_build_message(result: BuildResult) -> str:
    """HTML message carrying the status and run identifier."""
    icon = "✅" if result.succeeded else "❌"
    lines = [f"{icon} <b>Build {result.status}</b>", f"Run: <code>{html.escape(result.run_id)}</code>"]
    if result.stage_that_failed:
        lines.append(f"Failed stage: <b>{html.escape(result.stage_that_failed)}</b>")
    tolerated = [o.name for o in result.outcomes if o.status == "tolerated"]
    if tolerated:
        lines.append(f"Tolerated failures: {html.escape(', '.join(tolerated))}")
    return "\n".join(lines)


def telegram_config_from_settings(settings: Settings) -> TelegramConfig:
    return TelegramConfig(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        max_retries=settings.notify.max_retries,
        retry_delay_seconds=settings.notify.retry_delay_seconds,
        parse_mode=settings.notify.parse_mode,
    )


class BuildNotifier:
    """Sends a BuildResult to the configured Telegram channel.

    Delivery problems are logged and reported through the returned
    NotificationResult; they never change the build outcome.
    """

    def __init__(self, settings: Settings, client: TelegramClient | None = None):
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        if self._client is not None:
            return True
        return bool(
            self.settings.notify.enabled
            and self.settings.telegram_bot_token
            and self.settings.telegram_chat_id
        )

    async def __call__(self, result: BuildResult) -> NotificationResult | None:
        if not self.enabled:
            logger.info(f"Notifications disabled; not announcing {result}")
            return None

        client = self._client or TelegramClient(telegram_config_from_settings(self.settings))
        try:
            async with client:
                delivery = await client.send_message(format_build_message(result))
        except TelegramError as e:
            logger.error(f"Could not send build notification for {result.run_id}: {e}")
            return NotificationResult(success=False, chat_id=client.config.chat_id, error=str(e))

        if not delivery.success:
            logger.error(f"Build notification for {result.run_id} not delivered: {delivery}")
        return delivery
