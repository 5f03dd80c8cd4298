"""Telegram notification models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class NotificationResult(BaseModel):
    """Delivery result of one channel message."""

    success: bool
    chat_id: str
    message_id: int | None = None
    attempts: int = 0
    error: str | None = None
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        if self.success:
            return f"Sent to {self.chat_id} (msg_id: {self.message_id})"
        return f"Failed to send to {self.chat_id} after {self.attempts} attempt(s): {self.error}"
