"""Telegram service exceptions."""


class TelegramError(Exception):
    """Base Telegram exception."""

    pass


class TelegramAuthError(TelegramError):
    """Bot token rejected."""

    pass


class TelegramConfigError(TelegramError):
    """Token or channel missing."""

    pass
