"""Notification channel adapter — pluggable customer messaging."""

import os

_channel_instance = None


def get_channel():
    """Return the configured channel adapter (singleton).

    Uses FakeEmailChannel by default. Select another adapter with the
    NOTIFICATION_CHANNEL environment variable.
    """
    global _channel_instance
    if _channel_instance is None:
        adapter = os.environ.get("NOTIFICATION_CHANNEL", "fake")
        if adapter == "fake":
            from commerce.channel.fake_email import FakeEmailChannel

            _channel_instance = FakeEmailChannel()
        else:
            raise ValueError(f"Unknown notification channel: {adapter}")
    return _channel_instance


def set_channel(channel) -> None:
    global _channel_instance
    _channel_instance = channel


def reset_channel():
    """Reset the channel singleton (useful for testing)."""
    global _channel_instance
    _channel_instance = None
