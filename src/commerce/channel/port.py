"""Notification channel port — abstract interface for customer-facing dispatch."""

from abc import ABC, abstractmethod


class NotificationPort(ABC):
    channel = "email"

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> dict:
        """Send a message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
