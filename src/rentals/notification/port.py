"""Notification port — abstract interface for transactional email dispatch."""

from abc import ABC, abstractmethod


class NotificationPort(ABC):
    """Abstract interface for email dispatch adapters."""

    @abstractmethod
    def send(self, template_params: dict) -> dict:
        """Send one templated email.

        ``template_params`` must include ``to_email``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
