"""Notification adapter registry.

Uses the fake adapter by default; set NOTIFICATION_ADAPTER=emailjs to send
real email through EmailJS.
"""

import os

from rentals.notification.port import NotificationPort

_notifier: NotificationPort | None = None


def get_notifier() -> NotificationPort:
    """Return the configured notification adapter (singleton)."""
    global _notifier
    if _notifier is None:
        adapter = os.environ.get("NOTIFICATION_ADAPTER", "fake")
        if adapter == "fake":
            from rentals.notification.fake_adapter import FakeNotificationAdapter

            _notifier = FakeNotificationAdapter()
        elif adapter == "emailjs":
            from rentals.notification.emailjs_adapter import EmailJSAdapter

            _notifier = EmailJSAdapter()
        else:
            raise ValueError(f"Unknown notification adapter: {adapter}")
    return _notifier


def set_notifier(notifier: NotificationPort) -> None:
    global _notifier
    _notifier = notifier


def reset_notifier():
    """Reset the notifier singleton (useful for testing)."""
    global _notifier
    _notifier = None
