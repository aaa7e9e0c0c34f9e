"""Notification feed and webhook broadcast."""

from stockpot.notifications.dispatcher import NotificationDispatcher, WebhookNotifier

__all__ = ["NotificationDispatcher", "WebhookNotifier"]
