"""Notification persistence and optional webhook broadcast."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

import httpx

from stockpot.models import InventoryItem, Notification, NotificationCreate, parse_payload
from stockpot.storage.base import StorageBackend
from stockpot.units import format_quantity

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 5.0


class WebhookNotifier:
    """Minimal client posting notifications to an HTTP webhook."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        *,
        timeout: float = WEBHOOK_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def send(self, notification: Notification) -> None:
        payload = notification.model_dump(mode="json", by_alias=True)
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(self._url, headers=self._headers(), json=payload)
        response.raise_for_status()


class NotificationDispatcher:
    """Persist notifications through storage and broadcast them to a webhook when configured.

    Webhook failures are logged and never fail the caller; the stored record is
    the source of truth for the dashboard feed.
    """

    def __init__(self, storage: StorageBackend, webhook: Optional[WebhookNotifier] = None) -> None:
        self._storage = storage
        self._webhook = webhook

    def feed(self, user_id: Optional[int] = None) -> list[Notification]:
        return self._storage.list_notifications(user_id)

    def unread(self, user_id: Optional[int] = None) -> list[Notification]:
        return self._storage.list_notifications(user_id, unread_only=True)

    def mark_read(self, notification_id: int) -> Notification:
        return self._storage.mark_notification_read(notification_id)

    def mark_all_read(self, user_id: Optional[int] = None) -> int:
        return self._storage.mark_all_notifications_read(user_id)

    def dispatch(self, payload: Union[NotificationCreate, Mapping[str, Any]]) -> Notification:
        data = parse_payload(NotificationCreate, payload)
        notification = self._storage.create_notification(data)
        if self._webhook is not None:
            try:
                self._webhook.send(notification)
            except httpx.HTTPError as exc:
                logger.warning("Notification webhook delivery failed for %s: %s", notification.id, exc)
        return notification

    def low_stock_alert(self, item: InventoryItem) -> Notification:
        message = (
            f"Low stock: {item.item_name} has {format_quantity(item.current_qty)} "
            f"{item.unit_of_measurement} left (ideal {format_quantity(item.ideal_qty)})"
        )
        return self.dispatch(
            NotificationCreate(
                type="inventory",
                message=message,
                details={
                    "inventoryId": item.id,
                    "itemName": item.item_name,
                    "currentQty": format_quantity(item.current_qty),
                    "idealQty": format_quantity(item.ideal_qty),
                    "unit": item.unit_of_measurement,
                },
            )
        )


__all__ = ["NotificationDispatcher", "WebhookNotifier"]
