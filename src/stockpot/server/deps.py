"""Dependency definitions for the Stockpot API server."""

from __future__ import annotations

from threading import Lock
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from stockpot.config import Settings
from stockpot.fulfillment import FulfillmentEngine, OrderIntake
from stockpot.inventory import InventoryLedger
from stockpot.notifications import NotificationDispatcher, WebhookNotifier
from stockpot.recipes import RecipeCatalog
from stockpot.storage import StorageBackend, build_storage


class AppResources:
    """Process-wide resources owned by one application instance.

    The storage backend is built on first use so importing the app has no side
    effects, and closed when the application shuts down.
    """

    def __init__(self, settings: Settings, storage: Optional[StorageBackend] = None) -> None:
        self.settings = settings
        self._storage = storage
        self._lock = Lock()

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            with self._lock:
                if self._storage is None:
                    self._storage = build_storage(self.settings)
        return self._storage

    def webhook(self) -> Optional[WebhookNotifier]:
        if not self.settings.notify_webhook_url:
            return None
        return WebhookNotifier(self.settings.notify_webhook_url, timeout=self.settings.storage_timeout)

    def close(self) -> None:
        with self._lock:
            if self._storage is not None:
                self._storage.close()
                self._storage = None


def get_resources(request: Request) -> AppResources:
    return request.app.state.resources


def get_storage(resources: AppResources = Depends(get_resources)) -> StorageBackend:
    return resources.storage


def get_ledger(storage: StorageBackend = Depends(get_storage)) -> InventoryLedger:
    return InventoryLedger(storage)


def get_catalog(storage: StorageBackend = Depends(get_storage)) -> RecipeCatalog:
    return RecipeCatalog(storage)


def get_dispatcher(
    resources: AppResources = Depends(get_resources),
    storage: StorageBackend = Depends(get_storage),
) -> NotificationDispatcher:
    return NotificationDispatcher(storage, webhook=resources.webhook())


def get_fulfillment_engine(
    catalog: RecipeCatalog = Depends(get_catalog),
    ledger: InventoryLedger = Depends(get_ledger),
) -> FulfillmentEngine:
    return FulfillmentEngine(catalog, ledger)


def get_order_intake(
    engine: FulfillmentEngine = Depends(get_fulfillment_engine),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderIntake:
    return OrderIntake(engine, dispatcher)


def require_api_token(
    request: Request,
    resources: AppResources = Depends(get_resources),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = resources.settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


__all__ = [
    "AppResources",
    "get_resources",
    "get_storage",
    "get_ledger",
    "get_catalog",
    "get_dispatcher",
    "get_fulfillment_engine",
    "get_order_intake",
    "require_api_token",
]
