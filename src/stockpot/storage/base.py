"""Storage port shared by every persistence backend.

Backends receive payloads that were already validated by the ledger or catalog
and return canonical domain models. Library exceptions never cross this
boundary: each backend re-raises them as :mod:`stockpot.errors` types.

Contract every backend honours:

* ``get_*`` raise :class:`~stockpot.errors.NotFound` for unknown ids.
* ``adjust_stock`` is atomic per item and raises
  :class:`~stockpot.errors.InsufficientStock` (leaving the row untouched) when the
  result would drop below zero.
* Duplicate ``(dish_name, order_type)`` recipes and duplicate
  ``(recipe_id, inventory_id)`` ingredients raise
  :class:`~stockpot.errors.ValidationError`.
* Inventory lists are ordered by id, category and low-stock lists by item name,
  notifications newest first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from stockpot.models import (
    InventoryCreate,
    InventoryItem,
    Notification,
    NotificationCreate,
    Recipe,
    RecipeCreate,
    RecipeIngredient,
    RecipeItem,
    RecipeItemCreate,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageBackend(ABC):
    """Abstract persistence interface for inventory, recipes and notifications."""

    name: str = "abstract"

    # Inventory -------------------------------------------------------------------

    @abstractmethod
    def list_inventory(self) -> list[InventoryItem]:
        ...

    @abstractmethod
    def get_inventory(self, item_id: int) -> InventoryItem:
        ...

    @abstractmethod
    def list_inventory_by_category(self, category: str) -> list[InventoryItem]:
        ...

    @abstractmethod
    def list_low_stock(self) -> list[InventoryItem]:
        """Return items whose current quantity is strictly below the ideal quantity."""

    @abstractmethod
    def create_inventory(self, data: InventoryCreate) -> InventoryItem:
        ...

    @abstractmethod
    def update_inventory(self, item_id: int, changes: Mapping[str, Any]) -> InventoryItem:
        """Apply ``changes`` (snake_case field names) and stamp ``last_updated``."""

    @abstractmethod
    def adjust_stock(
        self,
        item_id: int,
        delta: Decimal,
        *,
        unit_price: Optional[str] = None,
        total_price: Optional[str] = None,
    ) -> InventoryItem:
        """Atomically add ``delta`` to the current quantity and return the updated item."""

    # Recipes ---------------------------------------------------------------------

    @abstractmethod
    def list_recipes(self) -> list[Recipe]:
        ...

    @abstractmethod
    def get_recipe(self, recipe_id: int) -> Recipe:
        ...

    @abstractmethod
    def list_recipes_by_category(self, category: str) -> list[Recipe]:
        ...

    @abstractmethod
    def list_recipes_by_order_type(self, order_type: str) -> list[Recipe]:
        ...

    @abstractmethod
    def find_recipe(self, dish_name: str, order_type: str) -> Recipe:
        """Return the recipe matching both values exactly or raise ``RecipeNotFound``."""

    @abstractmethod
    def create_recipe(self, data: RecipeCreate) -> Recipe:
        ...

    @abstractmethod
    def update_recipe(self, recipe_id: int, changes: Mapping[str, Any]) -> Recipe:
        ...

    @abstractmethod
    def list_recipe_ingredients(self, recipe_id: int) -> list[RecipeIngredient]:
        """Return the recipe's requirements joined with current inventory, ordered by id."""

    @abstractmethod
    def get_recipe_item(self, item_id: int) -> RecipeItem:
        ...

    @abstractmethod
    def create_recipe_item(self, recipe_id: int, data: RecipeItemCreate) -> RecipeItem:
        ...

    @abstractmethod
    def update_recipe_item(self, item_id: int, changes: Mapping[str, Any]) -> RecipeItem:
        ...

    @abstractmethod
    def delete_recipe_item(self, item_id: int) -> None:
        ...

    # Notifications ---------------------------------------------------------------

    @abstractmethod
    def list_notifications(
        self, user_id: Optional[int] = None, *, unread_only: bool = False
    ) -> list[Notification]:
        """Return notifications for ``user_id`` plus broadcasts (all when ``user_id`` is None)."""

    @abstractmethod
    def create_notification(self, data: NotificationCreate) -> Notification:
        ...

    @abstractmethod
    def mark_notification_read(self, notification_id: int) -> Notification:
        ...

    @abstractmethod
    def mark_all_notifications_read(self, user_id: Optional[int] = None) -> int:
        """Mark matching unread notifications as read and return how many changed."""

    # Lifecycle -------------------------------------------------------------------

    def close(self) -> None:
        """Release connections or clients held by the backend."""


__all__ = ["StorageBackend", "utcnow"]
