"""Volatile in-process storage backend.

Every public method holds one re-entrant lock for its whole read-modify-write, so
concurrent stock adjustments serialize and never lose updates. State lives for
as long as the owning object; nothing is kept at module level.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from threading import RLock
from typing import Any, Iterator, Mapping, Optional

from stockpot.errors import InsufficientStock, NotFound, RecipeNotFound, ValidationError
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
from stockpot.storage.base import StorageBackend, utcnow


class MemoryStorage(StorageBackend):
    """Lock-guarded dictionaries keyed by auto-incrementing ids."""

    name = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._inventory: dict[int, InventoryItem] = {}
        self._recipes: dict[int, Recipe] = {}
        self._recipe_items: dict[int, RecipeItem] = {}
        self._notifications: dict[int, Notification] = {}
        self._ids: dict[str, Iterator[int]] = {
            "inventory": itertools.count(1),
            "recipes": itertools.count(1),
            "recipe_items": itertools.count(1),
            "notifications": itertools.count(1),
        }

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # Inventory -------------------------------------------------------------------

    def _inventory_row(self, item_id: int) -> InventoryItem:
        try:
            return self._inventory[item_id]
        except KeyError:
            raise NotFound("Inventory item", item_id) from None

    def list_inventory(self) -> list[InventoryItem]:
        with self._lock:
            return [self._inventory[key] for key in sorted(self._inventory)]

    def get_inventory(self, item_id: int) -> InventoryItem:
        with self._lock:
            return self._inventory_row(item_id)

    def list_inventory_by_category(self, category: str) -> list[InventoryItem]:
        with self._lock:
            rows = [item for item in self._inventory.values() if item.category == category]
        return sorted(rows, key=lambda item: (item.item_name, item.id))

    def list_low_stock(self) -> list[InventoryItem]:
        with self._lock:
            rows = [item for item in self._inventory.values() if item.current_qty < item.ideal_qty]
        return sorted(rows, key=lambda item: (item.item_name, item.id))

    def create_inventory(self, data: InventoryCreate) -> InventoryItem:
        with self._lock:
            item = InventoryItem(
                id=self._next_id("inventory"),
                last_updated=utcnow(),
                **data.model_dump(),
            )
            self._inventory[item.id] = item
            return item

    def update_inventory(self, item_id: int, changes: Mapping[str, Any]) -> InventoryItem:
        with self._lock:
            current = self._inventory_row(item_id)
            updated = current.model_copy(update={**changes, "last_updated": utcnow()})
            self._inventory[item_id] = updated
            return updated

    def adjust_stock(
        self,
        item_id: int,
        delta: Decimal,
        *,
        unit_price: Optional[str] = None,
        total_price: Optional[str] = None,
    ) -> InventoryItem:
        with self._lock:
            current = self._inventory_row(item_id)
            new_qty = current.current_qty + delta
            if new_qty < 0:
                raise InsufficientStock(item_id, current.current_qty, delta)
            update: dict[str, Any] = {"current_qty": new_qty, "last_updated": utcnow()}
            if unit_price is not None:
                update["unit_price"] = unit_price
            if total_price is not None:
                update["total_price"] = total_price
            updated = current.model_copy(update=update)
            self._inventory[item_id] = updated
            return updated

    # Recipes ---------------------------------------------------------------------

    def _recipe_row(self, recipe_id: int) -> Recipe:
        try:
            return self._recipes[recipe_id]
        except KeyError:
            raise NotFound("Recipe", recipe_id) from None

    def _ensure_unique_recipe(self, dish_name: str, order_type: str, exclude_id: Optional[int] = None) -> None:
        for recipe in self._recipes.values():
            if recipe.id == exclude_id:
                continue
            if recipe.dish_name == dish_name and recipe.order_type == order_type:
                raise ValidationError(
                    f"Recipe '{dish_name}' already exists for order type '{order_type}'",
                    ["dishName", "orderType"],
                )

    def list_recipes(self) -> list[Recipe]:
        with self._lock:
            return [self._recipes[key] for key in sorted(self._recipes)]

    def get_recipe(self, recipe_id: int) -> Recipe:
        with self._lock:
            return self._recipe_row(recipe_id)

    def list_recipes_by_category(self, category: str) -> list[Recipe]:
        with self._lock:
            rows = [recipe for recipe in self._recipes.values() if recipe.category == category]
        return sorted(rows, key=lambda recipe: (recipe.dish_name, recipe.id))

    def list_recipes_by_order_type(self, order_type: str) -> list[Recipe]:
        with self._lock:
            rows = [recipe for recipe in self._recipes.values() if recipe.order_type == order_type]
        return sorted(rows, key=lambda recipe: (recipe.dish_name, recipe.id))

    def find_recipe(self, dish_name: str, order_type: str) -> Recipe:
        with self._lock:
            for key in sorted(self._recipes):
                recipe = self._recipes[key]
                if recipe.dish_name == dish_name and recipe.order_type == order_type:
                    return recipe
        raise RecipeNotFound(dish_name, order_type)

    def create_recipe(self, data: RecipeCreate) -> Recipe:
        with self._lock:
            self._ensure_unique_recipe(data.dish_name, data.order_type)
            now = utcnow()
            recipe = Recipe(
                id=self._next_id("recipes"),
                created_at=now,
                updated_at=now,
                **data.model_dump(),
            )
            self._recipes[recipe.id] = recipe
            return recipe

    def update_recipe(self, recipe_id: int, changes: Mapping[str, Any]) -> Recipe:
        with self._lock:
            current = self._recipe_row(recipe_id)
            dish_name = changes.get("dish_name", current.dish_name)
            order_type = changes.get("order_type", current.order_type)
            self._ensure_unique_recipe(dish_name, order_type, exclude_id=recipe_id)
            updated = current.model_copy(update={**changes, "updated_at": utcnow()})
            self._recipes[recipe_id] = updated
            return updated

    def _ensure_unique_ingredient(
        self, recipe_id: int, inventory_id: int, exclude_id: Optional[int] = None
    ) -> None:
        for item in self._recipe_items.values():
            if item.id == exclude_id:
                continue
            if item.recipe_id == recipe_id and item.inventory_id == inventory_id:
                raise ValidationError(
                    f"Inventory item {inventory_id} is already an ingredient of recipe {recipe_id}",
                    ["inventoryId"],
                )

    def list_recipe_ingredients(self, recipe_id: int) -> list[RecipeIngredient]:
        with self._lock:
            self._recipe_row(recipe_id)
            rows = sorted(
                (item for item in self._recipe_items.values() if item.recipe_id == recipe_id),
                key=lambda item: item.id,
            )
            return [
                RecipeIngredient(
                    **item.model_dump(),
                    inventory_item=self._inventory_row(item.inventory_id),
                )
                for item in rows
            ]

    def get_recipe_item(self, item_id: int) -> RecipeItem:
        with self._lock:
            try:
                return self._recipe_items[item_id]
            except KeyError:
                raise NotFound("Recipe item", item_id) from None

    def create_recipe_item(self, recipe_id: int, data: RecipeItemCreate) -> RecipeItem:
        with self._lock:
            self._recipe_row(recipe_id)
            self._ensure_unique_ingredient(recipe_id, data.inventory_id)
            item = RecipeItem(
                id=self._next_id("recipe_items"),
                recipe_id=recipe_id,
                **data.model_dump(),
            )
            self._recipe_items[item.id] = item
            return item

    def update_recipe_item(self, item_id: int, changes: Mapping[str, Any]) -> RecipeItem:
        with self._lock:
            current = self.get_recipe_item(item_id)
            inventory_id = changes.get("inventory_id", current.inventory_id)
            self._ensure_unique_ingredient(current.recipe_id, inventory_id, exclude_id=item_id)
            updated = current.model_copy(update=dict(changes))
            self._recipe_items[item_id] = updated
            return updated

    def delete_recipe_item(self, item_id: int) -> None:
        with self._lock:
            if self._recipe_items.pop(item_id, None) is None:
                raise NotFound("Recipe item", item_id)

    # Notifications ---------------------------------------------------------------

    def _visible(self, notification: Notification, user_id: Optional[int]) -> bool:
        return user_id is None or notification.user_id in (None, user_id)

    def list_notifications(
        self, user_id: Optional[int] = None, *, unread_only: bool = False
    ) -> list[Notification]:
        with self._lock:
            rows = [
                notification
                for notification in self._notifications.values()
                if self._visible(notification, user_id) and not (unread_only and notification.is_read)
            ]
        return sorted(rows, key=lambda notification: (notification.created_at, notification.id), reverse=True)

    def create_notification(self, data: NotificationCreate) -> Notification:
        with self._lock:
            notification = Notification(
                id=self._next_id("notifications"),
                created_at=utcnow(),
                **data.model_dump(),
            )
            self._notifications[notification.id] = notification
            return notification

    def mark_notification_read(self, notification_id: int) -> Notification:
        with self._lock:
            current = self._notifications.get(notification_id)
            if current is None:
                raise NotFound("Notification", notification_id)
            updated = current.model_copy(update={"is_read": True})
            self._notifications[notification_id] = updated
            return updated

    def mark_all_notifications_read(self, user_id: Optional[int] = None) -> int:
        with self._lock:
            changed = 0
            for key, notification in list(self._notifications.items()):
                if notification.is_read or not self._visible(notification, user_id):
                    continue
                self._notifications[key] = notification.model_copy(update={"is_read": True})
                changed += 1
            return changed


__all__ = ["MemoryStorage"]
