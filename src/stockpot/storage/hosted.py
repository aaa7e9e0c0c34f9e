"""Hosted database backend speaking the PostgREST (Supabase) HTTP dialect.

Tables use snake_case columns. Every row crosses the boundary through the
``_*_from_row`` / ``_*_to_row`` functions below, so callers only ever see the
canonical domain models. Numeric columns are decoded as :class:`~decimal.Decimal`
to keep quantities exact.

Stock adjustments use compare-and-swap: read the current quantity, then
``PATCH ?id=eq.N&current_qty=eq.<read value>``. An empty response means another
writer got there first, so the read is repeated up to ``cas_max_retries`` times.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

import httpx

from stockpot.errors import InsufficientStock, NotFound, RecipeNotFound, StorageError, ValidationError
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
from stockpot.units import format_quantity

logger = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"
NO_ROWS_CODE = "PGRST116"
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

_RECIPE_CONFLICT = ("Recipe already exists for this dish and order type", ["dishName", "orderType"])
_INGREDIENT_CONFLICT = ("Inventory item is already an ingredient of this recipe", ["inventoryId"])


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format_quantity(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


# Row mapping ---------------------------------------------------------------------


def _inventory_from_row(row: Mapping[str, Any]) -> InventoryItem:
    return InventoryItem(
        id=row["id"],
        item_name=row["item_name"],
        unit_of_measurement=row["unit_of_measurement"],
        box_or_package_qty=row["box_or_package_qty"],
        unit_price=row["unit_price"],
        total_price=row["total_price"],
        ideal_qty=_decimal(row["ideal_qty"]),
        current_qty=_decimal(row["current_qty"]),
        shelf_life_days=row.get("shelf_life_days"),
        category=row.get("category"),
        last_updated=row["last_updated"],
    )


def _inventory_to_row(fields: Mapping[str, Any]) -> dict[str, Any]:
    columns = (
        "item_name",
        "unit_of_measurement",
        "box_or_package_qty",
        "unit_price",
        "total_price",
        "ideal_qty",
        "current_qty",
        "shelf_life_days",
        "category",
        "last_updated",
    )
    return {column: fields[column] for column in columns if column in fields}


def _recipe_from_row(row: Mapping[str, Any]) -> Recipe:
    return Recipe(
        id=row["id"],
        dish_name=row["dish_name"],
        order_type=row["order_type"],
        description=row.get("description"),
        selling_price=row.get("selling_price"),
        category=row.get("category"),
        is_active=row.get("is_active", True),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _recipe_to_row(fields: Mapping[str, Any]) -> dict[str, Any]:
    columns = (
        "dish_name",
        "order_type",
        "description",
        "selling_price",
        "category",
        "is_active",
        "created_at",
        "updated_at",
    )
    return {column: fields[column] for column in columns if column in fields}


def _recipe_item_from_row(row: Mapping[str, Any]) -> RecipeItem:
    return RecipeItem(
        id=row["id"],
        recipe_id=row["recipe_id"],
        inventory_id=row["inventory_id"],
        quantity_required=str(row["quantity_required"]),
        unit=row["unit"],
    )


def _recipe_item_to_row(fields: Mapping[str, Any]) -> dict[str, Any]:
    columns = ("recipe_id", "inventory_id", "quantity_required", "unit")
    return {column: fields[column] for column in columns if column in fields}


def _notification_from_row(row: Mapping[str, Any]) -> Notification:
    # The hosted table keeps the payload in a ``data`` column.
    return Notification(
        id=row["id"],
        type=row["type"],
        message=row["message"],
        details=row.get("data") or {},
        is_read=row.get("is_read", False),
        created_at=row["created_at"],
        user_id=row.get("user_id"),
    )


def _notification_to_row(fields: Mapping[str, Any]) -> dict[str, Any]:
    columns = ("type", "message", "is_read", "user_id", "created_at")
    row = {column: fields[column] for column in columns if column in fields}
    if "details" in fields:
        row["data"] = fields["details"]
    return row


class HostedStorage(StorageBackend):
    """Storage backend for a PostgREST-compatible hosted database."""

    name = "hosted"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        schema: str = "public",
        timeout: float = 10.0,
        cas_max_retries: int = 5,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError("Hosted storage requires a base URL.")
        if not api_key:
            raise ValueError("Hosted storage requires an API key.")
        self._cas_max_retries = max(1, cas_max_retries)
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept-Profile": schema,
                "Content-Profile": schema,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    # Transport -------------------------------------------------------------------

    def _request(
        self,
        method: str,
        table: str,
        *,
        action: str,
        params: Optional[Mapping[str, str]] = None,
        payload: Any = None,
        single: bool = False,
        returning: bool = False,
        not_found: Optional[tuple[str, Any]] = None,
        conflict: tuple[str, Iterable[str]] = ("Record conflicts with existing data", ()),
    ) -> Any:
        headers: dict[str, str] = {}
        if single:
            headers["Accept"] = SINGLE_OBJECT
        if returning:
            headers["Prefer"] = "return=representation"
        content = json.dumps(payload, default=_json_default) if payload is not None else None

        try:
            response = self._client.request(
                method,
                f"/{table}",
                params=dict(params or {}),
                content=content,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            logger.error("Hosted storage timed out during %s", action)
            raise StorageError(f"Hosted storage timed out during {action}") from exc
        except httpx.HTTPError as exc:
            logger.error("Hosted storage transport error during %s: %s", action, exc)
            raise StorageError(f"Hosted storage unavailable during {action}") from exc

        if response.status_code >= 400:
            self._raise_for_error(response, action=action, not_found=not_found, conflict=conflict)
        if not response.content:
            return None
        try:
            return json.loads(response.text, parse_float=Decimal)
        except ValueError as exc:
            raise StorageError(f"Hosted storage returned malformed JSON during {action}") from exc

    @staticmethod
    def _raise_for_error(
        response: httpx.Response,
        *,
        action: str,
        not_found: Optional[tuple[str, Any]],
        conflict: tuple[str, Iterable[str]],
    ) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = str(body.get("code", "")) if isinstance(body, dict) else ""

        if code == NO_ROWS_CODE and not_found is not None:
            raise NotFound(*not_found)
        if code == UNIQUE_VIOLATION:
            message, fields = conflict
            raise ValidationError(message, fields)
        if code == FOREIGN_KEY_VIOLATION:
            raise ValidationError("Referenced record does not exist", ["inventoryId"])

        logger.error(
            "Hosted storage error during %s: status=%s code=%s message=%s",
            action,
            response.status_code,
            code or "-",
            body.get("message") if isinstance(body, dict) else response.text[:200],
        )
        if response.status_code in (401, 403):
            raise StorageError(f"Hosted storage rejected credentials during {action}")
        raise StorageError(f"Hosted storage failed during {action}")

    # Inventory -------------------------------------------------------------------

    def list_inventory(self) -> list[InventoryItem]:
        rows = self._request("GET", "inventory", action="list inventory", params={"select": "*", "order": "id.asc"})
        return [_inventory_from_row(row) for row in rows or []]

    def get_inventory(self, item_id: int) -> InventoryItem:
        row = self._request(
            "GET",
            "inventory",
            action="get inventory item",
            params={"select": "*", "id": f"eq.{item_id}"},
            single=True,
            not_found=("Inventory item", item_id),
        )
        return _inventory_from_row(row)

    def list_inventory_by_category(self, category: str) -> list[InventoryItem]:
        rows = self._request(
            "GET",
            "inventory",
            action="list inventory by category",
            params={"select": "*", "category": f"eq.{category}", "order": "item_name.asc,id.asc"},
        )
        return [_inventory_from_row(row) for row in rows or []]

    def list_low_stock(self) -> list[InventoryItem]:
        # PostgREST cannot compare two columns, so filter after reading.
        rows = self._request(
            "GET",
            "inventory",
            action="list low stock",
            params={"select": "*", "order": "item_name.asc,id.asc"},
        )
        items = [_inventory_from_row(row) for row in rows or []]
        return [item for item in items if item.current_qty < item.ideal_qty]

    def create_inventory(self, data: InventoryCreate) -> InventoryItem:
        fields = {**data.model_dump(), "last_updated": utcnow()}
        rows = self._request(
            "POST",
            "inventory",
            action="create inventory item",
            payload=_inventory_to_row(fields),
            returning=True,
        )
        return _inventory_from_row(rows[0])

    def _patch_one(
        self,
        table: str,
        filters: Mapping[str, str],
        row: Mapping[str, Any],
        *,
        action: str,
        not_found: tuple[str, Any],
        conflict: tuple[str, Iterable[str]] = ("Record conflicts with existing data", ()),
    ) -> Mapping[str, Any]:
        rows = self._request(
            "PATCH",
            table,
            action=action,
            params=filters,
            payload=row,
            returning=True,
            conflict=conflict,
        )
        if not rows:
            raise NotFound(*not_found)
        return rows[0]

    def update_inventory(self, item_id: int, changes: Mapping[str, Any]) -> InventoryItem:
        row = self._patch_one(
            "inventory",
            {"id": f"eq.{item_id}"},
            _inventory_to_row({**changes, "last_updated": utcnow()}),
            action="update inventory item",
            not_found=("Inventory item", item_id),
        )
        return _inventory_from_row(row)

    def adjust_stock(
        self,
        item_id: int,
        delta: Decimal,
        *,
        unit_price: Optional[str] = None,
        total_price: Optional[str] = None,
    ) -> InventoryItem:
        for attempt in range(self._cas_max_retries):
            current = self.get_inventory(item_id)
            new_qty = current.current_qty + delta
            if new_qty < 0:
                raise InsufficientStock(item_id, current.current_qty, delta)

            fields: dict[str, Any] = {"current_qty": new_qty, "last_updated": utcnow()}
            if unit_price is not None:
                fields["unit_price"] = unit_price
            if total_price is not None:
                fields["total_price"] = total_price

            rows = self._request(
                "PATCH",
                "inventory",
                action="adjust stock",
                params={"id": f"eq.{item_id}", "current_qty": f"eq.{format_quantity(current.current_qty)}"},
                payload=_inventory_to_row(fields),
                returning=True,
            )
            if rows:
                return _inventory_from_row(rows[0])

            logger.debug(
                "Stock changed concurrently; retrying adjustment",
                extra={"inventory_id": item_id},
            )
            time.sleep(min(0.05, 0.002 * (2**attempt)))

        logger.error(
            "Gave up adjusting stock after %s attempts",
            self._cas_max_retries,
            extra={"inventory_id": item_id},
        )
        raise StorageError(f"Inventory item {item_id} is being updated concurrently; try again")

    # Recipes ---------------------------------------------------------------------

    def _recipes(self, action: str, filters: Mapping[str, str], order: str) -> list[Recipe]:
        rows = self._request("GET", "recipes", action=action, params={"select": "*", **filters, "order": order})
        return [_recipe_from_row(row) for row in rows or []]

    def list_recipes(self) -> list[Recipe]:
        return self._recipes("list recipes", {}, "id.asc")

    def get_recipe(self, recipe_id: int) -> Recipe:
        row = self._request(
            "GET",
            "recipes",
            action="get recipe",
            params={"select": "*", "id": f"eq.{recipe_id}"},
            single=True,
            not_found=("Recipe", recipe_id),
        )
        return _recipe_from_row(row)

    def list_recipes_by_category(self, category: str) -> list[Recipe]:
        return self._recipes(
            "list recipes by category", {"category": f"eq.{category}"}, "dish_name.asc,id.asc"
        )

    def list_recipes_by_order_type(self, order_type: str) -> list[Recipe]:
        return self._recipes(
            "list recipes by order type", {"order_type": f"eq.{order_type}"}, "dish_name.asc,id.asc"
        )

    def find_recipe(self, dish_name: str, order_type: str) -> Recipe:
        rows = self._request(
            "GET",
            "recipes",
            action="find recipe",
            params={
                "select": "*",
                "dish_name": f"eq.{dish_name}",
                "order_type": f"eq.{order_type}",
                "order": "id.asc",
                "limit": "1",
            },
        )
        if not rows:
            raise RecipeNotFound(dish_name, order_type)
        return _recipe_from_row(rows[0])

    def create_recipe(self, data: RecipeCreate) -> Recipe:
        now = utcnow()
        rows = self._request(
            "POST",
            "recipes",
            action="create recipe",
            payload=_recipe_to_row({**data.model_dump(), "created_at": now, "updated_at": now}),
            returning=True,
            conflict=_RECIPE_CONFLICT,
        )
        return _recipe_from_row(rows[0])

    def update_recipe(self, recipe_id: int, changes: Mapping[str, Any]) -> Recipe:
        row = self._patch_one(
            "recipes",
            {"id": f"eq.{recipe_id}"},
            _recipe_to_row({**changes, "updated_at": utcnow()}),
            action="update recipe",
            not_found=("Recipe", recipe_id),
            conflict=_RECIPE_CONFLICT,
        )
        return _recipe_from_row(row)

    def list_recipe_ingredients(self, recipe_id: int) -> list[RecipeIngredient]:
        self.get_recipe(recipe_id)
        rows = self._request(
            "GET",
            "recipe_items",
            action="list recipe ingredients",
            params={
                "select": "*,inventory:inventory_id(*)",
                "recipe_id": f"eq.{recipe_id}",
                "order": "id.asc",
            },
        )
        ingredients = []
        for row in rows or []:
            inventory_row = row.get("inventory")
            if not inventory_row:
                raise StorageError(f"Recipe item {row.get('id')} references missing inventory")
            ingredients.append(
                RecipeIngredient(
                    **_recipe_item_from_row(row).model_dump(),
                    inventory_item=_inventory_from_row(inventory_row),
                )
            )
        return ingredients

    def get_recipe_item(self, item_id: int) -> RecipeItem:
        row = self._request(
            "GET",
            "recipe_items",
            action="get recipe item",
            params={"select": "*", "id": f"eq.{item_id}"},
            single=True,
            not_found=("Recipe item", item_id),
        )
        return _recipe_item_from_row(row)

    def create_recipe_item(self, recipe_id: int, data: RecipeItemCreate) -> RecipeItem:
        self.get_recipe(recipe_id)
        rows = self._request(
            "POST",
            "recipe_items",
            action="create recipe item",
            payload=_recipe_item_to_row({**data.model_dump(), "recipe_id": recipe_id}),
            returning=True,
            conflict=_INGREDIENT_CONFLICT,
        )
        return _recipe_item_from_row(rows[0])

    def update_recipe_item(self, item_id: int, changes: Mapping[str, Any]) -> RecipeItem:
        row = self._patch_one(
            "recipe_items",
            {"id": f"eq.{item_id}"},
            _recipe_item_to_row(changes),
            action="update recipe item",
            not_found=("Recipe item", item_id),
            conflict=_INGREDIENT_CONFLICT,
        )
        return _recipe_item_from_row(row)

    def delete_recipe_item(self, item_id: int) -> None:
        rows = self._request(
            "DELETE",
            "recipe_items",
            action="delete recipe item",
            params={"id": f"eq.{item_id}"},
            returning=True,
        )
        if not rows:
            raise NotFound("Recipe item", item_id)

    # Notifications ---------------------------------------------------------------

    @staticmethod
    def _notification_filters(user_id: Optional[int], unread_only: bool) -> dict[str, str]:
        filters: dict[str, str] = {}
        if user_id is not None:
            filters["or"] = f"(user_id.eq.{int(user_id)},user_id.is.null)"
        if unread_only:
            filters["is_read"] = "eq.false"
        return filters

    def list_notifications(
        self, user_id: Optional[int] = None, *, unread_only: bool = False
    ) -> list[Notification]:
        rows = self._request(
            "GET",
            "notifications",
            action="list notifications",
            params={
                "select": "*",
                **self._notification_filters(user_id, unread_only),
                "order": "created_at.desc,id.desc",
            },
        )
        return [_notification_from_row(row) for row in rows or []]

    def create_notification(self, data: NotificationCreate) -> Notification:
        rows = self._request(
            "POST",
            "notifications",
            action="create notification",
            payload=_notification_to_row({**data.model_dump(), "created_at": utcnow()}),
            returning=True,
        )
        return _notification_from_row(rows[0])

    def mark_notification_read(self, notification_id: int) -> Notification:
        row = self._patch_one(
            "notifications",
            {"id": f"eq.{notification_id}"},
            {"is_read": True},
            action="mark notification read",
            not_found=("Notification", notification_id),
        )
        return _notification_from_row(row)

    def mark_all_notifications_read(self, user_id: Optional[int] = None) -> int:
        rows = self._request(
            "PATCH",
            "notifications",
            action="mark all notifications read",
            params=self._notification_filters(user_id, unread_only=True),
            payload={"is_read": True},
            returning=True,
        )
        return len(rows or [])


__all__ = ["HostedStorage"]
