"""
Domain exceptions for inventory, recipes and fulfillment.

Storage backends translate their library errors into these types so callers never
see SQLAlchemy or httpx exceptions. The HTTP layer maps each type to a status code.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence


class StockpotError(Exception):
    """Base exception for all Stockpot domain errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StockpotError):
    """Raised when input is malformed or out of range. Lists the offending fields."""

    status_code = 400

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields: list[str] = list(dict.fromkeys(fields))


class NotFound(StockpotError):
    """Raised when an id does not resolve to a stored record."""

    status_code = 404

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} {identifier} not found")
        self.entity = entity
        self.identifier = identifier


class RecipeNotFound(NotFound):
    """Raised when no recipe matches a (dish name, order type) pair."""

    def __init__(self, dish_name: str, order_type: str) -> None:
        StockpotError.__init__(
            self, f"Recipe not found for dish '{dish_name}' and order type '{order_type}'"
        )
        self.entity = "Recipe"
        self.identifier = (dish_name, order_type)
        self.dish_name = dish_name
        self.order_type = order_type


class NoIngredientsConfigured(StockpotError):
    """Raised when a recipe exists but has no ingredient requirements."""

    status_code = 409

    def __init__(self, recipe_id: int, dish_name: str) -> None:
        super().__init__(f"No ingredients configured for recipe '{dish_name}' (id={recipe_id})")
        self.recipe_id = recipe_id
        self.dish_name = dish_name


class InsufficientStock(StockpotError):
    """Raised when a stock adjustment would drive the current quantity below zero."""

    status_code = 409

    def __init__(self, inventory_id: int, current_qty: Any, delta: Any) -> None:
        super().__init__(
            f"Inventory item {inventory_id} has {current_qty} in stock; "
            f"cannot apply change of {delta}"
        )
        self.inventory_id = inventory_id
        self.current_qty = current_qty
        self.delta = delta


class StorageError(StockpotError):
    """Raised on backend transport, permission or timeout failures."""

    status_code = 500


class FulfillmentFailed(StockpotError):
    """Raised when a fulfillment run stops after some ingredients were already deducted.

    ``applied`` lists the adjustments that were committed before the failure; they
    are not rolled back and must be reconciled by an operator.
    """

    def __init__(
        self,
        message: str,
        *,
        applied: Sequence[Any],
        failed_inventory_id: Optional[int],
        cause: StockpotError,
    ) -> None:
        super().__init__(message)
        self.applied = list(applied)
        self.failed_inventory_id = failed_inventory_id
        self.cause = cause
        self.status_code = 500 if isinstance(cause, StorageError) else 409


__all__ = [
    "StockpotError",
    "ValidationError",
    "NotFound",
    "RecipeNotFound",
    "NoIngredientsConfigured",
    "InsufficientStock",
    "StorageError",
    "FulfillmentFailed",
]
