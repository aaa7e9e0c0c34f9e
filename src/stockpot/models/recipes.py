"""Recipe and ingredient requirement models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from stockpot.models.common import CamelInput, CamelModel, blank_to_none, stringify_number
from stockpot.models.inventory import InventoryItem
from stockpot.units import parse_money, parse_quantity

OrderType = Literal["dine-in", "takeaway", "both"]
ORDER_TYPES: tuple[str, ...] = ("dine-in", "takeaway", "both")

_ORDER_TYPE_ALIASES = {
    "dinein": "dine-in",
    "dine-in": "dine-in",
    "eat-in": "dine-in",
    "takeaway": "takeaway",
    "take-away": "takeaway",
    "takeout": "takeaway",
    "take-out": "takeaway",
    "pickup": "takeaway",
    "both": "both",
}


def normalize_order_type(value: Any) -> Any:
    """Map channel spellings used by order sources (``manual-takeout``, ``dine_in``) onto ``OrderType``."""

    if not isinstance(value, str):
        return value
    normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
    if normalized.startswith("manual-"):
        normalized = normalized[len("manual-"):]
    return _ORDER_TYPE_ALIASES.get(normalized, normalized)


def _positive_quantity(value: str) -> str:
    parsed = parse_quantity(value)
    if parsed is None or parsed <= 0:
        raise ValueError("Quantity required must be a positive number")
    return value


class Recipe(CamelModel):
    """A dish as sold through one order channel."""

    id: int
    dish_name: str
    order_type: str
    description: Optional[str] = None
    selling_price: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class RecipeItem(CamelModel):
    """Ingredient requirement tying a recipe to a quantity of one inventory item."""

    id: int
    recipe_id: int
    inventory_id: int
    quantity_required: str
    unit: str


class RecipeIngredient(RecipeItem):
    """Ingredient requirement joined with the current inventory snapshot."""

    inventory_item: InventoryItem


class RecipeCost(CamelModel):
    """Derived ingredient cost of one serving of a recipe."""

    recipe_id: int
    total_cost: str
    costed_items: int
    skipped_item_ids: list[int] = Field(default_factory=list)


class RecipeCreate(CamelInput):
    dish_name: str = Field(min_length=2, max_length=255)
    order_type: OrderType
    description: Optional[str] = Field(default=None, max_length=2000)
    selling_price: Optional[str] = Field(default=None, max_length=64)
    category: Optional[str] = Field(default=None, max_length=128)
    is_active: bool = True

    @field_validator("order_type", mode="before")
    @classmethod
    def _normalize_order_type(cls, value: Any) -> Any:
        return normalize_order_type(value)

    @field_validator("selling_price", mode="before")
    @classmethod
    def _price_as_string(cls, value: Any) -> Any:
        return blank_to_none(stringify_number(value))

    @field_validator("selling_price")
    @classmethod
    def _price_parses(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_money(value) is None:
            raise ValueError("Selling price must be a monetary amount")
        return value

    @field_validator("description", "category", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return blank_to_none(value)


class RecipeUpdate(CamelInput):
    dish_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    order_type: Optional[OrderType] = None
    description: Optional[str] = Field(default=None, max_length=2000)
    selling_price: Optional[str] = Field(default=None, max_length=64)
    category: Optional[str] = Field(default=None, max_length=128)
    is_active: Optional[bool] = None

    @field_validator("order_type", mode="before")
    @classmethod
    def _normalize_order_type(cls, value: Any) -> Any:
        return normalize_order_type(value)

    @field_validator("selling_price", mode="before")
    @classmethod
    def _price_as_string(cls, value: Any) -> Any:
        return blank_to_none(stringify_number(value))

    @field_validator("selling_price")
    @classmethod
    def _price_parses(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_money(value) is None:
            raise ValueError("Selling price must be a monetary amount")
        return value

    @field_validator("dish_name", "order_type", "is_active")
    @classmethod
    def _not_cleared(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be cleared")
        return value


class RecipeItemCreate(CamelInput):
    inventory_id: int = Field(ge=1)
    quantity_required: str = Field(min_length=1, max_length=64)
    unit: str = Field(min_length=1, max_length=64)

    @field_validator("quantity_required", mode="before")
    @classmethod
    def _quantity_as_string(cls, value: Any) -> Any:
        return stringify_number(value)

    @field_validator("quantity_required")
    @classmethod
    def _quantity_positive(cls, value: str) -> str:
        return _positive_quantity(value)


class RecipeItemUpdate(CamelInput):
    inventory_id: Optional[int] = Field(default=None, ge=1)
    quantity_required: Optional[str] = Field(default=None, min_length=1, max_length=64)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @field_validator("quantity_required", mode="before")
    @classmethod
    def _quantity_as_string(cls, value: Any) -> Any:
        return stringify_number(value)

    @field_validator("inventory_id", "quantity_required", "unit")
    @classmethod
    def _not_cleared(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be cleared")
        return value

    @field_validator("quantity_required")
    @classmethod
    def _quantity_positive(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _positive_quantity(value)


__all__ = [
    "OrderType",
    "ORDER_TYPES",
    "normalize_order_type",
    "Recipe",
    "RecipeItem",
    "RecipeIngredient",
    "RecipeCost",
    "RecipeCreate",
    "RecipeUpdate",
    "RecipeItemCreate",
    "RecipeItemUpdate",
]
