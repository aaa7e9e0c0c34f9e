"""Inventory data models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from stockpot.models.common import CamelInput, CamelModel, Quantity, blank_to_none, stringify_number
from stockpot.units import parse_money

StockLevel = Literal["critical", "low", "good"]

# Largest package size a signed 32-bit INTEGER column holds.
MAX_PACKAGE_QTY = 2_147_483_647

# Fields that may be omitted from an update but never cleared.
_REQUIRED_ON_UPDATE = (
    "item_name",
    "unit_of_measurement",
    "box_or_package_qty",
    "unit_price",
    "total_price",
    "ideal_qty",
    "current_qty",
)


class InventoryItem(CamelModel):
    """Physical stock of a single purchasable ingredient or supply."""

    id: int
    item_name: str
    unit_of_measurement: str
    box_or_package_qty: int
    unit_price: str
    total_price: str
    ideal_qty: Quantity
    current_qty: Quantity
    shelf_life_days: Optional[int] = None
    category: Optional[str] = None
    last_updated: datetime


class LowStockItem(InventoryItem):
    """Inventory item below its ideal quantity, with its display bucket."""

    stock_level: StockLevel


class InventoryCreate(CamelInput):
    """Validated payload for creating an inventory item."""

    item_name: str = Field(min_length=2, max_length=255)
    unit_of_measurement: str = Field(min_length=1, max_length=64)
    box_or_package_qty: int = Field(ge=1, le=MAX_PACKAGE_QTY)
    unit_price: str = Field(min_length=1, max_length=64)
    total_price: str = Field(max_length=64)
    ideal_qty: Decimal = Field(ge=1)
    current_qty: Decimal = Field(default=Decimal("0"), ge=0)
    shelf_life_days: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = Field(default=None, max_length=128)

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def _prices_as_strings(cls, value: Any) -> Any:
        return stringify_number(value)

    @field_validator("unit_price")
    @classmethod
    def _unit_price_parses(cls, value: str) -> str:
        if parse_money(value) is None:
            raise ValueError("Unit price must be a monetary amount")
        return value

    @field_validator("category", "shelf_life_days", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return blank_to_none(value)


class InventoryUpdate(CamelInput):
    """Partial update payload; only fields that were sent are applied."""

    item_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    unit_of_measurement: Optional[str] = Field(default=None, min_length=1, max_length=64)
    box_or_package_qty: Optional[int] = Field(default=None, ge=1, le=MAX_PACKAGE_QTY)
    unit_price: Optional[str] = Field(default=None, min_length=1, max_length=64)
    total_price: Optional[str] = Field(default=None, max_length=64)
    ideal_qty: Optional[Decimal] = Field(default=None, ge=1)
    current_qty: Optional[Decimal] = Field(default=None, ge=0)
    shelf_life_days: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = Field(default=None, max_length=128)

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def _prices_as_strings(cls, value: Any) -> Any:
        return stringify_number(value)

    @field_validator("unit_price")
    @classmethod
    def _unit_price_parses(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_money(value) is None:
            raise ValueError("Unit price must be a monetary amount")
        return value

    @field_validator("category", "shelf_life_days", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return blank_to_none(value)

    @field_validator(*_REQUIRED_ON_UPDATE)
    @classmethod
    def _required_fields_not_cleared(cls, value: Any) -> Any:
        # Only runs for fields present in the payload.
        if value is None:
            raise ValueError("Field cannot be cleared")
        return value


class StockAdjustment(CamelInput):
    """Body of ``PATCH /inventory/{id}/stock``."""

    quantity_change: Decimal
    unit_price: Optional[str] = Field(default=None, max_length=64)
    total_price: Optional[str] = Field(default=None, max_length=64)

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def _prices_as_strings(cls, value: Any) -> Any:
        return blank_to_none(stringify_number(value))


class BulkUploadResult(CamelModel):
    """Outcome of a CSV bulk upload."""

    imported: int
    errors: Optional[list[str]] = None


__all__ = [
    "StockLevel",
    "InventoryItem",
    "LowStockItem",
    "InventoryCreate",
    "InventoryUpdate",
    "StockAdjustment",
    "BulkUploadResult",
]
