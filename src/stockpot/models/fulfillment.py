"""Fulfillment and order intake models."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from stockpot.models.common import CamelInput, CamelModel, Quantity
from stockpot.models.inventory import InventoryItem
from stockpot.models.recipes import normalize_order_type

LineStatus = Literal["fulfilled", "skipped", "failed"]


class AppliedAdjustment(CamelModel):
    """One stock deduction that was committed during a fulfillment run."""

    inventory_id: int
    item_name: str
    quantity_change: Quantity
    previous_qty: Quantity
    current_qty: Quantity
    ideal_qty: Quantity


class FulfillmentResult(CamelModel):
    success: bool
    recipe_id: int
    dish_name: str
    order_type: str
    adjustments: list[AppliedAdjustment] = Field(default_factory=list)
    low_stock_items: list[InventoryItem] = Field(default_factory=list)
    newly_low_items: list[InventoryItem] = Field(default_factory=list)


class FulfillmentRequest(CamelInput):
    """One serving of a dish to deduct from inventory."""

    dish_name: str = Field(min_length=1, max_length=255)
    order_type: str = Field(min_length=1, max_length=64)

    @field_validator("order_type", mode="before")
    @classmethod
    def _normalize_order_type(cls, value: Any) -> Any:
        return normalize_order_type(value)


class OrderLine(CamelInput):
    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(default=1, ge=1, le=100)


class OrderRequest(CamelInput):
    """Order-placement event that triggers fulfillment for each line item."""

    customer_name: Optional[str] = Field(default=None, max_length=255)
    type: str = Field(min_length=1, max_length=64)
    items: list[OrderLine] = Field(min_length=1)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        return normalize_order_type(value)


class OrderLineOutcome(CamelModel):
    name: str
    quantity: int
    status: LineStatus
    fulfilled_count: int = 0
    reason: Optional[str] = None
    recipe_id: Optional[int] = None
    adjustments: list[AppliedAdjustment] = Field(default_factory=list)


class OrderOutcome(CamelModel):
    """Per-line result of an order-placement event."""

    customer_name: Optional[str] = None
    order_type: str
    lines: list[OrderLineOutcome] = Field(default_factory=list)
    low_stock_items: list[InventoryItem] = Field(default_factory=list)
    newly_low_items: list[InventoryItem] = Field(default_factory=list)
    notification_ids: list[int] = Field(default_factory=list)


__all__ = [
    "LineStatus",
    "AppliedAdjustment",
    "FulfillmentResult",
    "FulfillmentRequest",
    "OrderLine",
    "OrderRequest",
    "OrderLineOutcome",
    "OrderOutcome",
]
