"""Inventory ledger: validated reads and writes of stock records."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from stockpot.errors import InsufficientStock, StockpotError, ValidationError
from stockpot.metrics import STOCK_ADJUSTMENTS
from stockpot.models import InventoryCreate, InventoryItem, InventoryUpdate, StockLevel, parse_payload
from stockpot.storage.base import StorageBackend
from stockpot.units import Number, parse_decimal, parse_money

logger = logging.getLogger(__name__)

CRITICAL_RATIO = Decimal("0.25")
LOW_RATIO = Decimal("0.5")


def classify_stock_level(item: InventoryItem) -> StockLevel:
    """Bucket an item by ``current_qty / ideal_qty`` for display.

    ``<= 0.25`` is critical, ``<= 0.5`` is low, anything else is good.
    """

    if item.ideal_qty <= 0:
        return "good"
    ratio = item.current_qty / item.ideal_qty
    if ratio <= CRITICAL_RATIO:
        return "critical"
    if ratio <= LOW_RATIO:
        return "low"
    return "good"


class InventoryLedger:
    """Owns inventory items on top of a storage backend."""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    def list_items(self) -> list[InventoryItem]:
        return self._storage.list_inventory()

    def get(self, item_id: int) -> InventoryItem:
        return self._storage.get_inventory(item_id)

    def list_by_category(self, category: str) -> list[InventoryItem]:
        return self._storage.list_inventory_by_category(category)

    def low_stock(self) -> list[InventoryItem]:
        """Return items whose current quantity is below the ideal quantity, ordered by name."""

        return self._storage.list_low_stock()

    def create(self, payload: Union[InventoryCreate, Mapping[str, Any]]) -> InventoryItem:
        data = parse_payload(InventoryCreate, payload)
        item = self._storage.create_inventory(data)
        logger.info("Created inventory item %s", item.item_name, extra={"inventory_id": item.id})
        return item

    def update(self, item_id: int, payload: Union[InventoryUpdate, Mapping[str, Any]]) -> InventoryItem:
        data = parse_payload(InventoryUpdate, payload)
        changes = data.model_dump(exclude_unset=True)
        item = self._storage.update_inventory(item_id, changes)
        logger.info(
            "Updated inventory item fields: %s",
            ", ".join(sorted(changes)) or "(none)",
            extra={"inventory_id": item_id},
        )
        return item

    def adjust_stock(
        self,
        item_id: int,
        delta: Number,
        unit_price: Optional[str] = None,
        total_price: Optional[str] = None,
    ) -> InventoryItem:
        """Add ``delta`` (negative to deduct) to the item's current quantity.

        The change is applied atomically by the storage backend. A result below
        zero raises :class:`InsufficientStock` and leaves the item unchanged.
        """

        parsed = parse_decimal(delta)
        if parsed is None:
            raise ValidationError(f"Quantity change {delta!r} is not a number", ["quantityChange"])
        if unit_price is not None and parse_money(unit_price) is None:
            raise ValidationError(f"Unit price {unit_price!r} is not a monetary amount", ["unitPrice"])

        try:
            item = self._storage.adjust_stock(
                item_id,
                parsed,
                unit_price=unit_price,
                total_price=total_price,
            )
        except InsufficientStock:
            STOCK_ADJUSTMENTS.labels(result="rejected").inc()
            logger.warning(
                "Rejected stock change of %s: not enough stock",
                parsed,
                extra={"inventory_id": item_id},
            )
            raise
        except StockpotError:
            STOCK_ADJUSTMENTS.labels(result="error").inc()
            raise

        STOCK_ADJUSTMENTS.labels(result="applied").inc()
        logger.debug(
            "Adjusted stock by %s to %s",
            parsed,
            item.current_qty,
            extra={"inventory_id": item_id},
        )
        return item


__all__ = ["InventoryLedger", "classify_stock_level", "CRITICAL_RATIO", "LOW_RATIO"]
