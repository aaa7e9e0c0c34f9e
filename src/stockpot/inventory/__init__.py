"""Inventory ledger and CSV import."""

from stockpot.inventory.bulk_upload import import_inventory_csv
from stockpot.inventory.ledger import InventoryLedger, classify_stock_level

__all__ = ["InventoryLedger", "classify_stock_level", "import_inventory_csv"]
