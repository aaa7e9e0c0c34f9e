"""Pydantic models defining the inventory, recipe and notification contracts."""

from stockpot.models.common import CamelInput, CamelModel, Quantity, parse_payload
from stockpot.models.fulfillment import (
    AppliedAdjustment,
    FulfillmentRequest,
    FulfillmentResult,
    OrderLine,
    OrderLineOutcome,
    OrderOutcome,
    OrderRequest,
)
from stockpot.models.inventory import (
    BulkUploadResult,
    InventoryCreate,
    InventoryItem,
    InventoryUpdate,
    LowStockItem,
    StockAdjustment,
    StockLevel,
)
from stockpot.models.notifications import Notification, NotificationCreate
from stockpot.models.recipes import (
    ORDER_TYPES,
    OrderType,
    Recipe,
    RecipeCost,
    RecipeCreate,
    RecipeIngredient,
    RecipeItem,
    RecipeItemCreate,
    RecipeItemUpdate,
    RecipeUpdate,
    normalize_order_type,
)

__all__ = [
    "CamelInput",
    "CamelModel",
    "Quantity",
    "parse_payload",
    "AppliedAdjustment",
    "FulfillmentRequest",
    "FulfillmentResult",
    "OrderLine",
    "OrderLineOutcome",
    "OrderOutcome",
    "OrderRequest",
    "BulkUploadResult",
    "InventoryCreate",
    "InventoryItem",
    "InventoryUpdate",
    "LowStockItem",
    "StockAdjustment",
    "StockLevel",
    "Notification",
    "NotificationCreate",
    "ORDER_TYPES",
    "OrderType",
    "Recipe",
    "RecipeCost",
    "RecipeCreate",
    "RecipeIngredient",
    "RecipeItem",
    "RecipeItemCreate",
    "RecipeItemUpdate",
    "RecipeUpdate",
    "normalize_order_type",
]
