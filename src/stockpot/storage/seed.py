"""Demo inventory and recipes for local development."""

from __future__ import annotations

import logging

from stockpot.models import InventoryCreate, RecipeCreate, RecipeItemCreate
from stockpot.storage.base import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_INVENTORY = [
    {"item_name": "Mozzarella", "unit_of_measurement": "kg", "box_or_package_qty": 1, "unit_price": "$7.25",
     "total_price": "$7.25", "ideal_qty": "4", "current_qty": "5", "shelf_life_days": 14, "category": "dairy"},
    {"item_name": "Fresh Tomatoes", "unit_of_measurement": "kg", "box_or_package_qty": 1, "unit_price": "$2.99",
     "total_price": "$2.99", "ideal_qty": "20", "current_qty": "15", "shelf_life_days": 7, "category": "produce"},
    {"item_name": "Olive Oil", "unit_of_measurement": "bottle", "box_or_package_qty": 1, "unit_price": "$8.50",
     "total_price": "$8.50", "ideal_qty": "10", "current_qty": "8", "shelf_life_days": 365, "category": "dry_goods"},
    {"item_name": "Pizza Dough", "unit_of_measurement": "piece", "box_or_package_qty": 10, "unit_price": "$0.80",
     "total_price": "$8.00", "ideal_qty": "30", "current_qty": "40", "shelf_life_days": 3, "category": "bakery"},
    {"item_name": "Garlic Bread", "unit_of_measurement": "piece", "box_or_package_qty": 12, "unit_price": "$0.60",
     "total_price": "$7.20", "ideal_qty": "24", "current_qty": "5", "shelf_life_days": 5, "category": "bakery"},
]

# (dish name, order type, category, selling price, [(item name, quantity, unit)])
DEFAULT_RECIPES = [
    ("Margherita Pizza", "dine-in", "pizza", "$12.99",
     [("Mozzarella", "0.2", "kg"), ("Fresh Tomatoes", "0.15", "kg"), ("Pizza Dough", "1", "piece"),
      ("Olive Oil", "0.05", "bottle")]),
    ("Margherita Pizza", "takeaway", "pizza", "$11.99",
     [("Mozzarella", "0.2", "kg"), ("Fresh Tomatoes", "0.15", "kg"), ("Pizza Dough", "1", "piece")]),
    ("Garlic Bread", "both", "sides", "$4.99", [("Garlic Bread", "1", "piece")]),
]


def seed_demo_data(storage: StorageBackend) -> bool:
    """Populate an empty store with demo data. Returns ``False`` when data already exists."""

    if storage.list_inventory():
        return False

    by_name = {}
    for record in DEFAULT_INVENTORY:
        item = storage.create_inventory(InventoryCreate.model_validate(record))
        by_name[item.item_name] = item.id

    for dish_name, order_type, category, price, ingredients in DEFAULT_RECIPES:
        recipe = storage.create_recipe(
            RecipeCreate(dish_name=dish_name, order_type=order_type, category=category, selling_price=price)
        )
        for item_name, quantity, unit in ingredients:
            storage.create_recipe_item(
                recipe.id,
                RecipeItemCreate(inventory_id=by_name[item_name], quantity_required=quantity, unit=unit),
            )

    logger.info(
        "Seeded demo data into %s storage (%s items, %s recipes)",
        storage.name,
        len(DEFAULT_INVENTORY),
        len(DEFAULT_RECIPES),
    )
    return True


__all__ = ["DEFAULT_INVENTORY", "DEFAULT_RECIPES", "seed_demo_data"]
