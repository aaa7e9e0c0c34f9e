"""Recipe catalog: dishes, their ingredient requirements and derived cost."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Union

from stockpot.errors import NotFound, ValidationError
from stockpot.models import (
    Recipe,
    RecipeCost,
    RecipeCreate,
    RecipeIngredient,
    RecipeItem,
    RecipeItemCreate,
    RecipeItemUpdate,
    RecipeUpdate,
    normalize_order_type,
    parse_payload,
)
from stockpot.storage.base import StorageBackend
from stockpot.units import format_money, parse_money, parse_quantity

logger = logging.getLogger(__name__)


class RecipeCatalog:
    """Owns recipes and recipe items on top of a storage backend."""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    # Recipes ---------------------------------------------------------------------

    def list_recipes(self) -> list[Recipe]:
        return self._storage.list_recipes()

    def get(self, recipe_id: int) -> Recipe:
        return self._storage.get_recipe(recipe_id)

    def list_by_category(self, category: str) -> list[Recipe]:
        return self._storage.list_recipes_by_category(category)

    def list_by_order_type(self, order_type: str) -> list[Recipe]:
        return self._storage.list_recipes_by_order_type(normalize_order_type(order_type))

    def find(self, dish_name: str, order_type: str) -> Recipe:
        """Resolve a recipe by exact dish name and order type.

        Raises :class:`~stockpot.errors.RecipeNotFound` when nothing matches.
        """

        return self._storage.find_recipe(dish_name, order_type)

    def create(self, payload: Union[RecipeCreate, Mapping[str, Any]]) -> Recipe:
        data = parse_payload(RecipeCreate, payload)
        recipe = self._storage.create_recipe(data)
        logger.info(
            "Created recipe",
            extra={"recipe_id": recipe.id, "dish_name": recipe.dish_name, "order_type": recipe.order_type},
        )
        return recipe

    def update(self, recipe_id: int, payload: Union[RecipeUpdate, Mapping[str, Any]]) -> Recipe:
        data = parse_payload(RecipeUpdate, payload)
        return self._storage.update_recipe(recipe_id, data.model_dump(exclude_unset=True))

    # Ingredients -----------------------------------------------------------------

    def ingredients_of(self, recipe_id: int) -> list[RecipeIngredient]:
        """Return each requirement of the recipe paired with its current inventory item."""

        return self._storage.list_recipe_ingredients(recipe_id)

    def _ensure_inventory_exists(self, inventory_id: int) -> None:
        try:
            self._storage.get_inventory(inventory_id)
        except NotFound:
            raise ValidationError(f"Inventory item {inventory_id} does not exist", ["inventoryId"]) from None

    def add_ingredient(
        self, recipe_id: int, payload: Union[RecipeItemCreate, Mapping[str, Any]]
    ) -> RecipeItem:
        data = parse_payload(RecipeItemCreate, payload)
        self._storage.get_recipe(recipe_id)
        self._ensure_inventory_exists(data.inventory_id)
        item = self._storage.create_recipe_item(recipe_id, data)
        logger.info(
            "Added inventory item %s to recipe",
            data.inventory_id,
            extra={"recipe_id": recipe_id, "inventory_id": data.inventory_id},
        )
        return item

    def update_ingredient(
        self, item_id: int, payload: Union[RecipeItemUpdate, Mapping[str, Any]]
    ) -> RecipeItem:
        data = parse_payload(RecipeItemUpdate, payload)
        changes = data.model_dump(exclude_unset=True)
        if "inventory_id" in changes:
            self._ensure_inventory_exists(changes["inventory_id"])
        return self._storage.update_recipe_item(item_id, changes)

    def remove_ingredient(self, item_id: int) -> None:
        self._storage.delete_recipe_item(item_id)
        logger.info("Removed recipe item %s", item_id)

    # Cost ------------------------------------------------------------------------

    def estimate_cost(self, recipe_id: int) -> RecipeCost:
        """Sum ``unit_price * quantity_required`` over the recipe's ingredients.

        Rows whose price or quantity cannot be parsed are skipped and listed in
        ``skipped_item_ids``. Decimal arithmetic keeps the total exact, so the
        result does not depend on ingredient order.
        """

        total = Decimal("0")
        costed = 0
        skipped: list[int] = []
        for ingredient in self.ingredients_of(recipe_id):
            price = parse_money(ingredient.inventory_item.unit_price)
            quantity = parse_quantity(ingredient.quantity_required)
            if price is None or quantity is None:
                skipped.append(ingredient.id)
                continue
            total += price * quantity
            costed += 1

        if skipped:
            logger.warning(
                "Skipped %s ingredient rows with unparsable price or quantity",
                len(skipped),
                extra={"recipe_id": recipe_id},
            )
        return RecipeCost(
            recipe_id=recipe_id,
            total_cost=format_money(total),
            costed_items=costed,
            skipped_item_ids=skipped,
        )


__all__ = ["RecipeCatalog"]
