"""Recipe fulfillment: deduct a dish's ingredients from inventory."""

from __future__ import annotations

import logging
from decimal import Decimal

from stockpot.errors import (
    FulfillmentFailed,
    NoIngredientsConfigured,
    StockpotError,
    ValidationError,
)
from stockpot.inventory.ledger import InventoryLedger
from stockpot.metrics import FULFILLMENT_RUNS
from stockpot.models import AppliedAdjustment, FulfillmentResult, InventoryItem, RecipeIngredient
from stockpot.recipes.catalog import RecipeCatalog
from stockpot.units import parse_quantity

logger = logging.getLogger(__name__)


class FulfillmentEngine:
    """Resolve a dish for an order channel and deduct every ingredient it needs.

    Each ingredient is deducted with its own atomic adjustment, so dishes that
    share an ingredient serialize on that ingredient only. There is no rollback:
    if an adjustment fails part way through, :class:`FulfillmentFailed` carries
    the adjustments that were already committed so they can be reconciled.
    """

    def __init__(self, catalog: RecipeCatalog, ledger: InventoryLedger) -> None:
        self._catalog = catalog
        self._ledger = ledger

    @staticmethod
    def _required_quantities(ingredients: list[RecipeIngredient]) -> list[tuple[RecipeIngredient, Decimal]]:
        parsed: list[tuple[RecipeIngredient, Decimal]] = []
        for ingredient in ingredients:
            quantity = parse_quantity(ingredient.quantity_required)
            if quantity is None or quantity <= 0:
                raise ValidationError(
                    f"Recipe item {ingredient.id} has an invalid quantity "
                    f"{ingredient.quantity_required!r}",
                    ["quantityRequired"],
                )
            inventory_unit = ingredient.inventory_item.unit_of_measurement
            if ingredient.unit.strip().lower() != inventory_unit.strip().lower():
                logger.warning(
                    "Recipe item %s uses unit %r but inventory is kept in %r; deducting without conversion",
                    ingredient.id,
                    ingredient.unit,
                    inventory_unit,
                    extra={"recipe_id": ingredient.recipe_id, "inventory_id": ingredient.inventory_id},
                )
            parsed.append((ingredient, quantity))
        return parsed

    def process(self, dish_name: str, order_type: str) -> FulfillmentResult:
        """Fulfil one serving of ``dish_name`` ordered through ``order_type``.

        Raises ``RecipeNotFound``, ``NoIngredientsConfigured`` or
        ``ValidationError`` before any stock is touched, and
        ``FulfillmentFailed`` when an adjustment fails mid-run.
        """

        log_extra = {"dish_name": dish_name, "order_type": order_type}
        try:
            recipe = self._catalog.find(dish_name, order_type)
            ingredients = self._catalog.ingredients_of(recipe.id)
            if not ingredients:
                raise NoIngredientsConfigured(recipe.id, recipe.dish_name)
            requirements = self._required_quantities(ingredients)
        except StockpotError as exc:
            FULFILLMENT_RUNS.labels(outcome=type(exc).__name__).inc()
            logger.info("Fulfillment not started: %s", exc.message, extra=log_extra)
            raise

        applied: list[AppliedAdjustment] = []
        adjusted: dict[int, InventoryItem] = {}
        previous: dict[int, Decimal] = {}
        for ingredient, quantity in requirements:
            try:
                item = self._ledger.adjust_stock(ingredient.inventory_id, -quantity)
            except StockpotError as exc:
                FULFILLMENT_RUNS.labels(outcome="partial" if applied else "failed").inc()
                logger.error(
                    "Fulfillment stopped at inventory item %s after %s adjustments: %s",
                    ingredient.inventory_id,
                    len(applied),
                    exc.message,
                    extra={**log_extra, "recipe_id": recipe.id, "inventory_id": ingredient.inventory_id},
                )
                raise FulfillmentFailed(
                    f"Fulfillment of '{recipe.dish_name}' ({recipe.order_type}) stopped at inventory item "
                    f"{ingredient.inventory_id}: {exc.message}",
                    applied=applied,
                    failed_inventory_id=ingredient.inventory_id,
                    cause=exc,
                ) from exc

            before = item.current_qty + quantity
            previous[item.id] = before
            adjusted[item.id] = item
            applied.append(
                AppliedAdjustment(
                    inventory_id=item.id,
                    item_name=item.item_name,
                    quantity_change=-quantity,
                    previous_qty=before,
                    current_qty=item.current_qty,
                    ideal_qty=item.ideal_qty,
                )
            )

        try:
            low_stock = self._ledger.low_stock()
        except StockpotError as exc:
            FULFILLMENT_RUNS.labels(outcome="partial").inc()
            logger.error(
                "Low-stock lookup failed after %s adjustments: %s",
                len(applied),
                exc.message,
                extra={**log_extra, "recipe_id": recipe.id},
            )
            raise FulfillmentFailed(
                f"Stock for '{recipe.dish_name}' ({recipe.order_type}) was deducted but the "
                f"low-stock check failed: {exc.message}",
                applied=applied,
                failed_inventory_id=None,
                cause=exc,
            ) from exc

        newly_low = [
            item
            for item in low_stock
            if item.id in adjusted and previous[item.id] >= item.ideal_qty
        ]
        FULFILLMENT_RUNS.labels(outcome="fulfilled").inc()
        logger.info(
            "Fulfilled recipe with %s adjustments; %s items newly low",
            len(applied),
            len(newly_low),
            extra={**log_extra, "recipe_id": recipe.id},
        )
        return FulfillmentResult(
            success=True,
            recipe_id=recipe.id,
            dish_name=recipe.dish_name,
            order_type=recipe.order_type,
            adjustments=applied,
            low_stock_items=low_stock,
            newly_low_items=newly_low,
        )


__all__ = ["FulfillmentEngine"]
