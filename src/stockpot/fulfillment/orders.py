"""Order intake: run fulfillment for every line of a placed order."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from stockpot.errors import (
    FulfillmentFailed,
    NoIngredientsConfigured,
    RecipeNotFound,
    StorageError,
    ValidationError,
)
from stockpot.fulfillment.engine import FulfillmentEngine
from stockpot.models import (
    AppliedAdjustment,
    InventoryItem,
    NotificationCreate,
    OrderLine,
    OrderLineOutcome,
    OrderOutcome,
    OrderRequest,
    parse_payload,
)
from stockpot.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class OrderIntake:
    """Turn an order-placement event into fulfillment runs and notifications.

    A line with quantity ``n`` runs fulfillment ``n`` times. Lines whose dish has
    no recipe (or a recipe without ingredients) are skipped; a failed run stops
    that line and is reported together with the adjustments that did apply. A
    storage error fails only the line it hit; later lines are still attempted.
    """

    def __init__(self, engine: FulfillmentEngine, dispatcher: Optional[NotificationDispatcher] = None) -> None:
        self._engine = engine
        self._dispatcher = dispatcher

    def _fulfil_line(
        self,
        line: OrderLine,
        order_type: str,
        newly_low: dict[int, InventoryItem],
    ) -> tuple[OrderLineOutcome, Optional[list[InventoryItem]]]:
        adjustments: list[AppliedAdjustment] = []
        low_stock: Optional[list[InventoryItem]] = None
        recipe_id: Optional[int] = None
        fulfilled = 0
        for _ in range(line.quantity):
            try:
                result = self._engine.process(line.name, order_type)
            except (RecipeNotFound, NoIngredientsConfigured) as exc:
                outcome = OrderLineOutcome(
                    name=line.name,
                    quantity=line.quantity,
                    status="skipped" if fulfilled == 0 else "failed",
                    fulfilled_count=fulfilled,
                    reason=exc.message,
                    recipe_id=recipe_id,
                    adjustments=adjustments,
                )
                return outcome, low_stock
            except (FulfillmentFailed, StorageError, ValidationError) as exc:
                if isinstance(exc, FulfillmentFailed):
                    adjustments.extend(exc.applied)
                outcome = OrderLineOutcome(
                    name=line.name,
                    quantity=line.quantity,
                    status="failed",
                    fulfilled_count=fulfilled,
                    reason=exc.message,
                    recipe_id=recipe_id,
                    adjustments=adjustments,
                )
                return outcome, low_stock

            fulfilled += 1
            recipe_id = result.recipe_id
            adjustments.extend(result.adjustments)
            low_stock = result.low_stock_items
            for item in result.newly_low_items:
                newly_low[item.id] = item

        outcome = OrderLineOutcome(
            name=line.name,
            quantity=line.quantity,
            status="fulfilled",
            fulfilled_count=fulfilled,
            recipe_id=recipe_id,
            adjustments=adjustments,
        )
        return outcome, low_stock

    def place_order(self, payload: Union[OrderRequest, Mapping[str, Any]]) -> OrderOutcome:
        order = parse_payload(OrderRequest, payload)
        newly_low: dict[int, InventoryItem] = {}
        low_stock: list[InventoryItem] = []
        lines: list[OrderLineOutcome] = []

        for line in order.items:
            outcome, line_low_stock = self._fulfil_line(line, order.type, newly_low)
            if line_low_stock is not None:
                low_stock = line_low_stock
            lines.append(outcome)
            if outcome.status != "fulfilled":
                logger.warning(
                    "Order line %r %s: %s",
                    line.name,
                    outcome.status,
                    outcome.reason,
                    extra={"dish_name": line.name, "order_type": order.type},
                )

        notification_ids = self._notify(order, lines, list(newly_low.values()))
        return OrderOutcome(
            customer_name=order.customer_name,
            order_type=order.type,
            lines=lines,
            low_stock_items=low_stock,
            newly_low_items=list(newly_low.values()),
            notification_ids=notification_ids,
        )

    def _notify(
        self,
        order: OrderRequest,
        lines: list[OrderLineOutcome],
        newly_low: list[InventoryItem],
    ) -> list[int]:
        if self._dispatcher is None:
            return []

        customer = order.customer_name or "walk-in customer"
        summary = ", ".join(f"{line.quantity}x {line.name}" for line in lines)
        created = [
            self._dispatcher.dispatch(
                NotificationCreate(
                    type="order",
                    message=f"New {order.type} order from {customer}: {summary}",
                    details={
                        "customerName": order.customer_name,
                        "orderType": order.type,
                        "lines": [line.model_dump(mode="json", by_alias=True, include={"name", "quantity", "status"})
                                  for line in lines],
                    },
                )
            )
        ]
        for line in lines:
            if line.status != "failed":
                continue
            created.append(
                self._dispatcher.dispatch(
                    NotificationCreate(
                        type="inventory",
                        message=f"Fulfillment failed for {line.name}: {line.reason}",
                        details={
                            "dishName": line.name,
                            "orderType": order.type,
                            "appliedAdjustments": [
                                adjustment.model_dump(mode="json", by_alias=True) for adjustment in line.adjustments
                            ],
                        },
                    )
                )
            )
        created.extend(self._dispatcher.low_stock_alert(item) for item in newly_low)
        return [notification.id for notification in created]


__all__ = ["OrderIntake"]
