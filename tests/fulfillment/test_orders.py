from __future__ import annotations

from decimal import Decimal

import pytest

from stockpot.errors import StorageError, ValidationError
from stockpot.fulfillment import FulfillmentEngine, OrderIntake
from stockpot.inventory import InventoryLedger
from stockpot.notifications import NotificationDispatcher
from stockpot.recipes import RecipeCatalog
from stockpot.storage import MemoryStorage, seed_demo_data


@pytest.fixture()
def dispatcher(seeded_storage) -> NotificationDispatcher:
    return NotificationDispatcher(seeded_storage)


@pytest.fixture()
def intake(engine, dispatcher) -> OrderIntake:
    return OrderIntake(engine, dispatcher)


def test_each_line_runs_quantity_times(intake, ledger):
    outcome = intake.place_order(
        {"customerName": "Ada", "type": "manual-takeout", "items": [{"name": "Margherita Pizza", "quantity": 2}]}
    )

    assert outcome.order_type == "takeaway"
    line = outcome.lines[0]
    assert line.status == "fulfilled"
    assert line.fulfilled_count == 2
    assert len(line.adjustments) == 6
    assert ledger.get(1).current_qty == Decimal("4.6")


def test_unknown_dishes_are_skipped(intake, ledger):
    outcome = intake.place_order(
        {
            "type": "dine_in",
            "items": [{"name": "Soup of the Day", "quantity": 1}, {"name": "Garlic Bread", "quantity": 1}],
        }
    )

    skipped, garlic = outcome.lines
    assert skipped.status == "skipped"
    assert "Soup of the Day" in skipped.reason
    assert skipped.adjustments == []
    # Garlic Bread is only configured for the "both" channel.
    assert garlic.status == "skipped"
    assert ledger.get(5).current_qty == Decimal("5")


def test_failed_line_reports_partial_runs(intake, ledger):
    ledger.update(1, {"currentQty": "0.3"})

    outcome = intake.place_order({"type": "takeaway", "items": [{"name": "Margherita Pizza", "quantity": 3}]})

    line = outcome.lines[0]
    assert line.status == "failed"
    assert line.fulfilled_count == 1
    assert "Inventory item 1" in line.reason
    assert ledger.get(1).current_qty == Decimal("0.1")


def test_notifications_are_dispatched(intake, dispatcher, ledger):
    ledger.update(1, {"idealQty": "4.9"})

    outcome = intake.place_order(
        {"customerName": "Grace", "type": "takeaway", "items": [{"name": "Margherita Pizza"}]}
    )

    feed = dispatcher.feed()
    assert {notification.id for notification in feed} == set(outcome.notification_ids)
    order_note = next(notification for notification in feed if notification.type == "order")
    assert "Grace" in order_note.message
    assert order_note.details["orderType"] == "takeaway"
    low_note = next(notification for notification in feed if notification.type == "inventory")
    assert low_note.details["inventoryId"] == 1
    assert [item.item_name for item in outcome.newly_low_items] == ["Mozzarella"]


def test_failed_line_creates_inventory_notification(intake, dispatcher, ledger):
    ledger.update(2, {"currentQty": "0"})

    intake.place_order({"type": "takeaway", "items": [{"name": "Margherita Pizza"}]})

    failure = next(n for n in dispatcher.feed() if n.message.startswith("Fulfillment failed"))
    assert [adjustment["inventoryId"] for adjustment in failure.details["appliedAdjustments"]] == [1]


def test_order_payload_is_validated(intake):
    with pytest.raises(ValidationError) as excinfo:
        intake.place_order({"type": "takeaway", "items": []})

    assert excinfo.value.fields == ["items"]


def test_intake_without_dispatcher_sends_nothing(engine):
    outcome = OrderIntake(engine).place_order({"type": "both", "items": [{"name": "Garlic Bread"}]})

    assert outcome.lines[0].status == "fulfilled"
    assert outcome.notification_ids == []


class UnreachableRecipeStorage(MemoryStorage):
    """Memory store that fails recipe lookups for one dish."""

    def find_recipe(self, dish_name, order_type):
        if dish_name == "Garlic Bread":
            raise StorageError("recipes table unavailable")
        return super().find_recipe(dish_name, order_type)


def test_storage_error_fails_only_its_line():
    storage = UnreachableRecipeStorage()
    seed_demo_data(storage)
    dispatcher = NotificationDispatcher(storage)
    intake = OrderIntake(FulfillmentEngine(RecipeCatalog(storage), InventoryLedger(storage)), dispatcher)

    outcome = intake.place_order(
        {
            "type": "takeaway",
            "items": [{"name": "Margherita Pizza"}, {"name": "Garlic Bread"}, {"name": "Margherita Pizza"}],
        }
    )

    assert [line.status for line in outcome.lines] == ["fulfilled", "failed", "fulfilled"]
    assert outcome.lines[1].reason == "recipes table unavailable"
    assert storage.get_inventory(1).current_qty == Decimal("4.6")
    messages = [notification.message for notification in dispatcher.feed()]
    assert any(message.startswith("New takeaway order") for message in messages)
    assert "Fulfillment failed for Garlic Bread: recipes table unavailable" in messages
