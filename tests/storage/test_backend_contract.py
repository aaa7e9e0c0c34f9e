"""Behavioral contract shared by every storage backend."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from stockpot.errors import InsufficientStock, NotFound, RecipeNotFound, ValidationError
from stockpot.models import (
    InventoryCreate,
    NotificationCreate,
    RecipeCreate,
    RecipeItemCreate,
)


def _inventory(name: str = "Basil", *, ideal: str = "10", current: str = "10", category: str = "produce"):
    return InventoryCreate(
        item_name=name,
        unit_of_measurement="kg",
        box_or_package_qty=1,
        unit_price="$3.00",
        total_price="$3.00",
        ideal_qty=Decimal(ideal),
        current_qty=Decimal(current),
        category=category,
    )


def test_inventory_create_get_and_list(storage):
    first = storage.create_inventory(_inventory("Basil"))
    second = storage.create_inventory(_inventory("Arugula"))

    assert first.id != second.id
    fetched = storage.get_inventory(first.id)
    assert fetched.item_name == "Basil"
    assert fetched.current_qty == Decimal("10")
    assert fetched.last_updated is not None
    assert [item.id for item in storage.list_inventory()] == [first.id, second.id]


def test_inventory_by_category_orders_by_name(storage):
    storage.create_inventory(_inventory("Thyme", category="herbs"))
    storage.create_inventory(_inventory("Basil", category="herbs"))
    storage.create_inventory(_inventory("Flour", category="dry"))

    names = [item.item_name for item in storage.list_inventory_by_category("herbs")]
    assert names == ["Basil", "Thyme"]
    assert storage.list_inventory_by_category("missing") == []


def test_get_unknown_inventory_raises_not_found(storage):
    with pytest.raises(NotFound):
        storage.get_inventory(999)


def test_update_inventory_applies_changes(storage):
    item = storage.create_inventory(_inventory("Basil"))

    updated = storage.update_inventory(item.id, {"item_name": "Thai Basil", "ideal_qty": Decimal("12")})

    assert updated.item_name == "Thai Basil"
    assert updated.ideal_qty == Decimal("12")
    assert storage.get_inventory(item.id).item_name == "Thai Basil"
    with pytest.raises(NotFound):
        storage.update_inventory(999, {"item_name": "Nope"})


def test_low_stock_contains_exactly_items_below_ideal(storage):
    storage.create_inventory(_inventory("Exact", ideal="5", current="5"))
    storage.create_inventory(_inventory("Below", ideal="5", current="4.99"))
    storage.create_inventory(_inventory("Above", ideal="5", current="6"))
    storage.create_inventory(_inventory("Almost", ideal="5", current="0"))

    names = [item.item_name for item in storage.list_low_stock()]
    assert names == ["Almost", "Below"]


def test_adjust_stock_applies_delta_and_prices(storage):
    item = storage.create_inventory(_inventory("Basil", current="5"))

    updated = storage.adjust_stock(item.id, Decimal("-0.2"), unit_price="$3.50", total_price="$3.50")

    assert updated.current_qty == Decimal("4.8")
    assert updated.unit_price == "$3.50"
    assert updated.total_price == "$3.50"
    assert storage.get_inventory(item.id).current_qty == Decimal("4.8")


def test_adjust_stock_rejects_negative_result(storage):
    item = storage.create_inventory(_inventory("Basil", current="1"))

    with pytest.raises(InsufficientStock):
        storage.adjust_stock(item.id, Decimal("-1.5"))

    assert storage.get_inventory(item.id).current_qty == Decimal("1")
    assert storage.adjust_stock(item.id, Decimal("-1")).current_qty == Decimal("0")


def test_adjust_stock_unknown_item_raises_not_found(storage):
    with pytest.raises(NotFound):
        storage.adjust_stock(404, Decimal("1"))


def test_concurrent_adjustments_are_not_lost(storage):
    item = storage.create_inventory(_inventory("Flour", ideal="10", current="100"))
    deltas = [Decimal("-1"), Decimal("0.5"), Decimal("-2"), Decimal("1")] * 5

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda delta: storage.adjust_stock(item.id, delta), deltas))

    assert storage.get_inventory(item.id).current_qty == Decimal("100") + sum(deltas)


def test_recipe_lookup_and_uniqueness(storage):
    dine_in = storage.create_recipe(RecipeCreate(dish_name="Lasagna", order_type="dine-in", category="pasta"))
    takeaway = storage.create_recipe(RecipeCreate(dish_name="Lasagna", order_type="takeaway", category="pasta"))

    assert storage.find_recipe("Lasagna", "takeaway").id == takeaway.id
    assert storage.find_recipe("Lasagna", "dine-in").id == dine_in.id
    assert storage.find_recipe("Lasagna", "dine-in") == storage.find_recipe("Lasagna", "dine-in")
    with pytest.raises(RecipeNotFound):
        storage.find_recipe("lasagna", "dine-in")
    with pytest.raises(ValidationError):
        storage.create_recipe(RecipeCreate(dish_name="Lasagna", order_type="dine-in"))
    with pytest.raises(ValidationError):
        storage.update_recipe(takeaway.id, {"order_type": "dine-in"})


def test_recipe_listing_filters(storage):
    storage.create_recipe(RecipeCreate(dish_name="Tiramisu", order_type="both", category="dessert"))
    storage.create_recipe(RecipeCreate(dish_name="Panna Cotta", order_type="dine-in", category="dessert"))
    storage.create_recipe(RecipeCreate(dish_name="Calzone", order_type="takeaway", category="pizza"))

    assert [r.dish_name for r in storage.list_recipes_by_category("dessert")] == ["Panna Cotta", "Tiramisu"]
    assert [r.dish_name for r in storage.list_recipes_by_order_type("takeaway")] == ["Calzone"]
    assert len(storage.list_recipes()) == 3
    with pytest.raises(NotFound):
        storage.get_recipe(999)


def test_update_recipe_stamps_updated_at(storage):
    recipe = storage.create_recipe(RecipeCreate(dish_name="Risotto", order_type="dine-in"))

    updated = storage.update_recipe(recipe.id, {"selling_price": "$15.00", "is_active": False})

    assert updated.selling_price == "$15.00"
    assert updated.is_active is False
    assert updated.updated_at >= recipe.updated_at
    with pytest.raises(NotFound):
        storage.update_recipe(999, {"category": "x"})


def test_recipe_items_join_current_inventory(storage):
    cheese = storage.create_inventory(_inventory("Cheese", current="5"))
    recipe = storage.create_recipe(RecipeCreate(dish_name="Toastie", order_type="both"))
    item = storage.create_recipe_item(recipe.id, RecipeItemCreate(inventory_id=cheese.id, quantity_required="0.1", unit="kg"))

    storage.adjust_stock(cheese.id, Decimal("-1"))
    ingredients = storage.list_recipe_ingredients(recipe.id)

    assert [ingredient.id for ingredient in ingredients] == [item.id]
    assert ingredients[0].quantity_required == "0.1"
    assert ingredients[0].inventory_item.current_qty == Decimal("4")
    assert storage.get_recipe_item(item.id).recipe_id == recipe.id


def test_recipe_item_duplicate_inventory_rejected(storage):
    cheese = storage.create_inventory(_inventory("Cheese"))
    recipe = storage.create_recipe(RecipeCreate(dish_name="Toastie", order_type="both"))
    storage.create_recipe_item(recipe.id, RecipeItemCreate(inventory_id=cheese.id, quantity_required="1", unit="kg"))

    with pytest.raises(ValidationError):
        storage.create_recipe_item(recipe.id, RecipeItemCreate(inventory_id=cheese.id, quantity_required="2", unit="kg"))


def test_recipe_item_update_and_delete(storage):
    cheese = storage.create_inventory(_inventory("Cheese"))
    recipe = storage.create_recipe(RecipeCreate(dish_name="Toastie", order_type="both"))
    item = storage.create_recipe_item(recipe.id, RecipeItemCreate(inventory_id=cheese.id, quantity_required="1", unit="kg"))

    updated = storage.update_recipe_item(item.id, {"quantity_required": "0.25", "unit": "kg"})
    assert updated.quantity_required == "0.25"

    storage.delete_recipe_item(item.id)
    assert storage.list_recipe_ingredients(recipe.id) == []
    with pytest.raises(NotFound):
        storage.delete_recipe_item(item.id)
    with pytest.raises(NotFound):
        storage.get_recipe_item(item.id)
    with pytest.raises(NotFound):
        storage.update_recipe_item(item.id, {"unit": "g"})


def test_recipe_item_for_unknown_recipe_raises_not_found(storage):
    cheese = storage.create_inventory(_inventory("Cheese"))

    with pytest.raises(NotFound):
        storage.create_recipe_item(999, RecipeItemCreate(inventory_id=cheese.id, quantity_required="1", unit="kg"))
    with pytest.raises(NotFound):
        storage.list_recipe_ingredients(999)


def test_notifications_scoped_to_user_and_broadcasts(storage):
    broadcast = storage.create_notification(NotificationCreate(type="inventory", message="Low stock"))
    mine = storage.create_notification(NotificationCreate(type="order", message="Order placed", user_id=7))
    storage.create_notification(NotificationCreate(type="order", message="Someone else", user_id=8))

    visible = storage.list_notifications(7)
    assert {notification.id for notification in visible} == {broadcast.id, mine.id}
    assert [notification.id for notification in visible] == sorted((broadcast.id, mine.id), reverse=True)
    assert len(storage.list_notifications()) == 3


def test_notification_read_flags(storage):
    first = storage.create_notification(
        NotificationCreate(type="inventory", message="Low stock", details={"inventoryId": 3})
    )
    storage.create_notification(NotificationCreate(type="order", message="Order placed"))

    marked = storage.mark_notification_read(first.id)
    assert marked.is_read is True
    assert marked.details == {"inventoryId": 3}
    assert [n.message for n in storage.list_notifications(unread_only=True)] == ["Order placed"]

    assert storage.mark_all_notifications_read() == 1
    assert storage.list_notifications(unread_only=True) == []
    with pytest.raises(NotFound):
        storage.mark_notification_read(999)
