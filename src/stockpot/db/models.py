"""SQLAlchemy models representing Stockpot persistence tables."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

QUANTITY = Numeric(14, 4, asdecimal=True)


class Base(DeclarativeBase):
    """Declarative base class for Stockpot ORM models."""


class InventoryRow(Base):
    """Physical stock of one purchasable item."""

    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_of_measurement: Mapped[str] = mapped_column(String(64), nullable=False)
    box_or_package_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[str] = mapped_column(String(64), nullable=False)
    total_price: Mapped[str] = mapped_column(String(64), nullable=False)
    ideal_qty: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)
    current_qty: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False, default=Decimal("0"))
    shelf_life_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RecipeRow(Base):
    """Dish sold through one order channel."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dish_name: Mapped[str] = mapped_column(String(255), nullable=False)
    order_type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    selling_price: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("dish_name", "order_type", name="uq_recipes_dish_order_type"),
    )


class RecipeItemRow(Base):
    """Ingredient requirement linking a recipe to an inventory item."""

    __tablename__ = "recipe_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inventory.id", ondelete="CASCADE"), nullable=False
    )
    quantity_required: Mapped[str] = mapped_column(String(64), nullable=False)
    unit: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint("recipe_id", "inventory_id", name="uq_recipe_items_recipe_inventory"),
    )


class NotificationRow(Base):
    """Dashboard notification; a null ``user_id`` is a broadcast."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)


__all__ = ["Base", "InventoryRow", "RecipeRow", "RecipeItemRow", "NotificationRow"]
