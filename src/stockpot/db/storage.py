"""Relational storage backend built on the SQLAlchemy ORM."""

from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from decimal import Decimal
from threading import RLock
from typing import Any, Generator, Iterable, Mapping, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from stockpot.db.models import InventoryRow, NotificationRow, RecipeItemRow, RecipeRow
from stockpot.db.repository import build_engine, build_session_factory, session_scope
from stockpot.errors import InsufficientStock, NotFound, RecipeNotFound, StorageError, ValidationError
from stockpot.models import (
    InventoryCreate,
    InventoryItem,
    Notification,
    NotificationCreate,
    Recipe,
    RecipeCreate,
    RecipeIngredient,
    RecipeItem,
    RecipeItemCreate,
)
from stockpot.storage.base import StorageBackend, utcnow

logger = logging.getLogger(__name__)

# Quantities are stored with four decimal places.
_QTY_SCALE = 4


def _aware(value: datetime) -> datetime:
    # SQLite drops the offset on read; stored values are always UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _inventory_to_model(row: InventoryRow) -> InventoryItem:
    return InventoryItem(
        id=row.id,
        item_name=row.item_name,
        unit_of_measurement=row.unit_of_measurement,
        box_or_package_qty=row.box_or_package_qty,
        unit_price=row.unit_price,
        total_price=row.total_price,
        ideal_qty=Decimal(row.ideal_qty),
        current_qty=Decimal(row.current_qty),
        shelf_life_days=row.shelf_life_days,
        category=row.category,
        last_updated=_aware(row.last_updated),
    )


def _recipe_to_model(row: RecipeRow) -> Recipe:
    return Recipe(
        id=row.id,
        dish_name=row.dish_name,
        order_type=row.order_type,
        description=row.description,
        selling_price=row.selling_price,
        category=row.category,
        is_active=row.is_active,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _recipe_item_to_model(row: RecipeItemRow) -> RecipeItem:
    return RecipeItem(
        id=row.id,
        recipe_id=row.recipe_id,
        inventory_id=row.inventory_id,
        quantity_required=row.quantity_required,
        unit=row.unit,
    )


def _notification_to_model(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        type=row.type,
        message=row.message,
        details=dict(row.details or {}),
        is_read=row.is_read,
        created_at=_aware(row.created_at),
        user_id=row.user_id,
    )


_RECIPE_CONFLICT = ("Recipe already exists for this dish and order type", ["dishName", "orderType"])
_INGREDIENT_CONFLICT = ("Inventory item is already an ingredient of this recipe", ["inventoryId"])


class SqlAlchemyStorage(StorageBackend):
    """Storage backend over any SQLAlchemy database URL (SQLite by default)."""

    name = "sqlalchemy"

    def __init__(self, database_url: str, *, timeout: float = 10.0, engine: Optional[Engine] = None) -> None:
        self.database_url = database_url
        self._engine = engine or build_engine(database_url, timeout=timeout)
        self._sessions = build_session_factory(self._engine)
        # A StaticPool hands every thread the same connection, so sessions take turns.
        self._shared_connection = isinstance(self._engine.pool, StaticPool)
        self._connection_lock = RLock()

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _guard(
        self,
        action: str,
        conflict: tuple[str, Iterable[str]] = ("Record conflicts with existing data", ()),
    ) -> Generator[None, None, None]:
        lock = self._connection_lock if self._shared_connection else nullcontext()
        with lock:
            try:
                yield
            except IntegrityError as exc:
                logger.info("Integrity error during %s: %s", action, exc.orig)
                message, fields = conflict
                raise ValidationError(message, fields) from exc
            except SQLAlchemyError as exc:
                logger.exception("Database error during %s", action)
                raise StorageError(f"Database error during {action}") from exc

    # Inventory -------------------------------------------------------------------

    def _inventory_row(self, session, item_id: int) -> InventoryRow:
        row = session.get(InventoryRow, item_id)
        if row is None:
            raise NotFound("Inventory item", item_id)
        return row

    def list_inventory(self) -> list[InventoryItem]:
        with self._guard("list inventory"), session_scope(self._sessions) as session:
            rows = session.execute(select(InventoryRow).order_by(InventoryRow.id)).scalars().all()
            return [_inventory_to_model(row) for row in rows]

    def get_inventory(self, item_id: int) -> InventoryItem:
        with self._guard("get inventory item"), session_scope(self._sessions) as session:
            return _inventory_to_model(self._inventory_row(session, item_id))

    def list_inventory_by_category(self, category: str) -> list[InventoryItem]:
        with self._guard("list inventory by category"), session_scope(self._sessions) as session:
            rows = (
                session.execute(
                    select(InventoryRow)
                    .where(InventoryRow.category == category)
                    .order_by(InventoryRow.item_name, InventoryRow.id)
                )
                .scalars()
                .all()
            )
            return [_inventory_to_model(row) for row in rows]

    def list_low_stock(self) -> list[InventoryItem]:
        with self._guard("list low stock"), session_scope(self._sessions) as session:
            rows = (
                session.execute(
                    select(InventoryRow)
                    .where(InventoryRow.current_qty < InventoryRow.ideal_qty)
                    .order_by(InventoryRow.item_name, InventoryRow.id)
                )
                .scalars()
                .all()
            )
            return [_inventory_to_model(row) for row in rows]

    def create_inventory(self, data: InventoryCreate) -> InventoryItem:
        with self._guard("create inventory item"), session_scope(self._sessions) as session:
            row = InventoryRow(**data.model_dump(), last_updated=utcnow())
            session.add(row)
            session.flush()
            return _inventory_to_model(row)

    def update_inventory(self, item_id: int, changes: Mapping[str, Any]) -> InventoryItem:
        with self._guard("update inventory item"), session_scope(self._sessions) as session:
            row = self._inventory_row(session, item_id)
            for key, value in changes.items():
                setattr(row, key, value)
            row.last_updated = utcnow()
            session.flush()
            return _inventory_to_model(row)

    def adjust_stock(
        self,
        item_id: int,
        delta: Decimal,
        *,
        unit_price: Optional[str] = None,
        total_price: Optional[str] = None,
    ) -> InventoryItem:
        new_qty = func.round(InventoryRow.current_qty + delta, _QTY_SCALE)
        values: dict[str, Any] = {"current_qty": new_qty, "last_updated": utcnow()}
        if unit_price is not None:
            values["unit_price"] = unit_price
        if total_price is not None:
            values["total_price"] = total_price

        statement = (
            update(InventoryRow)
            .where(InventoryRow.id == item_id, new_qty >= 0)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with self._guard("adjust stock"), session_scope(self._sessions) as session:
            result = session.execute(statement)
            row = session.execute(
                select(InventoryRow).where(InventoryRow.id == item_id).execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if row is None:
                raise NotFound("Inventory item", item_id)
            if result.rowcount == 0:
                raise InsufficientStock(item_id, Decimal(row.current_qty), delta)
            return _inventory_to_model(row)

    # Recipes ---------------------------------------------------------------------

    def _recipe_row(self, session, recipe_id: int) -> RecipeRow:
        row = session.get(RecipeRow, recipe_id)
        if row is None:
            raise NotFound("Recipe", recipe_id)
        return row

    def _recipes_where(self, action: str, *criteria) -> list[Recipe]:
        with self._guard(action), session_scope(self._sessions) as session:
            rows = (
                session.execute(select(RecipeRow).where(*criteria).order_by(RecipeRow.dish_name, RecipeRow.id))
                .scalars()
                .all()
            )
            return [_recipe_to_model(row) for row in rows]

    def list_recipes(self) -> list[Recipe]:
        with self._guard("list recipes"), session_scope(self._sessions) as session:
            rows = session.execute(select(RecipeRow).order_by(RecipeRow.id)).scalars().all()
            return [_recipe_to_model(row) for row in rows]

    def get_recipe(self, recipe_id: int) -> Recipe:
        with self._guard("get recipe"), session_scope(self._sessions) as session:
            return _recipe_to_model(self._recipe_row(session, recipe_id))

    def list_recipes_by_category(self, category: str) -> list[Recipe]:
        return self._recipes_where("list recipes by category", RecipeRow.category == category)

    def list_recipes_by_order_type(self, order_type: str) -> list[Recipe]:
        return self._recipes_where("list recipes by order type", RecipeRow.order_type == order_type)

    def find_recipe(self, dish_name: str, order_type: str) -> Recipe:
        with self._guard("find recipe"), session_scope(self._sessions) as session:
            row = (
                session.execute(
                    select(RecipeRow)
                    .where(RecipeRow.dish_name == dish_name, RecipeRow.order_type == order_type)
                    .order_by(RecipeRow.id)
                    .limit(1)
                )
                .scalars()
                .first()
            )
            if row is None:
                raise RecipeNotFound(dish_name, order_type)
            return _recipe_to_model(row)

    def create_recipe(self, data: RecipeCreate) -> Recipe:
        with self._guard("create recipe", _RECIPE_CONFLICT), session_scope(self._sessions) as session:
            now = utcnow()
            row = RecipeRow(**data.model_dump(), created_at=now, updated_at=now)
            session.add(row)
            session.flush()
            return _recipe_to_model(row)

    def update_recipe(self, recipe_id: int, changes: Mapping[str, Any]) -> Recipe:
        with self._guard("update recipe", _RECIPE_CONFLICT), session_scope(self._sessions) as session:
            row = self._recipe_row(session, recipe_id)
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            return _recipe_to_model(row)

    def list_recipe_ingredients(self, recipe_id: int) -> list[RecipeIngredient]:
        with self._guard("list recipe ingredients"), session_scope(self._sessions) as session:
            self._recipe_row(session, recipe_id)
            rows = session.execute(
                select(RecipeItemRow, InventoryRow)
                .join(InventoryRow, RecipeItemRow.inventory_id == InventoryRow.id)
                .where(RecipeItemRow.recipe_id == recipe_id)
                .order_by(RecipeItemRow.id)
            ).all()
            return [
                RecipeIngredient(
                    **_recipe_item_to_model(item_row).model_dump(),
                    inventory_item=_inventory_to_model(inventory_row),
                )
                for item_row, inventory_row in rows
            ]

    def get_recipe_item(self, item_id: int) -> RecipeItem:
        with self._guard("get recipe item"), session_scope(self._sessions) as session:
            row = session.get(RecipeItemRow, item_id)
            if row is None:
                raise NotFound("Recipe item", item_id)
            return _recipe_item_to_model(row)

    def create_recipe_item(self, recipe_id: int, data: RecipeItemCreate) -> RecipeItem:
        with self._guard("create recipe item", _INGREDIENT_CONFLICT), session_scope(self._sessions) as session:
            self._recipe_row(session, recipe_id)
            row = RecipeItemRow(recipe_id=recipe_id, **data.model_dump())
            session.add(row)
            session.flush()
            return _recipe_item_to_model(row)

    def update_recipe_item(self, item_id: int, changes: Mapping[str, Any]) -> RecipeItem:
        with self._guard("update recipe item", _INGREDIENT_CONFLICT), session_scope(self._sessions) as session:
            row = session.get(RecipeItemRow, item_id)
            if row is None:
                raise NotFound("Recipe item", item_id)
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            return _recipe_item_to_model(row)

    def delete_recipe_item(self, item_id: int) -> None:
        with self._guard("delete recipe item"), session_scope(self._sessions) as session:
            row = session.get(RecipeItemRow, item_id)
            if row is None:
                raise NotFound("Recipe item", item_id)
            session.delete(row)

    # Notifications ---------------------------------------------------------------

    @staticmethod
    def _visible_to(user_id: Optional[int]):
        if user_id is None:
            return ()
        return (or_(NotificationRow.user_id == user_id, NotificationRow.user_id.is_(None)),)

    def list_notifications(
        self, user_id: Optional[int] = None, *, unread_only: bool = False
    ) -> list[Notification]:
        criteria = list(self._visible_to(user_id))
        if unread_only:
            criteria.append(NotificationRow.is_read.is_(False))
        with self._guard("list notifications"), session_scope(self._sessions) as session:
            rows = (
                session.execute(
                    select(NotificationRow)
                    .where(*criteria)
                    .order_by(NotificationRow.created_at.desc(), NotificationRow.id.desc())
                )
                .scalars()
                .all()
            )
            return [_notification_to_model(row) for row in rows]

    def create_notification(self, data: NotificationCreate) -> Notification:
        with self._guard("create notification"), session_scope(self._sessions) as session:
            row = NotificationRow(**data.model_dump(), created_at=utcnow())
            session.add(row)
            session.flush()
            return _notification_to_model(row)

    def mark_notification_read(self, notification_id: int) -> Notification:
        with self._guard("mark notification read"), session_scope(self._sessions) as session:
            row = session.get(NotificationRow, notification_id)
            if row is None:
                raise NotFound("Notification", notification_id)
            row.is_read = True
            session.flush()
            return _notification_to_model(row)

    def mark_all_notifications_read(self, user_id: Optional[int] = None) -> int:
        statement = (
            update(NotificationRow)
            .where(NotificationRow.is_read.is_(False), *self._visible_to(user_id))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        with self._guard("mark all notifications read"), session_scope(self._sessions) as session:
            return int(session.execute(statement).rowcount or 0)


__all__ = ["SqlAlchemyStorage"]
