"""In-process stand-in for the PostgREST endpoints used by ``HostedStorage``.

Supports the subset of the dialect the backend speaks: ``eq``/``is`` filters,
``or=(...)`` groups, ``order``, ``limit``, single-object reads, the
``inventory:inventory_id(*)`` embed and the unique/foreign-key error codes.
"""

from __future__ import annotations

import json
import threading
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

HOSTED_URL = "https://stockpot-test.supabase.co"
SINGLE_OBJECT = "application/vnd.pgrst.object+json"
NUMERIC_COLUMNS = {"ideal_qty", "current_qty"}
UNIQUE_COLUMNS = {
    "recipes": ("dish_name", "order_type"),
    "recipe_items": ("recipe_id", "inventory_id"),
}
FOREIGN_KEYS = {"recipe_items": {"recipe_id": "recipes", "inventory_id": "inventory"}}
COLUMN_DEFAULTS: dict[str, dict[str, Any]] = {
    "inventory": {"shelf_life_days": None, "category": None},
    "recipes": {"description": None, "selling_price": None, "category": None, "is_active": True},
    "recipe_items": {},
    "notifications": {"data": {}, "is_read": False, "user_id": None},
}
CONTROL_PARAMS = {"select", "order", "limit"}


def _error(status_code: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(status_code, json={"code": code, "message": message, "details": None, "hint": None})


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Cannot encode {type(value).__name__}")


def _compare(row: dict[str, Any], column: str, op: str, operand: str) -> bool:
    actual = row.get(column)
    if op == "is":
        if operand == "null":
            return actual is None
        return actual is (operand == "true")
    if op != "eq":
        raise ValueError(f"Unsupported operator {op}")
    if actual is None:
        return False
    if isinstance(actual, bool):
        return actual is (operand == "true")
    if isinstance(actual, (int, Decimal)):
        try:
            return Decimal(str(actual)) == Decimal(operand)
        except InvalidOperation:
            return False
    return str(actual) == operand


class FakePostgrest:
    """Thread-safe in-memory tables served through ``httpx.MockTransport``."""

    def __init__(self, api_key: str = "test-service-key") -> None:
        self.api_key = api_key
        self.tables: dict[str, dict[int, dict[str, Any]]] = {name: {} for name in COLUMN_DEFAULTS}
        self.requests: list[httpx.Request] = []
        self.fail_with: Optional[int] = None
        self.raise_timeout = False
        self._ids = {name: 0 for name in COLUMN_DEFAULTS}
        self._lock = threading.Lock()
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            if self.raise_timeout:
                raise httpx.ReadTimeout("timed out", request=request)
            if self.fail_with is not None:
                return _error(self.fail_with, "XX000", "injected failure")
            if request.headers.get("apikey") != self.api_key:
                return _error(401, "PGRST301", "Invalid API key")

            table = request.url.path.rsplit("/", 1)[-1]
            if table not in self.tables:
                return _error(404, "42P01", f'relation "{table}" does not exist')
            params = list(request.url.params.multi_items())
            handler = getattr(self, f"_{request.method.lower()}")
            return handler(request, table, params)

    # Helpers ---------------------------------------------------------------------

    @staticmethod
    def _matches(row: dict[str, Any], params: list[tuple[str, str]]) -> bool:
        for key, value in params:
            if key in CONTROL_PARAMS:
                continue
            if key == "or":
                clauses = [clause.split(".", 2) for clause in value.strip("()").split(",")]
                if not any(_compare(row, *clause) for clause in clauses):
                    return False
                continue
            op, operand = value.split(".", 1)
            if not _compare(row, key, op, operand):
                return False
        return True

    @staticmethod
    def _ordered(rows: list[dict[str, Any]], order: Optional[str]) -> list[dict[str, Any]]:
        rows = sorted(rows, key=lambda row: row["id"])
        if not order:
            return rows
        for part in reversed(order.split(",")):
            column, _, direction = part.partition(".")
            rows.sort(
                key=lambda row: (row.get(column) is None, row.get(column)),
                reverse=direction == "desc",
            )
        return rows

    def _select(self, row: dict[str, Any], select: Optional[str]) -> dict[str, Any]:
        rendered = dict(row)
        if select and "inventory:inventory_id(*)" in select:
            inventory = self.tables["inventory"].get(row["inventory_id"])
            rendered["inventory"] = dict(inventory) if inventory else None
        return rendered

    @staticmethod
    def _decode(request: httpx.Request) -> dict[str, Any]:
        payload = json.loads(request.content)
        for column in NUMERIC_COLUMNS & payload.keys():
            payload[column] = Decimal(str(payload[column]))
        return payload

    def _violation(self, table: str, row: dict[str, Any], exclude_id: Optional[int] = None) -> Optional[httpx.Response]:
        for column, target in FOREIGN_KEYS.get(table, {}).items():
            if row.get(column) not in self.tables[target]:
                return _error(409, "23503", f'insert or update on table "{table}" violates foreign key constraint')
        unique = UNIQUE_COLUMNS.get(table)
        if unique:
            key = tuple(row.get(column) for column in unique)
            for other in self.tables[table].values():
                if other["id"] != exclude_id and tuple(other.get(column) for column in unique) == key:
                    return _error(409, "23505", "duplicate key value violates unique constraint")
        return None

    @staticmethod
    def _respond(request: httpx.Request, rows: list[dict[str, Any]], status_code: int = 200) -> httpx.Response:
        body: Any = rows
        if request.headers.get("accept") == SINGLE_OBJECT:
            if len(rows) != 1:
                return _error(406, "PGRST116", "JSON object requested, multiple (or no) rows returned")
            body = rows[0]
        return httpx.Response(
            status_code,
            content=json.dumps(body, default=_encode),
            headers={"Content-Type": "application/json"},
        )

    # Verbs -----------------------------------------------------------------------

    def _get(self, request: httpx.Request, table: str, params: list[tuple[str, str]]) -> httpx.Response:
        query = dict(params)
        rows = [row for row in self.tables[table].values() if self._matches(row, params)]
        rows = self._ordered(rows, query.get("order"))
        if "limit" in query:
            rows = rows[: int(query["limit"])]
        return self._respond(request, [self._select(row, query.get("select")) for row in rows])

    def _post(self, request: httpx.Request, table: str, params: list[tuple[str, str]]) -> httpx.Response:
        row = {**COLUMN_DEFAULTS[table], **self._decode(request)}
        violation = self._violation(table, row)
        if violation is not None:
            return violation
        self._ids[table] += 1
        row["id"] = self._ids[table]
        self.tables[table][row["id"]] = row
        return self._respond(request, [dict(row)], status_code=201)

    def _patch(self, request: httpx.Request, table: str, params: list[tuple[str, str]]) -> httpx.Response:
        changes = self._decode(request)
        matched = self._ordered([row for row in self.tables[table].values() if self._matches(row, params)], None)
        for row in matched:
            violation = self._violation(table, {**row, **changes}, exclude_id=row["id"])
            if violation is not None:
                return violation
        for row in matched:
            row.update(changes)
        return self._respond(request, [dict(row) for row in matched])

    def _delete(self, request: httpx.Request, table: str, params: list[tuple[str, str]]) -> httpx.Response:
        matched = [row for row in self.tables[table].values() if self._matches(row, params)]
        for row in matched:
            del self.tables[table][row["id"]]
        return self._respond(request, matched)
