"""CSV bulk import of inventory items."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any

from stockpot.errors import ValidationError
from stockpot.inventory.ledger import InventoryLedger
from stockpot.metrics import BULK_UPLOAD_ROWS
from stockpot.models import BulkUploadResult
from stockpot.units import compute_total_price, ensure_currency_prefix

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = (
    "item_name",
    "unit_of_measurement",
    "box_or_package_qty",
    "unit_price",
    "ideal_qty",
    "current_qty",
)
OPTIONAL_HEADERS = ("total_price", "shelf_life_days", "category")


def _row_payload(row: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for header in REQUIRED_HEADERS + OPTIONAL_HEADERS:
        value = (row.get(header) or "").strip()
        if value:
            payload[header] = value

    for price_field in ("unit_price", "total_price"):
        if price_field in payload:
            payload[price_field] = ensure_currency_prefix(payload[price_field])
    if "total_price" not in payload:
        try:
            payload["total_price"] = compute_total_price(
                payload.get("unit_price"), payload.get("box_or_package_qty")
            )
        except ValueError as exc:
            raise ValidationError(f"Cannot compute total price: {exc}", ["totalPrice"]) from exc
    return payload


def import_inventory_csv(ledger: InventoryLedger, data: str) -> BulkUploadResult:
    """Create one inventory item per CSV data row.

    A missing required header rejects the whole upload. Rows that fail validation
    are reported as ``"Row N: ..."`` (N counts data rows from 1) and skipped while
    the remaining rows still import.
    """

    reader = csv.DictReader(io.StringIO(data.strip()), skipinitialspace=True)
    headers = [header.strip() for header in (reader.fieldnames or [])]
    missing = [header for header in REQUIRED_HEADERS if header not in headers]
    if missing:
        raise ValidationError(f"Missing required headers: {', '.join(missing)}", missing)
    reader.fieldnames = headers

    imported = 0
    errors: list[str] = []
    for row in reader:
        row_number = reader.line_num - 1
        try:
            ledger.create(_row_payload(row))
        except ValidationError as exc:
            errors.append(f"Row {row_number}: {exc.message}")
            BULK_UPLOAD_ROWS.labels(result="rejected").inc()
            continue
        imported += 1
        BULK_UPLOAD_ROWS.labels(result="imported").inc()

    logger.info("Bulk upload imported %s rows with %s errors", imported, len(errors))
    return BulkUploadResult(imported=imported, errors=errors or None)


__all__ = ["REQUIRED_HEADERS", "OPTIONAL_HEADERS", "import_inventory_csv"]
