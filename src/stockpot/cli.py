"""Command-line interface for Stockpot."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

import typer

from stockpot.config import get_settings
from stockpot.errors import FulfillmentFailed, StockpotError
from stockpot.fulfillment import FulfillmentEngine
from stockpot.inventory import InventoryLedger, classify_stock_level, import_inventory_csv
from stockpot.logging_utils import configure_from_settings
from stockpot.models import AppliedAdjustment, normalize_order_type
from stockpot.recipes import RecipeCatalog
from stockpot.storage import StorageBackend, build_storage, seed_demo_data
from stockpot.units import format_quantity

app = typer.Typer(help="Stockpot inventory and recipe fulfillment commands.")


@contextmanager
def _open_storage() -> Iterator[StorageBackend]:
    settings = get_settings()
    configure_from_settings(settings)
    storage = build_storage(settings)
    try:
        yield storage
    finally:
        storage.close()


def _fail(exc: StockpotError) -> None:
    typer.secho(f"Error: {exc.message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command()
def seed() -> None:
    """Load demo inventory and recipes into an empty store."""

    with _open_storage() as storage:
        if seed_demo_data(storage):
            typer.echo(f"Seeded demo data into {storage.name} storage.")
        else:
            typer.echo("Store already has inventory; nothing seeded.")


@app.command("import-csv")
def import_csv(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV file with inventory rows."),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print the result JSON."),
) -> None:
    """Bulk-import inventory items from a CSV file."""

    data = path.read_text(encoding="utf-8")
    with _open_storage() as storage:
        try:
            result = import_inventory_csv(InventoryLedger(storage), data)
        except StockpotError as exc:
            _fail(exc)
    payload = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))


@app.command("low-stock")
def low_stock() -> None:
    """List items below their ideal quantity with a stock level."""

    with _open_storage() as storage:
        items = InventoryLedger(storage).low_stock()
    if not items:
        typer.echo("All items are at or above their ideal quantity.")
        return
    for item in items:
        level = classify_stock_level(item)
        colour = typer.colors.RED if level == "critical" else typer.colors.YELLOW
        typer.secho(
            f"{item.item_name}: {format_quantity(item.current_qty)}/{format_quantity(item.ideal_qty)} "
            f"{item.unit_of_measurement} [{level}]",
            fg=colour,
        )


def _echo_adjustments(adjustments: Iterable[AppliedAdjustment]) -> None:
    for adjustment in adjustments:
        typer.echo(
            f"{adjustment.item_name}: {format_quantity(adjustment.previous_qty)} -> "
            f"{format_quantity(adjustment.current_qty)}"
        )


@app.command()
def fulfill(
    dish_name: str = typer.Argument(..., help="Dish name as it appears on the menu."),
    order_type: str = typer.Option("dine-in", "--order-type", "-t", help="Order channel (dine-in/takeaway/both)."),
    servings: int = typer.Option(1, "--servings", "-n", min=1, max=100, help="Number of servings to deduct."),
) -> None:
    """Deduct the ingredients of a dish from inventory."""

    order_type = normalize_order_type(order_type)
    with _open_storage() as storage:
        engine = FulfillmentEngine(RecipeCatalog(storage), InventoryLedger(storage))
        for _ in range(servings):
            try:
                result = engine.process(dish_name, order_type)
            except FulfillmentFailed as exc:
                if exc.applied:
                    typer.secho("Applied before the failure (not rolled back):", fg=typer.colors.YELLOW)
                    _echo_adjustments(exc.applied)
                _fail(exc)
            except StockpotError as exc:
                _fail(exc)
            _echo_adjustments(result.adjustments)
            for item in result.newly_low_items:
                typer.secho(f"Now below ideal: {item.item_name}", fg=typer.colors.YELLOW)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m stockpot`."""
    app(prog_name="stockpot", args=argv)


if __name__ == "__main__":
    main()
