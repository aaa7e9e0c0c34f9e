"""Shared pytest fixtures for the Stockpot test suite."""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from stockpot.config import get_settings
from stockpot.db.storage import SqlAlchemyStorage
from stockpot.fulfillment import FulfillmentEngine
from stockpot.inventory import InventoryLedger
from stockpot.recipes import RecipeCatalog
from stockpot.server.app import create_app
from stockpot.storage import HostedStorage, MemoryStorage, StorageBackend, seed_demo_data
from tests.fakes import HOSTED_URL, FakePostgrest


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database seeded with demo data."""

    db_path = tmp_path / "test_stockpot.db"
    monkeypatch.setenv("STOCKPOT_DATABASE_PATH", str(db_path))
    monkeypatch.setenv("STOCKPOT_STORAGE_BACKEND", "sqlalchemy")
    monkeypatch.setenv("STOCKPOT_SEED_DEMO_DATA", "1")
    for name in ("STOCKPOT_DATABASE_URL", "STOCKPOT_API_TOKEN", "STOCKPOT_NOTIFY_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()
    application.state.resources.close()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def fake_postgrest() -> FakePostgrest:
    return FakePostgrest()


@pytest.fixture(params=["memory", "sqlalchemy", "hosted"])
def storage(request, tmp_path, fake_postgrest) -> Generator[StorageBackend, None, None]:
    """Run the test once per storage backend."""

    backend: StorageBackend
    if request.param == "memory":
        backend = MemoryStorage()
    elif request.param == "sqlalchemy":
        backend = SqlAlchemyStorage(f"sqlite:///{tmp_path / 'contract.db'}", timeout=5.0)
    else:
        backend = HostedStorage(
            HOSTED_URL,
            fake_postgrest.api_key,
            cas_max_retries=200,
            transport=fake_postgrest.transport,
        )
    yield backend
    backend.close()


@pytest.fixture()
def seeded_storage(storage) -> StorageBackend:
    seed_demo_data(storage)
    return storage


@pytest.fixture()
def ledger(seeded_storage) -> InventoryLedger:
    return InventoryLedger(seeded_storage)


@pytest.fixture()
def catalog(seeded_storage) -> RecipeCatalog:
    return RecipeCatalog(seeded_storage)


@pytest.fixture()
def engine(catalog, ledger) -> FulfillmentEngine:
    return FulfillmentEngine(catalog, ledger)
