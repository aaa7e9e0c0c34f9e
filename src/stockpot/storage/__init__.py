"""Storage backends and the factory that picks one at process start.

Usage::

    from stockpot.storage import build_storage

    storage = build_storage(get_settings())
    try:
        ...
    finally:
        storage.close()

``STOCKPOT_STORAGE_BACKEND`` selects ``memory``, ``sqlalchemy`` (default) or
``hosted``. The caller owns the returned object and must close it.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from stockpot.config import Settings
from stockpot.storage.base import StorageBackend
from stockpot.storage.hosted import HostedStorage
from stockpot.storage.memory import MemoryStorage
from stockpot.storage.seed import seed_demo_data

logger = logging.getLogger(__name__)


def build_storage(settings: Settings, *, transport: Optional[httpx.BaseTransport] = None) -> StorageBackend:
    """Create the storage backend named by ``settings.storage_backend``."""

    backend = settings.storage_backend
    storage: StorageBackend
    if backend == "memory":
        storage = MemoryStorage()
    elif backend == "hosted":
        if not settings.hosted_url or not settings.hosted_api_key:
            raise ValueError("STOCKPOT_HOSTED_URL and STOCKPOT_HOSTED_API_KEY are required for hosted storage.")
        storage = HostedStorage(
            settings.hosted_url,
            settings.hosted_api_key,
            schema=settings.hosted_schema,
            timeout=settings.storage_timeout,
            cas_max_retries=settings.cas_max_retries,
            transport=transport,
        )
    elif backend == "sqlalchemy":
        from stockpot.db.storage import SqlAlchemyStorage

        storage = SqlAlchemyStorage(settings.resolved_database_url, timeout=settings.storage_timeout)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info("Using %s storage backend", storage.name)
    if settings.seed_demo_data:
        seed_demo_data(storage)
    return storage


__all__ = ["StorageBackend", "MemoryStorage", "HostedStorage", "build_storage", "seed_demo_data"]
