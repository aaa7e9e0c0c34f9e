"""Database engine and session management."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockpot.db.models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str, *, timeout: float = 10.0) -> Engine:
    """Return a SQLAlchemy engine for ``database_url`` with the schema created."""

    url = make_url(database_url)
    options: dict[str, object] = {}
    if url.get_backend_name() == "sqlite":
        # Worker threads share the pool; the timeout bounds lock waits.
        options["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        else:
            options["poolclass"] = StaticPool
    else:
        options["connect_args"] = {"connect_timeout": max(1, int(timeout))}
        options["pool_pre_ping"] = True

    engine = create_engine(url, future=True, echo=False, **options)
    try:
        Base.metadata.create_all(engine)
    except OperationalError as exc:
        if "already exists" in str(exc).lower():
            logger.debug("Database schema already initialized: %s", exc)
        else:
            raise
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Context manager yielding a session with automatic commit/rollback."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["build_engine", "build_session_factory", "session_scope"]
