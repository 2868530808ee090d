"""SQLAlchemy engine & transaction helpers.

Single shared engine with connection pooling.  Every write in the history
core runs through `transaction`, which either joins a caller-supplied
connection or opens (and commits / rolls back) its own.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from src.core.config import get_settings
from src.core.errors import StorageUnavailableError
from src.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def make_engine(url: str) -> Engine:
    """Build an engine for *url*.

    SQLite URLs get a single shared connection so that in-memory databases
    survive across checkouts; everything else gets the pooled Postgres setup.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        echo=False,
    )


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine (lazy-created, cached)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = make_engine(settings.database_url)
        logger.info("DB engine created  dialect=%s", _engine.dialect.name)
    return _engine


@contextmanager
def transaction(engine: Engine, conn: Connection | None = None) -> Generator[Connection, None, None]:
    """Yield a connection inside a transaction.

    When *conn* is given the caller owns the transaction and it is yielded
    unchanged.  Otherwise a new transaction is opened, committed on success and
    rolled back on any exception.  Transport-level failures surface as
    `StorageUnavailableError`.
    """
    if conn is not None:
        yield conn
        return

    try:
        with engine.begin() as new_conn:
            yield new_conn
    except OperationalError as exc:
        logger.exception("Storage operation failed")
        raise StorageUnavailableError(str(exc.orig or exc)) from exc
