"""
Table definitions for query history and stars.

The tables are created automatically on first use via `ensure_tables()`.
Stars reference entries by uid only; there is no FK so the two tables keep
independent lifecycles and cleanup happens explicitly on delete.
"""
from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine

from src.core.logging import get_logger

logger = get_logger(__name__)

metadata = MetaData()

query_history = Table(
    "query_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("uid", String(40), nullable=False, unique=True),
    Column("datasource_uid", String(40), nullable=False, default=""),
    Column("org_id", BigInteger, nullable=False),
    Column("created_by", BigInteger, nullable=False),
    Column("created_at", BigInteger, nullable=False),   # epoch seconds
    Column("comment", Text, nullable=False, default=""),
    Column("queries", Text, nullable=False),            # JSON document
    Index("ix_query_history_org_created_by_datasource", "org_id", "created_by", "datasource_uid"),
)

query_history_star = Table(
    "query_history_star",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("query_uid", String(40), nullable=False),
    Column("user_id", BigInteger, nullable=False),
    UniqueConstraint("user_id", "query_uid", name="uq_query_history_star_user_query"),
)


def ensure_tables(engine: Engine) -> None:
    """Create the history tables if they don't exist."""
    metadata.create_all(engine)
    logger.info("Query history tables ensured (%s)", ", ".join(sorted(metadata.tables)))
