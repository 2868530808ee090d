"""
Unit tests -- settings, engine construction and the transaction helper.
"""
import pytest
from sqlalchemy import select

from src.core.config import Settings
from src.core.errors import QueryHistoryError, StorageUnavailableError
from src.db.connection import make_engine, transaction
from src.db.schema import ensure_tables, query_history
from src.history.repository import EntryRepository
from src.history.stars import StarIndex


def test_database_url_defaults_to_postgres():
    s = Settings(history_db_url="", postgres_host="db", postgres_port=5433)
    assert s.database_url.startswith("postgresql://")
    assert "@db:5433/" in s.database_url


def test_history_db_url_overrides():
    s = Settings(history_db_url="sqlite:///history.db")
    assert s.database_url == "sqlite:///history.db"


def test_history_defaults():
    s = Settings()
    assert s.history_default_limit == 100
    assert s.history_retention_days == 14
    assert s.history_migration_atomic is False


def test_transaction_rolls_back_on_error():
    engine = make_engine("sqlite://")
    ensure_tables(engine)
    repo = EntryRepository(engine, StarIndex(engine))

    with pytest.raises(RuntimeError):
        with transaction(engine) as conn:
            repo.create(1, 1, "ds", [{"refId": "A"}], conn=conn)
            raise RuntimeError("boom")

    with engine.connect() as conn:
        assert conn.execute(select(query_history)).fetchall() == []


def test_transaction_joins_caller_connection():
    engine = make_engine("sqlite://")
    with engine.connect() as outer:
        with transaction(engine, outer) as conn:
            assert conn is outer


def test_unreachable_storage_is_wrapped():
    engine = make_engine("sqlite:////nonexistent-dir/for/history.db")
    with pytest.raises(StorageUnavailableError) as exc_info:
        StarIndex(engine).is_starred(1, "q1")
    assert isinstance(exc_info.value, QueryHistoryError)
    assert exc_info.value.error_code == "STORAGE_ERROR"
