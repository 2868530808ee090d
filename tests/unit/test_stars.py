"""
Unit tests -- star index: uniqueness, unstar, bulk cleanup.
"""
import pytest
from sqlalchemy import func, select

from src.core.errors import QueryAlreadyStarredError, StarredQueryNotFoundError
from src.db.connection import make_engine
from src.db.schema import ensure_tables, query_history_star
from src.history.stars import StarIndex


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    ensure_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def stars(engine) -> StarIndex:
    return StarIndex(engine)


def _star_rows(engine, user_id: int, uid: str) -> int:
    stmt = select(func.count()).select_from(query_history_star).where(
        query_history_star.c.user_id == user_id,
        query_history_star.c.query_uid == uid,
    )
    with engine.connect() as conn:
        return conn.execute(stmt).scalar()


def test_star_then_is_starred(stars):
    stars.star(1, "q1")
    assert stars.is_starred(1, "q1") is True


def test_not_starred_by_default(stars):
    assert stars.is_starred(1, "q1") is False


def test_star_twice_raises_and_keeps_one_row(engine, stars):
    stars.star(1, "q1")
    with pytest.raises(QueryAlreadyStarredError) as exc_info:
        stars.star(1, "q1")
    assert exc_info.value.error_code == "CONFLICT"
    assert _star_rows(engine, 1, "q1") == 1


def test_stars_are_per_user(stars):
    stars.star(1, "q1")
    stars.star(2, "q1")  # different user -- no conflict
    assert stars.is_starred(1, "q1")
    assert stars.is_starred(2, "q1")
    assert not stars.is_starred(3, "q1")


def test_unstar(stars):
    stars.star(1, "q1")
    stars.unstar(1, "q1")
    assert stars.is_starred(1, "q1") is False


def test_unstar_missing_raises(stars):
    with pytest.raises(StarredQueryNotFoundError) as exc_info:
        stars.unstar(1, "q1")
    assert exc_info.value.error_code == "NOT_FOUND"


def test_unstar_only_touches_own_star(stars):
    stars.star(1, "q1")
    with pytest.raises(StarredQueryNotFoundError):
        stars.unstar(2, "q1")
    assert stars.is_starred(1, "q1")


def test_star_again_after_unstar(stars):
    stars.star(1, "q1")
    stars.unstar(1, "q1")
    stars.star(1, "q1")
    assert stars.is_starred(1, "q1")


def test_starred_uids(stars):
    stars.star(1, "q1")
    stars.star(1, "q2")
    stars.star(2, "q3")
    assert stars.starred_uids(1) == {"q1", "q2"}
    assert stars.starred_uids(3) == set()


def test_remove_all_for_entry(stars):
    for user_id in (1, 2, 3):
        stars.star(user_id, "q1")
    stars.star(1, "q2")
    assert stars.remove_all_for_entry("q1") == 3
    assert stars.starred_uids(1) == {"q2"}


def test_remove_all_for_entry_idempotent(stars):
    assert stars.remove_all_for_entry("never-starred") == 0
    assert stars.remove_all_for_entry("never-starred") == 0
