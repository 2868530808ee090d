"""
Unit tests -- query history service: scoping, ownership, end-to-end flows.
"""
import time

import pytest

from src.core.errors import (
    QueryAlreadyStarredError,
    QueryNotFoundError,
    StarredQueryNotFoundError,
)
from src.db.connection import make_engine
from src.db.schema import ensure_tables
from src.history.models import LegacyQuery, RequestContext, SearchQuery
from src.history.service import QueryHistoryService

OWNER = RequestContext(org_id=1, user_id=1)
TEAMMATE = RequestContext(org_id=1, user_id=2)
OUTSIDER = RequestContext(org_id=2, user_id=1)

QUERIES = [{"refId": "A", "expr": "up"}]


@pytest.fixture
def service():
    engine = make_engine("sqlite://")
    ensure_tables(engine)
    yield QueryHistoryService(engine)
    engine.dispose()


def test_create_and_get(service):
    entry = service.create_entry(OWNER, "ds", QUERIES, comment="hello")
    assert service.get_entry(OWNER, entry.uid) == entry
    assert entry.org_id == OWNER.org_id
    assert entry.created_by == OWNER.user_id


def test_get_from_other_org_is_not_found(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    with pytest.raises(QueryNotFoundError):
        service.get_entry(OUTSIDER, entry.uid)


def test_teammate_can_read(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    assert service.get_entry(TEAMMATE, entry.uid).uid == entry.uid


def test_update_comment_by_owner(service):
    entry = service.create_entry(OWNER, "ds", QUERIES, comment="before")
    assert service.update_comment(OWNER, entry.uid, "after").comment == "after"


@pytest.mark.parametrize("ctx", [TEAMMATE, OUTSIDER])
def test_update_comment_by_non_owner_is_not_found(service, ctx):
    entry = service.create_entry(OWNER, "ds", QUERIES, comment="before")
    with pytest.raises(QueryNotFoundError):
        service.update_comment(ctx, entry.uid, "hijack")
    assert service.get_entry(OWNER, entry.uid).comment == "before"


def test_delete_by_owner_clears_stars(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    service.star(OWNER, entry.uid)
    service.star(TEAMMATE, entry.uid)
    service.delete_entry(OWNER, entry.uid)
    with pytest.raises(QueryNotFoundError):
        service.get_entry(OWNER, entry.uid)
    assert not service.stars.is_starred(OWNER.user_id, entry.uid)
    assert not service.stars.is_starred(TEAMMATE.user_id, entry.uid)


def test_delete_by_non_owner_is_not_found(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    service.star(TEAMMATE, entry.uid)
    with pytest.raises(QueryNotFoundError):
        service.delete_entry(TEAMMATE, entry.uid)
    assert service.get_entry(OWNER, entry.uid).uid == entry.uid
    assert service.stars.is_starred(TEAMMATE.user_id, entry.uid)


def test_star_twice_conflicts(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    service.star(OWNER, entry.uid)
    with pytest.raises(QueryAlreadyStarredError):
        service.star(OWNER, entry.uid)
    assert service.stars.starred_uids(OWNER.user_id) == {entry.uid}


def test_star_unknown_entry_is_not_found(service):
    with pytest.raises(QueryNotFoundError):
        service.star(OWNER, "missing")
    assert service.stars.starred_uids(OWNER.user_id) == set()


def test_star_other_org_entry_is_not_found(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    with pytest.raises(QueryNotFoundError):
        service.star(OUTSIDER, entry.uid)


def test_unstar_unstarred_raises(service):
    entry = service.create_entry(OWNER, "ds", QUERIES)
    with pytest.raises(StarredQueryNotFoundError):
        service.unstar(OWNER, entry.uid)


def test_search_default_query(service):
    service.create_entry(OWNER, "ds", QUERIES)
    result = service.search(OWNER)
    assert result.total_count == 1
    assert result.page == 1
    assert result.per_page == 100


def test_migrate_then_search_starred(service):
    records = [
        LegacyQuery(datasource_uid="ds", queries=QUERIES, created_at=100, comment="a", starred=True),
        LegacyQuery(datasource_uid="ds", queries=QUERIES, created_at=200, comment="b"),
    ]
    result = service.migrate(OWNER, records)
    assert (result.imported_count, result.starred_count) == (2, 1)
    starred = service.search(OWNER, SearchQuery(only_starred=True))
    assert [i.comment for i in starred.items] == ["a"]


def test_delete_stale_uses_retention_window(service):
    now = int(time.time())
    records = [
        LegacyQuery(queries=QUERIES, created_at=now - 30 * 86400, comment="old"),
        LegacyQuery(queries=QUERIES, created_at=now - 30 * 86400, comment="old starred", starred=True),
        LegacyQuery(queries=QUERIES, created_at=now - 86400, comment="fresh"),
    ]
    service.migrate(OWNER, records)
    assert service.delete_stale(older_than_days=14) == 1
    comments = sorted(i.comment for i in service.search(OWNER).items)
    assert comments == ["fresh", "old starred"]
