"""
Query history service -- the operations exposed to the API layer.

Wires the entry repository, star index, search engine and migration importer
around one engine, and applies caller scoping:

  - every read is confined to the caller's organization
  - comment edits and deletes are limited to the entry's owner
  - stars always belong to the calling user

Entries outside the caller's scope are reported as not found.
"""
from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy.engine import Connection, Engine

from src.core.config import get_settings
from src.core.errors import QueryNotFoundError
from src.core.logging import get_logger
from src.core.utils import now_seconds
from src.db.connection import get_engine, transaction
from src.db.schema import ensure_tables
from src.history.migration import MigrationImporter
from src.history.models import (
    HistoryEntry,
    LegacyQuery,
    MigrationResult,
    RequestContext,
    SearchQuery,
    SearchResult,
)
from src.history.repository import EntryRepository
from src.history.search import SearchEngine
from src.history.stars import StarIndex

logger = get_logger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


class QueryHistoryService:

    def __init__(self, engine: Engine, default_limit: int | None = None):
        self.engine = engine
        self.stars = StarIndex(engine)
        self.repository = EntryRepository(engine, self.stars)
        self.search_engine = SearchEngine(self.repository, self.stars, default_limit=default_limit)
        self.importer = MigrationImporter(engine, self.repository, self.stars)

    # ── Scoping helpers ─────────────────────────────────

    def _visible(self, ctx: RequestContext, uid: str, conn: Connection) -> HistoryEntry:
        entry = self.repository.get(uid, conn=conn)
        if entry.org_id != ctx.org_id:
            raise QueryNotFoundError(uid)
        return entry

    def _owned(self, ctx: RequestContext, uid: str, conn: Connection) -> HistoryEntry:
        entry = self._visible(ctx, uid, conn)
        if entry.created_by != ctx.user_id:
            raise QueryNotFoundError(uid)
        return entry

    # ── Entries ─────────────────────────────────────────

    def create_entry(
        self,
        ctx: RequestContext,
        datasource_uid: str,
        queries: Any,
        comment: str = "",
    ) -> HistoryEntry:
        entry = self.repository.create(ctx.user_id, ctx.org_id, datasource_uid, queries, comment=comment)
        logger.info("QueryHistory.create | org=%d | user=%d | uid=%s | datasource=%s",
                    ctx.org_id, ctx.user_id, entry.uid, datasource_uid)
        return entry

    def get_entry(self, ctx: RequestContext, uid: str) -> HistoryEntry:
        with transaction(self.engine) as conn:
            return self._visible(ctx, uid, conn)

    def update_comment(self, ctx: RequestContext, uid: str, comment: str) -> HistoryEntry:
        with transaction(self.engine) as conn:
            self._owned(ctx, uid, conn)
            entry = self.repository.update_comment(uid, comment, conn=conn)
        logger.info("QueryHistory.update_comment | org=%d | user=%d | uid=%s",
                    ctx.org_id, ctx.user_id, uid)
        return entry

    def delete_entry(self, ctx: RequestContext, uid: str) -> None:
        with transaction(self.engine) as conn:
            self._owned(ctx, uid, conn)
            self.repository.delete(uid, conn=conn)
        logger.info("QueryHistory.delete | org=%d | user=%d | uid=%s",
                    ctx.org_id, ctx.user_id, uid)

    # ── Stars ───────────────────────────────────────────

    def star(self, ctx: RequestContext, uid: str) -> None:
        with transaction(self.engine) as conn:
            self._visible(ctx, uid, conn)
            self.stars.star(ctx.user_id, uid, conn=conn)
        logger.info("QueryHistory.star | org=%d | user=%d | uid=%s", ctx.org_id, ctx.user_id, uid)

    def unstar(self, ctx: RequestContext, uid: str) -> None:
        self.stars.unstar(ctx.user_id, uid)
        logger.info("QueryHistory.unstar | org=%d | user=%d | uid=%s", ctx.org_id, ctx.user_id, uid)

    # ── Search / migration / retention ──────────────────

    def search(self, ctx: RequestContext, query: SearchQuery | None = None) -> SearchResult:
        return self.search_engine.search(ctx, query or SearchQuery())

    def migrate(
        self,
        ctx: RequestContext,
        records: Iterable[LegacyQuery],
        atomic: bool | None = None,
    ) -> MigrationResult:
        return self.importer.run(ctx, records, atomic=atomic)

    def delete_stale(self, older_than_days: int | None = None) -> int:
        """Drop unstarred entries older than the retention window."""
        days = older_than_days if older_than_days is not None else get_settings().history_retention_days
        return self.repository.delete_stale(now_seconds() - days * _SECONDS_PER_DAY)


# ── Module-level singleton ──────────────────────────────

_service: QueryHistoryService | None = None


def get_service() -> QueryHistoryService:
    """Return the process-wide service bound to the configured database."""
    global _service
    if _service is None:
        engine = get_engine()
        ensure_tables(engine)
        _service = QueryHistoryService(engine)
    return _service
