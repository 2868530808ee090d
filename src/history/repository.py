"""
Entry repository -- durable storage of query history entries.

Payloads are stored as JSON text and decoded on the way out, so callers get
back exactly the document they saved.
"""
from __future__ import annotations

import json
import uuid
from typing import Any, Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection, Engine

from src.core.errors import QueryNotFoundError
from src.core.logging import get_logger
from src.core.utils import now_seconds
from src.db.connection import transaction
from src.db.schema import query_history, query_history_star
from src.history.models import HistoryEntry
from src.history.stars import StarIndex

logger = get_logger(__name__)


def _row_to_entry(row: Any) -> HistoryEntry:
    return HistoryEntry(
        uid=row.uid,
        datasource_uid=row.datasource_uid,
        org_id=row.org_id,
        created_by=row.created_by,
        created_at=row.created_at,
        comment=row.comment,
        queries=json.loads(row.queries),
    )


class EntryRepository:
    """CRUD over the ``query_history`` table.

    Deleting an entry also clears its stars through *stars*, inside the same
    transaction, so an entry never disappears while leaving stars behind.
    """

    def __init__(self, engine: Engine, stars: StarIndex):
        self._engine = engine
        self._stars = stars

    def create(
        self,
        user_id: int,
        org_id: int,
        datasource_uid: str,
        queries: Any,
        comment: str = "",
        created_at: int | None = None,
        conn: Connection | None = None,
    ) -> HistoryEntry:
        """Insert a new entry with a fresh uid; *created_at* defaults to now."""
        entry = HistoryEntry(
            uid=str(uuid.uuid4()),
            datasource_uid=datasource_uid,
            org_id=org_id,
            created_by=user_id,
            created_at=created_at if created_at is not None else now_seconds(),
            comment=comment,
            queries=queries,
        )
        stmt = insert(query_history).values(
            uid=entry.uid,
            datasource_uid=entry.datasource_uid,
            org_id=entry.org_id,
            created_by=entry.created_by,
            created_at=entry.created_at,
            comment=entry.comment,
            queries=json.dumps(entry.queries, ensure_ascii=False),
        )
        with transaction(self._engine, conn) as c:
            c.execute(stmt)
        logger.debug("Created entry uid=%s org=%d user=%d", entry.uid, org_id, user_id)
        return entry

    def get(self, uid: str, conn: Connection | None = None) -> HistoryEntry:
        stmt = select(query_history).where(query_history.c.uid == uid)
        with transaction(self._engine, conn) as c:
            row = c.execute(stmt).first()
        if row is None:
            raise QueryNotFoundError(uid)
        return _row_to_entry(row)

    def update_comment(self, uid: str, comment: str, conn: Connection | None = None) -> HistoryEntry:
        """Replace the comment of *uid*.  Ownership is the caller's concern."""
        stmt = update(query_history).where(query_history.c.uid == uid).values(comment=comment)
        with transaction(self._engine, conn) as c:
            if c.execute(stmt).rowcount == 0:
                raise QueryNotFoundError(uid)
            return self.get(uid, conn=c)

    def delete(self, uid: str, conn: Connection | None = None) -> None:
        """Delete *uid* and every star pointing at it."""
        stmt = delete(query_history).where(query_history.c.uid == uid)
        with transaction(self._engine, conn) as c:
            if c.execute(stmt).rowcount == 0:
                raise QueryNotFoundError(uid)
            self._stars.remove_all_for_entry(uid, conn=c)
        logger.debug("Deleted entry uid=%s", uid)

    def list_by_scope(
        self,
        org_id: int,
        datasource_uids: Iterable[str] | None = None,
        time_from: int = 0,
        time_to: int = 0,
        conn: Connection | None = None,
    ) -> list[HistoryEntry]:
        """Raw, unordered fetch of an organization's entries.

        An empty *datasource_uids* means every datasource; a zero time bound
        means unbounded on that side.  Both bounds are inclusive.
        """
        stmt = select(query_history).where(query_history.c.org_id == org_id)
        uids = list(datasource_uids or [])
        if uids:
            stmt = stmt.where(query_history.c.datasource_uid.in_(uids))
        if time_from > 0:
            stmt = stmt.where(query_history.c.created_at >= time_from)
        if time_to > 0:
            stmt = stmt.where(query_history.c.created_at <= time_to)

        with transaction(self._engine, conn) as c:
            rows = c.execute(stmt).fetchall()
        return [_row_to_entry(r) for r in rows]

    def delete_stale(self, older_than: int, conn: Connection | None = None) -> int:
        """Delete entries created before *older_than* that nobody has starred."""
        starred = select(query_history_star.c.query_uid)
        stmt = delete(query_history).where(
            query_history.c.created_at < older_than,
            query_history.c.uid.not_in(starred),
        )
        with transaction(self._engine, conn) as c:
            removed = c.execute(stmt).rowcount
        logger.info("Deleted %d stale history entries (created before %d)", removed, older_than)
        return removed
