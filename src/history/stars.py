"""
Star index -- per-user bookmarks on history entries.

A star is a ``(user_id, query_uid)`` row.  The UNIQUE constraint on that pair
is the only guard against double-starring: `star` inserts unconditionally and
translates the constraint violation, so two concurrent calls cannot both win.
"""
from __future__ import annotations

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from src.core.errors import QueryAlreadyStarredError, StarredQueryNotFoundError
from src.core.logging import get_logger
from src.db.connection import transaction
from src.db.schema import query_history_star

logger = get_logger(__name__)


class StarIndex:
    """Durable (user, entry) -> starred mapping."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def star(self, user_id: int, uid: str, conn: Connection | None = None) -> None:
        """Star *uid* for *user_id*.

        Raises
        ------
        QueryAlreadyStarredError
            If the pair already exists.
        """
        stmt = insert(query_history_star).values(query_uid=uid, user_id=user_id)
        try:
            with transaction(self._engine, conn) as c:
                c.execute(stmt)
        except IntegrityError as exc:
            raise QueryAlreadyStarredError(uid, user_id) from exc
        logger.debug("Starred uid=%s user=%d", uid, user_id)

    def unstar(self, user_id: int, uid: str, conn: Connection | None = None) -> None:
        """Remove the star for (*user_id*, *uid*); `StarredQueryNotFoundError` if absent."""
        stmt = delete(query_history_star).where(
            query_history_star.c.query_uid == uid,
            query_history_star.c.user_id == user_id,
        )
        with transaction(self._engine, conn) as c:
            result = c.execute(stmt)
            if result.rowcount == 0:
                raise StarredQueryNotFoundError(uid, user_id)
        logger.debug("Unstarred uid=%s user=%d", uid, user_id)

    def is_starred(self, user_id: int, uid: str, conn: Connection | None = None) -> bool:
        stmt = select(query_history_star.c.id).where(
            query_history_star.c.query_uid == uid,
            query_history_star.c.user_id == user_id,
        )
        with transaction(self._engine, conn) as c:
            return c.execute(stmt).first() is not None

    def starred_uids(self, user_id: int, conn: Connection | None = None) -> set[str]:
        """All entry uids *user_id* has starred."""
        stmt = select(query_history_star.c.query_uid).where(
            query_history_star.c.user_id == user_id,
        )
        with transaction(self._engine, conn) as c:
            return {row.query_uid for row in c.execute(stmt)}

    def remove_all_for_entry(self, uid: str, conn: Connection | None = None) -> int:
        """Drop every user's star on *uid*.  Returns rows removed (zero is fine)."""
        stmt = delete(query_history_star).where(query_history_star.c.query_uid == uid)
        with transaction(self._engine, conn) as c:
            removed = c.execute(stmt).rowcount
        if removed:
            logger.debug("Removed %d star(s) for uid=%s", removed, uid)
        return removed
