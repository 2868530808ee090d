"""
Migration importer -- moves legacy (browser-local) query history into storage.

Each legacy record becomes exactly one new entry, plus one star when the
record was starred.  Entry and star for a record commit together.  By default
records commit one at a time, so a failure part-way leaves earlier records in
place; ``atomic=True`` wraps the whole batch in a single transaction instead.
"""
from __future__ import annotations

from contextlib import nullcontext
from typing import Iterable

from sqlalchemy.engine import Engine

from src.core.config import get_settings
from src.core.logging import get_logger
from src.core.utils import now_seconds
from src.db.connection import transaction
from src.history.models import LegacyQuery, MigrationResult, RequestContext
from src.history.repository import EntryRepository
from src.history.stars import StarIndex

logger = get_logger(__name__)


class MigrationImporter:

    def __init__(self, engine: Engine, repository: EntryRepository, stars: StarIndex):
        self._engine = engine
        self._repository = repository
        self._stars = stars

    def run(
        self,
        ctx: RequestContext,
        records: Iterable[LegacyQuery],
        atomic: bool | None = None,
    ) -> MigrationResult:
        """Import *records* in order for the requesting user.

        Errors abort the batch and propagate unchanged.
        """
        if atomic is None:
            atomic = get_settings().history_migration_atomic

        result = MigrationResult()
        outer = transaction(self._engine) if atomic else nullcontext(None)
        with outer as batch_conn:
            for record in records:
                with transaction(self._engine, batch_conn) as conn:
                    entry = self._repository.create(
                        ctx.user_id,
                        ctx.org_id,
                        record.datasource_uid,
                        record.queries,
                        comment=record.comment,
                        created_at=record.created_at if record.created_at > 0 else now_seconds(),
                        conn=conn,
                    )
                    if record.starred:
                        self._stars.star(ctx.user_id, entry.uid, conn=conn)
                result.imported_count += 1
                if record.starred:
                    result.starred_count += 1

        logger.info(
            "QueryHistory.migrate | org=%d | user=%d | imported=%d | starred=%d | atomic=%s",
            ctx.org_id, ctx.user_id, result.imported_count, result.starred_count, atomic,
        )
        return result
