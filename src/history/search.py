"""
Search engine -- filtered, sorted, paginated views over query history.

Pipeline:
  1. Fetch the organization's candidates (datasource + time range pushed to SQL)
  2. Substring-match the search string against comment / serialized queries
  3. Join the requesting user's stars (sets ``starred``, applies only-starred)
  4. Sort by creation time, ties broken by uid ascending
  5. Count, then slice the requested page
"""
from __future__ import annotations

import json

from src.core.config import get_settings
from src.core.logging import get_logger
from src.core.utils import timer
from src.history.models import (
    HistoryEntry,
    HistoryItem,
    RequestContext,
    SearchQuery,
    SearchResult,
)
from src.history.repository import EntryRepository
from src.history.stars import StarIndex

logger = get_logger(__name__)


def _matches(entry: HistoryEntry, needle: str) -> bool:
    """Case-insensitive substring test against comment and payload text."""
    if needle in entry.comment.lower():
        return True
    return needle in json.dumps(entry.queries, ensure_ascii=False).lower()


def _sort_items(items: list[HistoryItem], order: str) -> list[HistoryItem]:
    # Two stable passes: uid ascending first, then time in the requested direction.
    items = sorted(items, key=lambda i: i.uid)
    return sorted(items, key=lambda i: i.created_at, reverse=(order != "time-asc"))


class SearchEngine:
    """Read-only search over the entry repository joined with the star index."""

    def __init__(
        self,
        repository: EntryRepository,
        stars: StarIndex,
        default_limit: int | None = None,
    ):
        self._repository = repository
        self._stars = stars
        self._default_limit = default_limit or get_settings().history_default_limit

    def search(self, ctx: RequestContext, query: SearchQuery) -> SearchResult:
        limit = query.limit if query.limit > 0 else self._default_limit
        page = query.page if query.page > 0 else 1

        with timer() as t:
            candidates = self._repository.list_by_scope(
                ctx.org_id,
                datasource_uids=query.datasource_uids,
                time_from=query.time_from,
                time_to=query.time_to,
            )

            needle = query.search_string.lower()
            if needle:
                candidates = [e for e in candidates if _matches(e, needle)]

            starred = self._stars.starred_uids(ctx.user_id)
            items = [HistoryItem.from_entry(e, e.uid in starred) for e in candidates]
            if query.only_starred:
                items = [i for i in items if i.starred]

            items = _sort_items(items, query.sort)
            total = len(items)
            start = (page - 1) * limit
            page_items = items[start:start + limit]

        logger.info(
            "QueryHistory.search | org=%d | user=%d | total=%d | page=%d | per_page=%d | %dms",
            ctx.org_id, ctx.user_id, total, page, limit, t["elapsed_ms"],
        )
        return SearchResult(items=page_items, total_count=total, page=page, per_page=limit)
