"""
Query history domain models.

`HistoryEntry` is the stored record; `HistoryItem` is what search returns
(the entry plus the caller's own ``starred`` flag).  The ``queries`` payload is
an opaque JSON document and is never interpreted beyond substring search.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


SortOrder = Literal["time-desc", "time-asc"]


@dataclass(frozen=True)
class RequestContext:
    """Caller identity supplied by the surrounding auth layer."""
    org_id: int
    user_id: int


class HistoryEntry(BaseModel):
    """One saved query in the history."""

    uid: str = Field(..., description="Unique, immutable entry identifier")
    datasource_uid: str = Field("", description="Datasource the queries ran against")
    org_id: int
    created_by: int = Field(..., description="User id of the owner")
    created_at: int = Field(..., description="Epoch seconds")
    comment: str = ""
    queries: Any = Field(None, description="Opaque JSON document")


class HistoryItem(BaseModel):
    """Search result row: entry fields plus the requesting user's star state."""

    uid: str
    datasource_uid: str
    created_by: int
    created_at: int
    comment: str
    queries: Any
    starred: bool = False

    @classmethod
    def from_entry(cls, entry: HistoryEntry, starred: bool) -> HistoryItem:
        return cls(
            uid=entry.uid,
            datasource_uid=entry.datasource_uid,
            created_by=entry.created_by,
            created_at=entry.created_at,
            comment=entry.comment,
            queries=entry.queries,
            starred=starred,
        )


class SearchQuery(BaseModel):
    """Filters, sort and pagination for a history search."""

    datasource_uids: list[str] = Field(default_factory=list, description="Empty = all datasources")
    search_string: str = Field("", description="Case-insensitive substring of comment or queries")
    only_starred: bool = False
    sort: SortOrder = "time-desc"
    page: int = Field(1, description="1-based page index")
    limit: int = Field(0, description="Page size; <= 0 uses the configured default")
    time_from: int = Field(0, description="Epoch seconds, 0 = unbounded")
    time_to: int = Field(0, description="Epoch seconds, 0 = unbounded")


class SearchResult(BaseModel):
    items: list[HistoryItem]
    total_count: int
    page: int
    per_page: int


class LegacyQuery(BaseModel):
    """A record from the pre-storage (browser local) query history."""

    model_config = ConfigDict(populate_by_name=True)

    datasource_uid: str = Field("", alias="datasourceUid")
    queries: Any = None
    created_at: int = Field(0, alias="createdAt")
    comment: str = ""
    starred: bool = False


class MigrationResult(BaseModel):
    imported_count: int = 0
    starred_count: int = 0
