"""
Error taxonomy for the query history core.

Every error carries a machine-readable ``error_code`` so the API layer can map
it to a status code without inspecting messages:

  NOT_FOUND      -> 404
  CONFLICT       -> 409
  STORAGE_ERROR  -> 503
"""
from __future__ import annotations

from typing import Any


class QueryHistoryError(Exception):
    """Base exception for query history operations."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class QueryNotFoundError(QueryHistoryError):
    """Raised when a history entry does not exist (or is outside the caller's scope)."""

    def __init__(self, uid: str):
        super().__init__("query in query history not found", "NOT_FOUND", {"uid": uid})


class QueryAlreadyStarredError(QueryHistoryError):
    """Raised when the (user, entry) star already exists."""

    def __init__(self, uid: str, user_id: int):
        super().__init__(
            "query was already starred", "CONFLICT", {"uid": uid, "user_id": user_id},
        )


class StarredQueryNotFoundError(QueryHistoryError):
    """Raised when unstarring a pair that was never starred."""

    def __init__(self, uid: str, user_id: int):
        super().__init__(
            "starred query not found", "NOT_FOUND", {"uid": uid, "user_id": user_id},
        )


class StorageUnavailableError(QueryHistoryError):
    """Raised when the database cannot be reached or the statement fails at transport level."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "STORAGE_ERROR", details)
