"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routers import query_history
from src.core.errors import QueryHistoryError
from src.core.logging import get_logger

logger = get_logger(__name__)

_STATUS_BY_CODE = {
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "STORAGE_ERROR": 503,
}

app = FastAPI(
    title="Query History",
    version="0.1.0",
    description="Per-organization query history with stars, search and legacy migration",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query_history.router, prefix="/api/query-history", tags=["Query history"])


@app.exception_handler(QueryHistoryError)
def query_history_error_handler(request: Request, exc: QueryHistoryError):
    status = _STATUS_BY_CODE.get(exc.error_code, 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status,
        content={"message": exc.message, "error_code": exc.error_code, "details": exc.details},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
