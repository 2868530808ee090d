"""/api/query-history -- CRUD, stars, search and migration for saved queries."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, Field

from src.history.models import (
    HistoryEntry,
    LegacyQuery,
    RequestContext,
    SearchQuery,
    SearchResult,
    SortOrder,
)
from src.history.service import QueryHistoryService, get_service

router = APIRouter()


def get_context(
    x_org_id: int = Header(..., description="Organization of the caller"),
    x_user_id: int = Header(..., description="Authenticated user id"),
) -> RequestContext:
    """Identity comes from the fronting auth proxy; it is trusted as-is."""
    return RequestContext(org_id=x_org_id, user_id=x_user_id)


class CreateEntryRequest(BaseModel):
    datasource_uid: str = Field("", description="Datasource the queries ran against")
    queries: Any = Field(..., description="JSON model of the queries")
    comment: str = ""


class PatchCommentRequest(BaseModel):
    comment: str = Field(..., description="Updated comment")


class MigrateRequest(BaseModel):
    queries: list[LegacyQuery] = Field(default_factory=list)


class EntryResponse(BaseModel):
    result: HistoryEntry


class DeleteResponse(BaseModel):
    uid: str
    message: str


class MigrationResponse(BaseModel):
    message: str
    total_count: int
    starred_count: int


@router.post("", response_model=EntryResponse)
def create_endpoint(
    req: CreateEntryRequest,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    entry = service.create_entry(ctx, req.datasource_uid, req.queries, comment=req.comment)
    return EntryResponse(result=entry)


@router.get("", response_model=SearchResult)
def search_endpoint(
    datasource_uid: list[str] | None = Query(None, alias="datasourceUid"),
    search_string: str = Query("", alias="searchString"),
    only_starred: bool = Query(False, alias="onlyStarred"),
    sort: SortOrder = "time-desc",
    page: int = 1,
    limit: int = 0,
    time_from: int = Query(0, alias="from"),
    time_to: int = Query(0, alias="to"),
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    query = SearchQuery(
        datasource_uids=datasource_uid or [],
        search_string=search_string,
        only_starred=only_starred,
        sort=sort,
        page=page,
        limit=limit,
        time_from=time_from,
        time_to=time_to,
    )
    return service.search(ctx, query)


@router.get("/{uid}", response_model=EntryResponse)
def get_endpoint(
    uid: str,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    return EntryResponse(result=service.get_entry(ctx, uid))


@router.patch("/{uid}", response_model=EntryResponse)
def patch_comment_endpoint(
    uid: str,
    req: PatchCommentRequest,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    return EntryResponse(result=service.update_comment(ctx, uid, req.comment))


@router.delete("/{uid}", response_model=DeleteResponse)
def delete_endpoint(
    uid: str,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    service.delete_entry(ctx, uid)
    return DeleteResponse(uid=uid, message="Query deleted")


@router.post("/star/{uid}")
def star_endpoint(
    uid: str,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    service.star(ctx, uid)
    return {"uid": uid, "starred": True}


@router.delete("/star/{uid}")
def unstar_endpoint(
    uid: str,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    service.unstar(ctx, uid)
    return {"uid": uid, "starred": False}


@router.post("/migrate", response_model=MigrationResponse)
def migrate_endpoint(
    req: MigrateRequest,
    ctx: RequestContext = Depends(get_context),
    service: QueryHistoryService = Depends(get_service),
):
    result = service.migrate(ctx, req.queries)
    return MigrationResponse(
        message="Query history successfully migrated",
        total_count=result.imported_count,
        starred_count=result.starred_count,
    )
