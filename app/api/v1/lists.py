"""Member lists / tops endpoints: CRUD, votes, views and public rankings."""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import require_member
from app.core.cache import CacheService, get_cache
from app.db.database import get_db
from app.db import schemas
from app.db.schemas import ListKind, ListSort, MediaType
from app.services.list_service import ListService, MAX_PAGE_SIZE, MAX_WIDGET_LIMIT

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


def get_list_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
) -> ListService:
    return ListService(db, cache)


# ==================== Public Listings ====================

@router.get("/public/{media_type}", response_model=list[schemas.ListResponse])
async def get_public_lists(
    media_type: MediaType,
    sort: ListSort = Query(ListSort.RECENT, description="recent or popular"),
    limit: int = Query(10, ge=1, le=MAX_WIDGET_LIMIT),
    service: ListService = Depends(get_list_service),
):
    """Most recent or most popular public lists (homepage widgets)."""
    return await service.get_public_lists(media_type, sort, limit)


@router.get("/public/{media_type}/paged", response_model=schemas.PagedListsResponse)
async def get_public_lists_paged(
    media_type: MediaType,
    sort: ListSort = Query(ListSort.RECENT, description="recent or popular"),
    kind: ListKind | None = Query(None, description="Filter by list kind"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(30, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    service: ListService = Depends(get_list_service),
):
    """
    Browse public lists page by page.

    Each list carries the cover of its first item when it can be resolved.
    """
    return await service.get_public_lists_paged(media_type, sort, kind, page, limit)


# ==================== Reads ====================

@router.get("/member/{member_id}", response_model=list[schemas.ListResponse])
async def get_member_lists(
    member_id: int,
    kind: ListKind | None = Query(None),
    media_type: MediaType | None = Query(None),
    service: ListService = Depends(get_list_service),
):
    """All lists of a member."""
    return await service.get_user_lists(member_id, kind, media_type)


@router.get("/id/{list_id}", response_model=schemas.ListResponse)
async def get_list(list_id: int, service: ListService = Depends(get_list_service)):
    return await service.get_by_id(list_id)


@router.get("/{list_id}/stats", response_model=schemas.ListStatsResponse)
async def get_list_stats(list_id: int, service: ListService = Depends(get_list_service)):
    return await service.get_stats(list_id)


# ==================== Owner Mutations ====================

@router.post("", response_model=schemas.ListResponse, status_code=status.HTTP_201_CREATED)
async def create_list(
    body: schemas.ListCreate,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    return await service.create_list(member_id, body)


@router.put("/{list_id}", response_model=schemas.ListResponse)
async def update_list(
    list_id: int,
    body: schemas.ListUpdate,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    return await service.update_list(list_id, member_id, body)


@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_list(
    list_id: int,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    await service.delete_list(list_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{list_id}/items", response_model=schemas.ListResponse)
async def update_list_items(
    list_id: int,
    body: schemas.ListItemsUpdate,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    """Replace the ordered items of a list (drag & drop)."""
    return await service.update_items(list_id, member_id, body.items, body.comments)


# ==================== Views & Votes ====================

@router.put("/{list_id}/view", response_model=schemas.ViewResponse)
@limiter.limit("30/minute")
async def increment_view(
    request: Request,
    list_id: int,
    service: ListService = Depends(get_list_service),
):
    return await service.increment_view(list_id)


@router.post("/{list_id}/like", response_model=schemas.VoteResponse)
@limiter.limit("60/minute")
async def like_list(
    request: Request,
    list_id: int,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    return await service.like(list_id, member_id)


@router.post("/{list_id}/dislike", response_model=schemas.VoteResponse)
@limiter.limit("60/minute")
async def dislike_list(
    request: Request,
    list_id: int,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    return await service.dislike(list_id, member_id)


@router.delete("/{list_id}/like", response_model=schemas.VoteResponse)
async def remove_like(
    list_id: int,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    return await service.remove_like(list_id, member_id)


@router.delete("/{list_id}/dislike", response_model=schemas.VoteResponse)
async def remove_dislike(
    list_id: int,
    member_id: int = Depends(require_member),
    service: ListService = Depends(get_list_service),
):
    return await service.remove_dislike(list_id, member_id)
