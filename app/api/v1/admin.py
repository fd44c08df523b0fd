"""Admin API endpoints for list maintenance."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import require_admin
from app.core.cache import CacheService, get_cache
from app.db.database import get_db
from app.db import schemas
from app.db.schemas import MediaType
from app.services.list_service import ListService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/lists/recompute-popularity", response_model=schemas.RecomputeResponse)
async def recompute_list_popularity(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    """Recompute popularity for every public list (backfill after a formula change)."""
    processed = await ListService(db, cache).recompute_all_popularity()
    return {"processed": processed}


@router.delete("/cache/lists/{media_type}")
async def flush_list_cache(
    media_type: MediaType,
    cache: CacheService = Depends(get_cache),
):
    """Drop cached public listings for a media type."""
    deleted = await cache.invalidate_public_lists(media_type.value)
    logger.info(f"Admin flushed {deleted} cached {media_type.value} listings")
    return {"media_type": media_type.value, "deleted": deleted}
