"""Member lists / tops: ownership, voting, popularity and public listings.

Public listings are read-through cached in Redis and invalidated whenever a
write changes what is publicly visible for a media type. Votes and views only
change popularity, which the cache TTLs absorb.
"""

import json
import logging
import math
from datetime import datetime
from typing import Any

from sqlalchemy import select, func, update, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.config import get_settings
from app.core.cache import CacheService, get_cache
from app.core.exceptions import (
    InvalidInputError, NotFoundError, NotOwnerError, PermissionDeniedError,
    UpstreamUnavailableError,
)
from app.db.models import Anime, Manga, MediaList, VideoGame
from app.db.schemas import (
    LIST_STATUS_PUBLIC, ListCreate, ListKind, ListSort, ListUpdate, MediaType,
)
from app.services.popularity import calculate_popularity

logger = logging.getLogger(__name__)
settings = get_settings()

MAX_PAGE_SIZE = 100
MAX_WIDGET_LIMIT = 50

CATALOG_MODELS = {
    MediaType.ANIME: Anime,
    MediaType.MANGA: Manga,
    MediaType.GAME: VideoGame,
}


def parse_media_type(value: str | MediaType) -> MediaType:
    try:
        return MediaType(value)
    except ValueError:
        raise InvalidInputError(f"Unknown media type: {value}")


def parse_sort(value: str | ListSort) -> ListSort:
    try:
        return ListSort(value)
    except ValueError:
        raise InvalidInputError(f"Unknown sort mode: {value}")


def parse_kind(value: str | ListKind | None) -> ListKind | None:
    if value is None or value == "":
        return None
    try:
        return ListKind(value)
    except ValueError:
        raise InvalidInputError(f"Unknown list kind: {value}")


def first_item_id(items_json: str | None) -> int | None:
    """First catalog id of a serialized item array, or None if unusable."""
    try:
        items = json.loads(items_json or "[]")
    except (TypeError, ValueError):
        return None
    if not isinstance(items, list) or not items:
        return None
    try:
        item_id = int(items[0])
    except (TypeError, ValueError):
        return None
    return item_id if item_id > 0 else None


def _load_json_list(raw: str | None) -> list:
    try:
        value = json.loads(raw or "[]")
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


def _check_alignment(items: list, comments: list | None) -> None:
    # Comments are positional annotations of items
    if comments and len(comments) > len(items):
        raise InvalidInputError(
            f"{len(comments)} comments for {len(items)} items; comments must align with items"
        )


def build_list_response(row: MediaList, first_item_image: str | None = None) -> dict[str, Any]:
    """Build the JSON-safe dict for a list; the same shape is cached and returned."""
    owner = None
    if "member" not in inspect(row).unloaded and row.member is not None:
        owner = {"id": row.member.id, "name": row.member.name}

    return {
        "id": row.id,
        "member_id": row.member_id,
        "title": row.title,
        "presentation": row.presentation,
        "kind": row.kind,
        "media_type": row.media_type,
        "items": row.items or "[]",
        "comments": row.comments or "[]",
        "likes": row.likes or "",
        "dislikes": row.dislikes or "",
        "view_count": row.view_count or 0,
        "popularity": row.popularity or 0.0,
        "trend": row.trend,
        "status": row.status,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        "owner": owner,
        "first_item_image": first_item_image,
    }


def list_popularity(row: MediaList) -> float:
    return calculate_popularity(len(row.liked_by), len(row.disliked_by), row.view_count or 0)


class ListService:
    """Service for member lists and their public rankings."""

    def __init__(self, db: AsyncSession, cache: CacheService | None = None):
        self.db = db
        self.cache = cache or get_cache()

    # ==================== Lookups ====================

    async def _get_list(self, list_id: int, with_member: bool = False) -> MediaList:
        query = select(MediaList).where(MediaList.id == list_id)
        if with_member:
            query = query.options(joinedload(MediaList.member))
        result = await self.db.execute(query.execution_options(populate_existing=True))
        row = result.unique().scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"List {list_id} not found")
        return row

    async def _get_owned_list(self, list_id: int, member_id: int) -> MediaList:
        row = await self._get_list(list_id)
        if row.member_id != member_id:
            logger.info(f"Member {member_id} tried to modify list {list_id} owned by {row.member_id}")
            raise NotOwnerError("Not your list")
        return row

    async def get_by_id(self, list_id: int) -> dict[str, Any]:
        row = await self._get_list(list_id, with_member=True)
        return build_list_response(row)

    async def get_user_lists(
        self,
        member_id: int,
        kind: str | None = None,
        media_type: str | None = None,
    ) -> list[dict[str, Any]]:
        """All lists of a member, drafts included, newest first."""
        query = (
            select(MediaList)
            .options(joinedload(MediaList.member))
            .where(MediaList.member_id == member_id)
            .order_by(MediaList.id.desc())
        )
        kind_filter = parse_kind(kind)
        if kind_filter:
            query = query.where(MediaList.kind == kind_filter.value)
        if media_type:
            query = query.where(MediaList.media_type == parse_media_type(media_type).value)

        result = await self.db.execute(query)
        return [build_list_response(row) for row in result.unique().scalars().all()]

    async def get_stats(self, list_id: int) -> dict[str, Any]:
        row = await self._get_list(list_id)
        return {
            "likes": len(row.liked_by),
            "dislikes": len(row.disliked_by),
            "view_count": row.view_count or 0,
            "popularity": list_popularity(row),
        }

    # ==================== Owner Mutations ====================

    async def create_list(self, member_id: int, payload: ListCreate) -> dict[str, Any]:
        _check_alignment(payload.items, payload.comments)
        now = datetime.utcnow()
        row = MediaList(
            member_id=member_id,
            title=payload.title,
            presentation=payload.presentation,
            kind=payload.kind.value,
            media_type=payload.media_type.value,
            items=json.dumps(payload.items),
            comments=json.dumps(payload.comments),
            status=payload.status,
            likes="",
            dislikes="",
            view_count=0,
            popularity=0.0,
            trend="NEW",
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        await self.db.commit()
        logger.info(f"Member {member_id} created {row.media_type} {row.kind} {row.id}")

        if row.status == LIST_STATUS_PUBLIC:
            await self.cache.invalidate_public_lists(row.media_type)

        return build_list_response(row)

    async def update_list(self, list_id: int, member_id: int, payload: ListUpdate) -> dict[str, Any]:
        row = await self._get_owned_list(list_id, member_id)
        was_public = row.status == LIST_STATUS_PUBLIC
        old_media_type = row.media_type

        changes = payload.model_dump(exclude_none=True)
        if "items" in changes or "comments" in changes:
            items = changes.get("items", _load_json_list(row.items))
            comments = changes.get("comments", _load_json_list(row.comments))
            _check_alignment(items, comments)

        for field in ("title", "presentation", "status"):
            if field in changes:
                setattr(row, field, changes[field])
        if payload.kind is not None:
            row.kind = payload.kind.value
        if payload.media_type is not None:
            row.media_type = payload.media_type.value
        if payload.items is not None:
            row.items = json.dumps(payload.items)
        if payload.comments is not None:
            row.comments = json.dumps(payload.comments)
        row.updated_at = datetime.utcnow()

        await self.db.commit()

        if was_public or row.status == LIST_STATUS_PUBLIC:
            await self.cache.invalidate_public_lists(old_media_type)
            if row.media_type != old_media_type:
                await self.cache.invalidate_public_lists(row.media_type)

        return build_list_response(row)

    async def delete_list(self, list_id: int, member_id: int) -> None:
        row = await self._get_owned_list(list_id, member_id)
        was_public = row.status == LIST_STATUS_PUBLIC
        media_type = row.media_type

        await self.db.delete(row)
        await self.db.commit()
        logger.info(f"Member {member_id} deleted list {list_id}")

        if was_public:
            await self.cache.invalidate_public_lists(media_type)

    async def update_items(
        self,
        list_id: int,
        member_id: int,
        items: list[int],
        comments: list[str] | None = None,
    ) -> dict[str, Any]:
        """Replace the ordered items (and their aligned comments) of a list."""
        row = await self._get_owned_list(list_id, member_id)
        _check_alignment(items, comments)

        row.items = json.dumps(items or [])
        row.comments = json.dumps(comments or [])
        row.updated_at = datetime.utcnow()
        await self.db.commit()

        # Covers shown in public pages come from the first item
        if row.status == LIST_STATUS_PUBLIC:
            await self.cache.invalidate_public_lists(row.media_type)

        return build_list_response(row)

    # ==================== Votes & Views ====================

    async def _save_popularity(self, row: MediaList) -> dict[str, Any]:
        row.popularity = list_popularity(row)
        await self.db.commit()
        return {"likes": row.likes, "dislikes": row.dislikes, "popularity": row.popularity}

    async def _vote(self, list_id: int, member_id: int, liked: bool) -> dict[str, Any]:
        row = await self._get_list(list_id)
        if row.member_id == member_id:
            raise PermissionDeniedError("Cannot vote on your own list")

        likes = row.liked_by
        dislikes = row.disliked_by
        target, opposite = (likes, dislikes) if liked else (dislikes, likes)

        opposite.discard(member_id)
        if member_id in target:
            target.remove(member_id)
        else:
            target.add(member_id)

        row.liked_by = likes
        row.disliked_by = dislikes
        return await self._save_popularity(row)

    async def like(self, list_id: int, member_id: int) -> dict[str, Any]:
        """Toggle a like; a previous dislike by the same member is dropped."""
        return await self._vote(list_id, member_id, liked=True)

    async def dislike(self, list_id: int, member_id: int) -> dict[str, Any]:
        """Toggle a dislike; a previous like by the same member is dropped."""
        return await self._vote(list_id, member_id, liked=False)

    async def remove_like(self, list_id: int, member_id: int) -> dict[str, Any]:
        row = await self._get_list(list_id)
        likes = row.liked_by
        likes.discard(member_id)
        row.liked_by = likes
        return await self._save_popularity(row)

    async def remove_dislike(self, list_id: int, member_id: int) -> dict[str, Any]:
        row = await self._get_list(list_id)
        dislikes = row.disliked_by
        dislikes.discard(member_id)
        row.disliked_by = dislikes
        return await self._save_popularity(row)

    async def increment_view(self, list_id: int) -> dict[str, Any]:
        """Atomically bump the view counter, then refresh popularity from the new value."""
        result = await self.db.execute(
            update(MediaList)
            .where(MediaList.id == list_id)
            .values(view_count=MediaList.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundError(f"List {list_id} not found")

        row = await self._get_list(list_id)
        row.popularity = list_popularity(row)
        await self.db.commit()
        return {"view_count": row.view_count, "popularity": row.popularity}

    # ==================== Public Listings ====================

    @staticmethod
    def _public_filters(media_type: MediaType, kind: ListKind | None = None) -> list:
        filters = [
            MediaList.status == LIST_STATUS_PUBLIC,
            MediaList.media_type == media_type.value,
            MediaList.member_id > 0,  # Member 0 is the system account
        ]
        if kind:
            filters.append(MediaList.kind == kind.value)
        return filters

    @staticmethod
    def _ordering(sort: ListSort) -> tuple:
        if sort == ListSort.POPULAR:
            return (MediaList.popularity.desc(), MediaList.created_at.desc(), MediaList.id.desc())
        return (MediaList.created_at.desc(), MediaList.id.desc())

    async def get_public_lists(
        self,
        media_type: str,
        sort: str = ListSort.RECENT,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Small recent/popular widget listing, cached for hours."""
        media = parse_media_type(media_type)
        sort_mode = parse_sort(sort)
        if not 1 <= limit <= MAX_WIDGET_LIMIT:
            raise InvalidInputError(f"limit must be between 1 and {MAX_WIDGET_LIMIT}")

        return await self.cache.get_or_load(
            CacheService.public_lists_key(media.value, sort_mode.value, limit),
            lambda: self._load_public_lists(media, sort_mode, limit),
            ttl=settings.lists_cache_ttl_seconds,
        )

    async def _load_public_lists(self, media: MediaType, sort_mode: ListSort, limit: int) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(MediaList)
            .options(joinedload(MediaList.member))
            .where(*self._public_filters(media))
            .order_by(*self._ordering(sort_mode))
            .limit(limit)
        )
        return [build_list_response(row) for row in result.unique().scalars().all()]

    async def get_public_lists_paged(
        self,
        media_type: str,
        sort: str = ListSort.RECENT,
        kind: str | None = None,
        page: int = 1,
        limit: int = 30,
    ) -> dict[str, Any]:
        """Browsable public listing with first-item covers, cached for minutes."""
        media = parse_media_type(media_type)
        sort_mode = parse_sort(sort)
        kind_filter = parse_kind(kind)
        if page < 1:
            raise InvalidInputError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        return await self.cache.get_or_load(
            CacheService.public_lists_paged_key(
                media.value, sort_mode.value, kind_filter.value if kind_filter else None, page, limit
            ),
            lambda: self._load_public_page(media, sort_mode, kind_filter, page, limit),
            ttl=settings.lists_paged_cache_ttl_seconds,
        )

    async def _load_public_page(
        self,
        media: MediaType,
        sort_mode: ListSort,
        kind_filter: ListKind | None,
        page: int,
        limit: int,
    ) -> dict[str, Any]:
        filters = self._public_filters(media, kind_filter)
        total = (
            await self.db.execute(select(func.count()).select_from(MediaList).where(*filters))
        ).scalar_one()

        result = await self.db.execute(
            select(MediaList)
            .options(joinedload(MediaList.member))
            .where(*filters)
            .order_by(*self._ordering(sort_mode))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = list(result.unique().scalars().all())
        items = [build_list_response(row) for row in rows]
        await self._attach_first_item_images(media, rows, items)

        return {
            "items": items,
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": max(math.ceil(total / limit), 1),
        }

    async def _lookup_images(self, media: MediaType, ids: set[int]) -> dict[int, str]:
        model = CATALOG_MODELS[media]
        try:
            result = await self.db.execute(
                select(model.id, model.image).where(model.id.in_(ids))
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailableError(f"{media.value} image lookup failed: {e}") from e
        return {row.id: row.image for row in result.all() if row.image}

    async def _attach_first_item_images(
        self,
        media: MediaType,
        rows: list[MediaList],
        items: list[dict[str, Any]],
    ) -> None:
        """Best effort: lists whose first item is unknown or malformed get no cover."""
        first_ids = {}
        for row in rows:
            item_id = first_item_id(row.items)
            if item_id is not None:
                first_ids[row.id] = item_id
        if not first_ids:
            return

        try:
            images = await self._lookup_images(media, set(first_ids.values()))
        except UpstreamUnavailableError as e:
            logger.warning(f"Skipping list covers: {e}")
            return

        for item in items:
            item_id = first_ids.get(item["id"])
            if item_id is not None and item_id in images:
                item["first_item_image"] = images[item_id]

    # ==================== Maintenance ====================

    async def recompute_all_popularity(self) -> int:
        """Recompute popularity of every public list. Returns the number processed."""
        result = await self.db.execute(
            select(MediaList).where(MediaList.status == LIST_STATUS_PUBLIC)
        )
        rows = result.scalars().all()

        changed_media_types = set()
        for row in rows:
            popularity = list_popularity(row)
            if popularity != row.popularity:
                row.popularity = popularity
                changed_media_types.add(row.media_type)

        await self.db.commit()

        for media_type in changed_media_types:
            await self.cache.invalidate_public_lists(media_type)

        logger.info(
            f"Popularity recompute complete: {len(rows)} public lists, "
            f"media types changed: {sorted(changed_media_types) or 'none'}"
        )
        return len(rows)


# ============ Scheduled Task ============


async def run_popularity_recompute() -> int:
    """Scheduled task: recompute popularity of every public list."""
    from app.db.database import async_session

    logger.info("Running nightly list popularity recompute...")

    try:
        async with async_session() as db:
            return await ListService(db).recompute_all_popularity()
    except Exception as e:
        logger.error(f"List popularity recompute failed: {e}", exc_info=True)
        raise
