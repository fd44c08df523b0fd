"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MediaType(str, Enum):
    ANIME = "anime"
    MANGA = "manga"
    GAME = "game"


class ListKind(str, Enum):
    LIST = "list"
    TOP = "top"


class ListSort(str, Enum):
    RECENT = "recent"
    POPULAR = "popular"


class GameKind(str, Enum):
    ANIME = "anime"
    VIDEO_GAME = "video_game"


LIST_STATUS_DRAFT = 0
LIST_STATUS_PUBLIC = 1


# ============ List Schemas ============

class ListOwner(BaseModel):
    """Public summary of a list owner."""
    id: int
    name: str


class ListResponse(BaseModel):
    """A member list as exposed publicly.

    items / comments are the serialized JSON arrays, likes / dislikes the
    serialized vote sets.
    """
    id: int
    member_id: int
    title: str
    presentation: str | None = None
    kind: str
    media_type: str
    items: str
    comments: str
    likes: str
    dislikes: str
    view_count: int
    popularity: float
    trend: str | None = None
    status: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    owner: ListOwner | None = None
    first_item_image: str | None = None


class PagedListsResponse(BaseModel):
    """Paginated public lists."""
    items: list[ListResponse]
    page: int
    limit: int
    total: int
    total_pages: int


class ListCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    presentation: str | None = None
    kind: ListKind = ListKind.LIST
    media_type: MediaType
    items: list[int] = []
    comments: list[str] = []
    status: int = Field(LIST_STATUS_DRAFT, ge=0, le=1)  # 0 draft, 1 public


class ListUpdate(BaseModel):
    """Partial list update; omitted fields keep their stored value."""
    title: str | None = Field(None, min_length=1, max_length=255)
    presentation: str | None = None
    kind: ListKind | None = None
    media_type: MediaType | None = None
    items: list[int] | None = None
    comments: list[str] | None = None
    status: int | None = Field(None, ge=0, le=1)


class ListItemsUpdate(BaseModel):
    items: list[int]
    comments: list[str] | None = None


class VoteResponse(BaseModel):
    likes: str
    dislikes: str
    popularity: float


class ViewResponse(BaseModel):
    view_count: int
    popularity: float


class ListStatsResponse(BaseModel):
    likes: int
    dislikes: int
    view_count: int
    popularity: float


class RecomputeResponse(BaseModel):
    processed: int


# ============ Guess Game Schemas ============

class GuessRequest(BaseModel):
    entity_id: int = Field(..., gt=0)


class GuessEntity(BaseModel):
    id: int
    title: str
    image: str | None = None


class FieldComparison(BaseModel):
    """Verdict for one compared attribute: correct, partial or incorrect."""
    status: str
    value: Any = None
    direction: str | None = None  # higher / lower, for numeric fields
    common: list[str] | None = None  # intersection, for set fields


class GuessResponse(BaseModel):
    entity: GuessEntity
    comparison: dict[str, FieldComparison]
    is_correct: bool
    streak: int | None = None  # Only for authenticated members


class HintResponse(BaseModel):
    first_letter: str | None = None
    tags: list[str] | None = None
    platforms: list[str] | None = None
    masked_title: str | None = None
    answer: str | None = None


class GameScoreResponse(BaseModel):
    game_number: int
    attempts: int
    is_won: bool
    guesses: list[dict]


class GameStateResponse(BaseModel):
    game_number: int
    score: GameScoreResponse | None = None
    streak: int


class DailyGameMeta(BaseModel):
    game_number: int
    title: str
