"""Daily guess game endpoints (anime and video game variants)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import optional_member, require_member
from app.db.database import get_db
from app.db import schemas
from app.db.schemas import GameKind
from app.services import guess_game_service as games

router = APIRouter()


@router.get("/{game}/daily", response_model=schemas.DailyGameMeta)
async def get_daily_meta(game: GameKind):
    """Today's game number and display title."""
    return games.get_daily_meta(game)


@router.get("/{game}/state", response_model=schemas.GameStateResponse)
async def get_game_state(
    game: GameKind,
    member_id: int = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    """The member's score row for today plus their current streak."""
    return await games.get_full_game_state(db, member_id, game)


@router.get(
    "/{game}/hint",
    response_model=schemas.HintResponse,
    response_model_exclude_none=True,
)
async def get_hint(
    game: GameKind,
    attempts: int = Query(0, ge=0, description="Attempts so far (ignored for members)"),
    member_id: int | None = Depends(optional_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Hints for today's target.

    Members get hints for their stored attempt count; anonymous players never
    reach the full answer.
    """
    effective_attempts = await games.resolve_attempts(db, attempts, member_id, game)
    return await games.get_hint(db, effective_attempts, game)


@router.post("/{game}/guess", response_model=schemas.GuessResponse)
async def submit_guess(
    game: GameKind,
    body: schemas.GuessRequest,
    member_id: int | None = Depends(optional_member),
    db: AsyncSession = Depends(get_db),
):
    """Compare a guess with today's target; members' guesses are saved."""
    return await games.compare_guess(db, body.entity_id, member_id, game)
