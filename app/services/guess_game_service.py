"""Service for the daily "guess the anime / guess the game" puzzles.

The target of the day is candidates[game_number % len(candidates)] over a
stable, id-ordered candidate pool, so it needs no stored state and survives
restarts. If the pool changes during the day the target may change too.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import InvalidInputError, NotFoundError
from app.db.models import Anime, AnimeTag, GuessGameScore, VideoGame
from app.db.schemas import GameKind
from app.services.guess_rules import (
    MAX_ATTEMPTS,
    AnimeCard,
    ScoreSummary,
    VideoGameCard,
    build_hints,
    compare_anime,
    compare_video_game,
    compute_streak,
    get_game_number,
    is_finished,
)

logger = logging.getLogger(__name__)

# Only reasonably known anime are guessable
CANDIDATE_RANK_CEILING = 2000
PUBLISHED = 1

GAME_TITLES = {
    GameKind.ANIME: "Guess the Anime",
    GameKind.VIDEO_GAME: "Guess the Game",
}


def parse_game(value: str | GameKind) -> GameKind:
    try:
        return GameKind(value)
    except ValueError:
        raise InvalidInputError(f"Unknown game: {value}")


def get_daily_meta(game: str | GameKind = GameKind.ANIME, today: date | None = None) -> dict[str, Any]:
    game = parse_game(game)
    game_number = get_game_number(today)
    return {"game_number": game_number, "title": f"{GAME_TITLES[game]} #{game_number}"}


# ============ Catalog Access ============

async def _candidate_ids(db: AsyncSession, game: GameKind) -> list[int]:
    if game == GameKind.ANIME:
        query = (
            select(Anime.id)
            .where(
                Anime.status == PUBLISHED,
                Anime.popularity_rank > 0,
                Anime.popularity_rank <= CANDIDATE_RANK_CEILING,
            )
            .order_by(Anime.id.asc())
        )
    else:
        query = (
            select(VideoGame.id)
            .where(
                VideoGame.status == PUBLISHED,
                VideoGame.year > 0,
                VideoGame.publisher.isnot(None),
            )
            .order_by(VideoGame.id.asc())
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def load_card(db: AsyncSession, game: GameKind, entity_id: int) -> AnimeCard | VideoGameCard:
    """Load a published catalog entry as a game card, or raise NotFoundError."""
    if game == GameKind.ANIME:
        result = await db.execute(
            select(Anime)
            .options(selectinload(Anime.tags).selectinload(AnimeTag.tag))
            .where(Anime.id == entity_id, Anime.status == PUBLISHED)
        )
        anime = result.scalar_one_or_none()
        if anime is None:
            raise NotFoundError(f"Anime {entity_id} not found")
        return AnimeCard(
            id=anime.id,
            title=anime.title,
            image=anime.image,
            year=anime.year,
            format=anime.format,
            studio=anime.studio,
            episodes=anime.episode_count,
            tags=anime.tag_names,
        )

    result = await db.execute(
        select(VideoGame).where(VideoGame.id == entity_id, VideoGame.status == PUBLISHED)
    )
    video_game = result.scalar_one_or_none()
    if video_game is None:
        raise NotFoundError(f"Video game {entity_id} not found")
    return VideoGameCard(
        id=video_game.id,
        title=video_game.title,
        image=video_game.image,
        year=video_game.year,
        publisher=video_game.publisher,
        developer=video_game.developer,
        platforms=list(video_game.platforms or []),
        genres=list(video_game.genres or []),
    )


async def get_daily_target(
    db: AsyncSession,
    game: str | GameKind = GameKind.ANIME,
    today: date | None = None,
) -> AnimeCard | VideoGameCard:
    """Today's answer for a game variant."""
    game = parse_game(game)
    candidates = await _candidate_ids(db, game)
    if not candidates:
        raise NotFoundError(f"No candidate found for the {game.value} game")

    target_id = candidates[get_game_number(today) % len(candidates)]
    return await load_card(db, game, target_id)


# ============ Scores ============

async def get_user_score(
    db: AsyncSession,
    member_id: int,
    game_number: int,
    game: str | GameKind = GameKind.ANIME,
) -> GuessGameScore | None:
    game = parse_game(game)
    result = await db.execute(
        select(GuessGameScore)
        .where(
            GuessGameScore.member_id == member_id,
            GuessGameScore.game == game.value,
            GuessGameScore.game_number == game_number,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def record_guess(
    db: AsyncSession,
    member_id: int,
    game_number: int,
    game: GameKind,
    guess_result: dict[str, Any],
) -> GuessGameScore:
    """Append a guess to the member's row for the day, creating the row on first guess."""
    for attempt in range(2):
        score = await get_user_score(db, member_id, game_number, game)
        if score is None:
            score = GuessGameScore(
                member_id=member_id,
                game=game.value,
                game_number=game_number,
                guesses=[guess_result],
                attempts=1,
                is_won=bool(guess_result["is_correct"]),
            )
            db.add(score)
        else:
            # The row may have been finished by the request that created it
            if is_finished(score):
                raise InvalidInputError("Today's game is already finished")
            # New list so the JSON column is flagged as changed
            guesses = list(score.guesses or []) + [guess_result]
            score.guesses = guesses
            score.attempts = len(guesses)
            score.is_won = bool(score.is_won) or bool(guess_result["is_correct"])

        try:
            await db.commit()
            return score
        except IntegrityError:
            # Another request created today's row first; append to it instead
            await db.rollback()
            if attempt:
                raise
            logger.info(f"Concurrent first guess for member {member_id} on game {game_number}, retrying")

    raise RuntimeError("unreachable")


async def get_user_streak(
    db: AsyncSession,
    member_id: int,
    game: str | GameKind = GameKind.ANIME,
    today: date | None = None,
) -> int:
    game = parse_game(game)
    result = await db.execute(
        select(GuessGameScore.game_number, GuessGameScore.is_won, GuessGameScore.attempts)
        .where(GuessGameScore.member_id == member_id, GuessGameScore.game == game.value)
        .order_by(GuessGameScore.game_number.desc())
    )
    scores = [
        ScoreSummary(game_number=row.game_number, is_won=row.is_won, attempts=row.attempts)
        for row in result.all()
    ]
    return compute_streak(scores, get_game_number(today))


def build_score_response(score: GuessGameScore | None) -> dict[str, Any] | None:
    if score is None:
        return None
    return {
        "game_number": score.game_number,
        "attempts": score.attempts,
        "is_won": bool(score.is_won),
        "guesses": list(score.guesses or []),
    }


async def get_full_game_state(
    db: AsyncSession,
    member_id: int,
    game: str | GameKind = GameKind.ANIME,
    today: date | None = None,
) -> dict[str, Any]:
    """Today's score row (or None) with the member's current streak."""
    game = parse_game(game)
    game_number = get_game_number(today)
    score = await get_user_score(db, member_id, game_number, game)
    streak = await get_user_streak(db, member_id, game, today)
    return {
        "game_number": game_number,
        "score": build_score_response(score),
        "streak": streak,
    }


# ============ Guesses & Hints ============

async def compare_guess(
    db: AsyncSession,
    entity_id: int,
    member_id: int | None = None,
    game: str | GameKind = GameKind.ANIME,
    today: date | None = None,
) -> dict[str, Any]:
    """
    Compare a guessed catalog entry against today's target.

    Anonymous guesses are not stored. Member guesses are appended to the
    day's score row and the response carries the updated streak.
    """
    game = parse_game(game)
    game_number = get_game_number(today)

    if member_id is not None:
        existing = await get_user_score(db, member_id, game_number, game)
        if existing is not None and is_finished(existing):
            raise InvalidInputError("Today's game is already finished")

    target = await get_daily_target(db, game, today)
    guess = await load_card(db, game, entity_id)

    if game == GameKind.ANIME:
        result = compare_anime(guess, target)
    else:
        result = compare_video_game(guess, target)

    if member_id is None:
        return result

    score = await record_guess(db, member_id, game_number, game, result)
    if score.is_won and result["is_correct"]:
        logger.info(f"Member {member_id} solved {game.value} game {game_number} in {score.attempts} attempts")

    streak = await get_user_streak(db, member_id, game, today)
    return {**result, "streak": streak}


async def resolve_attempts(
    db: AsyncSession,
    client_attempts: int,
    member_id: int | None,
    game: str | GameKind = GameKind.ANIME,
    today: date | None = None,
) -> int:
    """
    Attempt count to base hints on.

    Members: their stored attempts, whatever the client claims.
    Anonymous callers: the client value capped below MAX_ATTEMPTS, so the
    answer is never revealed to them.
    """
    if member_id is not None:
        score = await get_user_score(db, member_id, get_game_number(today), game)
        return score.attempts if score else 0
    return max(0, min(int(client_attempts or 0), MAX_ATTEMPTS - 1))


async def get_hint(
    db: AsyncSession,
    attempts: int,
    game: str | GameKind = GameKind.ANIME,
    today: date | None = None,
) -> dict[str, Any]:
    game = parse_game(game)
    target = await get_daily_target(db, game, today)
    if game == GameKind.ANIME:
        reveal_values, reveal_field = target.tags, "tags"
    else:
        reveal_values, reveal_field = target.platforms, "platforms"
    return build_hints(target.title, reveal_values, attempts, get_game_number(today), reveal_field)
