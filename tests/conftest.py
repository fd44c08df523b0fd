import json
from datetime import date, datetime, timedelta

import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.cache import CacheService
from app.db.database import Base
from app.db import models
from app.db.schemas import LIST_STATUS_PUBLIC
from app.services.guess_rules import GAME_EPOCH

TEST_SECRET = "test-member-secret-0123456789abcdef"


@pytest.fixture
async def engine(tmp_path):
    # File database + NullPool: every session gets a fresh connection on the test's loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def cache():
    cache = CacheService(client=FakeAsyncRedis(server=FakeServer(), decode_responses=True))
    yield cache
    await cache.close()


@pytest.fixture
def member_secret(monkeypatch):
    from app.core import auth
    monkeypatch.setattr(auth.settings, "member_token_secret", TEST_SECRET)
    return TEST_SECRET


# ============ Seed helpers ============

async def add_members(db, *member_ids):
    for member_id in member_ids:
        db.add(models.Member(id=member_id, name=f"member{member_id}"))
    await db.commit()


async def add_list(
    db,
    member_id,
    media_type="anime",
    status=LIST_STATUS_PUBLIC,
    items=(),
    comments=(),
    created_at=None,
    popularity=0.0,
    kind="list",
    title="My list",
    likes="",
    dislikes="",
    view_count=0,
):
    created_at = created_at or datetime(2026, 3, 1, 12, 0)
    row = models.MediaList(
        member_id=member_id,
        title=title,
        kind=kind,
        media_type=media_type,
        items=json.dumps(list(items)),
        comments=json.dumps(list(comments)),
        status=status,
        likes=likes,
        dislikes=dislikes,
        view_count=view_count,
        popularity=popularity,
        created_at=created_at,
        updated_at=created_at,
    )
    db.add(row)
    await db.commit()
    return row


async def add_anime(
    db,
    anime_id,
    title,
    year=2010,
    format="TV",
    studio="Madhouse",
    episodes=12,
    tags=(),
    rank=100,
    status=1,
    image=None,
):
    anime = models.Anime(
        id=anime_id,
        title=title,
        image=image,
        year=year,
        format=format,
        studio=studio,
        episode_count=episodes,
        status=status,
        popularity_rank=rank,
    )
    db.add(anime)
    await db.flush()
    for tag_name in tags:
        tag = models.Tag(name=tag_name)
        db.add(tag)
        await db.flush()
        db.add(models.AnimeTag(anime_id=anime_id, tag_id=tag.id))
    await db.commit()
    return anime


async def add_video_game(
    db,
    game_id,
    title,
    year=2015,
    publisher="Nintendo",
    developer="Nintendo EPD",
    platforms=("Switch",),
    genres=("Action",),
    status=1,
):
    video_game = models.VideoGame(
        id=game_id,
        title=title,
        year=year,
        publisher=publisher,
        developer=developer,
        platforms=list(platforms),
        genres=list(genres),
        status=status,
    )
    db.add(video_game)
    await db.commit()
    return video_game


def game_day(game_number: int) -> date:
    return GAME_EPOCH + timedelta(days=game_number)
