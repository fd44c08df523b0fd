"""
SQLAlchemy ORM models.

============================================================================
TABLE OVERVIEW
============================================================================
- Member: site members (id 0 is the "system" account used for imported lists)
- Anime / Manga / VideoGame: catalog entries, read-only from this service's
  point of view. Used for list covers and as daily guess game targets.
- Tag / AnimeTag: anime tags, compared by name in the guess game
- MediaList: member-curated lists and tops, with like/dislike vote sets
- GuessGameScore: one row per member, game variant and day

Vote sets on MediaList are stored as comma separated member ids (the legacy
column format). Code should go through MediaList.liked_by / disliked_by,
which expose real sets and serialize only when assigned.
============================================================================
"""

from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text, DateTime,
    ForeignKey, JSON, Index, SmallInteger, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.db.database import Base
from app.services.popularity import parse_vote_ids, serialize_vote_ids


class Member(Base):
    """Site member. Only the fields needed for owner summaries."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False)

    lists = relationship("MediaList", back_populates="member")


# ============ Catalog Models ============

class Anime(Base):
    """Anime catalog entry."""

    __tablename__ = "anime"

    id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=False)
    image = Column(String(500))
    year = Column(Integer)
    format = Column(String(50))  # TV, Film, OAV, ...
    studio = Column(String(255))
    episode_count = Column(Integer)
    status = Column(SmallInteger, default=0)  # 0=hidden, 1=published
    popularity_rank = Column(Integer, default=0)  # 0 = unranked

    tags = relationship("AnimeTag", back_populates="anime", cascade="all, delete-orphan")

    @property
    def tag_names(self) -> list[str]:
        """Names of linked tags, skipping dangling links."""
        return [link.tag.name for link in self.tags if link.tag and link.tag.name]

    __table_args__ = (
        Index("idx_anime_status_rank", "status", "popularity_rank"),
    )


class Tag(Base):
    """Anime tag (genre, theme, setting...)."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)

    anime_tags = relationship("AnimeTag", back_populates="tag")


class AnimeTag(Base):
    """Many-to-many relationship between anime and tags."""

    __tablename__ = "anime_tags"

    anime_id = Column(Integer, ForeignKey("anime.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    anime = relationship("Anime", back_populates="tags")
    tag = relationship("Tag", back_populates="anime_tags")


class Manga(Base):
    """Manga catalog entry."""

    __tablename__ = "manga"

    id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=False)
    image = Column(String(500))
    status = Column(SmallInteger, default=0)


class VideoGame(Base):
    """Video game catalog entry."""

    __tablename__ = "video_games"

    id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=False)
    image = Column(String(500))
    year = Column(Integer)
    publisher = Column(String(255))
    developer = Column(String(255))
    status = Column(SmallInteger, default=0)
    platforms = Column(JSON)  # Short platform names, primary platform first
    genres = Column(JSON)


# ============ Member Lists ============

class MediaList(Base):
    """Member-curated list or ranked top of anime, manga or video games."""

    __tablename__ = "lists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    title = Column(String(255), nullable=False)
    presentation = Column(Text)
    kind = Column(String(10), nullable=False, default="list")  # list, top
    media_type = Column(String(10), nullable=False)  # anime, manga, game
    items = Column(Text, nullable=False, default="[]")  # JSON array of catalog ids
    comments = Column(Text, nullable=False, default="[]")  # JSON array aligned with items
    status = Column(SmallInteger, nullable=False, default=0)  # 0=draft, 1=public
    likes = Column(Text, nullable=False, default="")
    dislikes = Column(Text, nullable=False, default="")
    view_count = Column(Integer, nullable=False, default=0)
    popularity = Column(Float, nullable=False, default=0.0)
    trend = Column(String(10), default="NEW")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)  # Owner edits only; votes and views leave it alone

    member = relationship("Member", back_populates="lists")

    @property
    def liked_by(self) -> set[int]:
        return parse_vote_ids(self.likes)

    @liked_by.setter
    def liked_by(self, member_ids: set[int]) -> None:
        self.likes = serialize_vote_ids(member_ids)

    @property
    def disliked_by(self) -> set[int]:
        return parse_vote_ids(self.dislikes)

    @disliked_by.setter
    def disliked_by(self, member_ids: set[int]) -> None:
        self.dislikes = serialize_vote_ids(member_ids)

    __table_args__ = (
        Index("idx_lists_public_recent", "status", "media_type", created_at.desc()),
        Index("idx_lists_public_popular", "status", "media_type", popularity.desc(), created_at.desc()),
        Index("idx_lists_member", "member_id"),
    )


# ============ Daily Guess Game ============

class GuessGameScore(Base):
    """A member's progress on one day's guess game.

    attempts always mirrors len(guesses); is_won never flips back to False.
    """

    __tablename__ = "guess_game_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    game = Column(String(20), nullable=False, default="anime")  # anime, video_game
    game_number = Column(Integer, nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    is_won = Column(Boolean, nullable=False, default=False)
    guesses = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("member_id", "game", "game_number", name="uq_guess_score_member_game_day"),
        Index("idx_guess_scores_member_game", "member_id", "game", game_number.desc()),
    )
