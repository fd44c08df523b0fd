"""Create members, catalog, lists and guess game score tables.

Revision ID: 001_create_lists_and_guess_game
Revises:
Create Date: 2026-02-20

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_create_lists_and_guess_game'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'members',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=False),
        sa.Column('name', sa.String(255), nullable=False),
    )

    # Catalog
    op.create_table(
        'anime',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('image', sa.String(500)),
        sa.Column('year', sa.Integer),
        sa.Column('format', sa.String(50)),
        sa.Column('studio', sa.String(255)),
        sa.Column('episode_count', sa.Integer),
        sa.Column('status', sa.SmallInteger, server_default='0'),
        sa.Column('popularity_rank', sa.Integer, server_default='0'),
    )
    op.create_index('idx_anime_status_rank', 'anime', ['status', 'popularity_rank'])

    op.create_table(
        'tags',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
    )

    op.create_table(
        'anime_tags',
        sa.Column('anime_id', sa.Integer, sa.ForeignKey('anime.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('tag_id', sa.Integer, sa.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'manga',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('image', sa.String(500)),
        sa.Column('status', sa.SmallInteger, server_default='0'),
    )

    op.create_table(
        'video_games',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('image', sa.String(500)),
        sa.Column('year', sa.Integer),
        sa.Column('publisher', sa.String(255)),
        sa.Column('developer', sa.String(255)),
        sa.Column('status', sa.SmallInteger, server_default='0'),
        sa.Column('platforms', sa.JSON),
        sa.Column('genres', sa.JSON),
    )

    # Member lists
    op.create_table(
        'lists',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('member_id', sa.Integer, sa.ForeignKey('members.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('presentation', sa.Text),
        sa.Column('kind', sa.String(10), nullable=False, server_default='list'),
        sa.Column('media_type', sa.String(10), nullable=False),
        sa.Column('items', sa.Text, nullable=False, server_default='[]'),
        sa.Column('comments', sa.Text, nullable=False, server_default='[]'),
        sa.Column('status', sa.SmallInteger, nullable=False, server_default='0'),
        sa.Column('likes', sa.Text, nullable=False, server_default=''),
        sa.Column('dislikes', sa.Text, nullable=False, server_default=''),
        sa.Column('view_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('popularity', sa.Float, nullable=False, server_default='0'),
        sa.Column('trend', sa.String(10), server_default='NEW'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('idx_lists_public_recent', 'lists', ['status', 'media_type', sa.text('created_at DESC')])
    op.create_index(
        'idx_lists_public_popular', 'lists',
        ['status', 'media_type', sa.text('popularity DESC'), sa.text('created_at DESC')],
    )
    op.create_index('idx_lists_member', 'lists', ['member_id'])

    # Daily guess game
    op.create_table(
        'guess_game_scores',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('member_id', sa.Integer, sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False),
        sa.Column('game', sa.String(20), nullable=False, server_default='anime'),
        sa.Column('game_number', sa.Integer, nullable=False),
        sa.Column('attempts', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_won', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('guesses', sa.JSON, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('member_id', 'game', 'game_number', name='uq_guess_score_member_game_day'),
    )
    op.create_index(
        'idx_guess_scores_member_game', 'guess_game_scores',
        ['member_id', 'game', sa.text('game_number DESC')],
    )


def downgrade() -> None:
    op.drop_index('idx_guess_scores_member_game', table_name='guess_game_scores')
    op.drop_table('guess_game_scores')
    op.drop_index('idx_lists_member', table_name='lists')
    op.drop_index('idx_lists_public_popular', table_name='lists')
    op.drop_index('idx_lists_public_recent', table_name='lists')
    op.drop_table('lists')
    op.drop_table('video_games')
    op.drop_table('manga')
    op.drop_table('anime_tags')
    op.drop_table('tags')
    op.drop_index('idx_anime_status_rank', table_name='anime')
    op.drop_table('anime')
    op.drop_table('members')
