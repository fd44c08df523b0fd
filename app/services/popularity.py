"""Popularity scoring and vote-set encoding for member lists."""

import math
from typing import Iterable

LIKE_WEIGHT = 0.7
VIEW_WEIGHT = 0.3


def calculate_popularity(like_count: int, dislike_count: int, view_count: int) -> float:
    """
    Blend the approval ratio with a log-damped view count.

    ratio = likes / (likes + dislikes), or 0 without votes
    view_weight = ln(views + 1) / 10
    popularity = ratio * 0.7 + view_weight * 0.3, rounded to 4 decimals
    """
    total_votes = like_count + dislike_count
    ratio = like_count / total_votes if total_votes > 0 else 0.0
    view_weight = math.log((view_count or 0) + 1) / 10
    return round(ratio * LIKE_WEIGHT + view_weight * VIEW_WEIGHT, 4)


def parse_vote_ids(csv: str | None) -> set[int]:
    """Parse a stored "12,45,7" vote column. Junk and non-positive ids are dropped."""
    ids = set()
    for part in (csv or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            member_id = int(part)
        except ValueError:
            continue
        if member_id > 0:
            ids.add(member_id)
    return ids


def serialize_vote_ids(member_ids: Iterable[int]) -> str:
    """Inverse of parse_vote_ids, sorted for stable storage."""
    return ",".join(str(member_id) for member_id in sorted(set(member_ids)))
