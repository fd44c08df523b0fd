"""Pure rules of the daily guess game.

Nothing here touches the database: game numbering, attribute comparison,
streak computation and hint reveal are all functions of their arguments, so
the same day always produces the same answers and hints.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable

GAME_EPOCH = date(2026, 2, 20)

# Loss threshold and full-answer hint share this value
MAX_ATTEMPTS = 10

FIRST_LETTER_HINT_AT = 3
REVEAL_LIST_HINT_AT = 5
MASKED_TITLE_HINT_AT = 8

YEAR_TOLERANCE = 2
EPISODE_TOLERANCE = 5

MASK_CHAR = "_"

CORRECT = "correct"
PARTIAL = "partial"
INCORRECT = "incorrect"


def get_game_number(today: date | None = None) -> int:
    """Whole days elapsed since GAME_EPOCH for the given (default: local) date."""
    if today is None:
        today = date.today()
    elif isinstance(today, datetime):
        today = today.date()
    return (today - GAME_EPOCH).days


# ============ Attribute Comparison ============

def compare_exact(guess: Any, target: Any) -> dict[str, Any]:
    if guess == target:
        return {"status": CORRECT, "value": guess}
    return {"status": INCORRECT, "value": guess}


def compare_numeric(guess: int | None, target: int | None, tolerance: int) -> dict[str, Any]:
    """
    Numeric verdict with a direction hint.

    direction tells the player where to move: "higher" when the guess is
    below the target, "lower" when above.
    """
    if guess == target:
        return {"status": CORRECT, "value": guess}
    if guess is None or target is None:
        return {"status": INCORRECT, "value": guess}

    direction = "higher" if guess < target else "lower"
    status = PARTIAL if abs(guess - target) <= tolerance else INCORRECT
    return {"status": status, "value": guess, "direction": direction}


def _unique(values: Iterable[str] | None) -> list[str]:
    seen = []
    for value in values or []:
        if value and value not in seen:
            seen.append(value)
    return seen


def compare_sets(guess_values: Iterable[str] | None, target_values: Iterable[str] | None) -> dict[str, Any]:
    """Set verdict; the shared values are always returned as `common`."""
    guess_list = _unique(guess_values)
    target_list = _unique(target_values)
    target_set = set(target_list)
    common = [value for value in guess_list if value in target_set]

    if len(common) == len(target_list) and len(guess_list) == len(target_list):
        return {"status": CORRECT, "common": common}
    if common:
        return {"status": PARTIAL, "common": common}
    return {"status": INCORRECT, "common": []}


@dataclass
class AnimeCard:
    """Attributes of an anime that take part in the game."""
    id: int
    title: str
    image: str | None = None
    year: int | None = None
    format: str | None = None
    studio: str | None = None
    episodes: int | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class VideoGameCard:
    """Attributes of a video game that take part in the game."""
    id: int
    title: str
    image: str | None = None
    year: int | None = None
    publisher: str | None = None
    developer: str | None = None
    platforms: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)


def _entity(card: AnimeCard | VideoGameCard) -> dict[str, Any]:
    return {"id": card.id, "title": card.title, "image": card.image}


def compare_anime(guess: AnimeCard, target: AnimeCard) -> dict[str, Any]:
    return {
        "entity": _entity(guess),
        "comparison": {
            "year": compare_numeric(guess.year, target.year, YEAR_TOLERANCE),
            "format": compare_exact(guess.format, target.format),
            "studio": compare_exact(guess.studio, target.studio),
            "episodes": compare_numeric(guess.episodes, target.episodes, EPISODE_TOLERANCE),
            "tags": compare_sets(guess.tags, target.tags),
        },
        "is_correct": guess.id == target.id,
    }


def compare_video_game(guess: VideoGameCard, target: VideoGameCard) -> dict[str, Any]:
    return {
        "entity": _entity(guess),
        "comparison": {
            "platforms": compare_sets(guess.platforms, target.platforms),
            "year": compare_numeric(guess.year, target.year, YEAR_TOLERANCE),
            "genres": compare_sets(guess.genres, target.genres),
            "publisher": compare_exact(guess.publisher, target.publisher),
            "developer": compare_exact(guess.developer, target.developer),
        },
        "is_correct": guess.id == target.id,
    }


# ============ Streaks ============

@dataclass(frozen=True)
class ScoreSummary:
    game_number: int
    is_won: bool
    attempts: int


def is_finished(score: Any) -> bool:
    """A day's game ends on a win or when the attempt cap is reached."""
    return bool(score.is_won) or score.attempts >= MAX_ATTEMPTS


def compute_streak(scores: Iterable[Any], current_game: int) -> int:
    """
    Count consecutive won days walking back from current_game.

    - today's game still in progress is skipped without breaking the streak
    - a missing day stops the walk
    - a lost game (cap reached without a win) ends the walk; wins counted
      before it (more recent days) are kept
    - rows from the future are ignored
    """
    streak = 0
    expected_game = current_game

    for score in sorted(scores, key=lambda s: s.game_number, reverse=True):
        if score.game_number > current_game:
            continue

        if score.game_number == current_game and not is_finished(score):
            expected_game = current_game - 1
            continue

        if score.game_number != expected_game:
            break

        if not score.is_won:
            break

        streak += 1
        expected_game -= 1

    return streak


# ============ Hints ============

def reveal_index(game_number: int, title_length: int, revealable_count: int) -> int:
    """Stable pick in [0, revealable_count) seeded by the day and the title length."""
    digest = hashlib.sha256(f"{game_number}:{title_length}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % revealable_count


def masked_title(title: str, game_number: int) -> str:
    """
    Mask every alphanumeric character except the first one and one more.

    Spaces and punctuation stay in place so the shape of the title shows.
    """
    if not title:
        return ""

    revealable = [i for i, char in enumerate(title) if i > 0 and char.isalnum()]
    revealed = {0}
    if revealable:
        revealed.add(revealable[reveal_index(game_number, len(title), len(revealable))])

    return "".join(
        char if i in revealed or not char.isalnum() else MASK_CHAR
        for i, char in enumerate(title)
    )


def build_hints(
    title: str,
    reveal_values: list[str],
    attempts: int,
    game_number: int,
    reveal_field: str = "tags",
) -> dict[str, Any]:
    """Cumulative hints for a number of attempts; later thresholds only add fields."""
    hints: dict[str, Any] = {}

    if attempts >= FIRST_LETTER_HINT_AT:
        hints["first_letter"] = (title or "")[:1]

    if attempts >= REVEAL_LIST_HINT_AT:
        hints[reveal_field] = list(reveal_values or [])

    if attempts >= MASKED_TITLE_HINT_AT:
        hints["masked_title"] = masked_title(title, game_number)

    if attempts >= MAX_ATTEMPTS:
        hints["answer"] = title

    return hints
