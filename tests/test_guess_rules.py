from datetime import date, datetime

from app.services.guess_rules import (
    CORRECT,
    GAME_EPOCH,
    INCORRECT,
    MASK_CHAR,
    MAX_ATTEMPTS,
    PARTIAL,
    AnimeCard,
    ScoreSummary,
    VideoGameCard,
    build_hints,
    compare_anime,
    compare_exact,
    compare_numeric,
    compare_sets,
    compare_video_game,
    compute_streak,
    get_game_number,
    masked_title,
)


def won(game_number, attempts=3):
    return ScoreSummary(game_number=game_number, is_won=True, attempts=attempts)


def lost(game_number):
    return ScoreSummary(game_number=game_number, is_won=False, attempts=MAX_ATTEMPTS)


def playing(game_number, attempts=2):
    return ScoreSummary(game_number=game_number, is_won=False, attempts=attempts)


# ============ Game number ============

def test_game_number_counts_days_since_epoch():
    assert GAME_EPOCH == date(2026, 2, 20)
    assert get_game_number(GAME_EPOCH) == 0
    assert get_game_number(date(2026, 3, 2)) == 10
    assert get_game_number(date(2027, 2, 20)) == 365


def test_game_number_accepts_datetimes():
    assert get_game_number(datetime(2026, 3, 2, 23, 59)) == 10


def test_game_number_before_epoch_is_negative():
    assert get_game_number(date(2026, 2, 19)) == -1


# ============ Streak ============

def test_streak_stops_at_gap():
    assert compute_streak([won(10), won(9), won(7)], current_game=10) == 2


def test_streak_stops_at_loss_after_counting_recent_wins():
    assert compute_streak([won(10), lost(9), won(8)], current_game=10) == 1


def test_streak_is_zero_when_latest_finished_game_is_lost():
    assert compute_streak([lost(10), won(9), won(8)], current_game=10) == 0
    assert compute_streak([playing(10), lost(9), won(8)], current_game=10) == 0


def test_in_progress_game_today_does_not_break_streak():
    assert compute_streak([playing(10), won(9), won(8)], current_game=10) == 2


def test_missing_today_counts_from_yesterday_only_when_today_in_progress():
    # Nothing played today: the walk expects today and stops immediately
    assert compute_streak([won(9), won(8)], current_game=10) == 0


def test_future_rows_are_ignored():
    assert compute_streak([won(12), won(11), won(10), won(9)], current_game=10) == 2


def test_streak_input_order_does_not_matter():
    scores = [won(8), won(10), won(9)]
    assert compute_streak(scores, current_game=10) == 3
    assert compute_streak(scores, current_game=10) == 3


def test_streak_empty_history():
    assert compute_streak([], current_game=10) == 0


# ============ Comparisons ============

def test_compare_exact():
    assert compare_exact("TV", "TV") == {"status": CORRECT, "value": "TV"}
    assert compare_exact("Film", "TV") == {"status": INCORRECT, "value": "Film"}


def test_compare_numeric_direction_points_towards_target():
    assert compare_numeric(2010, 2010, 2) == {"status": CORRECT, "value": 2010}
    assert compare_numeric(2008, 2010, 2) == {"status": PARTIAL, "value": 2008, "direction": "higher"}
    assert compare_numeric(2015, 2010, 2) == {"status": INCORRECT, "value": 2015, "direction": "lower"}
    assert compare_numeric(20, 12, 5)["status"] == INCORRECT
    assert compare_numeric(17, 12, 5)["status"] == PARTIAL


def test_compare_numeric_missing_values():
    assert compare_numeric(None, 2010, 2) == {"status": INCORRECT, "value": None}
    assert compare_numeric(None, None, 2) == {"status": CORRECT, "value": None}


def test_compare_sets():
    assert compare_sets(["Action", "Drama"], ["Drama", "Action"]) == {
        "status": CORRECT, "common": ["Action", "Drama"],
    }
    assert compare_sets(["Action", "Comedy"], ["Drama", "Action"]) == {
        "status": PARTIAL, "common": ["Action"],
    }
    assert compare_sets(["Comedy"], ["Drama"]) == {"status": INCORRECT, "common": []}


def test_compare_sets_superset_is_only_partial():
    result = compare_sets(["Action", "Drama", "Comedy"], ["Action", "Drama"])
    assert result["status"] == PARTIAL
    assert result["common"] == ["Action", "Drama"]


def test_compare_anime_fields():
    target = AnimeCard(id=1, title="Monster", year=2004, format="TV", studio="Madhouse",
                       episodes=74, tags=["Thriller", "Drama"])
    guess = AnimeCard(id=2, title="Paranoia Agent", year=2004, format="TV", studio="Madhouse",
                      episodes=13, tags=["Thriller", "Psychological"])

    result = compare_anime(guess, target)

    assert result["entity"] == {"id": 2, "title": "Paranoia Agent", "image": None}
    assert result["is_correct"] is False
    comparison = result["comparison"]
    assert set(comparison) == {"year", "format", "studio", "episodes", "tags"}
    assert comparison["year"]["status"] == CORRECT
    assert comparison["format"]["status"] == CORRECT
    assert comparison["episodes"] == {"status": INCORRECT, "value": 13, "direction": "higher"}
    assert comparison["tags"] == {"status": PARTIAL, "common": ["Thriller"]}


def test_compare_anime_correct_is_identity():
    card = AnimeCard(id=5, title="Mushishi", year=2005)
    assert compare_anime(card, card)["is_correct"] is True


def test_compare_video_game_fields():
    target = VideoGameCard(id=1, title="Hades", year=2020, publisher="Supergiant",
                           developer="Supergiant", platforms=["PC", "Switch"], genres=["Roguelike"])
    guess = VideoGameCard(id=2, title="Bastion", year=2011, publisher="Warner",
                          developer="Supergiant", platforms=["PC"], genres=["Action"])

    comparison = compare_video_game(guess, target)["comparison"]

    assert list(comparison) == ["platforms", "year", "genres", "publisher", "developer"]
    assert comparison["platforms"] == {"status": PARTIAL, "common": ["PC"]}
    assert comparison["year"]["direction"] == "higher"
    assert comparison["genres"]["status"] == INCORRECT
    assert comparison["publisher"]["status"] == INCORRECT
    assert comparison["developer"]["status"] == CORRECT


# ============ Hints ============

def test_hints_are_cumulative_by_attempts():
    tags = ["Ninja", "Action"]

    assert build_hints("Naruto", tags, 2, 10) == {}
    assert build_hints("Naruto", tags, 3, 10) == {"first_letter": "N"}

    at_five = build_hints("Naruto", tags, 5, 10)
    assert at_five == {"first_letter": "N", "tags": ["Ninja", "Action"]}

    at_eight = build_hints("Naruto", tags, 8, 10)
    assert set(at_eight) == {"first_letter", "tags", "masked_title"}
    assert "answer" not in at_eight

    at_ten = build_hints("Naruto", tags, 10, 10)
    assert at_ten["answer"] == "Naruto"
    assert at_ten["masked_title"] == at_eight["masked_title"]


def test_hints_reveal_field_for_video_games():
    hints = build_hints("Hades", ["PC", "Switch"], 5, 10, reveal_field="platforms")
    assert hints["platforms"] == ["PC", "Switch"]
    assert "tags" not in hints


def test_masked_title_keeps_first_and_one_more_character():
    masked = masked_title("Naruto", 10)

    assert len(masked) == len("Naruto")
    assert masked[0] == "N"
    revealed = [c for c in masked[1:] if c != MASK_CHAR]
    assert len(revealed) == 1
    position = masked.index(revealed[0], 1)
    assert "Naruto"[position] == revealed[0]


def test_masked_title_is_stable_for_a_day():
    assert masked_title("Cowboy Bebop", 42) == masked_title("Cowboy Bebop", 42)


def test_masked_title_preserves_non_alphanumerics():
    masked = masked_title("Re:Zero - Starting Life", 7)

    assert masked[2] == ":"
    assert masked[7:10] == " - "
    assert masked[0] == "R"
    hidden = sum(1 for c in masked if c == MASK_CHAR)
    alnum = sum(1 for c in "Re:Zero - Starting Life" if c.isalnum())
    assert hidden == alnum - 2


def test_masked_title_with_nothing_else_to_reveal():
    assert masked_title("A", 3) == "A"
    assert masked_title("A !", 3) == "A !"
    assert masked_title("", 3) == ""
