import pytest

from league_core.exceptions import InvalidMatchDataError
from league_core.scoring.outcome import GameScoreInput, SetScoreInput
from league_core.services.validation import (
    validate_league_game_scores,
    validate_league_set_scores,
    validate_participants_for_sport,
    validate_rating_sets,
    validate_set_scores,
)


def test_accepts_valid_sets() -> None:
    validate_set_scores([{"A": 21, "B": 18}])
    validate_set_scores([{"A": 11, "B": 9}, {"A": 9, "B": 11}])


@pytest.mark.parametrize(
    "sets, msg",
    [
        ([], "At least one set"),                  # empty list
        ([{"A": 10, "B": 10}], "cannot be a tie"), # tie
        ([{"A": -1, "B": 0}], ">= 0"),             # negative
        ([{"A": "x", "B": 0}], "integer"),         # non-integer
        ([{"A": True, "B": 0}], "boolean"),        # bool sneaking in as int
        ([{"A": 1}], "include both A and B"),      # missing key
        ("not a list", "At least one set"),        # wrong top-level type
        ([42], "must be an object"),               # non-dict set entry
    ],
    ids=[
        "empty",
        "tie",
        "negative",
        "non-integer",
        "boolean",
        "missing-key",
        "not-a-list",
        "non-dict-entry",
    ],
)
def test_rejects_invalid_sets(sets, msg) -> None:
    with pytest.raises(InvalidMatchDataError) as exc:
        validate_set_scores(sets)  # type: ignore[arg-type]
    assert msg.lower() in str(exc.value).lower()


def test_rejects_too_many_sets() -> None:
    with pytest.raises(InvalidMatchDataError):
        validate_set_scores([{"A": 11, "B": 0}] * 6)


@pytest.mark.parametrize(
    "a, b",
    [(11, 0), (11, 9), (12, 10), (15, 10), (21, 19), (9, 11)],
    ids=["shutout", "two-clear", "extended", "to-fifteen", "to-twenty-one", "loser-first"],
)
def test_pickleball_rating_sets_accepted(a, b) -> None:
    assert validate_rating_sets("pickleball", [{"A": a, "B": b}]) == [{"A": a, "B": b}]


@pytest.mark.parametrize(
    "sets",
    [
        [{"A": 10, "B": 10}],
        [{"A": 11, "B": 10}],
        [{"A": -1, "B": 11}],
        [],
        [{"A": 11, "B": 0}] * 6,
        [{"A": 0, "B": 0}],
        [{"A": 51, "B": 49}],
        [{"A": 14, "B": 10}],
        [{"A": 9, "B": 3}],
    ],
    ids=["tie", "one-clear", "negative", "empty", "six-sets", "zero-zero", "unrealistic",
         "bad-extension", "short-of-target"],
)
def test_pickleball_rating_sets_rejected(sets) -> None:
    with pytest.raises(InvalidMatchDataError):
        validate_rating_sets("pickleball", sets)


def test_tennis_rating_sets_only_get_generic_checks() -> None:
    assert validate_rating_sets("tennis", [{"A": 6, "B": 4}, {"A": 3, "B": 6}, {"A": 10, "B": 7}])


def test_rating_sets_reject_unknown_sport() -> None:
    with pytest.raises(InvalidMatchDataError):
        validate_rating_sets("squash", [{"A": 6, "B": 4}])


def test_participants_must_not_repeat_across_sides() -> None:
    with pytest.raises(InvalidMatchDataError) as exc:
        validate_participants_for_sport("padel", {"A": ["p1", "p2"], "B": ["p2", "p3"]})
    assert "both sides" in str(exc.value)


def test_participants_must_match_game_mode() -> None:
    validate_participants_for_sport("tennis", {"A": ["p1"], "B": ["p2"]}, "singles")
    with pytest.raises(InvalidMatchDataError):
        validate_participants_for_sport("tennis", {"A": ["p1"], "B": ["p2", "p3"]}, "doubles")


def _sets(*scores):
    return [SetScoreInput(*score) for score in scores]


@pytest.mark.parametrize(
    "sets, final_set_format",
    [
        (_sets((6, 4), (6, 3)), None),
        (_sets((7, 6, 7, 5), (6, 7, 4, 7), (10, 8)), None),
        (_sets((4, 6), (7, 5), (1, 0, 10, 6)), "match_tiebreak"),
        (_sets((6, 4), (4, 6), (6, 6, 10, 8)), "full_set"),
        (_sets((6, 4), (4, 6), (7, 5)), "full_set"),
    ],
    ids=["straight", "tiebreaks-and-mtb", "mtb-in-tiebreak-fields", "full-set-mtb", "full-set"],
)
def test_league_set_scores_accepted(sets, final_set_format) -> None:
    validate_league_set_scores(sets, final_set_format)


@pytest.mark.parametrize(
    "sets, msg",
    [
        (_sets((6, 4)), "at least 2 sets"),
        (_sets((6, 4), (6, 3), (6, 2)), "won 2-0"),
        (_sets((6, 4), (3, 6)), "same side must win both"),
        (_sets((6, 5), (6, 3)), "6-5"),
        (_sets((7, 6), (6, 3)), "requires tiebreak"),
        (_sets((7, 6, 7, 6), (6, 3)), "won by 2"),
        (_sets((7, 6, 5, 7), (6, 3)), "side that took the set"),
        (_sets((6, 4, 7, 5), (6, 3)), "only allowed for 7-6"),
        (_sets((6, 4), (4, 6), (10, 9)), "won by 2"),
        (_sets((6, 4), (4, 6), (8, 6)), "at least 10"),
    ],
    ids=["one-set", "third-after-2-0", "split-two", "six-five", "missing-tiebreak",
         "tiebreak-by-one", "tiebreak-wrong-side", "stray-tiebreak", "mtb-by-one", "mtb-short"],
)
def test_league_set_scores_rejected(sets, msg) -> None:
    with pytest.raises(InvalidMatchDataError) as exc:
        validate_league_set_scores(sets, "match_tiebreak")
    assert msg.lower() in str(exc.value).lower()


def test_full_set_decider_at_six_all_needs_match_tiebreak() -> None:
    with pytest.raises(InvalidMatchDataError) as exc:
        validate_league_set_scores(_sets((6, 4), (4, 6), (6, 6)), "full_set")
    assert "match tiebreak" in str(exc.value)


@pytest.mark.parametrize(
    "games",
    [
        [(15, 10), (15, 8)],
        [(17, 15), (15, 13)],
        [(10, 15), (15, 12), (22, 20)],
        [(15, 0), (19, 11)],
    ],
    ids=["to-fifteen", "extended", "three-games", "past-target-by-more"],
)
def test_league_game_scores_accepted(games) -> None:
    validate_league_game_scores([GameScoreInput(a, b) for a, b in games])


@pytest.mark.parametrize(
    "games, msg",
    [
        ([(15, 14), (15, 5)], "win by 2"),
        ([(11, 5), (15, 5)], "at least 15"),
        ([(15, 5), (15, 5), (15, 5)], "won 2-0"),
        ([(15, 5)], "at least 2 games"),
        ([(-1, 15), (15, 5)], "negative"),
    ],
    ids=["one-clear", "short", "third-after-2-0", "single-game", "negative"],
)
def test_league_game_scores_rejected(games, msg) -> None:
    with pytest.raises(InvalidMatchDataError) as exc:
        validate_league_game_scores([GameScoreInput(a, b) for a, b in games])
    assert msg.lower() in str(exc.value).lower()


def test_league_game_target_can_be_lowered() -> None:
    games = [GameScoreInput(11, 5), GameScoreInput(11, 9)]
    validate_league_game_scores(games, {"pointsTo": 11})
    with pytest.raises(InvalidMatchDataError):
        validate_league_game_scores(games)


@pytest.mark.parametrize(
    "deciding",
    [(1, 0, 8, 10), (0, 1, 10, 7)],
    ids=["games-favour-a", "games-favour-b"],
)
def test_match_tiebreak_games_must_agree_with_its_points(deciding) -> None:
    with pytest.raises(InvalidMatchDataError) as exc:
        validate_league_set_scores(_sets((6, 4), (4, 6), deciding), "match_tiebreak")
    assert "different winners" in str(exc.value)


def test_match_tiebreak_is_won_on_its_points() -> None:
    # nominal games level, points decide; B takes set 3 and the match
    validate_league_set_scores(_sets((6, 4), (4, 6), (1, 1, 8, 10)), "match_tiebreak")
    validate_league_set_scores(_sets((6, 4), (4, 6), (0, 1, 8, 10)), "match_tiebreak")
