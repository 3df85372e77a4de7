import os, sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
from league_core.exceptions import InvalidMatchDataError
from league_core.scoring import pickleball
from league_core.scoring.outcome import GameScoreInput


def _games(*scores):
    return [GameScoreInput(*score) for score in scores]


def test_games_play_the_role_of_sets():
    outcome = pickleball.parse_outcome(_games((11, 7), (8, 11), (11, 9)))
    assert outcome.winner == "A"
    assert (outcome.sets_a, outcome.sets_b) == (2, 1)
    assert (outcome.games_a, outcome.games_b) == (30, 27)
    assert outcome.margin_for("A") == 3


def test_side_b_can_win():
    outcome = pickleball.parse_outcome(_games((5, 11), (9, 11)))
    assert outcome.winner == "B"
    assert outcome.margin_for("B") == 8


def test_defaults():
    assert pickleball.init_config({}) == {"pointsTo": 11, "winBy": 2, "bestOf": 3}


@pytest.mark.parametrize(
    "games",
    [[], _games((11, 11), (11, 3)), _games((11, 3), (3, 11)), _games((11, "x"), (11, 3))],
    ids=["empty", "tied-game", "no-majority", "non-integer"],
)
def test_rejects_unusable_scores(games):
    with pytest.raises(InvalidMatchDataError):
        pickleball.parse_outcome(games)
