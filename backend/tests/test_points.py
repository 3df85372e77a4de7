import pytest

from league_core.scoring.outcome import MatchOutcome
from league_core.services.points import calculate_match_points, walkover_outcome


@pytest.mark.parametrize(
    "outcome, expected_a, expected_b",
    [
        (MatchOutcome("A", 2, 0, 12, 5), 5, 1),
        (MatchOutcome("A", 2, 1, 16, 15), 5, 2),
        (MatchOutcome("B", 1, 2, 14, 17), 2, 5),
        (MatchOutcome("A", 3, 1, 22, 15), 5, 2),
    ],
    ids=["straight-sets", "three-sets", "side-b-wins", "sets-capped-at-two"],
)
def test_match_points(outcome, expected_a, expected_b):
    points = calculate_match_points(outcome)
    assert points["A"].match_points == expected_a
    assert points["B"].match_points == expected_b


def test_point_breakdown_and_margin():
    points = calculate_match_points(MatchOutcome("A", 2, 1, 16, 15))
    winner, loser = points["A"], points["B"]
    assert (winner.participation_points, winner.sets_won_points, winner.win_bonus_points) == (1, 2, 2)
    assert (loser.participation_points, loser.sets_won_points, loser.win_bonus_points) == (1, 1, 0)
    assert winner.margin == 1 and loser.margin == -1
    assert winner.is_win and not loser.is_win
    assert (loser.sets_won, loser.sets_lost, loser.games_won, loser.games_lost) == (1, 2, 15, 16)


def test_points_always_between_one_and_five():
    for outcome in (
        MatchOutcome("A", 2, 0, 12, 0),
        MatchOutcome("B", 0, 2, 0, 12),
        MatchOutcome("A", 2, 1, 13, 14),
    ):
        for award in calculate_match_points(outcome).values():
            assert 1 <= award.match_points <= 5


def test_walkover_ignores_scores():
    points = calculate_match_points(None, is_walkover=True, walkover_winner_side="B")
    assert points["B"].match_points == 5
    assert points["A"].match_points == 1
    assert points["B"].games_won == 12 and points["B"].games_lost == 0
    assert points["B"].margin == 12


def test_walkover_outcome_custom_games():
    outcome = walkover_outcome("A", games=6)
    assert (outcome.sets_a, outcome.sets_b, outcome.games_a, outcome.games_b) == (2, 0, 6, 0)


def test_played_match_needs_an_outcome():
    with pytest.raises(ValueError):
        calculate_match_points(None)
