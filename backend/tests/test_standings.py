from types import SimpleNamespace

import pytest

from league_core.models import DivisionStanding
from league_core.services.standings import (
    StandingLine,
    StandingsPoints,
    build_head_to_head,
    build_standing_line,
    calculate_standings_points,
    matches_remaining,
    rank_standings,
)


@pytest.mark.parametrize(
    "wins, sets_won, matches_played, expected",
    [
        (0, 0, 0, (0, 0, 0)),
        (2, 4, 3, (6, 0, 3)),
        (3, 6, 4, (9, 0, 5)),
        (6, 12, 9, (18, 0, 11)),
        (7, 15, 9, (21, 15, 11)),
        (9, 18, 9, (21, 18, 11)),
    ],
    ids=["empty", "early", "first-milestone", "full-card", "seven-wins", "wins-capped"],
)
def test_standings_points(wins, sets_won, matches_played, expected):
    points = calculate_standings_points(wins, sets_won, matches_played)
    assert (points.win_points, points.set_points, points.completion_bonus) == expected
    assert points.total_points == sum(expected)


def _res(opponent, is_win, sets_won, sets_lost, counted=True, games=(0, 0)):
    return SimpleNamespace(
        opponent_id=opponent,
        is_win=is_win,
        sets_won=sets_won,
        sets_lost=sets_lost,
        games_won=games[0],
        games_lost=games[1],
        counts_for_standings=counted,
    )


def test_head_to_head_ledger():
    ledger = build_head_to_head(
        [_res("p2", True, 2, 0), _res("p2", False, 1, 2), _res("p3", True, 2, 1), _res(None, True, 2, 0)]
    )
    assert ledger == {
        "p2": {"wins": 1, "losses": 1, "sets_won": 3, "sets_lost": 2},
        "p3": {"wins": 1, "losses": 0, "sets_won": 2, "sets_lost": 1},
    }


def test_standing_line_uses_counted_results_for_points():
    results = [
        _res("p2", True, 2, 0, games=(12, 5)),
        _res("p3", True, 2, 1, games=(15, 14)),
        _res("p4", False, 0, 2, counted=False, games=(3, 12)),
    ]
    line = build_standing_line("p1", "Ann", results)
    assert (line.wins, line.losses, line.matches_played) == (2, 1, 3)
    assert (line.counted_wins, line.counted_losses) == (2, 0)
    assert (line.sets_won, line.sets_lost, line.games_won, line.games_lost) == (4, 1, 27, 19)
    assert line.points == StandingsPoints(6, 0, 3)
    assert line.set_win_pct == 80.0
    assert line.game_win_pct == round(27 / 46 * 100, 2)
    assert set(line.head_to_head) == {"p2", "p3", "p4"}


def _line(pid, points, h2h=None, sets=(0, 0), games=(0, 0), name=None):
    line = StandingLine(
        player_id=pid,
        name=name or pid,
        sets_won=sets[0],
        sets_lost=sets[1],
        games_won=games[0],
        games_lost=games[1],
        points=StandingsPoints(points, 0, 0),
        head_to_head=h2h or {},
    )
    return line


def _beat(*opponents):
    return {opp: {"wins": 1, "losses": 0, "sets_won": 2, "sets_lost": 0} for opp in opponents}


def test_points_rank_first():
    ordered = rank_standings([_line("a", 5), _line("b", 9), _line("c", 7)])
    assert [l.player_id for l in ordered] == ["b", "c", "a"]


def test_two_way_tie_broken_by_head_to_head_before_percentages():
    a = _line("a", 10, sets=(10, 2))
    b = _line("b", 10, h2h=_beat("a"), sets=(5, 5))
    assert [l.player_id for l in rank_standings([a, b])] == ["b", "a"]


def test_circular_three_way_tie_falls_through_to_set_percentage():
    a = _line("a", 12, h2h=_beat("b"), sets=(6, 4))
    b = _line("b", 12, h2h=_beat("c"), sets=(7, 3))
    c = _line("c", 12, h2h=_beat("a"), sets=(5, 5))
    assert [l.player_id for l in rank_standings([a, b, c])] == ["b", "a", "c"]


def test_head_to_head_counts_only_wins_inside_the_tied_group():
    # "a" beat an outsider, which must not help inside the tie
    a = _line("a", 12, h2h=_beat("z"), sets=(4, 6))
    b = _line("b", 12, sets=(6, 4))
    z = _line("z", 3)
    assert [l.player_id for l in rank_standings([a, b, z])] == ["b", "a", "z"]


def test_game_percentage_then_name_break_remaining_ties():
    a = _line("a", 8, sets=(4, 4), games=(30, 30), name="zoe")
    b = _line("b", 8, sets=(4, 4), games=(31, 29), name="yan")
    c = _line("c", 8, sets=(4, 4), games=(30, 30), name="Amy")
    assert [l.player_id for l in rank_standings([a, b, c])] == ["b", "c", "a"]


def test_matches_remaining_is_floored_at_zero():
    assert matches_remaining(DivisionStanding(matches_scheduled=9, matches_played=4)) == 5
    assert matches_remaining(DivisionStanding(matches_scheduled=9, matches_played=11)) == 0
