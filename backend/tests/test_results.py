import logging

import pytest
from sqlalchemy import select

from league_core.exceptions import MatchNotCompleted, ResultsAlreadyExist
from league_core.models import MatchParticipant, MatchResult
from league_core.services.results import (
    assign_sides,
    delete_match_results,
    materialize_match_results,
)
from league_factories import BASE_DATE, add_match, build_match, seed_league


async def _results(session, match_id):
    return (
        await session.execute(
            select(MatchResult)
            .where(MatchResult.match_id == match_id)
            .order_by(MatchResult.player_id)
        )
    ).scalars().all()


def test_singles_results_carry_points_and_margin(run_db):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            match = await add_match(session, ["p1"], ["p2"], sets=[(6, 4), (3, 6), (10, 7)])
            created = await materialize_match_results(session, match.id)
            return len(created), await _results(session, match.id)

    created, (r1, r2) = run_db(scenario)
    assert created == 2
    assert (r1.is_win, r1.match_points, r1.margin, r1.opponent_id) == (True, 5, 2, "p2")
    assert (r2.is_win, r2.match_points, r2.margin, r2.opponent_id) == (False, 2, -2, "p1")
    assert (r1.sets_won, r1.sets_lost, r1.games_won, r1.games_lost) == (2, 1, 19, 17)
    assert not r1.counts_for_standings and r1.result_sequence is None
    assert r1.date_played == BASE_DATE
    assert r1.division_id == "d1" and r1.season_id == "s1"


def test_materialize_is_idempotent_and_strict_mode_raises(run_db):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            match = await add_match(session, ["p1"], ["p2"], sets=[(6, 4), (6, 4)])
            await materialize_match_results(session, match.id)
            second = await materialize_match_results(session, match.id)
            with pytest.raises(ResultsAlreadyExist):
                await materialize_match_results(session, match.id, strict=True)
            return second, len(await _results(session, match.id))

    second, total = run_db(scenario)
    assert second == []
    assert total == 2


def test_match_without_division_creates_nothing(run_db, caplog):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            match = await add_match(
                session, ["p1"], ["p2"], sets=[(6, 4), (6, 4)], division_id=None
            )
            created = await materialize_match_results(session, match.id)
            return created, len(await _results(session, match.id))

    with caplog.at_level(logging.WARNING):
        created, total = run_db(scenario)
    assert created == [] and total == 0
    assert "no division or season" in caplog.text


def test_incomplete_match_is_rejected(run_db):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            match = await add_match(
                session, ["p1"], ["p2"], sets=[(6, 4)], status="scheduled"
            )
            with pytest.raises(MatchNotCompleted):
                await materialize_match_results(session, match.id)

    run_db(scenario)


def test_doubles_results_use_first_opposing_player(run_db):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2", "p3", "p4"], sport_id="padel")
            match = await add_match(
                session, ["p1", "p2"], ["p3", "p4"], sets=[(2, 6), (6, 7, 3, 7)], sport_id="padel"
            )
            await materialize_match_results(session, match.id)
            return await _results(session, match.id)

    rows = run_db(scenario)
    by_player = {r.player_id: r for r in rows}
    assert [by_player[p].opponent_id for p in ("p1", "p2")] == ["p3", "p3"]
    assert [by_player[p].opponent_id for p in ("p3", "p4")] == ["p1", "p1"]
    assert all(by_player[p].is_win for p in ("p3", "p4"))
    assert by_player["p3"].match_points == 5 and by_player["p1"].match_points == 1
    assert all(r.game_mode == "doubles" for r in rows)


def test_inconsistent_team_tags_fall_back_to_creation_order(caplog):
    match = build_match(["p1", "p2"], ["p3", "p4"], sets=[(6, 1), (6, 1)])
    for participant in match.participants:
        participant.team = "A"
    with caplog.at_level(logging.WARNING):
        sides = assign_sides(match)
    assert [p.player_id for p in sides["A"]] == ["p1", "p2"]
    assert [p.player_id for p in sides["B"]] == ["p3", "p4"]
    assert "inconsistent team tags" in caplog.text


def test_singles_sides_follow_creation_order():
    match = build_match(["p2"], ["p1"], sets=[(6, 1), (6, 1)])
    match.participants.reverse()
    for participant in match.participants:
        participant.team = None
    sides = assign_sides(match)
    assert [p.player_id for p in sides["A"]] == ["p2"]


def test_walkover_credits_placeholder_score(run_db):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            match = await add_match(session, ["p1"], ["p2"], walkover_winner="B")
            await materialize_match_results(session, match.id)
            return await _results(session, match.id)

    loser, winner = run_db(scenario)
    assert (winner.is_win, winner.match_points, winner.games_won, winner.games_lost) == (True, 5, 12, 0)
    assert (loser.is_win, loser.match_points, loser.sets_won, loser.margin) == (False, 1, 0, -12)


def test_delete_results_reports_affected_players(run_db):
    async def scenario(maker):
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            match = await add_match(session, ["p1"], ["p2"], sets=[(6, 4), (6, 4)])
            await materialize_match_results(session, match.id)
            affected = await delete_match_results(session, match.id)
            return sorted(affected), len(await _results(session, match.id))

    assert run_db(scenario) == (["p1", "p2"], 0)
