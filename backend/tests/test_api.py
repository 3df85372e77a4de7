import asyncio

import pytest
from fastapi.testclient import TestClient

from league_core.db import get_session
from league_core.locks import DivisionLocks
from league_core.main import app
from league_core.services.match_events import on_match_completed
from league_factories import add_match, seed_league

PREFIX = "/api/v0"


@pytest.fixture
def maker(file_db):
    async def override_session():
        async with file_db() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    yield file_db
    app.dependency_overrides.pop(get_session, None)


@pytest.fixture
def client(maker):
    with TestClient(app) as client:
        yield client


def _seed(maker, *sets_by_day):
    async def go():
        async with maker() as session:
            await seed_league(session, ["p1", "p2"])
            ids = []
            for day, sets in enumerate(sets_by_day):
                match = await add_match(session, ["p1"], ["p2"], sets=sets, day=day)
                await on_match_completed(session, match.id, locks=DivisionLocks())
                ids.append(match.id)
            return ids

    return asyncio.run(go())


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/api/healthz").json() == {"status": "ok"}


def test_unknown_rating_is_a_problem_document(client):
    resp = client.get(f"{PREFIX}/ratings/nobody", params={"seasonId": "s1"})
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["code"] == "rating_not_found"
    assert "season 's1'" in body["detail"]


def test_rating_snapshot_includes_confidence_interval(maker, client):
    _seed(maker, [(6, 4), (6, 4)])
    resp = client.get(f"{PREFIX}/ratings/p1", params={"seasonId": "s1", "sport": "Tennis"})
    assert resp.status_code == 200
    (snapshot,) = resp.json()["ratings"]
    assert snapshot["rating"] == pytest.approx(1528.0)
    assert snapshot["confidenceLow"] == pytest.approx(snapshot["rating"] - 2 * snapshot["rd"])
    assert snapshot["confidenceHigh"] > snapshot["rating"]
    assert snapshot["isProvisional"] is True
    assert snapshot["matchesPlayed"] == 1

    resp = client.get(f"{PREFIX}/ratings/p1", params={"gameMode": "doubles"})
    assert resp.status_code == 404


def test_standings_table(maker, client):
    _seed(maker, [(6, 4), (6, 4)], [(4, 6), (6, 3), (10, 6)])
    resp = client.get(f"{PREFIX}/standings/d1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["seasonId"] == "s1"
    leader, second = body["standings"]
    assert (leader["playerId"], leader["playerName"], leader["rank"]) == ("p1", "P1", 1)
    assert leader["record"] == "2W-0L"
    assert leader["totalPoints"] == 8
    assert leader["matchesRemaining"] == 7
    assert leader["headToHead"]["p2"] == {"wins": 2, "losses": 0, "setsWon": 4, "setsLost": 1}
    assert second["setWinPct"] == 20.0

    resp = client.get(f"{PREFIX}/standings/nope")
    assert resp.status_code == 404
    assert resp.json()["code"] == "division_not_found"


def test_best_n_composition(maker, client):
    _seed(maker, [(6, 4), (6, 4)], [(4, 6), (4, 6)])
    body = client.get(f"{PREFIX}/standings/d1/best-n/p2").json()
    assert body["record"] == "1W-1L"
    assert body["countedSummary"] == "1W + 1L"
    assert [r["isWin"] for r in body["results"]] == [True, False]
    assert body["results"][0]["opponentName"] == "P1"


def test_admin_recalculations_answer_with_completion_signal(maker, client):
    _seed(maker, [(6, 4), (6, 4)], [(4, 6), (4, 6)])
    resp = client.post(f"{PREFIX}/admin/divisions/d1/standings/recalculate")
    assert resp.json() == {"status": "completed", "processed": 2, "failed": 0}

    resp = client.post(f"{PREFIX}/admin/divisions/d1/best-n/recalculate", json={"size": 1})
    assert resp.json() == {"status": "completed", "processed": 2, "failed": 0}
    table = client.get(f"{PREFIX}/standings/d1").json()["standings"]
    assert all(row["countedWins"] + row["countedLosses"] == 1 for row in table)

    resp = client.post(f"{PREFIX}/admin/divisions/d1/best-n/recalculate", json={"size": 0})
    assert resp.status_code == 422
    resp = client.post(f"{PREFIX}/admin/divisions/nope/standings/recalculate")
    assert resp.status_code == 404

    resp = client.post(
        f"{PREFIX}/admin/players/p1/ratings/recalculate", json={"seasonId": "s1"}
    )
    assert resp.json() == {"status": "completed", "processed": 2, "failed": 0}

    resp = client.post(f"{PREFIX}/admin/ratings/inactivity")
    assert resp.json()["status"] == "completed"


def test_admin_rating_adjustment(maker, client):
    _seed(maker, [(6, 4), (6, 4)])
    resp = client.post(
        f"{PREFIX}/admin/players/p2/ratings/adjust",
        json={"seasonId": "s1", "sportId": "tennis", "rating": 1610, "note": "coach review"},
    )
    assert resp.status_code == 200
    assert resp.json()["rating"] == pytest.approx(1610.0)

    resp = client.post(
        f"{PREFIX}/admin/players/p2/ratings/adjust",
        json={"seasonId": "s1", "sportId": "tennis", "rating": 1610, "gameMode": "mixed"},
    )
    assert resp.status_code == 422


def test_admin_reverse_match(maker, client):
    (match_id,) = _seed(maker, [(6, 4), (6, 4)])
    resp = client.post(f"{PREFIX}/admin/matches/{match_id}/reverse")
    assert resp.status_code == 200
    assert resp.json() == {
        "matchId": match_id,
        "ratingsReversed": 2,
        "resultsDeleted": 2,
        "standingsRebuilt": True,
    }
    snapshot = client.get(f"{PREFIX}/ratings/p1").json()["ratings"][0]
    assert snapshot["rating"] == pytest.approx(1500.0)
    assert snapshot["matchesPlayed"] == 0

    resp = client.post(f"{PREFIX}/admin/matches/missing/reverse")
    assert resp.status_code == 404
