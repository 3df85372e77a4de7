"""Builders for league fixtures shared by the database-backed tests."""

import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from league_core.models import (
    GAME_MODE_DOUBLES,
    GAME_MODE_SINGLES,
    MATCH_STATUS_COMPLETED,
    Division,
    GameScore,
    Match,
    MatchParticipant,
    Player,
    Season,
    SetScore,
)

SEASON_ID = "s1"
DIVISION_ID = "d1"
BASE_DATE = datetime(2024, 3, 1, 18, 0)


async def seed_league(
    session,
    player_ids: Iterable[str],
    *,
    season_id: str = SEASON_ID,
    division_id: Optional[str] = DIVISION_ID,
    sport_id: str = "tennis",
    matches_scheduled: Optional[int] = None,
) -> None:
    session.add(Season(id=season_id, name=f"Season {season_id}"))
    if division_id:
        session.add(
            Division(
                id=division_id,
                season_id=season_id,
                name=f"Division {division_id}",
                sport_id=sport_id,
                matches_scheduled=matches_scheduled,
            )
        )
    for pid in player_ids:
        session.add(Player(id=pid, name=pid.upper()))
    await session.commit()


def build_match(
    side_a: Sequence[str],
    side_b: Sequence[str],
    *,
    sets: Optional[Sequence[tuple]] = None,
    games: Optional[Sequence[tuple]] = None,
    sport_id: str = "tennis",
    match_id: Optional[str] = None,
    division_id: Optional[str] = DIVISION_ID,
    season_id: Optional[str] = SEASON_ID,
    day: int = 0,
    status: str = MATCH_STATUS_COMPLETED,
    walkover_winner: Optional[str] = None,
    final_set_format: str = "match_tiebreak",
) -> Match:
    """Build a match with participants and scores.

    ``sets`` entries are ``(games_a, games_b)`` or
    ``(games_a, games_b, tiebreak_a, tiebreak_b)``; ``games`` entries are
    pickleball ``(points_a, points_b)``.
    """

    match_id = match_id or uuid.uuid4().hex
    played_at = BASE_DATE + timedelta(days=day)
    match = Match(
        id=match_id,
        sport_id=sport_id,
        game_mode=GAME_MODE_DOUBLES if len(side_a) == 2 else GAME_MODE_SINGLES,
        status=status,
        division_id=division_id,
        season_id=season_id,
        final_set_format=final_set_format,
        is_walkover=walkover_winner is not None,
        walkover_winner_side=walkover_winner,
        played_at=played_at,
        completed_at=played_at + timedelta(hours=2),
    )
    position = 0
    for team, players in (("A", side_a), ("B", side_b)):
        for pid in players:
            match.participants.append(
                MatchParticipant(
                    id=uuid.uuid4().hex, player_id=pid, team=team, position=position
                )
            )
            position += 1
    for number, entry in enumerate(sets or [], start=1):
        ga, gb, *tiebreak = entry
        ta, tb = tiebreak if tiebreak else (None, None)
        match.set_scores.append(
            SetScore(
                id=uuid.uuid4().hex,
                set_number=number,
                games_a=ga,
                games_b=gb,
                tiebreak_a=ta,
                tiebreak_b=tb,
            )
        )
    for number, (pa, pb) in enumerate(games or [], start=1):
        match.game_scores.append(
            GameScore(id=uuid.uuid4().hex, game_number=number, points_a=pa, points_b=pb)
        )
    return match


async def add_match(session, *args, **kwargs) -> Match:
    match = build_match(*args, **kwargs)
    session.add(match)
    await session.commit()
    return match
