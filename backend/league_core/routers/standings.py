from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import DivisionNotFound
from ..models import Division, Player
from ..schemas import (
    BestNCompositionOut,
    BestNResultOut,
    HeadToHeadOut,
    StandingRowOut,
    StandingsOut,
)
from ..services.best_n import best_n_composition
from ..services.standings import get_division_standings, matches_remaining

router = APIRouter(prefix="/standings", tags=["standings"])


async def _require_division(session: AsyncSession, division_id: str) -> Division:
    division = await session.get(Division, division_id)
    if division is None:
        raise DivisionNotFound(division_id)
    return division


# GET /api/v0/standings/{division_id}
@router.get("/{division_id}", response_model=StandingsOut)
async def division_standings(
    division_id: str, session: AsyncSession = Depends(get_session)
):
    division = await _require_division(session, division_id)
    rows = await get_division_standings(session, division_id)
    names = {}
    if rows:
        names = dict(
            (
                await session.execute(
                    select(Player.id, Player.name).where(
                        Player.id.in_([r.player_id for r in rows])
                    )
                )
            ).all()
        )

    standings = [
        StandingRowOut(
            playerId=row.player_id,
            playerName=names.get(row.player_id),
            rank=row.rank,
            totalPoints=row.total_points,
            winPoints=row.win_points,
            setPoints=row.set_points,
            completionBonus=row.completion_bonus,
            wins=row.wins,
            losses=row.losses,
            record=f"{row.wins}W-{row.losses}L",
            matchesPlayed=row.matches_played,
            matchesScheduled=row.matches_scheduled,
            matchesRemaining=matches_remaining(row),
            countedWins=row.counted_wins,
            countedLosses=row.counted_losses,
            setsWon=row.sets_won,
            setsLost=row.sets_lost,
            setDifferential=row.set_differential,
            gamesWon=row.games_won,
            gamesLost=row.games_lost,
            setWinPct=row.set_win_pct,
            gameWinPct=row.game_win_pct,
            headToHead={
                opponent_id: HeadToHeadOut(
                    wins=record.get("wins", 0),
                    losses=record.get("losses", 0),
                    setsWon=record.get("sets_won", 0),
                    setsLost=record.get("sets_lost", 0),
                )
                for opponent_id, record in (row.head_to_head or {}).items()
            },
            lastCalculatedAt=row.last_calculated_at,
        )
        for row in rows
    ]
    return StandingsOut(
        divisionId=division_id, seasonId=division.season_id, standings=standings
    )


# GET /api/v0/standings/{division_id}/best-n/{player_id}
@router.get("/{division_id}/best-n/{player_id}", response_model=BestNCompositionOut)
async def player_best_n(
    division_id: str, player_id: str, session: AsyncSession = Depends(get_session)
):
    division = await _require_division(session, division_id)
    composition = await best_n_composition(
        session, player_id, division_id, division.season_id
    )
    return BestNCompositionOut(
        playerId=composition.player_id,
        divisionId=composition.division_id,
        seasonId=composition.season_id,
        totalMatches=composition.total_matches,
        record=composition.record,
        countedWins=composition.counted_wins,
        countedLosses=composition.counted_losses,
        countedSummary=composition.counted_summary,
        totalPoints=composition.total_points,
        results=[
            BestNResultOut(
                matchId=entry.match_id,
                opponentId=entry.opponent_id,
                opponentName=entry.opponent_name,
                isWin=entry.is_win,
                matchPoints=entry.match_points,
                margin=entry.margin,
                datePlayed=entry.date_played,
                sequence=entry.sequence,
                counted=entry.counted,
            )
            for entry in composition.results
        ],
    )
