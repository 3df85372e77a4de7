from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import RatingNotFound
from ..models import PlayerRating
from ..schemas import RatingListOut, RatingSnapshotOut
from ..scoring import normalize_sport
from ..services.dmr import confidence_interval

# Resource-only prefix; no /api or /api/v0 here
router = APIRouter(prefix="/ratings", tags=["ratings"])


def rating_snapshot(rating: PlayerRating) -> RatingSnapshotOut:
    low, high = confidence_interval(rating.rating, rating.rd)
    return RatingSnapshotOut(
        playerId=rating.player_id,
        seasonId=rating.season_id,
        sportId=rating.sport_id,
        gameMode=rating.game_mode,
        rating=rating.rating,
        rd=rating.rd,
        volatility=rating.volatility,
        confidenceLow=low,
        confidenceHigh=high,
        isProvisional=bool(rating.is_provisional),
        matchesPlayed=rating.matches_played or 0,
        peakRating=rating.peak_rating,
        peakRatingAt=rating.peak_rating_at,
        lowestRating=rating.lowest_rating,
        lastUpdated=rating.last_updated,
    )


# GET /api/v0/ratings/{player_id}?seasonId=...&sport=pickleball&gameMode=singles
@router.get("/{player_id}", response_model=RatingListOut)
async def get_player_ratings(
    player_id: str,
    season_id: Optional[str] = Query(None, alias="seasonId"),
    sport: Optional[str] = Query(None, description="Sport id, e.g. 'tennis'"),
    game_mode: Optional[str] = Query(None, alias="gameMode"),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(PlayerRating).where(PlayerRating.player_id == player_id)
    if season_id:
        stmt = stmt.where(PlayerRating.season_id == season_id)
    if sport:
        stmt = stmt.where(PlayerRating.sport_id == normalize_sport(sport))
    if game_mode:
        stmt = stmt.where(PlayerRating.game_mode == game_mode)
    stmt = stmt.order_by(
        PlayerRating.season_id, PlayerRating.sport_id, PlayerRating.game_mode
    )
    ratings = (await session.execute(stmt)).scalars().all()
    if not ratings:
        raise RatingNotFound(player_id, season_id)
    return RatingListOut(
        playerId=player_id, ratings=[rating_snapshot(r) for r in ratings]
    )
