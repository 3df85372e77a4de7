"""Operator commands: recalculations, inactivity sweep, reversals.

Each command runs to completion before answering; sweeps answer with the
``{status, processed, failed}`` completion signal.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import DivisionNotFound
from ..locks import division_locks
from ..models import Division
from ..schemas import (
    BestNRecalculateRequest,
    CompletionSignalOut,
    InactivityRequest,
    RatingAdjustRequest,
    RatingRecalculateRequest,
    RatingSnapshotOut,
    ReversalOut,
)
from ..services.best_n import recalculate_division_best_n
from ..services.dmr import DMRRatingService, adjust_for_inactivity
from ..services.match_events import on_match_voided
from ..services.recalculation import recalculate_player_ratings
from ..services.standings import recalculate_division_standings
from ..services.summary import SweepSummary
from .ratings import rating_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


async def _require_division(session: AsyncSession, division_id: str) -> Division:
    division = await session.get(Division, division_id)
    if division is None:
        raise DivisionNotFound(division_id)
    return division


# POST /api/v0/admin/divisions/{division_id}/standings/recalculate
@router.post(
    "/divisions/{division_id}/standings/recalculate",
    response_model=CompletionSignalOut,
)
async def recalculate_standings(
    division_id: str, session: AsyncSession = Depends(get_session)
):
    await _require_division(session, division_id)
    rows = await recalculate_division_standings(
        session, division_id, locks=division_locks
    )
    return SweepSummary(processed=len(rows)).as_dict()


# POST /api/v0/admin/divisions/{division_id}/best-n/recalculate
@router.post(
    "/divisions/{division_id}/best-n/recalculate",
    response_model=CompletionSignalOut,
)
async def recalculate_best_n(
    division_id: str,
    body: Optional[BestNRecalculateRequest] = Body(default=None),
    session: AsyncSession = Depends(get_session),
):
    division = await _require_division(session, division_id)
    body = body or BestNRecalculateRequest()
    summary = await recalculate_division_best_n(
        session,
        division_id,
        division.season_id,
        size=body.size,
        policy=body.policy,
        locks=division_locks,
    )
    # counted flags changed, so the table has to follow
    await recalculate_division_standings(session, division_id, locks=division_locks)
    return summary.as_dict()


# POST /api/v0/admin/players/{player_id}/ratings/recalculate
@router.post(
    "/players/{player_id}/ratings/recalculate", response_model=CompletionSignalOut
)
async def recalculate_ratings(
    player_id: str,
    body: RatingRecalculateRequest,
    session: AsyncSession = Depends(get_session),
):
    summary = await recalculate_player_ratings(
        session, player_id, body.season_id, sport_id=body.sport_id
    )
    return summary.as_dict()


# POST /api/v0/admin/players/{player_id}/ratings/adjust
@router.post("/players/{player_id}/ratings/adjust", response_model=RatingSnapshotOut)
async def adjust_rating(
    player_id: str,
    body: RatingAdjustRequest,
    session: AsyncSession = Depends(get_session),
):
    service = DMRRatingService(session, body.sport_id)
    update = await service.adjust_rating(
        player_id, body.season_id, body.game_mode, body.rating, note=body.note
    )
    rating = await service.get_rating(player_id, body.season_id, body.game_mode)
    logger.info("admin adjusted rating %s by %+.1f", update.rating_id, update.delta)
    return rating_snapshot(rating)


# POST /api/v0/admin/ratings/inactivity
@router.post("/ratings/inactivity", response_model=CompletionSignalOut)
async def run_inactivity_adjustment(
    body: Optional[InactivityRequest] = Body(default=None),
    session: AsyncSession = Depends(get_session),
):
    body = body or InactivityRequest()
    summary = await adjust_for_inactivity(
        session, season_id=body.season_id, sport_id=body.sport_id
    )
    return summary.as_dict()


# POST /api/v0/admin/matches/{match_id}/reverse
@router.post("/matches/{match_id}/reverse", response_model=ReversalOut)
async def reverse_match(match_id: str, session: AsyncSession = Depends(get_session)):
    report = await on_match_voided(session, match_id, locks=division_locks)
    return ReversalOut(
        matchId=match_id,
        ratingsReversed=report.ratings_reversed,
        resultsDeleted=report.results_deleted,
        standingsRebuilt=report.standings_rebuilt,
    )
