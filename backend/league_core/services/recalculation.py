"""Administrative rebuilds of ratings.

A player's season is recalculated by resetting their ratings to the default
placement and replaying their completed matches in order. Only that
player's ratings move; opponents are read as they currently stand.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import DomainException, InvalidMatchDataError
from ..models import (
    MATCH_STATUS_COMPLETED,
    REASON_MATCH_LOSS,
    REASON_MATCH_WIN,
    REASON_RECALCULATION,
    Match,
    MatchParticipant,
    PlayerRating,
    RatingHistory,
)
from ..scoring import normalize_sport
from ..time_utils import utcnow
from ..unit_of_work import UnitOfWork
from .dmr import DMRConfig, rate_match
from .summary import SweepSummary

logger = logging.getLogger(__name__)

RECALCULATED_NOTE = "[RECALCULATED]"


async def _reset_ratings(
    session: AsyncSession,
    player_id: str,
    season_id: str,
    sport_id: Optional[str],
    cfg: DMRConfig,
) -> int:
    stmt = select(PlayerRating).where(
        PlayerRating.player_id == player_id, PlayerRating.season_id == season_id
    )
    if sport_id:
        stmt = stmt.where(PlayerRating.sport_id == sport_id)
    ratings = (await session.execute(stmt)).scalars().all()

    now = utcnow()
    for rating in ratings:
        superseded = (
            await session.execute(
                select(RatingHistory).where(
                    RatingHistory.player_rating_id == rating.id,
                    RatingHistory.reason.in_([REASON_MATCH_WIN, REASON_MATCH_LOSS]),
                    RatingHistory.reversed.is_(False),
                )
            )
        ).scalars().all()
        for entry in superseded:
            entry.reversed = True
            entry.reversed_at = now
            entry.notes = f"{entry.notes or ''} {RECALCULATED_NOTE}".strip()

        session.add(
            RatingHistory(
                id=uuid.uuid4().hex,
                player_rating_id=rating.id,
                reason=REASON_RECALCULATION,
                rating_before=rating.rating,
                rating_after=cfg.default_rating,
                delta=cfg.default_rating - rating.rating,
                rd_before=rating.rd,
                rd_after=cfg.default_rd,
                volatility_before=rating.volatility,
                volatility_after=cfg.default_volatility,
                matches_played_before=rating.matches_played,
                notes="Reset before recalculation",
                created_at=now,
            )
        )
        rating.rating = cfg.default_rating
        rating.rd = cfg.default_rd
        rating.volatility = cfg.default_volatility
        rating.matches_played = 0
        rating.is_provisional = True
        rating.peak_rating = cfg.default_rating
        rating.peak_rating_at = now
        rating.lowest_rating = cfg.default_rating
        rating.last_match_id = None
        rating.last_updated = now
    return len(ratings)


async def player_season_matches(
    session: AsyncSession, player_id: str, season_id: str, sport_id: Optional[str] = None
) -> List[str]:
    """Ids of the player's completed matches in a season, oldest first."""

    stmt = (
        select(Match.id)
        .join(MatchParticipant, MatchParticipant.match_id == Match.id)
        .where(
            MatchParticipant.player_id == player_id,
            Match.season_id == season_id,
            Match.status == MATCH_STATUS_COMPLETED,
        )
        .order_by(Match.completed_at, Match.played_at, Match.id)
    )
    if sport_id:
        stmt = stmt.where(Match.sport_id == sport_id)
    return list(dict.fromkeys((await session.execute(stmt)).scalars().all()))


async def recalculate_player_ratings(
    session: AsyncSession,
    player_id: str,
    season_id: str,
    *,
    sport_id: Optional[str] = None,
    config: Optional[DMRConfig] = None,
) -> SweepSummary:
    """Reset a player's season ratings and replay every completed match.

    Matches that fail to replay are logged and counted; the replay carries
    on with the next one.
    """

    cfg = config or DMRConfig()
    sport = normalize_sport(sport_id) if sport_id else None

    async with UnitOfWork(session):
        reset = await _reset_ratings(session, player_id, season_id, sport, cfg)
    match_ids = await player_season_matches(session, player_id, season_id, sport)
    logger.info(
        "recalculating player %s in season %s: %d ratings reset, %d matches to replay",
        player_id,
        season_id,
        reset,
        len(match_ids),
    )

    summary = SweepSummary()
    for match_id in match_ids:
        try:
            async with UnitOfWork(session):
                await rate_match(session, match_id, config=cfg, players={player_id})
            summary.processed += 1
        except (SQLAlchemyError, DomainException, InvalidMatchDataError):
            logger.error(
                "replay of match %s failed for player %s", match_id, player_id, exc_info=True
            )
            summary.record_failure(match_id)

    logger.info(
        "recalculated ratings for player %s: %d matches replayed, %d failed",
        player_id,
        summary.processed,
        summary.failed,
    )
    return summary
