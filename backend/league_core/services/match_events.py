"""Reactions to match lifecycle changes.

The match workflow owns the match status. When it marks a match completed
or voided it calls into here, which keeps results, best-N selections,
standings and ratings in step with that status. Everything a single event
writes goes through one unit of work.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import MatchNotCompleted
from ..locks import DivisionLocks, division_locks
from ..models import MATCH_STATUS_COMPLETED, Division
from ..unit_of_work import UnitOfWork
from .best_n import apply_best_n
from .dmr import DMRConfig, rate_match, rating_set_scores, reverse_match_ratings
from .results import delete_match_results, load_match, materialize_match_results
from .standings import rebuild_division_standings
from .validation import validate_league_scores, validate_rating_sets

logger = logging.getLogger(__name__)


@dataclass
class MatchEventReport:
    match_id: str
    results_created: int = 0
    results_deleted: int = 0
    ratings_updated: int = 0
    ratings_reversed: int = 0
    standings_rebuilt: bool = False


@asynccontextmanager
async def _division_scope(locks: DivisionLocks, division_id: Optional[str]) -> AsyncIterator[None]:
    if division_id:
        async with locks.hold(division_id):
            yield
    else:
        yield


async def _refresh_division(
    session: AsyncSession, division_id: str, season_id: str, player_ids: List[str]
) -> bool:
    for player_id in sorted(set(player_ids)):
        await apply_best_n(session, player_id, division_id, season_id)
    division = await session.get(Division, division_id)
    if division is None:
        logger.warning("division %s not found; standings not rebuilt", division_id)
        return False
    await rebuild_division_standings(session, division)
    return True


async def on_match_completed(
    session: AsyncSession,
    match_id: str,
    *,
    locks: DivisionLocks = division_locks,
    config: Optional[DMRConfig] = None,
) -> MatchEventReport:
    """Materialize results, refresh best-N and standings, then rate the match.

    Scores are validated before anything is written, so rejected input
    leaves no trace.
    """

    match = await load_match(session, match_id)
    if match.status != MATCH_STATUS_COMPLETED:
        raise MatchNotCompleted(match_id, match.status)

    validate_league_scores(match)
    if not match.is_walkover:
        validate_rating_sets(match.sport_id, rating_set_scores(match))

    report = MatchEventReport(match_id)
    ranked = bool(match.division_id and match.season_id)
    async with _division_scope(locks, match.division_id if ranked else None):
        async with UnitOfWork(session):
            created = await materialize_match_results(session, match_id)
            report.results_created = len(created)
            if ranked:
                report.standings_rebuilt = await _refresh_division(
                    session,
                    match.division_id,
                    match.season_id,
                    [p.player_id for p in match.participants],
                )
            rated = await rate_match(session, match_id, config=config)
            report.ratings_updated = len(rated.updates) if rated else 0

    logger.info(
        "processed completion of match %s: %d results, %d ratings",
        match_id,
        report.results_created,
        report.ratings_updated,
    )
    return report


async def on_match_voided(
    session: AsyncSession,
    match_id: str,
    *,
    locks: DivisionLocks = division_locks,
) -> MatchEventReport:
    """Undo a match: reverse its ratings, drop its results and re-rank."""

    match = await load_match(session, match_id)
    report = MatchEventReport(match_id)
    ranked = bool(match.division_id and match.season_id)

    async with _division_scope(locks, match.division_id if ranked else None):
        async with UnitOfWork(session):
            report.ratings_reversed = await reverse_match_ratings(session, match_id)
            affected = await delete_match_results(session, match_id)
            report.results_deleted = len(affected)
            if ranked:
                report.standings_rebuilt = await _refresh_division(
                    session, match.division_id, match.season_id, affected
                )

    logger.info(
        "processed voiding of match %s: %d results removed, %d ratings reversed",
        match_id,
        report.results_deleted,
        report.ratings_reversed,
    )
    return report
