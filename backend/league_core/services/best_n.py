"""Best-N selection: which of a player's results count toward standings.

The selection is recomputed from scratch every time, from the player's
results in one division and season, and only ever touches
``counts_for_standings`` and ``result_sequence``. Results that are not
selected stay in place with the flag cleared.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..exceptions import InvalidMatchDataError
from ..locks import DivisionLocks, division_locks
from ..models import Division, MatchResult, Player
from ..time_utils import to_naive_utc
from ..unit_of_work import UnitOfWork
from .summary import SweepSummary

logger = logging.getLogger(__name__)

POLICY_FIRST_WINS = "first_wins"
POLICY_HIGHEST_POINTS = "highest_points"
POLICY_MOST_RECENT = "most_recent"


def _played(result) -> datetime:
    played = result.date_played or getattr(result, "created_at", None)
    return to_naive_utc(played) or datetime.min


def _chronological_key(result):
    return (_played(result), result.id)


def _strength_key(result):
    # match points desc, margin desc, most recent first
    age = (_played(result) - datetime.min).total_seconds()
    return (-result.match_points, -result.margin, -age, result.id)


def first_wins(results: Sequence, size: int) -> List:
    """The first ``size`` wins in date order, topped up with the strongest losses.

    Early wins are locked in: a later win never displaces an earlier one.
    """
    ordered = sorted(results, key=_chronological_key)
    wins = [r for r in ordered if r.is_win][:size]
    losses = sorted((r for r in ordered if not r.is_win), key=_strength_key)
    return wins + losses[: size - len(wins)]


def highest_points(results: Sequence, size: int) -> List:
    return sorted(results, key=_strength_key)[:size]


def most_recent(results: Sequence, size: int) -> List:
    latest = sorted(results, key=_chronological_key, reverse=True)[:size]
    return sorted(latest, key=_chronological_key)


POLICIES: Dict[str, Callable[[Sequence, int], List]] = {
    POLICY_FIRST_WINS: first_wins,
    POLICY_HIGHEST_POINTS: highest_points,
    POLICY_MOST_RECENT: most_recent,
}


def resolve_policy(name: Optional[str]) -> Callable[[Sequence, int], List]:
    key = (name or config.BEST_N_POLICY).strip().lower()
    try:
        return POLICIES[key]
    except KeyError:
        raise InvalidMatchDataError(
            f"unknown best-N policy {key!r}; expected one of {sorted(POLICIES)}"
        )


def select_best_n(
    results: Sequence, size: Optional[int] = None, policy: Optional[str] = None
) -> Dict[str, int]:
    """Return ``{result_id: sequence}`` for the selected results.

    Sequences run from 1 in selection order.
    """
    size = config.BEST_N_SIZE if size is None else size
    chosen = resolve_policy(policy)(list(results), size)
    return {result.id: index for index, result in enumerate(chosen, start=1)}


async def _player_results(
    session: AsyncSession, player_id: str, division_id: str, season_id: str
) -> List[MatchResult]:
    return (
        await session.execute(
            select(MatchResult).where(
                MatchResult.player_id == player_id,
                MatchResult.division_id == division_id,
                MatchResult.season_id == season_id,
            )
        )
    ).scalars().all()


async def apply_best_n(
    session: AsyncSession,
    player_id: str,
    division_id: str,
    season_id: str,
    *,
    size: Optional[int] = None,
    policy: Optional[str] = None,
) -> List[MatchResult]:
    """Recompute and store the best-N selection for one player.

    Returns the counted results in sequence order.
    """

    async with UnitOfWork(session):
        results = await _player_results(session, player_id, division_id, season_id)
        selection = select_best_n(results, size, policy)
        for result in results:
            sequence = selection.get(result.id)
            result.counts_for_standings = sequence is not None
            result.result_sequence = sequence

    logger.info(
        "applied best-N for player %s in division %s: %d of %d results count",
        player_id,
        division_id,
        len(selection),
        len(results),
    )
    counted = [r for r in results if r.counts_for_standings]
    return sorted(counted, key=lambda r: r.result_sequence)


async def division_season(session: AsyncSession, division_id: str) -> Optional[str]:
    division = await session.get(Division, division_id)
    return division.season_id if division is not None else None


async def division_player_ids(
    session: AsyncSession, division_id: str, season_id: str
) -> List[str]:
    return (
        await session.execute(
            select(MatchResult.player_id)
            .where(
                MatchResult.division_id == division_id,
                MatchResult.season_id == season_id,
            )
            .distinct()
            .order_by(MatchResult.player_id)
        )
    ).scalars().all()


async def recalculate_division_best_n_unlocked(
    session: AsyncSession,
    division_id: str,
    season_id: str,
    *,
    size: Optional[int] = None,
    policy: Optional[str] = None,
) -> SweepSummary:
    summary = SweepSummary()
    for player_id in await division_player_ids(session, division_id, season_id):
        try:
            await apply_best_n(
                session, player_id, division_id, season_id, size=size, policy=policy
            )
            summary.processed += 1
        except SQLAlchemyError:
            logger.error(
                "best-N recalculation failed for player %s in division %s",
                player_id,
                division_id,
                exc_info=True,
            )
            summary.record_failure(player_id)
    return summary


async def recalculate_division_best_n(
    session: AsyncSession,
    division_id: str,
    season_id: Optional[str] = None,
    *,
    size: Optional[int] = None,
    policy: Optional[str] = None,
    locks: DivisionLocks = division_locks,
) -> SweepSummary:
    """Recompute best-N for every player with results in a division.

    Holds the division lock for the whole pass. One player's failure is
    logged and counted without stopping the others.
    """

    season_id = season_id or await division_season(session, division_id)
    if season_id is None:
        logger.warning("division %s not found; skipping best-N recalculation", division_id)
        return SweepSummary()

    async with locks.hold(division_id):
        summary = await recalculate_division_best_n_unlocked(
            session, division_id, season_id, size=size, policy=policy
        )

    logger.info(
        "recalculated best-N for division %s: %d players, %d failed",
        division_id,
        summary.processed,
        summary.failed,
    )
    return summary


@dataclass
class CompositionEntry:
    match_id: str
    opponent_id: Optional[str]
    opponent_name: Optional[str]
    is_win: bool
    match_points: int
    margin: int
    date_played: Optional[datetime]
    sequence: Optional[int]
    counted: bool


@dataclass
class BestNComposition:
    player_id: str
    division_id: str
    season_id: str
    total_matches: int = 0
    total_wins: int = 0
    total_losses: int = 0
    counted_wins: int = 0
    counted_losses: int = 0
    total_points: int = 0
    results: List[CompositionEntry] = field(default_factory=list)

    @property
    def record(self) -> str:
        return f"{self.total_wins}W-{self.total_losses}L"

    @property
    def counted_summary(self) -> str:
        return f"{self.counted_wins}W + {self.counted_losses}L"


async def best_n_composition(
    session: AsyncSession, player_id: str, division_id: str, season_id: Optional[str] = None
) -> BestNComposition:
    """Describe a player's stored best-N selection for display.

    Counted results come first in sequence order, then the rest newest first.
    """

    season_id = season_id or await division_season(session, division_id)
    rows = (
        await session.execute(
            select(MatchResult, Player.name)
            .outerjoin(Player, Player.id == MatchResult.opponent_id)
            .where(
                MatchResult.player_id == player_id,
                MatchResult.division_id == division_id,
                MatchResult.season_id == season_id,
            )
        )
    ).all()

    composition = BestNComposition(player_id, division_id, season_id)
    for result, opponent_name in rows:
        composition.total_matches += 1
        if result.is_win:
            composition.total_wins += 1
        else:
            composition.total_losses += 1
        if result.counts_for_standings:
            composition.total_points += result.match_points
            if result.is_win:
                composition.counted_wins += 1
            else:
                composition.counted_losses += 1
        composition.results.append(
            CompositionEntry(
                match_id=result.match_id,
                opponent_id=result.opponent_id,
                opponent_name=opponent_name,
                is_win=result.is_win,
                match_points=result.match_points,
                margin=result.margin,
                date_played=result.date_played,
                sequence=result.result_sequence,
                counted=bool(result.counts_for_standings),
            )
        )

    counted = sorted((e for e in composition.results if e.counted), key=lambda e: e.sequence)
    rest = sorted(
        (e for e in composition.results if not e.counted),
        key=lambda e: e.date_played or datetime.min,
        reverse=True,
    )
    composition.results = counted + rest
    return composition
