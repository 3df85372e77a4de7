"""Division standings: points, head-to-head and a full-division ranking.

Standings are always rebuilt from the stored results of the whole division
and never patched incrementally, so a rebuild can be repeated at any time
and gives the same table.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..exceptions import DomainException
from ..locks import DivisionLocks, division_locks
from ..models import Division, DivisionStanding, MatchResult, Player
from ..time_utils import utcnow
from ..unit_of_work import UnitOfWork
from .summary import SweepSummary

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 3
WIN_CAP = 7
COMPLETION_MILESTONES = (4, 9)


@dataclass(frozen=True)
class StandingsPoints:
    win_points: int
    set_points: int
    completion_bonus: int

    @property
    def total_points(self) -> int:
        return self.win_points + self.set_points + self.completion_bonus


def calculate_standings_points(wins: int, sets_won: int, matches_played: int) -> StandingsPoints:
    """Points for a division record.

    - 3 points per win, counting at most 7 wins
    - from the 7th win on, every set won is worth a point
    - 1 point per match played plus 1 at 4 and another at 9 matches
    """
    win_points = min(wins, WIN_CAP) * POINTS_PER_WIN
    set_points = sets_won if wins >= WIN_CAP else 0
    completion_bonus = matches_played + sum(
        1 for milestone in COMPLETION_MILESTONES if matches_played >= milestone
    )
    return StandingsPoints(win_points, set_points, completion_bonus)


def _empty_h2h() -> Dict[str, int]:
    return {"wins": 0, "losses": 0, "sets_won": 0, "sets_lost": 0}


def build_head_to_head(results: Iterable) -> Dict[str, Dict[str, int]]:
    """Record against each opponent, keyed by opponent id."""
    ledger: Dict[str, Dict[str, int]] = {}
    for result in results:
        if not result.opponent_id:
            continue
        record = ledger.setdefault(result.opponent_id, _empty_h2h())
        record["wins" if result.is_win else "losses"] += 1
        record["sets_won"] += result.sets_won or 0
        record["sets_lost"] += result.sets_lost or 0
    return ledger


def _pct(won: int, lost: int) -> float:
    total = won + lost
    return round(won / total * 100, 2) if total else 0.0


@dataclass
class StandingLine:
    """Everything the ranking needs for one player."""

    player_id: str
    name: str
    wins: int = 0
    losses: int = 0
    matches_played: int = 0
    counted_wins: int = 0
    counted_losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    points: StandingsPoints = StandingsPoints(0, 0, 0)
    head_to_head: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @property
    def total_points(self) -> int:
        return self.points.total_points

    @property
    def set_win_pct(self) -> float:
        return _pct(self.sets_won, self.sets_lost)

    @property
    def game_win_pct(self) -> float:
        return _pct(self.games_won, self.games_lost)


def build_standing_line(player_id: str, name: str, results: Sequence) -> StandingLine:
    """Aggregate one player's division results.

    The record and head-to-head use every result; points and percentages
    use only the results selected by best-N. The completion bonus follows
    matches actually played.
    """
    counted = [r for r in results if r.counts_for_standings]
    line = StandingLine(player_id=player_id, name=name)
    line.wins = sum(1 for r in results if r.is_win)
    line.losses = len(results) - line.wins
    line.matches_played = len(results)
    line.counted_wins = sum(1 for r in counted if r.is_win)
    line.counted_losses = len(counted) - line.counted_wins
    line.sets_won = sum(r.sets_won for r in counted)
    line.sets_lost = sum(r.sets_lost for r in counted)
    line.games_won = sum(r.games_won for r in counted)
    line.games_lost = sum(r.games_lost for r in counted)
    line.points = calculate_standings_points(
        line.counted_wins, line.sets_won, line.matches_played
    )
    line.head_to_head = build_head_to_head(results)
    return line


def _h2h_wins_within(line: StandingLine, group_ids: set) -> int:
    return sum(
        record.get("wins", 0)
        for opponent_id, record in line.head_to_head.items()
        if opponent_id in group_ids and opponent_id != line.player_id
    )


def rank_standings(lines: Sequence[StandingLine]) -> List[StandingLine]:
    """Order standings through the tie-break cascade.

    1. total points
    2. wins against the other players tied on points
    3. set win percentage
    4. game win percentage
    5. name

    The same rule handles two-way and multi-way ties.
    """
    by_points: Dict[int, List[StandingLine]] = {}
    for line in lines:
        by_points.setdefault(line.total_points, []).append(line)

    ordered: List[StandingLine] = []
    for points in sorted(by_points, reverse=True):
        group = by_points[points]
        group_ids = {line.player_id for line in group}
        ordered.extend(
            sorted(
                group,
                key=lambda line: (
                    -_h2h_wins_within(line, group_ids),
                    -line.set_win_pct,
                    -line.game_win_pct,
                    (line.name or "").lower(),
                    line.player_id,
                ),
            )
        )
    return ordered


def matches_remaining(standing: DivisionStanding) -> int:
    return max(0, (standing.matches_scheduled or 0) - (standing.matches_played or 0))


async def _division_results(
    session: AsyncSession, division_id: str, season_id: str
) -> List[MatchResult]:
    return (
        await session.execute(
            select(MatchResult).where(
                MatchResult.division_id == division_id,
                MatchResult.season_id == season_id,
            )
        )
    ).scalars().all()


async def rebuild_division_standings(
    session: AsyncSession, division: Division
) -> List[DivisionStanding]:
    """Rebuild every standing row of ``division`` without taking its lock.

    Callers that already hold the division lock use this directly.
    """

    async with UnitOfWork(session):
        results = await _division_results(session, division.id, division.season_id)
        existing = {
            row.player_id: row
            for row in (
                await session.execute(
                    select(DivisionStanding).where(
                        DivisionStanding.division_id == division.id
                    )
                )
            ).scalars().all()
        }

        by_player: Dict[str, List[MatchResult]] = {pid: [] for pid in existing}
        for result in results:
            by_player.setdefault(result.player_id, []).append(result)

        names: Dict[str, str] = {}
        if by_player:
            name_rows = await session.execute(
                select(Player.id, Player.name).where(Player.id.in_(list(by_player)))
            )
            names = {player_id: name for player_id, name in name_rows.all()}

        lines = [
            build_standing_line(pid, names.get(pid, ""), player_results)
            for pid, player_results in by_player.items()
        ]
        scheduled = division.matches_scheduled or config.DIVISION_MATCHES_SCHEDULED
        now = utcnow()
        rows: List[DivisionStanding] = []
        for rank, line in enumerate(rank_standings(lines), start=1):
            row = existing.get(line.player_id)
            if row is None:
                row = DivisionStanding(
                    id=uuid.uuid4().hex,
                    division_id=division.id,
                    player_id=line.player_id,
                )
                session.add(row)
            row.season_id = division.season_id
            row.rank = rank
            row.wins = line.wins
            row.losses = line.losses
            row.matches_played = line.matches_played
            row.matches_scheduled = scheduled
            row.counted_wins = line.counted_wins
            row.counted_losses = line.counted_losses
            row.win_points = line.points.win_points
            row.set_points = line.points.set_points
            row.completion_bonus = line.points.completion_bonus
            row.total_points = line.total_points
            row.sets_won = line.sets_won
            row.sets_lost = line.sets_lost
            row.set_differential = line.sets_won - line.sets_lost
            row.games_won = line.games_won
            row.games_lost = line.games_lost
            row.set_win_pct = line.set_win_pct
            row.game_win_pct = line.game_win_pct
            row.head_to_head = line.head_to_head
            row.last_calculated_at = now
            rows.append(row)

    logger.info(
        "rebuilt standings for division %s: %d players from %d results",
        division.id,
        len(rows),
        len(results),
    )
    return rows


async def recalculate_division_standings(
    session: AsyncSession,
    division_id: str,
    *,
    locks: DivisionLocks = division_locks,
) -> List[DivisionStanding]:
    """Rebuild and rank a division while holding its lock."""

    division = await session.get(Division, division_id)
    if division is None:
        logger.warning("division %s not found; skipping standings rebuild", division_id)
        return []

    async with locks.hold(division_id):
        return await rebuild_division_standings(session, division)


async def recalculate_all_standings(
    session: AsyncSession,
    season_id: Optional[str] = None,
    *,
    locks: DivisionLocks = division_locks,
) -> SweepSummary:
    """Rebuild every division, optionally limited to one season.

    A failing division is logged and counted; the rest still rebuild.
    """

    stmt = select(Division.id).order_by(Division.id)
    if season_id:
        stmt = stmt.where(Division.season_id == season_id)
    division_ids = (await session.execute(stmt)).scalars().all()

    summary = SweepSummary()
    for division_id in division_ids:
        try:
            await recalculate_division_standings(session, division_id, locks=locks)
            summary.processed += 1
        except (SQLAlchemyError, DomainException):
            logger.error(
                "standings rebuild failed for division %s", division_id, exc_info=True
            )
            summary.record_failure(division_id)
    return summary


async def get_division_standings(
    session: AsyncSession, division_id: str
) -> List[DivisionStanding]:
    return (
        await session.execute(
            select(DivisionStanding)
            .where(DivisionStanding.division_id == division_id)
            .order_by(DivisionStanding.rank, DivisionStanding.player_id)
        )
    ).scalars().all()
