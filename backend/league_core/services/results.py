"""Create one :class:`MatchResult` per participant of a completed match."""

import logging
import uuid
from typing import Dict, List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import InvalidMatchDataError, MatchNotCompleted, MatchNotFound, ResultsAlreadyExist
from ..models import (
    GAME_MODE_DOUBLES,
    GAME_MODE_SINGLES,
    MATCH_STATUS_COMPLETED,
    Match,
    MatchParticipant,
    MatchResult,
)
from ..scoring import normalize_sport, parse_outcome
from ..scoring.outcome import SIDES, other_side
from ..unit_of_work import UnitOfWork
from .points import calculate_match_points
from .validation import validate_participants_for_sport

logger = logging.getLogger(__name__)


def ordered_participants(match: Match) -> List[MatchParticipant]:
    return sorted(
        match.participants,
        key=lambda p: (p.position or 0, p.created_at is None, p.created_at, p.id),
    )


def assign_sides(match: Match) -> Dict[str, List[MatchParticipant]]:
    """Split the participants of ``match`` into sides ``A`` and ``B``.

    Singles use creation order. Doubles use the team tags and fall back to
    creation order (first two on ``A``) when the tags do not form two pairs.
    """
    participants = ordered_participants(match)
    if match.game_mode != GAME_MODE_DOUBLES:
        return {"A": participants[:1], "B": participants[1:]}

    tagged = {side: [p for p in participants if p.team == side] for side in SIDES}
    if len(tagged["A"]) == 2 and len(tagged["B"]) == 2:
        return tagged

    logger.warning(
        "match %s has inconsistent team tags (%s); using creation order",
        match.id,
        [p.team for p in participants],
    )
    return {"A": participants[:2], "B": participants[2:]}


def side_player_ids(match: Match) -> Dict[str, List[str]]:
    sides = assign_sides(match)
    player_ids = {side: [p.player_id for p in sides[side]] for side in SIDES}
    validate_participants_for_sport(match.sport_id, player_ids, match.game_mode)
    return player_ids


def match_outcome(match: Match):
    """Parse the recorded scores of ``match``; ``None`` for a walkover."""
    if match.is_walkover:
        return None
    sport = normalize_sport(match.sport_id)
    if sport == "pickleball":
        return parse_outcome(sport, match.game_scores)
    return parse_outcome(
        sport, match.set_scores, {"finalSetFormat": match.final_set_format}
    )


async def load_match(session: AsyncSession, match_id: str) -> Match:
    match = await session.get(Match, match_id)
    if match is None:
        raise MatchNotFound(match_id)
    return match


async def count_match_results(session: AsyncSession, match_id: str) -> int:
    return (
        await session.execute(
            select(func.count()).select_from(MatchResult).where(
                MatchResult.match_id == match_id
            )
        )
    ).scalar_one()


async def materialize_match_results(
    session: AsyncSession, match_id: str, *, strict: bool = False
) -> List[MatchResult]:
    """Create the result rows for a completed match.

    Returns the rows created by this call. Matches outside a division or
    season are skipped with a warning, and a match that already has results
    is left alone (``strict=True`` raises :class:`ResultsAlreadyExist`
    instead). The best-N fields start cleared; only the best-N selection
    sets them.
    """

    match = await load_match(session, match_id)
    if match.status != MATCH_STATUS_COMPLETED:
        raise MatchNotCompleted(match_id, match.status)

    if not match.division_id or not match.season_id:
        logger.warning(
            "match %s has no division or season; skipping result creation", match_id
        )
        return []

    if await count_match_results(session, match_id):
        if strict:
            raise ResultsAlreadyExist(match_id)
        logger.info("results already exist for match %s; nothing to do", match_id)
        return []

    player_ids = side_player_ids(match)
    outcome = match_outcome(match)
    if match.is_walkover and match.walkover_winner_side not in SIDES:
        raise InvalidMatchDataError(
            f"walkover match {match_id} has no winning side recorded"
        )
    points = calculate_match_points(
        outcome,
        is_walkover=bool(match.is_walkover),
        walkover_winner_side=match.walkover_winner_side,
    )

    game_mode = GAME_MODE_DOUBLES if match.game_mode == GAME_MODE_DOUBLES else GAME_MODE_SINGLES
    created: List[MatchResult] = []
    async with UnitOfWork(session):
        for side in SIDES:
            award = points[side]
            opponent_id = player_ids[other_side(side)][0]
            for player_id in player_ids[side]:
                result = MatchResult(
                    id=uuid.uuid4().hex,
                    match_id=match.id,
                    player_id=player_id,
                    opponent_id=opponent_id,
                    division_id=match.division_id,
                    season_id=match.season_id,
                    sport_id=normalize_sport(match.sport_id),
                    game_mode=game_mode,
                    is_win=award.is_win,
                    participation_points=award.participation_points,
                    sets_won_points=award.sets_won_points,
                    win_bonus_points=award.win_bonus_points,
                    match_points=award.match_points,
                    margin=award.margin,
                    sets_won=award.sets_won,
                    sets_lost=award.sets_lost,
                    games_won=award.games_won,
                    games_lost=award.games_lost,
                    date_played=match.played_at or match.completed_at,
                    counts_for_standings=False,
                    result_sequence=None,
                )
                session.add(result)
                created.append(result)

    logger.info("created %d results for match %s", len(created), match_id)
    return created


async def delete_match_results(session: AsyncSession, match_id: str) -> List[str]:
    """Remove every result of a voided or reopened match.

    Returns the ids of the players whose results were removed so their
    best-N selection can be recomputed.
    """
    async with UnitOfWork(session):
        player_ids = (
            await session.execute(
                select(MatchResult.player_id).where(MatchResult.match_id == match_id)
            )
        ).scalars().all()
        await session.execute(delete(MatchResult).where(MatchResult.match_id == match_id))

    logger.info("deleted %d results for match %s", len(player_ids), match_id)
    return list(player_ids)
