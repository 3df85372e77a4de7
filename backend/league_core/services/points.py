"""Per-player point awards for a completed match.

Every participant gets 1 participation point, 1 point per set (or pickleball
game) their side won and a 2 point bonus when their side won the match, so
an award always falls between 1 and 5.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .. import config
from ..scoring.outcome import SIDES, MatchOutcome, other_side

PARTICIPATION_POINTS = 1
WIN_BONUS_POINTS = 2
MAX_SETS_WON = 2


@dataclass(frozen=True)
class PlayerPoints:
    """Point breakdown for one side of a match."""

    side: str
    is_win: bool
    participation_points: int
    sets_won_points: int
    win_bonus_points: int
    margin: int
    sets_won: int
    sets_lost: int
    games_won: int
    games_lost: int

    @property
    def match_points(self) -> int:
        return (
            self.participation_points + self.sets_won_points + self.win_bonus_points
        )


def walkover_outcome(winner_side: str, games: Optional[int] = None) -> MatchOutcome:
    """Build the placeholder outcome credited for a walkover.

    The winner is given a straight-sets win and ``games`` games (default
    ``WALKOVER_GAMES``) against none, since a walkover has no real score.
    """
    if winner_side not in SIDES:
        raise ValueError(f"walkover winner side must be 'A' or 'B', got {winner_side!r}")
    games = config.WALKOVER_GAMES if games is None else games
    won = {winner_side: MAX_SETS_WON, other_side(winner_side): 0}
    tally = {winner_side: games, other_side(winner_side): 0}
    return MatchOutcome(
        winner=winner_side,
        sets_a=won["A"],
        sets_b=won["B"],
        games_a=tally["A"],
        games_b=tally["B"],
    )


def points_for_side(outcome: MatchOutcome, side: str) -> PlayerPoints:
    is_win = outcome.winner == side
    sets_won = outcome.sets_for(side)
    return PlayerPoints(
        side=side,
        is_win=is_win,
        participation_points=PARTICIPATION_POINTS,
        sets_won_points=min(sets_won, MAX_SETS_WON),
        win_bonus_points=WIN_BONUS_POINTS if is_win else 0,
        margin=outcome.margin_for(side),
        sets_won=sets_won,
        sets_lost=outcome.sets_for(other_side(side)),
        games_won=outcome.games_for(side),
        games_lost=outcome.games_for(other_side(side)),
    )


def calculate_match_points(
    outcome: Optional[MatchOutcome],
    *,
    is_walkover: bool = False,
    walkover_winner_side: Optional[str] = None,
) -> Dict[str, PlayerPoints]:
    """Return the :class:`PlayerPoints` for side ``A`` and side ``B``.

    For a walkover the scores are ignored and the placeholder from
    :func:`walkover_outcome` is scored instead.
    """
    if is_walkover:
        side = walkover_winner_side or (outcome.winner if outcome else None)
        outcome = walkover_outcome(side)
    if outcome is None:
        raise ValueError("an outcome is required for a played match")
    return {side: points_for_side(outcome, side) for side in SIDES}
