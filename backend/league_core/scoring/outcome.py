"""Sport-agnostic match outcome produced by the per-sport parsers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..exceptions import InvalidMatchDataError

SIDES = ("A", "B")


def other_side(side: str) -> str:
    return "B" if side == "A" else "A"


@dataclass(frozen=True)
class SetScoreInput:
    """Games per side for one tennis/padel set.

    ``tiebreak_a``/``tiebreak_b`` hold tiebreak points when the set went to a
    tiebreak, or the match tiebreak points when the deciding set was played as
    a single match tiebreak.
    """

    games_a: int
    games_b: int
    tiebreak_a: Optional[int] = None
    tiebreak_b: Optional[int] = None
    set_number: Optional[int] = None


@dataclass(frozen=True)
class GameScoreInput:
    """Rally points per side for one pickleball game."""

    points_a: int
    points_b: int
    game_number: Optional[int] = None


@dataclass(frozen=True)
class MatchOutcome:
    """Normalized result of a match.

    ``sets_*`` count sets (tennis/padel) or games (pickleball) won per side;
    ``games_*`` total games (tennis/padel) or rally points (pickleball) and
    feed the margin statistic.
    """

    winner: str
    sets_a: int
    sets_b: int
    games_a: int
    games_b: int

    def sets_for(self, side: str) -> int:
        return self.sets_a if side == "A" else self.sets_b

    def games_for(self, side: str) -> int:
        return self.games_a if side == "A" else self.games_b

    def margin_for(self, side: str) -> int:
        return self.games_for(side) - self.games_for(other_side(side))

    @property
    def loser(self) -> str:
        return other_side(self.winner)


def coerce_score(value, label: str) -> int:
    """Return ``value`` as an ``int`` or raise ``InvalidMatchDataError``."""
    # Reject booleans explicitly (bool is a subclass of int in Python)
    if isinstance(value, bool):
        raise InvalidMatchDataError(f"{label} must be an integer (not a boolean).")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidMatchDataError(f"{label} must be an integer.")
