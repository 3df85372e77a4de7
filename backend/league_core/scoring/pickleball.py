"""Pickleball outcome parser.

Each game is won by the side with more rally points; games won play the role
of sets and total rally points play the role of games for the margin.
"""
from typing import Dict, Iterable, Optional

from ..exceptions import InvalidMatchDataError
from .outcome import MatchOutcome, coerce_score


def init_config(config: Optional[Dict] = None) -> Dict:
    """Config keys:
    - pointsTo: points required to win a game (default 11)
    - winBy: margin required to win a game (default 2)
    - bestOf: best-of value for number of games (default 3)
    """
    config = config or {}
    return {
        "pointsTo": config.get("pointsTo", 11),
        "winBy": config.get("winBy", 2),
        "bestOf": config.get("bestOf", 3),
    }


def parse_outcome(game_scores: Iterable, config: Optional[Dict] = None) -> MatchOutcome:
    games_won = {"A": 0, "B": 0}
    points = {"A": 0, "B": 0}
    count = 0

    for index, entry in enumerate(game_scores, start=1):
        count += 1
        label = f"Game #{getattr(entry, 'game_number', None) or index}"
        pa = coerce_score(entry.points_a, f"{label} points")
        pb = coerce_score(entry.points_b, f"{label} points")
        if pa < 0 or pb < 0:
            raise InvalidMatchDataError(f"{label} scores must be >= 0.")
        if pa == pb:
            raise InvalidMatchDataError(f"{label} cannot be a tie.")
        games_won["A" if pa > pb else "B"] += 1
        points["A"] += pa
        points["B"] += pb

    if count == 0:
        raise InvalidMatchDataError("At least one game is required.")
    if games_won["A"] == games_won["B"]:
        raise InvalidMatchDataError(
            f"No side won a majority of games ({games_won['A']}-{games_won['B']})."
        )

    return MatchOutcome(
        winner="A" if games_won["A"] > games_won["B"] else "B",
        sets_a=games_won["A"],
        sets_b=games_won["B"],
        games_a=points["A"],
        games_b=points["B"],
    )
