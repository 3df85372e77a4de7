"""Outcome parsers for the supported racquet sports."""

from typing import Dict, Iterable, Optional

from ..exceptions import InvalidMatchDataError
from . import padel, pickleball, tennis
from .outcome import (
    GameScoreInput,
    MatchOutcome,
    SetScoreInput,
    other_side,
)

SET_SPORTS = {"tennis": tennis, "padel": padel}
GAME_SPORTS = {"pickleball": pickleball}
SUPPORTED_SPORTS = frozenset(SET_SPORTS) | frozenset(GAME_SPORTS)


def normalize_sport(sport_id: str) -> str:
    value = (sport_id or "").strip().lower()
    if value not in SUPPORTED_SPORTS:
        raise InvalidMatchDataError(f"unsupported sport: {sport_id!r}")
    return value


def parse_outcome(
    sport_id: str, scores: Iterable, config: Optional[Dict] = None
) -> MatchOutcome:
    """Dispatch ``scores`` to the parser for ``sport_id``.

    Tennis and padel expect set scores; pickleball expects game scores.
    """
    sport = normalize_sport(sport_id)
    engine = SET_SPORTS.get(sport) or GAME_SPORTS[sport]
    return engine.parse_outcome(scores, config)


__all__ = [
    "GameScoreInput",
    "MatchOutcome",
    "SetScoreInput",
    "SUPPORTED_SPORTS",
    "normalize_sport",
    "other_side",
    "padel",
    "parse_outcome",
    "pickleball",
    "tennis",
]
