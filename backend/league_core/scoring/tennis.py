"""Tennis outcome parser.
Turns per-set game scores (with optional tiebreaks) into a match outcome."""

from typing import Dict, Iterable, Optional

from ..exceptions import InvalidMatchDataError
from .outcome import MatchOutcome, coerce_score

FINAL_SET_MATCH_TIEBREAK = "match_tiebreak"
FINAL_SET_FULL = "full_set"


def init_config(config: Optional[Dict] = None) -> Dict:
    """Return the parsing config with defaults filled in.

    ``finalSetFormat`` is ``"match_tiebreak"`` (default) when the deciding set
    is replaced by a single tiebreak, or ``"full_set"``. ``bestOf`` is the
    number of sets in a full match (default ``3``).
    """
    config = config or {}
    return {
        "finalSetFormat": config.get("finalSetFormat") or FINAL_SET_MATCH_TIEBREAK,
        "bestOf": config.get("bestOf", 3),
    }


def _optional_int(value, label: str) -> Optional[int]:
    if value is None:
        return None
    return coerce_score(value, label)


def set_winner(games_a: int, games_b: int, tb_a: Optional[int], tb_b: Optional[int]) -> str:
    if games_a != games_b:
        return "A" if games_a > games_b else "B"
    if tb_a is None or tb_b is None or tb_a == tb_b:
        raise InvalidMatchDataError(
            f"set tied at {games_a}-{games_b} needs decisive tiebreak points"
        )
    return "A" if tb_a > tb_b else "B"


def parse_outcome(set_scores: Iterable, config: Optional[Dict] = None) -> MatchOutcome:
    """Summarize ``set_scores`` into a :class:`MatchOutcome`.

    Each entry needs ``games_a``/``games_b`` and may carry
    ``tiebreak_a``/``tiebreak_b`` and ``set_number``. When the final set is
    played as a match tiebreak its tiebreak points are tallied as that set's
    games, since the nominal game score of a match tiebreak carries no margin.
    """

    cfg = init_config(config)
    final_set_number = cfg["bestOf"]
    match_tiebreak = cfg["finalSetFormat"] == FINAL_SET_MATCH_TIEBREAK

    sets = {"A": 0, "B": 0}
    games = {"A": 0, "B": 0}
    count = 0

    for index, entry in enumerate(set_scores, start=1):
        count += 1
        number = getattr(entry, "set_number", None) or index
        label = f"Set #{number}"
        ga = coerce_score(entry.games_a, f"{label} games")
        gb = coerce_score(entry.games_b, f"{label} games")
        ta = _optional_int(getattr(entry, "tiebreak_a", None), f"{label} tiebreak")
        tb = _optional_int(getattr(entry, "tiebreak_b", None), f"{label} tiebreak")
        if ga < 0 or gb < 0 or (ta is not None and ta < 0) or (tb is not None and tb < 0):
            raise InvalidMatchDataError(f"{label} scores must be >= 0.")

        is_match_tiebreak = match_tiebreak and number == final_set_number
        if is_match_tiebreak and ta is not None and tb is not None:
            # Match tiebreak recorded in the tiebreak fields; points are the games.
            winner = "A" if ta > tb else "B" if tb > ta else None
            if winner is None:
                raise InvalidMatchDataError(f"{label} match tiebreak cannot be tied.")
            games["A"] += ta
            games["B"] += tb
        else:
            winner = set_winner(ga, gb, ta, tb)
            games["A"] += ga
            games["B"] += gb
        sets[winner] += 1

    if count == 0:
        raise InvalidMatchDataError("At least one set is required.")
    if sets["A"] == sets["B"]:
        raise InvalidMatchDataError(
            f"No side won a majority of sets ({sets['A']}-{sets['B']})."
        )

    return MatchOutcome(
        winner="A" if sets["A"] > sets["B"] else "B",
        sets_a=sets["A"],
        sets_b=sets["B"],
        games_a=games["A"],
        games_b=games["B"],
    )
