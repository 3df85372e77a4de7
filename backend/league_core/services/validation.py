from typing import Any, Dict, Iterable, List, Optional

from .. import config as settings
from ..exceptions import InvalidMatchDataError
from ..models import FINAL_SET_FULL, GAME_MODE_DOUBLES, GAME_MODE_SINGLES
from ..scoring import normalize_sport, pickleball
from ..scoring.outcome import coerce_score

# Games/points a rated set may end on before win-by-two applies.
PICKLEBALL_STANDARD_TARGETS = (11, 15, 21)
PICKLEBALL_MAX_REALISTIC_SCORE = 50
RATING_MAX_SETS = 5

STANDARD_SET_SCORES = {(6, 0), (6, 1), (6, 2), (6, 3), (6, 4), (7, 5), (7, 6)}
STANDARD_TIEBREAK_TO = 7
MATCH_TIEBREAK_TO = 10


def validate_set_scores(
    sets: List[Dict[str, Any]],
    *,
    max_sets: Optional[int] = RATING_MAX_SETS,
    allow_ties: bool = False,
) -> List[Dict[str, int]]:
    """Validate a list of ``{A, B}`` set score dictionaries.

    Rules:
    - At least one set is required
    - Number of sets must be <= ``max_sets`` (if provided)
    - Each set must be an object ``{A, B}``
    - ``A`` and ``B`` must be integers >= 0 (booleans are rejected)
    - Ties are not allowed (``A`` != ``B``) unless ``allow_ties`` is ``True``

    Returns the sets with integer values.
    """

    if not isinstance(sets, list) or len(sets) == 0:
        raise InvalidMatchDataError("At least one set is required.")
    if max_sets is not None and len(sets) > max_sets:
        raise InvalidMatchDataError(f"Too many sets. Max allowed is {max_sets}.")

    normalized: List[Dict[str, int]] = []
    for i, s in enumerate(sets, start=1):
        if not isinstance(s, dict):
            raise InvalidMatchDataError(
                f"Set #{i} must be an object with fields A and B."
            )
        if "A" not in s or "B" not in s:
            raise InvalidMatchDataError(f"Set #{i} must include both A and B.")

        a = coerce_score(s["A"], f"Set #{i} score")
        b = coerce_score(s["B"], f"Set #{i} score")

        if a < 0 or b < 0:
            raise InvalidMatchDataError(f"Set #{i} scores must be >= 0.")
        if not allow_ties and a == b:
            raise InvalidMatchDataError(f"Set #{i} cannot be a tie.")
        normalized.append({"A": a, "B": b})

    return normalized


def _validate_pickleball_rating_set(index: int, a: int, b: int) -> None:
    high, low = max(a, b), min(a, b)
    if high == 0:
        raise InvalidMatchDataError(f"Set #{index} cannot be 0-0.")
    if high > PICKLEBALL_MAX_REALISTIC_SCORE:
        raise InvalidMatchDataError(
            f"Set #{index} score {a}-{b} is unrealistic "
            f"(max {PICKLEBALL_MAX_REALISTIC_SCORE})."
        )
    if high in PICKLEBALL_STANDARD_TARGETS:
        if high - low < 2:
            raise InvalidMatchDataError(
                f"Set #{index} score {a}-{b} must be won by at least 2 points."
            )
        return
    if high > PICKLEBALL_STANDARD_TARGETS[0]:
        # Extended game past a target: the winner is exactly two clear.
        if high - low != 2 or low < PICKLEBALL_STANDARD_TARGETS[0] - 1:
            raise InvalidMatchDataError(
                f"Set #{index} score {a}-{b} is not a valid extended game."
            )
        return
    raise InvalidMatchDataError(
        f"Set #{index} score {a}-{b} does not reach a winning score."
    )


def validate_rating_sets(sport_id: str, sets: List[Dict[str, Any]]) -> List[Dict[str, int]]:
    """Validate set scores submitted to the rating engine.

    Every sport gets the generic checks of :func:`validate_set_scores`.
    Pickleball additionally enforces its winning targets (11, 15 or 21) and
    the two-point win rule, so 11-0, 11-9, 12-10 and 15-10 pass while 11-10
    does not.
    """

    sport = normalize_sport(sport_id)
    normalized = validate_set_scores(sets)
    if sport == "pickleball":
        for index, entry in enumerate(normalized, start=1):
            _validate_pickleball_rating_set(index, entry["A"], entry["B"])
    return normalized


SPORT_RULES: dict[str, dict[str, object]] = {
    "padel": {"team_sizes": {1, 2}},
    "tennis": {"team_sizes": {1, 2}},
    "pickleball": {"team_sizes": {1, 2}},
}

MODE_TEAM_SIZE = {GAME_MODE_SINGLES: 1, GAME_MODE_DOUBLES: 2}


def _sport_label(sport_id: str) -> str:
    return sport_id.replace("_", " ").title() or "Sport"


def validate_participants_for_sport(
    sport_id: str, side_players: Dict[str, List[str]], game_mode: Optional[str] = None
) -> None:
    """Check that two sides of an allowed size play a match.

    When ``game_mode`` is given the side size must match it exactly.
    """
    sport = normalize_sport(sport_id)
    rules = SPORT_RULES[sport]

    if len(side_players) != 2:
        raise InvalidMatchDataError(
            f"{_sport_label(sport)} matches require exactly 2 sides."
        )

    team_sizes = rules["team_sizes"]
    expected = MODE_TEAM_SIZE.get(game_mode) if game_mode else None
    seen: set[str] = set()
    for side, players in side_players.items():
        size = len(players)
        if expected is not None and size != expected:
            raise InvalidMatchDataError(
                f"{_sport_label(sport)} {game_mode} matches require exactly "
                f"{expected} player(s) per side."
            )
        if size not in team_sizes:
            formatted = ", ".join(str(v) for v in sorted(team_sizes))
            raise InvalidMatchDataError(
                f"{_sport_label(sport)} matches must use {formatted} players per side."
            )
        for player_id in players:
            if player_id in seen:
                raise InvalidMatchDataError(
                    f"player {player_id!r} cannot play on both sides."
                )
            seen.add(player_id)


DECIDING_SET_NUMBER = 3


def played_as_match_tiebreak(entry, number: int, final_set_format: Optional[str]) -> bool:
    """Whether set ``number`` is a deciding match tiebreak kept in the tiebreak fields.

    Such a set is won on its tiebreak points whatever its nominal games say.
    """
    return (
        number == DECIDING_SET_NUMBER
        and final_set_format != FINAL_SET_FULL
        and entry.tiebreak_a is not None
        and entry.tiebreak_b is not None
    )


def _set_side_winner(
    ga: int, gb: int, ta: Optional[int], tb: Optional[int], match_tiebreak: bool = False
) -> str:
    if match_tiebreak:
        return "A" if ta > tb else "B"
    if ga != gb:
        return "A" if ga > gb else "B"
    return "A" if (ta or 0) > (tb or 0) else "B"


def _validate_tiebreak(label: str, a: int, b: int, target: int) -> None:
    if a < 0 or b < 0:
        raise InvalidMatchDataError(f"{label}: tiebreak scores cannot be negative.")
    high, low = max(a, b), min(a, b)
    if high < target:
        raise InvalidMatchDataError(
            f"{label}: tiebreak winner must have at least {target} points."
        )
    if high - low < 2:
        raise InvalidMatchDataError(f"{label}: tiebreak must be won by 2 points.")


def _validate_standard_set(label: str, entry) -> None:
    ga, gb = entry.games_a, entry.games_b
    if ga < 0 or gb < 0:
        raise InvalidMatchDataError(f"{label}: game scores cannot be negative.")
    pair = (max(ga, gb), min(ga, gb))
    if pair not in STANDARD_SET_SCORES:
        if pair == (6, 5):
            raise InvalidMatchDataError(
                f"{label}: 6-5 is not a final score (play on to 7-5 or a tiebreak)."
            )
        if pair == (6, 6):
            raise InvalidMatchDataError(
                f"{label}: 6-6 is not valid, the tiebreak makes it 7-6."
            )
        raise InvalidMatchDataError(f"{label}: invalid set score {ga}-{gb}.")

    has_tiebreak = entry.tiebreak_a is not None or entry.tiebreak_b is not None
    if pair == (7, 6):
        if entry.tiebreak_a is None or entry.tiebreak_b is None:
            raise InvalidMatchDataError(f"{label}: 7-6 requires tiebreak scores.")
        _validate_tiebreak(label, entry.tiebreak_a, entry.tiebreak_b, STANDARD_TIEBREAK_TO)
        if _set_side_winner(ga, gb, None, None) != (
            "A" if entry.tiebreak_a > entry.tiebreak_b else "B"
        ):
            raise InvalidMatchDataError(
                f"{label}: tiebreak winner must be the side that took the set."
            )
    elif has_tiebreak:
        raise InvalidMatchDataError(
            f"{label}: tiebreak scores are only allowed for 7-6 sets."
        )


def _validate_deciding_set(label: str, entry, final_set_format: str) -> None:
    if final_set_format != FINAL_SET_FULL:
        if entry.tiebreak_a is not None and entry.tiebreak_b is not None:
            _validate_tiebreak(label, entry.tiebreak_a, entry.tiebreak_b, MATCH_TIEBREAK_TO)
            games_winner = "A" if entry.games_a > entry.games_b else "B"
            tiebreak_winner = "A" if entry.tiebreak_a > entry.tiebreak_b else "B"
            if entry.games_a != entry.games_b and games_winner != tiebreak_winner:
                raise InvalidMatchDataError(
                    f"{label}: the games and the match tiebreak name different winners."
                )
        else:
            # Match tiebreak points recorded in the games fields.
            _validate_tiebreak(label, entry.games_a, entry.games_b, MATCH_TIEBREAK_TO)
        return

    if entry.games_a == 6 and entry.games_b == 6:
        if entry.tiebreak_a is None or entry.tiebreak_b is None:
            raise InvalidMatchDataError(
                f"{label}: 6-6 in the deciding set requires a 10-point match tiebreak."
            )
        _validate_tiebreak(label, entry.tiebreak_a, entry.tiebreak_b, MATCH_TIEBREAK_TO)
        return
    _validate_standard_set(label, entry)


def _check_best_of_three(winners: List[str], unit: str) -> None:
    if len(winners) < 2:
        raise InvalidMatchDataError(f"At least 2 {unit}s are required.")
    if len(winners) > 3:
        raise InvalidMatchDataError(f"Maximum 3 {unit}s allowed.")
    if len(winners) == 2 and winners[0] != winners[1]:
        raise InvalidMatchDataError(
            f"If only 2 {unit}s are played, the same side must win both."
        )
    if len(winners) == 3 and winners[0] == winners[1]:
        raise InvalidMatchDataError(
            f"Cannot have {unit} 3 when the match is won 2-0."
        )
    if max(winners.count("A"), winners.count("B")) != 2:
        raise InvalidMatchDataError(
            f"One side must win exactly 2 {unit}s."
        )


def validate_league_set_scores(set_scores: Iterable, final_set_format: Optional[str] = None) -> None:
    """Validate tennis/padel league scores for a best-of-three match.

    Sets 1 and 2 must be standard sets (6-0 to 6-4, 7-5, or 7-6 with a
    7-point tiebreak won by 2). The deciding set is a 10-point match tiebreak
    unless ``final_set_format`` is ``"full_set"``.
    """
    entries = list(set_scores)
    winners = []
    for index, entry in enumerate(entries, start=1):
        # Reject non-numeric scores before any comparison.
        for field in ("games_a", "games_b", "tiebreak_a", "tiebreak_b"):
            if getattr(entry, field) is not None:
                coerce_score(getattr(entry, field), f"Set {index} {field}")
        number = getattr(entry, "set_number", None) or index
        winners.append(
            _set_side_winner(
                entry.games_a,
                entry.games_b,
                entry.tiebreak_a,
                entry.tiebreak_b,
                played_as_match_tiebreak(entry, number, final_set_format),
            )
        )
    _check_best_of_three(winners, "set")

    for index, entry in enumerate(entries, start=1):
        label = f"Set {index}"
        if index == 3:
            _validate_deciding_set(label, entry, final_set_format or "")
        else:
            _validate_standard_set(label, entry)


def validate_league_game_scores(game_scores: Iterable, config: Optional[Dict] = None) -> None:
    """Validate pickleball league scores: 2 or 3 games won by at least ``winBy``.

    League games are played to ``PICKLEBALL_LEAGUE_POINTS_TO`` (15) unless
    ``config`` sets ``pointsTo``. Games may run on past the target, so 17-15
    and 22-20 are valid while 15-14 is not.
    """
    cfg = pickleball.init_config(
        {"pointsTo": settings.PICKLEBALL_LEAGUE_POINTS_TO, **(config or {})}
    )
    target, win_by = cfg["pointsTo"], cfg["winBy"]
    entries = list(game_scores)
    winners = []
    for index, entry in enumerate(entries, start=1):
        label = f"Game {index}"
        pa = coerce_score(entry.points_a, f"{label} points")
        pb = coerce_score(entry.points_b, f"{label} points")
        if pa < 0 or pb < 0:
            raise InvalidMatchDataError(f"{label}: point scores cannot be negative.")
        high, low = max(pa, pb), min(pa, pb)
        if high < target:
            raise InvalidMatchDataError(
                f"{label}: winner must have at least {target} points."
            )
        if high - low < win_by:
            raise InvalidMatchDataError(f"{label}: must win by {win_by} points.")
        winners.append("A" if pa > pb else "B")
    _check_best_of_three(winners, "game")


def validate_league_scores(match) -> None:
    """Validate the recorded scores of ``match`` for its sport.

    Walkovers carry no scores and are not checked.
    """
    if match.is_walkover:
        return
    sport = normalize_sport(match.sport_id)
    if sport == "pickleball":
        validate_league_game_scores(match.game_scores)
    else:
        validate_league_set_scores(match.set_scores, match.final_set_format)
