import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _int_setting(env_var: str, default: int, *, minimum: int = 0) -> int:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = int(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid integer (got %r); defaulting to %d",
            env_var,
            raw_value,
            default,
        )
        return default

    if value < minimum:
        logger.warning("%s must be >= %d; defaulting to %d", env_var, minimum, default)
        return default

    return value


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Days without a rated match before a player's RD starts widening.
INACTIVITY_THRESHOLD_DAYS = _int_setting(
    "DMR_INACTIVITY_THRESHOLD_DAYS", 30, minimum=1
)

BEST_N_SIZE = _int_setting("BEST_N_SIZE", 6, minimum=1)
BEST_N_POLICY = (os.getenv("BEST_N_POLICY") or "first_wins").strip().lower()

DIVISION_MATCHES_SCHEDULED = _int_setting("DIVISION_MATCHES_SCHEDULED", 9)

# Synthetic games total credited to the winning side of a walkover.
WALKOVER_GAMES = _int_setting("WALKOVER_GAMES", 12)

# Points a league pickleball game is played to.
PICKLEBALL_LEAGUE_POINTS_TO = _int_setting("PICKLEBALL_LEAGUE_POINTS_TO", 15, minimum=1)
