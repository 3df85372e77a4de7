"""Padel outcome parser.
Padel sets are scored like tennis sets, so the tennis tally is reused with
padel defaults."""

from typing import Dict, Iterable, Optional

from . import tennis
from .outcome import MatchOutcome


def init_config(config: Optional[Dict] = None) -> Dict:
    """Padel leagues default to a deciding match tiebreak in a best of three."""
    return tennis.init_config(config)


def parse_outcome(set_scores: Iterable, config: Optional[Dict] = None) -> MatchOutcome:
    return tennis.parse_outcome(set_scores, init_config(config))
