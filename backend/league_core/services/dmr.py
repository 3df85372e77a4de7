"""DMR: a Glicko-2 rating with margin-of-victory scaling for racquet sports.

Ratings are kept per (player, season, sport, game mode). A processed match
moves every participant by a capped delta, tightens their RD and appends a
``RatingHistory`` row holding the before/after snapshot, which is what a
reversal later restores.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Collection, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config as settings
from ..exceptions import InvalidMatchDataError, MatchNotCompleted
from ..models import (
    GAME_MODE_DOUBLES,
    GAME_MODE_SINGLES,
    MATCH_STATUS_COMPLETED,
    REASON_INACTIVITY_DECAY,
    REASON_INITIAL_PLACEMENT,
    REASON_MANUAL_ADJUSTMENT,
    REASON_MATCH_LOSS,
    REASON_MATCH_REVERSAL,
    REASON_MATCH_WIN,
    PlayerRating,
    RatingHistory,
)
from ..scoring import normalize_sport
from ..scoring.outcome import other_side
from ..time_utils import days_between, to_naive_utc, utcnow
from ..unit_of_work import UnitOfWork
from .results import load_match, match_outcome, side_player_ids
from .summary import SweepSummary
from .validation import played_as_match_tiebreak, validate_rating_sets

logger = logging.getLogger(__name__)

# 400 / ln(10): converts between the Glicko and Glicko-2 scales.
GLICKO_SCALE = 173.7178
REVERSED_NOTE = "[REVERSED]"


@dataclass(frozen=True)
class DMRConfig:
    tau: float = 0.5
    epsilon: float = 0.000001
    max_iterations: int = 100

    set_weight: float = 0.7
    point_weight: float = 0.3
    dampening: float = 0.7
    score_factor_soften: bool = True

    default_rating: float = 1500.0
    default_rd: float = 350.0
    min_rd: float = 30.0
    max_rd: float = 350.0
    default_volatility: float = 0.06
    provisional_matches: int = 10

    inactivity_threshold_days: int = field(
        default_factory=lambda: settings.INACTIVITY_THRESHOLD_DAYS
    )
    inactivity_rd_increase_rate: float = 0.1
    min_rd_increase: float = 5.0

    cap_k: float = 0.08
    abs_max_delta: float = 75.0

    doubles_rd_blend: float = 0.5
    doubles_vol_blend: float = 0.35


DEFAULT_CONFIG = DMRConfig()


@dataclass(frozen=True)
class RatingPlacement:
    """Starting values for a player's first rating, e.g. from a skill questionnaire."""

    singles: Optional[float] = None
    doubles: Optional[float] = None
    rd: Optional[float] = None

    def rating_for(self, game_mode: str) -> Optional[float]:
        return self.doubles if game_mode == GAME_MODE_DOUBLES else self.singles


@dataclass(frozen=True)
class RatingUpdate:
    player_id: str
    rating_id: str
    old_rating: float
    new_rating: float
    delta: float
    old_rd: float
    new_rd: float
    old_volatility: float
    new_volatility: float
    matches_played: int


@dataclass
class MatchRatingResult:
    updates: Dict[str, RatingUpdate]
    winner_ids: List[str]
    loser_ids: List[str]
    score_factor: float


# ---------------------------------------------------------------------------
# Glicko-2 math


def scale_down(rating: float) -> float:
    return (rating - 1500.0) / GLICKO_SCALE


def scale_up(mu: float) -> float:
    return mu * GLICKO_SCALE + 1500.0


def _g(phi: float) -> float:
    return 1 / math.sqrt(1 + 3 * phi * phi / (math.pi**2))


def _expected(mu: float, mu_j: float, phi_j: float) -> float:
    return 1 / (1 + math.exp(-_g(phi_j) * (mu - mu_j)))


def _new_volatility(
    sigma: float, phi: float, v: float, delta: float, cfg: DMRConfig
) -> float:
    """Solve for the new volatility with the Illinois variant of regula falsi."""

    tau = cfg.tau
    a = math.log(sigma * sigma)

    def f(x: float) -> float:
        ex = math.exp(x)
        num = ex * (delta * delta - phi * phi - v - ex)
        den = 2 * (phi * phi + v + ex) ** 2
        return num / den - (x - a) / (tau * tau)

    A = a
    if delta * delta > phi * phi + v:
        B = math.log(delta * delta - phi * phi - v)
    else:
        k = 1
        while f(a - k * tau) < 0 and k < cfg.max_iterations:
            k += 1
        B = a - k * tau

    fA, fB = f(A), f(B)
    iterations = 0
    while abs(B - A) > cfg.epsilon and iterations < cfg.max_iterations:
        iterations += 1
        if fB == fA:
            break
        C = A + (A - B) * fA / (fB - fA)
        fC = f(C)
        if fC * fB <= 0:
            A, fA = B, fB
        else:
            fA = fA / 2
        B, fB = C, fC

    return math.exp(A / 2)


def glicko2_update(
    mu: float,
    phi: float,
    sigma: float,
    outcomes: Sequence[tuple[float, float, float]],
    cfg: DMRConfig = DEFAULT_CONFIG,
) -> tuple[float, float, float]:
    """Return ``(mu, phi, sigma)`` after one rating period on the Glicko-2 scale.

    Args:
        mu: Current rating (Glicko-2 scale).
        phi: Current rating deviation (Glicko-2 scale).
        sigma: Current volatility.
        outcomes: ``(opponent_mu, opponent_phi, score)`` tuples where ``score``
            is ``1`` for a win and ``0`` for a loss.
    """

    if not outcomes:
        new_phi = math.sqrt(phi * phi + sigma * sigma)
        return mu, min(new_phi, cfg.max_rd / GLICKO_SCALE), sigma

    v_inv = 0.0
    delta_sum = 0.0
    for mu_j, phi_j, score in outcomes:
        g = _g(phi_j)
        e = _expected(mu, mu_j, phi_j)
        v_inv += g * g * e * (1 - e)
        delta_sum += g * (score - e)

    v = 1 / max(v_inv, cfg.epsilon)
    delta = v * delta_sum

    new_sigma = _new_volatility(sigma, phi, v, delta, cfg)
    phi_star = math.sqrt(phi * phi + new_sigma * new_sigma)
    new_phi = 1 / math.sqrt(1 / (phi_star * phi_star) + 1 / v)
    new_mu = mu + new_phi * new_phi * delta_sum
    return new_mu, new_phi, new_sigma


def win_probability(rating: float, rd: float, opp_rating: float, opp_rd: float) -> float:
    """Probability that a player beats an opponent.

    The rating gap is discounted by both players' deviations combined, so
    the estimate drifts back toward 0.5 as either player gets less certain.
    """

    combined_phi = math.sqrt(rd * rd + opp_rd * opp_rd) / GLICKO_SCALE
    return _expected(scale_down(rating), scale_down(opp_rating), combined_phi)


def confidence_interval(rating: float, rd: float) -> tuple[float, float]:
    return rating - 2 * rd, rating + 2 * rd


def score_factor(
    winner_sets: int,
    loser_sets: int,
    winner_points: int,
    loser_points: int,
    num_sets: int,
    cfg: DMRConfig = DEFAULT_CONFIG,
) -> float:
    """Margin-of-victory multiplier, never below ``1.0``."""

    set_diff = (winner_sets - loser_sets) / max(num_sets, 3)
    total = winner_points + loser_points
    point_diff = (winner_points - loser_points) / total if total > 0 else 0.0
    factor = 1 + (cfg.set_weight * set_diff + cfg.point_weight * point_diff) * 0.5
    return max(1.0, factor)


def max_rating_change(rd: float, cfg: DMRConfig = DEFAULT_CONFIG) -> float:
    return min(cfg.cap_k * rd, cfg.abs_max_delta)


def cap_rating_change(delta: float, rd: float, cfg: DMRConfig = DEFAULT_CONFIG) -> float:
    limit = max_rating_change(rd, cfg)
    return max(-limit, min(limit, delta))


def clamp_rd(rd: float, cfg: DMRConfig = DEFAULT_CONFIG) -> float:
    return max(cfg.min_rd, min(cfg.max_rd, rd))


def doubles_player_rd(
    player_rd: float,
    team_new_rd: float,
    team_old_rd: float,
    cfg: DMRConfig = DEFAULT_CONFIG,
) -> float:
    """Shrink a doubles player's RD by the information the team result carries."""

    if team_old_rd - team_new_rd > 0:
        info_variance = (team_old_rd**2) * cfg.doubles_rd_blend
        if info_variance > 0:
            posterior = 1 / (1 / (player_rd**2) + 1 / info_variance)
            return clamp_rd(math.sqrt(posterior), cfg)
    blended = (1 - cfg.doubles_rd_blend) * player_rd + cfg.doubles_rd_blend * team_new_rd
    return clamp_rd(blended, cfg)


def _tally_sets(sets: Sequence[Dict[str, int]]) -> tuple[int, int, int, int]:
    sets_a = sum(1 for s in sets if s["A"] > s["B"])
    sets_b = sum(1 for s in sets if s["B"] > s["A"])
    points_a = sum(s["A"] for s in sets)
    points_b = sum(s["B"] for s in sets)
    return sets_a, sets_b, points_a, points_b


def rating_set_scores(match) -> List[Dict[str, int]]:
    """Per-set ``{A, B}`` scores of ``match`` as fed to the rating engine.

    Sets decided on tiebreak points (including a deciding match tiebreak)
    contribute those points, so no rated set is ever level.
    """

    if normalize_sport(match.sport_id) == "pickleball":
        return [{"A": g.points_a, "B": g.points_b} for g in match.game_scores]

    sets = []
    for index, entry in enumerate(match.set_scores, start=1):
        a, b = entry.games_a, entry.games_b
        number = entry.set_number or index
        if played_as_match_tiebreak(entry, number, match.final_set_format) or (
            entry.tiebreak_a is not None and entry.tiebreak_b is not None and a == b
        ):
            a, b = entry.tiebreak_a, entry.tiebreak_b
        sets.append({"A": a, "B": b})
    return sets


# ---------------------------------------------------------------------------
# Persistence


class DMRRatingService:
    """Applies DMR updates for one sport through an explicit session.

    Construct one per request or job; it holds no state besides the session,
    the sport and the constants.
    """

    def __init__(
        self,
        session: AsyncSession,
        sport_id: str = "pickleball",
        config: Optional[DMRConfig] = None,
    ) -> None:
        self.session = session
        self.sport_id = normalize_sport(sport_id)
        self.config = config or DMRConfig()

    # pure helpers bound to this service's constants

    def win_probability(self, rating: float, rd: float, opp_rating: float, opp_rd: float) -> float:
        return win_probability(rating, rd, opp_rating, opp_rd)

    def confidence_interval(self, rating: float, rd: float) -> tuple[float, float]:
        return confidence_interval(rating, rd)

    def score_factor(self, winner_sets, loser_sets, winner_points, loser_points, num_sets) -> float:
        return score_factor(
            winner_sets, loser_sets, winner_points, loser_points, num_sets, self.config
        )

    def cap_rating_change(self, delta: float, rd: float) -> float:
        return cap_rating_change(delta, rd, self.config)

    async def get_rating(
        self, player_id: str, season_id: str, game_mode: str
    ) -> Optional[PlayerRating]:
        return (
            await self.session.execute(
                select(PlayerRating).where(
                    PlayerRating.player_id == player_id,
                    PlayerRating.season_id == season_id,
                    PlayerRating.sport_id == self.sport_id,
                    PlayerRating.game_mode == game_mode,
                )
            )
        ).scalar_one_or_none()

    async def get_or_create_rating(
        self,
        player_id: str,
        season_id: str,
        game_mode: str = GAME_MODE_SINGLES,
        placement: Optional[RatingPlacement] = None,
    ) -> PlayerRating:
        """Return the player's rating, creating it with an initial placement row."""

        rating = await self.get_rating(player_id, season_id, game_mode)
        if rating is not None:
            return rating

        cfg = self.config
        initial = (placement.rating_for(game_mode) if placement else None) or cfg.default_rating
        initial_rd = clamp_rd((placement.rd if placement else None) or cfg.default_rd, cfg)
        now = utcnow()

        async with UnitOfWork(self.session):
            rating = PlayerRating(
                id=uuid.uuid4().hex,
                player_id=player_id,
                season_id=season_id,
                sport_id=self.sport_id,
                game_mode=game_mode,
                rating=initial,
                rd=initial_rd,
                volatility=cfg.default_volatility,
                is_provisional=True,
                matches_played=0,
                peak_rating=initial,
                peak_rating_at=now,
                lowest_rating=initial,
                last_updated=now,
            )
            self.session.add(rating)
            self.session.add(
                RatingHistory(
                    id=uuid.uuid4().hex,
                    player_rating_id=rating.id,
                    reason=REASON_INITIAL_PLACEMENT,
                    rating_before=cfg.default_rating,
                    rating_after=initial,
                    delta=initial - cfg.default_rating,
                    rd_before=cfg.default_rd,
                    rd_after=initial_rd,
                    volatility_before=cfg.default_volatility,
                    volatility_after=cfg.default_volatility,
                    matches_played_before=0,
                    notes="Initial rating from placement" if placement else "Initial default rating",
                    created_at=now,
                )
            )

        logger.info(
            "created %s %s rating for player %s: %.1f",
            self.sport_id,
            game_mode,
            player_id,
            initial,
        )
        return rating

    def _apply(
        self,
        rating: PlayerRating,
        *,
        delta: float,
        new_rd: float,
        new_volatility: float,
        reason: str,
        match_id: Optional[str],
        played_at: datetime,
    ) -> RatingUpdate:
        cfg = self.config
        old_rating, old_rd, old_vol = rating.rating, rating.rd, rating.volatility
        matches_before = rating.matches_played or 0
        new_rating = old_rating + delta

        rating.rating = new_rating
        rating.rd = new_rd
        rating.volatility = new_volatility
        rating.matches_played = matches_before + 1
        rating.last_updated = played_at
        if match_id:
            rating.last_match_id = match_id
        if rating.is_provisional and rating.matches_played >= cfg.provisional_matches:
            rating.is_provisional = False
        if new_rating > (rating.peak_rating or float("-inf")):
            rating.peak_rating = new_rating
            rating.peak_rating_at = played_at
        if new_rating < (rating.lowest_rating or float("inf")):
            rating.lowest_rating = new_rating

        self.session.add(
            RatingHistory(
                id=uuid.uuid4().hex,
                player_rating_id=rating.id,
                match_id=match_id,
                reason=reason,
                rating_before=old_rating,
                rating_after=new_rating,
                delta=delta,
                rd_before=old_rd,
                rd_after=new_rd,
                volatility_before=old_vol,
                volatility_after=new_volatility,
                matches_played_before=matches_before,
                created_at=utcnow(),
            )
        )
        return RatingUpdate(
            player_id=rating.player_id,
            rating_id=rating.id,
            old_rating=old_rating,
            new_rating=new_rating,
            delta=delta,
            old_rd=old_rd,
            new_rd=new_rd,
            old_volatility=old_vol,
            new_volatility=new_volatility,
            matches_played=rating.matches_played,
        )

    def _effective_factor(self, factor: float) -> float:
        return math.sqrt(factor) if self.config.score_factor_soften else factor

    def _validated_sets(self, set_scores) -> List[Dict[str, int]]:
        return validate_rating_sets(self.sport_id, set_scores)

    async def process_singles_match(
        self,
        winner_id: str,
        loser_id: str,
        set_scores: Optional[List[Dict[str, int]]],
        *,
        season_id: str,
        match_id: Optional[str] = None,
        match_date: Optional[datetime] = None,
        is_walkover: bool = False,
        apply_to: Optional[Collection[str]] = None,
    ) -> MatchRatingResult:
        """Rate a singles match.

        ``set_scores`` are ``{A, B}`` dictionaries from the winner's
        perspective (``A`` is the winner's score). Walkovers need no scores
        and use a score factor of ``1.0``. When ``apply_to`` is given only
        those players' ratings are written; the others are read as they
        stand.
        """

        if winner_id == loser_id:
            raise InvalidMatchDataError("A player cannot play against themselves.")

        cfg = self.config
        if is_walkover:
            factor = 1.0
        else:
            sets = self._validated_sets(set_scores)
            won, lost, points_won, points_lost = _tally_sets(sets)
            if won <= lost:
                raise InvalidMatchDataError(
                    "The winner must have won more sets than the loser."
                )
            factor = self.score_factor(won, lost, points_won, points_lost, len(sets))

        played_at = to_naive_utc(match_date) or utcnow()
        async with UnitOfWork(self.session):
            winner = await self.get_or_create_rating(winner_id, season_id, GAME_MODE_SINGLES)
            loser = await self.get_or_create_rating(loser_id, season_id, GAME_MODE_SINGLES)

            w_mu, w_phi = scale_down(winner.rating), winner.rd / GLICKO_SCALE
            l_mu, l_phi = scale_down(loser.rating), loser.rd / GLICKO_SCALE
            w_new = glicko2_update(w_mu, w_phi, winner.volatility, [(l_mu, l_phi, 1.0)], cfg)
            l_new = glicko2_update(l_mu, l_phi, loser.volatility, [(w_mu, w_phi, 0.0)], cfg)

            effective = self._effective_factor(factor) * cfg.dampening
            updates = {}
            for rating, (mu, phi, sigma), reason in (
                (winner, w_new, REASON_MATCH_WIN),
                (loser, l_new, REASON_MATCH_LOSS),
            ):
                if apply_to is not None and rating.player_id not in apply_to:
                    continue
                delta = self.cap_rating_change(
                    (scale_up(mu) - rating.rating) * effective, rating.rd
                )
                new_rd = clamp_rd(min(phi * GLICKO_SCALE, rating.rd), cfg)
                updates[rating.player_id] = self._apply(
                    rating,
                    delta=delta,
                    new_rd=new_rd,
                    new_volatility=sigma,
                    reason=reason,
                    match_id=match_id,
                    played_at=played_at,
                )

        logger.info(
            "rated singles match %s: %s (score factor %.3f)",
            match_id or "-",
            ", ".join(f"{pid} {u.delta:+.1f}" for pid, u in updates.items()),
            factor,
        )
        return MatchRatingResult(updates, [winner_id], [loser_id], factor)

    async def process_doubles_match(
        self,
        team_a_ids: Sequence[str],
        team_b_ids: Sequence[str],
        set_scores: Optional[List[Dict[str, int]]],
        *,
        season_id: str,
        match_id: Optional[str] = None,
        match_date: Optional[datetime] = None,
        is_walkover: bool = False,
        winner_side: Optional[str] = None,
        apply_to: Optional[Collection[str]] = None,
    ) -> MatchRatingResult:
        """Rate a doubles match.

        ``set_scores`` are ``{A, B}`` dictionaries with ``A`` for
        ``team_a_ids``. The team delta is split between partners in
        proportion to their RDs, so the less certain partner moves more.
        Walkovers take the winner from ``winner_side``. ``apply_to`` works
        as for singles.
        """

        team_a, team_b = list(team_a_ids), list(team_b_ids)
        if len(team_a) != 2 or len(team_b) != 2:
            raise InvalidMatchDataError("Each doubles team must have exactly 2 players.")
        if len(set(team_a + team_b)) != 4:
            raise InvalidMatchDataError("All four doubles players must be different.")

        cfg = self.config
        if is_walkover:
            if winner_side not in ("A", "B"):
                raise InvalidMatchDataError("A walkover needs a winning side.")
            factor = 1.0
        else:
            sets = self._validated_sets(set_scores)
            sets_a, sets_b, points_a, points_b = _tally_sets(sets)
            if sets_a == sets_b:
                raise InvalidMatchDataError(
                    f"No team won a majority of sets ({sets_a}-{sets_b})."
                )
            declared = winner_side
            winner_side = "A" if sets_a > sets_b else "B"
            if declared and declared != winner_side:
                raise InvalidMatchDataError(
                    "The declared winner must have won more sets than the loser."
                )
            if winner_side == "A":
                factor = self.score_factor(sets_a, sets_b, points_a, points_b, len(sets))
            else:
                factor = self.score_factor(sets_b, sets_a, points_b, points_a, len(sets))

        teams = {"A": team_a, "B": team_b}
        winner_ids = teams[winner_side]
        loser_ids = teams[other_side(winner_side)]
        played_at = to_naive_utc(match_date) or utcnow()

        async with UnitOfWork(self.session):
            winners = [
                await self.get_or_create_rating(pid, season_id, GAME_MODE_DOUBLES)
                for pid in winner_ids
            ]
            losers = [
                await self.get_or_create_rating(pid, season_id, GAME_MODE_DOUBLES)
                for pid in loser_ids
            ]

            def team_state(players):
                rating = sum(p.rating for p in players) / 2
                rd = math.sqrt(sum(p.rd**2 for p in players) / 2)
                vol = sum(p.volatility for p in players) / 2
                return rating, rd, vol

            w_rating, w_rd, w_vol = team_state(winners)
            l_rating, l_rd, l_vol = team_state(losers)
            w_mu, w_phi = scale_down(w_rating), w_rd / GLICKO_SCALE
            l_mu, l_phi = scale_down(l_rating), l_rd / GLICKO_SCALE
            w_new = glicko2_update(w_mu, w_phi, w_vol, [(l_mu, l_phi, 1.0)], cfg)
            l_new = glicko2_update(l_mu, l_phi, l_vol, [(w_mu, w_phi, 0.0)], cfg)

            effective = self._effective_factor(factor) * cfg.dampening
            updates: Dict[str, RatingUpdate] = {}
            for players, team_rating, team_rd, (mu, phi, sigma), reason in (
                (winners, w_rating, w_rd, w_new, REASON_MATCH_WIN),
                (losers, l_rating, l_rd, l_new, REASON_MATCH_LOSS),
            ):
                team_delta = (scale_up(mu) - team_rating) * effective
                team_new_rd = phi * GLICKO_SCALE
                rd_sum = sum(p.rd for p in players)
                for player in players:
                    if apply_to is not None and player.player_id not in apply_to:
                        continue
                    delta = self.cap_rating_change(
                        team_delta * player.rd / rd_sum, player.rd
                    )
                    new_rd = min(
                        doubles_player_rd(player.rd, team_new_rd, team_rd, cfg),
                        player.rd,
                    )
                    new_vol = (1 - cfg.doubles_vol_blend) * player.volatility + (
                        cfg.doubles_vol_blend * sigma
                    )
                    updates[player.player_id] = self._apply(
                        player,
                        delta=delta,
                        new_rd=clamp_rd(new_rd, cfg),
                        new_volatility=new_vol,
                        reason=reason,
                        match_id=match_id,
                        played_at=played_at,
                    )

        logger.info(
            "rated doubles match %s: winners %s, losers %s (score factor %.3f)",
            match_id or "-",
            winner_ids,
            loser_ids,
            factor,
        )
        return MatchRatingResult(updates, list(winner_ids), list(loser_ids), factor)

    async def adjust_rating(
        self,
        player_id: str,
        season_id: str,
        game_mode: str,
        new_rating: float,
        *,
        note: Optional[str] = None,
    ) -> RatingUpdate:
        """Set a rating by hand, e.g. after an admin review."""

        async with UnitOfWork(self.session):
            rating = await self.get_or_create_rating(player_id, season_id, game_mode)
            old_rating = rating.rating
            delta = new_rating - old_rating
            rating.rating = new_rating
            rating.last_updated = utcnow()
            if new_rating > (rating.peak_rating or float("-inf")):
                rating.peak_rating = new_rating
                rating.peak_rating_at = rating.last_updated
            if new_rating < (rating.lowest_rating or float("inf")):
                rating.lowest_rating = new_rating
            self.session.add(
                RatingHistory(
                    id=uuid.uuid4().hex,
                    player_rating_id=rating.id,
                    reason=REASON_MANUAL_ADJUSTMENT,
                    rating_before=old_rating,
                    rating_after=new_rating,
                    delta=delta,
                    rd_before=rating.rd,
                    rd_after=rating.rd,
                    volatility_before=rating.volatility,
                    volatility_after=rating.volatility,
                    matches_played_before=rating.matches_played,
                    notes=note,
                    created_at=rating.last_updated,
                )
            )

        logger.info(
            "manually adjusted rating %s for player %s: %.1f -> %.1f",
            rating.id,
            player_id,
            old_rating,
            new_rating,
        )
        return RatingUpdate(
            player_id=player_id,
            rating_id=rating.id,
            old_rating=old_rating,
            new_rating=new_rating,
            delta=delta,
            old_rd=rating.rd,
            new_rd=rating.rd,
            old_volatility=rating.volatility,
            new_volatility=rating.volatility,
            matches_played=rating.matches_played,
        )


# ---------------------------------------------------------------------------
# Match-level entry points


async def has_rating_history(session: AsyncSession, match_id: str) -> bool:
    found = (
        await session.execute(
            select(RatingHistory.id)
            .where(
                RatingHistory.match_id == match_id,
                RatingHistory.reason.in_([REASON_MATCH_WIN, REASON_MATCH_LOSS]),
                RatingHistory.reversed.is_(False),
            )
            .limit(1)
        )
    ).first()
    return found is not None


async def rate_match(
    session: AsyncSession,
    match_id: str,
    *,
    config: Optional[DMRConfig] = None,
    players: Optional[Collection[str]] = None,
) -> Optional[MatchRatingResult]:
    """Apply the rating update for a completed match.

    Returns ``None`` when the match is outside a season or has already been
    rated and not reversed since. With ``players`` only those ratings move
    and the already-rated check is skipped, which is how a single player's
    history is replayed.
    """

    match = await load_match(session, match_id)
    if match.status != MATCH_STATUS_COMPLETED:
        raise MatchNotCompleted(match_id, match.status)
    if not match.season_id:
        logger.warning("match %s has no season; skipping rating update", match_id)
        return None
    if players is None and await has_rating_history(session, match_id):
        logger.info("match %s is already rated; nothing to do", match_id)
        return None

    sides = side_player_ids(match)
    if match.is_walkover:
        winner = match.walkover_winner_side
        if winner not in ("A", "B"):
            raise InvalidMatchDataError(
                f"walkover match {match_id} has no winning side recorded"
            )
        sets = None
    else:
        winner = match_outcome(match).winner
        sets = rating_set_scores(match)

    service = DMRRatingService(session, match.sport_id, config)
    played_at = match.played_at or match.completed_at
    if match.game_mode == GAME_MODE_DOUBLES:
        return await service.process_doubles_match(
            sides["A"],
            sides["B"],
            sets,
            season_id=match.season_id,
            match_id=match.id,
            match_date=played_at,
            is_walkover=bool(match.is_walkover),
            winner_side=winner,
            apply_to=players,
        )

    if sets is not None and winner == "B":
        sets = [{"A": s["B"], "B": s["A"]} for s in sets]
    return await service.process_singles_match(
        sides[winner][0],
        sides[other_side(winner)][0],
        sets,
        season_id=match.season_id,
        match_id=match.id,
        match_date=played_at,
        is_walkover=bool(match.is_walkover),
        apply_to=players,
    )


async def reverse_match_ratings(session: AsyncSession, match_id: str) -> int:
    """Undo the rating update of a match.

    Each affected rating goes back to the snapshot stored on its history row
    for the match. Those rows are flagged as reversed, not deleted, and a
    ``match_reversal`` row records the restore. Returns the number of
    ratings restored; a match without history is a no-op.
    """

    entries = (
        await session.execute(
            select(RatingHistory)
            .where(
                RatingHistory.match_id == match_id,
                RatingHistory.reason.in_([REASON_MATCH_WIN, REASON_MATCH_LOSS]),
                RatingHistory.reversed.is_(False),
            )
            .order_by(RatingHistory.created_at)
        )
    ).scalars().all()

    if not entries:
        logger.warning("no rating history found for match %s; nothing to reverse", match_id)
        return 0

    now = utcnow()
    async with UnitOfWork(session):
        for entry in entries:
            rating = await session.get(PlayerRating, entry.player_rating_id)
            current = rating.rating
            current_rd = rating.rd
            current_vol = rating.volatility

            rating.rating = entry.rating_before
            rating.rd = entry.rd_before
            if entry.volatility_before is not None:
                rating.volatility = entry.volatility_before
            if entry.matches_played_before is not None:
                rating.matches_played = entry.matches_played_before
            else:
                rating.matches_played = max(0, (rating.matches_played or 0) - 1)
            rating.last_updated = now

            entry.reversed = True
            entry.reversed_at = now
            entry.notes = f"{entry.notes or ''} {REVERSED_NOTE}".strip()

            session.add(
                RatingHistory(
                    id=uuid.uuid4().hex,
                    player_rating_id=rating.id,
                    match_id=match_id,
                    reason=REASON_MATCH_REVERSAL,
                    rating_before=current,
                    rating_after=rating.rating,
                    delta=rating.rating - current,
                    rd_before=current_rd,
                    rd_after=rating.rd,
                    volatility_before=current_vol,
                    volatility_after=rating.volatility,
                    matches_played_before=entry.matches_played_before,
                    notes=f"Reversal of match {match_id}",
                    created_at=now,
                )
            )

    logger.info("reversed %d rating changes for match %s", len(entries), match_id)
    return len(entries)


async def adjust_for_inactivity(
    session: AsyncSession,
    *,
    season_id: Optional[str] = None,
    sport_id: Optional[str] = None,
    now: Optional[datetime] = None,
    config: Optional[DMRConfig] = None,
) -> SweepSummary:
    """Widen the RD of ratings with no rated match within the threshold.

    The increase is ``rd * rate * periods`` (at least ``min_rd_increase``)
    where ``periods`` is the idle time in threshold-sized periods, capped at
    the maximum RD. A rating is decayed at most once per threshold window.
    """

    cfg = config or DMRConfig()
    now = to_naive_utc(now) or utcnow()
    cutoff = now - timedelta(days=cfg.inactivity_threshold_days)

    last_decay = (
        select(
            RatingHistory.player_rating_id.label("rating_id"),
            func.max(RatingHistory.created_at).label("decayed_at"),
        )
        .where(RatingHistory.reason == REASON_INACTIVITY_DECAY)
        .group_by(RatingHistory.player_rating_id)
        .subquery()
    )
    stmt = (
        select(PlayerRating)
        .outerjoin(last_decay, last_decay.c.rating_id == PlayerRating.id)
        .where(
            PlayerRating.last_updated < cutoff,
            PlayerRating.rd < cfg.max_rd,
            (last_decay.c.decayed_at.is_(None)) | (last_decay.c.decayed_at < cutoff),
        )
        .order_by(PlayerRating.id)
    )
    if season_id:
        stmt = stmt.where(PlayerRating.season_id == season_id)
    if sport_id:
        stmt = stmt.where(PlayerRating.sport_id == normalize_sport(sport_id))
    rating_ids = [rating.id for rating in (await session.execute(stmt)).scalars().all()]

    summary = SweepSummary()
    for rating_id in rating_ids:
        try:
            async with UnitOfWork(session):
                rating = await session.get(PlayerRating, rating_id)
                idle_days = math.floor(days_between(rating.last_updated, now))
                periods = idle_days / cfg.inactivity_threshold_days
                increase = max(cfg.min_rd_increase, rating.rd * cfg.inactivity_rd_increase_rate * periods)
                old_rd = rating.rd
                rating.rd = min(cfg.max_rd, old_rd + increase)
                session.add(
                    RatingHistory(
                        id=uuid.uuid4().hex,
                        player_rating_id=rating.id,
                        reason=REASON_INACTIVITY_DECAY,
                        rating_before=rating.rating,
                        rating_after=rating.rating,
                        delta=0.0,
                        rd_before=old_rd,
                        rd_after=rating.rd,
                        volatility_before=rating.volatility,
                        volatility_after=rating.volatility,
                        matches_played_before=rating.matches_played,
                        notes=f"{idle_days} days inactive",
                        created_at=now,
                    )
                )
            summary.processed += 1
        except SQLAlchemyError:
            logger.error("inactivity adjustment failed for rating %s", rating_id, exc_info=True)
            summary.record_failure(rating_id)

    if summary.processed:
        logger.info("adjusted RD for %d inactive ratings", summary.processed)
    return summary
