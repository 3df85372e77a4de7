from sqlalchemy.orm import relationship
from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Float,
    Boolean,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base
from .time_utils import utcnow

# Match lifecycle states owned by the match-workflow collaborator.
MATCH_STATUS_SCHEDULED = "scheduled"
MATCH_STATUS_IN_PROGRESS = "in_progress"
MATCH_STATUS_COMPLETED = "completed"
MATCH_STATUS_VOIDED = "voided"

GAME_MODE_SINGLES = "singles"
GAME_MODE_DOUBLES = "doubles"

FINAL_SET_MATCH_TIEBREAK = "match_tiebreak"
FINAL_SET_FULL = "full_set"

# RatingHistory.reason values
REASON_INITIAL_PLACEMENT = "initial_placement"
REASON_MATCH_WIN = "match_win"
REASON_MATCH_LOSS = "match_loss"
REASON_INACTIVITY_DECAY = "inactivity_decay"
REASON_MANUAL_ADJUSTMENT = "manual_adjustment"
REASON_RECALCULATION = "recalculation"
REASON_MATCH_REVERSAL = "match_reversal"


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    deleted_at = Column(DateTime, nullable=True)


class Season(Base):
    __tablename__ = "season"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)


class Division(Base):
    __tablename__ = "division"
    id = Column(String, primary_key=True)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    name = Column(String, nullable=False)
    sport_id = Column(String, nullable=True)
    matches_scheduled = Column(Integer, nullable=True)


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    sport_id = Column(String, nullable=False)  # "tennis" | "padel" | "pickleball"
    game_mode = Column(String, nullable=False, default=GAME_MODE_SINGLES)
    status = Column(String, nullable=False, default=MATCH_STATUS_SCHEDULED)
    division_id = Column(String, ForeignKey("division.id"), nullable=True)
    season_id = Column(String, ForeignKey("season.id"), nullable=True)
    final_set_format = Column(
        String, nullable=False, default=FINAL_SET_MATCH_TIEBREAK
    )
    is_walkover = Column(Boolean, nullable=False, default=False)
    walkover_winner_side = Column(String, nullable=True)  # "A" | "B"
    played_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    participants = relationship(
        "MatchParticipant",
        cascade="all, delete-orphan",
        order_by="MatchParticipant.position",
        back_populates="match",
        lazy="selectin",
    )
    set_scores = relationship(
        "SetScore",
        cascade="all, delete-orphan",
        order_by="SetScore.set_number",
        lazy="selectin",
    )
    game_scores = relationship(
        "GameScore",
        cascade="all, delete-orphan",
        order_by="GameScore.game_number",
        lazy="selectin",
    )


class MatchParticipant(Base):
    __tablename__ = "match_participant"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), nullable=False)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    team = Column(String, nullable=True)  # "A" | "B"; may be missing for singles
    position = Column(Integer, nullable=False, default=0)  # creation order
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    match = relationship("Match", back_populates="participants")

    __table_args__ = (
        UniqueConstraint(
            "match_id", "player_id", name="uq_match_participant_match_player"
        ),
    )


class SetScore(Base):
    """Tennis/padel games per set, with optional tiebreak points."""

    __tablename__ = "set_score"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), nullable=False)
    set_number = Column(Integer, nullable=False)
    games_a = Column(Integer, nullable=False, default=0)
    games_b = Column(Integer, nullable=False, default=0)
    tiebreak_a = Column(Integer, nullable=True)
    tiebreak_b = Column(Integer, nullable=True)


class GameScore(Base):
    """Pickleball rally points per game."""

    __tablename__ = "game_score"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), nullable=False)
    game_number = Column(Integer, nullable=False)
    points_a = Column(Integer, nullable=False, default=0)
    points_b = Column(Integer, nullable=False, default=0)


class MatchResult(Base):
    """One immutable scoring record per participant of a completed match.

    ``counts_for_standings`` and ``result_sequence`` belong to the best-N
    selection; nothing else writes them.
    """

    __tablename__ = "match_result"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), nullable=False)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    opponent_id = Column(String, ForeignKey("player.id"), nullable=True)
    division_id = Column(String, ForeignKey("division.id"), nullable=False)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    sport_id = Column(String, nullable=False)
    game_mode = Column(String, nullable=False)
    is_win = Column(Boolean, nullable=False)
    participation_points = Column(Integer, nullable=False, default=1)
    sets_won_points = Column(Integer, nullable=False, default=0)
    win_bonus_points = Column(Integer, nullable=False, default=0)
    match_points = Column(Integer, nullable=False)
    margin = Column(Integer, nullable=False, default=0)
    sets_won = Column(Integer, nullable=False, default=0)
    sets_lost = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    games_lost = Column(Integer, nullable=False, default=0)
    date_played = Column(DateTime, nullable=True)
    counts_for_standings = Column(Boolean, nullable=False, default=False)
    result_sequence = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_match_result_match_player"),
        Index("ix_match_result_division_player", "division_id", "season_id", "player_id"),
    )


class PlayerRating(Base):
    """Current DMR snapshot for a player in one season, sport and game mode."""

    __tablename__ = "player_rating"
    id = Column(String, primary_key=True)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    sport_id = Column(String, nullable=False)
    game_mode = Column(String, nullable=False)
    rating = Column(Float, nullable=False, default=1500.0)
    rd = Column(Float, nullable=False, default=350.0)
    volatility = Column(Float, nullable=False, default=0.06)
    is_provisional = Column(Boolean, nullable=False, default=True)
    matches_played = Column(Integer, nullable=False, default=0)
    peak_rating = Column(Float, nullable=False, default=1500.0)
    peak_rating_at = Column(DateTime, nullable=True)
    lowest_rating = Column(Float, nullable=False, default=1500.0)
    last_match_id = Column(String, nullable=True)
    last_updated = Column(DateTime, nullable=True, default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "player_id",
            "season_id",
            "sport_id",
            "game_mode",
            name="uq_player_rating_scope",
        ),
    )


class RatingHistory(Base):
    """Append-only ledger of rating-affecting events."""

    __tablename__ = "rating_history"
    id = Column(String, primary_key=True)
    player_rating_id = Column(String, ForeignKey("player_rating.id"), nullable=False)
    match_id = Column(String, ForeignKey("match.id"), nullable=True)
    reason = Column(String, nullable=False)
    rating_before = Column(Float, nullable=False)
    rating_after = Column(Float, nullable=False)
    delta = Column(Float, nullable=False)
    rd_before = Column(Float, nullable=False)
    rd_after = Column(Float, nullable=False)
    volatility_before = Column(Float, nullable=True)
    volatility_after = Column(Float, nullable=True)
    matches_played_before = Column(Integer, nullable=True)
    reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    player_rating = relationship("PlayerRating")

    __table_args__ = (Index("ix_rating_history_match_id", "match_id"),)


class DivisionStanding(Base):
    __tablename__ = "division_standing"
    id = Column(String, primary_key=True)
    division_id = Column(String, ForeignKey("division.id"), nullable=False)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    rank = Column(Integer, nullable=True)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    matches_played = Column(Integer, nullable=False, default=0)
    matches_scheduled = Column(Integer, nullable=False, default=9)
    counted_wins = Column(Integer, nullable=False, default=0)
    counted_losses = Column(Integer, nullable=False, default=0)
    win_points = Column(Integer, nullable=False, default=0)
    set_points = Column(Integer, nullable=False, default=0)
    completion_bonus = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    sets_won = Column(Integer, nullable=False, default=0)
    sets_lost = Column(Integer, nullable=False, default=0)
    set_differential = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    games_lost = Column(Integer, nullable=False, default=0)
    set_win_pct = Column(Float, nullable=False, default=0.0)
    game_win_pct = Column(Float, nullable=False, default=0.0)
    head_to_head = Column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict
    )
    last_calculated_at = Column(DateTime, nullable=True)

    player = relationship("Player", lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "player_id", "division_id", name="uq_division_standing_player_division"
        ),
    )
