from typing import Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .models import GAME_MODE_DOUBLES, GAME_MODE_SINGLES


class RatingSnapshotOut(BaseModel):
    """A player's rating with its uncertainty, as shown on a profile."""

    playerId: str
    seasonId: str
    sportId: str
    gameMode: str
    rating: float
    rd: float
    volatility: float
    confidenceLow: float
    confidenceHigh: float
    isProvisional: bool
    matchesPlayed: int
    peakRating: float
    peakRatingAt: Optional[datetime] = None
    lowestRating: float
    lastUpdated: Optional[datetime] = None


class RatingListOut(BaseModel):
    playerId: str
    ratings: List[RatingSnapshotOut]


class HeadToHeadOut(BaseModel):
    wins: int = 0
    losses: int = 0
    setsWon: int = 0
    setsLost: int = 0


class StandingRowOut(BaseModel):
    playerId: str
    playerName: Optional[str] = None
    rank: Optional[int] = None
    totalPoints: int
    winPoints: int
    setPoints: int
    completionBonus: int
    wins: int
    losses: int
    record: str
    matchesPlayed: int
    matchesScheduled: int
    matchesRemaining: int
    countedWins: int
    countedLosses: int
    setsWon: int
    setsLost: int
    setDifferential: int
    gamesWon: int
    gamesLost: int
    setWinPct: float
    gameWinPct: float
    headToHead: Dict[str, HeadToHeadOut] = Field(default_factory=dict)
    lastCalculatedAt: Optional[datetime] = None


class StandingsOut(BaseModel):
    divisionId: str
    seasonId: Optional[str] = None
    standings: List[StandingRowOut]


class BestNResultOut(BaseModel):
    matchId: str
    opponentId: Optional[str] = None
    opponentName: Optional[str] = None
    isWin: bool
    matchPoints: int
    margin: int
    datePlayed: Optional[datetime] = None
    sequence: Optional[int] = None
    counted: bool


class BestNCompositionOut(BaseModel):
    playerId: str
    divisionId: str
    seasonId: Optional[str] = None
    totalMatches: int
    record: str
    countedWins: int
    countedLosses: int
    countedSummary: str
    totalPoints: int
    results: List[BestNResultOut]


class CompletionSignalOut(BaseModel):
    """Answer of an admin command that processes many items."""

    status: Literal["completed", "completed_with_errors"]
    processed: int
    failed: int


class ReversalOut(BaseModel):
    matchId: str
    ratingsReversed: int
    resultsDeleted: int
    standingsRebuilt: bool


class BestNRecalculateRequest(BaseModel):
    size: Optional[int] = Field(default=None, ge=1)
    policy: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class RatingRecalculateRequest(BaseModel):
    season_id: str = Field(..., min_length=1, alias="seasonId")
    sport_id: Optional[str] = Field(default=None, alias="sportId")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class InactivityRequest(BaseModel):
    season_id: Optional[str] = Field(default=None, alias="seasonId")
    sport_id: Optional[str] = Field(default=None, alias="sportId")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class RatingAdjustRequest(BaseModel):
    season_id: str = Field(..., min_length=1, alias="seasonId")
    sport_id: str = Field(..., min_length=1, alias="sportId")
    game_mode: str = Field(default=GAME_MODE_SINGLES, alias="gameMode")
    rating: float
    note: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("game_mode")
    @classmethod
    def _check_game_mode(cls, value: str) -> str:
        if value not in (GAME_MODE_SINGLES, GAME_MODE_DOUBLES):
            raise ValueError(f"gameMode must be '{GAME_MODE_SINGLES}' or '{GAME_MODE_DOUBLES}'")
        return value
