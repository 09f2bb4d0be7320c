"""
schemas.py - Pydantic schemas for API request/response validation.

Provides type-safe serialization for FastAPI endpoints: CRUD payloads for
players, matches and match rosters, and the report shapes produced by the
ReportAssembler.
"""

import datetime as dt
from typing import Optional, List, Dict, Union

from pydantic import BaseModel, Field, computed_field, field_validator

from analytics.derived import classify_result

RESULT_PATTERN = r"^\s*\d+\s*-\s*\d+\s*$"


def _reject_null(value):
    # Runs only for fields present in the body; omitted fields keep their default
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


# =============================================================================
# PLAYER SCHEMAS
# =============================================================================

class PlayerBase(BaseModel):
    """Base schema with core player fields."""
    name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    national_id: str = Field(..., min_length=1, max_length=32, description="Unique national identifier")
    date_of_birth: dt.date
    position: Optional[str] = None
    category: Optional[str] = None
    active: bool = True
    attendance: int = Field(0, ge=0, le=100, description="Attendance percentage")


class PlayerCreate(PlayerBase):
    """Schema for creating new players."""
    pass


class PlayerUpdate(BaseModel):
    """Partial update; only provided fields are written."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    national_id: Optional[str] = Field(None, min_length=1, max_length=32)
    date_of_birth: Optional[dt.date] = None
    position: Optional[str] = None
    category: Optional[str] = None
    active: Optional[bool] = None
    attendance: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("name", "last_name", "national_id", "date_of_birth", "active", "attendance")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class PlayerOut(PlayerBase):
    """
    Schema for API responses.

    `age` is derived at request time and never stored.
    """
    id: int
    age: Optional[int] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# MATCH SCHEMAS
# =============================================================================

class MatchBase(BaseModel):
    opponent: str = Field(..., min_length=1, max_length=255)
    result: str = Field(..., pattern=RESULT_PATTERN, description="Score as '<home>-<away>'")
    referee: str = ""
    date: dt.date
    category: Optional[str] = None
    home: bool = Field(False, description="True when the club played at home")


class MatchCreate(MatchBase):
    pass


class MatchUpdate(BaseModel):
    opponent: Optional[str] = Field(None, min_length=1, max_length=255)
    result: Optional[str] = Field(None, pattern=RESULT_PATTERN)
    referee: Optional[str] = None
    date: Optional[dt.date] = None
    category: Optional[str] = None
    home: Optional[bool] = None

    @field_validator("opponent", "result", "referee", "date", "home")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class MatchOut(MatchBase):
    id: int
    created_at: Optional[dt.datetime] = None

    @computed_field
    @property
    def result_type(self) -> str:
        """win / draw / loss from the club's point of view."""
        return classify_result(self.result, self.home)

    class Config:
        from_attributes = True


# =============================================================================
# MATCH ROSTER (PARTICIPATION) SCHEMAS
# =============================================================================

class ParticipationBase(BaseModel):
    minutes_played: int = Field(0, ge=0, le=120)
    goals: int = Field(0, ge=0)
    assists: int = Field(0, ge=0)
    yellow_cards: int = Field(0, ge=0)
    red_cards: int = Field(0, ge=0)
    starter: bool = True
    minute_in: Optional[int] = Field(None, ge=0, le=120, description="Substitution minute (substitutes only)")
    rating: Optional[float] = Field(None, ge=1, le=10)


class ParticipationCreate(ParticipationBase):
    player_id: int


class ParticipationUpdate(BaseModel):
    minutes_played: Optional[int] = Field(None, ge=0, le=120)
    goals: Optional[int] = Field(None, ge=0)
    assists: Optional[int] = Field(None, ge=0)
    yellow_cards: Optional[int] = Field(None, ge=0)
    red_cards: Optional[int] = Field(None, ge=0)
    starter: Optional[bool] = None
    minute_in: Optional[int] = Field(None, ge=0, le=120)
    rating: Optional[float] = Field(None, ge=1, le=10)

    @field_validator("minutes_played", "goals", "assists", "yellow_cards", "red_cards", "starter")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class ParticipationOut(ParticipationBase):
    id: int
    match_id: int
    player_id: int
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class ParticipationWithMatch(ParticipationBase):
    """Participation enriched with its match's metadata (report snapshots)."""
    id: int
    match_id: int
    player_id: int
    match_date: Optional[str] = None
    match_opponent: str = ""
    match_result: str = ""
    match_home: bool = False


# =============================================================================
# HEALTH CHECK
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    database: str
    player_count: int
    match_count: int


# =============================================================================
# REPORT SCHEMAS
# =============================================================================

class SeasonTotals(BaseModel):
    matches: int
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int
    minutes: int
    year: Optional[int] = None


class YearTotals(BaseModel):
    year: int
    matches: int
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int
    minutes: int
    goals_per_match: float
    assists_per_match: float


class TeamStats(BaseModel):
    total_matches: int = Field(..., description="Distinct matches, not participation rows")
    total_players: int
    total_goals: int
    total_assists: int
    total_yellow_cards: int
    total_red_cards: int
    total_minutes: int
    year: Optional[int] = None


class TeamRecord(BaseModel):
    played: int
    wins: int
    draws: int
    losses: int
    unknown: int


class MonthTotals(BaseModel):
    month: int = Field(..., ge=1, le=12)
    month_name: str
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int


class PlayerComparison(BaseModel):
    id: int
    name: str
    age: Optional[int] = None
    matches: int
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int
    minutes: int
    goals_per_match: float
    assists_per_match: float


class YearComparison(BaseModel):
    year: int
    players: List[PlayerComparison]


class MatchHighlight(BaseModel):
    match_id: int
    match_date: str
    opponent: str
    goals: int
    rating: Optional[float] = None


class OpponentGoals(BaseModel):
    opponent: str
    goals: int


class TimelineEntry(BaseModel):
    period: str
    label: str
    goals: int
    assists: int


class ProfileHighlights(BaseModel):
    totals: SeasonTotals
    starter_matches: int
    substitute_matches: int
    goals_per_match: float
    average_minutes: int
    favorite_opponent: Optional[OpponentGoals] = None
    best_match: Optional[MatchHighlight] = None
    longest_scoring_streak: int
    average_rating: Optional[float] = None
    best_rated_match: Optional[MatchHighlight] = None


class ProfilePlayer(BaseModel):
    id: int
    name: str
    last_name: str
    full_name: str
    national_id: str
    date_of_birth: str
    age: int
    position: Optional[str] = None
    category: Optional[str] = None
    active: bool
    attendance: int
    created_at: Optional[str] = None


class PlayerProfileResponse(BaseModel):
    player: ProfilePlayer
    season: SeasonTotals
    highlights: ProfileHighlights
    annual: List[YearTotals] = Field(default_factory=list, description="Newest year first")
    timeline: List[TimelineEntry] = Field(default_factory=list)
    matches: List[ParticipationWithMatch] = Field(default_factory=list, description="Newest match first")


class TeamDashboardResponse(BaseModel):
    year: Optional[int] = None
    stats: TeamStats
    record: TeamRecord
    monthly: List[MonthTotals] = Field(default_factory=list, description="12 entries when a year is selected")
    top_scorers: List[PlayerComparison] = Field(default_factory=list)
    top_assisters: List[PlayerComparison] = Field(default_factory=list)


class AnnualPlayerReport(BaseModel):
    player_id: int
    player_name: str
    years: List[YearTotals]


class ComparisonRequest(BaseModel):
    """Request body for a side-by-side comparison."""
    player_ids: List[int] = Field(..., description="Players to compare, in display order")
    year: Optional[int] = Field(None, description="Restrict to one calendar year")


class ComparisonResponse(BaseModel):
    year: Optional[int] = None
    players: List[PlayerComparison]
    dropped_ids: List[int] = Field(default_factory=list, description="Requested ids that do not exist")


class YearlyComparisonRequest(BaseModel):
    player_ids: List[int] = Field(..., description="Players to compare, in display order")


class ChartRow(BaseModel):
    year: int
    players: Dict[int, Union[int, float]]


class YearlyComparisonResponse(BaseModel):
    years: List[YearComparison]
    charts: Dict[str, List[ChartRow]] = Field(default_factory=dict)
    dropped_ids: List[int] = Field(default_factory=list)


class YearsResponse(BaseModel):
    years: List[int]