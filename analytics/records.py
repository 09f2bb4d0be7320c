"""
records.py - Plain record types shared by the store and the aggregation engine.

The Record Store converts ORM rows into these dataclasses before handing them
to the engine, so every report is computed over a private, detached snapshot.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class ParticipationRecord:
    """One player's involvement in one match, enriched with match metadata."""
    id: int
    match_id: int
    player_id: int
    minutes_played: int = 0
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    starter: bool = True
    minute_in: Optional[int] = None  # Only meaningful for substitutes
    rating: Optional[float] = None
    match_date: Optional[str] = None  # ISO "YYYY-MM-DD"
    match_opponent: str = ""
    match_result: str = ""
    match_home: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlayerRecord:
    """Squad member as exposed to reports."""
    id: int
    name: str
    last_name: str
    national_id: str
    date_of_birth: str
    position: Optional[str] = None
    category: Optional[str] = None
    active: bool = True
    attendance: int = 0
    created_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MatchRecord:
    """Fixture played by the club."""
    id: int
    opponent: str
    result: str
    date: str
    referee: str = ""
    category: Optional[str] = None
    home: bool = False
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
