"""
models.py - SQLAlchemy ORM models for the Club Stats Dashboard.

Three tables:
- players: squad members, unique by national id
- matches: fixtures with a free-text "<home>-<away>" result
- match_players: per-match player statistics (one row per match/player pair)

Deleting a player or a match removes its match_players rows, both through the
ORM relationship cascade and the database-level ON DELETE CASCADE.
"""

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Player(Base):
    """
    Squad member.

    `age` is never stored; it is derived from date_of_birth at read time.
    """
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identity
    name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, index=True)
    national_id = Column(String(32), nullable=False, unique=True)
    date_of_birth = Column(Date, nullable=False)

    # Squad info
    position = Column(String(50), nullable=True)
    category = Column(String(50), nullable=True, index=True)
    active = Column(Boolean, nullable=False, default=True)
    attendance = Column(Integer, nullable=False, default=0)  # Percentage 0-100

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participations = relationship(
        "MatchParticipation",
        back_populates="player",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name} {self.last_name}', national_id='{self.national_id}')>"


class Match(Base):
    """Fixture played by the club. `result` lists the home side's goals first."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    opponent = Column(String(255), nullable=False)
    result = Column(String(20), nullable=False)
    referee = Column(String(255), nullable=False, default="")
    date = Column(Date, nullable=False, index=True)
    category = Column(String(50), nullable=True)
    home = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participations = relationship(
        "MatchParticipation",
        back_populates="match",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Match(id={self.id}, opponent='{self.opponent}', date={self.date}, result='{self.result}')>"


class MatchParticipation(Base):
    """
    One player's statistics in one match.

    Unique Constraint:
    - (match_id, player_id): at most one row per player per match
    """
    __tablename__ = "match_players"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)

    minutes_played = Column(Integer, nullable=False, default=0)
    goals = Column(Integer, nullable=False, default=0)
    assists = Column(Integer, nullable=False, default=0)
    yellow_cards = Column(Integer, nullable=False, default=0)
    red_cards = Column(Integer, nullable=False, default=0)
    starter = Column(Boolean, nullable=False, default=True)
    minute_in = Column(Integer, nullable=True)  # Substitutes only
    rating = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    match = relationship("Match", back_populates="participations")
    player = relationship("Player", back_populates="participations")

    __table_args__ = (
        UniqueConstraint('match_id', 'player_id', name='uq_match_player'),
        Index('ix_match_players_player', 'player_id'),
    )

    def __repr__(self):
        return f"<MatchParticipation(id={self.id}, match_id={self.match_id}, player_id={self.player_id})>"
