"""
record_store.py - SQLAlchemy-backed store for players, matches and participations.

Reads used by reports return detached analytics records (ParticipationRecord,
PlayerRecord, MatchRecord) so the aggregation engine always works on a private
snapshot. CRUD writes return ORM objects for the API's response models.

Write rules enforced here:
- national_id is unique across players
- at most one participation per (match, player) pair
- minute_in is cleared for starters
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from analytics.records import MatchRecord, ParticipationRecord, PlayerRecord

from ..models import Match, MatchParticipation, Player
from .errors import DuplicateRecordError, InvalidRecordError, RecordNotFoundError

logger = logging.getLogger(__name__)


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _year_bounds(year: int):
    return date(int(year), 1, 1), date(int(year), 12, 31)


def to_player_record(player: Player) -> PlayerRecord:
    return PlayerRecord(
        id=player.id,
        name=player.name,
        last_name=player.last_name,
        national_id=player.national_id,
        date_of_birth=_iso(player.date_of_birth),
        position=player.position,
        category=player.category,
        active=bool(player.active),
        attendance=player.attendance or 0,
        created_at=_iso(player.created_at),
    )


def to_match_record(match: Match) -> MatchRecord:
    return MatchRecord(
        id=match.id,
        opponent=match.opponent,
        result=match.result,
        date=_iso(match.date),
        referee=match.referee or "",
        category=match.category,
        home=bool(match.home),
        created_at=_iso(match.created_at),
    )


def to_participation_record(participation: MatchParticipation, match: Match) -> ParticipationRecord:
    return ParticipationRecord(
        id=participation.id,
        match_id=participation.match_id,
        player_id=participation.player_id,
        minutes_played=participation.minutes_played or 0,
        goals=participation.goals or 0,
        assists=participation.assists or 0,
        yellow_cards=participation.yellow_cards or 0,
        red_cards=participation.red_cards or 0,
        starter=bool(participation.starter),
        minute_in=participation.minute_in,
        rating=participation.rating,
        match_date=_iso(match.date),
        match_opponent=match.opponent,
        match_result=match.result,
        match_home=bool(match.home),
    )


class RecordStore:
    """Persistence collaborator wrapping one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # READS (report snapshots)
    # =========================================================================

    def _participation_query(self):
        return (
            self.db.query(MatchParticipation, Match)
            .join(Match, MatchParticipation.match_id == Match.id)
        )

    def list_participations_for_player(self, player_id: int) -> List[ParticipationRecord]:
        """A player's participations with match metadata, newest match first."""
        rows = (
            self._participation_query()
            .filter(MatchParticipation.player_id == player_id)
            .order_by(Match.date.desc(), MatchParticipation.id.desc())
            .all()
        )
        return [to_participation_record(mp, m) for mp, m in rows]

    def list_all_participations(self, year: Optional[int] = None) -> List[ParticipationRecord]:
        """Every participation with match metadata, optionally for one year."""
        query = self._participation_query()
        if year is not None:
            start, end = _year_bounds(year)
            query = query.filter(Match.date >= start, Match.date <= end)

        rows = query.order_by(Match.date.desc(), MatchParticipation.id.desc()).all()
        return [to_participation_record(mp, m) for mp, m in rows]

    def list_players(self, active_only: bool = False) -> List[PlayerRecord]:
        return [to_player_record(p) for p in self.query_players(active=True if active_only else None)]

    def get_player_record(self, player_id: int) -> Optional[PlayerRecord]:
        player = self.db.query(Player).filter(Player.id == player_id).first()
        return to_player_record(player) if player else None

    def list_match_records(self, year: Optional[int] = None) -> List[MatchRecord]:
        return [to_match_record(m) for m in self.list_matches(year=year)]

    def available_years(self) -> List[int]:
        """Distinct calendar years with at least one match, newest first."""
        dates = [d for (d,) in self.db.query(Match.date).distinct().all() if d is not None]
        return sorted({d.year for d in dates}, reverse=True)

    # =========================================================================
    # PLAYERS
    # =========================================================================

    def query_players(
        self,
        active: Optional[bool] = None,
        category: Optional[str] = None,
        position: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Player]:
        query = self.db.query(Player)

        if active is not None:
            query = query.filter(Player.active == active)
        if category:
            query = query.filter(Player.category == category)
        if position:
            query = query.filter(Player.position == position)
        if search:
            pattern = f"%{search}%"
            query = query.filter(Player.name.ilike(pattern) | Player.last_name.ilike(pattern))

        return query.order_by(Player.last_name, Player.name).all()

    def get_player(self, player_id: int) -> Player:
        player = self.db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise RecordNotFoundError("player", player_id)
        return player

    def _ensure_unique_national_id(self, national_id: str, exclude_id: Optional[int] = None):
        query = self.db.query(Player.id).filter(Player.national_id == national_id)
        if exclude_id is not None:
            query = query.filter(Player.id != exclude_id)
        if query.first():
            raise DuplicateRecordError(f"A player with national id {national_id} already exists")

    def create_player(self, data: Dict[str, Any]) -> Player:
        self._ensure_unique_national_id(data['national_id'])
        player = Player(**data)
        self.db.add(player)
        self._commit("player")
        self.db.refresh(player)
        logger.info("Created player %s (%s %s)", player.id, player.name, player.last_name)
        return player

    def update_player(self, player_id: int, data: Dict[str, Any]) -> Player:
        player = self.get_player(player_id)
        if data.get('national_id') and data['national_id'] != player.national_id:
            self._ensure_unique_national_id(data['national_id'], exclude_id=player_id)

        for key, value in data.items():
            setattr(player, key, value)
        self._commit("player")
        self.db.refresh(player)
        return player

    def delete_player(self, player_id: int) -> None:
        player = self.get_player(player_id)
        self.db.delete(player)
        self._commit("player")
        logger.info("Deleted player %s and their participations", player_id)

    # =========================================================================
    # MATCHES
    # =========================================================================

    def list_matches(self, year: Optional[int] = None, category: Optional[str] = None) -> List[Match]:
        query = self.db.query(Match)
        if year is not None:
            start, end = _year_bounds(year)
            query = query.filter(Match.date >= start, Match.date <= end)
        if category:
            query = query.filter(Match.category == category)
        return query.order_by(Match.date.desc(), Match.id.desc()).all()

    def get_match(self, match_id: int) -> Match:
        match = self.db.query(Match).filter(Match.id == match_id).first()
        if not match:
            raise RecordNotFoundError("match", match_id)
        return match

    def create_match(self, data: Dict[str, Any]) -> Match:
        match = Match(**data)
        self.db.add(match)
        self._commit("match")
        self.db.refresh(match)
        logger.info("Created match %s vs %s on %s", match.id, match.opponent, match.date)
        return match

    def update_match(self, match_id: int, data: Dict[str, Any]) -> Match:
        match = self.get_match(match_id)
        for key, value in data.items():
            setattr(match, key, value)
        self._commit("match")
        self.db.refresh(match)
        return match

    def delete_match(self, match_id: int) -> None:
        match = self.get_match(match_id)
        self.db.delete(match)
        self._commit("match")
        logger.info("Deleted match %s and its roster", match_id)

    # =========================================================================
    # PARTICIPATIONS (match roster)
    # =========================================================================

    def list_match_roster(self, match_id: int) -> List[MatchParticipation]:
        self.get_match(match_id)
        return (
            self.db.query(MatchParticipation)
            .filter(MatchParticipation.match_id == match_id)
            .order_by(MatchParticipation.starter.desc(), MatchParticipation.id)
            .all()
        )

    def get_participation(self, participation_id: int) -> MatchParticipation:
        participation = (
            self.db.query(MatchParticipation)
            .filter(MatchParticipation.id == participation_id)
            .first()
        )
        if not participation:
            raise RecordNotFoundError("participation", participation_id)
        return participation

    def add_participation(self, match_id: int, data: Dict[str, Any]) -> MatchParticipation:
        self.get_match(match_id)
        player_id = data['player_id']
        self.get_player(player_id)

        existing = (
            self.db.query(MatchParticipation.id)
            .filter(MatchParticipation.match_id == match_id, MatchParticipation.player_id == player_id)
            .first()
        )
        if existing:
            raise DuplicateRecordError(f"Player {player_id} is already on the roster of match {match_id}")

        values = dict(data)
        if values.get('starter', True):
            values['minute_in'] = None

        participation = MatchParticipation(match_id=match_id, **values)
        self.db.add(participation)
        self._commit("participation")
        self.db.refresh(participation)
        return participation

    def update_participation(self, participation_id: int, data: Dict[str, Any]) -> MatchParticipation:
        participation = self.get_participation(participation_id)
        for key, value in data.items():
            setattr(participation, key, value)
        if participation.starter:
            participation.minute_in = None

        self._commit("participation")
        self.db.refresh(participation)
        return participation

    def delete_participation(self, participation_id: int) -> None:
        participation = self.get_participation(participation_id)
        self.db.delete(participation)
        self._commit("participation")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _commit(self, entity: str):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error("Integrity error writing %s: %s", entity, e.orig)
            if "UNIQUE" in str(e.orig).upper():
                raise DuplicateRecordError(f"Could not save {entity}: duplicate record") from e
            raise InvalidRecordError(f"Could not save {entity}: {e.orig}") from e
