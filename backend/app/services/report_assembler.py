"""
report_assembler.py - Turns a dashboard request into engine calls and report payloads.

Each method fetches one snapshot from the RecordStore, runs the pure
aggregation functions over it and shapes the result for the presentation
layer (field names, nesting, sort order). No statistics are computed here
beyond selection: top-N sorting, truncation and the comparison size bound.

An unknown player id yields a NotFound value rather than a zero-valued
report, so callers can tell "no data yet" apart from "no such player".
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

from analytics import aggregation
from analytics.aggregation import (
    MonthTotals,
    PlayerComparison,
    PlayerSeasonTotals,
    ProfileHighlights,
    TeamRecord,
    TeamStats,
    TimelineEntry,
    YearComparison,
    YearTotals,
)
from analytics.config_loader import ConfigLoader, get_config
from analytics.derived import calculate_age
from analytics.records import PlayerRecord

from .errors import ComparisonSelectionError
from .record_store import RecordStore

logger = logging.getLogger(__name__)

# Metrics pivoted into chart tables for the yearly comparison view
CHART_METRICS = ['goals', 'assists', 'matches', 'minutes', 'goals_per_match', 'assists_per_match']


# =============================================================================
# REPORT PAYLOADS
# =============================================================================

@dataclass
class NotFound:
    """Explicit "unknown entity" result."""
    entity: str
    id: int

    @property
    def message(self) -> str:
        return f"{self.entity.capitalize()} {self.id} not found"


@dataclass
class PlayerProfileReport:
    player: Dict[str, Any]
    season: PlayerSeasonTotals
    highlights: ProfileHighlights
    annual: List[YearTotals] = field(default_factory=list)
    timeline: List[TimelineEntry] = field(default_factory=list)
    matches: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TeamDashboard:
    year: Optional[int]
    stats: TeamStats
    record: TeamRecord
    monthly: List[MonthTotals] = field(default_factory=list)
    top_scorers: List[PlayerComparison] = field(default_factory=list)
    top_assisters: List[PlayerComparison] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnnualPlayerReport:
    player_id: int
    player_name: str
    years: List[YearTotals] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ComparisonReport:
    year: Optional[int]
    players: List[PlayerComparison] = field(default_factory=list)
    dropped_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class YearlyComparisonReport:
    years: List[YearComparison] = field(default_factory=list)
    # metric -> [{"year": 2024, "players": {player_id: value}}] in axis order
    charts: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    dropped_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# ASSEMBLER
# =============================================================================

class ReportAssembler:
    """Builds every report the dashboard shows from one RecordStore."""

    def __init__(self, store: RecordStore, config: Optional[ConfigLoader] = None):
        self.store = store
        self.config = config or get_config()

    # -------------------------------------------------------------------------
    # Single player
    # -------------------------------------------------------------------------

    def player_profile(self, player_id: int, today: date) -> Union[PlayerProfileReport, NotFound]:
        """
        Everything the player profile page shows.

        Returns:
            PlayerProfileReport, or NotFound when the player does not exist.
            A player without participations gets a zero-valued report.
        """
        player = self.store.get_player_record(player_id)
        if player is None:
            return NotFound("player", player_id)

        records = self.store.list_participations_for_player(player_id)

        return PlayerProfileReport(
            player=self._player_payload(player, today),
            season=aggregation.compute_season_totals(records),
            highlights=aggregation.compute_profile_highlights(records),
            annual=aggregation.compute_annual_report(records),
            timeline=aggregation.compute_monthly_timeline(records),
            matches=[r.to_dict() for r in records],
        )

    def annual_reports(self, player_id: Optional[int] = None) -> Union[List[AnnualPlayerReport], NotFound]:
        """
        Year-by-year reports for one player or the whole squad.

        Squad-wide, players without dated participations are left out.
        """
        if player_id is not None:
            player = self.store.get_player_record(player_id)
            if player is None:
                return NotFound("player", player_id)
            players = [player]
        else:
            players = self.store.list_players()

        records = self.store.list_all_participations()
        by_player: Dict[int, list] = {}
        for record in records:
            by_player.setdefault(record.player_id, []).append(record)

        reports = []
        for player in players:
            years = aggregation.compute_annual_report(by_player.get(player.id, []))
            if player_id is None and not years:
                continue
            reports.append(AnnualPlayerReport(
                player_id=player.id,
                player_name=player.full_name,
                years=years,
            ))
        return reports

    # -------------------------------------------------------------------------
    # Team
    # -------------------------------------------------------------------------

    def team_dashboard(self, year: Optional[int] = None, today: Optional[date] = None) -> TeamDashboard:
        """Team totals, W/D/L record, monthly chart (year view only) and leaderboards."""
        records = self.store.list_all_participations(year)
        limit = self.config.get_top_scorers_limit()

        active = self._ranked(records, year, today)

        return TeamDashboard(
            year=year,
            stats=aggregation.compute_team_stats(records, year),
            record=aggregation.compute_team_record(self.store.list_match_records(year), year),
            monthly=aggregation.compute_monthly_breakdown(records, year) if year is not None else [],
            top_scorers=self._top(active, 'goals', limit),
            top_assisters=self._top(active, 'assists', limit),
        )

    def monthly_breakdown(self, year: int) -> List[MonthTotals]:
        return aggregation.compute_monthly_breakdown(self.store.list_all_participations(year), year)

    def top_scorers(self, year: Optional[int] = None, limit: Optional[int] = None,
                    today: Optional[date] = None) -> List[PlayerComparison]:
        """Players who played in the period, sorted by goals (ties by name), truncated to `limit`."""
        rows = self._ranked(self.store.list_all_participations(year), year, today)
        return self._top(rows, 'goals', limit or self.config.get_top_scorers_limit())

    def available_years(self) -> List[int]:
        return self.store.available_years()

    # -------------------------------------------------------------------------
    # Comparisons
    # -------------------------------------------------------------------------

    def comparison(self, player_ids: Sequence[int], year: Optional[int] = None,
                   today: Optional[date] = None) -> ComparisonReport:
        """Side-by-side totals for 2-5 players; unknown ids are reported in dropped_ids."""
        self._check_selection(player_ids)
        players = self.store.list_players()
        records = self.store.list_all_participations()

        kept, dropped = aggregation.resolve_selection(player_ids, records, players)
        self._log_dropped(dropped)

        return ComparisonReport(
            year=year,
            players=aggregation.compute_comparison(kept, records, year=year, players=players, today=today),
            dropped_ids=dropped,
        )

    def yearly_comparison(self, player_ids: Sequence[int]) -> YearlyComparisonReport:
        """Per-year totals on a shared year axis, plus chart pivots per metric."""
        self._check_selection(player_ids)
        players = self.store.list_players()
        records = self.store.list_all_participations()

        kept, dropped = aggregation.resolve_selection(player_ids, records, players)
        self._log_dropped(dropped)

        yearly = aggregation.compute_yearly_comparison(kept, records, players=players)
        charts = {}
        for metric in CHART_METRICS:
            table = aggregation.pivot_yearly_metric(yearly, metric)
            charts[metric] = [{'year': year, 'players': dict(row)} for year, row in table.items()]

        return YearlyComparisonReport(years=yearly, charts=charts, dropped_ids=dropped)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _ranked(self, records, year: Optional[int], today: Optional[date]) -> List[PlayerComparison]:
        """Leaderboard candidates: every player with at least one match in the period."""
        players = self.store.list_players()
        rows = aggregation.compute_comparison(
            [p.id for p in players], records, year=year, players=players, today=today
        )
        return [row for row in rows if row.matches > 0]

    def _check_selection(self, player_ids: Sequence[int]):
        minimum, maximum = self.config.get_comparison_bounds()
        distinct = len(dict.fromkeys(player_ids))
        if distinct < minimum or distinct > maximum:
            raise ComparisonSelectionError(
                f"Select between {minimum} and {maximum} players to compare (got {distinct})"
            )

    @staticmethod
    def _log_dropped(dropped: List[int]):
        if dropped:
            logger.warning("Comparison request references unknown player ids: %s", dropped)

    @staticmethod
    def _top(rows: List[PlayerComparison], metric: str, limit: int) -> List[PlayerComparison]:
        ordered = sorted(rows, key=lambda row: (-getattr(row, metric), row.name))
        return ordered[:limit]

    @staticmethod
    def _player_payload(player: PlayerRecord, today: date) -> Dict[str, Any]:
        payload = player.to_dict()
        payload['full_name'] = player.full_name
        payload['age'] = calculate_age(player.date_of_birth, today)
        return payload
