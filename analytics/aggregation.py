"""
aggregation.py - Derived-statistics engine for player and team reports.

Every function here is pure: it takes an in-memory snapshot of participation
records (ParticipationRecord instances or mappings with the same keys), builds
a pandas DataFrame from it and returns plain dataclasses. Nothing is written
back and no wall-clock time is sampled, so calling a function twice on the
same snapshot yields identical output.

Reports provided:
- Season totals (optionally scoped to one calendar year)
- Annual report (per-year totals with per-match ratios, newest year first)
- Team stats (distinct match and player counts plus league-wide sums)
- Monthly breakdown (always 12 entries)
- Player comparison and year-aligned player comparison
- Profile highlights (best match, scoring streak, ratings, favorite opponent)

Records whose match date cannot be parsed are dropped from any year-bucketed
or date-ordered computation and logged as a data-quality warning.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

import pandas as pd

from .derived import (
    DateLike,
    RESULT_DRAW,
    RESULT_LOSS,
    RESULT_WIN,
    calculate_age,
    classify_result,
    per_match_ratio,
    round_half_up,
    to_date,
)
from .records import MatchRecord, ParticipationRecord, PlayerRecord

logger = logging.getLogger(__name__)


# =============================================================================
# FRAME LAYOUT
# =============================================================================

FRAME_COLUMNS = [
    'id', 'match_id', 'player_id',
    'minutes_played', 'goals', 'assists', 'yellow_cards', 'red_cards',
    'starter', 'minute_in', 'rating',
    'match_date', 'match_opponent', 'match_result', 'match_home',
]

# Summed for totals; minutes_played is reported as `minutes`
TOTAL_FIELDS = ['goals', 'assists', 'yellow_cards', 'red_cards', 'minutes_played']
MONTHLY_FIELDS = ['goals', 'assists', 'yellow_cards', 'red_cards']

MONTH_NAMES = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)

RecordLike = Union[ParticipationRecord, Mapping[str, Any]]
PlayerDirectory = Union[Mapping[int, PlayerRecord], Iterable[PlayerRecord]]


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class PlayerSeasonTotals:
    """Sums over a player's participations, optionally for one year."""
    matches: int = 0
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    minutes: int = 0
    year: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class YearTotals:
    """One calendar year of an annual report."""
    year: int
    matches: int = 0
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    minutes: int = 0
    goals_per_match: float = 0.0
    assists_per_match: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TeamStats:
    total_matches: int = 0
    total_players: int = 0
    total_goals: int = 0
    total_assists: int = 0
    total_yellow_cards: int = 0
    total_red_cards: int = 0
    total_minutes: int = 0
    year: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MonthTotals:
    month: int
    month_name: str
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PlayerComparison:
    """Totals and ratios for one player in a side-by-side comparison."""
    id: int
    name: str
    age: Optional[int] = None
    matches: int = 0
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    minutes: int = 0
    goals_per_match: float = 0.0
    assists_per_match: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class YearComparison:
    """One year of a yearly comparison: one entry per selected player, in selection order."""
    year: int
    players: List[PlayerComparison] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MatchHighlight:
    match_id: int
    match_date: str
    opponent: str
    goals: int = 0
    rating: Optional[float] = None


@dataclass
class OpponentGoals:
    opponent: str
    goals: int


@dataclass
class TimelineEntry:
    period: str  # "YYYY-MM"
    label: str   # "Mar 24"
    goals: int = 0
    assists: int = 0


@dataclass
class ProfileHighlights:
    totals: PlayerSeasonTotals
    starter_matches: int = 0
    substitute_matches: int = 0
    goals_per_match: float = 0.0
    average_minutes: int = 0
    favorite_opponent: Optional[OpponentGoals] = None
    best_match: Optional[MatchHighlight] = None
    longest_scoring_streak: int = 0
    average_rating: Optional[float] = None
    best_rated_match: Optional[MatchHighlight] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TeamRecord:
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    unknown: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# FRAME HELPERS
# =============================================================================

def _as_row(record: RecordLike) -> Dict[str, Any]:
    if isinstance(record, ParticipationRecord):
        return record.to_dict()
    return dict(record)


def _as_flag(value: Any, default: bool) -> bool:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    return bool(value)


def _parse_match_date(value: Any) -> pd.Timestamp:
    # Calendar date as recorded; offsets on timestamps are ignored
    try:
        return pd.Timestamp(to_date(value))
    except (TypeError, ValueError):
        return pd.NaT


def records_to_frame(records: Iterable[RecordLike]) -> pd.DataFrame:
    """
    Build the working DataFrame for a snapshot of participation records.

    Stat columns are coerced to integers (missing -> 0),
    ratings to float (missing -> NaN) and match dates parsed into
    `parsed_date`, `year` and `month` (NaT/NaN when unparsable).
    """
    rows = [_as_row(r) for r in records]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)

    for col in TOTAL_FIELDS:
        frame[col] = pd.to_numeric(frame[col], errors='coerce').fillna(0).astype(int)

    frame['rating'] = pd.to_numeric(frame['rating'], errors='coerce')
    frame['starter'] = [_as_flag(v, True) for v in frame['starter']]
    frame['match_home'] = [_as_flag(v, False) for v in frame['match_home']]
    frame['match_opponent'] = frame['match_opponent'].fillna('').astype(str)

    parsed = pd.Series(
        [_parse_match_date(v) for v in frame['match_date']],
        index=frame.index,
        dtype='datetime64[ns]',
    )
    frame['parsed_date'] = parsed
    frame['year'] = parsed.dt.year
    frame['month'] = parsed.dt.month

    return frame


def _dated(frame: pd.DataFrame, operation: str) -> pd.DataFrame:
    """Drop rows without a usable match date, logging the offending record ids."""
    undated = frame['parsed_date'].isna()
    if undated.any():
        logger.warning(
            "%s: skipping %d participation(s) with unparsable match dates (ids=%s)",
            operation, int(undated.sum()), frame.loc[undated, 'id'].tolist()
        )
    frame = frame.loc[~undated].copy()
    frame['year'] = frame['year'].astype(int)
    frame['month'] = frame['month'].astype(int)
    return frame


def _filter_year(frame: pd.DataFrame, year: Optional[int], operation: str) -> pd.DataFrame:
    if year is None:
        return frame
    dated = _dated(frame, operation)
    return dated[dated['year'] == int(year)]


def _chronological(frame: pd.DataFrame, operation: str) -> pd.DataFrame:
    """Oldest match first; same-day records keep their id order."""
    return _dated(frame, operation).sort_values(['parsed_date', 'id'], kind='mergesort')


def _totals(frame: pd.DataFrame) -> Dict[str, int]:
    sums = frame[TOTAL_FIELDS].sum()
    return {
        'matches': int(len(frame)),
        'goals': int(sums['goals']),
        'assists': int(sums['assists']),
        'yellow_cards': int(sums['yellow_cards']),
        'red_cards': int(sums['red_cards']),
        'minutes': int(sums['minutes_played']),
    }


def _optional_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _player_directory(players: Optional[PlayerDirectory]) -> Optional[Dict[int, PlayerRecord]]:
    if players is None:
        return None
    if isinstance(players, Mapping):
        return dict(players)
    return {p.id: p for p in players}


def _known_ids(frame: pd.DataFrame, directory: Optional[Dict[int, PlayerRecord]]) -> Set[int]:
    if directory is not None:
        return set(directory)
    return {int(pid) for pid in frame['player_id'].dropna().unique()}


def _split_selection(player_ids: Sequence[int], known: Set[int]) -> Tuple[List[int], List[int]]:
    kept: List[int] = []
    dropped: List[int] = []
    seen: Set[int] = set()
    for pid in player_ids:
        if pid in seen:
            continue
        seen.add(pid)
        if pid in known:
            kept.append(pid)
        else:
            dropped.append(pid)
    return kept, dropped


def resolve_selection(
    player_ids: Sequence[int],
    records: Iterable[RecordLike],
    players: Optional[PlayerDirectory] = None
) -> Tuple[List[int], List[int]]:
    """
    Split a requested player selection into (kept, dropped) ids.

    Order of first appearance is preserved and duplicates are collapsed. With
    a player directory, an id is known when the directory has it; without
    one, when any record references it.
    """
    frame = records_to_frame(records)
    return _split_selection(player_ids, _known_ids(frame, _player_directory(players)))


def _comparison_row(
    player_id: int,
    subset: pd.DataFrame,
    player: Optional[PlayerRecord],
    today: Optional[DateLike] = None
) -> PlayerComparison:
    totals = _totals(subset)
    age = None
    if player is not None and today is not None and player.date_of_birth:
        age = calculate_age(player.date_of_birth, today)

    return PlayerComparison(
        id=int(player_id),
        name=player.full_name if player is not None else f"Player {player_id}",
        age=age,
        matches=totals['matches'],
        goals=totals['goals'],
        assists=totals['assists'],
        yellow_cards=totals['yellow_cards'],
        red_cards=totals['red_cards'],
        minutes=totals['minutes'],
        goals_per_match=per_match_ratio(totals['goals'], totals['matches']),
        assists_per_match=per_match_ratio(totals['assists'], totals['matches']),
    )


# =============================================================================
# CORE AGGREGATES
# =============================================================================

def compute_season_totals(
    records: Iterable[RecordLike],
    year: Optional[int] = None
) -> PlayerSeasonTotals:
    """
    Sum goals, assists, cards and minutes over a player's records.

    Args:
        records: The player's participations
        year: Restrict to matches played in this calendar year

    Returns:
        PlayerSeasonTotals whose `matches` equals the filtered record count
    """
    frame = _filter_year(records_to_frame(records), year, "season totals")
    return PlayerSeasonTotals(year=year, **_totals(frame))


def compute_annual_report(records: Iterable[RecordLike]) -> List[YearTotals]:
    """
    Bucket a player's records by the calendar year of the match date.

    Years are returned newest first. Each year carries goals_per_match and
    assists_per_match rounded to 2 decimals.
    """
    frame = _dated(records_to_frame(records), "annual report")

    years = []
    for year in sorted(frame['year'].unique(), reverse=True):
        totals = _totals(frame[frame['year'] == year])
        years.append(YearTotals(
            year=int(year),
            goals_per_match=per_match_ratio(totals['goals'], totals['matches']),
            assists_per_match=per_match_ratio(totals['assists'], totals['matches']),
            **totals
        ))
    return years


def compute_team_stats(
    records: Iterable[RecordLike],
    year: Optional[int] = None
) -> TeamStats:
    """
    League-wide sums for the squad.

    total_matches counts distinct matches, not records: several players
    share one match.
    """
    frame = _filter_year(records_to_frame(records), year, "team stats")
    totals = _totals(frame)

    return TeamStats(
        year=year,
        total_matches=int(frame['match_id'].nunique()),
        total_players=int(frame['player_id'].nunique()),
        total_goals=totals['goals'],
        total_assists=totals['assists'],
        total_yellow_cards=totals['yellow_cards'],
        total_red_cards=totals['red_cards'],
        total_minutes=totals['minutes'],
    )


def compute_monthly_breakdown(records: Iterable[RecordLike], year: int) -> List[MonthTotals]:
    """Goals, assists and cards per calendar month of `year`; always 12 entries."""
    frame = _filter_year(records_to_frame(records), year, "monthly breakdown")
    sums = (
        frame.groupby('month')[MONTHLY_FIELDS].sum()
        .reindex(range(1, 13), fill_value=0)
    )

    return [
        MonthTotals(
            month=month,
            month_name=MONTH_NAMES[month - 1],
            goals=int(sums.at[month, 'goals']),
            assists=int(sums.at[month, 'assists']),
            yellow_cards=int(sums.at[month, 'yellow_cards']),
            red_cards=int(sums.at[month, 'red_cards']),
        )
        for month in range(1, 13)
    ]


def compute_comparison(
    player_ids: Sequence[int],
    records: Iterable[RecordLike],
    year: Optional[int] = None,
    players: Optional[PlayerDirectory] = None,
    today: Optional[DateLike] = None
) -> List[PlayerComparison]:
    """
    Side-by-side totals for the requested players.

    Request order is preserved; duplicate and unknown ids are dropped without
    failing the rest. A known player with no records for the period gets an
    all-zero entry. `age` is filled only when both `players` and `today` are
    given.
    """
    frame = records_to_frame(records)
    directory = _player_directory(players)
    kept, _ = _split_selection(player_ids, _known_ids(frame, directory))
    scoped = _filter_year(frame, year, "comparison")

    return [
        _comparison_row(
            pid,
            scoped[scoped['player_id'] == pid],
            directory.get(pid) if directory else None,
            today,
        )
        for pid in kept
    ]


def compute_yearly_comparison(
    player_ids: Sequence[int],
    records: Iterable[RecordLike],
    players: Optional[PlayerDirectory] = None
) -> List[YearComparison]:
    """
    Per-year totals for the requested players on a shared year axis.

    The axis is the union of years in which any selected player appears,
    oldest first. Every year holds exactly one entry per kept player, in
    selection order, zero-filled where the player has no record that year.
    """
    frame = records_to_frame(records)
    directory = _player_directory(players)
    kept, _ = _split_selection(player_ids, _known_ids(frame, directory))

    dated = _dated(frame, "yearly comparison")
    selected = dated[dated['player_id'].isin(kept)]
    axis = sorted(int(y) for y in selected['year'].unique())

    result = []
    for year in axis:
        year_frame = selected[selected['year'] == year]
        result.append(YearComparison(
            year=year,
            players=[
                _comparison_row(
                    pid,
                    year_frame[year_frame['player_id'] == pid],
                    directory.get(pid) if directory else None,
                )
                for pid in kept
            ],
        ))
    return result


def pivot_yearly_metric(
    yearly: Sequence[YearComparison],
    metric: str
) -> "OrderedDict[int, OrderedDict[int, Any]]":
    """
    Chart-ready mapping year -> player id -> metric value.

    Built by walking the year axis and, inside it, the player list, so every
    year row carries every player.
    """
    table: "OrderedDict[int, OrderedDict[int, Any]]" = OrderedDict()
    for entry in yearly:
        row: "OrderedDict[int, Any]" = OrderedDict()
        for player in entry.players:
            row[player.id] = getattr(player, metric)
        table[entry.year] = row
    return table


def list_years(records: Iterable[RecordLike]) -> List[int]:
    """Distinct calendar years present in the records, newest first."""
    frame = _dated(records_to_frame(records), "year listing")
    return sorted((int(y) for y in frame['year'].unique()), reverse=True)


# =============================================================================
# PROFILE HIGHLIGHTS
# =============================================================================

def scoring_streak(goals_sequence: Iterable[int]) -> int:
    """Longest run of consecutive matches with at least one goal."""
    current = longest = 0
    for goals in goals_sequence:
        if goals > 0:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def longest_scoring_streak(records: Iterable[RecordLike]) -> int:
    """Scoring streak over the player's matches in date order, oldest first."""
    frame = _chronological(records_to_frame(records), "scoring streak")
    return scoring_streak(int(g) for g in frame['goals'])


def _highlight(row: Any) -> MatchHighlight:
    return MatchHighlight(
        match_id=int(row.match_id),
        match_date=str(row.match_date),
        opponent=row.match_opponent,
        goals=int(row.goals),
        rating=_optional_float(row.rating),
    )


def _best_by(frame: pd.DataFrame, column: str) -> Optional[MatchHighlight]:
    # `>=` while scanning oldest to newest: ties resolve to the latest match
    best = None
    for row in frame.itertuples(index=False):
        value = getattr(row, column)
        if pd.isna(value):
            continue
        if best is None or value >= getattr(best, column):
            best = row
    return _highlight(best) if best is not None else None


def find_best_match(records: Iterable[RecordLike]) -> Optional[MatchHighlight]:
    """Match with the most goals; None when the player never scored."""
    frame = _chronological(records_to_frame(records), "best match")
    return _best_by(frame[frame['goals'] > 0], 'goals')


def _favorite_opponent(frame: pd.DataFrame) -> Optional[OpponentGoals]:
    scoring = frame[frame['goals'] > 0]
    if scoring.empty:
        return None

    by_opponent = scoring.groupby('match_opponent')['goals'].sum()
    opponent, goals = sorted(by_opponent.items(), key=lambda kv: (-kv[1], kv[0]))[0]
    return OpponentGoals(opponent=str(opponent), goals=int(goals))


def find_favorite_opponent(records: Iterable[RecordLike]) -> Optional[OpponentGoals]:
    """Opponent conceding the most goals to the player (ties: alphabetical)."""
    return _favorite_opponent(records_to_frame(records))


def compute_profile_highlights(records: Iterable[RecordLike]) -> ProfileHighlights:
    """Headline numbers for a single player's profile page."""
    frame = records_to_frame(records)
    totals = PlayerSeasonTotals(**_totals(frame))

    starters = int(sum(frame['starter']))
    ratings = frame['rating'].dropna()
    chronological = _chronological(frame, "profile highlights")

    return ProfileHighlights(
        totals=totals,
        starter_matches=starters,
        substitute_matches=totals.matches - starters,
        goals_per_match=per_match_ratio(totals.goals, totals.matches),
        average_minutes=(
            int(round_half_up(totals.minutes / totals.matches, 0)) if totals.matches else 0
        ),
        favorite_opponent=_favorite_opponent(frame),
        best_match=_best_by(chronological[chronological['goals'] > 0], 'goals'),
        longest_scoring_streak=scoring_streak(int(g) for g in chronological['goals']),
        average_rating=round_half_up(float(ratings.mean()), 2) if len(ratings) else None,
        best_rated_match=_best_by(chronological, 'rating'),
    )


def compute_monthly_timeline(records: Iterable[RecordLike]) -> List[TimelineEntry]:
    """Goals and assists per calendar month that has data, oldest first."""
    frame = _dated(records_to_frame(records), "monthly timeline")
    if frame.empty:
        return []

    frame['period'] = frame['parsed_date'].dt.strftime('%Y-%m')
    sums = frame.groupby('period')[['goals', 'assists']].sum().sort_index()

    timeline = []
    for period, row in sums.iterrows():
        year, month = (int(part) for part in period.split('-'))
        timeline.append(TimelineEntry(
            period=period,
            label=f"{MONTH_NAMES[month - 1]} {year % 100:02d}",
            goals=int(row['goals']),
            assists=int(row['assists']),
        ))
    return timeline


# =============================================================================
# MATCH RESULTS
# =============================================================================

def _match_field(match: Union[MatchRecord, Mapping[str, Any]], name: str) -> Any:
    if isinstance(match, Mapping):
        return match.get(name)
    return getattr(match, name)


def compute_team_record(
    matches: Iterable[Union[MatchRecord, Mapping[str, Any]]],
    year: Optional[int] = None
) -> TeamRecord:
    """Wins, draws and losses from the club's point of view."""
    record = TeamRecord()
    for match in matches:
        if year is not None:
            try:
                played_on = to_date(_match_field(match, 'date'))
            except (TypeError, ValueError):
                logger.warning(
                    "team record: skipping match %s with unparsable date %r",
                    _match_field(match, 'id'), _match_field(match, 'date')
                )
                continue
            if played_on.year != int(year):
                continue

        outcome = classify_result(_match_field(match, 'result'), bool(_match_field(match, 'home')))
        record.played += 1
        if outcome == RESULT_WIN:
            record.wins += 1
        elif outcome == RESULT_DRAW:
            record.draws += 1
        elif outcome == RESULT_LOSS:
            record.losses += 1
        else:
            record.unknown += 1
    return record

