"""
analytics/__init__.py - Package initialization for the statistics engine

Exports commonly used classes and functions for easy importing:
    from analytics import compute_annual_report, compute_team_stats, ParticipationRecord
"""

from .records import (
    ParticipationRecord,
    PlayerRecord,
    MatchRecord,
)

from .derived import (
    calculate_age,
    per_match_ratio,
    round_half_up,
    parse_score,
    classify_result,
)

from .aggregation import (
    PlayerSeasonTotals,
    YearTotals,
    TeamStats,
    MonthTotals,
    PlayerComparison,
    YearComparison,
    ProfileHighlights,
    TimelineEntry,
    TeamRecord,
    resolve_selection,
    compute_season_totals,
    compute_annual_report,
    compute_team_stats,
    compute_monthly_breakdown,
    compute_comparison,
    compute_yearly_comparison,
    pivot_yearly_metric,
    list_years,
    scoring_streak,
    longest_scoring_streak,
    find_best_match,
    compute_profile_highlights,
    compute_monthly_timeline,
    compute_team_record,
)

from .config_loader import (
    ConfigLoader,
    get_config,
)


__all__ = [
    # Records
    'ParticipationRecord',
    'PlayerRecord',
    'MatchRecord',
    # Derived values
    'calculate_age',
    'per_match_ratio',
    'round_half_up',
    'parse_score',
    'classify_result',
    # Aggregation
    'PlayerSeasonTotals',
    'YearTotals',
    'TeamStats',
    'MonthTotals',
    'PlayerComparison',
    'YearComparison',
    'ProfileHighlights',
    'TimelineEntry',
    'TeamRecord',
    'resolve_selection',
    'compute_season_totals',
    'compute_annual_report',
    'compute_team_stats',
    'compute_monthly_breakdown',
    'compute_comparison',
    'compute_yearly_comparison',
    'pivot_yearly_metric',
    'list_years',
    'scoring_streak',
    'longest_scoring_streak',
    'find_best_match',
    'compute_profile_highlights',
    'compute_monthly_timeline',
    'compute_team_record',
    # Config
    'ConfigLoader',
    'get_config',
]
