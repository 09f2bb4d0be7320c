"""
frontend package - API client for the Club Stats Dashboard UI.
"""

from .api_client import (
    APIResponse,
    get_players,
    get_player_by_id,
    get_matches,
    get_match_by_id,
    get_match_roster,
    get_years,
    get_player_profile,
    get_team_dashboard,
    get_monthly_breakdown,
    get_annual_reports,
    get_top_scorers,
    compare_players,
    compare_players_by_year,
    create_player,
    update_player,
    delete_player,
    create_match,
    update_match,
    delete_match,
    add_match_player,
    update_match_player,
    delete_match_player,
    check_backend_health,
    is_backend_available,
    clear_api_cache,
    API_BASE_URL,
)

__all__ = [
    "APIResponse",
    "get_players",
    "get_player_by_id",
    "get_matches",
    "get_match_by_id",
    "get_match_roster",
    "get_years",
    "get_player_profile",
    "get_team_dashboard",
    "get_monthly_breakdown",
    "get_annual_reports",
    "get_top_scorers",
    "compare_players",
    "compare_players_by_year",
    "create_player",
    "update_player",
    "delete_player",
    "create_match",
    "update_match",
    "delete_match",
    "add_match_player",
    "update_match_player",
    "delete_match_player",
    "check_backend_health",
    "is_backend_available",
    "clear_api_cache",
    "API_BASE_URL",
]
