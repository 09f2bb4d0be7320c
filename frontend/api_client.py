"""
api_client.py - Centralized API client for the Club Stats backend.

Provides:
- Cached HTTP methods using @st.cache_data for snappy UI
- Write helpers that clear the cache once data changes
- Error handling with user-friendly messages
- Type-safe response handling via APIResponse dataclass

Usage:
    from frontend.api_client import get_team_dashboard, compare_players

    response = get_team_dashboard(year=2024)
    if response.success:
        dashboard = response.data
    else:
        st.error(response.error)
"""

import streamlit as st
import httpx
from typing import Optional, List, Dict, Any, Tuple
from dataclasses import dataclass
import os

# Backend URL - configurable via environment variable for production deployment
API_BASE_URL = os.getenv("FASTAPI_URL", "http://localhost:8000")

# Default timeout for API calls (seconds)
API_TIMEOUT = 10.0

# Optional httpx transport (tests mount an httpx.MockTransport here)
API_TRANSPORT: Optional[httpx.BaseTransport] = None


@dataclass
class APIResponse:
    """Standardized response wrapper for all API calls."""
    success: bool
    data: Any
    error: Optional[str] = None
    status_code: Optional[int] = None


def _error_message(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    if isinstance(detail, str):
        return detail
    return f"API returned status {response.status_code}: {response.text}"


def _make_request(
    method: str,
    endpoint: str,
    params: Optional[Dict] = None,
    json_body: Optional[Dict] = None,
    timeout: float = API_TIMEOUT
) -> APIResponse:
    """
    Internal helper for making HTTP requests.

    Args:
        method: HTTP method ('GET', 'POST', 'PATCH', 'DELETE')
        endpoint: API endpoint path (e.g., '/players/')
        params: Query parameters
        json_body: JSON body for POST/PATCH requests
        timeout: Request timeout in seconds

    Returns:
        APIResponse with success status, data, and optional error
    """
    method = method.upper()
    if method not in ("GET", "POST", "PATCH", "DELETE"):
        return APIResponse(success=False, data=None, error=f"Unsupported HTTP method: {method}")

    url = f"{API_BASE_URL}{endpoint}"

    try:
        with httpx.Client(timeout=timeout, transport=API_TRANSPORT) as client:
            response = client.request(method, url, params=params, json=json_body)

            if 200 <= response.status_code < 300:
                data = response.json() if response.content else None
                return APIResponse(success=True, data=data, status_code=response.status_code)

            return APIResponse(
                success=False,
                data=None,
                error=_error_message(response),
                status_code=response.status_code
            )

    except httpx.ConnectError:
        return APIResponse(
            success=False,
            data=None,
            error="Cannot connect to backend. Is the FastAPI server running?"
        )
    except httpx.TimeoutException:
        return APIResponse(
            success=False,
            data=None,
            error=f"Request timed out after {timeout} seconds"
        )
    except httpx.HTTPError as e:
        return APIResponse(success=False, data=None, error=f"HTTP error: {str(e)}")


# =============================================================================
# HEALTH CHECK (Not cached - always check live status)
# =============================================================================

def check_backend_health() -> Tuple[bool, Dict]:
    """
    Check if backend is reachable and healthy.

    Returns:
        Tuple of (is_healthy: bool, health_data: dict)
    """
    response = _make_request("GET", "/health")
    if response.success:
        return True, response.data
    return False, {"error": response.error}


# =============================================================================
# SQUAD & FIXTURES (Cached)
# =============================================================================

@st.cache_data(ttl=300, show_spinner=False)  # 5 minute cache
def get_players(
    active: Optional[bool] = None,
    category: Optional[str] = None,
    position: Optional[str] = None,
    search: Optional[str] = None,
) -> APIResponse:
    """
    Fetch the squad with optional filters.

    Args:
        active: Only active (True) or inactive (False) players
        category: Filter by category label ("all" for no filter)
        position: Filter by position ("all" for no filter)
        search: Partial first or last name
    """
    params = {}
    if active is not None:
        params["active"] = active
    if category and category.lower() != "all":
        params["category"] = category
    if position and position.lower() != "all":
        params["position"] = position
    if search:
        params["search"] = search

    return _make_request("GET", "/players/", params=params)


@st.cache_data(ttl=60, show_spinner=False)  # 1 minute cache
def get_player_by_id(player_id: int) -> APIResponse:
    return _make_request("GET", f"/players/{player_id}")


@st.cache_data(ttl=300, show_spinner=False)
def get_matches(year: Optional[int] = None, category: Optional[str] = None) -> APIResponse:
    """Fixtures, newest first."""
    params = {}
    if year is not None:
        params["year"] = year
    if category and category.lower() != "all":
        params["category"] = category
    return _make_request("GET", "/matches/", params=params)


@st.cache_data(ttl=60, show_spinner=False)
def get_match_by_id(match_id: int) -> APIResponse:
    return _make_request("GET", f"/matches/{match_id}")


@st.cache_data(ttl=60, show_spinner=False)
def get_match_roster(match_id: int) -> APIResponse:
    return _make_request("GET", f"/matches/{match_id}/players")


@st.cache_data(ttl=300, show_spinner=False)
def get_years() -> APIResponse:
    """
    Calendar years that have matches, newest first.

    Returns:
        APIResponse with {"years": [2024, 2023, ...]}
    """
    return _make_request("GET", "/years/")


# =============================================================================
# REPORTS (Cached)
# =============================================================================

@st.cache_data(ttl=120, show_spinner=False)  # 2 minute cache
def get_player_profile(player_id: int) -> APIResponse:
    """
    Profile page payload: season totals, highlights, annual history,
    monthly timeline and match log.
    """
    return _make_request("GET", f"/reports/players/{player_id}/profile")


@st.cache_data(ttl=120, show_spinner=False)
def get_team_dashboard(year: Optional[int] = None) -> APIResponse:
    params = {"year": year} if year is not None else None
    return _make_request("GET", "/reports/team", params=params)


@st.cache_data(ttl=120, show_spinner=False)
def get_monthly_breakdown(year: int) -> APIResponse:
    return _make_request("GET", "/reports/monthly", params={"year": year})


@st.cache_data(ttl=120, show_spinner=False)
def get_annual_reports(player_id: Optional[int] = None) -> APIResponse:
    params = {"player_id": player_id} if player_id is not None else None
    return _make_request("GET", "/reports/annual", params=params)


@st.cache_data(ttl=120, show_spinner=False)
def get_top_scorers(year: Optional[int] = None, limit: Optional[int] = None) -> APIResponse:
    params = {}
    if year is not None:
        params["year"] = year
    if limit is not None:
        params["limit"] = limit
    return _make_request("GET", "/reports/top-scorers", params=params)


@st.cache_data(ttl=120, show_spinner=False)
def compare_players(player_ids: List[int], year: Optional[int] = None) -> APIResponse:
    """
    Side-by-side comparison of 2-5 players.

    Args:
        player_ids: Players in display order
        year: Restrict to one calendar year

    Returns:
        APIResponse with {"year", "players", "dropped_ids"}; a 422 error
        when the selection size is out of range
    """
    request_body = {"player_ids": list(player_ids), "year": year}
    return _make_request("POST", "/reports/comparison", json_body=request_body)


@st.cache_data(ttl=120, show_spinner=False)
def compare_players_by_year(player_ids: List[int]) -> APIResponse:
    request_body = {"player_ids": list(player_ids)}
    return _make_request("POST", "/reports/comparison/yearly", json_body=request_body)


# =============================================================================
# WRITES (Not cached - clear cache on success)
# =============================================================================

def _write(method: str, endpoint: str, json_body: Optional[Dict] = None) -> APIResponse:
    response = _make_request(method, endpoint, json_body=json_body)
    if response.success:
        clear_api_cache()
    return response


def create_player(payload: Dict[str, Any]) -> APIResponse:
    return _write("POST", "/players/", payload)


def update_player(player_id: int, changes: Dict[str, Any]) -> APIResponse:
    return _write("PATCH", f"/players/{player_id}", changes)


def delete_player(player_id: int) -> APIResponse:
    return _write("DELETE", f"/players/{player_id}")


def create_match(payload: Dict[str, Any]) -> APIResponse:
    return _write("POST", "/matches/", payload)


def update_match(match_id: int, changes: Dict[str, Any]) -> APIResponse:
    return _write("PATCH", f"/matches/{match_id}", changes)


def delete_match(match_id: int) -> APIResponse:
    return _write("DELETE", f"/matches/{match_id}")


def add_match_player(match_id: int, payload: Dict[str, Any]) -> APIResponse:
    """Add one player's statistics to a match roster."""
    return _write("POST", f"/matches/{match_id}/players", payload)


def update_match_player(participation_id: int, changes: Dict[str, Any]) -> APIResponse:
    return _write("PATCH", f"/participations/{participation_id}", changes)


def delete_match_player(participation_id: int) -> APIResponse:
    return _write("DELETE", f"/participations/{participation_id}")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def clear_api_cache():
    """Clear all cached API responses. Call when data changes."""
    get_players.clear()
    get_player_by_id.clear()
    get_matches.clear()
    get_match_by_id.clear()
    get_match_roster.clear()
    get_years.clear()
    get_player_profile.clear()
    get_team_dashboard.clear()
    get_monthly_breakdown.clear()
    get_annual_reports.clear()
    get_top_scorers.clear()
    compare_players.clear()
    compare_players_by_year.clear()


def is_backend_available() -> bool:
    """Quick check if backend is reachable."""
    healthy, _ = check_backend_health()
    return healthy
