"""
Tests for frontend/api_client.py against an httpx.MockTransport backend.
"""

import json

import httpx
import pytest

from frontend import api_client


@pytest.fixture
def backend(monkeypatch):
    """Route client requests to a handler; returns the list of seen requests."""
    seen = []
    routes = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        key = (request.method, request.url.path)
        if key not in routes:
            return httpx.Response(404, json={"detail": "Not Found"})
        status_code, body = routes[key]
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    monkeypatch.setattr(api_client, "API_BASE_URL", "http://testserver")
    monkeypatch.setattr(api_client, "API_TRANSPORT", httpx.MockTransport(handler))
    api_client.clear_api_cache()
    yield routes, seen
    api_client.clear_api_cache()


def test_health(backend):
    routes, _ = backend
    routes[("GET", "/health")] = (200, {"status": "healthy", "database": "connected"})

    healthy, data = api_client.check_backend_health()
    assert healthy is True
    assert data["status"] == "healthy"
    assert api_client.is_backend_available() is True


def test_players_filters_skip_all(backend):
    routes, seen = backend
    routes[("GET", "/players/")] = (200, [{"id": 1, "name": "Lucas"}])

    response = api_client.get_players(category="all", position="Forward", search="lu")
    assert response.success
    assert response.data == [{"id": 1, "name": "Lucas"}]

    params = dict(seen[-1].url.params)
    assert params == {"position": "Forward", "search": "lu"}


def test_reports_are_cached(backend):
    routes, seen = backend
    routes[("GET", "/reports/team")] = (200, {"year": 2024})

    api_client.get_team_dashboard(2024)
    api_client.get_team_dashboard(2024)
    assert len(seen) == 1

    api_client.clear_api_cache()
    api_client.get_team_dashboard(2024)
    assert len(seen) == 2


def test_comparison_error_detail(backend):
    routes, seen = backend
    routes[("POST", "/reports/comparison")] = (
        422, {"detail": "Select between 2 and 5 players to compare (got 1)"}
    )

    response = api_client.compare_players([3], year=2024)
    assert not response.success
    assert response.status_code == 422
    assert response.error.startswith("Select between 2 and 5")
    assert json.loads(seen[-1].content) == {"player_ids": [3], "year": 2024}


def test_write_clears_cache(backend):
    routes, seen = backend
    routes[("GET", "/years/")] = (200, {"years": [2024]})
    routes[("DELETE", "/players/4")] = (204, None)

    api_client.get_years()
    response = api_client.delete_player(4)
    assert response.success
    assert response.data is None

    api_client.get_years()
    assert [r.method for r in seen] == ["GET", "DELETE", "GET"]


def test_get_match_by_id_is_cached(backend):
    routes, seen = backend
    routes[("GET", "/matches/7")] = (200, {"id": 7, "opponent": "Atletico Norte"})

    assert api_client.get_match_by_id(7).data["opponent"] == "Atletico Norte"
    api_client.get_match_by_id(7)
    assert len(seen) == 1


@pytest.mark.parametrize("call, method, path, body", [
    (lambda: api_client.update_match(7, {"result": "2-1"}), "PATCH", "/matches/7", {"result": "2-1"}),
    (lambda: api_client.update_match_player(11, {"goals": 2}), "PATCH", "/participations/11", {"goals": 2}),
    (lambda: api_client.delete_match_player(11), "DELETE", "/participations/11", None),
])
def test_match_writes_clear_cache(backend, call, method, path, body):
    routes, seen = backend
    routes[("GET", "/matches/7")] = (200, {"id": 7})
    routes[(method, path)] = (204, None) if method == "DELETE" else (200, {"id": 1})

    api_client.get_match_by_id(7)
    response = call()
    assert response.success

    write = seen[-1]
    assert (write.method, write.url.path) == (method, path)
    if body is not None:
        assert json.loads(write.content) == body

    api_client.get_match_by_id(7)
    assert [r.method for r in seen] == ["GET", method, "GET"]


def test_failed_match_write_keeps_cache(backend):
    routes, seen = backend
    routes[("GET", "/matches/7")] = (200, {"id": 7})
    routes[("PATCH", "/matches/7")] = (422, {"detail": "may be omitted but not null"})

    api_client.get_match_by_id(7)
    response = api_client.update_match(7, {"opponent": None})
    assert response.status_code == 422
    assert response.error == "may be omitted but not null"

    api_client.get_match_by_id(7)
    assert [r.method for r in seen] == ["GET", "PATCH"]


def test_connection_error(monkeypatch):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    monkeypatch.setattr(api_client, "API_TRANSPORT", httpx.MockTransport(refuse))
    healthy, data = api_client.check_backend_health()
    assert healthy is False
    assert "Cannot connect" in data["error"]


def test_unsupported_method():
    response = api_client._make_request("PUT", "/players/1")
    assert not response.success
    assert "Unsupported" in response.error
