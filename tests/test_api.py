
from datetime import date

from fastapi import status

from analytics.derived import calculate_age


def test_health_check(client, seeded):
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["player_count"] == 3
    assert data["match_count"] == 4


# =============================================================================
# PLAYERS
# =============================================================================

def test_get_players_empty(client):
    """Test getting players when DB is empty."""
    response = client.get("/players/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == []


def test_get_players_with_filters(client, seeded):
    response = client.get("/players/", params={"category": "First Team"})
    assert response.status_code == status.HTTP_200_OK
    assert [p["last_name"] for p in response.json()] == ["Fernandez", "Gomez"]

    response = client.get("/players/", params={"search": "tom"})
    assert [p["name"] for p in response.json()] == ["Tomas"]


def test_player_age_is_derived(client, seeded):
    response = client.get(f"/players/{seeded['lucas']}")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["name"] == "Lucas"
    assert data["age"] == calculate_age("2001-03-14", date.today())


def test_get_player_not_found(client):
    response = client.get("/players/99999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Player 99999 not found"


def test_create_update_delete_player(client):
    payload = {
        "name": "Bruno", "last_name": "Sosa", "national_id": "33444555",
        "date_of_birth": "2004-01-09", "position": "Goalkeeper",
    }
    response = client.post("/players/", json=payload)
    assert response.status_code == status.HTTP_201_CREATED
    player_id = response.json()["id"]
    assert response.json()["active"] is True

    response = client.patch(f"/players/{player_id}", json={"attendance": 80})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["attendance"] == 80
    assert response.json()["position"] == "Goalkeeper"

    response = client.delete(f"/players/{player_id}")
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get(f"/players/{player_id}").status_code == status.HTTP_404_NOT_FOUND


def test_duplicate_national_id_conflicts(client, seeded):
    payload = {
        "name": "Other", "last_name": "Player", "national_id": "30111222",
        "date_of_birth": "2000-01-01",
    }
    response = client.post("/players/", json=payload)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_player_validation(client):
    payload = {"name": "", "last_name": "X", "national_id": "1", "date_of_birth": "2000-01-01"}
    assert client.post("/players/", json=payload).status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


# =============================================================================
# MATCHES & ROSTERS
# =============================================================================

def test_matches_by_year(client, seeded):
    response = client.get("/matches/", params={"year": 2023})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [m["date"] for m in data] == ["2023-11-18", "2023-09-10"]
    assert data[1]["result_type"] == "win"
    assert data[0]["result_type"] == "draw"


def test_create_match_rejects_bad_result(client):
    payload = {"opponent": "Club Sur", "result": "two-one", "date": "2024-05-11"}
    assert client.post("/matches/", json=payload).status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_match_roster_flow(client, seeded):
    match = client.post("/matches/", json={
        "opponent": "Club Sur", "result": "1-1", "date": "2024-05-11", "home": True
    }).json()

    response = client.post(f"/matches/{match['id']}/players", json={
        "player_id": seeded["mateo"], "minutes_played": 65, "yellow_cards": 1,
    })
    assert response.status_code == status.HTTP_201_CREATED
    participation_id = response.json()["id"]

    response = client.post(f"/matches/{match['id']}/players", json={"player_id": seeded["mateo"]})
    assert response.status_code == status.HTTP_409_CONFLICT

    response = client.patch(f"/participations/{participation_id}", json={"goals": 1})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["goals"] == 1
    assert response.json()["yellow_cards"] == 1

    roster = client.get(f"/matches/{match['id']}/players").json()
    assert [p["player_id"] for p in roster] == [seeded["mateo"]]

    assert client.delete(f"/matches/{match['id']}").status_code == status.HTTP_204_NO_CONTENT
    assert client.patch(f"/participations/{participation_id}", json={"goals": 2}).status_code == 404


def test_roster_unknown_match(client):
    response = client.post("/matches/999/players", json={"player_id": 1})
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_participation_validation(client, seeded):
    response = client.post(f"/matches/{seeded['matches'][1]}/players", json={
        "player_id": seeded["tomas"], "goals": -1,
    })
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def _roster_entry(client, match_id, player_id):
    roster = client.get(f"/matches/{match_id}/players").json()
    return next(p for p in roster if p["player_id"] == player_id)


def test_patch_with_null_on_required_field_is_rejected(client, seeded):
    lucas, m4 = seeded["lucas"], seeded["matches"][3]
    participation = _roster_entry(client, m4, lucas)

    cases = [
        (f"/players/{lucas}", {"date_of_birth": None}, f"/players/{lucas}", "date_of_birth"),
        (f"/matches/{m4}", {"opponent": None}, f"/matches/{m4}", "opponent"),
        (f"/matches/{m4}", {"home": None}, f"/matches/{m4}", "home"),
        (f"/participations/{participation['id']}", {"goals": None}, None, "goals"),
    ]
    for path, body, read_back, field in cases:
        before = client.get(read_back).json() if read_back else participation
        response = client.patch(path, json=body)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY, path
        after = client.get(read_back).json() if read_back else _roster_entry(client, m4, lucas)
        assert after[field] == before[field]


def test_patch_with_null_on_optional_field_clears_it(client, seeded):
    lucas, m4 = seeded["lucas"], seeded["matches"][3]
    participation = _roster_entry(client, m4, lucas)

    response = client.patch(f"/players/{lucas}", json={"position": None})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["position"] is None

    response = client.patch(f"/participations/{participation['id']}", json={"rating": None})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["rating"] is None
    assert response.json()["goals"] == participation["goals"]


def test_patch_duplicate_national_id_conflicts(client, seeded):
    response = client.patch(f"/players/{seeded['mateo']}", json={"national_id": "30111222"})
    assert response.status_code == status.HTTP_409_CONFLICT


def test_years(client, seeded):
    assert client.get("/years/").json() == {"years": [2024, 2023]}


# =============================================================================
# REPORTS
# =============================================================================

def test_player_profile(client, seeded):
    response = client.get(f"/reports/players/{seeded['lucas']}/profile")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()

    assert data["player"]["full_name"] == "Lucas Fernandez"
    assert data["season"]["goals"] == 5
    assert data["highlights"]["best_match"]["opponent"] == "Deportivo Este"
    assert [y["year"] for y in data["annual"]] == [2024, 2023]
    assert len(data["matches"]) == 4


def test_player_profile_not_found(client):
    response = client.get("/reports/players/999/profile")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_team_dashboard(client, seeded):
    data = client.get("/reports/team", params={"year": 2024}).json()
    assert data["stats"]["total_matches"] == 2
    assert data["record"]["wins"] == 2
    assert len(data["monthly"]) == 12
    assert data["top_scorers"][0]["id"] == seeded["lucas"]


def test_monthly_requires_year(client, seeded):
    assert client.get("/reports/monthly").status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    months = client.get("/reports/monthly", params={"year": 2023}).json()
    assert len(months) == 12
    assert months[8]["month_name"] == "Sep"
    assert months[8]["goals"] == 2


def test_annual_reports(client, seeded):
    data = client.get("/reports/annual").json()
    assert [r["player_id"] for r in data] == [seeded["lucas"], seeded["mateo"]]

    assert client.get("/reports/annual", params={"player_id": 999}).status_code == 404


def test_top_scorers(client, seeded):
    data = client.get("/reports/top-scorers", params={"limit": 1}).json()
    assert len(data) == 1
    assert data[0]["goals"] == 5


def test_comparison(client, seeded):
    response = client.post("/reports/comparison", json={"player_ids": [seeded["mateo"], seeded["lucas"], 999]})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [p["id"] for p in data["players"]] == [seeded["mateo"], seeded["lucas"]]
    assert data["dropped_ids"] == [999]
    assert data["players"][1]["goals_per_match"] == 1.25


def test_comparison_selection_size(client, seeded):
    response = client.post("/reports/comparison", json={"player_ids": [seeded["lucas"]]})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "between 2 and 5" in response.json()["detail"]


def test_yearly_comparison(client, seeded):
    lucas, mateo = seeded["lucas"], seeded["mateo"]
    response = client.post("/reports/comparison/yearly", json={"player_ids": [lucas, mateo]})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()

    assert [y["year"] for y in data["years"]] == [2023, 2024]
    assert all(len(y["players"]) == 2 for y in data["years"])
    assert data["charts"]["goals"][0] == {"year": 2023, "players": {str(lucas): 2, str(mateo): 0}}
