"""
Tests for the SQLAlchemy-backed RecordStore: snapshot reads, CRUD rules and
cascading deletes.
"""

from datetime import date

import pytest

from backend.app import models
from backend.app.services.errors import DuplicateRecordError, InvalidRecordError, RecordNotFoundError
from backend.app.services.record_store import RecordStore


def _player(national_id="40111222", **overrides):
    data = {
        "name": "Bruno",
        "last_name": "Sosa",
        "national_id": national_id,
        "date_of_birth": date(2004, 1, 9),
        "position": "Goalkeeper",
        "category": "Reserves",
    }
    data.update(overrides)
    return data


class TestSnapshots:
    def test_player_participations_newest_first(self, db_session, seeded):
        store = RecordStore(db_session)
        records = store.list_participations_for_player(seeded["lucas"])

        assert [r.match_date for r in records] == ["2024-03-23", "2024-03-02", "2023-11-18", "2023-09-10"]
        assert records[0].match_opponent == "Deportivo Este"
        assert records[0].match_result == "4-2"
        assert records[0].match_home is True

    def test_all_participations_by_year(self, db_session, seeded):
        store = RecordStore(db_session)
        assert len(store.list_all_participations()) == 6
        assert len(store.list_all_participations(2023)) == 3
        assert store.list_all_participations(2010) == []

    def test_player_record(self, db_session, seeded):
        store = RecordStore(db_session)
        record = store.get_player_record(seeded["mateo"])
        assert record.full_name == "Mateo Gomez"
        assert record.date_of_birth == "1999-11-02"
        assert store.get_player_record(999) is None

    def test_available_years(self, db_session, seeded):
        assert RecordStore(db_session).available_years() == [2024, 2023]

    def test_snapshot_is_detached(self, db_session, seeded):
        store = RecordStore(db_session)
        before = store.list_participations_for_player(seeded["lucas"])

        mp = db_session.query(models.MatchParticipation).filter_by(player_id=seeded["lucas"]).first()
        mp.goals = 10
        db_session.commit()

        assert sum(r.goals for r in before) == 5


class TestPlayers:
    def test_create_and_filter(self, db_session, seeded):
        store = RecordStore(db_session)
        created = store.create_player(_player())
        assert created.id is not None

        # Ordered by last name: Ruiz, Sosa
        assert [p.name for p in store.query_players(category="Reserves")] == ["Tomas", "Bruno"]
        assert [p.last_name for p in store.query_players(search="gom")] == ["Gomez"]

    def test_duplicate_national_id(self, db_session, seeded):
        store = RecordStore(db_session)
        with pytest.raises(DuplicateRecordError):
            store.create_player(_player(national_id="30111222"))

    def test_update_to_taken_national_id(self, db_session, seeded):
        store = RecordStore(db_session)
        with pytest.raises(DuplicateRecordError):
            store.update_player(seeded["mateo"], {"national_id": "30111222"})

    def test_update(self, db_session, seeded):
        store = RecordStore(db_session)
        updated = store.update_player(seeded["tomas"], {"active": False, "attendance": 55})
        assert updated.active is False
        assert updated.attendance == 55

    def test_missing_player(self, db_session):
        with pytest.raises(RecordNotFoundError):
            RecordStore(db_session).get_player(1)

    def test_delete_cascades_participations(self, db_session, seeded):
        store = RecordStore(db_session)
        store.delete_player(seeded["lucas"])

        remaining = db_session.query(models.MatchParticipation).all()
        assert len(remaining) == 2
        assert all(mp.player_id == seeded["mateo"] for mp in remaining)


class TestMatches:
    def test_list_by_year(self, db_session, seeded):
        store = RecordStore(db_session)
        assert [m.opponent for m in store.list_matches(year=2024)] == ["Deportivo Este", "Atletico Norte"]

    def test_delete_cascades_roster(self, db_session, seeded):
        store = RecordStore(db_session)
        store.delete_match(seeded["matches"][0])

        assert db_session.query(models.MatchParticipation).count() == 4
        assert len(store.list_participations_for_player(seeded["mateo"])) == 1

    def test_match_records(self, db_session, seeded):
        records = RecordStore(db_session).list_match_records(2023)
        assert {r.result for r in records} == {"2-1", "0-0"}

    def test_not_null_violation_is_not_a_duplicate(self, db_session, seeded):
        store = RecordStore(db_session)
        match_id = seeded["matches"][0]

        with pytest.raises(InvalidRecordError):
            store.update_match(match_id, {"opponent": None})
        assert store.get_match(match_id).opponent == "Atletico Norte"

    def test_not_null_violation_on_roster(self, db_session, seeded):
        store = RecordStore(db_session)
        participation = store.list_match_roster(seeded["matches"][1])[0]

        with pytest.raises(InvalidRecordError):
            store.update_participation(participation.id, {"goals": None})
        assert store.get_participation(participation.id).goals == 0


class TestRoster:
    def test_add_participation(self, db_session, seeded):
        store = RecordStore(db_session)
        mp = store.add_participation(seeded["matches"][1], {"player_id": seeded["tomas"], "goals": 1})
        assert mp.match_id == seeded["matches"][1]
        assert mp.goals == 1

    def test_one_participation_per_match(self, db_session, seeded):
        store = RecordStore(db_session)
        with pytest.raises(DuplicateRecordError):
            store.add_participation(seeded["matches"][0], {"player_id": seeded["lucas"]})

    def test_unknown_player_or_match(self, db_session, seeded):
        store = RecordStore(db_session)
        with pytest.raises(RecordNotFoundError):
            store.add_participation(seeded["matches"][0], {"player_id": 999})
        with pytest.raises(RecordNotFoundError):
            store.add_participation(999, {"player_id": seeded["tomas"]})

    def test_starter_clears_minute_in(self, db_session, seeded):
        store = RecordStore(db_session)
        mp = store.add_participation(
            seeded["matches"][2], {"player_id": seeded["tomas"], "starter": True, "minute_in": 70}
        )
        assert mp.minute_in is None

        mp = store.update_participation(mp.id, {"starter": False, "minute_in": 70})
        assert mp.minute_in == 70

    def test_roster_lists_starters_first(self, db_session, seeded):
        roster = RecordStore(db_session).list_match_roster(seeded["matches"][3])
        assert [mp.starter for mp in roster] == [True, False]

    def test_delete_participation(self, db_session, seeded):
        store = RecordStore(db_session)
        roster = store.list_match_roster(seeded["matches"][3])
        store.delete_participation(roster[1].id)
        assert len(store.list_match_roster(seeded["matches"][3])) == 1
