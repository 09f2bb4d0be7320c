
import os
from datetime import date

import pytest

# Keep the application engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.database import Base, get_db
from backend.app.main import app
from backend.app import models
from analytics.records import ParticipationRecord

# In-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """TestClient with database dependency override."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session):
    """
    Two seasons for a small squad.

    Lucas: 2 goals (2023-09-10), 0 (2023-11-18), 1 (2024-03-02), 2 (2024-03-23)
    Mateo: 0 (2023-09-10), 1 (2024-03-23)
    Tomas: registered, never played
    """
    lucas = models.Player(name="Lucas", last_name="Fernandez", national_id="30111222",
                          date_of_birth=date(2001, 3, 14), position="Forward", category="First Team")
    mateo = models.Player(name="Mateo", last_name="Gomez", national_id="31222333",
                          date_of_birth=date(1999, 11, 2), position="Midfielder", category="First Team")
    tomas = models.Player(name="Tomas", last_name="Ruiz", national_id="32333444",
                          date_of_birth=date(2003, 7, 21), position="Defender", category="Reserves")
    db_session.add_all([lucas, mateo, tomas])

    m1 = models.Match(opponent="Atletico Norte", result="2-1", date=date(2023, 9, 10), home=True)
    m2 = models.Match(opponent="Club Sur", result="0-0", date=date(2023, 11, 18), home=False)
    m3 = models.Match(opponent="Atletico Norte", result="1-3", date=date(2024, 3, 2), home=False)
    m4 = models.Match(opponent="Deportivo Este", result="4-2", date=date(2024, 3, 23), home=True)
    db_session.add_all([m1, m2, m3, m4])
    db_session.flush()

    db_session.add_all([
        models.MatchParticipation(match_id=m1.id, player_id=lucas.id, minutes_played=90, goals=2, rating=8.5),
        models.MatchParticipation(match_id=m1.id, player_id=mateo.id, minutes_played=90, assists=1,
                                  yellow_cards=1, rating=7.0),
        models.MatchParticipation(match_id=m2.id, player_id=lucas.id, minutes_played=90, yellow_cards=1),
        models.MatchParticipation(match_id=m3.id, player_id=lucas.id, minutes_played=90, goals=1, assists=1),
        models.MatchParticipation(match_id=m4.id, player_id=lucas.id, minutes_played=90, goals=2, assists=1,
                                  rating=9.0),
        models.MatchParticipation(match_id=m4.id, player_id=mateo.id, minutes_played=30, goals=1,
                                  starter=False, minute_in=60, rating=8.0),
    ])
    db_session.commit()

    return {
        "lucas": lucas.id, "mateo": mateo.id, "tomas": tomas.id,
        "matches": [m1.id, m2.id, m3.id, m4.id],
    }


def make_record(id, player_id=7, match_id=None, match_date="2024-01-01", goals=0, **fields):
    """Build a ParticipationRecord with sensible defaults for engine tests."""
    return ParticipationRecord(
        id=id,
        match_id=match_id if match_id is not None else id,
        player_id=player_id,
        match_date=match_date,
        goals=goals,
        **fields
    )
