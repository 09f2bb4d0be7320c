"""
database.py - SQLAlchemy database configuration for the Club Stats Dashboard.

Provides:
- SQLite connection with multi-threading support
- Foreign-key enforcement so deleting a player or match cascades
- Session factory for database operations
- Dependency injection for FastAPI endpoints
"""

import os
import sqlite3

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from analytics.config_loader import get_config

load_dotenv()

# Database URL - DATABASE_URL env var wins over config.yaml
SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL", get_config().get_database_url())

# Using check_same_thread=False for multi-threaded API access (required for FastAPI)
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)

# Session factory - creates new database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement off; ON DELETE CASCADE needs it on
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    """
    Dependency generator for FastAPI endpoint injection.

    Yields a database session and ensures cleanup after request completion.

    Usage in FastAPI:
        @app.get("/players/")
        def get_players(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
