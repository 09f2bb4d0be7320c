"""
ingest_data.py - ETL script to load club CSV exports into the database.

Reads three files from a data directory:
- players.csv: name, last_name, national_id, date_of_birth, position, category, active, attendance
- matches.csv: date, opponent, result, referee, category, home
- participations.csv: national_id, match_date, opponent, minutes_played, goals,
  assists, yellow_cards, red_cards, starter, minute_in, rating

Features:
- Converts NumPy types to Python native types before they reach SQLAlchemy
- Upsert logic for idempotency (players by national_id, participations by
  match/player pair, matches by date and opponent)
- Rows with unparsable dates or unknown references are skipped and logged
- Writes a JSON summary of what was loaded
"""

import sys
import os
import json
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime

import numpy as np
import pandas as pd

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from backend.app.database import engine, SessionLocal
from backend.app.models import Base, Match, MatchParticipation, Player

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(project_root, 'data', 'sample')

PLAYER_COLUMNS = ['name', 'last_name', 'national_id', 'date_of_birth', 'position', 'category', 'active', 'attendance']
MATCH_COLUMNS = ['date', 'opponent', 'result', 'referee', 'category', 'home']
STAT_COLUMNS = ['minutes_played', 'goals', 'assists', 'yellow_cards', 'red_cards']


def convert_numpy_types(obj):
    """
    Recursively convert NumPy types to Python native types.

    Required because the SQLite driver and json.dump cannot handle np.int64,
    np.float64, etc.

    Args:
        obj: Any Python object that may contain NumPy types

    Returns:
        Object with all NumPy types converted to native Python types
    """
    if isinstance(obj, dict):
        return {k: convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(item) for item in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        # Handle NaN and Inf values
        if np.isnan(obj) or np.isinf(obj):
            return None
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return convert_numpy_types(obj.tolist())
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, (np.str_, np.bytes_)):
        return str(obj)
    elif isinstance(obj, float) and np.isnan(obj):
        return None
    else:
        return obj


def _as_bool(value, default: bool) -> bool:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'y', 'si')
    return bool(value)


def _parse_dates(df: pd.DataFrame, column: str, label: str) -> pd.DataFrame:
    """Parse an ISO date column, dropping (and logging) rows that do not parse."""
    parsed = pd.to_datetime(df[column], errors='coerce', format='ISO8601')
    bad = parsed.isna()
    if bad.any():
        logger.warning(f"{label}: skipping {int(bad.sum())} row(s) with invalid {column}: "
                       f"{df.loc[bad, column].tolist()}")
    df = df.loc[~bad].copy()
    df[column] = parsed[~bad].dt.date
    return df


def read_csv(path: str, required: list) -> pd.DataFrame:
    """Read a CSV export, failing when required columns are missing."""
    df = pd.read_csv(path, dtype={'national_id': str})
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{os.path.basename(path)} is missing columns: {missing}")
    return df


# =============================================================================
# LOADERS
# =============================================================================

def upsert_players(session, df: pd.DataFrame) -> int:
    """
    Insert or update players keyed by national_id.

    Uses SQLite's ON CONFLICT DO UPDATE for idempotency.
    """
    df = _parse_dates(df, 'date_of_birth', 'players.csv')
    count = 0

    for _, row in df.iterrows():
        player_data = convert_numpy_types({
            'name': str(row['name']).strip(),
            'last_name': str(row['last_name']).strip(),
            'national_id': str(row['national_id']).strip(),
            'date_of_birth': row['date_of_birth'],
            'position': row.get('position') if pd.notna(row.get('position')) else None,
            'category': row.get('category') if pd.notna(row.get('category')) else None,
            'active': _as_bool(row.get('active'), True),
            'attendance': int(row['attendance']) if pd.notna(row.get('attendance')) else 0,
        })

        stmt = sqlite_insert(Player).values(**player_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=['national_id'],
            set_={
                'name': stmt.excluded.name,
                'last_name': stmt.excluded.last_name,
                'date_of_birth': stmt.excluded.date_of_birth,
                'position': stmt.excluded.position,
                'category': stmt.excluded.category,
                'active': stmt.excluded.active,
                'attendance': stmt.excluded.attendance,
            }
        )
        session.execute(stmt)
        count += 1

    return count


def load_matches(session, df: pd.DataFrame) -> int:
    """Insert matches not already present (same date and opponent)."""
    df = _parse_dates(df, 'date', 'matches.csv')
    count = 0

    for _, row in df.iterrows():
        opponent = str(row['opponent']).strip()
        existing = (
            session.query(Match)
            .filter(Match.date == row['date'], Match.opponent == opponent)
            .first()
        )
        values = convert_numpy_types({
            'result': str(row['result']).strip(),
            'referee': str(row['referee']).strip() if pd.notna(row.get('referee')) else '',
            'category': row.get('category') if pd.notna(row.get('category')) else None,
            'home': _as_bool(row.get('home'), False),
        })

        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
        else:
            session.add(Match(date=row['date'], opponent=opponent, **values))
            count += 1

    session.flush()
    return count


def upsert_participations(session, df: pd.DataFrame) -> int:
    """
    Insert or update per-match statistics keyed by (match, player).

    Rows are matched to players by national_id and to matches by date and
    opponent; rows referencing neither are skipped.
    """
    df = _parse_dates(df, 'match_date', 'participations.csv')

    players = {p.national_id: p.id for p in session.query(Player).all()}
    matches = {(m.date, m.opponent): m.id for m in session.query(Match).all()}
    count = 0

    for _, row in df.iterrows():
        player_id = players.get(str(row['national_id']).strip())
        match_id = matches.get((row['match_date'], str(row['opponent']).strip()))
        if player_id is None or match_id is None:
            logger.warning(f"participations.csv: no player/match for {row['national_id']} "
                           f"vs {row['opponent']} on {row['match_date']}, skipping")
            continue

        starter = _as_bool(row.get('starter'), True)
        data = {col: int(row[col]) if pd.notna(row.get(col)) else 0 for col in STAT_COLUMNS}
        data.update({
            'match_id': match_id,
            'player_id': player_id,
            'starter': starter,
            'minute_in': None if starter or pd.isna(row.get('minute_in')) else int(row['minute_in']),
            'rating': row.get('rating') if pd.notna(row.get('rating')) else None,
        })
        data = convert_numpy_types(data)

        stmt = sqlite_insert(MatchParticipation).values(**data)
        stmt = stmt.on_conflict_do_update(
            index_elements=['match_id', 'player_id'],
            set_={col: getattr(stmt.excluded, col)
                  for col in STAT_COLUMNS + ['starter', 'minute_in', 'rating']}
        )
        session.execute(stmt)
        count += 1

    return count


# =============================================================================
# LOGGING & SUMMARY
# =============================================================================

def setup_logging():
    """Configure structured logging with rotation."""
    log_dir = os.path.join(project_root, 'etl', 'logs')
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, 'ingestion.log')

    file_handler = RotatingFileHandler(
        log_file, maxBytes=5*1024*1024, backupCount=3
    )
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    return root


def generate_summary(counts: dict, participations: pd.DataFrame, output_path: str) -> dict:
    """Generate and save a JSON summary of the load."""
    summary = {
        'timestamp': datetime.utcnow().isoformat(),
        'loaded': counts,
        'goals_by_opponent': {},
        'missing_data_pct': participations.isna().mean().to_dict(),
    }
    if not participations.empty and 'goals' in participations.columns:
        summary['goals_by_opponent'] = participations.groupby('opponent')['goals'].sum().to_dict()

    summary = convert_numpy_types(summary)

    with open(output_path, 'w') as f:
        json.dump(summary, f, indent=2)

    return summary


# =============================================================================
# ENTRY POINT
# =============================================================================

def run_ingestion(data_dir: str = DEFAULT_DATA_DIR, session_factory=SessionLocal,
                  bind=engine, summary_path: str = None) -> dict:
    """
    Main ETL function: Load CSVs -> Validate -> Upsert into the database.

    Steps:
    1. Create database tables if they don't exist
    2. Read the three CSV exports
    3. Upsert players, matches and participations in one transaction
    4. Write the summary JSON

    Returns:
        Dict with the number of rows written per table
    """
    logger.info("=" * 80)
    logger.info("STARTING ETL INGESTION")
    logger.info("=" * 80)

    logger.info("[1/4] Creating database tables...")
    Base.metadata.create_all(bind=bind)

    logger.info(f"[2/4] Reading CSV exports from {data_dir}...")
    players_df = read_csv(os.path.join(data_dir, 'players.csv'), ['name', 'last_name', 'national_id', 'date_of_birth'])
    matches_df = read_csv(os.path.join(data_dir, 'matches.csv'), ['date', 'opponent', 'result'])
    parts_df = read_csv(os.path.join(data_dir, 'participations.csv'), ['national_id', 'match_date', 'opponent'])

    logger.info("[3/4] Loading rows...")
    session = session_factory()
    try:
        counts = {
            'players': upsert_players(session, players_df),
            'matches': load_matches(session, matches_df),
            'participations': upsert_participations(session, parts_df),
        }
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Error during ingestion: {e}")
        raise
    finally:
        session.close()

    logger.info(f"Loaded {counts['players']} players, {counts['matches']} new matches, "
                f"{counts['participations']} participations")

    logger.info("[4/4] Writing summary...")
    summary_path = summary_path or os.path.join(project_root, 'etl', 'data_summary.json')
    generate_summary(counts, parts_df, summary_path)
    logger.info(f"Data summary saved to {summary_path}")

    return counts


if __name__ == "__main__":
    setup_logging()
    run_ingestion(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_DATA_DIR)
