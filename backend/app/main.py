"""
main.py - FastAPI application for the Club Stats Dashboard.

Provides REST API endpoints:
- GET /health: System status check
- /players/: Squad CRUD (age derived per request)
- /matches/: Fixture CRUD and match rosters (/matches/{id}/players)
- /participations/{id}: Edit or remove a roster entry
- GET /years/: Calendar years with matches
- /reports/...: Player profile, team dashboard, monthly breakdown, annual
  reports, top scorers, player comparison and yearly comparison

Every report request opens its own session, fetches one snapshot from the
RecordStore and hands it to the ReportAssembler.
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional
import logging

from fastapi import FastAPI, Depends, Query, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from analytics.config_loader import get_config
from analytics.derived import calculate_age

from . import models, schemas
from .database import engine, get_db
from .services.errors import (
    ComparisonSelectionError, DuplicateRecordError, InvalidRecordError, RecordNotFoundError,
)
from .services.record_store import RecordStore
from .services.report_assembler import NotFound, ReportAssembler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

config = get_config()


# =============================================================================
# LIFESPAN HANDLER
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info("Starting Club Stats Dashboard API...")
    models.Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    yield

    logger.info("Shutting down Club Stats Dashboard API...")


# =============================================================================
# FASTAPI APP INITIALIZATION
# =============================================================================

app = FastAPI(
    title=config.get('api.title', "Club Stats Dashboard API"),
    description="Players, matches and derived season statistics for an amateur football club",
    version="1.0.0",
    lifespan=lifespan
)

# Streamlit front end runs on 8501, API on 8000
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get('api.cors_origins', ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES & HELPERS
# =============================================================================

def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_assembler(store: RecordStore = Depends(get_store)) -> ReportAssembler:
    return ReportAssembler(store, config)


def _not_found(error: RecordNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))


def _conflict(error: DuplicateRecordError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))


def _unprocessable(error: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))


def _player_out(player: models.Player, today: date) -> schemas.PlayerOut:
    out = schemas.PlayerOut.model_validate(player)
    return out.model_copy(update={"age": calculate_age(player.date_of_birth, today)})


# =============================================================================
# HEALTH CHECK
# =============================================================================

@app.get("/health", response_model=schemas.HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """
    System health check endpoint.

    Returns:
    - status: "healthy" if API is running
    - database: "connected" if the database is accessible
    - player_count / match_count: Row counts
    """
    try:
        return {
            "status": "healthy",
            "database": "connected",
            "player_count": db.query(models.Player).count(),
            "match_count": db.query(models.Match).count(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


# =============================================================================
# PLAYER ENDPOINTS
# =============================================================================

@app.get("/players/", response_model=List[schemas.PlayerOut])
def get_players(
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    category: Optional[str] = Query(None, description="Filter by category label"),
    position: Optional[str] = Query(None, description="Filter by position"),
    search: Optional[str] = Query(None, description="Search first or last name"),
    store: RecordStore = Depends(get_store)
):
    """List players ordered by last name, then first name."""
    today = date.today()
    players = store.query_players(active=active, category=category, position=position, search=search)
    return [_player_out(p, today) for p in players]


@app.get("/players/{player_id}", response_model=schemas.PlayerOut)
def get_player(player_id: int, store: RecordStore = Depends(get_store)):
    """
    Get a single player by ID.

    Raises:
        404: Player not found
    """
    try:
        return _player_out(store.get_player(player_id), date.today())
    except RecordNotFoundError as e:
        raise _not_found(e)


@app.post("/players/", response_model=schemas.PlayerOut, status_code=status.HTTP_201_CREATED)
def create_player(payload: schemas.PlayerCreate, store: RecordStore = Depends(get_store)):
    """
    Register a new player.

    Raises:
        409: national_id already in use
    """
    try:
        player = store.create_player(payload.model_dump())
    except DuplicateRecordError as e:
        raise _conflict(e)
    except InvalidRecordError as e:
        raise _unprocessable(e)
    return _player_out(player, date.today())


@app.patch("/players/{player_id}", response_model=schemas.PlayerOut)
def update_player(player_id: int, payload: schemas.PlayerUpdate, store: RecordStore = Depends(get_store)):
    try:
        player = store.update_player(player_id, payload.model_dump(exclude_unset=True))
    except RecordNotFoundError as e:
        raise _not_found(e)
    except DuplicateRecordError as e:
        raise _conflict(e)
    except InvalidRecordError as e:
        raise _unprocessable(e)
    return _player_out(player, date.today())


@app.delete("/players/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_player(player_id: int, store: RecordStore = Depends(get_store)):
    """Delete a player together with all of their participations."""
    try:
        store.delete_player(player_id)
    except RecordNotFoundError as e:
        raise _not_found(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# MATCH ENDPOINTS
# =============================================================================

@app.get("/matches/", response_model=List[schemas.MatchOut])
def get_matches(
    year: Optional[int] = Query(None, ge=1900, le=2100, description="Filter by calendar year"),
    category: Optional[str] = Query(None, description="Filter by category"),
    store: RecordStore = Depends(get_store)
):
    """List matches, newest first."""
    return store.list_matches(year=year, category=category)


@app.get("/matches/{match_id}", response_model=schemas.MatchOut)
def get_match(match_id: int, store: RecordStore = Depends(get_store)):
    try:
        return store.get_match(match_id)
    except RecordNotFoundError as e:
        raise _not_found(e)


@app.post("/matches/", response_model=schemas.MatchOut, status_code=status.HTTP_201_CREATED)
def create_match(payload: schemas.MatchCreate, store: RecordStore = Depends(get_store)):
    try:
        return store.create_match(payload.model_dump())
    except DuplicateRecordError as e:
        raise _conflict(e)
    except InvalidRecordError as e:
        raise _unprocessable(e)


@app.patch("/matches/{match_id}", response_model=schemas.MatchOut)
def update_match(match_id: int, payload: schemas.MatchUpdate, store: RecordStore = Depends(get_store)):
    try:
        return store.update_match(match_id, payload.model_dump(exclude_unset=True))
    except RecordNotFoundError as e:
        raise _not_found(e)
    except DuplicateRecordError as e:
        raise _conflict(e)
    except InvalidRecordError as e:
        raise _unprocessable(e)


@app.delete("/matches/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_match(match_id: int, store: RecordStore = Depends(get_store)):
    """Delete a match together with its roster."""
    try:
        store.delete_match(match_id)
    except RecordNotFoundError as e:
        raise _not_found(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# MATCH ROSTER ENDPOINTS
# =============================================================================

@app.get("/matches/{match_id}/players", response_model=List[schemas.ParticipationOut])
def get_match_roster(match_id: int, store: RecordStore = Depends(get_store)):
    """Starters first, then substitutes."""
    try:
        return store.list_match_roster(match_id)
    except RecordNotFoundError as e:
        raise _not_found(e)


@app.post(
    "/matches/{match_id}/players",
    response_model=schemas.ParticipationOut,
    status_code=status.HTTP_201_CREATED
)
def add_match_player(
    match_id: int,
    payload: schemas.ParticipationCreate,
    store: RecordStore = Depends(get_store)
):
    """
    Add a player's statistics to a match.

    Raises:
        404: Match or player not found
        409: Player already on this match's roster
    """
    try:
        return store.add_participation(match_id, payload.model_dump())
    except RecordNotFoundError as e:
        raise _not_found(e)
    except DuplicateRecordError as e:
        raise _conflict(e)
    except InvalidRecordError as e:
        raise _unprocessable(e)


@app.patch("/participations/{participation_id}", response_model=schemas.ParticipationOut)
def update_match_player(
    participation_id: int,
    payload: schemas.ParticipationUpdate,
    store: RecordStore = Depends(get_store)
):
    try:
        return store.update_participation(participation_id, payload.model_dump(exclude_unset=True))
    except RecordNotFoundError as e:
        raise _not_found(e)
    except DuplicateRecordError as e:
        raise _conflict(e)
    except InvalidRecordError as e:
        raise _unprocessable(e)


@app.delete("/participations/{participation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_match_player(participation_id: int, store: RecordStore = Depends(get_store)):
    try:
        store.delete_participation(participation_id)
    except RecordNotFoundError as e:
        raise _not_found(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/years/", response_model=schemas.YearsResponse)
def get_years(assembler: ReportAssembler = Depends(get_assembler)):
    """Calendar years with at least one match, newest first."""
    return {"years": assembler.available_years()}


# =============================================================================
# REPORT ENDPOINTS
# =============================================================================

@app.get("/reports/players/{player_id}/profile", response_model=schemas.PlayerProfileResponse)
def get_player_profile(player_id: int, assembler: ReportAssembler = Depends(get_assembler)):
    """
    Player profile: season totals, highlights, annual history, monthly
    timeline and the match log.

    Raises:
        404: Player not found
    """
    report = assembler.player_profile(player_id, today=date.today())
    if isinstance(report, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=report.message)
    return report.to_dict()


@app.get("/reports/team", response_model=schemas.TeamDashboardResponse)
def get_team_dashboard(
    year: Optional[int] = Query(None, ge=1900, le=2100, description="Calendar year (all years when omitted)"),
    assembler: ReportAssembler = Depends(get_assembler)
):
    """Team totals, W/D/L record, monthly chart and leaderboards."""
    return assembler.team_dashboard(year=year, today=date.today()).to_dict()


@app.get("/reports/monthly", response_model=List[schemas.MonthTotals])
def get_monthly_breakdown(
    year: int = Query(..., ge=1900, le=2100, description="Calendar year"),
    assembler: ReportAssembler = Depends(get_assembler)
):
    """Exactly 12 month entries for the given year."""
    return [m.to_dict() for m in assembler.monthly_breakdown(year)]


@app.get("/reports/annual", response_model=List[schemas.AnnualPlayerReport])
def get_annual_reports(
    player_id: Optional[int] = Query(None, description="Single player (whole squad when omitted)"),
    assembler: ReportAssembler = Depends(get_assembler)
):
    reports = assembler.annual_reports(player_id)
    if isinstance(reports, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=reports.message)
    return [r.to_dict() for r in reports]


@app.get("/reports/top-scorers", response_model=List[schemas.PlayerComparison])
def get_top_scorers(
    year: Optional[int] = Query(None, ge=1900, le=2100),
    limit: Optional[int] = Query(None, ge=1, le=50, description="Rows to return"),
    assembler: ReportAssembler = Depends(get_assembler)
):
    rows = assembler.top_scorers(year=year, limit=limit, today=date.today())
    return [r.to_dict() for r in rows]


@app.post("/reports/comparison", response_model=schemas.ComparisonResponse)
def compare_players(
    request: schemas.ComparisonRequest,
    assembler: ReportAssembler = Depends(get_assembler)
):
    """
    Side-by-side totals for 2-5 players.

    Unknown ids are excluded and listed in `dropped_ids`.

    Raises:
        422: Fewer than 2 or more than 5 distinct players selected
    """
    try:
        report = assembler.comparison(request.player_ids, year=request.year, today=date.today())
    except ComparisonSelectionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return report.to_dict()


@app.post("/reports/comparison/yearly", response_model=schemas.YearlyComparisonResponse)
def compare_players_by_year(
    request: schemas.YearlyComparisonRequest,
    assembler: ReportAssembler = Depends(get_assembler)
):
    """Per-year totals for 2-5 players on a shared year axis."""
    try:
        report = assembler.yearly_comparison(request.player_ids)
    except ComparisonSelectionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return report.to_dict()
