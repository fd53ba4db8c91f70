import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from clock import Calendar, load_calendar
from db import create_db_and_tables, engine, get_session
from directory import UserDirectory
from errors import (
    ConflictError,
    EditWindowError,
    LedgerError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from ledger import HistoryPeriod, LedgerService
from schemas import (
    DailyCheckResponse,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    StandupRequest,
    StandupResponse,
    TeamStandupResponse,
    UserResponse,
)
from store import StandupStore
from team import TeamEntry, TeamSnapshot

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# One calendar per process; the timezone never changes per request
calendar = load_calendar()


class MissingUserError(LedgerError):
    """No X-User-Id header on a request that needs one."""


ERROR_STATUS = {
    MissingUserError: 401,
    ValidationError: 400,
    ConflictError: 400,
    EditWindowError: 400,
    NotFoundError: 404,
    ServiceError: 500,
}

# Every error body has the same shape, whatever the status
ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in sorted(set(ERROR_STATUS.values()))}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    create_db_and_tables()

    # Older databases predate the day_bucket index
    try:
        from migrations.migrate_001_add_day_bucket_constraint import migrate as migrate_001
        migrate_001(engine, calendar)
    except Exception as e:
        logger.warning(f"Migration 001 check failed (may already be applied): {str(e)}")

    logger.info("Database initialized")
    yield


# Create FastAPI app
app = FastAPI(title="Standup Tracker API", version="1.0.0", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def get_calendar() -> Calendar:
    return calendar


def get_directory(session: Session = Depends(get_session)) -> UserDirectory:
    return UserDirectory(session)


def get_ledger(
    session: Session = Depends(get_session),
    calendar: Calendar = Depends(get_calendar),
) -> LedgerService:
    return LedgerService(StandupStore(session), UserDirectory(session), calendar)


def get_team(
    session: Session = Depends(get_session),
    calendar: Calendar = Depends(get_calendar),
) -> TeamSnapshot:
    return TeamSnapshot(StandupStore(session), calendar)


def current_user_id(
    x_user_id: str | None = Header(None),
    users: UserDirectory = Depends(get_directory),
) -> int:
    """Resolve the X-User-Id header to an existing user id."""
    if not x_user_id:
        raise MissingUserError({"userId": "User ID not provided"})
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise NotFoundError({"userId": "User not found"}) from None
    if not users.user_exists(user_id):
        raise NotFoundError({"userId": "User not found"})
    return user_id


def team_response(entry: TeamEntry) -> TeamStandupResponse:
    standup = entry.standup
    return TeamStandupResponse(
        id=standup.id,
        user_id=standup.user_id,
        yesterday=standup.yesterday,
        today=standup.today,
        blockers=standup.blockers,
        created_at=standup.created_at,
        user=UserResponse.model_validate(entry.user),
    )


@app.post("/api/users/register", response_model=UserResponse, status_code=201, responses=ERROR_RESPONSES)
def register_user(request: RegisterRequest, users: UserDirectory = Depends(get_directory)):
    """Register a new team member."""
    return users.register(request.username, request.email)


@app.post("/api/users/login", response_model=UserResponse, responses=ERROR_RESPONSES)
def login_user(request: LoginRequest, users: UserDirectory = Depends(get_directory)):
    """Resolve a username to its profile."""
    logger.info(f"Login request for username: {request.username}")
    return users.find_by_username(request.username)


@app.get("/api/standups/check-daily", response_model=DailyCheckResponse, responses=ERROR_RESPONSES)
def check_daily_standup(
    user_id: int = Depends(current_user_id),
    ledger: LedgerService = Depends(get_ledger),
):
    """Check if the user has already submitted a standup for today."""
    standup = ledger.has_submission_today(user_id)
    if standup:
        return DailyCheckResponse(hasSubmittedToday=True, standup=StandupResponse.model_validate(standup))
    return DailyCheckResponse(hasSubmittedToday=False)


@app.post("/api/standups", response_model=StandupResponse, status_code=201, responses=ERROR_RESPONSES)
def create_standup(
    request: StandupRequest,
    user_id: int = Depends(current_user_id),
    ledger: LedgerService = Depends(get_ledger),
):
    """Submit today's standup."""
    return ledger.create(user_id, request.yesterday, request.today, request.blockers)


@app.put("/api/standups/{standup_id}", response_model=StandupResponse, responses=ERROR_RESPONSES)
def update_standup(
    standup_id: int,
    request: StandupRequest,
    user_id: int = Depends(current_user_id),
    ledger: LedgerService = Depends(get_ledger),
):
    """Edit today's standup."""
    return ledger.update(standup_id, user_id, request.yesterday, request.today, request.blockers)


@app.get("/api/standups/team", response_model=list[TeamStandupResponse], responses=ERROR_RESPONSES)
def get_team_standups(
    filter: str | None = Query(None, description="today, yesterday or week (default)"),
    user_id: int = Depends(current_user_id),
    team: TeamSnapshot = Depends(get_team),
):
    """Get the most recent standup from each team member."""
    return [team_response(entry) for entry in team.team_snapshot(filter)]


@app.get("/api/standups", response_model=list[StandupResponse], responses=ERROR_RESPONSES)
def get_user_standups(
    period: HistoryPeriod = Query(HistoryPeriod.ALL, description="all, week or month"),
    user_id: int = Depends(current_user_id),
    ledger: LedgerService = Depends(get_ledger),
):
    """Get the user's standups, newest first."""
    standups = ledger.list_for_user(user_id, period)
    logger.info(f"Found {len(standups)} standups for user {user_id} (period={period.value})")
    return standups


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {"status": "OK"}


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Standup Tracker API", "docs": "/docs"}
