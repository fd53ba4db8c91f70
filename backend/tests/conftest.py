import os
import tempfile
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

# Keep the app's module-level engine away from any real database
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(prefix="standups-"), "standups.db"))
os.environ.setdefault("STANDUP_TIMEZONE", "Pacific/Auckland")

import pytest
from sqlmodel import Session, select

from clock import Calendar, FixedClock
from db import build_engine, create_db_and_tables
from directory import UserDirectory
from ledger import LedgerService
from models import Standup
from store import StandupStore, to_storage
from team import TeamSnapshot

NZ = ZoneInfo("Pacific/Auckland")
# Wednesday mid-morning, New Zealand daylight time
NOW = datetime(2024, 1, 17, 10, 0, tzinfo=NZ)


@pytest.fixture
def test_engine(tmp_path):
    """File-backed SQLite so several connections can see the same data."""
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_session(test_engine):
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def calendar(clock):
    return Calendar(NZ, clock)


@pytest.fixture
def store(test_session):
    return StandupStore(test_session)


@pytest.fixture
def users(test_session):
    return UserDirectory(test_session)


@pytest.fixture
def ledger(store, users, calendar):
    return LedgerService(store, users, calendar)


@pytest.fixture
def team(store, calendar):
    return TeamSnapshot(store, calendar)


@pytest.fixture
def alice(users):
    return users.register("alice", "alice@example.com")


@pytest.fixture
def bob(users):
    return users.register("bob", "bob@example.com")


@pytest.fixture
def backdate(store, calendar):
    """Write a standup straight into the store, as an import or seed would."""

    def _backdate(user_id: int, days_ago: int = 0, hours: int = 0, text: str = "Backdated work") -> Standup:
        created_at = calendar.now() - timedelta(days=days_ago, hours=hours)
        return store.insert(
            Standup(
                user_id=user_id,
                yesterday=f"{text} (yesterday)",
                today=f"{text} (today)",
                blockers="No blockers",
                created_at=to_storage(created_at),
                day_bucket=calendar.day_bucket(created_at),
            )
        )

    return _backdate


@pytest.fixture
def standup_count(test_session):
    def _count(user_id: int) -> int:
        return len(test_session.exec(select(Standup.id).where(Standup.user_id == user_id)).all())

    return _count
