"""Concurrent creates for one user on one day: exactly one may win."""
import threading
from concurrent.futures import ThreadPoolExecutor

from sqlmodel import Session, select

from directory import UserDirectory
from errors import ConflictError
from ledger import LedgerService
from models import Standup
from store import StandupStore

WRITERS = 8


def test_concurrent_creates_store_one_standup(test_engine, calendar, alice):
    barrier = threading.Barrier(WRITERS)

    def submit(n: int) -> str:
        # One session per writer, like separate request handlers
        with Session(test_engine) as session:
            ledger = LedgerService(StandupStore(session), UserDirectory(session), calendar)
            barrier.wait()
            try:
                ledger.create(alice.id, f"Writer {n} update", f"Writer {n} plan")
            except ConflictError:
                return "conflict"
            return "created"

    with ThreadPoolExecutor(max_workers=WRITERS) as pool:
        results = list(pool.map(submit, range(WRITERS)))

    assert results.count("created") == 1
    assert results.count("conflict") == WRITERS - 1

    with Session(test_engine) as session:
        stored = session.exec(select(Standup).where(Standup.user_id == alice.id)).all()
    assert len(stored) == 1


def test_concurrent_creates_for_different_users_all_succeed(test_engine, calendar, users):
    members = [users.register(f"member{n}", f"member{n}@example.com") for n in range(4)]
    barrier = threading.Barrier(len(members))

    def submit(user_id: int) -> int:
        with Session(test_engine) as session:
            ledger = LedgerService(StandupStore(session), UserDirectory(session), calendar)
            barrier.wait()
            return ledger.create(user_id, "Parallel update", "Parallel plan").user_id

    with ThreadPoolExecutor(max_workers=len(members)) as pool:
        created = list(pool.map(submit, [member.id for member in members]))

    assert sorted(created) == sorted(member.id for member in members)
