"""Tests for migration 001 (day_bucket + one-standup-per-day index)."""
import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from migrations.migrate_001_add_day_bucket_constraint import migrate


@pytest.fixture
def legacy_engine(tmp_path):
    """A standup table from before day_bucket existed, holding a same-day duplicate."""
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        conn.execute(text("""
            CREATE TABLE standup (
                id INTEGER PRIMARY KEY,
                user_id INTEGER NOT NULL,
                yesterday VARCHAR NOT NULL,
                today VARCHAR NOT NULL,
                blockers VARCHAR NOT NULL,
                created_at DATETIME NOT NULL
            )
        """))
        # 2024-01-16 20:00 and 23:00 UTC are both 2024-01-17 in Auckland
        conn.execute(text("""
            INSERT INTO standup (id, user_id, yesterday, today, blockers, created_at) VALUES
            (1, 1, 'first', 'first plan', 'No blockers', '2024-01-16 20:00:00.000000'),
            (2, 1, 'second', 'second plan', 'No blockers', '2024-01-16 23:00:00.000000'),
            (3, 1, 'earlier day', 'plan', 'No blockers', '2024-01-15 20:00:00.000000'),
            (4, 2, 'other user', 'plan', 'No blockers', '2024-01-16 21:00:00.000000')
        """))
    yield engine
    engine.dispose()


def test_migration_backfills_and_dedupes(legacy_engine, calendar):
    migrate(legacy_engine, calendar)

    with legacy_engine.connect() as conn:
        rows = conn.execute(text("SELECT id, user_id, day_bucket FROM standup ORDER BY id")).fetchall()

    assert [tuple(row) for row in rows] == [
        (1, 1, "2024-01-17"),
        (3, 1, "2024-01-16"),
        (4, 2, "2024-01-17"),
    ]


def test_migration_adds_unique_index(legacy_engine, calendar):
    migrate(legacy_engine, calendar)

    indexes = {idx["name"]: idx for idx in inspect(legacy_engine).get_indexes("standup")}
    assert indexes["uniq_standup_user_day"]["unique"]

    with pytest.raises(IntegrityError):
        with legacy_engine.begin() as conn:
            conn.execute(text("""
                INSERT INTO standup (user_id, yesterday, today, blockers, created_at, day_bucket)
                VALUES (1, 'again', 'again', 'No blockers', '2024-01-17 01:00:00', '2024-01-17')
            """))


def test_migration_is_idempotent(legacy_engine, calendar):
    migrate(legacy_engine, calendar)
    migrate(legacy_engine, calendar)

    with legacy_engine.connect() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM standup")).scalar() == 3


def test_migration_skips_fresh_schema(test_engine, calendar):
    # create_all already built the constraint
    migrate(test_engine, calendar)


def test_migration_without_table(tmp_path, calendar):
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    migrate(engine, calendar)
    assert not inspect(engine).has_table("standup")
