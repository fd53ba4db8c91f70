"""
Migration: Add day_bucket field and the one-standup-per-day unique index.

This migration:
1. Adds day_bucket column (YYYY-MM-DD of created_at in STANDUP_TIMEZONE)
2. Backfills day_bucket from created_at for existing rows
3. Deduplicates any existing (user_id, day_bucket) pairs, keeping the earliest by created_at
4. Adds unique index on (user_id, day_bucket)

The bucket is computed in Python so the day boundary matches the Calendar
exactly on both SQLite and PostgreSQL.
"""
import logging
from datetime import datetime

from sqlalchemy import inspect, text

from clock import Calendar, load_calendar

logger = logging.getLogger(__name__)


def is_postgres(engine):
    """Check if database is PostgreSQL."""
    return "postgresql" in str(engine.url).lower()


def migrate(engine, calendar: Calendar | None = None):
    """Run migration."""
    calendar = calendar or load_calendar()
    inspector = inspect(engine)

    if not inspector.has_table("standup"):
        logger.info("Standup table does not exist, skipping migration")
        return

    columns = [col["name"] for col in inspector.get_columns("standup")]
    indexes = [idx["name"] for idx in inspector.get_indexes("standup")]
    constraints = [uc["name"] for uc in inspector.get_unique_constraints("standup")]
    if "day_bucket" in columns and ("uniq_standup_user_day" in indexes or "uniq_standup_user_day" in constraints):
        logger.info("day_bucket constraint already exists, skipping migration")
        return

    with engine.connect() as conn:
        # Start transaction
        trans = conn.begin()

        try:
            if "day_bucket" not in columns:
                logger.info("Adding day_bucket column...")
                conn.execute(text("ALTER TABLE standup ADD COLUMN day_bucket VARCHAR"))

            logger.info("Backfilling day_bucket from created_at...")
            rows = conn.execute(text("SELECT id, created_at FROM standup WHERE day_bucket IS NULL OR day_bucket = ''")).fetchall()
            for standup_id, created_at in rows:
                conn.execute(
                    text("UPDATE standup SET day_bucket = :day_bucket WHERE id = :id"),
                    {"id": standup_id, "day_bucket": calendar.day_bucket(as_datetime(created_at))},
                )
            logger.info(f"Backfilled {len(rows)} rows")

            # Keep the standup that was submitted first each day
            logger.info("Deduplicating standups...")
            result = conn.execute(text("""
                DELETE FROM standup
                WHERE id NOT IN (
                    SELECT keep_id FROM (
                        SELECT MIN(id) AS keep_id
                        FROM standup s1
                        WHERE created_at = (
                            SELECT MIN(created_at) FROM standup s2
                            WHERE s2.user_id = s1.user_id AND s2.day_bucket = s1.day_bucket
                        )
                        GROUP BY user_id, day_bucket
                    ) keepers
                )
            """))
            logger.info(f"Removed {result.rowcount or 0} duplicate standups")

            if is_postgres(engine):
                conn.execute(text("ALTER TABLE standup ALTER COLUMN day_bucket SET NOT NULL"))

            logger.info("Creating unique index on (user_id, day_bucket)...")
            conn.execute(text("""
                CREATE UNIQUE INDEX IF NOT EXISTS uniq_standup_user_day
                ON standup (user_id, day_bucket)
            """))

            trans.commit()
            logger.info("Migration 001 completed successfully")
        except Exception as e:
            trans.rollback()
            logger.error(f"Migration 001 failed: {str(e)}")
            raise


def as_datetime(value):
    """SQLite hands raw TEXT back for timestamps selected with text()."""
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


if __name__ == "__main__":
    from db import engine
    logging.basicConfig(level=logging.INFO)
    migrate(engine)
