#!/usr/bin/env python3
"""
Script to verify the one-standup-per-day rule holds in the database.
Run this before/after a migration or import to check the ledger is intact.
"""
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sqlalchemy import func
from sqlmodel import Session, col, select

from db import engine
from models import Standup, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def find_duplicate_days(session: Session) -> list[tuple[int, str, int]]:
    """(user_id, day_bucket, count) for every day holding more than one standup."""
    rows = session.exec(
        select(Standup.user_id, Standup.day_bucket, func.count(col(Standup.id)))
        .group_by(Standup.user_id, Standup.day_bucket)
        .having(func.count(col(Standup.id)) > 1)
    ).all()
    return [tuple(row) for row in rows]


def find_orphans(session: Session) -> list[int]:
    """Ids of standups whose owner no longer exists."""
    user_ids = set(session.exec(select(User.id)).all())
    standups = session.exec(select(Standup.id, Standup.user_id)).all()
    return [standup_id for standup_id, user_id in standups if user_id not in user_ids]


def check_data() -> bool:
    with Session(engine) as session:
        total_count = len(session.exec(select(Standup.id)).all())
        logger.info(f"Total standups in database: {total_count}")

        if total_count == 0:
            logger.info("No standups to check")
            return True

        duplicates = find_duplicate_days(session)
        if duplicates:
            logger.warning(f"Found {len(duplicates)} (user_id, day_bucket) pairs with more than one standup:")
            for user_id, day_bucket, count in duplicates:
                logger.warning(f"   - user_id: {user_id}, day: {day_bucket}, count: {count}")
        else:
            logger.info("No duplicate days found")

        orphans = find_orphans(session)
        if orphans:
            # Allowed: they drop out of the team view
            logger.info(f"{len(orphans)} standups belong to users that no longer exist")

        return not duplicates


if __name__ == "__main__":
    sys.exit(0 if check_data() else 1)
