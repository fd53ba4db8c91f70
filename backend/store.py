"""Durable standup storage over a SQLModel session.

The (user_id, day_bucket) unique index is what keeps one standup per user
per day under concurrent writers: insert() lets the database decide, and a
losing writer gets sqlalchemy's IntegrityError back.
"""
import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from clock import Period
from models import Standup, User

logger = logging.getLogger(__name__)


def to_storage(moment: datetime) -> datetime:
    """Any datetime -> aware UTC as stored. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def from_storage(moment: datetime) -> datetime:
    """Row value -> aware UTC; some drivers hand stored UTC back naive."""
    if moment.tzinfo is not None:
        return moment.astimezone(UTC)
    return moment.replace(tzinfo=UTC)


class StandupStore:
    def __init__(self, session: Session):
        self.session = session

    def insert(self, standup: Standup) -> Standup:
        standup.created_at = to_storage(standup.created_at)
        self.session.add(standup)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info(f"Insert rejected by uniq_standup_user_day: user_id={standup.user_id} day={standup.day_bucket}")
            raise
        self.session.refresh(standup)
        return standup

    def save(self, standup: Standup) -> Standup:
        """Flush pending field changes as a single UPDATE."""
        self.session.add(standup)
        self.session.commit()
        self.session.refresh(standup)
        return standup

    def get_owned(self, standup_id: int, user_id: int) -> Standup | None:
        return self.session.exec(
            select(Standup)
            .where(Standup.id == standup_id)
            .where(Standup.user_id == user_id)
        ).first()

    def find_in_period(self, user_id: int, period: Period) -> Standup | None:
        return self.session.exec(
            select(Standup)
            .where(Standup.user_id == user_id)
            .where(Standup.created_at >= to_storage(period.start))
            .where(Standup.created_at < to_storage(period.stop))
            .order_by(col(Standup.created_at).desc())
        ).first()

    def list_for_user(self, user_id: int, since: datetime | None = None) -> list[Standup]:
        stmt = select(Standup).where(Standup.user_id == user_id)
        if since is not None:
            stmt = stmt.where(Standup.created_at >= to_storage(since))
        stmt = stmt.order_by(col(Standup.created_at).desc(), col(Standup.id).desc())
        return list(self.session.exec(stmt).all())

    def in_period_with_users(self, period: Period) -> list[tuple[Standup, User]]:
        """Standups in the period joined to their owners.

        Inner join: standups whose owner no longer exists are left out.
        """
        stmt = (
            select(Standup, User)
            .join(User, col(User.id) == col(Standup.user_id))
            .where(Standup.created_at >= to_storage(period.start))
            .where(Standup.created_at < to_storage(period.stop))
            .order_by(col(Standup.created_at), col(Standup.id))
        )
        return list(self.session.exec(stmt).all())
