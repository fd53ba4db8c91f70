"""Daily standup ledger: one standup per user per calendar day.

Rules
-----
* A user may create at most one standup per local calendar day. The store's
  (user_id, day_bucket) unique index settles concurrent creates; the lookup
  before the insert only gives the common case a clean error early.
* A standup can be edited only during its own day. Edits never move
  created_at, so they never move the standup to another day.
* yesterday/today are required (3+ characters after trimming); blank
  blockers are stored as "No blockers".
"""
import logging
from collections.abc import Sequence
from enum import Enum

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clock import Calendar
from directory import UserDirectory
from errors import (
    ConflictError,
    EditWindowError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from models import Standup
from store import StandupStore, from_storage

logger = logging.getLogger(__name__)

DEFAULT_BLOCKERS = "No blockers"
MIN_TEXT_LENGTH = 3
ALREADY_SUBMITTED = "You already submitted a standup for today"


class HistoryPeriod(str, Enum):
    ALL = "all"
    WEEK = "week"
    MONTH = "month"


HISTORY_DAYS = {HistoryPeriod.WEEK: 7, HistoryPeriod.MONTH: 30}

REQUIRED_MESSAGES = {
    "yesterday": "What you did yesterday is required",
    "today": "What you plan to do today is required",
}
TOO_SHORT_MESSAGES = {
    "yesterday": f"Yesterday's update must be at least {MIN_TEXT_LENGTH} characters",
    "today": f"Today's plan must be at least {MIN_TEXT_LENGTH} characters",
}


def clean_fields(yesterday: str | None, today: str | None, blockers: str | None) -> tuple[str, str, str]:
    """Trim and check the three text fields, raising one error naming every bad field."""
    values = {"yesterday": (yesterday or "").strip(), "today": (today or "").strip()}
    errors = {}
    for field, value in values.items():
        if not value:
            errors[field] = REQUIRED_MESSAGES[field]
        elif len(value) < MIN_TEXT_LENGTH:
            errors[field] = TOO_SHORT_MESSAGES[field]
    if errors:
        raise ValidationError(errors)

    blockers = (blockers or "").strip() or DEFAULT_BLOCKERS
    return values["yesterday"], values["today"], blockers


class LedgerService:
    def __init__(self, store: StandupStore, users: UserDirectory, calendar: Calendar):
        self.store = store
        self.users = users
        self.calendar = calendar

    def _require_user(self, user_id: int) -> None:
        if not self.users.user_exists(user_id):
            raise NotFoundError({"userId": "User not found"})

    def has_submission_today(self, user_id: int) -> Standup | None:
        try:
            return self.store.find_in_period(user_id, self.calendar.period_for_today())
        except SQLAlchemyError as e:
            logger.error(f"Error checking today's standup for user {user_id}: {str(e)}")
            raise ServiceError() from e

    def create(
        self,
        user_id: int,
        yesterday: str | None,
        today: str | None,
        blockers: str | None = None,
    ) -> Standup:
        yesterday, today, blockers = clean_fields(yesterday, today, blockers)
        self._require_user(user_id)
        logger.info(f"Create standup request for user {user_id}")

        if self.has_submission_today(user_id):
            logger.warning(f"User {user_id} already submitted today")
            raise ConflictError({"userId": ALREADY_SUBMITTED})

        now = self.calendar.now()
        standup = Standup(
            user_id=user_id,
            yesterday=yesterday,
            today=today,
            blockers=blockers,
            created_at=now,
            day_bucket=self.calendar.day_bucket(now),
        )
        try:
            standup = self.store.insert(standup)
        except IntegrityError as e:
            logger.warning(f"User {user_id} lost a concurrent create for {standup.day_bucket}")
            raise ConflictError({"userId": ALREADY_SUBMITTED}) from e
        except SQLAlchemyError as e:
            self.store.session.rollback()
            logger.error(f"Error creating standup for user {user_id}: {str(e)}")
            raise ServiceError() from e

        logger.info(f"Created standup {standup.id} for user {user_id} on {standup.day_bucket}")
        return standup

    def update(
        self,
        standup_id: int,
        user_id: int,
        yesterday: str | None,
        today: str | None,
        blockers: str | None = None,
    ) -> Standup:
        yesterday, today, blockers = clean_fields(yesterday, today, blockers)
        self._require_user(user_id)
        logger.info(f"Update standup {standup_id} request for user {user_id}")

        try:
            standup = self.store.get_owned(standup_id, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading standup {standup_id}: {str(e)}")
            raise ServiceError() from e

        if not standup:
            raise NotFoundError(
                {"id": "Standup entry not found or you do not have permission to update it"}
            )

        if not self.calendar.period_for_today().contains(from_storage(standup.created_at)):
            logger.warning(f"Rejected edit of standup {standup_id} from {standup.day_bucket}")
            raise EditWindowError({"id": "You can only edit today's standup entry"})

        standup.yesterday = yesterday
        standup.today = today
        standup.blockers = blockers
        try:
            standup = self.store.save(standup)
        except SQLAlchemyError as e:
            self.store.session.rollback()
            logger.error(f"Error updating standup {standup_id}: {str(e)}")
            raise ServiceError() from e

        logger.info(f"Updated standup {standup_id}")
        return standup

    def list_for_user(self, user_id: int, period: HistoryPeriod | str = HistoryPeriod.ALL) -> Sequence[Standup]:
        """A user's standups, newest first; week/month cover the last 7/30 days."""
        try:
            period = HistoryPeriod(period)
        except ValueError as e:
            raise ValidationError({"period": "Period must be one of: all, week, month"}) from e
        since = None
        if period in HISTORY_DAYS:
            since = self.calendar.period_for_last_n_days(HISTORY_DAYS[period]).start

        try:
            return self.store.list_for_user(user_id, since)
        except SQLAlchemyError as e:
            logger.error(f"Error listing standups for user {user_id}: {str(e)}")
            raise ServiceError() from e
