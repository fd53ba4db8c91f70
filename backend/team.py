"""Team snapshot: each member's most recent standup within a window."""
import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from clock import Calendar, Period
from errors import ServiceError
from models import Standup, User
from store import StandupStore

logger = logging.getLogger(__name__)


class TeamFilter(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    WEEK = "week"


@dataclass(frozen=True)
class TeamEntry:
    standup: Standup
    user: User


def period_for_filter(calendar: Calendar, team_filter: TeamFilter | str | None) -> Period:
    # Anything unrecognised falls back to the week view
    try:
        team_filter = TeamFilter(team_filter) if team_filter else TeamFilter.WEEK
    except ValueError:
        team_filter = TeamFilter.WEEK

    if team_filter is TeamFilter.TODAY:
        return calendar.period_for_today()
    if team_filter is TeamFilter.YESTERDAY:
        return calendar.period_for_yesterday()
    return calendar.period_for_last_n_days(7)


def latest_per_user(rows: list[tuple[Standup, User]]) -> list[TeamEntry]:
    """Keep the newest standup for each user; on a tie the first seen wins."""
    latest: dict[int, TeamEntry] = {}
    for standup, user in rows:
        current = latest.get(standup.user_id)
        if current is None or current.standup.created_at < standup.created_at:
            latest[standup.user_id] = TeamEntry(standup=standup, user=user)
    return list(latest.values())


class TeamSnapshot:
    def __init__(self, store: StandupStore, calendar: Calendar):
        self.store = store
        self.calendar = calendar

    def team_snapshot(self, team_filter: TeamFilter | str | None = TeamFilter.WEEK) -> list[TeamEntry]:
        period = period_for_filter(self.calendar, team_filter)
        logger.info(f"Team snapshot request: filter={team_filter} from={period.start} to={period.end}")

        try:
            rows = self.store.in_period_with_users(period)
        except SQLAlchemyError as e:
            logger.error(f"Error getting team standups: {str(e)}")
            raise ServiceError() from e

        entries = latest_per_user(rows)
        logger.info(f"Found {len(entries)} team members with standups ({len(rows)} standups scanned)")
        return entries
