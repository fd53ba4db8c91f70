"""Calendar and day-boundary arithmetic for the standup ledger.

Every "day" in the service is a calendar day in one fixed timezone,
configured once per process (STANDUP_TIMEZONE) and injected into the
Calendar. "Now" comes from an injected time source so tests can pin it.
"""
import logging
import os
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = os.getenv("STANDUP_TIMEZONE", "Pacific/Auckland")


class TimeSource(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Pinned clock for tests and backfills."""

    def __init__(self, current: datetime):
        if current.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware datetime")
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@dataclass(frozen=True)
class Period:
    """A run of whole local days.

    start is the first instant, end the last instant (inclusive) and stop
    the first instant after the period. Queries filter start <= t < stop.
    """

    start: datetime
    stop: datetime

    @property
    def end(self) -> datetime:
        return self.stop - timedelta(microseconds=1)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.stop


class Calendar:
    def __init__(self, tz: ZoneInfo | str = DEFAULT_TIMEZONE, clock: TimeSource | None = None):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.clock = clock or SystemClock()

    def now(self) -> datetime:
        return self.clock.now().astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def day_bucket(self, moment: datetime) -> str:
        """YYYY-MM-DD of the local day a timestamp falls into."""
        if moment.tzinfo is None:
            # Naive values are stored UTC
            moment = moment.replace(tzinfo=UTC)
        return moment.astimezone(self.tz).date().isoformat()

    def start_of(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def start_of_today(self) -> datetime:
        return self.start_of(self.today())

    def start_of_tomorrow(self) -> datetime:
        # Next local midnight, not +24h, so DST days stay whole
        return self.start_of(self.today() + timedelta(days=1))

    def end_of_today(self) -> datetime:
        return self.start_of_tomorrow() - timedelta(microseconds=1)

    def period_for_days(self, first: date, last: date) -> Period:
        return Period(start=self.start_of(first), stop=self.start_of(last + timedelta(days=1)))

    def period_for_today(self) -> Period:
        today = self.today()
        return self.period_for_days(today, today)

    def period_for_yesterday(self) -> Period:
        yesterday = self.today() - timedelta(days=1)
        return self.period_for_days(yesterday, yesterday)

    def period_for_last_n_days(self, n: int) -> Period:
        """Today plus the preceding n-1 days."""
        if n < 1:
            raise ValueError(f"period needs at least one day, got {n}")
        today = self.today()
        return self.period_for_days(today - timedelta(days=n - 1), today)


def load_calendar(tz_name: str = DEFAULT_TIMEZONE, clock: TimeSource | None = None) -> Calendar:
    """Build the process-wide calendar; an unknown zone fails at startup."""
    calendar = Calendar(ZoneInfo(tz_name), clock)
    logger.info(f"STANDUP_TIMEZONE={tz_name}")
    return calendar
