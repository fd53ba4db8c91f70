from datetime import UTC, datetime

from sqlmodel import Field, SQLModel, UniqueConstraint


def utc_now() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)  # Normalized: lower(trim(email))
    created_at: datetime = Field(default_factory=utc_now)


class Standup(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "day_bucket", name="uniq_standup_user_day"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)  # No foreign key: dangling owners resolve to absent
    yesterday: str
    today: str
    blockers: str = Field(default="No blockers")
    created_at: datetime = Field(default_factory=utc_now, index=True)
    day_bucket: str = Field(index=True)  # YYYY-MM-DD of created_at in STANDUP_TIMEZONE
