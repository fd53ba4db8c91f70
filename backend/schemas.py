from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, field_serializer


class RegisterRequest(BaseModel):
    username: str | None = None
    email: str | None = None


class LoginRequest(BaseModel):
    username: str | None = None


class StandupRequest(BaseModel):
    # Optional here so missing fields come back as field-addressed ledger errors, not 422s
    yesterday: str | None = None
    today: str | None = None
    blockers: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str


class StandupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    yesterday: str
    today: str
    blockers: str
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        # Stored naive UTC; always emit an explicit offset
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.isoformat()


class DailyCheckResponse(BaseModel):
    hasSubmittedToday: bool
    standup: StandupResponse | None = None


class TeamStandupResponse(StandupResponse):
    user: UserResponse


class ErrorResponse(BaseModel):
    message: str
    errors: dict[str, str] | None = None
