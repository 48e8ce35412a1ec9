"""Conversation and run data types."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

Role = Literal["system", "user", "assistant"]


@dataclass(slots=True, frozen=True)
class ConversationMessage:
    role: Role
    content: str

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def history_to_wire(history: list[ConversationMessage]) -> list[dict[str, str]]:
    return [message.to_wire() for message in history]


def new_run_id() -> str:
    return f"run_{uuid4().hex}"


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _parse_timestamp(value: object) -> object:
    """Accept epoch milliseconds as well as anything pydantic parses as a datetime."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    return value


_FLAT_CREDENTIAL_KEYS = (
    ("api_key", ("apiKey", "api_key")),
    ("base_url", ("baseURL", "base_url")),
)


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str | None = Field(default=None, validation_alias=AliasChoices("api_key", "apiKey"))
    base_url: str | None = Field(
        default=None, validation_alias=AliasChoices("base_url", "baseURL")
    )


class RunParameters(BaseModel):
    """Immutable inputs of one run, as handed over by the trigger."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    instructions: str = Field(min_length=1)
    first_run_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("first_run_at", "firstTime")
    )
    interval: timedelta | None = None
    model: str | None = None
    credentials: Credentials | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        validation_alias=AliasChoices("created_at", "createTime"),
    )
    run_id: str = Field(default_factory=new_run_id)

    @field_validator("first_run_at", "created_at", mode="before")
    @classmethod
    def _timestamps(cls, value: object, info: ValidationInfo) -> object:
        # An unset first slot arrives as 0 or "" from some triggers.
        if info.field_name == "first_run_at" and not isinstance(value, bool) and not value:
            return None
        return _parse_timestamp(value)

    @field_validator("first_run_at", "created_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return _utc(value) if value is not None else None

    @field_validator("interval", mode="before")
    @classmethod
    def _interval(cls, value: object) -> object:
        if isinstance(value, bool):
            return value
        if isinstance(value, int | float):
            return timedelta(milliseconds=value)
        return value

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RunParameters":
        """Build parameters from a flat trigger payload.

        Credential overrides may be given flat (``api_key``/``apiKey``,
        ``base_url``/``baseURL``) or nested under ``credentials``. When both
        are present the flat values win field by field.
        """
        data = dict(payload)
        flat: dict[str, Any] = {}
        for field, keys in _FLAT_CREDENTIAL_KEYS:
            for key in keys:
                value = data.pop(key, None)
                if value is not None:
                    flat[field] = value
        if flat:
            nested = Credentials.model_validate(data.get("credentials") or {})
            merged = nested.model_dump()
            merged.update(flat)
            data["credentials"] = merged
        return cls.model_validate(data)


class RunResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    created_at: datetime
    finished_at: datetime
