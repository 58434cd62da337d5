import secrets
import time
from datetime import datetime, timezone

from pydantic import BaseModel, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def generate_id() -> str:
    """Millisecond timestamp in hex followed by a random suffix."""
    return f"{int(time.time() * 1000):x}{secrets.token_hex(3)}"


class Record(BaseModel):
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"extra": "ignore"}

    @field_validator("*", mode="after")
    @classmethod
    def aware_datetimes(cls, v):
        if isinstance(v, datetime):
            return as_utc(v)
        return v
