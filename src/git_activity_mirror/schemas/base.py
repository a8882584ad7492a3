"""Base schema class for the immutable data model."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Base class for all data-model schemas.

    Instances are immutable snapshots: adapters build them from API
    responses and nothing downstream mutates them.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
