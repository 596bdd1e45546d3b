"""
Base schema model for API payloads.

Field names are exposed in camelCase, accepted in either case, and all
datetimes are rendered as UTC with a 'Z' suffix.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer


def to_camel(string: str) -> str:
    """
    Convert snake_case to camelCase.

    Example:
        >>> to_camel("workload_percentage")
        'workloadPercentage'
    """
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


def serialize_datetime(dt: datetime | None) -> str | None:
    """
    Serialize a datetime as ISO 8601 with a 'Z' suffix.

    Stored datetimes are naive UTC; aware values are converted to UTC first.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt.isoformat() + "Z"


class HTTPSchemaModel(BaseModel):
    """
    Base model for all HTTP API schemas.

    - camelCase aliases, snake_case still accepted on input
    - builds from ORM objects (from_attributes=True)
    - datetimes serialized as "2025-12-18T14:30:00Z"
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", mode="wrap")
    @classmethod
    def serialize_any_datetime(cls, value: Any, handler: Any) -> Any:
        if isinstance(value, datetime):
            return serialize_datetime(value)
        return handler(value)
