"""
Common types and base model configuration shared across all models.
"""

import datetime
import re
from typing import Annotated, Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, BeforeValidator


def _validate_object_id(v: Any) -> ObjectId:
    if isinstance(v, ObjectId):
        return v
    if isinstance(v, str) and ObjectId.is_valid(v):
        return ObjectId(v)
    raise ValueError(f"Invalid ObjectId: {v}")


def _validate_utc_datetime(v: Any) -> Any:
    # Mongo gives back naive UTC unless the client is tz_aware.
    if isinstance(v, datetime.datetime) and v.tzinfo is None:
        return v.replace(tzinfo=datetime.timezone.utc)
    return v


def _validate_calendar_date(v: Any) -> Any:
    if isinstance(v, datetime.datetime):
        return v.date()
    if isinstance(v, str) and "T" in v:
        return datetime.datetime.fromisoformat(v.replace("Z", "+00:00")).date()
    return v


_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _validate_time_of_day(v: Any) -> Any:
    if isinstance(v, datetime.time):
        return v.strftime("%H:%M")
    if not isinstance(v, str) or not _HHMM.match(v):
        raise ValueError(f"Invalid time of day {v!r}; expected HH:MM")
    return v


PyObjectId = Annotated[ObjectId, BeforeValidator(_validate_object_id)]
"""A BSON ObjectId that accepts both ObjectId instances and valid hex strings."""

UTCDateTime = Annotated[datetime.datetime, BeforeValidator(_validate_utc_datetime)]
"""An instant; naive values are taken to be UTC."""

CalendarDate = Annotated[datetime.date, BeforeValidator(_validate_calendar_date)]
"""A calendar date; stored in Mongo as midnight UTC of that date."""

TimeOfDay = Annotated[str, BeforeValidator(_validate_time_of_day)]
"""A 24 hour HH:MM string."""


class MongoBaseModel(BaseModel):
    """Base model for all MongoDB document models."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )
