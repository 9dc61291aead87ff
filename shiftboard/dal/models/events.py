"""
Shift change events published to the `shifts` Kafka topic.
"""

from typing import Any, Literal

from pydantic import Field

from shiftboard.dal.models.common import MongoBaseModel, PyObjectId


class ShiftEvent(MongoBaseModel):
    """
    One create/update/delete of a shift.
    Consumers key on shiftId; `value` is the shift as the API returned it, populated location included.
    """

    crud: Literal["Create", "Update", "Delete"] = Field(alias="CRUD")
    shift_id: PyObjectId = Field(alias="shiftId")
    owner_user_id: PyObjectId = Field(alias="user")
    value: dict[str, Any]
