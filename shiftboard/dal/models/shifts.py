"""
Models for shift documents.

Shifts are stored in the `shifts` collection. The stored field names are
camelCase; the models expose them as snake_case attributes with aliases.
The shift status (Scheduled/InProgress/Completed) is never stored; see
`shiftboard.dal.shift_clock`.
"""

from pydantic import Field, model_validator

from shiftboard.dal.models.common import MongoBaseModel, PyObjectId, UTCDateTime, CalendarDate, TimeOfDay


def _check_finish_after_start(start_time, finish_time):
    # Zero padded HH:MM strings compare correctly as strings.
    if start_time is not None and finish_time is not None and finish_time <= start_time:
        raise ValueError(f"finishTime {finish_time} must be after startTime {start_time}; shifts cannot span midnight")


class Shift(MongoBaseModel):
    """
    A shift document from the `shifts` collection.

    The clock fields are only changed by the clock in/out transitions;
    `total_hours_worked` is in minutes despite the name.
    """

    id: PyObjectId | None = Field(None, alias="_id")
    title: str = Field(min_length=1)
    role: str = Field(min_length=1)
    type_of_shift: list[str] = Field(default_factory=list, alias="typeOfShift")
    owner_user_id: PyObjectId = Field(alias="user")
    location_id: PyObjectId = Field(alias="location")
    date: CalendarDate
    start_time: TimeOfDay = Field(alias="startTime")
    finish_time: TimeOfDay = Field(alias="finishTime")
    num_of_shifts_per_day: int = Field(1, ge=1, alias="numOfShiftsPerDay")

    clock_in_time: UTCDateTime | None = Field(None, alias="clockInTime")
    clock_out_time: UTCDateTime | None = Field(None, alias="clockOutTime")
    is_clocked_in: bool = Field(False, alias="isClockedIn")
    total_hours_worked: int = Field(0, alias="totalHoursWorked")

    created_at: UTCDateTime | None = Field(None, alias="createdAt")
    updated_at: UTCDateTime | None = Field(None, alias="updatedAt")

    @model_validator(mode="after")
    def finish_after_start(self):
        _check_finish_after_start(self.start_time, self.finish_time)
        return self


class ShiftCreate(MongoBaseModel):
    """
    Request model for creating a new shift. The owner is always the caller.
    """

    title: str = Field(min_length=1)
    role: str = Field(min_length=1)
    type_of_shift: list[str] = Field(default_factory=list, alias="typeOfShift")
    location_id: PyObjectId = Field(alias="location")
    date: CalendarDate
    start_time: TimeOfDay = Field(alias="startTime")
    finish_time: TimeOfDay = Field(alias="finishTime")
    num_of_shifts_per_day: int = Field(1, ge=1, alias="numOfShiftsPerDay")

    @model_validator(mode="before")
    @classmethod
    def default_empty_values(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            for k in ("typeOfShift", "type_of_shift", "numOfShiftsPerDay", "num_of_shifts_per_day"):
                if k in data and not data[k]:
                    del data[k]
        return data

    @model_validator(mode="after")
    def finish_after_start(self):
        _check_finish_after_start(self.start_time, self.finish_time)
        return self


class ShiftUpdate(MongoBaseModel):
    """
    Request model for editing a shift.

    NOTE: Owner and clock fields are absent. The dal drops them from shift
    JSON sent back by clients; any other unknown key is rejected.
    """

    title: str | None = Field(None, min_length=1)
    role: str | None = Field(None, min_length=1)
    type_of_shift: list[str] | None = Field(None, alias="typeOfShift")
    location_id: PyObjectId | None = Field(None, alias="location")
    date: CalendarDate | None = None
    start_time: TimeOfDay | None = Field(None, alias="startTime")
    finish_time: TimeOfDay | None = Field(None, alias="finishTime")
    num_of_shifts_per_day: int | None = Field(None, ge=1, alias="numOfShiftsPerDay")

    model_config = {"extra": "forbid"}
