"""
Pydantic models for the shiftboard data access layer.

These models represent the MongoDB document schemas used throughout the application.
"""

from shiftboard.dal.models.shifts import Shift, ShiftCreate, ShiftUpdate
from shiftboard.dal.models.locations import Location, Coordinates
from shiftboard.dal.models.events import ShiftEvent
from shiftboard.dal.models.common import PyObjectId

__all__ = [
    # Common
    "PyObjectId",
    # Shifts
    "Shift",
    "ShiftCreate",
    "ShiftUpdate",
    # Locations
    "Location",
    "Coordinates",
    # Events
    "ShiftEvent",
]
