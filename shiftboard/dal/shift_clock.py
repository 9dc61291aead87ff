'''
Shift status and clock in/out windows.

Everything here is a pure function of a shift and an explicitly supplied `now`.
Nothing reads the wall clock; the API layer gets `now` from context.clock() and passes it down.

A shift is a date plus HH:MM start and finish times, interpreted in context.SHIFT_TIMEZONE.
Shifts cannot span midnight.
Status is derived, never stored:
- Scheduled before the start
- InProgress from the start to the finish, both inclusive
- Completed after the finish
Clock in opens CLOCK_WINDOW_MINUTES before the start, on the day of the shift, and stays open until the shift completes.
Clock out opens CLOCK_WINDOW_MINUTES before the finish and has no upper limit.
'''

import datetime
import enum
import math

from shiftboard import context
from shiftboard.dal.errors import Conflict, InvalidState


class ShiftStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class ClockKind(str, enum.Enum):
    IN = "in"
    OUT = "out"


def _zone(tz):
    return tz if tz is not None else context.SHIFT_TIMEZONE


def as_instant(now, tz=None):
    """
    Naive datetimes are wall clock times in the shift time zone; aware ones are used as is.
    """
    if now.tzinfo is None:
        return _zone(tz).localize(now)
    return now


def _at(shift, hhmm, tz):
    hour, minute = (int(x) for x in hhmm.split(":"))
    return _zone(tz).localize(datetime.datetime.combine(shift.date, datetime.time(hour, minute)))


def shift_bounds(shift, tz=None):
    """
    The absolute start and end instants of the shift.
    """
    return _at(shift, shift.start_time, tz), _at(shift, shift.finish_time, tz)


def evaluate_status(shift, now, tz=None):
    now = as_instant(now, tz)
    start, end = shift_bounds(shift, tz)
    if now < start:
        return ShiftStatus.SCHEDULED
    if now <= end:
        return ShiftStatus.IN_PROGRESS
    return ShiftStatus.COMPLETED


def _window():
    return datetime.timedelta(minutes=context.CLOCK_WINDOW_MINUTES)


def clock_in_opens_at(shift, tz=None):
    start, _ = shift_bounds(shift, tz)
    return start - _window()


def clock_out_opens_at(shift, tz=None):
    _, end = shift_bounds(shift, tz)
    return end - _window()


def ensure_can_clock_in(shift, now, tz=None):
    """
    Raise the reason the shift cannot be clocked into at `now`; return quietly if it can.
    Conflict if already clocked in (or the single clock in/out cycle has been used up).
    InvalidState if the shift has completed, `now` is on another day or before the window opens.
    """
    now = as_instant(now, tz)
    if shift.is_clocked_in:
        raise Conflict("Already clocked in")
    if shift.clock_out_time is not None:
        raise Conflict("This shift has already been clocked in and out")
    if evaluate_status(shift, now, tz) == ShiftStatus.COMPLETED:
        raise InvalidState("Cannot clock in to a completed shift")
    if now.astimezone(_zone(tz)).date() != shift.date:
        raise InvalidState("Cannot clock in on a different day than the shift")
    opens_at = clock_in_opens_at(shift, tz)
    if now < opens_at:
        raise InvalidState("Cannot clock in more than {0} minutes before shift start time".format(context.CLOCK_WINDOW_MINUTES),
            {"earliestClockIn": opens_at})


def ensure_can_clock_out(shift, now, tz=None):
    """
    Raise the reason the shift cannot be clocked out of at `now`; return quietly if it can.
    """
    now = as_instant(now, tz)
    if not shift.is_clocked_in:
        raise Conflict("Not clocked in")
    opens_at = clock_out_opens_at(shift, tz)
    if now < opens_at:
        raise InvalidState("Cannot clock out more than {0} minutes before shift end time".format(context.CLOCK_WINDOW_MINUTES),
            {"earliestClockOut": opens_at})


def can_clock_in(shift, now, tz=None):
    try:
        ensure_can_clock_in(shift, now, tz)
        return True
    except (Conflict, InvalidState):
        return False


def can_clock_out(shift, now, tz=None):
    try:
        ensure_can_clock_out(shift, now, tz)
        return True
    except (Conflict, InvalidState):
        return False


def time_until_eligible(shift, now, kind, tz=None):
    """
    How long until the clock in or clock out window opens; zero if it already has.
    This only looks at the window boundary, not at whether the shift is clocked in.
    """
    now = as_instant(now, tz)
    opens_at = clock_in_opens_at(shift, tz) if ClockKind(kind) == ClockKind.IN else clock_out_opens_at(shift, tz)
    return max(opens_at - now, datetime.timedelta(0))


def time_remaining(shift, now, tz=None):
    """
    Whole minutes left until the end of the shift, zero once it is over.
    """
    _, end = shift_bounds(shift, tz)
    remaining = end - as_instant(now, tz)
    return max(0, math.floor(remaining.total_seconds() / 60))


def worked_minutes(clock_in_time, clock_out_time):
    """
    Minutes between clock in and clock out rounded half up.
    Returns (minutes, anomaly); a clock out before the clock in gives (0, True).
    """
    seconds = (clock_out_time - clock_in_time).total_seconds()
    if seconds < 0:
        return 0, True
    return int(math.floor(seconds / 60 + 0.5)), False


def format_duration(duration):
    """
    Format minutes (or a timedelta) as "Xh Ym" for display.
    """
    if isinstance(duration, datetime.timedelta):
        # Partial minutes round up.
        minutes = math.ceil(duration.total_seconds() / 60)
    else:
        minutes = int(duration or 0)
    hours, mins = divmod(max(minutes, 0), 60)
    return "{0}h {1}m".format(hours, mins)
