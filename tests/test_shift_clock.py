import datetime

import pytz
import pytest

from shiftboard.dal import shift_clock
from shiftboard.dal.shift_clock import ShiftStatus, ClockKind
from shiftboard.dal.errors import Conflict, InvalidState

from conftest import make_shift, local

TICK = datetime.timedelta(microseconds=1)


@pytest.fixture
def shift():
    return make_shift(date="2025-06-17", startTime="09:00", finishTime="17:00")


def test_status_boundaries_are_inclusive(shift):
    start, end = shift_clock.shift_bounds(shift)
    assert shift_clock.evaluate_status(shift, start - TICK) == ShiftStatus.SCHEDULED
    assert shift_clock.evaluate_status(shift, start) == ShiftStatus.IN_PROGRESS
    assert shift_clock.evaluate_status(shift, end) == ShiftStatus.IN_PROGRESS
    assert shift_clock.evaluate_status(shift, end + TICK) == ShiftStatus.COMPLETED


def test_status_never_regresses(shift):
    order = [ShiftStatus.SCHEDULED, ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED]
    now = local(2025, 6, 16, 23, 0)
    previous = 0
    while now < local(2025, 6, 18, 1, 0):
        current = order.index(shift_clock.evaluate_status(shift, now))
        assert current >= previous
        previous = current
        now += datetime.timedelta(minutes=7)
    assert previous == 2


def test_naive_now_is_shift_wall_clock(shift):
    assert shift_clock.evaluate_status(shift, datetime.datetime(2025, 6, 17, 9, 0)) == ShiftStatus.IN_PROGRESS


def test_shift_time_zone():
    london = pytz.timezone("Europe/London")
    shift = make_shift(date="2025-06-17", startTime="09:00", finishTime="17:00")
    # 09:00 BST is 08:00 UTC
    now = pytz.UTC.localize(datetime.datetime(2025, 6, 17, 8, 0))
    assert shift_clock.evaluate_status(shift, now, tz=london) == ShiftStatus.IN_PROGRESS
    assert shift_clock.evaluate_status(shift, now - TICK, tz=london) == ShiftStatus.SCHEDULED


def test_same_day_check_uses_shift_time_zone():
    london = pytz.timezone("Europe/London")
    # 00:30 BST on the 17th is 23:30 UTC on the 16th
    shift = make_shift(date="2025-06-17", startTime="00:30", finishTime="08:00")
    assert shift_clock.can_clock_in(shift, pytz.UTC.localize(datetime.datetime(2025, 6, 16, 23, 27)), tz=london)
    assert shift_clock.can_clock_in(shift, pytz.UTC.localize(datetime.datetime(2025, 6, 16, 23, 25)), tz=london)
    too_early = pytz.UTC.localize(datetime.datetime(2025, 6, 16, 22, 59))
    assert not shift_clock.can_clock_in(shift, too_early, tz=london)
    with pytest.raises(InvalidState, match="different day"):
        shift_clock.ensure_can_clock_in(shift, too_early, tz=london)


def test_clock_in_scenario(shift):
    assert shift_clock.can_clock_in(shift, local(2025, 6, 17, 8, 56))
    assert shift_clock.can_clock_in(shift, local(2025, 6, 17, 8, 55))
    assert not shift_clock.can_clock_in(shift, local(2025, 6, 17, 8, 54, 59))
    assert not shift_clock.can_clock_in(shift, local(2025, 6, 16, 23, 59))


def test_clock_in_open_until_shift_completes(shift):
    assert shift_clock.can_clock_in(shift, local(2025, 6, 17, 16, 59))
    assert shift_clock.can_clock_in(shift, local(2025, 6, 17, 17, 0))
    assert not shift_clock.can_clock_in(shift, local(2025, 6, 17, 17, 0, 1))


def test_cannot_clock_in_from_previous_day_even_inside_window():
    shift = make_shift(date="2025-06-17", startTime="00:03", finishTime="08:00")
    # The window opens at 23:58 on the 16th.
    assert not shift_clock.can_clock_in(shift, local(2025, 6, 16, 23, 59))
    with pytest.raises(InvalidState, match="different day"):
        shift_clock.ensure_can_clock_in(shift, local(2025, 6, 16, 23, 59))
    assert shift_clock.can_clock_in(shift, local(2025, 6, 17, 0, 0))


def test_cannot_clock_in_when_clocked_in(shift):
    clocked_in = shift.model_copy(update={"is_clocked_in": True, "clock_in_time": local(2025, 6, 17, 9, 0)})
    for now in [local(2025, 6, 17, 8, 56), local(2025, 6, 17, 12, 0), local(2025, 6, 16, 12, 0)]:
        assert not shift_clock.can_clock_in(clocked_in, now)
    with pytest.raises(Conflict):
        shift_clock.ensure_can_clock_in(clocked_in, local(2025, 6, 17, 12, 0))


def test_cannot_clock_in_twice_to_one_shift(shift):
    done = shift.model_copy(update={"clock_in_time": local(2025, 6, 17, 9, 0), "clock_out_time": local(2025, 6, 17, 10, 0)})
    with pytest.raises(Conflict):
        shift_clock.ensure_can_clock_in(done, local(2025, 6, 17, 10, 1))


def test_clock_in_failure_reasons(shift):
    with pytest.raises(InvalidState, match="completed"):
        shift_clock.ensure_can_clock_in(shift, local(2025, 6, 17, 17, 1))
    with pytest.raises(InvalidState) as excinfo:
        shift_clock.ensure_can_clock_in(shift, local(2025, 6, 17, 8, 0))
    assert excinfo.value.details["earliestClockIn"] == local(2025, 6, 17, 8, 55)


def test_clock_out_window(shift):
    clocked_in = shift.model_copy(update={"is_clocked_in": True, "clock_in_time": local(2025, 6, 17, 9, 2)})
    opens_at = local(2025, 6, 17, 16, 55)
    assert not shift_clock.can_clock_out(clocked_in, opens_at - TICK)
    assert shift_clock.can_clock_out(clocked_in, opens_at)
    assert not shift_clock.can_clock_out(clocked_in, local(2025, 6, 17, 16, 54))
    assert shift_clock.can_clock_out(clocked_in, local(2025, 6, 18, 3, 0))


def test_cannot_clock_out_when_not_clocked_in(shift):
    assert not shift_clock.can_clock_out(shift, local(2025, 6, 17, 17, 0))
    with pytest.raises(Conflict):
        shift_clock.ensure_can_clock_out(shift, local(2025, 6, 17, 17, 0))


def test_time_until_eligible(shift):
    assert shift_clock.time_until_eligible(shift, local(2025, 6, 17, 8, 0), ClockKind.IN) == datetime.timedelta(minutes=55)
    assert shift_clock.time_until_eligible(shift, local(2025, 6, 17, 8, 0), "out") == datetime.timedelta(hours=8, minutes=55)
    assert shift_clock.time_until_eligible(shift, local(2025, 6, 17, 9, 30), ClockKind.IN) == datetime.timedelta(0)


def test_time_remaining(shift):
    assert shift_clock.time_remaining(shift, local(2025, 6, 17, 16, 0, 30)) == 59
    assert shift_clock.time_remaining(shift, local(2025, 6, 17, 18, 0)) == 0


def test_worked_minutes():
    clock_in = local(2025, 6, 17, 9, 2)
    assert shift_clock.worked_minutes(clock_in, local(2025, 6, 17, 17, 30)) == (508, False)
    assert shift_clock.worked_minutes(clock_in, clock_in + datetime.timedelta(minutes=125)) == (125, False)
    assert shift_clock.worked_minutes(clock_in, clock_in + datetime.timedelta(seconds=90)) == (2, False)
    assert shift_clock.worked_minutes(clock_in, clock_in + datetime.timedelta(seconds=89)) == (1, False)
    assert shift_clock.worked_minutes(clock_in, clock_in - datetime.timedelta(minutes=3)) == (0, True)


def test_format_duration():
    assert shift_clock.format_duration(508) == "8h 28m"
    assert shift_clock.format_duration(0) == "0h 0m"
    assert shift_clock.format_duration(None) == "0h 0m"
    assert shift_clock.format_duration(datetime.timedelta(seconds=61)) == "0h 2m"
