'''
Shift persistence and the clock in/out transitions.
Most of the code here gets the shifts collection, executes a query and hands back Shift models.

Clock in and clock out are read-modify-write operations on a single shift document.
The write is conditioned on the isClockedIn value the decision was made on, so of two concurrent clock ins on the same shift exactly one wins;
the loser re-reads the shift and is refused with a Conflict.
'''
import logging

import pydantic
from pymongo import ASCENDING, ReturnDocument
from bson import ObjectId

from shiftboard import context
from shiftboard.dal import shift_clock
from shiftboard.dal.errors import ShiftException, NotFound, Forbidden, InvalidState, Conflict, ValidationError
from shiftboard.dal.locations import get_location
from shiftboard.dal.models import Shift, ShiftCreate, ShiftUpdate
from shiftboard.dal.utils import to_mongo_datetime, date_to_mongo

logger = logging.getLogger(__name__)


def create_indexes():
    context.shiftdb()["shifts"].create_index([("user", ASCENDING), ("date", ASCENDING)])


def parse_object_id(value, what="shift"):
    """
    ObjectId from a string; ValidationError if it is not a valid id.
    """
    if isinstance(value, ObjectId):
        return value
    if not value or not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError("Invalid {0} ID".format(what))
    return ObjectId(value)


def _validate(model_cls, info):
    if not isinstance(info, dict):
        raise ValidationError("Expecting a JSON object")
    try:
        return model_cls.model_validate(info)
    except pydantic.ValidationError as e:
        missing = [str(err["loc"][0]) for err in e.errors() if err["type"] == "missing"]
        if missing:
            raise ValidationError("Missing required fields: {0}".format(", ".join(missing)))
        raise ValidationError("; ".join("{0}: {1}".format(".".join(str(l) for l in err["loc"]) or "shift", err["msg"]) for err in e.errors()))


# Keys of the shift JSON we send out that are ignored when it comes back.
READ_ONLY_FIELDS = set(["_id", "id", "user", "clockInTime", "clockOutTime", "isClockedIn", "totalHoursWorked",
    "createdAt", "updatedAt", "status", "canClockIn", "canClockOut", "timeRemaining"])


def _incoming(info):
    """
    Clean up a shift document sent by a client.
    Drops read-only keys and accepts a populated location object in place of its id.
    """
    if not isinstance(info, dict):
        return info
    info = {k: v for k, v in info.items() if k not in READ_ONLY_FIELDS}
    location = info.get("location")
    if isinstance(location, dict):
        location = location.get("_id")
        info["location"] = location
    if location and not ObjectId.is_valid(str(location)):
        raise ValidationError("Invalid location ID")
    return info


def _check_location_exists(location_id):
    if not get_location(location_id):
        raise ValidationError("Location {0} does not exist".format(location_id))


def _to_document(fields):
    """
    Convert model_dump(by_alias=True) output into what we store in Mongo.
    """
    doc = dict(fields)
    doc.pop("_id", None)
    if doc.get("date") is not None:
        doc["date"] = date_to_mongo(doc["date"])
    for k in ["clockInTime", "clockOutTime", "createdAt", "updatedAt"]:
        if doc.get(k) is not None:
            doc[k] = to_mongo_datetime(doc[k])
    return doc


def _load(shift_id):
    doc = context.shiftdb()["shifts"].find_one({"_id": shift_id})
    return Shift.model_validate(doc) if doc else None


def get_shifts_for_user(user_id):
    """
    Get all the shifts owned by the user, earliest first.
    """
    user_id = parse_object_id(user_id, "user")
    shiftdb = context.shiftdb()
    return [Shift.model_validate(x) for x in shiftdb["shifts"].find({"user": user_id}).sort([("date", ASCENDING), ("startTime", ASCENDING)])]


def get_shift(shift_id, user_id):
    """
    Get the specified shift.
    Shifts that belong to someone else are reported as not found so we do not leak their existence.
    """
    shift_id = parse_object_id(shift_id)
    doc = context.shiftdb()["shifts"].find_one({"_id": shift_id, "user": parse_object_id(user_id, "user")})
    if not doc:
        raise NotFound("Shift not found")
    return Shift.model_validate(doc)


def create_shift(user_id, info, now):
    """
    Create a new shift owned by user_id.
    :param info - The shift as sent by the client; title, role, startTime, finishTime, location and date are required.
    """
    user_id = parse_object_id(user_id, "user")
    info = _incoming(info)
    shift_create = _validate(ShiftCreate, info)
    _check_location_exists(shift_create.location_id)
    now = shift_clock.as_instant(now)
    shift = Shift.model_validate({**shift_create.model_dump(by_alias=True), "user": user_id, "createdAt": now, "updatedAt": now})
    inserted_id = context.shiftdb()["shifts"].insert_one(_to_document(shift.model_dump(by_alias=True))).inserted_id
    logger.info("Created shift %s for user %s on %s", inserted_id, user_id, shift.date)
    return _load(inserted_id)


def _ensure_editable(shift, now):
    status = shift_clock.evaluate_status(shift, now)
    if status != shift_clock.ShiftStatus.SCHEDULED:
        raise InvalidState("Shift is {0}; only scheduled shifts can be changed".format(status.value))
    if shift.is_clocked_in or shift.clock_in_time is not None:
        raise InvalidState("Shift has already been clocked into; it can no longer be changed")


def update_shift(shift_id, user_id, info, now):
    """
    Edit a shift. Only scheduled shifts that have not been clocked into can be edited.
    Owner and clock fields cannot be changed this way.
    """
    shift = get_shift(shift_id, user_id)
    _ensure_editable(shift, now)
    info = _incoming(info)
    changes = _validate(ShiftUpdate, info).model_dump(by_alias=True, exclude_none=True)
    try:
        merged = Shift.model_validate({**shift.model_dump(by_alias=True), **changes})
    except pydantic.ValidationError as e:
        raise ValidationError("; ".join(err["msg"] for err in e.errors()))
    if "location" in changes and changes["location"] != shift.location_id:
        _check_location_exists(merged.location_id)

    changes["updatedAt"] = shift_clock.as_instant(now)
    updated = context.shiftdb()["shifts"].find_one_and_update(
        {"_id": shift.id, "user": shift.owner_user_id, "isClockedIn": False, "clockInTime": None},
        {"$set": _to_document(changes)},
        return_document=ReturnDocument.AFTER)
    if not updated:
        raise Conflict("Shift was clocked into while it was being edited")
    logger.info("Updated shift %s fields %s", shift.id, sorted(changes.keys()))
    return Shift.model_validate(updated)


def delete_shift(shift_id, user_id, now):
    """
    Delete a shift; same restrictions as editing.
    Returns the deleted shift.
    """
    shift = get_shift(shift_id, user_id)
    _ensure_editable(shift, now)
    result = context.shiftdb()["shifts"].delete_one({"_id": shift.id, "user": shift.owner_user_id, "isClockedIn": False, "clockInTime": None})
    if result.deleted_count != 1:
        raise Conflict("Shift was clocked into while it was being deleted")
    logger.info("Deleted shift %s", shift.id)
    return shift


def _load_for_clock(shift_id, user_id):
    shift = _load(parse_object_id(shift_id))
    if not shift:
        raise NotFound("Shift not found")
    if shift.owner_user_id != parse_object_id(user_id, "user"):
        logger.warning("User %s attempted to clock in/out of shift %s owned by %s", user_id, shift.id, shift.owner_user_id)
        raise Forbidden("Only the owner of a shift can clock in or out of it")
    return shift


def _reload_and_refuse(shift, now, check):
    """
    The conditional write matched nothing; someone else changed the shift under us.
    Re-evaluate against what is there now, which should give the real reason.
    """
    current = _load(shift.id)
    if not current:
        raise NotFound("Shift not found")
    check(current, now)
    raise Conflict("Shift was modified concurrently; please retry")


def apply_clock_in(shift, now):
    """
    Clock in to the shift as loaded in `shift`.
    """
    now = shift_clock.as_instant(now)
    shift_clock.ensure_can_clock_in(shift, now)
    updated = context.shiftdb()["shifts"].find_one_and_update(
        {"_id": shift.id, "isClockedIn": False, "clockOutTime": None},
        {"$set": {"clockInTime": to_mongo_datetime(now), "isClockedIn": True, "updatedAt": to_mongo_datetime(now)}},
        return_document=ReturnDocument.AFTER)
    if not updated:
        _reload_and_refuse(shift, now, shift_clock.ensure_can_clock_in)
    logger.info("Clocked in to shift %s at %s", shift.id, now)
    return Shift.model_validate(updated)


def apply_clock_out(shift, now):
    """
    Clock out of the shift as loaded in `shift`.
    Returns the updated shift and the minutes worked.
    """
    now = shift_clock.as_instant(now)
    shift_clock.ensure_can_clock_out(shift, now)
    if shift.clock_in_time is None:
        logger.warning("Shift %s is clocked in but has no clock in time; recording zero minutes worked", shift.id)
        minutes = 0
    else:
        minutes, anomaly = shift_clock.worked_minutes(shift.clock_in_time, now)
        if anomaly:
            logger.warning("Clock out %s is before clock in %s for shift %s; possible clock skew, recording zero minutes worked", now, shift.clock_in_time, shift.id)
    updated = context.shiftdb()["shifts"].find_one_and_update(
        {"_id": shift.id, "isClockedIn": True},
        {"$set": {"clockOutTime": to_mongo_datetime(now), "isClockedIn": False, "totalHoursWorked": minutes, "updatedAt": to_mongo_datetime(now)}},
        return_document=ReturnDocument.AFTER)
    if not updated:
        _reload_and_refuse(shift, now, shift_clock.ensure_can_clock_out)
    logger.info("Clocked out of shift %s at %s after %s minutes", shift.id, now, minutes)
    return Shift.model_validate(updated), minutes


def clock_in(shift_id, user_id, now):
    """
    Clock the owner in to a shift.
    NotFound/Forbidden for unknown or other people's shifts; Conflict/InvalidState if clock in is not allowed at `now`.
    """
    return apply_clock_in(_load_for_clock(shift_id, user_id), now)


def clock_out(shift_id, user_id, now):
    """
    Clock the owner out of a shift. Returns (shift, minutes worked).
    """
    return apply_clock_out(_load_for_clock(shift_id, user_id), now)


def _bulk(items, operation, key):
    if not isinstance(items, list) or not items:
        raise ValidationError("Shifts array is required and must not be empty")
    results = []
    for i, item in enumerate(items):
        ident = key(i, item)
        try:
            results.append({**ident, "success": True, "shift": operation(item)})
        except ShiftException as e:
            logger.debug("Bulk item %s failed - %s", ident, e.message)
            results.append({**ident, "success": False, "error": e.message})
    successful = len([x for x in results if x["success"]])
    return {"results": results, "summary": {"total": len(items), "successful": successful, "failed": len(items) - successful}}


def bulk_create_shifts(user_id, items, now):
    """
    Create each of the shifts; failures are reported per item and do not stop the rest.
    """
    return _bulk(items, lambda item: create_shift(user_id, item, now), lambda i, item: {"index": i})


def bulk_update_shifts(user_id, items, now):
    """
    Each item is an update document with the id of the shift to update.
    """
    def update_one(item):
        if not isinstance(item, dict):
            raise ValidationError("Expecting a JSON object")
        changes = {k: v for k, v in item.items() if k != "id"}
        return update_shift(item.get("id"), user_id, changes, now)
    def item_key(i, item):
        return {"id": (item.get("id") if isinstance(item, dict) else None) or "unknown"}
    return _bulk(items, update_one, item_key)
