'''
The REST API for shifts.
We get the arguments for the business logic from Flask; make various calls to the dal's and then send JSON responses.
`now` is read once per request from context.clock() and passed down; the dal never reads the clock itself.
Events for changes to shifts are published into Kafka here.
'''

import logging

from flask import Blueprint, request, Response
from werkzeug.exceptions import HTTPException
from pymongo.errors import PyMongoError

from shiftboard import context
from shiftboard.blueprints.auth import authentication_required, get_current_user_id
from shiftboard.dal import shift_clock
from shiftboard.dal.errors import ShiftException, NotFound, Forbidden, InvalidState, Conflict, ValidationError
from shiftboard.dal.locations import get_locations, get_locations_by_id
from shiftboard.dal.models import ShiftEvent
from shiftboard.dal.shifts import get_shifts_for_user, get_shift, create_shift, update_shift, delete_shift, \
    clock_in, clock_out, bulk_create_shifts, bulk_update_shifts, parse_object_id
from shiftboard.dal.utils import JSONEncoder

api_blueprint = Blueprint('shiftboard_api', __name__)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFound: 404,
    Forbidden: 403,
    InvalidState: 400,
    Conflict: 409,
    ValidationError: 400,
}


def addHeaders(resp):
    # We don't send html with this blueprint; so we use that as a default.
    if 'Content-Type' not in resp.headers or resp.headers['Content-Type'].startswith('text/html'):
        resp.headers['Content-Type'] = 'application/json; charset=utf-8'
    return resp

api_blueprint.after_request(addHeaders)


def jsonResponse(value, ret_status=200):
    return Response(JSONEncoder().encode(value), status=ret_status, mimetype="application/json")


def logAndAbort(error_msg, ret_status=500, **details):
    logger.error(error_msg)
    return jsonResponse({"success": False, "errormsg": error_msg, **details}, ret_status)


@api_blueprint.errorhandler(ShiftException)
def handle_shift_exception(e):
    ret_status = next((v for k, v in ERROR_STATUS.items() if isinstance(e, k)), 500)
    logger.warning("%s %s refused - %s", request.method, request.path, e.message)
    return jsonResponse({"success": False, "errormsg": e.message, **e.details}, ret_status)


@api_blueprint.errorhandler(PyMongoError)
def handle_database_exception(e):
    logger.exception("Database error processing %s %s", request.method, request.path)
    return jsonResponse({"success": False, "errormsg": "Internal server error"}, 500)


@api_blueprint.errorhandler(HTTPException)
def handle_http_exception(e):
    return jsonResponse({"success": False, "errormsg": e.description}, e.code)


def publish_shift_event(crud, shift_json):
    event = ShiftEvent(crud=crud, shift_id=shift_json["_id"], owner_user_id=shift_json["user"], value=shift_json).model_dump(by_alias=True)
    if context.kafka_producer:
        context.kafka_producer.send("shifts", event)
    else:
        logger.debug("Not publishing %s event for shift %s; no Kafka producer", crud, shift_json.get("_id"))


def shift_json(shift, now, locations=None):
    """
    The shift as we send it to clients; with the derived status, clock eligibility and the location populated.
    """
    ret = shift.model_dump(by_alias=True)
    ret["status"] = shift_clock.evaluate_status(shift, now).value
    ret["canClockIn"] = shift_clock.can_clock_in(shift, now)
    ret["canClockOut"] = shift_clock.can_clock_out(shift, now)
    ret["timeRemaining"] = shift_clock.time_remaining(shift, now)
    if locations is None:
        locations = get_locations_by_id([shift.location_id])
    if shift.location_id in locations:
        ret["location"] = locations[shift.location_id].model_dump(by_alias=True)
    return ret


def shifts_json(shifts, now):
    locations = get_locations_by_id([x.location_id for x in shifts])
    return [shift_json(x, now, locations) for x in shifts]


def _bulk_json(outcome, now):
    for result in outcome["results"]:
        if result["success"]:
            result["shift"] = shift_json(result["shift"], now)
    return outcome


@api_blueprint.route("/status", methods=["GET"])
def svc_status():
    return jsonResponse({"success": True, "mongo_version": context.shiftboardclient.server_info()['version']})


@api_blueprint.route("/api/locations", methods=["GET"])
def svc_get_locations():
    return jsonResponse({"success": True, "value": [x.model_dump(by_alias=True) for x in get_locations()]})


@api_blueprint.route("/api/shifts", methods=["GET"])
@authentication_required
def svc_get_shifts():
    """
    Get the shifts for the user specified by the userId query parameter; which has to be the caller.
    """
    user_id = request.args.get("userId", None)
    if not user_id:
        return logAndAbort("userId query parameter is required", 400)
    parse_object_id(user_id, "user")
    if user_id != get_current_user_id():
        return logAndAbort("Forbidden: cannot fetch other users' shifts", 403)
    now = context.clock()
    return jsonResponse({"success": True, "value": shifts_json(get_shifts_for_user(user_id), now)})


@api_blueprint.route("/api/shifts", methods=["POST"])
@authentication_required
def svc_create_shift():
    now = context.clock()
    shift = create_shift(get_current_user_id(), request.get_json(silent=True), now)
    ret = shift_json(shift, now)
    publish_shift_event("Create", ret)
    return jsonResponse({"success": True, "message": "Shift created successfully", "value": ret}, 201)


@api_blueprint.route("/api/shifts/batch", methods=["POST"])
@authentication_required
def svc_bulk_create_shifts():
    """
    Create many shifts; the body is {"shifts": [...]}. Failures are reported per shift.
    """
    now = context.clock()
    body = request.get_json(silent=True)
    shifts = body.get("shifts", None) if isinstance(body, dict) else None
    outcome = _bulk_json(bulk_create_shifts(get_current_user_id(), shifts, now), now)
    for result in outcome["results"]:
        if result["success"]:
            publish_shift_event("Create", result["shift"])
    return jsonResponse({"success": True, "message": "Bulk create completed", **outcome})


@api_blueprint.route("/api/shifts/batch", methods=["PUT"])
@authentication_required
def svc_bulk_update_shifts():
    now = context.clock()
    body = request.get_json(silent=True)
    shifts = body.get("shifts", None) if isinstance(body, dict) else None
    outcome = _bulk_json(bulk_update_shifts(get_current_user_id(), shifts, now), now)
    for result in outcome["results"]:
        if result["success"]:
            publish_shift_event("Update", result["shift"])
    return jsonResponse({"success": True, "message": "Bulk update completed", **outcome})


@api_blueprint.route("/api/shifts/<shift_id>", methods=["GET"])
@authentication_required
def svc_get_shift(shift_id):
    return jsonResponse({"success": True, "value": shift_json(get_shift(shift_id, get_current_user_id()), context.clock())})


@api_blueprint.route("/api/shifts/<shift_id>", methods=["PUT"])
@authentication_required
def svc_update_shift(shift_id):
    now = context.clock()
    shift = update_shift(shift_id, get_current_user_id(), request.get_json(silent=True), now)
    ret = shift_json(shift, now)
    publish_shift_event("Update", ret)
    return jsonResponse({"success": True, "message": "Shift updated successfully", "value": ret})


@api_blueprint.route("/api/shifts/<shift_id>", methods=["DELETE"])
@authentication_required
def svc_delete_shift(shift_id):
    now = context.clock()
    shift = delete_shift(shift_id, get_current_user_id(), now)
    publish_shift_event("Delete", shift_json(shift, now))
    return jsonResponse({"success": True, "message": "Shift deleted successfully"})


@api_blueprint.route("/api/shifts/<shift_id>/clock-in", methods=["POST"])
@authentication_required
def svc_clock_in(shift_id):
    now = context.clock()
    shift = clock_in(shift_id, get_current_user_id(), now)
    ret = shift_json(shift, now)
    publish_shift_event("Update", ret)
    return jsonResponse({"success": True, "message": "Successfully clocked in", "value": ret})


@api_blueprint.route("/api/shifts/<shift_id>/clock-out", methods=["POST"])
@authentication_required
def svc_clock_out(shift_id):
    now = context.clock()
    shift, minutes = clock_out(shift_id, get_current_user_id(), now)
    ret = shift_json(shift, now)
    publish_shift_event("Update", ret)
    return jsonResponse({"success": True, "message": "Successfully clocked out", "value": ret,
        "totalHoursWorked": minutes, "totalHoursWorkedText": shift_clock.format_duration(minutes)})


@api_blueprint.route("/api/shifts/<shift_id>/clock-status", methods=["GET"])
@authentication_required
def svc_clock_status(shift_id):
    """
    Whether the caller can clock in/out of the shift right now and, if not yet, how long until they can.
    """
    now = context.clock()
    shift = get_shift(shift_id, get_current_user_id())
    ret = {"status": shift_clock.evaluate_status(shift, now).value}
    for kind, can_clock in [(shift_clock.ClockKind.IN, shift_clock.can_clock_in), (shift_clock.ClockKind.OUT, shift_clock.can_clock_out)]:
        wait = shift_clock.time_until_eligible(shift, now, kind)
        ret[kind.value] = {
            "allowed": can_clock(shift, now),
            "availableInSeconds": int(wait.total_seconds()),
            "availableIn": shift_clock.format_duration(wait),
        }
    return jsonResponse({"success": True, "value": ret})
