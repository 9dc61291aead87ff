'''
Location directory. Locations are read-only reference data for shifts.
'''
import logging

from pymongo import ASCENDING
from bson import ObjectId

from shiftboard import context
from shiftboard.dal.models import Location

logger = logging.getLogger(__name__)


def create_indexes():
    context.shiftdb()["locations"].create_index([("name", ASCENDING)])


def get_locations():
    """
    Get all the locations sorted by name.
    """
    shiftdb = context.shiftdb()
    return [Location.model_validate(x) for x in shiftdb["locations"].find({}).sort([("name", ASCENDING)])]


def get_location(location_id):
    """
    Get the location with the specified id; None if there is no such location.
    """
    if not isinstance(location_id, ObjectId):
        if not ObjectId.is_valid(location_id):
            return None
        location_id = ObjectId(location_id)
    doc = context.shiftdb()["locations"].find_one({"_id": location_id})
    return Location.model_validate(doc) if doc else None


def get_locations_by_id(location_ids):
    """
    Map of location id to location for the specified ids; used to populate shifts.
    """
    ids = list(set(location_ids))
    if not ids:
        return {}
    return {x["_id"]: Location.model_validate(x) for x in context.shiftdb()["locations"].find({"_id": {"$in": ids}})}
