'''
Various small utilties.
'''
import json
import datetime

from bson import ObjectId


class JSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, ObjectId):
            return str(o)
        elif isinstance(o, datetime.datetime):
            # Mongo hands back naive UTC unless the client is tz_aware; make that explicit for JS.
            if o.tzinfo is None:
                o = o.replace(tzinfo=datetime.timezone.utc)
            return o.isoformat()
        elif isinstance(o, datetime.date):
            return o.isoformat()
        return json.JSONEncoder.default(self, o)


def to_mongo_datetime(instant):
    """
    Mongo stores UTC; we store naive UTC datetimes like datetime.utcnow() would give us.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return instant


def date_to_mongo(d):
    """
    BSON has no date type; a calendar date is stored as midnight UTC of that date.
    """
    return datetime.datetime.combine(d, datetime.time())
