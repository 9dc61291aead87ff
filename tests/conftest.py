import os
import datetime

# No Kafka broker in the tests; this has to be set before shiftboard.context is imported.
os.environ["SKIP_KAFKA_CONNECTION"] = "1"

import jwt
import mongomock
import pytest
from bson import ObjectId

from shiftboard import context
from shiftboard.dal.models import Shift
from shiftboard.start import create_app


def local(*args):
    """ A wall clock time in the shift time zone. """
    return context.SHIFT_TIMEZONE.localize(datetime.datetime(*args))


def make_shift(**kwargs):
    doc = {
        "_id": ObjectId(),
        "title": "Front desk",
        "role": "Reception",
        "user": ObjectId(),
        "location": ObjectId(),
        "date": "2025-06-17",
        "startTime": "09:00",
        "finishTime": "17:00",
    }
    doc.update(kwargs)
    return Shift.model_validate(doc)


class FakeClock(object):
    def __init__(self):
        self.now = local(2025, 6, 17, 8, 0)

    def set(self, *args):
        self.now = local(*args)

    def __call__(self):
        return self.now


class RecordingProducer(object):
    def __init__(self):
        self.sent = []

    def send(self, topic, value):
        self.sent.append((topic, value))


@pytest.fixture
def shiftdb(monkeypatch):
    monkeypatch.setattr(context, "shiftboardclient", mongomock.MongoClient())
    return context.shiftdb()


@pytest.fixture
def location(shiftdb):
    doc = {
        "name": "Clippers House, Clippers Quay",
        "postCode": "M50 3XP",
        "distance": 0,
        "constituency": "Salford and Eccles",
        "adminDistrict": "Salford",
        "cordinates": {"longitude": -2.286226, "latitude": 53.466921, "useRotaCloud": True},
    }
    doc["_id"] = shiftdb["locations"].insert_one(doc).inserted_id
    return doc


@pytest.fixture
def owner():
    return str(ObjectId())


@pytest.fixture
def shift_info(location):
    return {
        "title": "Front desk",
        "role": "Reception",
        "typeOfShift": ["day"],
        "location": str(location["_id"]),
        "date": "2025-06-17",
        "startTime": "09:00",
        "finishTime": "17:00",
    }


@pytest.fixture
def fake_clock(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(context, "clock", clock)
    return clock


@pytest.fixture
def producer(monkeypatch):
    recorder = RecordingProducer()
    monkeypatch.setattr(context, "kafka_producer", recorder)
    return recorder


@pytest.fixture
def client(shiftdb, fake_clock, producer):
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def auth_header(user_id):
    token = jwt.encode({"id": user_id}, context.JWT_SECRET, algorithm=context.JWT_ALGORITHM)
    return {"Authorization": "Bearer " + token}
