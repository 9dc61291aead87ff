import os
import logging
import datetime

import pytz

from pymongo import MongoClient

from kafka import KafkaProducer

from shiftboard.dal.utils import JSONEncoder

logger = logging.getLogger(__name__)

MONGODB_URL = os.environ.get("MONGODB_URL", "mongodb://localhost:27017/")
MONGODB_DATABASE = os.environ.get("MONGODB_DATABASE", "shiftboard")

# Shift dates and HH:MM times are wall clock times in this zone.
SHIFT_TIMEZONE = pytz.timezone(os.environ.get("SHIFT_TIMEZONE", "UTC"))

# How early before the start/finish of a shift one can clock in/out.
CLOCK_WINDOW_MINUTES = int(os.environ.get("CLOCK_WINDOW_MINUTES", 5))

JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-this-secret-is-only-for-development")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

# Connects lazily on first use.
shiftboardclient = MongoClient(host=MONGODB_URL, tz_aware=True, connect=False)


def shiftdb():
    return shiftboardclient[MONGODB_DATABASE]


def clock():
    """
    The current instant. Everything that needs "now" gets it from here and passes it down explicitly.
    """
    return datetime.datetime.now(pytz.UTC)


def __getKafkaProducer():
    if os.environ.get("SKIP_KAFKA_CONNECTION", False):
        logger.info("Skipping the Kafka connection; events will only be logged")
        return None
    return KafkaProducer(bootstrap_servers=os.environ.get("KAFKA_BOOTSTRAP_SERVER", "localhost:9092").split(","), value_serializer=lambda m: JSONEncoder().encode(m).encode('utf-8'))

kafka_producer = __getKafkaProducer()
