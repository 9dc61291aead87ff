import os
import sys
import logging

from flask import Flask

from shiftboard.blueprints.api import api_blueprint
from shiftboard.dal import shifts, locations

logger = logging.getLogger(__name__)


def configureLogging(debug):
    loglevel = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    root.setLevel(loglevel)
    logging.getLogger('kafka').setLevel(logging.INFO)
    if root.handlers:
        # Already configured; by gunicorn or an earlier create_app.
        return
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(loglevel)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    ch.setFormatter(formatter)
    root.addHandler(ch)


def create_app(create_indexes=True):
    """
    Build the application. Use gunicorn, for example, gunicorn "shiftboard.start:create_app()"
    """
    app = Flask("shiftboard")
    app.debug = bool(os.environ.get('DEBUG', False))
    configureLogging(app.debug)
    if app.debug:
        logger.debug("Sending all debug messages to the console")

    app.register_blueprint(api_blueprint)

    if create_indexes:
        shifts.create_indexes()
        locations.create_indexes()

    logger.info("Server initialization complete")
    return app


if __name__ == '__main__':
    print("Please use gunicorn for development as well.")
    sys.exit(-1)
