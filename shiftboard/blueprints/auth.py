'''
Caller identity for the API.
We only verify a bearer JWT issued elsewhere and record the user id from it in flask.g.user_id.
'''
import logging
from functools import wraps

import jwt
from flask import request, g, abort

from shiftboard import context

logger = logging.getLogger(__name__)


def get_current_user_id():
    return g.get("user_id", None)


def authentication_required(wrapped_function):
    """
    Decorator to make sure the request carries a valid bearer token.
    """
    @wraps(wrapped_function)
    def function_interceptor(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            logger.error("Request to %s without a bearer token", request.path)
            abort(401)
            return None
        try:
            claims = jwt.decode(auth_header[len("Bearer "):], context.JWT_SECRET, algorithms=[context.JWT_ALGORITHM])
        except jwt.InvalidTokenError as e:
            logger.error("Invalid token for request to %s - %s", request.path, e)
            abort(401)
            return None
        user_id = claims.get("id", claims.get("_id", claims.get("sub", None)))
        if not user_id:
            logger.error("Token for request to %s does not identify a user", request.path)
            abort(401)
            return None
        g.user_id = str(user_id)
        return wrapped_function(*args, **kwargs)

    return function_interceptor
