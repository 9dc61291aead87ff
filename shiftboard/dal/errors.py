"""
Exceptions raised by the data access layer.

Each of these is an expected outcome that is reported back to the caller;
the API blueprint maps them onto HTTP status codes.
"""


class ShiftException(Exception):
    """
    Base class; `details` is merged into the error response.
    """
    def __init__(self, message, details=None):
        super(ShiftException, self).__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(ShiftException):
    """ The shift does not exist or is not owned by the caller. """


class Forbidden(ShiftException):
    """ The caller is authenticated but does not own the shift. """


class InvalidState(ShiftException):
    """ The operation is not allowed at this time; outside the clock window, wrong day or shift already started. """


class Conflict(ShiftException):
    """ Clock in while clocked in or clock out while not clocked in. """


class ValidationError(ShiftException):
    """ Malformed input. """
