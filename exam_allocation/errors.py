"""Domain errors raised by the scheduling services.

Each error carries the HTTP status the API reports it with and a short code
that ends up in the JSON body next to the message.
"""


class SchedulingError(Exception):
    status_code = 400
    code = "SchedulingError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(SchedulingError):
    status_code = 404
    code = "NotFound"


class Conflict(SchedulingError):
    status_code = 409
    code = "Conflict"


class ValidationError(SchedulingError):
    status_code = 422
    code = "ValidationError"


class NoResourceAvailable(SchedulingError):
    """An allocation facet could not be satisfied."""

    status_code = 409
    code = "NoResourceAvailable"

    @property
    def reason(self) -> str:
        return self.code


class NoRoomAvailable(NoResourceAvailable):
    code = "NoRoomAvailable"


class NoFacultyAvailable(NoResourceAvailable):
    code = "NoFacultyAvailable"


class NoInvigilatorsAvailable(NoResourceAvailable):
    code = "NoInvigilatorsAvailable"


class UpstreamUnavailable(SchedulingError):
    status_code = 503
    code = "UpstreamUnavailable"
