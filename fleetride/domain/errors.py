"""
Error taxonomy for the ride engine.

Every failure surfaced to a caller carries a stable ``kind`` plus a
human-readable message.  The API layer maps ``status_code`` straight onto
the HTTP response.
"""


class RideEngineError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RideEngineError):
    """Missing or malformed input.  Never retried automatically."""

    kind = "validation_error"
    status_code = 400


class AuthenticationError(RideEngineError):
    """No usable caller identity was supplied."""

    kind = "authentication_error"
    status_code = 401


class AuthorizationError(RideEngineError):
    """Wrong role, or wrong specific approver / driver / owner for the ride."""

    kind = "authorization_error"
    status_code = 403


class NotFound(RideEngineError):
    kind = "not_found"
    status_code = 404


class Conflict(RideEngineError):
    """The ride's current state does not admit the requested transition."""

    kind = "conflict"
    status_code = 409


class AlreadyRated(Conflict):
    kind = "already_rated"


class ResourceUnavailable(RideEngineError):
    """
    Driver or vehicle was not free at assignment time.

    A race outcome rather than a caller mistake: retrying with a different
    driver or vehicle is legitimate.
    """

    kind = "resource_unavailable"
    status_code = 409


class PreconditionFailed(RideEngineError):
    kind = "precondition_failed"
    status_code = 412


class PersistenceTimeout(RideEngineError):
    """The persistence layer exceeded its bound; nothing was committed."""

    kind = "timeout"
    status_code = 504
