"""Errors raised by the reservation services"""


class ReservationError(Exception):
    """Base class for domain errors returned to the immediate caller"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    """Malformed input: missing field, empty range, ambiguous resource selection"""


class NotFoundError(ReservationError):
    """Referenced organization, resource or booking does not exist"""


class ConflictError(ReservationError):
    """Requested interval overlaps an existing booking or a maintenance blackout"""


class ForbiddenError(ReservationError):
    """Caller is not allowed to perform the operation"""


class StoreError(Exception):
    """
    Persistent store failure.

    Not a domain error: it is raised after the session has been rolled back
    and is never retried by the services.
    """
