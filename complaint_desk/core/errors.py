"""Domain error taxonomy.

Services raise these; ``main`` maps them to ``{"success": false, "message": ...}``
responses with the status code carried on the class.
"""


class ComplaintDeskError(Exception):
    """Base exception for complaint desk errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ComplaintDeskError):
    """Missing or invalid input."""

    status_code = 400


class NotAuthenticatedError(ComplaintDeskError):
    """No usable credentials on the request."""

    status_code = 401


class ForbiddenError(ComplaintDeskError):
    """Actor is not allowed to act on this resource."""

    status_code = 403


class NotFoundError(ComplaintDeskError):
    """Resource does not exist or is outside the caller's visibility."""

    status_code = 404


class ConflictError(ComplaintDeskError):
    """Resource state does not allow the requested change."""

    status_code = 409


class InvalidTransitionError(ConflictError):
    """Requested status change is not in the transition table."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot change status from {current} to {requested}")
        self.current = current
        self.requested = requested


class StorageError(ComplaintDeskError):
    """Photo storage rejected or failed an upload."""

    status_code = 502
