"""
Error taxonomy for the rescue API.

Every error serialises to the ``{"error": message}`` body the blueprints
return, with optional extra keys (for example ``redirect``).
"""


class RescueError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 400

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self):
        data = {"error": self.message}
        data.update(self.extra)
        return data


class ValidationError(RescueError):
    """Malformed or out-of-range input, caught before anything is written."""

    status_code = 400


class AuthenticationError(RescueError):
    status_code = 401


class PermissionDenied(RescueError):
    """The caller's role or ownership does not allow the action.

    Carries a ``redirect`` to the caller's own default view when known.
    """

    status_code = 403


class NotFoundError(RescueError):
    status_code = 404


class ConflictError(RescueError):
    """Stale version, duplicate record or other write conflict."""

    status_code = 409


class InvalidTransition(ConflictError):
    """The requested status change is not an edge of the lifecycle."""

    def __init__(self, current, target, **extra):
        super().__init__(
            f"Cannot move request from '{current}' to '{target}'",
            current_status=current,
            target_status=target,
            **extra,
        )
        self.current = current
        self.target = target


class BackendError(RescueError):
    """The database (or another collaborator) reported a failure."""

    status_code = 503
