"""
Exceptions raised by the resource lifecycle.

Each one maps to exactly one HTTP status in the API layer. The core never
catches them itself (apart from the best-effort blob cleanup), so the
route that called it is the single place where they become responses.
"""


class ResourceLifecycleError(Exception):
    """Base class for resource lifecycle failures."""
    pass


class ConfigurationError(ResourceLifecycleError):
    """
    Raised when a backend the operation needs has no credentials.

    The API answers 503 rather than pretending the operation succeeded.
    """
    pass


class ScheduleNotFoundError(ResourceLifecycleError):
    """Raised when a requested schedule doesn't exist."""
    pass


class ResourceNotFoundError(ResourceLifecycleError):
    """Raised when no resource with the requested id or URL exists."""
    pass


class NotScheduleOwnerError(ResourceLifecycleError):
    """Raised when the caller is authenticated but doesn't own the schedule."""
    pass


class InvalidResourceUrlError(ResourceLifecycleError):
    """Raised when a file URL doesn't point into the caller's storage namespace."""
    pass


class ScheduleConflictError(ResourceLifecycleError):
    """Raised when a schedule changed underneath a conditional write."""
    pass
