"""
Translation of resource lifecycle exceptions into HTTP errors.

Routes catch domain exceptions once and pass them through here, so each
exception type has exactly one status code everywhere in the API.
"""

import logging

from fastapi import HTTPException, status

from ..core.resources.errors import (
    ConfigurationError,
    InvalidResourceUrlError,
    NotScheduleOwnerError,
    ResourceLifecycleError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleNotFoundError,
)

logger = logging.getLogger(__name__)


_STATUS_BY_ERROR: dict[type, int] = {
    ScheduleNotFoundError: status.HTTP_404_NOT_FOUND,
    ResourceNotFoundError: status.HTTP_404_NOT_FOUND,
    NotScheduleOwnerError: status.HTTP_403_FORBIDDEN,
    InvalidResourceUrlError: status.HTTP_400_BAD_REQUEST,
    ScheduleConflictError: status.HTTP_409_CONFLICT,
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_DETAIL_BY_STATUS: dict[int, str] = {
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_409_CONFLICT: "Schedule was modified by another request. Reload and try again.",
    status.HTTP_503_SERVICE_UNAVAILABLE: "File storage is not available",
}


def to_http_exception(error: ResourceLifecycleError) -> HTTPException:
    """
    Map a domain exception to an HTTPException.

    403 never echoes the exception message, so nothing about the other
    user's schedule leaks.
    """
    status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = _DETAIL_BY_STATUS.get(status_code, str(error))

    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        logger.error("Operation refused, backend not configured", extra={"error": str(error)})

    return HTTPException(status_code=status_code, detail=detail)


def bad_request(error: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
