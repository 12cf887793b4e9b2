"""
The single ownership check used by every schedule-scoped operation.
"""

import logging
from typing import Optional

from .errors import NotScheduleOwnerError, ScheduleNotFoundError
from .models import Schedule

logger = logging.getLogger(__name__)


def assert_ownership(
    schedule: Optional[Schedule],
    caller_id: str,
    schedule_id: str = "",
) -> Schedule:
    """
    Return the schedule if caller_id owns it.

    Raises ScheduleNotFoundError when the schedule is missing and
    NotScheduleOwnerError when somebody else owns it. Existence is not
    hidden from non-owners.
    """
    if schedule is None:
        raise ScheduleNotFoundError(f"Schedule {schedule_id} not found")

    if not schedule.is_owned_by(caller_id):
        logger.warning(
            "Schedule access denied",
            extra={"schedule_id": schedule.id, "caller_id": caller_id},
        )
        raise NotScheduleOwnerError(f"Schedule {schedule.id} belongs to another user")

    return schedule
