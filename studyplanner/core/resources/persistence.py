"""
Read-modify-write of schedule documents with optimistic concurrency.

The store's save() is conditional on the schedule revision. When another
request wrote the same schedule first, save() raises ScheduleConflictError
and nothing was written, so the mutation can safely be re-applied to a
freshly loaded copy.
"""

import logging
from typing import Callable, TypeVar

from .errors import ScheduleConflictError
from .models import Schedule
from .ownership import assert_ownership
from .protocols import ScheduleStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


def update_schedule(
    store: ScheduleStore,
    schedule: Schedule,
    caller_id: str,
    mutate: Callable[[Schedule], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> T:
    """
    Apply mutate to schedule and persist it, retrying on revision conflicts.

    The first attempt uses the schedule passed in; later attempts reload it
    and re-check ownership. mutate may raise to abort. Returns whatever
    mutate returned on the attempt that was stored.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        result = mutate(schedule)
        try:
            store.save(schedule)
            return result
        except ScheduleConflictError:
            if attempt >= max_attempts:
                logger.error(
                    "Giving up on conflicting schedule write",
                    extra={"schedule_id": schedule.id, "attempts": attempt},
                )
                raise

            logger.warning(
                "Schedule changed concurrently, retrying",
                extra={"schedule_id": schedule.id, "attempt": attempt},
            )
            attempt += 1
            schedule = assert_ownership(store.get(schedule.id), caller_id, schedule.id)
