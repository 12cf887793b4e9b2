"""
Schedule CRUD.

Plain document reads and writes on top of the ScheduleStore. Resources
are never edited here; they only change through the upload and deletion
coordinators.
"""

import logging
from datetime import date
from typing import Any, Optional

from .credentials import CredentialIssuer
from .deletion import delete_blob_quietly
from .models import Schedule, ScheduleStatus, utcnow
from .ownership import assert_ownership
from .persistence import DEFAULT_MAX_ATTEMPTS, update_schedule
from .protocols import ScheduleStore

logger = logging.getLogger(__name__)


EDITABLE_FIELDS = ("title", "description", "start_date", "end_date", "status")


class ScheduleService:

    def __init__(
        self,
        store: ScheduleStore,
        issuer: CredentialIssuer,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._max_attempts = max_attempts

    def list_for_owner(self, owner_id: str) -> list[Schedule]:
        return self._store.list_for_owner(owner_id)

    def create(
        self,
        owner_id: str,
        title: str,
        start_date: date,
        end_date: date,
        description: str = "",
        status: ScheduleStatus = ScheduleStatus.PENDING,
    ) -> Schedule:
        schedule = Schedule(
            owner_id=owner_id,
            title=title,
            description=description,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
        self._store.save(schedule)

        logger.info(
            "Schedule created",
            extra={"owner_id": owner_id, "schedule_id": schedule.id},
        )
        return schedule

    def get(self, owner_id: str, schedule_id: str) -> Schedule:
        return assert_ownership(self._store.get(schedule_id), owner_id, schedule_id)

    def update(
        self,
        owner_id: str,
        schedule_id: str,
        changes: dict[str, Any],
    ) -> Schedule:
        """
        Apply a partial update of the editable fields.

        Unknown keys raise ValueError, as does a result that fails
        Schedule validation (blank title, end before start).
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        schedule = self.get(owner_id, schedule_id)

        def apply_changes(target):
            for name, value in changes.items():
                setattr(target, name, value)
            target.validate()
            target.updated_at = utcnow()
            return target

        updated = update_schedule(
            self._store,
            schedule,
            owner_id,
            apply_changes,
            max_attempts=self._max_attempts,
        )

        logger.info(
            "Schedule updated",
            extra={"schedule_id": schedule_id, "fields": sorted(changes)},
        )
        return updated

    async def delete(self, owner_id: str, schedule_id: str) -> Optional[Schedule]:
        """
        Delete the schedule, then try to remove its resources' blobs.

        Returns the deleted schedule, or None if it vanished between the
        ownership check and the delete.
        """
        schedule = self.get(owner_id, schedule_id)

        if not self._store.delete(schedule.id, owner_id):
            return None

        storage = self._issuer.object_store if self._issuer.is_configured else None
        for resource in schedule.resources:
            await delete_blob_quietly(storage, resource.file_url)

        logger.info(
            "Schedule deleted",
            extra={
                "schedule_id": schedule_id,
                "resource_count": len(schedule.resources),
            },
        )
        return schedule
