"""
Resource deletion.

Metadata consistency wins over storage cleanup. The blob delete is tried
first and any failure is logged and dropped; the resource record is then
removed no matter what. A leftover blob only costs storage, while a record
pointing at a deleted file breaks the schedule page.
"""

import logging
from typing import Optional

from .credentials import CredentialIssuer
from .errors import ResourceNotFoundError
from .models import Resource, Schedule
from .persistence import DEFAULT_MAX_ATTEMPTS, update_schedule
from .protocols import ObjectStore, ScheduleStore

logger = logging.getLogger(__name__)


async def delete_blob_quietly(object_store: Optional[ObjectStore], file_url: str) -> bool:
    """
    Best-effort delete of the blob behind file_url.

    Returns True only if a blob was actually removed. Unconfigured
    storage, URLs outside our bucket and storage errors all return False.
    """
    if object_store is None:
        logger.info("Storage not configured, skipping blob delete", extra={"file_url": file_url})
        return False

    blob_path = object_store.blob_path_from_url(file_url)
    if blob_path is None:
        # Not one of ours.
        return False

    try:
        return await object_store.delete_blob(blob_path)
    except Exception as e:
        logger.error(
            "Failed to delete blob, keeping metadata removal",
            extra={"blob_path": blob_path, "error": str(e)},
        )
        return False


class ResourceDeletionCoordinator:
    """Removes one resource from the caller's schedules."""

    def __init__(
        self,
        store: ScheduleStore,
        issuer: CredentialIssuer,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._max_attempts = max_attempts

    def locate(self, owner_id: str, resource_id: str) -> tuple[Schedule, Resource]:
        """
        Find the schedule holding resource_id among owner_id's schedules.

        Only the owner's partition is scanned. Raises ResourceNotFoundError
        if none of their schedules has it.
        """
        for schedule in self._store.list_for_owner(owner_id):
            resource = schedule.find_resource(resource_id)
            if resource is not None:
                return schedule, resource

        raise ResourceNotFoundError(f"Resource {resource_id} not found")

    async def delete_resource(self, owner_id: str, resource_id: str) -> Resource:
        schedule, resource = self.locate(owner_id, resource_id)

        storage = self._issuer.object_store if self._issuer.is_configured else None
        blob_deleted = await delete_blob_quietly(storage, resource.file_url)

        def remove_resource(target):
            try:
                return target.remove_resource(resource_id)
            except KeyError:
                # A concurrent request removed it between our attempts.
                raise ResourceNotFoundError(f"Resource {resource_id} not found")

        removed = update_schedule(
            self._store,
            schedule,
            owner_id,
            remove_resource,
            max_attempts=self._max_attempts,
        )

        logger.info(
            "Resource deleted",
            extra={
                "owner_id": owner_id,
                "schedule_id": schedule.id,
                "resource_id": resource_id,
                "blob_deleted": blob_deleted,
            },
        )

        return removed
