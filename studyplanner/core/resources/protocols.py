"""
Interfaces the resource lifecycle needs from the outside world.

The coordinators only see these protocols. The Snowflake repository and
the R2 storage client implement them in production; the mock connection
and the mock storage client implement them for local development and tests.
"""

from typing import Optional, Protocol

from .models import Permission, Schedule


class ScheduleStore(Protocol):
    """Whole-document access to schedules, indexed by id and by owner."""

    def get(self, schedule_id: str) -> Optional[Schedule]:
        """Load a schedule by id, or None."""
        ...

    def list_for_owner(self, owner_id: str) -> list[Schedule]:
        """All schedules of one owner, newest first."""
        ...

    def save(self, schedule: Schedule) -> Schedule:
        """
        Insert a new schedule or conditionally replace a stored one.

        Raises ScheduleConflictError when the stored revision no longer
        matches schedule.revision.
        """
        ...

    def delete(self, schedule_id: str, owner_id: str) -> bool:
        """Delete by id within the owner's partition. True if a row went away."""
        ...


class ObjectStore(Protocol):
    """Blob storage addressed by path."""

    async def generate_signed_url(
        self,
        blob_path: str,
        permission: Permission,
        expires_in_seconds: int,
    ) -> str:
        """Sign a URL granting `permission` on one blob until expiry."""
        ...

    async def delete_blob(self, blob_path: str) -> bool:
        """Delete the blob if it exists. True if something was deleted."""
        ...

    def public_url(self, blob_path: str) -> str:
        """Unsigned URL of a blob, as stored on resources."""
        ...

    def blob_path_from_url(self, file_url: str) -> Optional[str]:
        """Inverse of public_url; None for URLs outside our bucket."""
        ...
