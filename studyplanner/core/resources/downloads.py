"""
Read credentials for stored resources.

There is no permission table. A caller may read a blob exactly when one
of their schedules has a resource whose stored URL equals the requested
URL. Read credentials are short-lived because signed download links
tend to get pasted around.
"""

import logging

from .credentials import DEFAULT_READ_TTL_MINUTES, CredentialIssuer
from .errors import InvalidResourceUrlError, ResourceNotFoundError
from .models import Permission, UploadCredential
from .ownership import assert_ownership
from .protocols import ScheduleStore

logger = logging.getLogger(__name__)


class DownloadCoordinator:
    """Issues read credentials for resources on the caller's own schedules."""

    def __init__(
        self,
        store: ScheduleStore,
        issuer: CredentialIssuer,
        read_ttl_minutes: int = DEFAULT_READ_TTL_MINUTES,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._read_ttl_minutes = read_ttl_minutes

    async def issue_read_credential(
        self,
        owner_id: str,
        schedule_id: str,
        file_url: str,
    ) -> UploadCredential:
        schedule = assert_ownership(self._store.get(schedule_id), owner_id, schedule_id)

        resource = schedule.find_resource_by_url(file_url)
        if resource is None:
            raise ResourceNotFoundError(f"No resource with that URL on schedule {schedule_id}")

        blob_path = self._issuer.object_store.blob_path_from_url(resource.file_url)
        if blob_path is None:
            raise InvalidResourceUrlError("Resource URL is not in the configured bucket")

        credential = await self._issuer.issue(
            blob_path,
            ttl_minutes=self._read_ttl_minutes,
            permission=Permission.READ,
        )

        logger.info(
            "Read credential issued",
            extra={
                "owner_id": owner_id,
                "schedule_id": schedule_id,
                "resource_id": resource.id,
            },
        )

        return credential
