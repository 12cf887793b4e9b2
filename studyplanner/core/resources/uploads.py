"""
The three-phase upload handshake.

1. request_upload: check ownership, derive the blob path, hand out a
   read-write credential. Nothing is stored.
2. The browser PUTs the file straight to object storage with that
   credential. We never see the bytes and don't know if it worked.
3. finalize_upload: check ownership again and record the Resource on
   the schedule. This is the only writer of resource metadata.

Each phase is its own request, so a client that dies between phases
leaves the server consistent. A client that dies after phase 2 leaves an
orphaned blob with no resource record; nothing sweeps those up.

finalize_upload is not idempotent. Calling it twice records
two resources with different ids, so clients must not retry it blindly.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .credentials import DEFAULT_UPLOAD_TTL_MINUTES, CredentialIssuer
from .errors import InvalidResourceUrlError
from .models import DEFAULT_FILE_TYPE, Permission, Resource, UploadCredential
from .ownership import assert_ownership
from .paths import MillisecondClock, build_blob_path, schedule_prefix
from .persistence import DEFAULT_MAX_ATTEMPTS, update_schedule
from .protocols import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadTicket:
    """What phase 1 returns to the client."""
    credential: UploadCredential
    blob_path: str
    file_url: str


class UploadCoordinator:
    """Runs phases 1 and 3 of the upload handshake for one request."""

    def __init__(
        self,
        store: ScheduleStore,
        issuer: CredentialIssuer,
        clock: MillisecondClock,
        upload_ttl_minutes: int = DEFAULT_UPLOAD_TTL_MINUTES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._clock = clock
        self._upload_ttl_minutes = upload_ttl_minutes
        self._max_attempts = max_attempts

    async def request_upload(
        self,
        owner_id: str,
        schedule_id: str,
        file_name: str,
    ) -> UploadTicket:
        """
        Phase 1: authorize and issue an upload credential.

        Ownership is checked before anything is signed, so a refused
        caller never holds a credential.
        """
        if not file_name:
            raise ValueError("file_name is required")

        schedule = assert_ownership(self._store.get(schedule_id), owner_id, schedule_id)
        store = self._issuer.object_store

        blob_path = build_blob_path(
            owner_id=owner_id,
            schedule_id=schedule.id,
            timestamp_ms=self._clock.next_timestamp(),
            file_name=file_name,
        )

        credential = await self._issuer.issue(
            blob_path,
            ttl_minutes=self._upload_ttl_minutes,
            permission=Permission.READ_WRITE,
        )

        logger.info(
            "Upload requested",
            extra={
                "owner_id": owner_id,
                "schedule_id": schedule.id,
                "blob_path": blob_path,
            },
        )

        return UploadTicket(
            credential=credential,
            blob_path=blob_path,
            file_url=store.public_url(blob_path),
        )

    async def finalize_upload(
        self,
        owner_id: str,
        schedule_id: str,
        file_name: str,
        file_url: str,
        file_size: Optional[int] = None,
        file_type: Optional[str] = None,
    ) -> Resource:
        """
        Phase 3: record the uploaded file on its schedule.

        file_url must point inside this owner's schedule namespace in our
        bucket. Anything else raises InvalidResourceUrlError, because the
        stored URL is later what authorizes read credentials.
        """
        schedule = assert_ownership(self._store.get(schedule_id), owner_id, schedule_id)
        self._check_url_namespace(owner_id, schedule.id, file_url)

        def append_resource(target):
            return target.add_resource(Resource(
                file_name=file_name,
                file_url=file_url,
                file_size=file_size or 0,
                file_type=file_type or DEFAULT_FILE_TYPE,
            ))

        resource = update_schedule(
            self._store,
            schedule,
            owner_id,
            append_resource,
            max_attempts=self._max_attempts,
        )

        logger.info(
            "Upload finalized",
            extra={
                "owner_id": owner_id,
                "schedule_id": schedule.id,
                "resource_id": resource.id,
                "file_size": resource.file_size,
            },
        )

        return resource

    def _check_url_namespace(self, owner_id: str, schedule_id: str, file_url: str) -> None:
        blob_path = self._issuer.object_store.blob_path_from_url(file_url)
        if blob_path is None or not blob_path.startswith(schedule_prefix(owner_id, schedule_id)):
            raise InvalidResourceUrlError(
                f"File URL is not a blob of schedule {schedule_id}"
            )
