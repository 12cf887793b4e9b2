"""
Signed credential issuance.

The object store never sees user identity. Authorization happens once,
before a credential is minted, by checking schedule ownership; after that
the store trusts only the signature. There is no revocation: expiry is the
only bound on a credential's lifetime, so TTLs are kept short.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from .errors import ConfigurationError
from .models import Permission, UploadCredential, utcnow
from .protocols import ObjectStore

logger = logging.getLogger(__name__)


DEFAULT_UPLOAD_TTL_MINUTES = 60
DEFAULT_READ_TTL_MINUTES = 10


class CredentialIssuer:
    """
    Mints signed URLs for single blob paths.

    Holds no mutable state, so one instance can serve any number of
    concurrent requests. object_store is None when storage credentials are
    not configured; every issue() call then fails with ConfigurationError.
    """

    def __init__(
        self,
        object_store: Optional[ObjectStore],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._object_store = object_store
        self._clock = clock

    @property
    def is_configured(self) -> bool:
        return self._object_store is not None

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            raise ConfigurationError("File storage is not configured")
        return self._object_store

    async def issue(
        self,
        blob_path: str,
        ttl_minutes: int,
        permission: Permission,
    ) -> UploadCredential:
        """
        Issue a credential for blob_path valid for ttl_minutes.

        Raises ValueError for an empty path, a non-positive TTL or an
        unknown permission, and ConfigurationError when storage is
        not configured.
        """
        if not blob_path:
            raise ValueError("blob_path cannot be empty")
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be positive")
        if not isinstance(permission, Permission):
            raise ValueError(f"Unknown permission: {permission!r}")

        store = self.object_store
        expires_at = self._clock() + timedelta(minutes=ttl_minutes)

        url = await store.generate_signed_url(
            blob_path,
            permission,
            expires_in_seconds=ttl_minutes * 60,
        )

        logger.info(
            "Issued storage credential",
            extra={
                "blob_path": blob_path,
                "permission": permission.value,
                "expires_at": expires_at.isoformat(),
            },
        )

        return UploadCredential(
            url=url,
            blob_path=blob_path,
            permission=permission,
            expires_at=expires_at,
        )
