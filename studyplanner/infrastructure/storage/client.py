"""
Object storage client for schedule resources.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
The server never moves file bytes itself: it signs URLs that let the
browser PUT (upload) or GET (download) one object directly, and it deletes
objects when their resource goes away.

Mock mode keeps objects in memory and hands out mock:// URLs, enabling API
testing without provisioning actual object storage.
"""

import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import quote, unquote, urlencode

from ...core.resources.models import Permission

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """Configuration for R2/S3-compatible storage."""
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region

    @property
    def public_base_url(self) -> str:
        """Path-style bucket URL; every stored file URL starts with this."""
        return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}"


def build_public_url(base_url: str, blob_path: str) -> str:
    return f"{base_url}/{quote(blob_path)}"


def parse_blob_path(base_url: str, file_url: str) -> Optional[str]:
    """
    Recover the blob path from a public URL.

    Returns None when the URL is not under base_url, i.e. not our blob.
    """
    prefix = f"{base_url}/"
    if not file_url.startswith(prefix):
        return None

    blob_path = unquote(file_url[len(prefix):])
    return blob_path or None


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Structurally the same as core.resources.protocols.ObjectStore, so
    either client can be handed straight to the credential issuer.
    """

    async def generate_signed_url(
        self,
        blob_path: str,
        permission: Permission,
        expires_in_seconds: int,
    ) -> str:
        """Presign a PUT (read-write) or GET (read) URL for one object."""
        ...

    async def delete_blob(self, blob_path: str) -> bool:
        """Delete an object if present. Returns whether it existed."""
        ...

    def public_url(self, blob_path: str) -> str:
        """Unsigned URL of an object."""
        ...

    def blob_path_from_url(self, file_url: str) -> Optional[str]:
        """Blob path for one of our URLs, None for anything else."""
        ...


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. Presigned URLs are SigV4, so
    the signature covers the object key, the HTTP method and the expiry,
    and R2 checks it without calling back to us.

    All methods are async to match the Protocol even though boto3 is
    synchronous.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize R2 client with boto3.

        boto3 is imported here (not at module level) so mock mode and the
        core tests don't need it.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        self._config = config

        # R2 requires v4 signatures; path-style keeps the bucket in the URL path
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    async def generate_signed_url(
        self,
        blob_path: str,
        permission: Permission,
        expires_in_seconds: int,
    ) -> str:
        """
        Generate a presigned URL for one object.

        READ_WRITE presigns put_object, which is what the browser uses for
        the direct upload. READ presigns get_object.
        """
        client_method = 'put_object' if permission == Permission.READ_WRITE else 'get_object'

        try:
            return self._s3_client.generate_presigned_url(
                client_method,
                Params={
                    'Bucket': self._config.bucket_name,
                    'Key': blob_path,
                },
                ExpiresIn=expires_in_seconds,
            )

        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"blob_path": blob_path, "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}")

    async def delete_blob(self, blob_path: str) -> bool:
        """
        Delete an object if it exists.

        S3 deletes succeed for missing keys, so a HEAD request tells us
        whether there was anything to delete.
        """
        from botocore.exceptions import ClientError

        try:
            self._s3_client.head_object(
                Bucket=self._config.bucket_name,
                Key=blob_path,
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                logger.debug("Blob already gone", extra={"blob_path": blob_path})
                return False
            logger.error(
                "Failed to check blob before delete",
                extra={"blob_path": blob_path, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}")

        try:
            self._s3_client.delete_object(
                Bucket=self._config.bucket_name,
                Key=blob_path,
            )

            logger.info("Deleted blob", extra={"blob_path": blob_path})
            return True

        except Exception as e:
            logger.error(
                "Failed to delete blob",
                extra={"blob_path": blob_path, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}")

    def public_url(self, blob_path: str) -> str:
        return build_public_url(self._config.public_base_url, blob_path)

    def blob_path_from_url(self, file_url: str) -> Optional[str]:
        return parse_blob_path(self._config.public_base_url, file_url)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are stored in a dictionary and signed URLs are mock:// URIs
    carrying an HMAC over (path, permission, expiry) made with a key that
    lives as long as the client. Nothing can actually PUT to them, so
    tests simulate the browser upload with put_blob().

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, bucket_name: str = "study-resources") -> None:
        self._bucket_name = bucket_name
        self._base_url = f"mock://storage/{bucket_name}"
        self._signing_key = secrets.token_bytes(32)
        # {blob_path: bytes}
        self._blobs: dict[str, bytes] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def generate_signed_url(
        self,
        blob_path: str,
        permission: Permission,
        expires_in_seconds: int,
    ) -> str:
        expires = int(time.time()) + expires_in_seconds
        signature = self._sign(blob_path, permission, expires)

        query = urlencode({
            "permission": permission.value,
            "expires": expires,
            "signature": signature,
        })
        return f"{self.public_url(blob_path)}?{query}"

    def verify_signed_url(self, blob_path: str, permission: Permission, expires: int, signature: str) -> bool:
        """Check a mock signature the way the object store would."""
        if expires < int(time.time()):
            return False
        expected = self._sign(blob_path, permission, expires)
        return hmac.compare_digest(expected, signature)

    async def delete_blob(self, blob_path: str) -> bool:
        existed = self._blobs.pop(blob_path, None) is not None

        logger.debug(
            "Deleted blob from mock storage",
            extra={"blob_path": blob_path, "existed": existed}
        )
        return existed

    def public_url(self, blob_path: str) -> str:
        return build_public_url(self._base_url, blob_path)

    def blob_path_from_url(self, file_url: str) -> Optional[str]:
        return parse_blob_path(self._base_url, file_url)

    # Helper methods for testing
    def put_blob(self, blob_path: str, data: bytes) -> None:
        """Store an object as if the browser had uploaded it."""
        self._blobs[blob_path] = data

    def has_blob(self, blob_path: str) -> bool:
        return blob_path in self._blobs

    def _sign(self, blob_path: str, permission: Permission, expires: int) -> str:
        message = f"{blob_path}\n{permission.value}\n{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
    bucket_name: str = "study-resources",
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing
        bucket_name: Bucket name used by the mock client

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient(bucket_name=bucket_name)

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
