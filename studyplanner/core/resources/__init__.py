"""
Schedule resources and their upload lifecycle.

Contains the domain models, the credential issuer, and the coordinators
for uploading, downloading and deleting schedule resources.
"""

from .credentials import CredentialIssuer
from .deletion import ResourceDeletionCoordinator
from .downloads import DownloadCoordinator
from .errors import (
    ConfigurationError,
    InvalidResourceUrlError,
    NotScheduleOwnerError,
    ResourceLifecycleError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleNotFoundError,
)
from .models import Permission, Resource, Schedule, ScheduleStatus, UploadCredential
from .ownership import assert_ownership
from .paths import MillisecondClock, build_blob_path, sanitize_file_name
from .schedules import ScheduleService
from .uploads import UploadCoordinator, UploadTicket

__all__ = [
    "ConfigurationError",
    "CredentialIssuer",
    "DownloadCoordinator",
    "InvalidResourceUrlError",
    "MillisecondClock",
    "NotScheduleOwnerError",
    "Permission",
    "Resource",
    "ResourceDeletionCoordinator",
    "ResourceLifecycleError",
    "ResourceNotFoundError",
    "Schedule",
    "ScheduleConflictError",
    "ScheduleNotFoundError",
    "ScheduleService",
    "ScheduleStatus",
    "UploadCoordinator",
    "UploadCredential",
    "UploadTicket",
    "assert_ownership",
    "build_blob_path",
    "sanitize_file_name",
]
