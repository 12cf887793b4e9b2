"""
Domain models for study schedules and their file resources.

A Schedule is the aggregate root: resources only exist inside a schedule's
resource collection and are never stored on their own. These models know
nothing about Snowflake, R2 or HTTP.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4


DEFAULT_FILE_TYPE = "application/octet-stream"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_schedule_id() -> str:
    return f"schedule_{uuid4().hex}"


def new_resource_id() -> str:
    return f"resource_{uuid4().hex}"


class ScheduleStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Permission(Enum):
    """
    What a signed credential allows on its blob.

    READ_WRITE is what the browser needs for the direct upload;
    READ is handed out for downloads.
    """
    READ = "read"
    READ_WRITE = "read-write"


@dataclass
class Resource:
    """
    A file attached to a schedule.

    file_url is the public (unsigned) object URL. It is also the key the
    download flow uses to authorize a read credential, so it is stored
    exactly as the finalize step received it.
    """
    file_name: str
    file_url: str
    id: str = field(default_factory=new_resource_id)
    file_size: int = 0
    file_type: str = DEFAULT_FILE_TYPE
    uploaded_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.file_name.strip():
            raise ValueError("Resource file name cannot be empty")
        if not self.file_url.strip():
            raise ValueError("Resource file URL cannot be empty")
        if self.file_size < 0:
            raise ValueError("Resource file size cannot be negative")
        if not self.file_type:
            self.file_type = DEFAULT_FILE_TYPE


@dataclass
class Schedule:
    """
    A user's study plan.

    revision is bumped by the repository on every successful write and is
    what conditional updates compare against. A revision of 0 means the
    schedule has never been stored.
    """
    owner_id: str
    title: str
    start_date: date
    end_date: date
    description: str = ""
    status: ScheduleStatus = ScheduleStatus.PENDING
    resources: list[Resource] = field(default_factory=list)
    id: str = field(default_factory=new_schedule_id)
    revision: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.owner_id:
            raise ValueError("Schedule must have an owner")
        if not self.title.strip():
            raise ValueError("Schedule title cannot be empty")
        if self.end_date < self.start_date:
            raise ValueError("Schedule end date must not be before start date")

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def add_resource(self, resource: Resource) -> Resource:
        """Append a resource and touch updated_at."""
        self.resources.append(resource)
        self.updated_at = utcnow()
        return resource

    def remove_resource(self, resource_id: str) -> Resource:
        """
        Remove the resource with the given id and return it.

        Raises KeyError if the schedule has no such resource.
        """
        resource = self.find_resource(resource_id)
        if resource is None:
            raise KeyError(resource_id)

        self.resources = [r for r in self.resources if r.id != resource_id]
        self.updated_at = utcnow()
        return resource

    def find_resource(self, resource_id: str) -> Optional[Resource]:
        for resource in self.resources:
            if resource.id == resource_id:
                return resource
        return None

    def find_resource_by_url(self, file_url: str) -> Optional[Resource]:
        # Exact match only; this is the download authorization check.
        for resource in self.resources:
            if resource.file_url == file_url:
                return resource
        return None


@dataclass(frozen=True)
class UploadCredential:
    """
    A signed, time-boxed capability for one blob.

    Never persisted. The URL carries its own signature and expiry, so
    the object store can verify it without asking us.
    """
    url: str
    blob_path: str
    permission: Permission
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at
