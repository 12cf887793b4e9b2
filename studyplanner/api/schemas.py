"""
Response models shared by several routers.

The web client speaks camelCase JSON. Models accept either the alias or
the Python field name, and FastAPI serializes responses by alias.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.resources import Resource, Schedule


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResourceResponse(CamelModel):
    """A file attached to a schedule."""
    id: str = Field(description="Resource identifier, unique within its schedule")
    file_name: str = Field(description="Original file name as uploaded")
    file_url: str = Field(description="Unsigned object URL; request a read credential to download")
    file_size: int = Field(description="Size in bytes as reported by the client")
    file_type: str = Field(description="MIME type as reported by the client")
    uploaded_at: datetime = Field(description="When the upload was finalized")

    @classmethod
    def from_domain(cls, resource: Resource) -> "ResourceResponse":
        return cls(
            id=resource.id,
            file_name=resource.file_name,
            file_url=resource.file_url,
            file_size=resource.file_size,
            file_type=resource.file_type,
            uploaded_at=resource.uploaded_at,
        )


class ScheduleResponse(CamelModel):
    """A study schedule with its resources."""
    id: str
    user_id: str
    title: str
    description: str
    start_date: date
    end_date: date
    status: str
    resources: list[ResourceResponse]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, schedule: Schedule) -> "ScheduleResponse":
        return cls(
            id=schedule.id,
            user_id=schedule.owner_id,
            title=schedule.title,
            description=schedule.description,
            start_date=schedule.start_date,
            end_date=schedule.end_date,
            status=schedule.status.value,
            resources=[ResourceResponse.from_domain(r) for r in schedule.resources],
            created_at=schedule.created_at,
            updated_at=schedule.updated_at,
        )


class SuccessResponse(BaseModel):
    success: bool = True
