"""
Schedule endpoints.

Plain CRUD on the caller's own schedules. Resources come back embedded
in each schedule but can't be edited here.
"""

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import Field

from ...core.resources import ResourceLifecycleError, ScheduleStatus
from ..dependencies import CurrentUser, ScheduleServiceDep
from ..errors import bad_request, to_http_exception
from ..schemas import CamelModel, ScheduleResponse, SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter()

StatusValue = Literal["pending", "completed"]


class CreateScheduleRequest(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    start_date: date
    end_date: date
    status: StatusValue = "pending"


class UpdateScheduleRequest(CamelModel):
    """Only the fields present in the request are changed."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[StatusValue] = None


@router.get(
    "",
    response_model=list[ScheduleResponse],
    summary="List my schedules",
)
async def list_schedules(
    user_id: CurrentUser,
    service: ScheduleServiceDep,
) -> list[ScheduleResponse]:
    return [ScheduleResponse.from_domain(s) for s in service.list_for_owner(user_id)]


@router.post(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a schedule",
)
async def create_schedule(
    user_id: CurrentUser,
    service: ScheduleServiceDep,
    body: CreateScheduleRequest,
) -> ScheduleResponse:
    try:
        schedule = service.create(
            owner_id=user_id,
            title=body.title,
            description=body.description,
            start_date=body.start_date,
            end_date=body.end_date,
            status=ScheduleStatus(body.status),
        )
    except ValueError as e:
        raise bad_request(e)

    return ScheduleResponse.from_domain(schedule)


@router.get(
    "/{schedule_id}",
    response_model=ScheduleResponse,
    summary="Get a schedule",
)
async def get_schedule(
    schedule_id: str,
    user_id: CurrentUser,
    service: ScheduleServiceDep,
) -> ScheduleResponse:
    try:
        schedule = service.get(user_id, schedule_id)
    except ResourceLifecycleError as e:
        raise to_http_exception(e)

    return ScheduleResponse.from_domain(schedule)


@router.put(
    "/{schedule_id}",
    response_model=ScheduleResponse,
    summary="Update a schedule",
)
async def update_schedule(
    schedule_id: str,
    user_id: CurrentUser,
    service: ScheduleServiceDep,
    body: UpdateScheduleRequest,
) -> ScheduleResponse:
    # null means "leave it alone"
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "status" in changes:
        changes["status"] = ScheduleStatus(changes["status"])

    try:
        schedule = service.update(user_id, schedule_id, changes)
    except ResourceLifecycleError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise bad_request(e)

    return ScheduleResponse.from_domain(schedule)


@router.delete(
    "/{schedule_id}",
    response_model=SuccessResponse,
    summary="Delete a schedule",
    description="Delete the schedule and, best-effort, the files of all its resources.",
)
async def delete_schedule(
    schedule_id: str,
    user_id: CurrentUser,
    service: ScheduleServiceDep,
) -> SuccessResponse:
    try:
        deleted = await service.delete(user_id, schedule_id)
    except ResourceLifecycleError as e:
        raise to_http_exception(e)

    if deleted is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Schedule {schedule_id} not found",
        )

    return SuccessResponse()
