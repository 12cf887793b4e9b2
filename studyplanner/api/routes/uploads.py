"""
Upload and download credential endpoints.

The upload handshake:
1. GET  /credential      -> signed PUT URL + the file URL it will produce
2. browser PUTs the file to the signed URL (no API involvement)
3. POST /finalize        -> records the resource on the schedule

Downloads:
    GET /read-credential -> short-lived signed GET URL for one stored resource
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Query, status
from pydantic import Field

from ...core.resources import ResourceLifecycleError
from ..dependencies import CurrentUser, DownloadCoordinatorDep, UploadCoordinatorDep
from ..errors import bad_request, to_http_exception
from ..schemas import CamelModel, ResourceResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class UploadCredentialResponse(CamelModel):
    """Phase 1 result: where and how to upload."""
    signed_upload_url: str = Field(description="PUT the file bytes here before expires_at")
    resulting_file_url: str = Field(description="Pass this to /finalize once the PUT succeeded")
    blob_path: str = Field(description="Object key the file will be stored under")
    expires_at: datetime = Field(description="When the signed URL stops working")


class FinalizeUploadRequest(CamelModel):
    """Phase 3 input: metadata of a file the client has uploaded."""
    schedule_id: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    file_url: str = Field(min_length=1, description="resultingFileUrl from phase 1")
    file_size: Optional[int] = Field(default=None, ge=0)
    file_type: Optional[str] = None


class FinalizeUploadResponse(CamelModel):
    success: bool = True
    resource: ResourceResponse


class ReadCredentialResponse(CamelModel):
    signed_read_url: str = Field(description="GET the file here before expires_at")
    expires_at: datetime


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/credential",
    response_model=UploadCredentialResponse,
    status_code=status.HTTP_200_OK,
    summary="Request an upload URL",
    description="Issue a read-write signed URL for uploading one file to a schedule you own.",
)
async def request_upload_credential(
    user_id: CurrentUser,
    coordinator: UploadCoordinatorDep,
    file_name: Annotated[str, Query(alias="fileName", min_length=1)],
    schedule_id: Annotated[str, Query(alias="scheduleId", min_length=1)],
) -> UploadCredentialResponse:
    try:
        ticket = await coordinator.request_upload(
            owner_id=user_id,
            schedule_id=schedule_id,
            file_name=file_name,
        )
    except ResourceLifecycleError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise bad_request(e)

    return UploadCredentialResponse(
        signed_upload_url=ticket.credential.url,
        resulting_file_url=ticket.file_url,
        blob_path=ticket.blob_path,
        expires_at=ticket.credential.expires_at,
    )


@router.post(
    "/finalize",
    response_model=FinalizeUploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Finalize an upload",
    description=(
        "Record an uploaded file on its schedule. Not idempotent: every call "
        "creates a new resource, so don't retry blindly."
    ),
)
async def finalize_upload(
    user_id: CurrentUser,
    coordinator: UploadCoordinatorDep,
    body: FinalizeUploadRequest,
) -> FinalizeUploadResponse:
    try:
        resource = await coordinator.finalize_upload(
            owner_id=user_id,
            schedule_id=body.schedule_id,
            file_name=body.file_name,
            file_url=body.file_url,
            file_size=body.file_size,
            file_type=body.file_type,
        )
    except ResourceLifecycleError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise bad_request(e)

    return FinalizeUploadResponse(resource=ResourceResponse.from_domain(resource))


@router.get(
    "/read-credential",
    response_model=ReadCredentialResponse,
    status_code=status.HTTP_200_OK,
    summary="Request a download URL",
    description="Issue a short-lived read-only signed URL for a resource on a schedule you own.",
)
async def request_read_credential(
    user_id: CurrentUser,
    coordinator: DownloadCoordinatorDep,
    file_url: Annotated[str, Query(alias="fileUrl", min_length=1)],
    schedule_id: Annotated[str, Query(alias="scheduleId", min_length=1)],
) -> ReadCredentialResponse:
    try:
        credential = await coordinator.issue_read_credential(
            owner_id=user_id,
            schedule_id=schedule_id,
            file_url=file_url,
        )
    except ResourceLifecycleError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise bad_request(e)

    return ReadCredentialResponse(
        signed_read_url=credential.url,
        expires_at=credential.expires_at,
    )
