"""
Resource endpoints.

Resources are created through the upload handshake (see uploads.py);
this router only removes them.
"""

import logging

from fastapi import APIRouter, status

from ...core.resources import ResourceLifecycleError
from ..dependencies import CurrentUser, DeletionCoordinatorDep
from ..errors import to_http_exception
from ..schemas import SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.delete(
    "/{resource_id}",
    response_model=SuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete a resource",
    description=(
        "Remove a resource from whichever of your schedules holds it. "
        "The stored file is deleted on a best-effort basis; the resource "
        "record is removed even if that fails."
    ),
)
async def delete_resource(
    resource_id: str,
    user_id: CurrentUser,
    coordinator: DeletionCoordinatorDep,
) -> SuccessResponse:
    try:
        await coordinator.delete_resource(owner_id=user_id, resource_id=resource_id)
    except ResourceLifecycleError as e:
        raise to_http_exception(e)

    return SuccessResponse()
