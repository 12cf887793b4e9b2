"""
FastAPI dependency injection.

Long-lived clients (storage client, database connection factory, the
credential issuer and the blob timestamp clock) are built once by
build_services() when the application starts and kept on app.state.
Dependencies read them from there and assemble the per-request
coordinators, so routes never instantiate their own collaborators and
tests can run the app against mock backends.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Generator, Optional

from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings
from ..core.resources import (
    CredentialIssuer,
    DownloadCoordinator,
    MillisecondClock,
    ResourceDeletionCoordinator,
    ScheduleService,
    UploadCoordinator,
)
from ..infrastructure.snowflake.client import (
    SnowflakeConnectionFactory,
    create_connection_factory,
)
from ..infrastructure.snowflake.repositories.schedules import (
    ScheduleRepository,
    SnowflakeConfig,
)
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Application Services
# ---------------------------------------------------------------------------

@dataclass
class AppServices:
    """Everything that lives as long as the application does."""
    settings: Settings
    storage: Optional[StorageClient]
    connections: Optional[SnowflakeConnectionFactory]
    issuer: CredentialIssuer
    blob_clock: MillisecondClock


def build_services(settings: Settings) -> AppServices:
    """
    Create the long-lived clients from settings.

    A backend without credentials (and not in mock mode) is left as None.
    The endpoints that need it then answer 503 instead of the whole
    application refusing to start.
    """
    storage: Optional[StorageClient] = None
    if settings.r2_mock_mode:
        storage = create_storage_client(mock_mode=True, bucket_name=settings.r2_bucket_name)
    elif settings.storage_configured:
        storage = create_storage_client(config=StorageConfig(
            access_key_id=settings.r2_access_key_id,
            secret_access_key=settings.r2_secret_access_key,
            bucket_name=settings.r2_bucket_name,
            endpoint_url=settings.r2_endpoint,
        ))
    else:
        logger.warning("R2 storage not configured; uploads and downloads are disabled")

    connections: Optional[SnowflakeConnectionFactory] = None
    if settings.snowflake_mock_mode:
        connections = create_connection_factory(mock_mode=True)
    elif settings.database_configured:
        connections = create_connection_factory(config=SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            private_key_base64=settings.snowflake_private_key_base64,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        ))
    else:
        logger.warning("Snowflake not configured; schedule endpoints are disabled")

    return AppServices(
        settings=settings,
        storage=storage,
        connections=connections,
        issuer=CredentialIssuer(storage),
        blob_clock=MillisecondClock(),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_app_settings(
    services: Annotated[AppServices, Depends(get_services)],
) -> Settings:
    return services.settings


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_app_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    The identity provider's gateway attaches this key to every request it
    forwards. Raises 401 if the key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key


async def get_current_user(
    api_key: Annotated[str, Depends(verify_api_key)],
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Return the authenticated user's id.

    Sessions are handled by the identity provider, which forwards the user
    id it verified in X-User-Id. No id means no session: 401.
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning("Request missing user identity")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    return x_user_id.strip()


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_schedule_repository(
    services: Annotated[AppServices, Depends(get_services)],
) -> Generator[ScheduleRepository, None, None]:
    """
    Provide ScheduleRepository with a database connection.

    This is a generator so the connection is closed after the request.
    Without database credentials every dependent endpoint answers 503.
    """
    if services.connections is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Schedule storage is not available",
        )

    with services.connections.connection() as conn:
        yield ScheduleRepository(conn)


def get_upload_coordinator(
    services: Annotated[AppServices, Depends(get_services)],
    repository: Annotated[ScheduleRepository, Depends(get_schedule_repository)],
) -> UploadCoordinator:
    return UploadCoordinator(
        store=repository,
        issuer=services.issuer,
        clock=services.blob_clock,
        upload_ttl_minutes=services.settings.upload_credential_ttl_minutes,
        max_attempts=services.settings.finalize_max_attempts,
    )


def get_download_coordinator(
    services: Annotated[AppServices, Depends(get_services)],
    repository: Annotated[ScheduleRepository, Depends(get_schedule_repository)],
) -> DownloadCoordinator:
    return DownloadCoordinator(
        store=repository,
        issuer=services.issuer,
        read_ttl_minutes=services.settings.read_credential_ttl_minutes,
    )


def get_deletion_coordinator(
    services: Annotated[AppServices, Depends(get_services)],
    repository: Annotated[ScheduleRepository, Depends(get_schedule_repository)],
) -> ResourceDeletionCoordinator:
    return ResourceDeletionCoordinator(
        store=repository,
        issuer=services.issuer,
        max_attempts=services.settings.finalize_max_attempts,
    )


def get_schedule_service(
    services: Annotated[AppServices, Depends(get_services)],
    repository: Annotated[ScheduleRepository, Depends(get_schedule_repository)],
) -> ScheduleService:
    return ScheduleService(
        store=repository,
        issuer=services.issuer,
        max_attempts=services.settings.finalize_max_attempts,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
CurrentUser = Annotated[str, Depends(get_current_user)]
ServicesDep = Annotated[AppServices, Depends(get_services)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
UploadCoordinatorDep = Annotated[UploadCoordinator, Depends(get_upload_coordinator)]
DownloadCoordinatorDep = Annotated[DownloadCoordinator, Depends(get_download_coordinator)]
DeletionCoordinatorDep = Annotated[ResourceDeletionCoordinator, Depends(get_deletion_coordinator)]
ScheduleServiceDep = Annotated[ScheduleService, Depends(get_schedule_service)]
