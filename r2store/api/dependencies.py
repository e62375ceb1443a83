"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be swapped for fakes in tests
- Configuration is centralized

Settings and the storage client are explicit inputs to create_app()
and live on app.state; the functions here only read them back.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from ..config.settings import Settings
from ..core.access import AccessGuard
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_access_guard(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AccessGuard:
    """
    Provide the access guard for the configured token.

    The guard is stateless, so building one per request is free.
    """
    return AccessGuard(settings.access_token)


def require_access(guard: AccessGuard, token: Optional[str]) -> None:
    """
    Reject the request with 401 unless the guard admits the token.

    Routes call this themselves because the token's source differs:
    query parameter for reads, form field for POSTs.
    """
    if not guard.admits(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

async def get_storage_client(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> StorageClient:
    """
    Provide the storage client for the bucket.

    Uses the client passed to create_app() when there is one. Otherwise
    the first request builds one from settings (R2 or in-memory mock) and
    keeps it on the app, so mock uploads persist across requests.

    This is a coroutine so it runs on the event loop rather than in the
    threadpool: with no await between the check and the assignment,
    concurrent first requests all see the same client.
    """
    client = request.app.state.storage
    if client is not None:
        return client

    if settings.r2_mock_mode:
        client = create_storage_client(mock_mode=True)
        logger.info("Created shared mock storage client")
    else:
        config = StorageConfig(
            access_key_id=settings.r2_access_key_id,
            secret_access_key=settings.r2_secret_access_key,
            bucket_name=settings.r2_bucket_name,
            endpoint_url=settings.r2_endpoint,
        )
        client = create_storage_client(config=config)
        logger.debug("Created R2 storage client")

    request.app.state.storage = client
    return client


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
AccessGuardDep = Annotated[AccessGuard, Depends(get_access_guard)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
