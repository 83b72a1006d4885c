import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from kidpoints.config import Settings
from kidpoints.core.exceptions import StorageError
from kidpoints.schemas.auth import Identity
from kidpoints.services.credential_service import CredentialStore
from kidpoints.services.points_service import PointsStore
from kidpoints.services.session_service import SessionManager

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_points_store(request: Request) -> PointsStore:
    return request.app.state.points


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_session_token(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> str | None:
    """Return the opaque session token from the cookie, if any."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_identity(
    token: Annotated[str | None, Depends(get_session_token)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Identity | None:
    """Resolve the session cookie to an identity, or None for anonymous callers."""
    try:
        return await sessions.resolve(token)
    except StorageError:
        logger.exception("Session lookup failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read session",
        )


async def get_current_identity(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
) -> Identity:
    """Dependency that requires a valid session.

    Raises:
        HTTPException 401: If no session cookie resolves to an identity.
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return identity


async def require_admin(
    identity: Annotated[Identity, Depends(get_current_identity)],
) -> Identity:
    """Dependency that ensures the caller has the 'admin' role.

    Raises:
        HTTPException 403: If the caller is authenticated but not an admin.
    """
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return identity
