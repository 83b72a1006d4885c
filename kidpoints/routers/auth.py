"""Authentication router.

Endpoints for login, logout and the current session.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from kidpoints.config import Settings, settings as default_settings
from kidpoints.core.dependencies import (
    get_credential_store,
    get_optional_identity,
    get_session_manager,
    get_session_token,
    get_settings,
)
from kidpoints.core.exceptions import StorageError
from kidpoints.core.rate_limit import limiter
from kidpoints.schemas.auth import Identity, LoginRequest, MessageResponse, SessionResponse
from kidpoints.services.credential_service import CredentialStore
from kidpoints.services.session_service import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/login", response_model=SessionResponse)
@limiter.limit(default_settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    credentials: Annotated[CredentialStore, Depends(get_credential_store)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    previous_token: Annotated[str | None, Depends(get_session_token)],
):
    """Check a username/password pair and open a session."""
    try:
        record = await credentials.match(body.username, body.password)
    except StorageError:
        logger.exception("Error loading credentials")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log in",
        )

    if record is None:
        logger.info("Rejected login for %r", body.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    identity = Identity(username=record.username, role=record.role, child_view=record.child_view)
    try:
        if previous_token:
            await sessions.destroy(previous_token)
        token = await sessions.create(identity)
    except StorageError:
        logger.exception("Error creating session")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log in",
        )

    response.set_cookie(
        key=app_settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=app_settings.SESSION_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=app_settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return SessionResponse.for_identity(identity)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    token: Annotated[str | None, Depends(get_session_token)],
):
    """Destroy the caller's session, if any."""
    if token:
        try:
            await sessions.destroy(token)
        except StorageError:
            logger.exception("Error destroying session")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to log out",
            )

    response.delete_cookie(
        key=app_settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=app_settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return MessageResponse(message="Logged out successfully")


@router.get("/session", response_model=SessionResponse, response_model_exclude_unset=True)
async def get_session(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
):
    """Return the current identity or ``{"authenticated": false}``."""
    return SessionResponse.for_identity(identity)
