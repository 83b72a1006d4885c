"""Points router.

Reading the board is open to any signed-in user (shaped by role); every
write requires the admin role.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from kidpoints.config import Settings
from kidpoints.core.dependencies import get_current_identity, get_points_store, get_settings, require_admin
from kidpoints.core.exceptions import StorageError
from kidpoints.schemas.auth import Identity
from kidpoints.schemas.points import PointsRecord, PointsUpdate
from kidpoints.services.points_service import PointsStore, first_out_of_range, toggle_point, view_for
from kidpoints.types import Child

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/points", tags=["Points"])


@router.get("", response_model=PointsRecord)
async def get_points(
    points: Annotated[PointsStore, Depends(get_points_store)],
    identity: Annotated[Identity, Depends(get_current_identity)],
):
    """Return the board; a child-scoped viewer only sees their own points."""
    record = await points.read()
    return view_for(identity, record)


@router.post("", response_model=PointsRecord)
async def update_points(
    body: PointsUpdate,
    points: Annotated[PointsStore, Depends(get_points_store)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    identity: Annotated[Identity, Depends(require_admin)],
):
    """Replace the whole board. Requires admin role."""
    problem = first_out_of_range(body, app_settings.POINTS_PER_CHILD)
    if problem is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)
    try:
        return await points.replace(body)
    except StorageError:
        logger.exception("Error updating points")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update points",
        )


@router.post("/reset", response_model=PointsRecord)
async def reset_points(
    points: Annotated[PointsStore, Depends(get_points_store)],
    identity: Annotated[Identity, Depends(require_admin)],
):
    """Clear both children's points, keeping goals and savings."""
    try:
        record = await points.reset()
    except StorageError:
        logger.exception("Error resetting points")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset points",
        )
    logger.info("Points reset by %s", identity.username)
    return record


@router.post("/{child}/reset", response_model=PointsRecord)
async def reset_child_points(
    child: Child,
    points: Annotated[PointsStore, Depends(get_points_store)],
    identity: Annotated[Identity, Depends(require_admin)],
):
    """Clear one child's points; the sibling, goals and savings are untouched."""
    try:
        record = await points.reset(child)
    except StorageError:
        logger.exception("Error resetting points for %s", child.value)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset points",
        )
    logger.info("Points for %s reset by %s", child.value, identity.username)
    return record


@router.post("/{child}/toggle/{index}", response_model=PointsRecord)
async def toggle(
    child: Child,
    index: Annotated[int, Path(ge=1)],
    points: Annotated[PointsStore, Depends(get_points_store)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    identity: Annotated[Identity, Depends(require_admin)],
):
    """Award the point at ``index`` to ``child``, or withdraw it if already awarded."""
    if index > app_settings.POINTS_PER_CHILD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"point {index} is outside 1..{app_settings.POINTS_PER_CHILD}",
        )
    try:
        record = await points.read()
        return await points.replace(toggle_point(record, child, index))
    except StorageError:
        logger.exception("Error toggling point")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update points",
        )
