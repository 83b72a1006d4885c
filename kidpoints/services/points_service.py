"""Points Service.

Reads and writes the points board blob and shapes it for the caller's role.
"""

import logging

from pydantic import ValidationError

from kidpoints.core.exceptions import StorageError
from kidpoints.core.store import KeyValueStore
from kidpoints.schemas.auth import Identity
from kidpoints.schemas.points import PointsRecord
from kidpoints.types import Child, Role

logger = logging.getLogger(__name__)


class PointsStore:
    """Durable points record with full-replace semantics (last writer wins)."""

    def __init__(self, store: KeyValueStore, key: str = "points") -> None:
        self._store = store
        self._key = key

    async def read(self) -> PointsRecord:
        """Return the stored record, repairing a missing or corrupt blob."""
        try:
            raw = await self._store.read(self._key)
        except StorageError:
            logger.warning("Points blob unreadable, substituting an empty record", exc_info=True)
            return await self._repair()

        if raw is None:
            logger.info("No points record yet, creating an empty one")
            return await self._repair()

        try:
            return PointsRecord.model_validate(raw)
        except ValidationError:
            logger.warning("Points blob out of contract, substituting an empty record", exc_info=True)
            return await self._repair()

    async def replace(self, record: PointsRecord) -> PointsRecord:
        """Overwrite the whole record and return what was stored."""
        await self._store.write(self._key, record.model_dump(mode="json"))
        return record

    async def reset(self, child: Child | None = None) -> PointsRecord:
        """Clear one child's points, or both when ``child`` is None.

        Goals and savings are kept.
        """
        current = await self.read()
        children = [child] if child is not None else list(Child)
        cleared = current.model_copy(update={c.value: [] for c in children})
        return await self.replace(cleared)

    async def ensure_exists(self) -> None:
        await self.read()

    async def _repair(self) -> PointsRecord:
        record = PointsRecord.empty()
        try:
            await self._store.write(self._key, record.model_dump(mode="json"))
        except StorageError:
            logger.exception("Could not persist the default points record")
        return record


def toggle_point(record: PointsRecord, child: Child, index: int) -> PointsRecord:
    """Return a copy of ``record`` with ``index`` awarded or withdrawn for ``child``."""
    points = list(getattr(record, child.value))
    if index in points:
        points.remove(index)
    else:
        points.append(index)
    return record.model_copy(update={child.value: points})


def first_out_of_range(record: PointsRecord, limit: int) -> str | None:
    """Describe the first point index above ``limit``, or None if all fit."""
    for child in Child:
        for index in getattr(record, child.value):
            if index > limit:
                return f"{child.value}: point {index} is outside 1..{limit}"
    return None


def view_for(identity: Identity, record: PointsRecord) -> PointsRecord:
    """Shape the board for the caller.

    Admins and unscoped viewers see everything. A child-scoped viewer sees
    their own points; the sibling's sequence is always empty. Goals and
    savings are returned unfiltered.
    """
    if identity.role is Role.ADMIN:
        return record
    if identity.role is Role.VIEWER:
        if identity.child_view is None:
            return record
        return record.model_copy(update={identity.child_view.sibling.value: []})
    raise ValueError(f"Unhandled role: {identity.role!r}")
