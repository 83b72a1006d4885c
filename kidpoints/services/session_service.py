"""Session Service.

Server-side sessions keyed by an opaque token that the client holds in an
HTTP-only cookie. The record never leaves the server.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ValidationError

from kidpoints.core.store import KeyValueStore
from kidpoints.schemas.auth import Identity

logger = logging.getLogger(__name__)

_KEY_PREFIX = "session:"


class SessionRecord(BaseModel):
    identity: Identity
    authenticated: bool = True
    created_at: datetime
    expires_at: datetime | None = None


class SessionManager:
    def __init__(self, store: KeyValueStore, max_age_seconds: int | None = None) -> None:
        self._store = store
        self.max_age_seconds = max_age_seconds

    @property
    def store(self) -> KeyValueStore:
        return self._store

    async def create(self, identity: Identity) -> str:
        """Persist a session for ``identity`` and return its token."""
        token = secrets.token_urlsafe(32)
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self.max_age_seconds) if self.max_age_seconds else None
        record = SessionRecord(identity=identity, created_at=now, expires_at=expires_at)
        await self._store.write(_KEY_PREFIX + token, record.model_dump(mode="json"), ttl=self.max_age_seconds)
        logger.info("Session created for %s (%s)", identity.username, identity.role)
        return token

    async def resolve(self, token: str | None) -> Identity | None:
        """Return the identity behind ``token``, or None if absent or expired."""
        if not token:
            return None
        raw = await self._store.read(_KEY_PREFIX + token)
        if raw is None:
            return None
        try:
            record = SessionRecord.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding malformed session record")
            await self._store.delete(_KEY_PREFIX + token)
            return None
        if record.expires_at is not None and record.expires_at <= datetime.now(timezone.utc):
            await self._store.delete(_KEY_PREFIX + token)
            return None
        if not record.authenticated:
            return None
        return record.identity

    async def destroy(self, token: str) -> None:
        """Remove the session; StorageError propagates to the caller."""
        await self._store.delete(_KEY_PREFIX + token)
        logger.info("Session destroyed")
