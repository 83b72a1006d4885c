"""Credential Service.

Loads the static user list and checks login attempts against it. The
running process never writes credentials.
"""

import hmac
import logging

from pydantic import TypeAdapter, ValidationError

from kidpoints.core.exceptions import CredentialsError, StorageError
from kidpoints.core.store import KeyValueStore
from kidpoints.schemas.auth import CredentialRecord

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[CredentialRecord])


class CredentialStore:
    def __init__(self, store: KeyValueStore, key: str = "credentials") -> None:
        self._store = store
        self._key = key
        self._users: dict[str, CredentialRecord] | None = None

    @property
    def loaded(self) -> bool:
        return self._users is not None

    async def load(self) -> None:
        """Read and validate the credential blob.

        A missing blob yields an empty user list. An unreadable or invalid
        blob raises CredentialsError and leaves the store unloaded so the
        next call retries.
        """
        try:
            raw = await self._store.read(self._key)
        except StorageError as exc:
            raise CredentialsError("Credential blob unreadable") from exc

        if raw is None:
            logger.warning("No credential blob at %r, every login will be rejected", self._key)
            self._users = {}
            return

        entries = raw.get("users") if isinstance(raw, dict) else raw
        try:
            records = _records_adapter.validate_python(entries)
        except ValidationError as exc:
            raise CredentialsError("Credential blob out of contract") from exc

        users: dict[str, CredentialRecord] = {}
        for record in records:
            if record.username in users:
                raise CredentialsError(f"Duplicate username {record.username!r}")
            users[record.username] = record
        self._users = users
        logger.info("Loaded %d credential records", len(users))

    async def match(self, username: str, password: str) -> CredentialRecord | None:
        """Return the record whose username and password both match, else None."""
        if self._users is None:
            await self.load()
        record = self._users.get(username)
        if record is None:
            return None
        if not hmac.compare_digest(record.password.encode(), password.encode()):
            return None
        return record
