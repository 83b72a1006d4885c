"""Unit tests for credential loading and matching."""

import pytest

from kidpoints.core.exceptions import CredentialsError
from kidpoints.core.store import MemoryStore
from kidpoints.services.credential_service import CredentialStore
from kidpoints.types import Child, Role

USERS = [
    {"username": "parent", "password": "secret", "role": "admin", "childView": "emma"},
    {"username": "emma", "password": "emma-pass", "role": "viewer", "childView": "emma"},
    {"username": "grandma", "password": "gran", "role": "viewer"},
]


class TestCredentialStore:
    async def test_match(self):
        store = CredentialStore(MemoryStore({"credentials": {"users": USERS}}))
        record = await store.match("emma", "emma-pass")
        assert record.role is Role.VIEWER
        assert record.child_view is Child.EMMA

    async def test_admin_scope_is_cleared(self):
        store = CredentialStore(MemoryStore({"credentials": {"users": USERS}}))
        record = await store.match("parent", "secret")
        assert record.role is Role.ADMIN
        assert record.child_view is None

    async def test_viewer_without_scope(self):
        store = CredentialStore(MemoryStore({"credentials": {"users": USERS}}))
        record = await store.match("grandma", "gran")
        assert record.child_view is None

    async def test_wrong_password(self):
        store = CredentialStore(MemoryStore({"credentials": {"users": USERS}}))
        assert await store.match("parent", "Secret") is None
        assert await store.match("nobody", "secret") is None

    async def test_bare_list_blob(self):
        store = CredentialStore(MemoryStore({"credentials": USERS}))
        assert await store.match("grandma", "gran") is not None

    async def test_missing_blob_rejects_everyone(self):
        store = CredentialStore(MemoryStore())
        await store.load()
        assert store.loaded
        assert await store.match("parent", "secret") is None

    @pytest.mark.parametrize(
        "blob",
        [
            {"users": [{"username": "x", "password": "y", "role": "owner"}]},
            {"users": [{"username": "x", "password": "y", "role": "viewer", "childView": "oscar"}]},
            {"users": "parent"},
            {"users": [USERS[1], USERS[1]]},
        ],
    )
    async def test_invalid_blob(self, blob):
        store = CredentialStore(MemoryStore({"credentials": blob}))
        with pytest.raises(CredentialsError):
            await store.load()
        assert not store.loaded

    async def test_custom_key(self):
        store = CredentialStore(MemoryStore({"users_v2": {"users": USERS}}), key="users_v2")
        assert await store.match("emma", "emma-pass") is not None
