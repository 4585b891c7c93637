"""Shared fixtures: local stores under tmp_path and a remote that can go offline."""

import pytest
import pytest_asyncio

from cashbox.ledger import LedgerEngine
from cashbox.models.reference import initial_users
from cashbox.repository import LedgerRepository
from cashbox.services.storage import ConnectionError, LocalJsonStorage


class FlakyRemote(LocalJsonStorage):
    """
    A JSON store standing in for the remote backend.

    While ``online`` is False every call raises ConnectionError, the way
    an unreachable database does.
    """

    def __init__(self, data_dir, **kwargs):
        super().__init__(data_dir, **kwargs)
        self.online = True
        self.calls = 0

    def _check(self):
        self.calls += 1
        if not self.online:
            raise ConnectionError("remote offline")

    async def list_users(self):
        self._check()
        return await super().list_users()

    async def insert_user(self, user):
        self._check()
        await super().insert_user(user)

    async def update_user(self, user):
        self._check()
        await super().update_user(user)

    async def delete_user(self, user_id):
        self._check()
        return await super().delete_user(user_id)

    async def list_transactions(self):
        self._check()
        return await super().list_transactions()

    async def insert_transaction(self, transaction):
        self._check()
        await super().insert_transaction(transaction)

    async def update_transaction(self, transaction):
        self._check()
        await super().update_transaction(transaction)

    async def delete_transaction(self, transaction_id):
        self._check()
        return await super().delete_transaction(transaction_id)


@pytest.fixture
def local_store(tmp_path):
    return LocalJsonStorage(tmp_path / "local")


@pytest.fixture
def remote_store(tmp_path):
    return FlakyRemote(tmp_path / "remote")


@pytest.fixture
def local_repository(local_store):
    """Repository in local mode: the JSON store is primary and mirror."""
    return LedgerRepository(local_store, local_store)


@pytest.fixture
def remote_repository(remote_store, local_store):
    return LedgerRepository(
        remote_store,
        local_store,
        timeout_seconds=1.0,
        retry_attempts=2,
        retry_wait_seconds=0,
    )


@pytest.fixture
def users():
    """admin (ADMIN), sara and mohamed (STAFF)."""
    return {u.username: u for u in initial_users()}


@pytest_asyncio.fixture
async def loaded_repository(local_repository):
    await local_repository.load()
    return local_repository


@pytest.fixture
def engine(loaded_repository):
    return LedgerEngine(loaded_repository)
