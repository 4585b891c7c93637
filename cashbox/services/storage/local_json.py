"""
Local JSON Storage Implementation

A durable key-value store on the local filesystem: one JSON file per key,
each holding a whole serialized list.

TRADEOFFS:
- Every mutation rewrites the entire list (no partial update)
- Process-local; nothing is shared between machines
- Reads of a missing key seed the store with the initial dataset

The same class doubles as the local mirror when a remote store is the
primary backend: the repository pushes whole snapshots through
``write_users`` / ``write_transactions``, and keeps the queue of remote
writes that still need replaying under a third key.
"""

import os
from pathlib import Path
from typing import Callable, Optional, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from cashbox.models.ledger import Transaction, User
from cashbox.models.outbox import PendingWrite
from cashbox.models.reference import initial_transactions, initial_users
from cashbox.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

T = TypeVar("T")

_USERS = TypeAdapter(list[User])
_TRANSACTIONS = TypeAdapter(list[Transaction])
_OUTBOX = TypeAdapter(list[PendingWrite])

logger = structlog.get_logger(__name__)


class LocalJsonStorage(LedgerStorageInterface):
    """
    JSON-file implementation of ledger storage.

    Files are written to a temporary sibling and renamed into place, so a
    crash mid-write leaves the previous snapshot intact.
    """

    def __init__(
        self,
        data_dir: Path,
        users_key: str = "cashbox_users",
        transactions_key: str = "cashbox_txs",
        outbox_key: str = "cashbox_outbox",
        seed_users: Callable[[], list[User]] = initial_users,
        seed_transactions: Callable[[], list[Transaction]] = initial_transactions,
    ):
        self._dir = Path(data_dir)
        self._users_key = users_key
        self._transactions_key = transactions_key
        self._outbox_key = outbox_key
        self._seed_users = seed_users
        self._seed_transactions = seed_transactions

    def path_for(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _read(self, key: str, adapter: TypeAdapter) -> Optional[list]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return adapter.validate_json(path.read_bytes())
        except OSError as e:
            raise ConnectionError(f"Could not read {path}: {e}")
        except ValidationError as e:
            raise StorageError(f"Corrupt snapshot in {path}: {e.error_count()} errors")

    def _write(self, key: str, adapter: TypeAdapter, items: list) -> None:
        path = self.path_for(key)
        tmp = path.with_name(path.name + ".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(adapter.dump_json(items, by_alias=True, indent=2))
            os.replace(tmp, path)
        except OSError as e:
            raise ConnectionError(f"Could not write {path}: {e}")

    def _read_or_seed(
        self,
        key: str,
        adapter: TypeAdapter,
        seed: Callable[[], list[T]],
    ) -> list[T]:
        items = self._read(key, adapter)
        if items is None:
            items = seed()
            self._write(key, adapter, items)
            logger.info("local_store_seeded", key=key, count=len(items))
        return items

    # -------------------------------------------------------------------------
    # Snapshot access (mirror)
    # -------------------------------------------------------------------------

    def write_users(self, users: list[User]) -> None:
        self._write(self._users_key, _USERS, users)

    def write_transactions(self, transactions: list[Transaction]) -> None:
        self._write(self._transactions_key, _TRANSACTIONS, transactions)

    def read_outbox(self) -> list[PendingWrite]:
        return self._read(self._outbox_key, _OUTBOX) or []

    def write_outbox(self, writes: list[PendingWrite]) -> None:
        self._write(self._outbox_key, _OUTBOX, writes)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def list_users(self) -> list[User]:
        return self._read_or_seed(self._users_key, _USERS, self._seed_users)

    async def insert_user(self, user: User) -> None:
        users = await self.list_users()
        for existing in users:
            if existing.id == user.id:
                raise DuplicateError(f"User id already exists: {user.id}")
            if existing.username == user.username:
                raise DuplicateError(f"Username already exists: {user.username}")
        users.append(user)
        self.write_users(users)

    async def update_user(self, user: User) -> None:
        users = await self.list_users()
        index = next((i for i, u in enumerate(users) if u.id == user.id), None)
        if index is None:
            raise NotFoundError(f"User not found: {user.id}")
        if any(u.username == user.username and u.id != user.id for u in users):
            raise DuplicateError(f"Username already exists: {user.username}")
        users[index] = user
        self.write_users(users)

    async def delete_user(self, user_id: str) -> bool:
        users = await self.list_users()
        remaining = [u for u in users if u.id != user_id]
        if len(remaining) == len(users):
            return False
        self.write_users(remaining)
        return True

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        return self._read_or_seed(
            self._transactions_key, _TRANSACTIONS, self._seed_transactions
        )

    async def insert_transaction(self, transaction: Transaction) -> None:
        transactions = await self.list_transactions()
        if any(t.id == transaction.id for t in transactions):
            raise DuplicateError(f"Transaction id already exists: {transaction.id}")
        # Newest first, matching the remote read order
        transactions.insert(0, transaction)
        self.write_transactions(transactions)

    async def update_transaction(self, transaction: Transaction) -> None:
        transactions = await self.list_transactions()
        for index, existing in enumerate(transactions):
            if existing.id == transaction.id:
                transactions[index] = transaction
                self.write_transactions(transactions)
                return
        raise NotFoundError(f"Transaction not found: {transaction.id}")

    async def delete_transaction(self, transaction_id: str) -> bool:
        transactions = await self.list_transactions()
        remaining = [t for t in transactions if t.id != transaction_id]
        if len(remaining) == len(transactions):
            return False
        self.write_transactions(remaining)
        return True
