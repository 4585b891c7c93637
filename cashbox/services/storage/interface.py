"""
Abstract Storage Interface

The ledger is persisted through this interface so the backend can be
chosen once at startup and injected:

1. A remote relational store (SQLAlchemy)
2. A local durable key-value store (JSON snapshots on disk)

The interface is intentionally small - read-all, insert, update-by-id and
delete-by-id per entity. Filtering and aggregation happen in Python.
"""

from abc import ABC, abstractmethod

from cashbox.models.ledger import Transaction, User


class LedgerStorageInterface(ABC):
    """
    Abstract interface for user and transaction storage.

    Any storage implementation must implement these methods.
    Implementations raise StorageError subclasses; they never return
    partial results.
    """

    @abstractmethod
    async def list_users(self) -> list[User]:
        """
        Read every user.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def insert_user(self, user: User) -> None:
        """
        Insert a new user.

        Raises:
            DuplicateError: If the id or username already exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_user(self, user: User) -> None:
        """
        Replace the stored user with the same id.

        Raises:
            NotFoundError: If no user has this id
            DuplicateError: If the new username belongs to another user
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> bool:
        """
        Delete a user by id.

        Returns:
            True if a record was removed, False if none matched
        """
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        Read every transaction, newest first.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> None:
        """
        Insert a new transaction.

        Raises:
            DuplicateError: If the id already exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> None:
        """
        Replace the stored transaction with the same id.

        Raises:
            NotFoundError: If no transaction has this id
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by id.

        Returns:
            True if a record was removed, False if none matched
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class RejectedError(StorageError):
    """The backend refused the record's values, e.g. a numeric overflow. Retrying cannot help."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
