"""
Storage Services Package

Provides the abstract ledger storage interface and its two implementations:
a remote SQL store and a local JSON store. One of them is chosen at
startup; the local store also serves as the mirror.
"""

from cashbox.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    RejectedError,
    StorageError,
)
from cashbox.services.storage.local_json import LocalJsonStorage
from cashbox.services.storage.sql_store import SqlLedgerStorage, build_async_url

__all__ = [
    # Interface
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "RejectedError",
    "StorageError",
    # Implementations
    "LocalJsonStorage",
    "SqlLedgerStorage",
    "build_async_url",
]
