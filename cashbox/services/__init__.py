"""Services package."""

from cashbox.services.storage import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    LocalJsonStorage,
    NotFoundError,
    RejectedError,
    SqlLedgerStorage,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "DuplicateError",
    "LedgerStorageInterface",
    "LocalJsonStorage",
    "NotFoundError",
    "RejectedError",
    "SqlLedgerStorage",
    "StorageError",
]
