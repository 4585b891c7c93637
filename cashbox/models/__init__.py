"""
Data Models Package

This package contains all Pydantic models used in Cashbox.
All data flowing through the system must conform to these schemas.
"""

from cashbox.models.ledger import (
    Category,
    CategoryTotal,
    Metrics,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    User,
    UserDraft,
    UserPatch,
    UserRole,
    new_id,
    utc_now,
)
from cashbox.models.outbox import PendingWrite, WriteOperation
from cashbox.models.reference import (
    CATEGORIES,
    initial_transactions,
    initial_users,
)
from cashbox.models.results import (
    Failure,
    FailureReason,
    OperationResult,
)

__all__ = [
    # Ledger models
    "Category",
    "CategoryTotal",
    "Metrics",
    "Transaction",
    "TransactionDraft",
    "TransactionStatus",
    "TransactionType",
    "User",
    "UserDraft",
    "UserPatch",
    "UserRole",
    "new_id",
    "utc_now",
    # Outbox
    "PendingWrite",
    "WriteOperation",
    # Reference data
    "CATEGORIES",
    "initial_transactions",
    "initial_users",
    # Results
    "Failure",
    "FailureReason",
    "OperationResult",
]
