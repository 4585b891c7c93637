"""
Core Data Models for Cashbox

These models define the schemas for all data flowing through the system:
users, the fixed category reference list, and ledger transactions.

Field names on the wire (local JSON snapshots, remote columns) follow the
established storage schema, so the creator reference is serialized as
``userId`` / ``userName`` while Python code uses ``user_id`` / ``user_name``.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def new_id() -> str:
    """Fresh unique identifier for users and transactions."""
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class UserRole(str, Enum):
    """Roles known to the dashboard. Only ADMIN may review entries."""
    ADMIN = "ADMIN"
    STAFF = "STAFF"


class TransactionType(str, Enum):
    """Direction of a cash movement."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionStatus(str, Enum):
    """
    Approval status of a transaction.

    PENDING is the only non-terminal state. Only APPROVED entries
    count toward the balance.
    """
    APPROVED = "APPROVED"
    PENDING = "PENDING"
    REJECTED = "REJECTED"


# =============================================================================
# REFERENCE AND ENTITY MODELS
# =============================================================================

class Category(BaseModel):
    """Fixed reference data: which labels are selectable for a type."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(..., min_length=1)
    type: TransactionType


class User(BaseModel):
    """
    A dashboard account.

    The password is stored and compared as plain text. It is excluded
    from repr so it never reaches the logs.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, repr=False)
    role: UserRole = UserRole.STAFF
    email: str = Field(default="", max_length=254)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Transaction(BaseModel):
    """
    A single ledger entry.

    ``user_id`` / ``user_name`` are a snapshot of the creator taken at
    creation time. They are never updated, even if the user is renamed
    or deleted later.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    amount: Decimal = Field(..., gt=0)
    type: TransactionType
    category: str = Field(..., min_length=1)
    description: str = ""
    date: datetime = Field(default_factory=utc_now)
    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    status: TransactionStatus = TransactionStatus.PENDING

    @property
    def counts_toward_balance(self) -> bool:
        return self.status == TransactionStatus.APPROVED


# =============================================================================
# INPUT MODELS - what the presentation layer hands to the engine
# =============================================================================

class TransactionDraft(BaseModel):
    """
    Unvalidated form input for a new transaction.

    ``amount`` is kept as raw text: the ledger engine decides whether it
    is present and numeric.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[str] = None
    type: TransactionType = TransactionType.EXPENSE
    category: str = ""
    description: str = ""

    @field_validator('amount', mode='before')
    @classmethod
    def stringify_amount(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v


class UserDraft(BaseModel):
    """Form input for a new user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, repr=False)
    role: UserRole = UserRole.STAFF
    email: str = Field(default="", max_length=254)


class UserPatch(BaseModel):
    """Partial update of a user's mutable fields. ``id`` is not patchable."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=1, repr=False)
    role: Optional[UserRole] = None
    email: Optional[str] = Field(default=None, max_length=254)

    def apply_to(self, user: User) -> User:
        changes = self.model_dump(exclude_unset=True, exclude_none=True)
        return user.model_copy(update=changes)


# =============================================================================
# AGGREGATES
# =============================================================================

class Metrics(BaseModel):
    """Dashboard totals. Only APPROVED entries contribute to amounts."""

    balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    pending_count: int = Field(default=0, ge=0)


class CategoryTotal(BaseModel):
    """Approved amount booked against one category."""

    category_name: str
    amount: Decimal
    type: TransactionType
