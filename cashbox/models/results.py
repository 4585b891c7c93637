"""
Operation results.

Every fallible boundary call (login, ledger writes, storage, the AI
service) returns an ``OperationResult`` carrying either a value or a
typed failure. Callers branch on ``result.ok`` instead of catching
exceptions.
"""

from enum import Enum
from typing import Generic, Iterable, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class FailureReason(str, Enum):
    """Why an operation did not go through."""
    AUTH_FAILURE = "auth_failure"
    PERMISSION_DENIED = "permission_denied"
    VALIDATION_FAILURE = "validation_failure"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    SERVICE_FAILURE = "service_failure"


class Failure(BaseModel):
    """A typed failure with a user-facing message."""

    reason: FailureReason
    message: str


class OperationResult(BaseModel, Generic[T]):
    """
    Either a value or a failure, plus non-blocking warnings.

    Warnings are used when an operation succeeded locally but something
    downstream did not (e.g. the remote store was unreachable).
    """

    value: Optional[T] = None
    failure: Optional[Failure] = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def reason(self) -> Optional[FailureReason]:
        return self.failure.reason if self.failure else None

    @property
    def message(self) -> Optional[str]:
        return self.failure.message if self.failure else None

    @classmethod
    def success(
        cls,
        value: Optional[T] = None,
        warnings: Optional[Iterable[str]] = None,
    ) -> "OperationResult[T]":
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def fail(
        cls,
        reason: FailureReason,
        message: str,
        warnings: Optional[Iterable[str]] = None,
    ) -> "OperationResult[T]":
        return cls(
            failure=Failure(reason=reason, message=message),
            warnings=list(warnings or []),
        )
