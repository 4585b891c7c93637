"""Queued remote writes awaiting replay."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from cashbox.models.ledger import Transaction, User, new_id, utc_now


class WriteOperation(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class PendingWrite(BaseModel):
    """
    A write the remote store did not accept.

    Exactly one of ``user`` / ``transaction`` identifies the entity kind.
    For deletes the record is the last known state, kept for display.
    """

    id: str = Field(default_factory=new_id)
    operation: WriteOperation
    record_id: str
    user: Optional[User] = None
    transaction: Optional[Transaction] = None
    queued_at: datetime = Field(default_factory=utc_now)
    error: Optional[str] = None

    @model_validator(mode='after')
    def exactly_one_record(self) -> 'PendingWrite':
        if (self.user is None) == (self.transaction is None):
            raise ValueError("PendingWrite needs exactly one of user or transaction")
        return self

    @property
    def entity(self) -> str:
        return "user" if self.user is not None else "transaction"
