"""
Ledger Engine

The aggregation and authorization rules of the cashbox:

- Balance and totals count APPROVED entries only
- A new entry starts APPROVED when an ADMIN records it, PENDING otherwise
- Only an ADMIN may move PENDING -> APPROVED or PENDING -> REJECTED
- APPROVED and REJECTED are terminal

The module-level functions are pure. ``LedgerEngine`` adds persistence
through the repository; it never persists anything a pure check refused.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence

import structlog
from pydantic import ValidationError

from cashbox import messages
from cashbox.models.ledger import (
    Category,
    CategoryTotal,
    Metrics,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    User,
    new_id,
    utc_now,
)
from cashbox.models.reference import CATEGORIES
from cashbox.models.results import FailureReason, OperationResult
from cashbox.repository import LedgerRepository

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")
# Largest value the remote NUMERIC(14, 2) column holds
MAX_AMOUNT = Decimal("999999999999.99")

# The only edges of the status state machine
_REVIEW_TARGETS = (TransactionStatus.APPROVED, TransactionStatus.REJECTED)


def compute_metrics(transactions: Iterable[Transaction]) -> Metrics:
    """Balance, approved totals and the number of entries awaiting review."""
    income = Decimal("0")
    expense = Decimal("0")
    pending = 0

    for t in transactions:
        if t.status == TransactionStatus.PENDING:
            pending += 1
        elif t.counts_toward_balance:
            if t.type == TransactionType.INCOME:
                income += t.amount
            else:
                expense += t.amount

    return Metrics(
        balance=income - expense,
        total_income=income,
        total_expense=expense,
        pending_count=pending,
    )


def compute_category_breakdown(
    transactions: Iterable[Transaction],
    categories: Sequence[Category] = CATEGORIES,
) -> list[CategoryTotal]:
    """
    Approved amount per category, in reference-list order.

    Categories with nothing approved are left out.
    """
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.counts_toward_balance:
            totals[t.category] = totals.get(t.category, Decimal("0")) + t.amount

    breakdown = []
    for category in categories:
        amount = totals.get(category.name, Decimal("0"))
        if amount > 0:
            breakdown.append(CategoryTotal(
                category_name=category.name,
                amount=amount,
                type=category.type,
            ))
    return breakdown


def categories_for(
    transaction_type: TransactionType,
    categories: Sequence[Category] = CATEGORIES,
) -> list[Category]:
    """Categories selectable for a transaction type."""
    return [c for c in categories if c.type == transaction_type]


def initial_status(acting_user: User) -> TransactionStatus:
    return TransactionStatus.APPROVED if acting_user.is_admin else TransactionStatus.PENDING


def parse_amount(raw: Optional[str]) -> OperationResult[Decimal]:
    """Positive amount rounded to cents, or a validation failure."""
    if raw is None or not raw.strip():
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.AMOUNT_REQUIRED)
    try:
        amount = Decimal(raw.strip().replace(",", ""))
    except InvalidOperation:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.AMOUNT_NOT_NUMERIC)
    if not amount.is_finite():
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.AMOUNT_NOT_NUMERIC)

    if amount <= 0:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.AMOUNT_NOT_POSITIVE)
    if amount > MAX_AMOUNT:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.AMOUNT_TOO_LARGE)

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount <= 0:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.AMOUNT_NOT_POSITIVE)
    return OperationResult.success(amount)


def build_transaction(
    draft: TransactionDraft,
    acting_user: Optional[User],
    categories: Sequence[Category] = CATEGORIES,
    now: Optional[datetime] = None,
) -> OperationResult[Transaction]:
    """
    Turn form input into a new Transaction.

    Captures the creator's id and name as they are now. Does not persist.
    """
    if acting_user is None:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.LOGIN_REQUIRED)

    amount = parse_amount(draft.amount)
    if not amount.ok:
        return amount

    allowed = {c.name for c in categories_for(draft.type, categories)}
    if draft.category not in allowed:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.CATEGORY_MISMATCH)

    try:
        transaction = Transaction(
            id=new_id(),
            amount=amount.value,
            type=draft.type,
            category=draft.category,
            description=draft.description,
            date=now or utc_now(),
            user_id=acting_user.id,
            user_name=acting_user.name,
            status=initial_status(acting_user),
        )
    except ValidationError as e:
        logger.warning("transaction_invalid", errors=e.error_count())
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.INVALID_TRANSACTION)

    return OperationResult.success(transaction)


def transition_status(
    transaction: Transaction,
    new_status: TransactionStatus,
    acting_user: Optional[User],
) -> OperationResult[Transaction]:
    """
    Review a PENDING transaction.

    Refused for non-admins, for targets other than APPROVED / REJECTED,
    and for transactions that were already reviewed.
    """
    if acting_user is None or not acting_user.is_admin:
        return OperationResult.fail(FailureReason.PERMISSION_DENIED, messages.ADMIN_ONLY)
    if new_status not in _REVIEW_TARGETS:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.INVALID_STATUS_TARGET)
    if transaction.status != TransactionStatus.PENDING:
        return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.ALREADY_REVIEWED)

    return OperationResult.success(transaction.model_copy(update={"status": new_status}))


class LedgerEngine:
    """
    Ledger operations over the repository.

    Reads always reflect the repository's in-memory snapshot.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        categories: Sequence[Category] = CATEGORIES,
    ):
        self._repository = repository
        self._categories = tuple(categories)

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    def categories_for(self, transaction_type: TransactionType) -> list[Category]:
        return categories_for(transaction_type, self._categories)

    async def create_transaction(
        self,
        draft: TransactionDraft,
        acting_user: Optional[User],
    ) -> OperationResult[Transaction]:
        built = build_transaction(draft, acting_user, self._categories)
        if not built.ok:
            logger.info("transaction_refused", reason=built.reason.value)
            return built

        result = await self._repository.add_transaction(built.value)
        if result.ok:
            logger.info(
                "transaction_created",
                transaction_id=result.value.id,
                type=result.value.type.value,
                status=result.value.status.value,
                user_id=result.value.user_id,
            )
        return result

    async def set_status(
        self,
        transaction_id: str,
        new_status: TransactionStatus,
        acting_user: Optional[User],
    ) -> OperationResult[Transaction]:
        current = self._repository.find_transaction(transaction_id)
        if current is None:
            return OperationResult.fail(FailureReason.NOT_FOUND, messages.TRANSACTION_NOT_FOUND)

        updated = transition_status(current, new_status, acting_user)
        if not updated.ok:
            logger.info(
                "status_change_refused",
                transaction_id=transaction_id,
                reason=updated.reason.value,
            )
            return updated

        result = await self._repository.replace_transaction(updated.value)
        if result.ok:
            logger.info(
                "transaction_reviewed",
                transaction_id=transaction_id,
                status=new_status.value,
                reviewer_id=acting_user.id,
            )
        return result

    def metrics(self) -> Metrics:
        return compute_metrics(self._repository.transactions)

    def category_breakdown(self) -> list[CategoryTotal]:
        return compute_category_breakdown(self._repository.transactions, self._categories)

    def pending_transactions(self) -> list[Transaction]:
        return [
            t for t in self._repository.transactions
            if t.status == TransactionStatus.PENDING
        ]

    def recent_transactions(self, limit: int = 5) -> list[Transaction]:
        return self._repository.transactions[:limit]
