"""
Tests for Cashbox

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (local stores under tmp_path)
3. No real API calls in tests (use mocks)
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from cashbox.models import (
    Category,
    FailureReason,
    OperationResult,
    PendingWrite,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    User,
    UserPatch,
    UserRole,
    WriteOperation,
)
from cashbox.models.reference import CATEGORIES, initial_transactions, initial_users


def make_transaction(**overrides) -> Transaction:
    fields = dict(
        amount=Decimal("100"),
        type=TransactionType.EXPENSE,
        category="صيانة",
        userId="2",
        userName="سارة المحاسبة",
    )
    fields.update(overrides)
    return Transaction(**fields)


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_defaults(self):
        """New transactions start PENDING with a fresh id and a UTC date."""
        t = make_transaction()
        assert t.status == TransactionStatus.PENDING
        assert t.id
        assert t.date.tzinfo is not None
        assert not t.counts_toward_balance

    def test_ids_are_unique(self):
        assert make_transaction().id != make_transaction().id

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_transaction(amount=Decimal("0"))
        with pytest.raises(ValidationError):
            make_transaction(amount=Decimal("-5"))

    def test_populate_by_field_name(self):
        """Python code may use user_id / user_name directly."""
        t = Transaction(
            amount=Decimal("10"),
            type=TransactionType.INCOME,
            category="مبيعات",
            user_id="1",
            user_name="أحمد المدير",
        )
        assert t.user_id == "1"

    def test_dump_by_alias_uses_storage_field_names(self):
        t = make_transaction(date=datetime(2024, 3, 10, tzinfo=timezone.utc))
        data = t.model_dump(mode="json", by_alias=True)
        assert data["userId"] == "2"
        assert data["userName"] == "سارة المحاسبة"
        assert "user_id" not in data
        assert data["type"] == "EXPENSE"
        json.dumps(data)

    def test_only_approved_counts(self):
        assert make_transaction(status=TransactionStatus.APPROVED).counts_toward_balance
        assert not make_transaction(status=TransactionStatus.REJECTED).counts_toward_balance


class TestDrafts:
    """Tests for form input models."""

    def test_transaction_draft_keeps_amount_as_text(self):
        assert TransactionDraft(amount=12.5).amount == "12.5"
        assert TransactionDraft(amount=" 40 ").amount == "40"
        assert TransactionDraft().amount is None

    def test_user_patch_forbids_id(self):
        with pytest.raises(ValidationError):
            UserPatch(id="99")

    def test_user_patch_applies_only_set_fields(self):
        user = initial_users()[1]
        patched = UserPatch(name="سارة", password=None).apply_to(user)
        assert patched.name == "سارة"
        assert patched.password == user.password
        assert patched.id == user.id
        assert user.name == "سارة المحاسبة"


class TestUserModel:
    """Tests for the User model."""

    def test_password_not_in_repr(self):
        user = User(name="Test", username="test", password="s3cret")
        assert "s3cret" not in repr(user)

    def test_is_admin(self):
        admin, sara, _ = initial_users()
        assert admin.is_admin
        assert not sara.is_admin
        assert sara.role == UserRole.STAFF


class TestOperationResult:
    """Tests for the OperationResult envelope."""

    def test_success(self):
        result = OperationResult.success(5, warnings=["careful"])
        assert result.ok
        assert result.value == 5
        assert result.reason is None
        assert result.warnings == ["careful"]

    def test_fail(self):
        result = OperationResult.fail(FailureReason.NOT_FOUND, "missing")
        assert not result.ok
        assert result.value is None
        assert result.reason == FailureReason.NOT_FOUND
        assert result.message == "missing"


class TestPendingWrite:
    """Tests for outbox entries."""

    def test_requires_exactly_one_record(self):
        user = initial_users()[0]
        with pytest.raises(ValidationError):
            PendingWrite(operation=WriteOperation.INSERT, record_id="1")
        with pytest.raises(ValidationError):
            PendingWrite(
                operation=WriteOperation.INSERT,
                record_id="1",
                user=user,
                transaction=make_transaction(),
            )

    def test_entity(self):
        write = PendingWrite(
            operation=WriteOperation.DELETE,
            record_id="t1",
            transaction=make_transaction(id="t1"),
        )
        assert write.entity == "transaction"


class TestReferenceData:
    """Tests for categories and seed data."""

    def test_categories(self):
        income = [c.name for c in CATEGORIES if c.type == TransactionType.INCOME]
        expense = [c.name for c in CATEGORIES if c.type == TransactionType.EXPENSE]
        assert income == ["مبيعات", "استثمار"]
        assert expense == ["رواتب", "إيجار", "مستلزمات مكتبية", "صيانة"]

    def test_categories_are_frozen(self):
        with pytest.raises(ValidationError):
            CATEGORIES[0].name = "other"
        assert isinstance(CATEGORIES[0], Category)

    def test_seed_users(self):
        users = initial_users()
        assert [u.username for u in users] == ["admin", "sara", "mohamed"]
        assert sum(u.is_admin for u in users) == 1

    def test_seed_transactions_newest_first(self):
        transactions = initial_transactions()
        assert [t.id for t in transactions] == ["t3", "t2", "t1"]
        dates = [t.date for t in transactions]
        assert dates == sorted(dates, reverse=True)

    def test_seeds_are_fresh_copies(self):
        first = initial_users()
        first.pop()
        assert len(initial_users()) == 3
