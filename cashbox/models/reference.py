"""
Reference and seed data.

CATEGORIES is fixed at runtime. The seed users and transactions are what
an empty local store is initialized with.
"""

from cashbox.models.ledger import (
    Category,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    UserRole,
)


CATEGORIES: tuple[Category, ...] = (
    Category(id="c1", name="مبيعات", type=TransactionType.INCOME),
    Category(id="c2", name="استثمار", type=TransactionType.INCOME),
    Category(id="c3", name="رواتب", type=TransactionType.EXPENSE),
    Category(id="c4", name="إيجار", type=TransactionType.EXPENSE),
    Category(id="c5", name="مستلزمات مكتبية", type=TransactionType.EXPENSE),
    Category(id="c6", name="صيانة", type=TransactionType.EXPENSE),
)


def initial_users() -> list[User]:
    """Seed accounts. Returned fresh on every call so callers may mutate."""
    return [
        User(id="1", name="أحمد المدير", username="admin", password="123",
             role=UserRole.ADMIN, email="admin@cashbox.com"),
        User(id="2", name="سارة المحاسبة", username="sara", password="123",
             role=UserRole.STAFF, email="sara@cashbox.com"),
        User(id="3", name="محمد الموظف", username="mohamed", password="123",
             role=UserRole.STAFF, email="mohamed@cashbox.com"),
    ]


def initial_transactions() -> list[Transaction]:
    """Seed ledger, newest first."""
    return [
        Transaction(
            id="t3",
            amount="2500",
            type=TransactionType.EXPENSE,
            category="إيجار",
            description="إيجار المكتب الفرعي",
            date="2024-03-12T09:15:00Z",
            userId="2",
            userName="سارة المحاسبة",
            status=TransactionStatus.PENDING,
        ),
        Transaction(
            id="t2",
            amount="1200",
            type=TransactionType.EXPENSE,
            category="مستلزمات مكتبية",
            description="شراء ورق وأحبار طابعات",
            date="2024-03-11T14:30:00Z",
            userId="3",
            userName="محمد الموظف",
            status=TransactionStatus.APPROVED,
        ),
        Transaction(
            id="t1",
            amount="5000",
            type=TransactionType.INCOME,
            category="مبيعات",
            description="تحصيل مبيعات الأسبوع الأول",
            date="2024-03-10T10:00:00Z",
            userId="2",
            userName="سارة المحاسبة",
            status=TransactionStatus.APPROVED,
        ),
    ]
