"""
SQL Storage Implementation

The remote backend: a relational store reached through SQLAlchemy's
asyncio extension. PostgreSQL URLs use asyncpg, SQLite URLs use aiosqlite.

Schema (created on first use):

    users(id PK, name, username UNIQUE, password, role, email)
    transactions(id PK, amount, type, category, description, date,
                 "userId", "userName", status)

"userId" is not a foreign key: deleting a user leaves that
user's historical transactions untouched.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Iterable, Optional, TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy import Column, DateTime, Numeric, String, Text, select
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from tenacity import retry, stop_after_attempt, wait_exponential

from cashbox.models.ledger import (
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    UserRole,
)
from cashbox.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    RejectedError,
    StorageError,
)

T = TypeVar("T")

logger = structlog.get_logger(__name__)

Base = declarative_base()

# Query parameters libpq understands but asyncpg rejects
_LIBPQ_ONLY_PARAMS = ("sslmode", "channel_binding")


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False)
    email = Column(String(254))


class TransactionRow(Base):
    __tablename__ = "transactions"

    id = Column(String(64), primary_key=True)
    amount = Column(Numeric(14, 2), nullable=False)
    type = Column(String(16), nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    user_id = Column("userId", String(64))
    user_name = Column("userName", String(200))
    status = Column(String(16), nullable=False)


def build_async_url(database_url: str) -> tuple[URL, dict]:
    """
    Map a plain connection string onto an async driver.

    Returns the rewritten URL and the connect_args the driver needs.
    ``postgres://host/db?sslmode=require`` becomes
    ``postgresql+asyncpg://host/db`` with ``{"ssl": "require"}``.
    """
    url = make_url(database_url)
    connect_args: dict = {}

    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+asyncpg")
    elif url.drivername == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")

    if url.drivername == "postgresql+asyncpg":
        sslmode = url.query.get("sslmode")
        url = url.difference_update_query(_LIBPQ_ONLY_PARAMS)
        if sslmode and sslmode != "disable":
            connect_args["ssl"] = sslmode

    return url, connect_args


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_to_row(user: User) -> UserRow:
    return UserRow(
        id=user.id,
        name=user.name,
        username=user.username,
        password=user.password,
        role=user.role.value,
        email=user.email,
    )


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        name=row.name,
        username=row.username,
        password=row.password,
        role=UserRole(row.role),
        email=row.email or "",
    )


def _transaction_to_row(transaction: Transaction) -> TransactionRow:
    return TransactionRow(
        id=transaction.id,
        amount=transaction.amount,
        type=transaction.type.value,
        category=transaction.category,
        description=transaction.description,
        date=transaction.date,
        user_id=transaction.user_id,
        user_name=transaction.user_name,
        status=transaction.status.value,
    )


def _row_to_transaction(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        amount=row.amount,
        type=TransactionType(row.type),
        category=row.category,
        description=row.description or "",
        date=_as_utc(row.date),
        user_id=row.user_id or "",
        user_name=row.user_name or "",
        status=TransactionStatus(row.status),
    )


def _convert_rows(rows: Iterable, convert: Callable[..., T]) -> list[T]:
    """Map rows to models. A row the models reject fails the whole read."""
    try:
        return [convert(row) for row in rows]
    except (ValidationError, ValueError) as e:
        raise StorageError(f"Invalid row in remote store: {e}")


class SqlLedgerStorage(LedgerStorageInterface):
    """
    SQLAlchemy implementation of ledger storage.

    Each call opens its own session; there is no cross-call transaction.
    Concurrent writers race with last-write-wins semantics.
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        engine: Optional[AsyncEngine] = None,
    ):
        if engine is None:
            url, connect_args = build_async_url(database_url)
            engine = create_async_engine(
                url,
                echo=echo,
                # The dashboard runs each call on a fresh event loop, so
                # connections must not outlive the call that opened them
                poolclass=NullPool,
                connect_args=connect_args,
            )
        self._engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)
        self._schema_ready = False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def ensure_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        if self._schema_ready:
            return
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise ConnectionError(f"Failed to connect to database: {e}")
        self._schema_ready = True
        logger.info("sql_schema_ready", dialect=self._engine.dialect.name)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        await self.ensure_schema()
        try:
            async with self._sessionmaker() as session:
                yield session
        except StorageError:
            raise
        except IntegrityError as e:
            raise DuplicateError(f"Constraint violated: {e.orig}")
        except DataError as e:
            raise RejectedError(f"Value rejected: {e.orig}")
        except (SQLAlchemyError, OSError) as e:
            raise ConnectionError(f"Database call failed: {e}")

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def list_users(self) -> list[User]:
        async with self._session() as session:
            result = await session.execute(select(UserRow))
            return _convert_rows(result.scalars().all(), _row_to_user)

    async def insert_user(self, user: User) -> None:
        async with self._session() as session:
            session.add(_user_to_row(user))
            await session.commit()

    async def update_user(self, user: User) -> None:
        async with self._session() as session:
            row = await session.get(UserRow, user.id)
            if row is None:
                raise NotFoundError(f"User not found: {user.id}")
            row.name = user.name
            row.username = user.username
            row.password = user.password
            row.role = user.role.value
            row.email = user.email
            await session.commit()

    async def delete_user(self, user_id: str) -> bool:
        async with self._session() as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        async with self._session() as session:
            result = await session.execute(
                select(TransactionRow).order_by(TransactionRow.date.desc())
            )
            return _convert_rows(result.scalars().all(), _row_to_transaction)

    async def insert_transaction(self, transaction: Transaction) -> None:
        async with self._session() as session:
            session.add(_transaction_to_row(transaction))
            await session.commit()

    async def update_transaction(self, transaction: Transaction) -> None:
        async with self._session() as session:
            row = await session.get(TransactionRow, transaction.id)
            if row is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            row.amount = transaction.amount
            row.type = transaction.type.value
            row.category = transaction.category
            row.description = transaction.description
            row.status = transaction.status.value
            # date and the creator snapshot are immutable
            await session.commit()

    async def delete_transaction(self, transaction_id: str) -> bool:
        async with self._session() as session:
            row = await session.get(TransactionRow, transaction_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True
