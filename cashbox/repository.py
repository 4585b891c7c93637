"""
Ledger Repository

The single ownership point of the in-memory user and transaction lists.

The primary backend (remote SQL or the local JSON store) is chosen once at
startup and injected, together with the local mirror. The repository:

- Loads both lists from the primary, falling back to the mirror for that
  load cycle when the primary is unreachable
- Applies every mutation to the primary first; constraint violations
  (duplicate, not found, rejected values) abort the mutation with no
  state change
- Keeps the memory and the mirror current even when a remote write fails,
  queues that write in the outbox and reports a warning
- Persists the outbox in the mirror, restores it on load and lays the
  queued writes over the remote snapshot until they are replayed
- Replays the outbox on demand with tenacity backoff

Nothing here raises to the caller. Storage exceptions are converted into
OperationResult failures.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cashbox import messages
from cashbox.models.ledger import Transaction, User
from cashbox.models.outbox import PendingWrite, WriteOperation
from cashbox.models.reference import initial_transactions, initial_users
from cashbox.models.results import FailureReason, OperationResult
from cashbox.services.storage import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    LocalJsonStorage,
    NotFoundError,
    RejectedError,
    StorageError,
)

T = TypeVar("T")
R = TypeVar("R", User, Transaction)

logger = structlog.get_logger(__name__)


def _overlay(records: list[R], write: PendingWrite, record: R, prepend: bool) -> list[R]:
    """One queued write applied to a list of records."""
    if write.operation == WriteOperation.DELETE:
        return [r for r in records if r.id != write.record_id]
    if any(r.id == write.record_id for r in records):
        return [record if r.id == write.record_id else r for r in records]
    return [record] + records if prepend else records + [record]


class LedgerRepository:
    """
    In-memory ledger state backed by a primary store and a local mirror.

    When ``primary`` is the mirror itself, the repository runs in local
    mode: there is no outbox and a failed write fails the operation.
    """

    def __init__(
        self,
        primary: LedgerStorageInterface,
        mirror: LocalJsonStorage,
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 1.0,
    ):
        self._primary = primary
        self._mirror = mirror
        self._timeout = timeout_seconds
        self._retry_attempts = retry_attempts
        self._retry_wait = retry_wait_seconds

        self._users: list[User] = []
        self._transactions: list[Transaction] = []
        self._outbox: list[PendingWrite] = []
        self._loaded = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_remote(self) -> bool:
        return self._primary is not self._mirror

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def users(self) -> list[User]:
        return list(self._users)

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def pending_writes(self) -> list[PendingWrite]:
        return list(self._outbox)

    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self._users if u.id == user_id), None)

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def _call_primary(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError:
            raise ConnectionError(f"Storage call timed out after {self._timeout}s")

    async def _read_mirror(self) -> tuple[list[User], list[Transaction]]:
        try:
            return await self._mirror.list_users(), await self._mirror.list_transactions()
        except StorageError as e:
            logger.error("local_store_unreadable", error=str(e))
            return initial_users(), initial_transactions()

    async def load(self) -> OperationResult[None]:
        """
        Read both lists from the primary backend.

        Falls back to the mirror (or, failing that, the seed data) when
        the primary cannot be read. The fallback lasts for this load only.
        """
        warnings = []
        if self.is_remote:
            self._outbox = self._read_outbox()
        try:
            users = await self._call_primary(self._primary.list_users())
            transactions = await self._call_primary(self._primary.list_transactions())
        except StorageError as e:
            logger.warning(
                "primary_read_failed",
                error=str(e),
                remote=self.is_remote,
            )
            users, transactions = await self._read_mirror()
            warnings.append(
                messages.LOADED_FROM_LOCAL if self.is_remote
                else messages.BACKEND_UNAVAILABLE
            )
        else:
            if not users and self.is_remote:
                # An empty remote user table would lock everyone out
                mirror_users, _ = await self._read_mirror()
                users = mirror_users
            users, transactions = self._overlay_outbox(users, transactions)

        self._users = users
        self._transactions = transactions
        self._loaded = True
        logger.info(
            "ledger_loaded",
            users=len(users),
            transactions=len(transactions),
            remote=self.is_remote,
            degraded=bool(warnings),
            pending=len(self._outbox),
        )
        return OperationResult.success(warnings=warnings)

    # -------------------------------------------------------------------------
    # Outbox persistence
    # -------------------------------------------------------------------------

    def _read_outbox(self) -> list[PendingWrite]:
        try:
            return self._mirror.read_outbox()
        except StorageError as e:
            logger.error("outbox_unreadable", error=str(e))
            return []

    def _persist_outbox(self) -> None:
        try:
            self._mirror.write_outbox(self._outbox)
        except StorageError as e:
            logger.error("outbox_write_failed", error=str(e), pending=len(self._outbox))

    def _overlay_outbox(
        self,
        users: list[User],
        transactions: list[Transaction],
    ) -> tuple[list[User], list[Transaction]]:
        """Apply queued writes, oldest first, to a freshly read remote snapshot."""
        for write in self._outbox:
            if write.user is not None:
                users = _overlay(users, write, write.user, prepend=False)
            else:
                transactions = _overlay(transactions, write, write.transaction, prepend=True)
        return users, transactions

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    def _has_pending(self, record_id: str) -> bool:
        return any(w.record_id == record_id for w in self._outbox)

    async def _apply(self, write: PendingWrite) -> None:
        primary = self._primary
        if write.user is not None:
            if write.operation == WriteOperation.INSERT:
                await primary.insert_user(write.user)
            elif write.operation == WriteOperation.UPDATE:
                await primary.update_user(write.user)
            else:
                await primary.delete_user(write.record_id)
        else:
            if write.operation == WriteOperation.INSERT:
                await primary.insert_transaction(write.transaction)
            elif write.operation == WriteOperation.UPDATE:
                await primary.update_transaction(write.transaction)
            else:
                await primary.delete_transaction(write.record_id)

    def _queue(self, write: PendingWrite, error: str) -> list[str]:
        self._outbox.append(write.model_copy(update={"error": error}))
        self._persist_outbox()
        logger.warning(
            "remote_write_queued",
            operation=write.operation.value,
            entity=write.entity,
            record_id=write.record_id,
            error=error,
            pending=len(self._outbox),
        )
        return [messages.SAVED_LOCALLY]

    async def _write_primary(self, write: PendingWrite) -> list[str]:
        """
        Apply a write to the primary backend.

        Returns warnings. Raises DuplicateError / NotFoundError /
        RejectedError when the store refuses the record, and StorageError
        when nothing may change.
        """
        if self.is_remote and self._has_pending(write.record_id):
            # Keep per-record ordering behind earlier queued writes
            return self._queue(write, "earlier write for this record is queued")
        try:
            await self._call_primary(self._apply(write))
        except (DuplicateError, NotFoundError, RejectedError):
            raise
        except StorageError as e:
            if not self.is_remote:
                raise
            return self._queue(write, str(e))
        return []

    def _sync_mirror(self, users: bool = False, transactions: bool = False) -> None:
        if not self.is_remote:
            return
        try:
            if users:
                self._mirror.write_users(self._users)
            if transactions:
                self._mirror.write_transactions(self._transactions)
        except StorageError as e:
            logger.error("mirror_write_failed", error=str(e))

    @staticmethod
    def _failure(
        error: StorageError,
        not_found_message: str,
        duplicate_message: str,
    ) -> OperationResult:
        if isinstance(error, DuplicateError):
            return OperationResult.fail(FailureReason.DUPLICATE, duplicate_message)
        if isinstance(error, NotFoundError):
            return OperationResult.fail(FailureReason.NOT_FOUND, not_found_message)
        if isinstance(error, RejectedError):
            logger.warning("storage_write_rejected", error=str(error))
            return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.VALUES_REJECTED)
        logger.error("storage_write_failed", error=str(error))
        return OperationResult.fail(
            FailureReason.BACKEND_UNAVAILABLE, messages.BACKEND_UNAVAILABLE
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def add_user(self, user: User) -> OperationResult[User]:
        write = PendingWrite(
            operation=WriteOperation.INSERT, record_id=user.id, user=user
        )
        try:
            warnings = await self._write_primary(write)
        except StorageError as e:
            return self._failure(e, messages.USER_NOT_FOUND, messages.USERNAME_TAKEN)

        self._users.append(user)
        self._sync_mirror(users=True)
        return OperationResult.success(user, warnings)

    async def replace_user(self, user: User) -> OperationResult[User]:
        if self.find_user(user.id) is None:
            return OperationResult.fail(FailureReason.NOT_FOUND, messages.USER_NOT_FOUND)

        write = PendingWrite(
            operation=WriteOperation.UPDATE, record_id=user.id, user=user
        )
        try:
            warnings = await self._write_primary(write)
        except StorageError as e:
            return self._failure(e, messages.USER_NOT_FOUND, messages.USERNAME_TAKEN)

        self._users = [user if u.id == user.id else u for u in self._users]
        self._sync_mirror(users=True)
        return OperationResult.success(user, warnings)

    async def remove_user(self, user_id: str) -> OperationResult[User]:
        existing = self.find_user(user_id)
        if existing is None:
            return OperationResult.fail(FailureReason.NOT_FOUND, messages.USER_NOT_FOUND)

        write = PendingWrite(
            operation=WriteOperation.DELETE, record_id=user_id, user=existing
        )
        try:
            warnings = await self._write_primary(write)
        except StorageError as e:
            return self._failure(e, messages.USER_NOT_FOUND, messages.USERNAME_TAKEN)

        self._users = [u for u in self._users if u.id != user_id]
        self._sync_mirror(users=True)
        return OperationResult.success(existing, warnings)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(self, transaction: Transaction) -> OperationResult[Transaction]:
        write = PendingWrite(
            operation=WriteOperation.INSERT,
            record_id=transaction.id,
            transaction=transaction,
        )
        try:
            warnings = await self._write_primary(write)
        except StorageError as e:
            return self._failure(
                e, messages.TRANSACTION_NOT_FOUND, messages.INVALID_TRANSACTION
            )

        self._transactions.insert(0, transaction)
        self._sync_mirror(transactions=True)
        return OperationResult.success(transaction, warnings)

    async def replace_transaction(self, transaction: Transaction) -> OperationResult[Transaction]:
        if self.find_transaction(transaction.id) is None:
            return OperationResult.fail(
                FailureReason.NOT_FOUND, messages.TRANSACTION_NOT_FOUND
            )

        write = PendingWrite(
            operation=WriteOperation.UPDATE,
            record_id=transaction.id,
            transaction=transaction,
        )
        try:
            warnings = await self._write_primary(write)
        except StorageError as e:
            return self._failure(
                e, messages.TRANSACTION_NOT_FOUND, messages.INVALID_TRANSACTION
            )

        self._transactions = [
            transaction if t.id == transaction.id else t
            for t in self._transactions
        ]
        self._sync_mirror(transactions=True)
        return OperationResult.success(transaction, warnings)

    async def remove_transaction(self, transaction_id: str) -> OperationResult[Transaction]:
        existing = self.find_transaction(transaction_id)
        if existing is None:
            return OperationResult.fail(
                FailureReason.NOT_FOUND, messages.TRANSACTION_NOT_FOUND
            )

        write = PendingWrite(
            operation=WriteOperation.DELETE,
            record_id=transaction_id,
            transaction=existing,
        )
        try:
            warnings = await self._write_primary(write)
        except StorageError as e:
            return self._failure(
                e, messages.TRANSACTION_NOT_FOUND, messages.INVALID_TRANSACTION
            )

        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        self._sync_mirror(transactions=True)
        return OperationResult.success(existing, warnings)

    # -------------------------------------------------------------------------
    # Outbox replay
    # -------------------------------------------------------------------------

    async def _replay(self, write: PendingWrite) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=self._retry_wait, max=10),
            retry=retry_if_exception_type(ConnectionError),
            reraise=True,
        ):
            with attempt:
                await self._call_primary(self._apply(write))

    async def sync_pending(self) -> OperationResult[int]:
        """
        Replay queued remote writes in order.

        Returns the number of writes applied. Writes that still fail stay
        queued, and so does every later write for the same record.
        """
        if not self._outbox:
            return OperationResult.success(0)

        applied = 0
        rejected = 0
        remaining: list[PendingWrite] = []
        for write in self._outbox:
            if any(w.record_id == write.record_id for w in remaining):
                remaining.append(write)
                continue
            try:
                await self._replay(write)
            except DuplicateError:
                # The insert reached the store before; nothing to do
                logger.info("replay_already_applied", record_id=write.record_id)
                applied += 1
            except NotFoundError:
                logger.warning(
                    "replay_target_missing",
                    entity=write.entity,
                    record_id=write.record_id,
                )
                applied += 1
            except RejectedError as e:
                # The store will never accept these values
                logger.error(
                    "replay_rejected",
                    entity=write.entity,
                    record_id=write.record_id,
                    error=str(e),
                )
                rejected += 1
            except StorageError as e:
                remaining.append(write.model_copy(update={"error": str(e)}))
            else:
                applied += 1

        self._outbox = remaining
        self._persist_outbox()
        logger.info(
            "outbox_synced",
            applied=applied,
            rejected=rejected,
            remaining=len(remaining),
        )
        warnings = [f"{rejected} rejected"] if rejected else []
        if remaining:
            return OperationResult.fail(
                FailureReason.BACKEND_UNAVAILABLE,
                messages.BACKEND_UNAVAILABLE,
                warnings=warnings + [f"{len(remaining)} pending"],
            )
        return OperationResult.success(applied, warnings)
