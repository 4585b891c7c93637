"""
Main Orchestrator for Cashbox

Ties the components together:

1. Backend selection - made once at startup from configuration
2. CashboxSession - the logged-in user plus every dashboard action

The session enforces the outer gates (someone must be logged in; user
management is admin-only). The ledger rules themselves live in the
LedgerEngine and UserDirectory.
"""

from typing import Optional, Union

import structlog

from cashbox import messages
from cashbox.agents import FinancialAnalystAgent
from cashbox.config import Settings, get_settings
from cashbox.directory import UserDirectory
from cashbox.ledger import LedgerEngine
from cashbox.logger import configure_logging
from cashbox.models.ledger import (
    CategoryTotal,
    Metrics,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    User,
    UserDraft,
    UserPatch,
)
from cashbox.models.results import FailureReason, OperationResult
from cashbox.repository import LedgerRepository
from cashbox.services.storage import (
    LedgerStorageInterface,
    LocalJsonStorage,
    SqlLedgerStorage,
)

logger = structlog.get_logger(__name__)


class CashboxSession:
    """
    One dashboard session.

    Holds the authenticated user. Every mutating action needs one;
    user management needs an ADMIN.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        engine: LedgerEngine,
        directory: UserDirectory,
        analyst: FinancialAnalystAgent,
    ):
        self.repository = repository
        self.engine = engine
        self.directory = directory
        self.analyst = analyst
        self.current_user: Optional[User] = None

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.is_admin

    def _require_user(self) -> Optional[OperationResult]:
        if self.current_user is None:
            return OperationResult.fail(FailureReason.VALIDATION_FAILURE, messages.LOGIN_REQUIRED)
        return None

    def _require_admin(self) -> Optional[OperationResult]:
        refused = self._require_user()
        if refused is None and not self.current_user.is_admin:
            refused = OperationResult.fail(FailureReason.PERMISSION_DENIED, messages.ADMIN_ONLY)
        return refused

    async def load(self) -> OperationResult[None]:
        return await self.repository.load()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def login(self, username: str, password: str) -> OperationResult[User]:
        result = self.directory.login(username, password)
        if result.ok:
            self.current_user = result.value
        return result

    def logout(self) -> None:
        self.current_user = None

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    async def add_transaction(self, draft: TransactionDraft) -> OperationResult[Transaction]:
        return await self.engine.create_transaction(draft, self.current_user)

    async def approve(self, transaction_id: str) -> OperationResult[Transaction]:
        return await self.engine.set_status(
            transaction_id, TransactionStatus.APPROVED, self.current_user
        )

    async def reject(self, transaction_id: str) -> OperationResult[Transaction]:
        return await self.engine.set_status(
            transaction_id, TransactionStatus.REJECTED, self.current_user
        )

    def metrics(self) -> Metrics:
        return self.engine.metrics()

    def category_breakdown(self) -> list[CategoryTotal]:
        return self.engine.category_breakdown()

    async def generate_report(self) -> str:
        return await self.analyst.analyze_financials(self.repository.transactions)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def save_user(
        self,
        form: Union[UserDraft, UserPatch],
        user_id: Optional[str] = None,
    ) -> OperationResult[User]:
        """Create a user from a draft, or patch ``user_id``."""
        refused = self._require_admin()
        if refused is not None:
            return refused

        if user_id is None:
            if not isinstance(form, UserDraft):
                return OperationResult.fail(
                    FailureReason.VALIDATION_FAILURE, messages.USER_NOT_FOUND
                )
            return await self.directory.create_user(form)

        patch = form if isinstance(form, UserPatch) else UserPatch(**form.model_dump())
        result = await self.directory.update_user(user_id, patch)
        if result.ok and self.current_user.id == user_id:
            self.current_user = result.value
        return result

    async def delete_user(self, user_id: str) -> OperationResult[User]:
        refused = self._require_admin()
        if refused is not None:
            return refused
        return await self.directory.delete_user(user_id, self.current_user)

    async def sync_pending(self) -> OperationResult[int]:
        return await self.repository.sync_pending()


def select_primary_storage(
    settings: Settings,
    mirror: LocalJsonStorage,
) -> LedgerStorageInterface:
    """
    Pick the primary backend. Called once at startup.

    The remote store is used whenever DATABASE_URL is set; otherwise the
    local store is both primary and mirror.
    """
    database = settings.database
    if database.is_configured:
        logger.info("storage_selected", backend="sql")
        return SqlLedgerStorage(database.url, echo=database.echo)
    logger.warning("storage_selected", backend="local", reason="DATABASE_URL not set")
    return mirror


def create_app_components(settings: Optional[Settings] = None) -> CashboxSession:
    """
    Factory function to create all application components.

    Returns a session that still needs ``await session.load()``.
    """
    settings = settings or get_settings()
    app = settings.app
    configure_logging(
        "DEBUG" if app.debug_mode else app.log_level,
        json_output=app.log_json,
    )
    logger.info(
        "app_starting",
        environment=app.app_environment,
        debug=app.debug_mode,
    )

    local = settings.local_storage
    mirror = LocalJsonStorage(
        local.data_dir,
        users_key=local.users_key,
        transactions_key=local.transactions_key,
        outbox_key=local.outbox_key,
    )
    primary = select_primary_storage(settings, mirror)

    repository = LedgerRepository(
        primary,
        mirror,
        timeout_seconds=settings.database.timeout_seconds,
        retry_attempts=app.sync_retry_attempts,
        retry_wait_seconds=app.sync_retry_wait_seconds,
    )
    gemini = settings.gemini
    if not gemini.is_configured:
        logger.warning("ai_disabled", reason="GEMINI_API_KEY not set")

    return CashboxSession(
        repository=repository,
        engine=LedgerEngine(repository),
        directory=UserDirectory(repository),
        analyst=FinancialAnalystAgent(gemini),
    )
