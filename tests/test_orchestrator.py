"""Tests for the dashboard session and component wiring."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from cashbox import messages
from cashbox.agents import FinancialAnalystAgent
from cashbox.config import GeminiSettings, Settings
from cashbox.directory import UserDirectory
from cashbox.ledger import LedgerEngine
from cashbox.models import (
    FailureReason,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    UserDraft,
    UserPatch,
)
from cashbox.orchestrator import (
    CashboxSession,
    create_app_components,
    select_primary_storage,
)
from cashbox.services.storage import LocalJsonStorage, SqlLedgerStorage


@pytest_asyncio.fixture
async def session(local_repository):
    analyst = FinancialAnalystAgent(GeminiSettings(_env_file=None, api_key=None))
    session = CashboxSession(
        repository=local_repository,
        engine=LedgerEngine(local_repository),
        directory=UserDirectory(local_repository),
        analyst=analyst,
    )
    await session.load()
    return session


class TestSessionGates:
    """Who may do what."""

    @pytest.mark.asyncio
    async def test_anonymous_cannot_add(self, session):
        result = await session.add_transaction(
            TransactionDraft(amount="10", type=TransactionType.EXPENSE, category="صيانة")
        )
        assert result.message == messages.LOGIN_REQUIRED

    @pytest.mark.asyncio
    async def test_login_logout(self, session):
        before = session.directory.users
        assert not session.login("admin", "nope").ok
        assert session.current_user is None
        assert session.directory.users == before
        assert not session.login("nobody", "123").ok
        assert session.directory.users == before

        assert session.login("admin", "123").ok
        assert session.is_admin
        session.logout()
        assert session.current_user is None
        assert not session.is_admin

    @pytest.mark.asyncio
    async def test_staff_cannot_manage_users(self, session):
        session.login("sara", "123")
        result = await session.save_user(UserDraft(name="x", username="x", password="x"))
        assert result.reason == FailureReason.PERMISSION_DENIED
        assert (await session.delete_user("3")).reason == FailureReason.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_anonymous_cannot_manage_users(self, session):
        result = await session.delete_user("3")
        assert result.message == messages.LOGIN_REQUIRED


class TestSessionFlows:
    """End-to-end dashboard scenarios."""

    @pytest.mark.asyncio
    async def test_staff_entry_reviewed_by_admin(self, session):
        session.login("sara", "123")
        created = await session.add_transaction(
            TransactionDraft(amount="1000", type=TransactionType.INCOME, category="مبيعات")
        )
        assert created.value.status == TransactionStatus.PENDING
        assert (await session.approve(created.value.id)).reason == FailureReason.PERMISSION_DENIED

        session.logout()
        session.login("admin", "123")
        assert (await session.approve(created.value.id)).ok
        assert session.metrics().balance == Decimal("4800")
        assert (await session.reject(created.value.id)).message == messages.ALREADY_REVIEWED

    @pytest.mark.asyncio
    async def test_admin_edits_self(self, session):
        session.login("admin", "123")
        result = await session.save_user(UserPatch(name="المدير"), user_id="1")
        assert result.ok
        assert session.current_user.name == "المدير"

    @pytest.mark.asyncio
    async def test_update_from_draft(self, session):
        session.login("admin", "123")
        form = UserDraft(name="محمد", username="mo", password="pw")
        result = await session.save_user(form, user_id="3")
        assert result.ok
        assert result.value.username == "mo"
        assert result.value.id == "3"

    @pytest.mark.asyncio
    async def test_report_without_key(self, session):
        assert await session.generate_report() == messages.AI_KEY_MISSING

    @pytest.mark.asyncio
    async def test_report_uses_current_ledger(self, session):
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=MagicMock(text="ok"))
        session.analyst = FinancialAnalystAgent(
            GeminiSettings(_env_file=None, api_key="k"), model=model
        )
        assert await session.generate_report() == "ok"
        prompt = model.generate_content_async.call_args.args[0]
        assert "إيجار" in prompt

    @pytest.mark.asyncio
    async def test_category_breakdown(self, session):
        names = [c.category_name for c in session.category_breakdown()]
        assert names == ["مبيعات", "مستلزمات مكتبية"]


class TestWiring:
    """Backend selection and the component factory."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("DEBUG_MODE", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.setenv("CASHBOX_DATA_DIR", str(tmp_path))

    def test_local_when_no_database(self, tmp_path):
        mirror = LocalJsonStorage(tmp_path)
        assert select_primary_storage(Settings(), mirror) is mirror

    def test_sql_when_database_configured(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path}/cashbox.db")
        primary = select_primary_storage(Settings(), LocalJsonStorage(tmp_path))
        assert isinstance(primary, SqlLedgerStorage)

    @pytest.mark.asyncio
    async def test_create_app_components(self, tmp_path):
        session = create_app_components(Settings())
        assert not session.repository.is_remote
        assert not session.analyst.enabled

        result = await session.load()
        assert result.ok
        assert (tmp_path / "cashbox_users.json").exists()
        assert session.login("admin", "123").ok

    @pytest.mark.parametrize("debug, expected", [("true", "DEBUG"), ("false", "WARNING")])
    def test_debug_mode_forces_debug_logging(self, monkeypatch, debug, expected):
        monkeypatch.setenv("DEBUG_MODE", debug)
        monkeypatch.setenv("LOG_LEVEL", "warning")
        levels = []
        monkeypatch.setattr(
            "cashbox.orchestrator.configure_logging",
            lambda level, json_output: levels.append(level),
        )
        create_app_components(Settings())
        assert levels == [expected]

    def test_environment_is_logged(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "staging")
        events = []
        monkeypatch.setattr("cashbox.orchestrator.configure_logging", lambda *a, **kw: None)
        monkeypatch.setattr(
            "cashbox.orchestrator.logger",
            MagicMock(info=lambda event, **kw: events.append((event, kw))),
        )
        create_app_components(Settings())
        assert ("app_starting", {"environment": "staging", "debug": False}) in events
