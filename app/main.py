"""
Streamlit Frontend for Cashbox

The dashboard employees and the administrator use every day:

1. Login with username and password
2. Dashboard with balance, totals, pending count and recent entries
3. Transactions list; the administrator approves or rejects pending ones
4. Reports: category breakdown chart and the AI analysis
5. Users management (administrator only)
6. Settings: which services are configured, outbox sync

The page holds no rules of its own. Everything goes through CashboxSession.
"""

import asyncio

import pandas as pd
import streamlit as st

from cashbox.config import get_settings, validate_all_settings
from cashbox.models.ledger import (
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    UserDraft,
    UserPatch,
    UserRole,
)
from cashbox.orchestrator import CashboxSession, create_app_components


# Page configuration
st.set_page_config(
    page_title="Cashbox",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    body, .stMarkdown { direction: rtl; text-align: right; }
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


STATUS_LABELS = {
    TransactionStatus.APPROVED: "✅ معتمدة",
    TransactionStatus.PENDING: "⏳ قيد المراجعة",
    TransactionStatus.REJECTED: "❌ مرفوضة",
}
TYPE_LABELS = {
    TransactionType.INCOME: "قبض وارد",
    TransactionType.EXPENSE: "صرف مصروف",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_session() -> CashboxSession:
    """One CashboxSession per browser session, loaded on first use."""
    if "cashbox" not in st.session_state:
        session = create_app_components()
        result = run_async(session.load())
        for warning in result.warnings:
            flash("warning", warning)
        st.session_state.cashbox = session
    return st.session_state.cashbox


def flash(kind: str, text: str):
    """Keep a message in session state until the next render_flash."""
    st.session_state.setdefault("flash", []).append((kind, text))


def render_flash():
    for kind, text in st.session_state.pop("flash", []):
        getattr(st, kind)(text)


def show_result(result, success_message: str):
    """
    Queue an OperationResult for display.

    Callers rerun right after, so the messages are shown by render_flash
    on the following run.
    """
    for warning in result.warnings:
        flash("warning", warning)
    if result.ok:
        flash("success", success_message)
    else:
        flash("error", result.message)


def money(amount) -> str:
    return f"{amount:,.2f} {get_settings().app.currency_label}"


def main():
    """Main application entry point."""
    session = get_session()
    render_flash()

    if session.current_user is None:
        render_login_page(session)
        return

    user = session.current_user
    st.sidebar.title("💰 Cashbox")
    st.sidebar.markdown(f"**{user.name}** · {user.role.value}")
    st.sidebar.markdown("---")

    pages = ["📊 لوحة التحكم", "📋 العمليات", "📈 التقارير"]
    if session.is_admin:
        pages.append("👥 المستخدمون")
    pages.append("⚙️ الإعدادات")

    page = st.sidebar.radio("انتقل إلى:", pages, index=0)

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 تسجيل الخروج"):
        session.logout()
        st.rerun()

    if page == "📊 لوحة التحكم":
        render_dashboard_page(session)
    elif page == "📋 العمليات":
        render_transactions_page(session)
    elif page == "📈 التقارير":
        render_reports_page(session)
    elif page == "👥 المستخدمون":
        render_users_page(session)
    elif page == "⚙️ الإعدادات":
        render_settings_page(session)


def render_login_page(session: CashboxSession):
    st.title("💰 تسجيل الدخول")

    with st.form("login"):
        username = st.text_input("اسم المستخدم")
        password = st.text_input("كلمة المرور", type="password")
        submitted = st.form_submit_button("دخول", type="primary")

    if submitted:
        result = session.login(username, password)
        if result.ok:
            st.rerun()
        st.error(result.message)


def render_dashboard_page(session: CashboxSession):
    st.title("📊 لوحة التحكم")

    metrics = session.metrics()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("الرصيد الكلي", money(metrics.balance))
    col2.metric("إجمالي الوارد", money(metrics.total_income))
    col3.metric("إجمالي المصروف", money(metrics.total_expense))
    col4.metric("بانتظار الاعتماد", metrics.pending_count)

    st.markdown("---")
    render_add_transaction_form(session)

    st.subheader("آخر العمليات")
    limit = get_settings().app.recent_transactions_limit
    for t in session.engine.recent_transactions(limit):
        sign = "+" if t.type == TransactionType.INCOME else "-"
        st.markdown(
            f"{sign}{money(t.amount)} · **{t.category}** · {t.user_name} · "
            f"{t.date.strftime('%Y-%m-%d')} · {STATUS_LABELS[t.status]}"
        )


def render_add_transaction_form(session: CashboxSession):
    with st.expander("➕ عملية جديدة"):
        tx_type = st.radio(
            "النوع",
            options=list(TransactionType),
            format_func=lambda x: TYPE_LABELS[x],
            horizontal=True,
        )
        categories = session.engine.categories_for(tx_type)
        with st.form("new_transaction", clear_on_submit=True):
            amount = st.text_input("المبلغ")
            category = st.selectbox("التصنيف", [c.name for c in categories])
            description = st.text_area("الوصف")
            submitted = st.form_submit_button("حفظ العملية", type="primary")

        if submitted:
            draft = TransactionDraft(
                amount=amount,
                type=tx_type,
                category=category or "",
                description=description,
            )
            result = run_async(session.add_transaction(draft))
            show_result(result, "تم حفظ العملية")
            st.rerun()


def render_transactions_page(session: CashboxSession):
    st.title("📋 العمليات")

    status_filter = st.selectbox(
        "الحالة",
        options=[None] + list(TransactionStatus),
        format_func=lambda x: "الكل" if x is None else STATUS_LABELS[x],
    )

    transactions = [
        t for t in session.repository.transactions
        if status_filter is None or t.status == status_filter
    ]
    if not transactions:
        st.info("لا توجد عمليات")
        return

    for t in transactions:
        cols = st.columns([3, 2, 2, 2, 1, 1])
        cols[0].markdown(f"**{t.category}** · {t.description}")
        cols[1].markdown(money(t.amount))
        cols[2].markdown(t.user_name)
        cols[3].markdown(STATUS_LABELS[t.status])
        if session.is_admin and t.status == TransactionStatus.PENDING:
            if cols[4].button("✅", key=f"approve-{t.id}"):
                show_result(run_async(session.approve(t.id)), "تم الاعتماد")
                st.rerun()
            if cols[5].button("❌", key=f"reject-{t.id}"):
                show_result(run_async(session.reject(t.id)), "تم الرفض")
                st.rerun()


def render_reports_page(session: CashboxSession):
    st.title("📈 التقارير")

    breakdown = session.category_breakdown()
    if breakdown:
        frame = pd.DataFrame(
            {"المبلغ": [float(c.amount) for c in breakdown]},
            index=[c.category_name for c in breakdown],
        )
        st.bar_chart(frame)
    else:
        st.info("لا توجد عمليات معتمدة بعد")

    st.markdown("---")
    st.subheader("✨ تحليل الذكاء الاصطناعي")
    if st.button("توليد التقرير", type="primary"):
        with st.spinner("جاري التحليل..."):
            st.session_state.ai_report = run_async(session.generate_report())
    if st.session_state.get("ai_report"):
        st.markdown(st.session_state.ai_report)


def render_users_page(session: CashboxSession):
    st.title("👥 المستخدمون")

    for u in session.directory.users:
        cols = st.columns([3, 2, 2, 1])
        cols[0].markdown(f"**{u.name}** · {u.email}")
        cols[1].markdown(u.username)
        cols[2].markdown(u.role.value)
        if u.id != session.current_user.id:
            if cols[3].button("🗑️", key=f"delete-{u.id}"):
                show_result(run_async(session.delete_user(u.id)), "تم حذف المستخدم")
                st.rerun()

    st.markdown("---")
    users = session.directory.users
    editing = st.selectbox(
        "تعديل مستخدم",
        options=[None] + users,
        format_func=lambda u: "مستخدم جديد" if u is None else u.name,
    )
    with st.form("user_form", clear_on_submit=True):
        name = st.text_input("الاسم", value=editing.name if editing else "")
        username = st.text_input("اسم المستخدم", value=editing.username if editing else "")
        password = st.text_input("كلمة المرور", type="password")
        role = st.selectbox(
            "الصلاحية",
            options=list(UserRole),
            index=list(UserRole).index(editing.role) if editing else 1,
            format_func=lambda r: r.value,
        )
        email = st.text_input("البريد الإلكتروني", value=editing.email if editing else "")
        submitted = st.form_submit_button("تثبيت البيانات", type="primary")

    if submitted:
        try:
            if editing:
                form = UserPatch(
                    name=name, username=username, role=role, email=email,
                    password=password or None,
                )
                result = run_async(session.save_user(form, user_id=editing.id))
            else:
                form = UserDraft(
                    name=name, username=username, password=password,
                    role=role, email=email,
                )
                result = run_async(session.save_user(form))
        except ValueError as e:
            st.error(f"بيانات غير صالحة: {e}")
            return
        show_result(result, "تم حفظ المستخدم")
        st.rerun()


def render_settings_page(session: CashboxSession):
    st.title("⚙️ الإعدادات")
    st.caption(f"البيئة: {get_settings().app.app_environment}")

    st.markdown("### حالة الاتصال")
    status = validate_all_settings()
    services = [
        ("قاعدة البيانات", "database"),
        ("Gemini (الذكاء الاصطناعي)", "gemini"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - مهيأ")
        else:
            error = status.get(f"{key}_error", "غير مهيأ")
            st.error(f"❌ {name} - {error}")

    if session.repository.is_remote:
        pending = session.repository.pending_writes
        st.markdown(f"### عمليات بانتظار المزامنة: {len(pending)}")
        if pending and st.button("🔄 مزامنة الآن"):
            show_result(run_async(session.sync_pending()), "تمت المزامنة")
            st.rerun()


if __name__ == "__main__":
    main()
