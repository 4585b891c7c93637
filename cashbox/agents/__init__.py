"""AI Agents package."""

from cashbox.agents.financial_analyst import (
    REPORT_PROMPT,
    FinancialAnalystAgent,
    summarize_transactions,
)

__all__ = [
    "FinancialAnalystAgent",
    "REPORT_PROMPT",
    "summarize_transactions",
]
