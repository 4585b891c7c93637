"""Ledger engine package."""

from cashbox.ledger.engine import (
    LedgerEngine,
    build_transaction,
    categories_for,
    compute_category_breakdown,
    compute_metrics,
    initial_status,
    parse_amount,
    transition_status,
)

__all__ = [
    "LedgerEngine",
    "build_transaction",
    "categories_for",
    "compute_category_breakdown",
    "compute_metrics",
    "initial_status",
    "parse_amount",
    "transition_status",
]
