"""
Cashbox - Source Package

A small cash-management dashboard for a team: staff record income and
expenses, an administrator approves or rejects them, and an optional AI
service summarizes the ledger.

DESIGN PRINCIPLES:
1. Only approved entries move the balance
2. Only an administrator reviews entries
3. One owner for ledger state (the repository)
4. Storage backend chosen once, at startup
5. Failures are returned, not thrown
"""

__version__ = "1.0.0"
__author__ = "Cashbox Team"
