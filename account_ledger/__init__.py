"""
Account Ledger

Bank account ledger and debit-card payment routing engine. Keeps the current
balance of savings, checking and fixed-term accounts with exact Decimal
arithmetic, transaction-count based commissions and a daily balance history.
"""

__version__ = "1.0.0"
