"""
Reporting Module

Read-only views derived from account balances, daily balance history and
transaction counters. Nothing here writes to the store.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime
from typing import Dict, Optional

from .accounts import Account
from .repositories import AccountStore

CENTS = Decimal('0.01')


def average_daily_balance(account: Account) -> Decimal:
    """Mean of the daily balance snapshots, or the current balance without history"""
    if not account.daily_balances:
        return account.balance
    total = sum(account.daily_balances.values(), Decimal('0'))
    return (total / Decimal(len(account.daily_balances))).quantize(CENTS, rounding=ROUND_HALF_UP)


def commission_owed(account: Account) -> Optional[Decimal]:
    """
    Commission for transactions past the monthly limit.

    None when the account is exempt (PYME) or has no limit or commission
    configured, i.e. checking and fixed-term accounts.
    """
    if account.is_pyme:
        return None
    if account.monthly_transaction_limit is None or account.transaction_commission is None:
        return None
    excess = max(0, (account.transactions_performed or 0) - account.monthly_transaction_limit)
    return account.transaction_commission * Decimal(excess)


class ReportingService:
    """Customer-level balance and commission reports"""

    def __init__(self, account_store: AccountStore):
        self.account_store = account_store

    async def average_daily_balance(self, customer_id: str) -> Dict[str, Decimal]:
        """Average daily balance per account id, rounded half-up to cents"""
        accounts = await self.account_store.find_by_customer_id(customer_id)
        return {account.id: average_daily_balance(account) for account in accounts}

    async def commissions_report(
        self,
        customer_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Dict[str, Decimal]:
        """
        Commission owed per non-exempt account id.

        start and end are accepted for interface compatibility but do not
        filter: the counters are lifetime totals.
        """
        accounts = await self.account_store.find_by_customer_id(customer_id)
        report = {}
        for account in accounts:
            owed = commission_owed(account)
            if owed is not None:
                report[account.id] = owed
        return report
