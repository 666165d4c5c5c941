"""
Ledger Operations Module

Deposits, withdrawals and transfers against the current account balance.
Every mutation is a read-modify-write against the account store: load the
account, apply the balance delta and fees, append a daily balance snapshot,
save. Optionally serialised per account id with asyncio locks.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional
from enum import Enum
import asyncio

from .accounts import Account, BalanceSummary, to_decimal
from .config import LedgerConfig, get_config
from .exceptions import AccountNotFoundError, NotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .repositories import AccountStore


class DebitOutcome(Enum):
    """Result of a single payment debit attempt"""
    SUCCESS = "success"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NOT_FOUND = "not_found"
    NOT_ALLOWED = "not_allowed"


@dataclass
class DebitResult:
    """Typed outcome of try_debit(); the account is set when it was found"""
    account_id: str
    outcome: DebitOutcome
    account: Optional[Account] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == DebitOutcome.SUCCESS


class AccountLocks:
    """
    One asyncio.Lock per account id.

    Guards the read-modify-write of a single account so two concurrent
    withdrawals cannot both read the same pre-mutation balance. Locks are
    never held across two accounts. An entry lives only while some task
    holds or waits for it, so the registry does not grow with every id seen.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, account_id: str):
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        self._users[account_id] = self._users.get(account_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[account_id] -= 1
            if not self._users[account_id]:
                del self._users[account_id]
                del self._locks[account_id]

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)


class LedgerOperations:
    """
    Applies balance mutations, transaction counters and commissions
    """

    def __init__(
        self,
        account_store: AccountStore,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.account_store = account_store
        self.config = config or get_config()
        self.locks = AccountLocks() if self.config.serialize_account_writes else None
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("ledger.operations")

    @asynccontextmanager
    async def _account_guard(self, account_id: str):
        if self.locks is None:
            yield
            return
        async with self.locks.hold(account_id):
            yield

    async def _load(self, account_id: str) -> Account:
        account = await self.account_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def _roll_counters(self, account: Account, now: datetime) -> None:
        if self.config.reset_counters_monthly and account.reset_monthly_counter(now.date()):
            self.logger.info(f"Monthly transaction counter reset for account {account.id}")

    def _policy_violation(self, account: Account, now: datetime, debit: bool) -> Optional[str]:
        """Reason the opt-in movement policies refuse this operation, if any"""
        if self.config.enforce_withdrawal_day and not account.is_withdrawal_day(now.date()):
            return "Fixed term accounts can only transact on their withdrawal day"
        if debit and self.config.enforce_movement_limit and account.movement_limit_reached:
            return "Monthly movements limit reached"
        return None

    def _enforce_policies(self, account: Account, now: datetime, action: str, debit: bool) -> None:
        reason = self._policy_violation(account, now, debit)
        if reason is None:
            return
        log_action(
            self.logger, "warning", f"{action.capitalize()} rejected: {reason}",
            action=action, resource=f"account:{account.id}"
        )
        raise ValidationError(reason, account_id=account.id)

    def _snapshot(self, account: Account, now: datetime) -> None:
        account.record_balance(now, self.config.balance_timestamp_format)

    async def get_account(self, account_id: str) -> Account:
        """Get account by ID, raising AccountNotFoundError when absent"""
        return await self._load(account_id)

    async def get_customer_accounts(self, customer_id: str) -> List[Account]:
        """Get all accounts for a customer"""
        return await self.account_store.find_by_customer_id(customer_id)

    async def get_balance(self, account_id: str) -> BalanceSummary:
        """Current balance, counters and the fee the next withdrawal would pay"""
        account = await self._load(account_id)
        return BalanceSummary(
            account_id=account.id,
            account_type=account.account_type,
            balance=account.balance,
            transactions_performed=account.transactions_performed,
            remaining_free_transactions=account.remaining_free_transactions,
            transaction_commission=account.transaction_commission,
            next_withdrawal_fee=account.commission_due() + account.maintenance_fee_due()
        )

    async def deposit(self, account_id: str, amount: Decimal) -> Account:
        """
        Credit an account

        The amount is trusted to be positive; there is no upper bound check.

        Raises:
            AccountNotFoundError: If the account does not exist
            ValidationError: If a fixed-term account is outside its withdrawal day
        """
        amount = to_decimal(amount)
        async with self._account_guard(account_id):
            account = await self._load(account_id)
            now = self._clock()
            self._enforce_policies(account, now, "deposit", debit=False)
            self._roll_counters(account, now)

            account.balance = account.balance + amount
            self._snapshot(account, now)
            account = await self.account_store.save(account)

        log_action(
            self.logger, "info", "Deposit applied",
            action="deposit", resource=f"account:{account_id}",
            extra={"amount": str(amount), "balance": str(account.balance)}
        )
        return account

    async def withdraw(self, account_id: str, amount: Decimal) -> Account:
        """
        Debit an account, charging commission and maintenance fees

        Funds are checked against the amount alone, before fees, so a
        withdrawal of the whole balance with a fee due leaves the balance at
        minus the fee.

        Raises:
            AccountNotFoundError: If the account does not exist
            ValidationError: If the balance is lower than the amount, or an
                enabled movement policy refuses the withdrawal
        """
        amount = to_decimal(amount)
        async with self._account_guard(account_id):
            account = await self._load(account_id)
            if not account.has_sufficient_funds(amount):
                log_action(
                    self.logger, "warning", "Withdrawal rejected: insufficient funds",
                    action="withdraw", resource=f"account:{account_id}",
                    extra={"amount": str(amount), "balance": str(account.balance)}
                )
                raise ValidationError("Insufficient funds", account_id=account_id)

            now = self._clock()
            self._roll_counters(account, now)
            self._enforce_policies(account, now, "withdraw", debit=True)

            commission = account.commission_due()
            maintenance_fee = account.maintenance_fee_due()
            account.balance = account.balance - amount - commission - maintenance_fee
            account.transactions_performed = (account.transactions_performed or 0) + 1
            self._snapshot(account, now)
            account = await self.account_store.save(account)

        log_action(
            self.logger, "info", "Withdrawal applied",
            action="withdraw", resource=f"account:{account_id}",
            extra={
                "amount": str(amount),
                "commission": str(commission),
                "maintenance_fee": str(maintenance_fee),
                "balance": str(account.balance),
                "transactions_performed": account.transactions_performed
            }
        )
        return account

    async def transfer(
        self,
        source_id: str,
        destination_id: str,
        amount: Decimal,
        customer_id: Optional[str] = None
    ) -> Account:
        """
        Withdraw from the source, then deposit into the destination

        The two legs are saved separately: if the deposit fails after the
        withdrawal committed, nothing is rolled back.

        Args:
            customer_id: Requesting customer; when given, the source account must be theirs

        Returns:
            The updated destination account

        Raises:
            AccountNotFoundError: If either account does not exist
            ValidationError: If the source cannot cover the amount or belongs to another customer
        """
        amount = to_decimal(amount)
        source = await self._load(source_id)
        await self._load(destination_id)
        if customer_id is not None and source.customer_id != customer_id:
            raise ValidationError("Account does not belong to this customer", account_id=source_id)

        await self.withdraw(source_id, amount)
        destination = await self.deposit(destination_id, amount)

        log_action(
            self.logger, "info", "Transfer completed",
            action="transfer", resource=f"account:{source_id}",
            extra={"destination_account": destination_id, "amount": str(amount)}
        )
        return destination

    async def update_authorized_signers(self, account_id: str, signers: List[str]) -> Account:
        """Replace the authorized signer set wholesale"""
        async with self._account_guard(account_id):
            account = await self.account_store.find_by_id(account_id)
            if account is None:
                raise NotFoundError("Account not found")

            account.authorized_signers = list(dict.fromkeys(signers or []))
            account.updated_at = self._clock()
            account = await self.account_store.save(account)

        log_action(
            self.logger, "info", "Authorized signers updated",
            action="update_authorized_signers", resource=f"account:{account_id}",
            extra={"signers": account.authorized_signers}
        )
        return account

    async def try_debit(self, account_id: str, amount: Decimal) -> DebitResult:
        """
        Debit one account for a card payment without raising on business failures

        Checks funds and any enabled movement policy, then deducts the amount:
        no commission is charged. The transaction counter increments only on
        accounts that track one.
        """
        amount = to_decimal(amount)
        async with self._account_guard(account_id):
            account = await self.account_store.find_by_id(account_id)
            if account is None:
                return DebitResult(account_id, DebitOutcome.NOT_FOUND)
            if not account.has_sufficient_funds(amount):
                return DebitResult(account_id, DebitOutcome.INSUFFICIENT_FUNDS, account)

            now = self._clock()
            self._roll_counters(account, now)
            if self._policy_violation(account, now, debit=True):
                return DebitResult(account_id, DebitOutcome.NOT_ALLOWED, account)

            account.balance = account.balance - amount
            self._snapshot(account, now)
            if account.transactions_performed is not None:
                account.transactions_performed += 1
            account = await self.account_store.save(account)

        log_action(
            self.logger, "info", "Card payment debited",
            action="debit", resource=f"account:{account_id}",
            extra={"amount": str(amount), "balance": str(account.balance)}
        )
        return DebitResult(account_id, DebitOutcome.SUCCESS, account)
