"""
Account Rules Engine Module

Validates account opening requests against the account kind and the
customer's profile, assigns kind-specific defaults (commission, transaction
limit, VIP minimum balance, maintenance fee waiver) and persists the result.
When a customer directory is wired in, customer type rules apply as well.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Callable, Optional

from .accounts import (
    Account, AccountType, CustomerProfile, CustomerType,
    AccountRequest, SavingsAccountRequest, CheckingAccountRequest, FixedTermAccountRequest
)
from .config import LedgerConfig, get_config
from .directory import CustomerDirectory, CustomerDetails
from .exceptions import ValidationError, CustomerNotFoundError
from .logging_config import get_logger, log_action
from .repositories import AccountStore


def _unique(values) -> list:
    return list(dict.fromkeys(values or []))


class AccountRulesEngine:
    """
    Opens savings, checking and fixed-term accounts.

    The three request dataclasses form a closed set; create_account() is the
    single factory that turns any of them into the canonical Account shape.
    """

    def __init__(
        self,
        account_store: AccountStore,
        config: Optional[LedgerConfig] = None,
        directory: Optional[CustomerDirectory] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.account_store = account_store
        self.config = config or get_config()
        self.vip_minimum_balance = Decimal(self.config.vip_minimum_balance)
        self.default_transaction_commission = Decimal(self.config.default_transaction_commission)
        self.directory = directory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("ledger.rules")

    def _reject(self, request: AccountRequest, reason: str) -> ValidationError:
        log_action(
            self.logger, "warning", f"Account creation rejected: {reason}",
            action="create_account", resource=f"customer:{request.customer_id}",
            extra={"account_type": request.kind.value}
        )
        return ValidationError(reason)

    async def create_account(self, request: AccountRequest) -> Account:
        """
        Validate and open an account of the request's kind

        Args:
            request: SavingsAccountRequest, CheckingAccountRequest or FixedTermAccountRequest

        Returns:
            The stored Account, including its store-assigned id

        Raises:
            ValidationError: If a business rule rejects the request
            CustomerNotFoundError: If a directory is configured and has no such customer
        """
        if not isinstance(request, (SavingsAccountRequest, CheckingAccountRequest,
                                    FixedTermAccountRequest)):
            raise ValidationError(f"Unsupported account request: {type(request).__name__}")

        if not request.customer_id:
            raise self._reject(request, "Customer id is required")

        customer = None
        if self.directory is not None:
            customer = await self._resolve_customer(request)

        if isinstance(request, SavingsAccountRequest):
            account = await self._build_savings(request, customer)
        elif isinstance(request, CheckingAccountRequest):
            account = await self._build_checking(request, customer)
        else:
            account = self._build_fixed_term(request)

        if customer is not None:
            account.customer_type = customer.type

        account = await self.account_store.save(account)

        log_action(
            self.logger, "info", f"Account created: {account.account_type.value}",
            action="create_account", resource=f"account:{account.id}",
            extra={
                "account_id": account.id,
                "customer_id": account.customer_id,
                "account_type": account.account_type.value,
                "customer_profile": account.customer_profile.value if account.customer_profile else None,
                "balance": str(account.balance)
            }
        )
        return account

    async def create_savings_account(self, request: SavingsAccountRequest) -> Account:
        return await self.create_account(request)

    async def create_checking_account(self, request: CheckingAccountRequest) -> Account:
        return await self.create_account(request)

    async def create_fixed_term_account(self, request: FixedTermAccountRequest) -> Account:
        return await self.create_account(request)

    async def _resolve_customer(self, request: AccountRequest) -> CustomerDetails:
        """Look up the customer and apply customer type rules"""
        customer = await self.directory.get_customer_details(request.customer_id)
        if customer is None:
            raise CustomerNotFoundError(request.customer_id)

        if customer.type == CustomerType.PERSONAL:
            existing = await self.account_store.find_by_customer_id(request.customer_id)
            if any(account.account_type == request.kind for account in existing):
                raise self._reject(request, "Personal customers can only have one account of each type")

        elif customer.type == CustomerType.BUSINESS:
            if request.kind in (AccountType.SAVINGS, AccountType.FIXED_TERM):
                raise self._reject(request, "Business customers cannot have savings or fixed term accounts")
            if not request.authorized_signers:
                raise self._reject(request, "Business accounts must have at least one authorized signer")

        return customer

    async def _build_savings(
        self,
        request: SavingsAccountRequest,
        customer: Optional[CustomerDetails]
    ) -> Account:
        profile = request.customer_profile or (customer.profile if customer else None)
        if profile is None:
            raise self._reject(request, "Customer profile is required for savings accounts")
        if request.balance is None or request.balance < Decimal('0'):
            raise self._reject(request, "Initial balance must not be negative")
        if request.monthly_transaction_limit is None or request.monthly_transaction_limit < 0:
            raise self._reject(request, "Monthly transaction limit is required")
        if request.max_monthly_movements is not None and request.max_monthly_movements < 1:
            raise self._reject(request, "Maximum monthly movements must be positive")

        minimum_daily_balance = None
        has_required_credit_card = None
        if profile == CustomerProfile.VIP:
            has_required_credit_card = request.has_required_credit_card
            if has_required_credit_card is None and self.directory is not None:
                has_required_credit_card = await self.directory.has_credit_card(request.customer_id)
            if not has_required_credit_card:
                raise self._reject(request, "Credit card required: VIP accounts require an active credit card")
            if request.balance < self.vip_minimum_balance:
                raise self._reject(
                    request,
                    f"Minimum balance not met: VIP accounts require a minimum balance of {self.vip_minimum_balance}"
                )
            minimum_daily_balance = self.vip_minimum_balance

        account = Account(
            account_type=AccountType.SAVINGS,
            customer_id=request.customer_id,
            customer_profile=profile,
            balance=request.balance,
            authorized_signers=_unique(request.authorized_signers),
            monthly_transaction_limit=request.monthly_transaction_limit,
            transactions_performed=0,
            transaction_commission=self.default_transaction_commission,
            minimum_daily_balance=minimum_daily_balance,
            has_required_credit_card=has_required_credit_card,
            max_monthly_movements=request.max_monthly_movements,
        )
        self._open(account)
        account.record_balance(account.created_at, self.config.balance_timestamp_format)
        return account

    async def _build_checking(
        self,
        request: CheckingAccountRequest,
        customer: Optional[CustomerDetails]
    ) -> Account:
        if request.balance is None or request.balance <= Decimal('0'):
            raise self._reject(request, "Initial balance must be positive")
        if request.maintenance_fee is None or request.maintenance_fee <= Decimal('0'):
            raise self._reject(request, "Maintenance fee must be positive")

        profile = customer.profile if customer else None
        maintenance_fee_waived = None
        if profile == CustomerProfile.PYME:
            if not await self.directory.has_credit_card(request.customer_id):
                raise self._reject(request, "PYME customers must have a credit card to open a checking account")
            maintenance_fee_waived = True

        account = Account(
            account_type=AccountType.CHECKING,
            customer_id=request.customer_id,
            customer_profile=profile,
            balance=request.balance,
            authorized_signers=_unique(request.authorized_signers),
            maintenance_fee=request.maintenance_fee,
            maintenance_fee_waived=maintenance_fee_waived,
        )
        self._open(account)
        return account

    def _build_fixed_term(self, request: FixedTermAccountRequest) -> Account:
        if request.balance is None or request.balance <= Decimal('0'):
            raise self._reject(request, "Initial balance must be positive")
        # Any sign is accepted for the rate
        if request.interest_rate is None:
            raise self._reject(request, "Interest rate is required")
        if request.withdrawal_day is not None and not 1 <= request.withdrawal_day <= 31:
            raise self._reject(request, "Withdrawal day must be between 1 and 31")

        account = Account(
            account_type=AccountType.FIXED_TERM,
            customer_id=request.customer_id,
            balance=request.balance,
            authorized_signers=_unique(request.authorized_signers),
            interest_rate=request.interest_rate,
            withdrawal_day=request.withdrawal_day,
        )
        self._open(account)
        account.record_balance(account.created_at, self.config.balance_timestamp_format)
        return account

    def _open(self, account: Account) -> None:
        now = self._clock()
        account.created_at = now
        account.updated_at = now
        if self.config.reset_counters_monthly and account.transactions_performed is not None:
            account.last_counter_reset = now.date().replace(day=1)
