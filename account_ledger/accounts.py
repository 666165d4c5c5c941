"""
Account Module

The balance-bearing account record, the debit card that routes payments over
a customer's accounts, their enums, and the kind-specific creation requests
consumed by the rules engine. Savings, checking and fixed-term accounts share
one Account shape; only the fields of the account's kind are ever populated.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Union, Any
from enum import Enum


class AccountType(Enum):
    """Account kinds"""
    SAVINGS = "SAVINGS"
    CHECKING = "CHECKING"
    FIXED_TERM = "FIXED_TERM"


class CustomerProfile(Enum):
    """Customer profiles that modify fee and limit rules"""
    REGULAR = "REGULAR"
    VIP = "VIP"
    PYME = "PYME"


class CustomerType(Enum):
    """Customer types reported by the customer directory"""
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert to Decimal through str so floats keep their printed value"""
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_balance_timestamp(moment: datetime, timestamp_format: str = "%Y-%m-%dT%H:%M:%S") -> str:
    """Render a daily balance key, truncated to whole seconds"""
    return moment.strftime(timestamp_format)


@dataclass
class Account:
    """
    Bank account with its current balance and daily balance history.

    daily_balances maps a seconds-resolution timestamp to the balance right
    after each mutating operation. It is None on legacy records and is created
    on the first write through record_balance().
    """
    account_type: AccountType
    customer_id: str
    balance: Decimal
    id: Optional[str] = None
    customer_profile: Optional[CustomerProfile] = None
    customer_type: Optional[CustomerType] = None
    authorized_signers: List[str] = field(default_factory=list)

    # Savings
    monthly_transaction_limit: Optional[int] = None
    transactions_performed: Optional[int] = None
    transaction_commission: Optional[Decimal] = None
    minimum_daily_balance: Optional[Decimal] = None
    has_required_credit_card: Optional[bool] = None
    max_monthly_movements: Optional[int] = None

    # Checking
    maintenance_fee: Optional[Decimal] = None
    maintenance_fee_waived: Optional[bool] = None

    # Fixed term
    interest_rate: Optional[Decimal] = None
    withdrawal_day: Optional[int] = None

    daily_balances: Optional[Dict[str, Decimal]] = None
    last_counter_reset: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.balance = to_decimal(self.balance)
        self.transaction_commission = to_decimal(self.transaction_commission)
        self.minimum_daily_balance = to_decimal(self.minimum_daily_balance)
        self.maintenance_fee = to_decimal(self.maintenance_fee)
        self.interest_rate = to_decimal(self.interest_rate)

    @property
    def is_pyme(self) -> bool:
        return self.customer_profile == CustomerProfile.PYME

    @property
    def commission_applies(self) -> bool:
        """Check if the next withdrawal pays the transaction commission"""
        if self.is_pyme or self.monthly_transaction_limit is None:
            return False
        return (self.transactions_performed or 0) >= self.monthly_transaction_limit

    def commission_due(self) -> Decimal:
        """Commission charged on the next withdrawal"""
        if self.commission_applies and self.transaction_commission is not None:
            return self.transaction_commission
        return Decimal('0')

    def maintenance_fee_due(self) -> Decimal:
        """Maintenance fee charged on each checking withdrawal unless waived"""
        if (self.account_type == AccountType.CHECKING
                and self.maintenance_fee is not None
                and not self.maintenance_fee_waived):
            return self.maintenance_fee
        return Decimal('0')

    @property
    def remaining_free_transactions(self) -> Optional[int]:
        if self.monthly_transaction_limit is None:
            return None
        return max(0, self.monthly_transaction_limit - (self.transactions_performed or 0))

    def has_sufficient_funds(self, amount: Decimal) -> bool:
        return self.balance >= amount

    @property
    def movement_limit_reached(self) -> bool:
        """Check if a savings account has used up its monthly movements"""
        if self.max_monthly_movements is None:
            return False
        return (self.transactions_performed or 0) >= self.max_monthly_movements

    def is_withdrawal_day(self, today: date) -> bool:
        """Fixed-term accounts with a withdrawal day only transact on that day of the month"""
        if self.account_type != AccountType.FIXED_TERM or self.withdrawal_day is None:
            return True
        return today.day == self.withdrawal_day

    def record_balance(self, moment: datetime, timestamp_format: str = "%Y-%m-%dT%H:%M:%S") -> None:
        """Append a snapshot of the current balance, initializing the history if absent"""
        if self.daily_balances is None:
            self.daily_balances = {}
        self.daily_balances[format_balance_timestamp(moment, timestamp_format)] = self.balance
        self.updated_at = moment

    def reset_monthly_counter(self, today: date) -> bool:
        """Reset transactions_performed when the last reset predates this month"""
        first_of_month = today.replace(day=1)
        if self.last_counter_reset is not None and self.last_counter_reset >= first_of_month:
            return False
        if self.transactions_performed is not None:
            self.transactions_performed = 0
        self.last_counter_reset = first_of_month
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a storage dict, omitting unset fields"""
        result: Dict[str, Any] = {
            "id": self.id,
            "account_type": self.account_type.value,
            "customer_id": self.customer_id,
            "balance": str(self.balance),
            "authorized_signers": list(self.authorized_signers),
        }
        if self.customer_profile:
            result["customer_profile"] = self.customer_profile.value
        if self.customer_type:
            result["customer_type"] = self.customer_type.value

        for name in ("monthly_transaction_limit", "transactions_performed",
                     "has_required_credit_card", "max_monthly_movements",
                     "maintenance_fee_waived", "withdrawal_day"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value

        for name in ("transaction_commission", "minimum_daily_balance",
                     "maintenance_fee", "interest_rate"):
            value = getattr(self, name)
            if value is not None:
                result[name] = str(value)

        if self.daily_balances is not None:
            result["daily_balances"] = {k: str(v) for k, v in self.daily_balances.items()}
        if self.last_counter_reset:
            result["last_counter_reset"] = self.last_counter_reset.isoformat()
        if self.created_at:
            result["created_at"] = self.created_at.isoformat()
        if self.updated_at:
            result["updated_at"] = self.updated_at.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Build an Account from a storage dict"""
        daily_balances = data.get("daily_balances")
        if daily_balances is not None:
            daily_balances = {k: Decimal(v) for k, v in daily_balances.items()}

        def _date(key, parser):
            value = data.get(key)
            return parser(value) if value else None

        return cls(
            id=data.get("id"),
            account_type=AccountType(data["account_type"]),
            customer_id=data["customer_id"],
            balance=Decimal(data["balance"]),
            customer_profile=(CustomerProfile(data["customer_profile"])
                              if data.get("customer_profile") else None),
            customer_type=(CustomerType(data["customer_type"])
                           if data.get("customer_type") else None),
            authorized_signers=list(data.get("authorized_signers") or []),
            monthly_transaction_limit=data.get("monthly_transaction_limit"),
            transactions_performed=data.get("transactions_performed"),
            transaction_commission=data.get("transaction_commission"),
            minimum_daily_balance=data.get("minimum_daily_balance"),
            has_required_credit_card=data.get("has_required_credit_card"),
            max_monthly_movements=data.get("max_monthly_movements"),
            maintenance_fee=data.get("maintenance_fee"),
            maintenance_fee_waived=data.get("maintenance_fee_waived"),
            interest_rate=data.get("interest_rate"),
            withdrawal_day=data.get("withdrawal_day"),
            daily_balances=daily_balances,
            last_counter_reset=_date("last_counter_reset", date.fromisoformat),
            created_at=_date("created_at", datetime.fromisoformat),
            updated_at=_date("updated_at", datetime.fromisoformat),
        )


@dataclass
class DebitCard:
    """
    Debit card linked to one primary and several secondary accounts.

    secondary_account_ids is ordered: it is the fallback priority used when
    the primary account cannot cover a payment.
    """
    card_number: str
    customer_id: str
    primary_account_id: str
    secondary_account_ids: List[str] = field(default_factory=list)
    id: Optional[str] = None

    @property
    def candidate_account_ids(self) -> List[str]:
        """Accounts to try for a payment, primary first"""
        return [self.primary_account_id] + list(self.secondary_account_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "card_number": self.card_number,
            "customer_id": self.customer_id,
            "primary_account_id": self.primary_account_id,
            "secondary_account_ids": list(self.secondary_account_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DebitCard':
        return cls(
            id=data.get("id"),
            card_number=data["card_number"],
            customer_id=data["customer_id"],
            primary_account_id=data["primary_account_id"],
            secondary_account_ids=list(data.get("secondary_account_ids") or []),
        )


@dataclass
class DebitCardRequest:
    """Debit card issuing request"""
    card_number: str
    customer_id: str
    primary_account_id: str
    secondary_account_ids: List[str] = field(default_factory=list)


@dataclass
class SavingsAccountRequest:
    """Savings account opening request"""
    kind: ClassVar[AccountType] = AccountType.SAVINGS

    customer_id: str
    balance: Decimal
    monthly_transaction_limit: Optional[int]
    customer_profile: Optional[CustomerProfile] = None
    has_required_credit_card: Optional[bool] = None
    max_monthly_movements: Optional[int] = None
    authorized_signers: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.balance = to_decimal(self.balance)


@dataclass
class CheckingAccountRequest:
    """Checking account opening request"""
    kind: ClassVar[AccountType] = AccountType.CHECKING

    customer_id: str
    balance: Decimal
    maintenance_fee: Decimal
    authorized_signers: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.balance = to_decimal(self.balance)
        self.maintenance_fee = to_decimal(self.maintenance_fee)


@dataclass
class FixedTermAccountRequest:
    """Fixed-term deposit opening request"""
    kind: ClassVar[AccountType] = AccountType.FIXED_TERM

    customer_id: str
    balance: Decimal
    interest_rate: Decimal
    withdrawal_day: Optional[int] = None
    authorized_signers: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.balance = to_decimal(self.balance)
        self.interest_rate = to_decimal(self.interest_rate)


AccountRequest = Union[SavingsAccountRequest, CheckingAccountRequest, FixedTermAccountRequest]


@dataclass
class BalanceSummary:
    """Read-only balance view of one account"""
    account_id: str
    account_type: AccountType
    balance: Decimal
    transactions_performed: Optional[int]
    remaining_free_transactions: Optional[int]
    transaction_commission: Optional[Decimal]
    next_withdrawal_fee: Decimal
