"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from account_ledger.accounts import (
    Account, AccountType, CustomerProfile, DebitCard
)
from account_ledger.bootstrap import build_services
from account_ledger.config import LedgerConfig
from account_ledger.async_storage import AsyncStorageAdapter
from account_ledger.storage import InMemoryStorage


class FakeClock:
    """Deterministic time source; every call advances one second"""

    def __init__(self, start: datetime = datetime(2024, 3, 15, 9, 30, 0, tzinfo=timezone.utc)):
        self.now = start
        self.step = timedelta(seconds=1)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """Configuration with the default business constants and no directory"""
    return LedgerConfig(
        vip_minimum_balance=Decimal("1000"),
        default_transaction_commission=Decimal("1.0"),
        serialize_account_writes=True,
        reset_counters_monthly=False,
        storage_type="memory",
        customer_service_url="",
        credit_card_service_url="",
    )


@pytest.fixture
def services(ledger_config, clock):
    return build_services(
        config=ledger_config,
        storage=AsyncStorageAdapter(InMemoryStorage()),
        clock=clock
    )


def make_savings(
    customer_id: str = "CUST001",
    balance: str = "100.00",
    profile: CustomerProfile = CustomerProfile.REGULAR,
    limit: int = 5,
    performed: int = 0,
    commission: str = "1.00",
) -> Account:
    """Savings account as the rules engine would have stored it"""
    return Account(
        account_type=AccountType.SAVINGS,
        customer_id=customer_id,
        balance=Decimal(balance),
        customer_profile=profile,
        monthly_transaction_limit=limit,
        transactions_performed=performed,
        transaction_commission=Decimal(commission),
    )


def make_checking(customer_id: str = "CUST001", balance: str = "100.00",
                  maintenance_fee: str = "2.50") -> Account:
    return Account(
        account_type=AccountType.CHECKING,
        customer_id=customer_id,
        balance=Decimal(balance),
        maintenance_fee=Decimal(maintenance_fee),
    )


def make_card(primary: str, secondaries=None, customer_id: str = "CUST001",
              card_number: str = "4111000011112222") -> DebitCard:
    return DebitCard(
        card_number=card_number,
        customer_id=customer_id,
        primary_account_id=primary,
        secondary_account_ids=list(secondaries or []),
    )
