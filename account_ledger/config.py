"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings


class LedgerConfig(BaseSettings):
    """Account ledger configuration"""

    # Business rules
    vip_minimum_balance: Decimal = Decimal("1000")
    default_transaction_commission: Decimal = Decimal("1.0")
    balance_timestamp_format: str = "%Y-%m-%dT%H:%M:%S"
    reset_counters_monthly: bool = False  # No automatic monthly reset by default
    enforce_movement_limit: bool = False  # Hard cap on savings withdrawals per month
    enforce_withdrawal_day: bool = False  # Fixed-term accounts only transact on their day

    # Concurrency
    serialize_account_writes: bool = True  # Per-account asyncio.Lock around read-modify-write

    # Storage configuration
    storage_type: str = "memory"  # memory or sqlite
    sqlite_path: str = "ledger.db"

    # Customer / credit card directory (empty = no directory)
    customer_service_url: str = ""
    credit_card_service_url: str = ""
    directory_timeout: float = 2.0

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
