"""
Service Wiring Module

Builds the stores, the optional customer directory and the services from a
LedgerConfig, the way the transport layer is expected to at startup.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .async_storage import AsyncStorageInterface, create_async_storage
from .config import LedgerConfig, get_config
from .debit_cards import PaymentRouter
from .directory import CustomerDirectory, CustomerDirectoryClient
from .ledger import LedgerOperations
from .logging_config import setup_logging
from .reporting import ReportingService
from .repositories import AccountStore, DebitCardStore
from .rules import AccountRulesEngine


@dataclass
class LedgerServices:
    """Everything the transport layer calls into"""
    config: LedgerConfig
    storage: AsyncStorageInterface
    account_store: AccountStore
    card_store: DebitCardStore
    rules: AccountRulesEngine
    ledger: LedgerOperations
    payments: PaymentRouter
    reporting: ReportingService
    directory: Optional[CustomerDirectory] = None

    async def close(self) -> None:
        if self.directory is not None:
            await self.directory.close()
        await self.storage.close()


def create_directory(config: LedgerConfig) -> Optional[CustomerDirectory]:
    """HTTP directory when both service URLs are configured, else None"""
    if not (config.customer_service_url and config.credit_card_service_url):
        return None
    return CustomerDirectoryClient(
        customer_service_url=config.customer_service_url,
        credit_card_service_url=config.credit_card_service_url,
        timeout=config.directory_timeout
    )


def build_services(
    config: Optional[LedgerConfig] = None,
    storage: Optional[AsyncStorageInterface] = None,
    directory: Optional[CustomerDirectory] = None,
    clock: Optional[Callable[[], datetime]] = None,
    configure_logging: bool = False
) -> LedgerServices:
    """
    Wire the ledger services

    Args:
        config: Configuration; the global instance when omitted
        storage: Async storage backend; built from config when omitted
        directory: Customer directory; built from config when omitted
        clock: Time source for snapshots and creation timestamps
        configure_logging: Install the structured log handler from config

    Returns:
        LedgerServices bundle
    """
    config = config or get_config()
    if configure_logging:
        setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    if storage is None:
        storage = create_async_storage(config.storage_type, config.sqlite_path)
    if directory is None:
        directory = create_directory(config)

    account_store = AccountStore(storage)
    card_store = DebitCardStore(storage)
    ledger = LedgerOperations(account_store, config=config, clock=clock)

    return LedgerServices(
        config=config,
        storage=storage,
        account_store=account_store,
        card_store=card_store,
        rules=AccountRulesEngine(account_store, config=config, directory=directory, clock=clock),
        ledger=ledger,
        payments=PaymentRouter(card_store, account_store, ledger),
        reporting=ReportingService(account_store),
        directory=directory
    )
