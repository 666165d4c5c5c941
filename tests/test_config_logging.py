"""
Tests for configuration, structured logging, errors and service wiring
"""

import json
import logging
from decimal import Decimal

import pytest

from account_ledger.bootstrap import build_services, create_directory
from account_ledger.config import LedgerConfig
from account_ledger.directory import CustomerDirectoryClient
from account_ledger.exceptions import (
    LedgerError, NotFoundError, AccountNotFoundError, CustomerNotFoundError,
    ValidationError, http_status_for
)
from account_ledger.logging_config import JSONFormatter, setup_logging, log_action
from account_ledger.storage import SQLiteStorage


class TestLedgerConfig:
    """Test environment-driven configuration"""

    def test_defaults(self, monkeypatch):
        for name in ("LEDGER_VIP_MINIMUM_BALANCE", "LEDGER_DEFAULT_TRANSACTION_COMMISSION",
                     "LEDGER_SERIALIZE_ACCOUNT_WRITES", "LEDGER_STORAGE_TYPE"):
            monkeypatch.delenv(name, raising=False)

        config = LedgerConfig()

        assert config.vip_minimum_balance == Decimal("1000")
        assert config.default_transaction_commission == Decimal("1.0")
        assert config.balance_timestamp_format == "%Y-%m-%dT%H:%M:%S"
        assert config.serialize_account_writes is True
        assert config.reset_counters_monthly is False
        assert config.storage_type == "memory"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_VIP_MINIMUM_BALANCE", "2500")
        monkeypatch.setenv("LEDGER_DEFAULT_TRANSACTION_COMMISSION", "0.75")
        monkeypatch.setenv("LEDGER_SERIALIZE_ACCOUNT_WRITES", "false")

        config = LedgerConfig()

        assert config.vip_minimum_balance == Decimal("2500")
        assert config.default_transaction_commission == Decimal("0.75")
        assert config.serialize_account_writes is False


class TestStructuredLogging:
    """Test JSON log output"""

    def test_json_formatter(self):
        record = logging.LogRecord("ledger.test", logging.INFO, __file__, 1, "Deposit applied", (), None)
        record.action = "deposit"
        record.resource = "account:a1"
        record.extra = {"amount": Decimal("10.00")}

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "ledger.test"
        assert entry["message"] == "Deposit applied"
        assert entry["action"] == "deposit"
        assert entry["resource"] == "account:a1"
        assert entry["extra"] == {"amount": "10.00"}
        assert "correlation_id" not in entry

    def test_setup_logging(self, tmp_path):
        log_file = tmp_path / "ledger.log"
        logger = setup_logging("DEBUG", logger_name="ledger_setup_test", log_file=str(log_file))

        log_action(logger, "info", "Account created", action="create_account",
                   resource="account:a1", correlation_id="req-1")
        for handler in logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip())
        assert entry["message"] == "Account created"
        assert entry["correlation_id"] == "req-1"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

        setup_logging("INFO", logger_name="ledger_setup_test", log_format="text")
        assert len(logger.handlers) == 1
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

    def test_log_action_attaches_fields(self, caplog):
        logger = logging.getLogger("ledger.test.actions")
        caplog.set_level(logging.INFO, logger="ledger.test.actions")

        log_action(logger, "warning", "Withdrawal rejected", action="withdraw",
                   resource="account:a1", extra={"amount": "5"})

        record = caplog.records[-1]
        assert record.levelname == "WARNING"
        assert record.action == "withdraw"
        assert record.resource == "account:a1"
        assert record.extra == {"amount": "5"}

    def test_log_action_respects_level(self, caplog):
        logger = logging.getLogger("ledger.test.quiet")
        caplog.set_level(logging.WARNING, logger="ledger.test.quiet")

        log_action(logger, "info", "Not emitted")

        assert not [r for r in caplog.records if r.name == "ledger.test.quiet"]


class TestErrors:
    """Test the error hierarchy and status mapping"""

    def test_hierarchy(self):
        assert issubclass(AccountNotFoundError, NotFoundError)
        assert issubclass(CustomerNotFoundError, NotFoundError)
        assert issubclass(ValidationError, LedgerError)

    def test_messages(self):
        assert str(AccountNotFoundError("a1")) == "Account not found with id: a1"
        error = ValidationError("Insufficient funds", account_id="a1")
        assert error.reason == "Insufficient funds"
        assert error.account_id == "a1"

    @pytest.mark.parametrize("error,status", [
        (ValidationError("bad"), 400),
        (AccountNotFoundError("a1"), 404),
        (CustomerNotFoundError("c1"), 404),
        (NotFoundError("Account not found"), 404),
        (LedgerError("boom"), 500),
        (RuntimeError("storage down"), 500),
    ])
    def test_http_status(self, error, status):
        assert http_status_for(error) == status


class TestServiceWiring:
    """Test building services from configuration"""

    def test_no_directory_without_urls(self):
        assert create_directory(LedgerConfig(customer_service_url="", credit_card_service_url="")) is None
        assert create_directory(LedgerConfig(
            customer_service_url="http://customers", credit_card_service_url=""
        )) is None

    @pytest.mark.asyncio
    async def test_http_directory_from_urls(self):
        config = LedgerConfig(
            customer_service_url="http://customers",
            credit_card_service_url="http://cards",
            directory_timeout=1.5
        )

        services = build_services(config=config)

        assert isinstance(services.directory, CustomerDirectoryClient)
        assert services.directory.timeout == 1.5
        assert services.rules.directory is services.directory
        await services.close()

    @pytest.mark.asyncio
    async def test_sqlite_services(self, tmp_path):
        config = LedgerConfig(storage_type="sqlite", sqlite_path=str(tmp_path / "ledger.db"))

        services = build_services(config=config)

        assert isinstance(services.storage.backend, SQLiteStorage)
        assert services.ledger.config is config
        await services.close()
