"""
Tests for storage backends, the async adapter and the record stores
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from account_ledger.async_storage import AsyncStorageAdapter, create_async_storage
from account_ledger.repositories import AccountStore, DebitCardStore
from account_ledger.storage import InMemoryStorage, SQLiteStorage

from conftest import make_savings, make_card


class TestInMemoryStorage:
    """Test the in-memory backend"""

    def setup_method(self):
        self.storage = InMemoryStorage()

    def test_save_and_load(self):
        self.storage.save("accounts", "a1", {"id": "a1", "customer_id": "C1"})

        assert self.storage.load("accounts", "a1") == {"id": "a1", "customer_id": "C1"}
        assert self.storage.load("accounts", "missing") is None
        assert self.storage.count("accounts") == 1

    def test_records_are_copied(self):
        data = {"id": "a1", "signers": ["x"]}
        self.storage.save("accounts", "a1", data)
        data["signers"].append("y")

        loaded = self.storage.load("accounts", "a1")
        loaded["signers"].append("z")

        assert self.storage.load("accounts", "a1") == {"id": "a1", "signers": ["x"]}

    def test_find_and_delete(self):
        self.storage.save("accounts", "a1", {"customer_id": "C1"})
        self.storage.save("accounts", "a2", {"customer_id": "C2"})
        self.storage.save("accounts", "a3", {"customer_id": "C1"})

        assert len(self.storage.find("accounts", {"customer_id": "C1"})) == 2
        assert self.storage.delete("accounts", "a1") is True
        assert self.storage.delete("accounts", "a1") is False
        assert self.storage.find("accounts", {"customer_id": "C1"}) == [{"customer_id": "C1"}]

    def test_clear_table(self):
        self.storage.save("accounts", "a1", {})
        self.storage.clear_table("accounts")
        assert self.storage.load_all("accounts") == []


class TestSQLiteStorage:
    """Test the SQLite backend"""

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "ledger.db"
        storage = SQLiteStorage(path)
        storage.save("accounts", "a1", {"id": "a1", "balance": "10.00"})
        storage.close()

        reopened = SQLiteStorage(path)
        assert reopened.load("accounts", "a1") == {"id": "a1", "balance": "10.00"}
        reopened.close()

    def test_upsert_keeps_insertion_order(self):
        storage = SQLiteStorage()
        storage.save("accounts", "a1", {"n": 1})
        storage.save("accounts", "a2", {"n": 2})
        storage.save("accounts", "a1", {"n": 3})

        assert storage.load_all("accounts") == [{"n": 3}, {"n": 2}]
        assert storage.count("accounts") == 2
        assert storage.find("accounts", {"n": 2}) == [{"n": 2}]

    def test_delete_and_clear(self):
        storage = SQLiteStorage()
        storage.save("accounts", "a1", {})
        storage.save("accounts", "a2", {})

        assert storage.delete("accounts", "a1") is True
        assert storage.delete("accounts", "a1") is False
        storage.clear_table("accounts")
        assert storage.count("accounts") == 0


class TestAsyncStorage:
    """Test the async adapter and the storage factory"""

    @pytest_asyncio.fixture
    async def storage(self):
        storage = AsyncStorageAdapter(InMemoryStorage())
        yield storage
        await storage.close()

    @pytest.mark.asyncio
    async def test_crud(self, storage):
        await storage.save("accounts", "a1", {"customer_id": "C1"})

        assert await storage.load("accounts", "a1") == {"customer_id": "C1"}
        assert await storage.find("accounts", {"customer_id": "C1"}) == [{"customer_id": "C1"}]
        assert await storage.count("accounts") == 1
        assert await storage.delete("accounts", "a1") is True
        assert await storage.load_all("accounts") == []

    def test_factory_memory(self):
        storage = create_async_storage("memory")
        assert isinstance(storage.backend, InMemoryStorage)

    def test_factory_sqlite(self, tmp_path):
        storage = create_async_storage("sqlite", str(tmp_path / "ledger.db"))
        assert isinstance(storage.backend, SQLiteStorage)
        storage.backend.close()

    def test_factory_reads_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LEDGER_STORAGE_TYPE", "sqlite")
        monkeypatch.setenv("LEDGER_SQLITE_PATH", str(tmp_path / "env.db"))

        storage = create_async_storage()

        assert isinstance(storage.backend, SQLiteStorage)
        assert storage.backend.db_path == str(tmp_path / "env.db")
        storage.backend.close()

    def test_factory_rejects_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported storage type: postgres"):
            create_async_storage("postgres")


class TestStores:
    """Test the account and debit card stores"""

    @pytest.mark.asyncio
    async def test_account_store_assigns_id(self):
        store = AccountStore(AsyncStorageAdapter(SQLiteStorage()))

        account = await store.save(make_savings(balance="12.34"))

        assert account.id is not None
        assert account.created_at is not None
        loaded = await store.find_by_id(account.id)
        assert loaded.balance == Decimal("12.34")
        assert loaded == account
        assert await store.find_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_account_store_by_customer(self):
        store = AccountStore()
        first = await store.save(make_savings(customer_id="C1"))
        await store.save(make_savings(customer_id="C2"))

        assert await store.find_by_customer_id("C1") == [first]
        assert await store.delete_by_id(first.id) is True
        assert await store.find_by_customer_id("C1") == []

    @pytest.mark.asyncio
    async def test_card_store(self):
        store = DebitCardStore()
        card = await store.save(make_card("A", ["B"], card_number="9999"))

        assert card.id is not None
        assert await store.find_by_id(card.id) == card
        assert await store.find_by_card_number("9999") == card
        assert await store.find_by_card_number("0000") is None
