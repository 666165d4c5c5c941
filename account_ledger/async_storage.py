"""
Async Storage Backend Module

Async storage interface used by the account and debit card stores, with an
adapter that runs any synchronous backend off the event loop.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
import asyncio
import os

from .storage import StorageInterface, InMemoryStorage, SQLiteStorage


class AsyncStorageInterface(ABC):
    """Abstract interface for async storage backends"""

    @abstractmethod
    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    async def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    async def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    async def close(self) -> None:
        """Close storage connection (default no-op)"""
        pass


class AsyncStorageAdapter(AsyncStorageInterface):
    """
    Async wrapper around a synchronous StorageInterface.

    Every call is one round trip executed in a worker thread, so a save or a
    load is atomic per record. Nothing spans several calls.
    """

    def __init__(self, sync_storage: Optional[StorageInterface] = None):
        self._sync_storage = sync_storage if sync_storage is not None else InMemoryStorage()
        self._lock = asyncio.Lock()

    @property
    def backend(self) -> StorageInterface:
        return self._sync_storage

    async def _run(self, func, *args):
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        await self._run(self._sync_storage.save, table, record_id, data)

    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        return await self._run(self._sync_storage.load, table, record_id)

    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        return await self._run(self._sync_storage.load_all, table)

    async def delete(self, table: str, record_id: str) -> bool:
        return await self._run(self._sync_storage.delete, table, record_id)

    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self._run(self._sync_storage.find, table, filters)

    async def count(self, table: str) -> int:
        return await self._run(self._sync_storage.count, table)

    async def clear_table(self, table: str) -> None:
        await self._run(self._sync_storage.clear_table, table)

    async def close(self) -> None:
        await asyncio.to_thread(self._sync_storage.close)


def create_async_storage(storage_type: str = None, sqlite_path: str = None) -> AsyncStorageInterface:
    """Factory function to create async storage instances"""

    if storage_type is None:
        storage_type = os.getenv('LEDGER_STORAGE_TYPE', 'memory')

    if storage_type.lower() == 'sqlite':
        if sqlite_path is None:
            sqlite_path = os.getenv('LEDGER_SQLITE_PATH', 'ledger.db')
        return AsyncStorageAdapter(SQLiteStorage(sqlite_path))

    if storage_type.lower() != 'memory':
        raise ValueError(f"Unsupported storage type: {storage_type}")

    return AsyncStorageAdapter(InMemoryStorage())
