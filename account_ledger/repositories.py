"""
Repository Module

Narrow async stores over the key/value storage backend: the Account Store
(find_by_id, save, find_by_customer_id, delete_by_id) and the DebitCard Store.
Each method is a single storage round trip.
"""

from datetime import datetime, timezone
from typing import List, Optional
import uuid

from .accounts import Account, DebitCard
from .async_storage import AsyncStorageInterface, AsyncStorageAdapter


class AccountStore:
    """Persists Account records; assigns an id on first save"""

    def __init__(self, storage: Optional[AsyncStorageInterface] = None):
        self.storage = storage if storage is not None else AsyncStorageAdapter()
        self.table_name = "accounts"

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        data = await self.storage.load(self.table_name, account_id)
        if data:
            return Account.from_dict(data)
        return None

    async def save(self, account: Account) -> Account:
        now = datetime.now(timezone.utc)
        if not account.id:
            account.id = str(uuid.uuid4())
        if account.created_at is None:
            account.created_at = now
        if account.updated_at is None:
            account.updated_at = now
        await self.storage.save(self.table_name, account.id, account.to_dict())
        return account

    async def find_by_customer_id(self, customer_id: str) -> List[Account]:
        records = await self.storage.find(self.table_name, {"customer_id": customer_id})
        return [Account.from_dict(data) for data in records]

    async def delete_by_id(self, account_id: str) -> bool:
        return await self.storage.delete(self.table_name, account_id)


class DebitCardStore:
    """Persists DebitCard records, looked up by id or card number"""

    def __init__(self, storage: Optional[AsyncStorageInterface] = None):
        self.storage = storage if storage is not None else AsyncStorageAdapter()
        self.table_name = "debit_cards"

    async def find_by_id(self, card_id: str) -> Optional[DebitCard]:
        data = await self.storage.load(self.table_name, card_id)
        if data:
            return DebitCard.from_dict(data)
        return None

    async def find_by_card_number(self, card_number: str) -> Optional[DebitCard]:
        records = await self.storage.find(self.table_name, {"card_number": card_number})
        if records:
            return DebitCard.from_dict(records[0])
        return None

    async def save(self, card: DebitCard) -> DebitCard:
        if not card.id:
            card.id = str(uuid.uuid4())
        await self.storage.save(self.table_name, card.id, card.to_dict())
        return card
