"""
Customer Directory Client Module

REST client for the customer and credit card services consulted when an
account is opened. Lookups never raise on transport errors: a failed call is
logged and downgraded to "not found" / False so account creation degrades
safely instead of failing hard.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
import logging

import httpx

from .accounts import CustomerProfile, CustomerType

logger = logging.getLogger("ledger.directory")


@dataclass
class CustomerDetails:
    """Customer record as returned by the customer service"""
    id: str
    document_number: Optional[str] = None
    type: Optional[CustomerType] = None
    profile: Optional[CustomerProfile] = None
    name: Optional[str] = None

    @classmethod
    def from_response(cls, data: dict) -> 'CustomerDetails':
        """Parse the customer service payload (camelCase keys)"""
        name = data.get("name") or data.get("businessName")
        if not name and (data.get("firstName") or data.get("lastName")):
            name = " ".join(p for p in (data.get("firstName"), data.get("lastName")) if p)
        return cls(
            id=data["id"],
            document_number=data.get("documentNumber"),
            type=CustomerType(data["type"]) if data.get("type") else None,
            profile=CustomerProfile(data["profile"]) if data.get("profile") else None,
            name=name,
        )


class CustomerDirectory(ABC):
    """Lookup surface of the customer and credit card services"""

    @abstractmethod
    async def customer_exists(self, customer_id: str) -> bool:
        pass

    @abstractmethod
    async def get_customer_details(self, customer_id: str) -> Optional[CustomerDetails]:
        pass

    @abstractmethod
    async def has_credit_card(self, customer_id: str) -> bool:
        pass

    async def close(self) -> None:
        pass


class CustomerDirectoryClient(CustomerDirectory):
    """httpx client for the customer and credit card services"""

    def __init__(
        self,
        customer_service_url: str,
        credit_card_service_url: str,
        timeout: float = 2.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.customer_service_url = customer_service_url.rstrip("/")
        self.credit_card_service_url = credit_card_service_url.rstrip("/")
        self.timeout = timeout
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def customer_exists(self, customer_id: str) -> bool:
        logger.info(f"Checking if customer exists with id: {customer_id}")
        try:
            response = await self._client.get(f"{self.customer_service_url}/customers/{customer_id}")
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error checking customer existence: {e}")
            return False

    async def get_customer_details(self, customer_id: str) -> Optional[CustomerDetails]:
        logger.info(f"Getting customer details for id: {customer_id}")
        try:
            response = await self._client.get(f"{self.customer_service_url}/customers/{customer_id}")
            response.raise_for_status()
            return CustomerDetails.from_response(response.json())
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error(f"Error getting customer details: {e}")
            return None

    async def has_credit_card(self, customer_id: str) -> bool:
        logger.info(f"Checking if customer {customer_id} has a credit card")
        try:
            response = await self._client.get(
                f"{self.credit_card_service_url}/credit-cards/customer/{customer_id}/exists"
            )
            response.raise_for_status()
            return response.json() is True
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error checking credit card existence: {e}")
            return False

    async def close(self) -> None:
        """Close the HTTP client"""
        await self._client.aclose()


class InMemoryCustomerDirectory(CustomerDirectory):
    """Directory backed by a dict, for tests and local runs"""

    def __init__(self):
        self._customers: Dict[str, CustomerDetails] = {}
        self._credit_cards: Dict[str, bool] = {}

    def register(self, details: CustomerDetails, has_credit_card: bool = False) -> None:
        self._customers[details.id] = details
        self._credit_cards[details.id] = has_credit_card

    async def customer_exists(self, customer_id: str) -> bool:
        return customer_id in self._customers

    async def get_customer_details(self, customer_id: str) -> Optional[CustomerDetails]:
        return self._customers.get(customer_id)

    async def has_credit_card(self, customer_id: str) -> bool:
        return self._credit_cards.get(customer_id, False)
