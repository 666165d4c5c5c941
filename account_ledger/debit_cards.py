"""
Debit Card Module

Issues debit cards over a customer's accounts, links and unlinks accounts,
and routes card payments: the primary account is tried first, then each
secondary account in its stored order, until one covers the payment.
"""

from decimal import Decimal
from typing import List, Optional
import asyncio

from .accounts import DebitCard, DebitCardRequest, to_decimal
from .exceptions import AccountNotFoundError, ValidationError
from .ledger import LedgerOperations, DebitResult
from .logging_config import get_logger, log_action
from .repositories import AccountStore, DebitCardStore


class PaymentRouter:
    """
    Debit card issuing, account linking and payment fallback routing
    """

    def __init__(
        self,
        card_store: DebitCardStore,
        account_store: AccountStore,
        ledger: LedgerOperations
    ):
        self.card_store = card_store
        self.account_store = account_store
        self.ledger = ledger
        self.logger = get_logger("ledger.payments")

    async def get_card(self, card_id: str) -> DebitCard:
        card = await self.card_store.find_by_id(card_id)
        if card is None:
            raise ValidationError("Debit card not found")
        return card

    async def create_debit_card(self, request: DebitCardRequest) -> DebitCard:
        """
        Issue a debit card

        Every linked account is looked up concurrently and must belong to the
        card's customer.

        Raises:
            AccountNotFoundError: If a linked account does not exist
            ValidationError: If the card number is taken or an account has another owner
        """
        if await self.card_store.find_by_card_number(request.card_number):
            raise ValidationError(f"Debit card {request.card_number} already exists")

        secondary_ids = [
            account_id for account_id in dict.fromkeys(request.secondary_account_ids or [])
            if account_id != request.primary_account_id
        ]
        account_ids = [request.primary_account_id] + secondary_ids
        accounts = await asyncio.gather(
            *(self.account_store.find_by_id(account_id) for account_id in account_ids)
        )

        for account_id, account in zip(account_ids, accounts):
            if account is None:
                raise AccountNotFoundError(account_id)

        primary, secondaries = accounts[0], accounts[1:]
        if primary.customer_id != request.customer_id:
            raise ValidationError("Primary account must belong to the customer", account_id=primary.id)
        for account in secondaries:
            if account.customer_id != request.customer_id:
                raise ValidationError(
                    f"Secondary account {account.id} must belong to the customer",
                    account_id=account.id
                )

        card = await self.card_store.save(DebitCard(
            card_number=request.card_number,
            customer_id=request.customer_id,
            primary_account_id=request.primary_account_id,
            secondary_account_ids=secondary_ids
        ))

        log_action(
            self.logger, "info", "Debit card created",
            action="create_debit_card", resource=f"debit_card:{card.id}",
            extra={
                "customer_id": card.customer_id,
                "primary_account_id": card.primary_account_id,
                "secondary_account_ids": card.secondary_account_ids
            }
        )
        return card

    async def link_account(self, card_id: str, account_id: str, is_primary: bool = False) -> DebitCard:
        """
        Link an account to a card

        As primary, the account replaces the current primary and leaves the
        secondaries; the old primary is not re-added as a secondary. As
        secondary, it is appended unless already present or already primary.
        """
        card = await self.get_card(card_id)
        account = await self.account_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        if account.customer_id != card.customer_id:
            raise ValidationError("Account must belong to the same customer", account_id=account_id)

        if is_primary:
            card.primary_account_id = account_id
            card.secondary_account_ids = [a for a in card.secondary_account_ids if a != account_id]
        elif account_id != card.primary_account_id and account_id not in card.secondary_account_ids:
            card.secondary_account_ids.append(account_id)

        card = await self.card_store.save(card)
        log_action(
            self.logger, "info", "Account linked to debit card",
            action="link_account", resource=f"debit_card:{card_id}",
            extra={"account_id": account_id, "is_primary": is_primary}
        )
        return card

    async def unlink_account(self, card_id: str, account_id: str) -> DebitCard:
        """Remove a secondary account; unlinking a non-member returns the card unchanged"""
        card = await self.get_card(card_id)
        if card.primary_account_id == account_id:
            raise ValidationError(
                "Cannot unlink primary account. Link a new primary account first.",
                account_id=account_id
            )

        if account_id not in card.secondary_account_ids:
            return card

        card.secondary_account_ids = [a for a in card.secondary_account_ids if a != account_id]
        card = await self.card_store.save(card)
        log_action(
            self.logger, "info", "Account unlinked from debit card",
            action="unlink_account", resource=f"debit_card:{card_id}",
            extra={"account_id": account_id}
        )
        return card

    async def route_payment(self, card: DebitCard, amount: Decimal) -> List[DebitResult]:
        """
        Try each candidate account in order, stopping at the first success.

        Candidates are tried strictly one after another so a payment is never
        debited from two accounts. Returns every attempt made.
        """
        attempts = []
        for account_id in card.candidate_account_ids:
            result = await self.ledger.try_debit(account_id, amount)
            attempts.append(result)
            if result.succeeded:
                break
            self.logger.info(
                f"Payment from account {account_id} failed: {result.outcome.value}"
            )
        return attempts

    async def process_payment(self, card_number: str, amount: Decimal) -> bool:
        """
        Pay with a debit card

        Returns:
            True once an account covered the payment

        Raises:
            ValidationError: If the card does not exist or no linked account can pay
        """
        amount = to_decimal(amount)
        card = await self.card_store.find_by_card_number(card_number)
        if card is None:
            raise ValidationError("Debit card not found")

        attempts = await self.route_payment(card, amount)
        paid_by: Optional[DebitResult] = next((a for a in attempts if a.succeeded), None)

        if paid_by is None:
            log_action(
                self.logger, "warning", "Card payment declined",
                action="process_payment", resource=f"debit_card:{card.id}",
                extra={
                    "amount": str(amount),
                    "attempts": {a.account_id: a.outcome.value for a in attempts}
                }
            )
            raise ValidationError("Insufficient funds in all linked accounts")

        log_action(
            self.logger, "info", "Card payment processed",
            action="process_payment", resource=f"debit_card:{card.id}",
            extra={"amount": str(amount), "account_id": paid_by.account_id,
                   "attempts": len(attempts)}
        )
        return True
