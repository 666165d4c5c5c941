"""
Ledger Exceptions Module

Error hierarchy shared by the rules engine, ledger operations and payment
router. Each error carries the HTTP status the transport layer maps it to.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for all ledger errors"""
    status_code = 500


class NotFoundError(LedgerError):
    """Raised when an account, card or customer has no record"""
    status_code = 404


class AccountNotFoundError(NotFoundError):
    """Raised when an account id does not resolve to a stored account"""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found with id: {account_id}")


class CustomerNotFoundError(NotFoundError):
    """Raised when the customer directory has no record for a customer id"""

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found with id: {customer_id}")


class ValidationError(LedgerError):
    """Business rule violation with a human-readable reason"""
    status_code = 400

    def __init__(self, reason: str, account_id: Optional[str] = None):
        self.reason = reason
        self.account_id = account_id
        super().__init__(reason)


def http_status_for(exc: BaseException) -> int:
    """Map an exception to the status code the HTTP layer should return"""
    if isinstance(exc, LedgerError):
        return exc.status_code
    return 500
