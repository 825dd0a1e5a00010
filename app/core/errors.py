"""
Payment error taxonomy.

Every error raised by the payment engine or the query resolver derives from
PaymentError and carries the HTTP status and the message sent back to the
caller as ``{"errorMessage": ...}``.
"""

from typing import Optional


class PaymentError(Exception):
    """Base class for errors surfaced by the payment services."""

    status_code = 500
    message = "payment failed"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(PaymentError):
    """Malformed input, non-positive amount or unknown payment type."""

    status_code = 400
    message = "invalid request"


class ReferenceConflictError(ValidationError):
    """Reference already recorded for a different account, amount or type."""

    status_code = 409
    message = "reference already used for a different payment"


class NotFoundError(PaymentError):
    status_code = 404
    message = "not found"


class AccountNotFoundError(NotFoundError):
    message = "account not found"


class ReferenceNotFoundError(NotFoundError):
    message = "reference not found"


class InsufficientFundsError(PaymentError):
    # Client error: the request can never succeed against the current balance.
    status_code = 400
    message = "insufficient funds"


class PersistenceError(PaymentError):
    """A store operation failed or timed out."""

    status_code = 503
    message = "ledger store unavailable"


class TransactionPersistFailure(PersistenceError):
    """The transaction insert failed; the balance was not touched."""

    status_code = 500
    message = "error creating transaction record"


class BalanceUpdateFailure(PersistenceError):
    """
    The transaction was recorded but the balance update failed.

    The ledger now holds a SUCCESS transaction whose effect is missing from
    the account balance. ``reference`` identifies it for reconciliation.
    """

    status_code = 500
    message = "error updating balance"

    def __init__(self, reference: str, account_id: str, message: Optional[str] = None):
        self.reference = reference
        self.account_id = account_id
        super().__init__(message)
