"""
Typed errors raised by the ledger.

Every error carries a machine-readable ``code`` so the HTTP layer can map it
to a status without parsing messages::

    LedgerError
    +-- InvalidIntent        bad or missing input, rejected before any write
    +-- InsufficientFunds    debit refused by the overdraft policy
    +-- AccountNotFound
    +-- CardNotFound
    +-- ContactNotFound
    +-- DuplicateAccount     username or email already taken
    +-- PersistenceFailure   storage failed, the unit of work was rolled back

A contact that does not match a payment's recipient is not an error; the
ledger only logs it.
"""

from decimal import Decimal


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code: str = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidIntent(LedgerError):
    code = "INVALID_INTENT"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InsufficientFunds(LedgerError):
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, user_id: int, balance: Decimal, amount: Decimal):
        self.user_id = user_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient funds for account {user_id}: "
            f"balance {balance}, debit {amount}"
        )


class AccountNotFound(LedgerError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Account not found: {user_id}")


class CardNotFound(LedgerError):
    code = "CARD_NOT_FOUND"

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")


class ContactNotFound(LedgerError):
    code = "CONTACT_NOT_FOUND"

    def __init__(self, contact_id: int):
        self.contact_id = contact_id
        super().__init__(f"Contact not found: {contact_id}")


class DuplicateAccount(LedgerError):
    code = "DUPLICATE_ACCOUNT"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"An account with this {field} already exists")


class PersistenceFailure(LedgerError):
    """Storage failure. Nothing was applied, so the call is safe to retry."""

    code = "PERSISTENCE_FAILURE"
