"""
Abstract storage interfaces for the ledger.

The ledger service only talks to these interfaces, which lets the same
posting logic run against:
- MemoryLedgerStorage for tests and demos
- SqlLedgerStorage for PostgreSQL / SQLite in production

Balance changes go through a PostingUnit, never through the account store
directly, so every balance change is paired with a transaction record.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal

from payhub.ledger.records import (
    AccountRecord,
    AccountUpdate,
    CardRecord,
    ContactRecord,
    NewAccount,
    NewCard,
    NewTransaction,
    QrCodeRecord,
    TransactionRecord,
)


class PostingUnit(ABC):
    """
    One atomic unit of work scoped to a single account.

    Obtained from ``LedgerStorage.posting(user_id)``. While the unit is open
    no other unit for the same account can run. Everything written through
    it is committed when the ``with`` block exits normally and discarded if
    the block raises.
    """

    account: AccountRecord

    @property
    @abstractmethod
    def balance(self) -> Decimal:
        """Balance as seen inside the unit, including deltas applied so far."""
        ...

    @abstractmethod
    def latest_timestamp(self) -> datetime | None:
        """Latest timestamp assigned to any transaction of this account."""
        ...

    @abstractmethod
    def insert_transaction(self, new: NewTransaction, date: datetime) -> TransactionRecord:
        """Write an immutable transaction record and return it with its id."""
        ...

    @abstractmethod
    def apply_delta(self, signed_amount: Decimal) -> Decimal:
        """
        Add a signed amount to the account balance.

        No floor is enforced here; overdraft policy belongs to the caller.

        Returns:
            The new balance.

        Raises:
            AccountNotFound: if the account vanished.
        """
        ...


class AccountStore(ABC):
    @abstractmethod
    def create_account(self, new: NewAccount) -> AccountRecord:
        """
        Raises:
            DuplicateAccount: if the username or email is taken.
        """
        ...

    @abstractmethod
    def get_account(self, user_id: int) -> AccountRecord | None:
        ...

    @abstractmethod
    def get_account_by_username(self, username: str) -> AccountRecord | None:
        ...

    @abstractmethod
    def get_account_by_email(self, email: str) -> AccountRecord | None:
        ...

    @abstractmethod
    def get_balance(self, user_id: int) -> Decimal:
        """
        Raises:
            AccountNotFound: if the account does not exist.
        """
        ...

    @abstractmethod
    def update_account(self, user_id: int, update: AccountUpdate) -> AccountRecord:
        """
        Apply profile changes. Never touches the balance or credentials.

        Raises:
            AccountNotFound: if the account does not exist.
            DuplicateAccount: if the new email belongs to another account.
        """
        ...


class QrCodeStore(ABC):
    @abstractmethod
    def create_qr_code(self, user_id: int, qr_string: str, created_at: datetime) -> QrCodeRecord:
        """Issue a new active code; the user's previous codes are deactivated."""
        ...

    @abstractmethod
    def get_qr_code(self, user_id: int) -> QrCodeRecord | None:
        """The user's active code, or None."""
        ...


class ContactDirectory(ABC):
    @abstractmethod
    def add_contact(self, user_id: int, contact_user_id: int) -> ContactRecord:
        ...

    @abstractmethod
    def list_contacts(self, user_id: int) -> list[ContactRecord]:
        """Contacts of an owner, oldest first, joined to the payee's name."""
        ...

    @abstractmethod
    def find_by_display_name(self, user_id: int, display_name: str) -> ContactRecord | None:
        """
        First contact (lowest id) whose payee's ``"first last"`` equals
        ``display_name`` exactly, or None.
        """
        ...

    @abstractmethod
    def touch(self, contact_id: int, timestamp: datetime) -> bool:
        """Set ``last_paid``. Returns False if the contact does not exist."""
        ...


class CardStore(ABC):
    @abstractmethod
    def add_card(self, new: NewCard) -> CardRecord:
        """Insert a card; a default card clears the flag on the user's others."""
        ...

    @abstractmethod
    def get_card(self, card_id: int) -> CardRecord | None:
        ...

    @abstractmethod
    def list_cards(self, user_id: int) -> list[CardRecord]:
        ...

    @abstractmethod
    def delete_card(self, user_id: int, card_id: int) -> None:
        """
        Raises:
            CardNotFound: if the card is missing or owned by someone else.
        """
        ...

    @abstractmethod
    def set_default_card(self, user_id: int, card_id: int) -> CardRecord:
        """
        Make ``card_id`` the user's only default card, atomically.

        Raises:
            CardNotFound: if the card is missing or owned by someone else.
        """
        ...


class LedgerStorage(AccountStore, ContactDirectory, CardStore, QrCodeStore):
    """Everything the ledger service needs from a backend."""

    @abstractmethod
    def posting(self, user_id: int) -> AbstractContextManager[PostingUnit]:
        """
        Open an atomic unit for one account.

        Raises:
            AccountNotFound: on entry, if the account does not exist.
            PersistenceFailure: if the backend fails; nothing is applied.
        """
        ...

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> TransactionRecord | None:
        ...

    @abstractmethod
    def list_transactions(self, user_id: int, limit: int | None = None) -> list[TransactionRecord]:
        """Newest first by date, ties broken by descending id."""
        ...
