"""In-memory ledger storage for tests and demos."""

import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from payhub.ledger.errors import AccountNotFound, CardNotFound, DuplicateAccount, InvalidIntent
from payhub.ledger.money import round_money
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
from payhub.ledger.storage.base import LedgerStorage, PostingUnit


class _MemoryPostingUnit(PostingUnit):
    """Stages writes until the owning ``posting()`` block exits cleanly."""

    def __init__(self, storage: "MemoryLedgerStorage", account: AccountRecord):
        self.account = account
        self._storage = storage
        self._staged: list[TransactionRecord] = []
        self._delta = Decimal("0.00")

    @property
    def balance(self) -> Decimal:
        return round_money(self.account.balance + self._delta)

    def latest_timestamp(self) -> datetime | None:
        if self._staged:
            return self._staged[-1].date
        return self._storage._last_dates.get(self.account.id)

    def insert_transaction(self, new: NewTransaction, date: datetime) -> TransactionRecord:
        record = TransactionRecord.from_new(self._storage._next_id("transaction"), date, new)
        self._staged.append(record)
        return record

    def apply_delta(self, signed_amount: Decimal) -> Decimal:
        self._delta += signed_amount
        return self.balance

    def commit(self) -> None:
        storage = self._storage
        with storage._data_lock:
            for record in self._staged:
                storage._transactions[record.id] = record
            if self._staged:
                storage._last_dates[self.account.id] = self._staged[-1].date
            current = storage._accounts[self.account.id]
            storage._accounts[self.account.id] = replace(current, balance=self.balance)


class MemoryLedgerStorage(LedgerStorage):
    """
    Dict-backed storage.

    Each account has its own lock: units for one account serialize while
    units for different accounts run side by side. ``_data_lock`` only
    guards the short dict updates and is never held while a unit is open.
    Data is lost on restart.
    """

    def __init__(self):
        self._accounts: dict[int, AccountRecord] = {}
        self._transactions: dict[int, TransactionRecord] = {}
        self._contacts: dict[int, ContactRecord] = {}
        self._cards: dict[int, CardRecord] = {}
        self._qr_codes: dict[int, QrCodeRecord] = {}
        self._last_dates: dict[int, datetime] = {}

        self._counters = {
            "account": itertools.count(1),
            "transaction": itertools.count(1),
            "contact": itertools.count(1),
            "card": itertools.count(1),
            "qr_code": itertools.count(1),
        }
        self._data_lock = threading.RLock()
        self._registry_lock = threading.Lock()
        self._account_locks: dict[int, threading.Lock] = {}

    def _next_id(self, kind: str) -> int:
        with self._data_lock:
            return next(self._counters[kind])

    def _lock_for(self, user_id: int) -> threading.Lock:
        """Lock of an existing account; unknown ids never get an entry."""
        with self._registry_lock:
            if user_id not in self._accounts:
                raise AccountNotFound(user_id)
            return self._account_locks.setdefault(user_id, threading.Lock())

    # Accounts

    def create_account(self, new: NewAccount) -> AccountRecord:
        with self._data_lock:
            for account in self._accounts.values():
                if account.username == new.username:
                    raise DuplicateAccount("username")
                if account.email == new.email:
                    raise DuplicateAccount("email")

            account = AccountRecord(
                id=self._next_id("account"),
                username=new.username,
                email=new.email,
                first_name=new.first_name,
                last_name=new.last_name,
                balance=Decimal("0.00"),
                created_at=datetime.now(timezone.utc),
                hashed_password=new.hashed_password,
                phone=new.phone,
                address=new.address,
            )
            self._accounts[account.id] = account
            return account

    def get_account(self, user_id: int) -> AccountRecord | None:
        return self._accounts.get(user_id)

    def get_account_by_username(self, username: str) -> AccountRecord | None:
        with self._data_lock:
            return next((a for a in self._accounts.values() if a.username == username), None)

    def get_account_by_email(self, email: str) -> AccountRecord | None:
        with self._data_lock:
            return next((a for a in self._accounts.values() if a.email == email), None)

    def get_balance(self, user_id: int) -> Decimal:
        account = self._accounts.get(user_id)
        if account is None:
            raise AccountNotFound(user_id)
        return account.balance

    def update_account(self, user_id: int, update: AccountUpdate) -> AccountRecord:
        with self._lock_for(user_id):
            with self._data_lock:
                if update.email is not None:
                    for account in self._accounts.values():
                        if account.email == update.email and account.id != user_id:
                            raise DuplicateAccount("email")

                account = replace(self._accounts[user_id], **update.changes())
                self._accounts[user_id] = account
                return account

    # QR codes

    def create_qr_code(self, user_id: int, qr_string: str, created_at: datetime) -> QrCodeRecord:
        with self._lock_for(user_id):
            with self._data_lock:
                for code in self._qr_codes.values():
                    if code.qr_string == qr_string:
                        raise InvalidIntent("QR code already issued", field="qrString")
                for code_id, code in list(self._qr_codes.items()):
                    if code.user_id == user_id and code.active:
                        self._qr_codes[code_id] = replace(code, active=False)

                code = QrCodeRecord(
                    id=self._next_id("qr_code"),
                    user_id=user_id,
                    qr_string=qr_string,
                    active=True,
                    created_at=created_at,
                )
                self._qr_codes[code.id] = code
                return code

    def get_qr_code(self, user_id: int) -> QrCodeRecord | None:
        with self._data_lock:
            return next(
                (c for c in self._qr_codes.values() if c.user_id == user_id and c.active),
                None,
            )

    # Transactions

    @contextmanager
    def posting(self, user_id: int) -> Iterator[PostingUnit]:
        with self._lock_for(user_id):
            account = self._accounts[user_id]
            unit = _MemoryPostingUnit(self, account)
            yield unit
            unit.commit()

    def get_transaction(self, transaction_id: int) -> TransactionRecord | None:
        return self._transactions.get(transaction_id)

    def list_transactions(self, user_id: int, limit: int | None = None) -> list[TransactionRecord]:
        with self._data_lock:
            records = [t for t in self._transactions.values() if t.user_id == user_id]

        records.sort(key=lambda t: (t.date, t.id), reverse=True)
        return records[:limit] if limit is not None else records

    # Contacts

    def _joined(self, contact: ContactRecord) -> ContactRecord:
        payee = self._accounts.get(contact.contact_user_id)
        if payee is None:
            return contact
        return replace(contact, name=payee.display_name, email=payee.email)

    def add_contact(self, user_id: int, contact_user_id: int) -> ContactRecord:
        for account_id in (user_id, contact_user_id):
            if account_id not in self._accounts:
                raise AccountNotFound(account_id)
        if user_id == contact_user_id:
            raise InvalidIntent("Cannot add yourself as a contact", field="contactUserId")

        with self._data_lock:
            for contact in self._contacts.values():
                if contact.user_id == user_id and contact.contact_user_id == contact_user_id:
                    raise InvalidIntent("Contact already exists", field="contactUserId")

            contact = ContactRecord(
                id=self._next_id("contact"),
                user_id=user_id,
                contact_user_id=contact_user_id,
            )
            self._contacts[contact.id] = contact
        return self._joined(contact)

    def list_contacts(self, user_id: int) -> list[ContactRecord]:
        with self._data_lock:
            contacts = sorted(
                (c for c in self._contacts.values() if c.user_id == user_id),
                key=lambda c: c.id,
            )
        return [self._joined(c) for c in contacts]

    def find_by_display_name(self, user_id: int, display_name: str) -> ContactRecord | None:
        for contact in self.list_contacts(user_id):
            if contact.name == display_name:
                return contact
        return None

    def touch(self, contact_id: int, timestamp: datetime) -> bool:
        with self._data_lock:
            contact = self._contacts.get(contact_id)
            if contact is None:
                return False
            self._contacts[contact_id] = replace(contact, last_paid=timestamp)
            return True

    # Cards

    def _cards_of(self, user_id: int) -> list[CardRecord]:
        with self._data_lock:
            return sorted(
                (c for c in self._cards.values() if c.user_id == user_id),
                key=lambda c: c.id,
            )

    def _clear_defaults(self, user_id: int, keep: int | None = None) -> None:
        with self._data_lock:
            for card in self._cards_of(user_id):
                if card.is_default and card.id != keep:
                    self._cards[card.id] = card.with_default(False)

    def add_card(self, new: NewCard) -> CardRecord:
        with self._lock_for(new.user_id):
            card = CardRecord(
                id=self._next_id("card"),
                user_id=new.user_id,
                card_number=new.card_number,
                cardholder_name=new.cardholder_name,
                expiry_date=new.expiry_date,
                cvv=new.cvv,
                card_type=new.card_type,
                is_default=new.is_default,
            )
            with self._data_lock:
                if card.is_default:
                    self._clear_defaults(new.user_id)
                self._cards[card.id] = card
            return card

    def get_card(self, card_id: int) -> CardRecord | None:
        return self._cards.get(card_id)

    def list_cards(self, user_id: int) -> list[CardRecord]:
        return self._cards_of(user_id)

    def delete_card(self, user_id: int, card_id: int) -> None:
        with self._lock_for(user_id):
            card = self._cards.get(card_id)
            if card is None or card.user_id != user_id:
                raise CardNotFound(card_id)
            with self._data_lock:
                del self._cards[card_id]

    def set_default_card(self, user_id: int, card_id: int) -> CardRecord:
        with self._lock_for(user_id):
            card = self._cards.get(card_id)
            if card is None or card.user_id != user_id:
                raise CardNotFound(card_id)

            with self._data_lock:
                self._clear_defaults(user_id, keep=card_id)
                card = card.with_default(True)
                self._cards[card_id] = card
            return card
