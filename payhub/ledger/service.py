"""
Ledger service: the single authority for creating transactions.

Posting a transaction happens in three steps:

1. Validate the intent. Nothing is written if validation fails.
2. Open an atomic unit for the account, assign a timestamp no earlier than
   any previous one for that account, insert the transaction and, for
   ``completed`` transactions only, apply its signed amount to the balance.
   Any failure rolls back the whole unit.
3. After commit, best-effort: if a completed transaction names a recipient
   that matches one of the owner's contacts, set that contact's ``last_paid``.
   A miss or a failure here never affects the result of the post.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payhub.ledger.clock import Clock, SystemClock, as_utc
from payhub.ledger.errors import (
    AccountNotFound,
    CardNotFound,
    InsufficientFunds,
    InvalidIntent,
)
from payhub.ledger.money import parse_amount
from payhub.ledger.records import (
    AccountRecord,
    AccountUpdate,
    CardRecord,
    ContactRecord,
    NewAccount,
    NewCard,
    NewTransaction,
    QrCodeRecord,
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)
from payhub.ledger.storage.base import LedgerStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionIntent:
    """Raw request to post a transaction, as handed over by a collaborator."""

    user_id: int
    amount: Any
    type: Any
    description: Any
    category: Any
    status: Any = None
    recipient_name: Any = None
    payment_method: Any = None
    card_id: Any = None


def _required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidIntent(f"{field} is required", field=field)
    return value.strip()


def _optional_text(value: Any, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidIntent(f"{field} must be a string", field=field)
    return value.strip() or None


def _enum_value(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value.strip().lower() if isinstance(value, str) else value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidIntent(f"{field} must be one of: {allowed}", field=field)


class LedgerService:
    def __init__(
        self,
        storage: LedgerStorage,
        clock: Clock | None = None,
        allow_overdraft: bool = True,
    ):
        self.storage = storage
        self.clock = clock or SystemClock()
        # Product has not decided on a balance floor; unchecked by default
        self.allow_overdraft = allow_overdraft

    def validate(self, intent: TransactionIntent) -> NewTransaction:
        """
        Turn a raw intent into a NewTransaction.

        Raises:
            InvalidIntent: on a bad amount, kind or status, or a missing
                description or category.
        """
        if isinstance(intent.user_id, bool) or not isinstance(intent.user_id, int):
            raise InvalidIntent("userId must be an integer", field="userId")

        status = TransactionStatus.COMPLETED
        if intent.status is not None:
            status = _enum_value(TransactionStatus, intent.status, "status")

        card_id = intent.card_id
        if card_id is not None and (isinstance(card_id, bool) or not isinstance(card_id, int)):
            raise InvalidIntent("cardId must be an integer", field="cardId")

        return NewTransaction(
            user_id=intent.user_id,
            amount=parse_amount(intent.amount),
            type=_enum_value(TransactionKind, intent.type, "type"),
            description=_required_text(intent.description, "description"),
            category=_required_text(intent.category, "category"),
            status=status,
            recipient_name=_optional_text(intent.recipient_name, "recipientName"),
            payment_method=_optional_text(intent.payment_method, "paymentMethod"),
            card_id=card_id,
        )

    def post(self, intent: TransactionIntent) -> TransactionRecord:
        """
        Record a transaction and apply its balance effect atomically.

        Returns:
            The persisted, immutable transaction.

        Raises:
            InvalidIntent: rejected before any write.
            AccountNotFound: rejected before any write.
            InsufficientFunds: overdraft policy refused a debit; rolled back.
            PersistenceFailure: storage failed; rolled back, safe to retry.
        """
        new = self.validate(intent)

        if self.storage.get_account(new.user_id) is None:
            raise AccountNotFound(new.user_id)
        if new.card_id is not None:
            card = self.storage.get_card(new.card_id)
            if card is None or card.user_id != new.user_id:
                raise InvalidIntent("Card does not belong to this account", field="cardId")

        with self.storage.posting(new.user_id) as unit:
            now = as_utc(self.clock.now())
            latest = unit.latest_timestamp()
            date = max(now, latest) if latest is not None else now

            record = unit.insert_transaction(new, date)

            if new.applies_to_balance:
                delta = new.signed_amount
                if not self.allow_overdraft and delta < 0 and unit.balance + delta < 0:
                    raise InsufficientFunds(new.user_id, unit.balance, new.amount)
                balance = unit.apply_delta(delta)
            else:
                balance = unit.balance

        logger.info(
            "Posted transaction %s: account=%s %s %s status=%s balance=%s",
            record.id, record.user_id, record.type.value, record.amount,
            record.status.value, balance,
        )

        if record.recipient_name and record.status is TransactionStatus.COMPLETED:
            self._touch_contact(record)

        return record

    def _touch_contact(self, record: TransactionRecord) -> None:
        # Outside the atomic unit; last write wins and failures are swallowed
        try:
            contact = self.storage.find_by_display_name(record.user_id, record.recipient_name)
            if contact is None:
                logger.debug(
                    "Contact update skipped: no contact named %r for account %s",
                    record.recipient_name, record.user_id,
                )
                return
            self.storage.touch(contact.id, record.date)
        except Exception:
            logger.exception(
                "Contact update failed for transaction %s; the transaction stands",
                record.id,
            )

    def list_transactions(self, user_id: int, limit: int | None = None) -> list[TransactionRecord]:
        """Most recent first. ``limit`` caps the count; it is not a cursor."""
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
            raise InvalidIntent("limit must be a positive integer", field="limit")
        if self.storage.get_account(user_id) is None:
            raise AccountNotFound(user_id)
        return self.storage.list_transactions(user_id, limit)

    def get_balance(self, user_id: int) -> Decimal:
        return self.storage.get_balance(user_id)

    # Accounts

    def get_account(self, user_id: int) -> AccountRecord:
        account = self.storage.get_account(user_id)
        if account is None:
            raise AccountNotFound(user_id)
        return account

    def find_account(self, username: str) -> AccountRecord | None:
        return self.storage.get_account_by_username(username)

    def update_profile(self, user_id: int, update: AccountUpdate) -> AccountRecord:
        """Change profile fields only; the balance is never written here."""
        if not update.changes():
            return self.get_account(user_id)

        for field in ("first_name", "last_name", "email"):
            value = getattr(update, field)
            if value is not None and not value.strip():
                raise InvalidIntent(f"{field} cannot be blank", field=field)

        account = self.storage.update_account(user_id, update)
        logger.info("Updated profile of account %s: %s", user_id, ", ".join(sorted(update.changes())))
        return account

    def open_account(self, new: NewAccount, opening_balance: Decimal = Decimal("0.00")) -> AccountRecord:
        """
        Create an account and issue its payment QR code. A non-zero opening
        balance is posted as a completed credit, so the balance still equals
        the transaction sum.
        """
        account = self.storage.create_account(new)
        logger.info("Opened account %s (%s)", account.id, account.username)

        self.issue_qr_code(account.id)

        if opening_balance > 0:
            self.post(TransactionIntent(
                user_id=account.id,
                amount=opening_balance,
                type=TransactionKind.CREDIT,
                description="Opening Balance",
                category="transfer",
                payment_method="bank",
            ))
            account = self.storage.get_account(account.id)

        return account

    # QR codes

    def issue_qr_code(self, user_id: int) -> QrCodeRecord:
        """Issue a fresh ``payhub:user:{id}:{epoch ms}`` code, retiring older ones."""
        now = as_utc(self.clock.now())
        qr_string = f"payhub:user:{user_id}:{int(now.timestamp() * 1000)}"
        return self.storage.create_qr_code(user_id, qr_string, now)

    def get_qr_code(self, user_id: int) -> QrCodeRecord | None:
        return self.storage.get_qr_code(user_id)

    # Contacts

    def add_contact(self, user_id: int, contact_user_id: int) -> ContactRecord:
        return self.storage.add_contact(user_id, contact_user_id)

    def list_contacts(self, user_id: int) -> list[ContactRecord]:
        return self.storage.list_contacts(user_id)

    # Cards

    def add_card(self, new: NewCard) -> CardRecord:
        card = self.storage.add_card(new)
        logger.info("Added card %s for account %s (default=%s)", card.id, card.user_id, card.is_default)
        return card

    def list_cards(self, user_id: int) -> list[CardRecord]:
        return self.storage.list_cards(user_id)

    def delete_card(self, user_id: int, card_id: int) -> None:
        self.storage.delete_card(user_id, card_id)
        logger.info("Deleted card %s for account %s", card_id, user_id)

    def set_default_card(self, user_id: int, card_id: int) -> CardRecord:
        """
        Make one card the user's default; every other card loses the flag
        in the same atomic unit.

        Raises:
            CardNotFound: if the card is missing or owned by another user.
        """
        card = self.storage.set_default_card(user_id, card_id)
        logger.info("Card %s is now the default for account %s", card_id, user_id)
        return card

    def get_card(self, user_id: int, card_id: int) -> CardRecord:
        card = self.storage.get_card(card_id)
        if card is None or card.user_id != user_id:
            raise CardNotFound(card_id)
        return card
