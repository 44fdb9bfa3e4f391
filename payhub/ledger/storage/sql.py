"""SQLAlchemy ledger storage (PostgreSQL in production, SQLite in development)."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from payhub.ledger.clock import as_utc
from payhub.ledger.errors import (
    AccountNotFound,
    CardNotFound,
    DuplicateAccount,
    InvalidIntent,
    PersistenceFailure,
)
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
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)
from payhub.ledger.storage.base import LedgerStorage, PostingUnit
from payhub.models.card import Card
from payhub.models.contact import Contact
from payhub.models.qr_code import QrCode
from payhub.models.transaction import Transaction
from payhub.models.user import User

logger = logging.getLogger(__name__)


def _account_record(user: User) -> AccountRecord:
    return AccountRecord(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        balance=round_money(Decimal(user.balance)),
        created_at=as_utc(user.created_at),
        hashed_password=user.hashed_password,
        phone=user.phone,
        address=user.address,
    )


def _transaction_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        user_id=row.user_id,
        amount=round_money(Decimal(row.amount)),
        type=TransactionKind(row.type),
        description=row.description,
        category=row.category,
        status=TransactionStatus(row.status),
        date=as_utc(row.date),
        recipient_name=row.recipient_name,
        payment_method=row.payment_method,
        card_id=row.card_id,
    )


def _card_record(card: Card) -> CardRecord:
    return CardRecord(
        id=card.id,
        user_id=card.user_id,
        card_number=card.card_number,
        cardholder_name=card.cardholder_name,
        expiry_date=card.expiry_date,
        cvv=card.cvv,
        card_type=card.card_type,
        is_default=bool(card.is_default),
    )


def _contact_record(contact: Contact, payee: User | None = None) -> ContactRecord:
    return ContactRecord(
        id=contact.id,
        user_id=contact.user_id,
        contact_user_id=contact.contact_user_id,
        last_paid=as_utc(contact.last_paid) if contact.last_paid else None,
        name=f"{payee.first_name} {payee.last_name}" if payee else "",
        email=payee.email if payee else "",
    )


def _qr_code_record(code: QrCode) -> QrCodeRecord:
    return QrCodeRecord(
        id=code.id,
        user_id=code.user_id,
        qr_string=code.qr_string,
        active=bool(code.active),
        created_at=as_utc(code.created_at),
    )


def _lock_user(session: Session, user_id: int) -> User:
    """Load the account row with a row lock held until the unit ends."""
    stmt = select(User).where(User.id == user_id).with_for_update()
    user = session.execute(stmt).scalars().first()
    if user is None:
        raise AccountNotFound(user_id)
    return user


class _SqlPostingUnit(PostingUnit):
    def __init__(self, session: Session, account: AccountRecord):
        self.account = account
        self._session = session
        self._balance = account.balance

    @property
    def balance(self) -> Decimal:
        return self._balance

    def latest_timestamp(self) -> datetime | None:
        stmt = select(func.max(Transaction.date)).where(Transaction.user_id == self.account.id)
        latest = self._session.execute(stmt).scalar()
        return as_utc(latest) if latest is not None else None

    def insert_transaction(self, new: NewTransaction, date: datetime) -> TransactionRecord:
        row = Transaction(
            user_id=new.user_id,
            amount=new.amount,
            type=new.type.value,
            description=new.description,
            category=new.category,
            recipient_name=new.recipient_name,
            status=new.status.value,
            date=date,
            payment_method=new.payment_method,
            card_id=new.card_id,
        )
        self._session.add(row)
        self._session.flush()  # ensures row.id is available

        return TransactionRecord.from_new(row.id, date, new)

    def apply_delta(self, signed_amount: Decimal) -> Decimal:
        # Atomic balance update (race-safe)
        stmt = (
            update(User)
            .where(User.id == self.account.id)
            .values(balance=User.balance + signed_amount)
            .returning(User.balance)
            .execution_options(synchronize_session=False)
        )
        new_balance = self._session.execute(stmt).scalar()
        if new_balance is None:
            raise AccountNotFound(self.account.id)

        self._balance = round_money(Decimal(new_balance))
        return self._balance


class SqlLedgerStorage(LedgerStorage):
    """
    Storage backed by the SQLAlchemy models in ``payhub.models``.

    Every public method runs in its own session. Writers lock the owning
    account row first, so concurrent units for one account serialize while
    other accounts are unaffected. SQLAlchemy errors roll the unit back and
    surface as PersistenceFailure.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Storage failure, unit rolled back: %s", exc)
            raise PersistenceFailure("Storage is unavailable, nothing was applied") from exc
        finally:
            session.close()

    # Accounts

    def create_account(self, new: NewAccount) -> AccountRecord:
        with self._session() as session:
            try:
                with session.begin():
                    taken = session.execute(
                        select(User.username, User.email).where(
                            (User.username == new.username) | (User.email == new.email)
                        )
                    ).first()
                    if taken is not None:
                        raise DuplicateAccount("username" if taken.username == new.username else "email")

                    user = User(
                        username=new.username,
                        email=new.email,
                        hashed_password=new.hashed_password,
                        first_name=new.first_name,
                        last_name=new.last_name,
                        phone=new.phone,
                        address=new.address,
                        balance=Decimal("0.00"),
                    )
                    session.add(user)
                    session.flush()
                    session.refresh(user)
                    return _account_record(user)
            except IntegrityError as exc:
                # lost a race against a concurrent signup
                raise DuplicateAccount("username or email") from exc

    def get_account(self, user_id: int) -> AccountRecord | None:
        with self._session() as session:
            user = session.get(User, user_id)
            return _account_record(user) if user else None

    def get_account_by_username(self, username: str) -> AccountRecord | None:
        with self._session() as session:
            user = session.execute(select(User).where(User.username == username)).scalars().first()
            return _account_record(user) if user else None

    def get_account_by_email(self, email: str) -> AccountRecord | None:
        with self._session() as session:
            user = session.execute(select(User).where(User.email == email)).scalars().first()
            return _account_record(user) if user else None

    def get_balance(self, user_id: int) -> Decimal:
        with self._session() as session:
            balance = session.execute(select(User.balance).where(User.id == user_id)).scalar()
            if balance is None:
                raise AccountNotFound(user_id)
            return round_money(Decimal(balance))

    def update_account(self, user_id: int, update: AccountUpdate) -> AccountRecord:
        changes = update.changes()
        with self._session() as session:
            try:
                with session.begin():
                    user = _lock_user(session, user_id)
                    if update.email is not None:
                        taken = session.execute(
                            select(User.id).where(User.email == update.email, User.id != user_id)
                        ).first()
                        if taken is not None:
                            raise DuplicateAccount("email")

                    for name, value in changes.items():
                        setattr(user, name, value)
                    session.flush()
                    return _account_record(user)
            except IntegrityError as exc:
                raise DuplicateAccount("email") from exc

    # QR codes

    def create_qr_code(self, user_id: int, qr_string: str, created_at: datetime) -> QrCodeRecord:
        with self._session() as session:
            with session.begin():
                _lock_user(session, user_id)
                if session.execute(select(QrCode.id).where(QrCode.qr_string == qr_string)).first():
                    raise InvalidIntent("QR code already issued", field="qrString")

                session.execute(
                    update(QrCode)
                    .where(QrCode.user_id == user_id, QrCode.active.is_(True))
                    .values(active=False)
                    .execution_options(synchronize_session=False)
                )
                code = QrCode(user_id=user_id, qr_string=qr_string, active=True, created_at=created_at)
                session.add(code)
                session.flush()
                return _qr_code_record(code)

    def get_qr_code(self, user_id: int) -> QrCodeRecord | None:
        stmt = (
            select(QrCode)
            .where(QrCode.user_id == user_id, QrCode.active.is_(True))
            .order_by(QrCode.id.desc())
            .limit(1)
        )
        with self._session() as session:
            code = session.execute(stmt).scalars().first()
            return _qr_code_record(code) if code else None

    # Transactions

    @contextmanager
    def posting(self, user_id: int) -> Iterator[PostingUnit]:
        with self._session() as session:
            with session.begin():
                user = _lock_user(session, user_id)
                yield _SqlPostingUnit(session, _account_record(user))

    def get_transaction(self, transaction_id: int) -> TransactionRecord | None:
        with self._session() as session:
            row = session.get(Transaction, transaction_id)
            return _transaction_record(row) if row else None

    def list_transactions(self, user_id: int, limit: int | None = None) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._session() as session:
            return [_transaction_record(row) for row in session.execute(stmt).scalars()]

    # Contacts

    def add_contact(self, user_id: int, contact_user_id: int) -> ContactRecord:
        if user_id == contact_user_id:
            raise InvalidIntent("Cannot add yourself as a contact", field="contactUserId")

        with self._session() as session:
            with session.begin():
                _lock_user(session, user_id)
                payee = session.get(User, contact_user_id)
                if payee is None:
                    raise AccountNotFound(contact_user_id)

                existing = session.execute(
                    select(Contact.id).where(
                        Contact.user_id == user_id,
                        Contact.contact_user_id == contact_user_id,
                    )
                ).first()
                if existing is not None:
                    raise InvalidIntent("Contact already exists", field="contactUserId")

                contact = Contact(user_id=user_id, contact_user_id=contact_user_id)
                session.add(contact)
                session.flush()
                return _contact_record(contact, payee)

    def _contacts_stmt(self, user_id: int):
        return (
            select(Contact, User)
            .join(User, Contact.contact_user_id == User.id)
            .where(Contact.user_id == user_id)
            .order_by(Contact.id)
        )

    def list_contacts(self, user_id: int) -> list[ContactRecord]:
        with self._session() as session:
            rows = session.execute(self._contacts_stmt(user_id)).all()
            return [_contact_record(contact, payee) for contact, payee in rows]

    def find_by_display_name(self, user_id: int, display_name: str) -> ContactRecord | None:
        stmt = (
            self._contacts_stmt(user_id)
            .where((User.first_name + " " + User.last_name) == display_name)
            .limit(1)
        )
        with self._session() as session:
            row = session.execute(stmt).first()
            return _contact_record(row[0], row[1]) if row else None

    def touch(self, contact_id: int, timestamp: datetime) -> bool:
        stmt = (
            update(Contact)
            .where(Contact.id == contact_id)
            .values(last_paid=timestamp)
            .execution_options(synchronize_session=False)
        )
        with self._session() as session:
            with session.begin():
                return session.execute(stmt).rowcount > 0

    # Cards

    def add_card(self, new: NewCard) -> CardRecord:
        with self._session() as session:
            with session.begin():
                _lock_user(session, new.user_id)
                if new.is_default:
                    self._clear_defaults(session, new.user_id)

                card = Card(
                    user_id=new.user_id,
                    card_number=new.card_number,
                    cardholder_name=new.cardholder_name,
                    expiry_date=new.expiry_date,
                    cvv=new.cvv,
                    card_type=new.card_type,
                    is_default=new.is_default,
                )
                session.add(card)
                session.flush()
                return _card_record(card)

    def get_card(self, card_id: int) -> CardRecord | None:
        with self._session() as session:
            card = session.get(Card, card_id)
            return _card_record(card) if card else None

    def list_cards(self, user_id: int) -> list[CardRecord]:
        stmt = select(Card).where(Card.user_id == user_id).order_by(Card.id)
        with self._session() as session:
            return [_card_record(card) for card in session.execute(stmt).scalars()]

    def delete_card(self, user_id: int, card_id: int) -> None:
        with self._session() as session:
            with session.begin():
                _lock_user(session, user_id)
                card = session.get(Card, card_id)
                if card is None or card.user_id != user_id:
                    raise CardNotFound(card_id)
                session.delete(card)

    def set_default_card(self, user_id: int, card_id: int) -> CardRecord:
        with self._session() as session:
            with session.begin():
                _lock_user(session, user_id)
                card = session.get(Card, card_id)
                if card is None or card.user_id != user_id:
                    raise CardNotFound(card_id)

                # Clear first: the partial unique index checks every row
                self._clear_defaults(session, user_id, keep=card_id)
                card.is_default = True
                session.flush()
                return _card_record(card)

    @staticmethod
    def _clear_defaults(session: Session, user_id: int, keep: int | None = None) -> None:
        stmt = update(Card).where(Card.user_id == user_id, Card.is_default.is_(True))
        if keep is not None:
            stmt = stmt.where(Card.id != keep)
        session.execute(
            stmt.values(is_default=False).execution_options(synchronize_session=False)
        )
