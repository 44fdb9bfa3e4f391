"""
Plain records exchanged between the ledger service and its storages.

Both storage implementations return these frozen dataclasses rather than
ORM rows, so callers never hold a live session or a mutable dict entry.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from payhub.ledger.money import format_money


class TransactionKind(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PROCESSING = "processing"
    FAILED = "failed"


@dataclass(frozen=True)
class AccountRecord:
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    balance: Decimal
    created_at: datetime
    hashed_password: str = field(default="", repr=False)
    phone: str | None = None
    address: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict[str, Any]:
        """Public view of the account; never includes the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "address": self.address,
            "balance": format_money(self.balance),
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NewAccount:
    username: str
    email: str
    first_name: str
    last_name: str
    hashed_password: str
    phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class AccountUpdate:
    """Profile fields a user may change. None means "leave as is"."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None

    def changes(self) -> dict[str, str]:
        return {
            name: value
            for name, value in (
                ("first_name", self.first_name),
                ("last_name", self.last_name),
                ("email", self.email),
                ("phone", self.phone),
                ("address", self.address),
            )
            if value is not None
        }


@dataclass(frozen=True)
class NewTransaction:
    """A validated intent, ready to be written by a storage."""

    user_id: int
    amount: Decimal
    type: TransactionKind
    description: str
    category: str
    status: TransactionStatus = TransactionStatus.COMPLETED
    recipient_name: str | None = None
    payment_method: str | None = None
    card_id: int | None = None

    @property
    def applies_to_balance(self) -> bool:
        return self.status is TransactionStatus.COMPLETED

    @property
    def signed_amount(self) -> Decimal:
        if self.type is TransactionKind.CREDIT:
            return self.amount
        return -self.amount


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    user_id: int
    amount: Decimal
    type: TransactionKind
    description: str
    category: str
    status: TransactionStatus
    date: datetime
    recipient_name: str | None = None
    payment_method: str | None = None
    card_id: int | None = None

    @classmethod
    def from_new(cls, id: int, date: datetime, new: NewTransaction) -> "TransactionRecord":
        return cls(
            id=id,
            user_id=new.user_id,
            amount=new.amount,
            type=new.type,
            description=new.description,
            category=new.category,
            status=new.status,
            date=date,
            recipient_name=new.recipient_name,
            payment_method=new.payment_method,
            card_id=new.card_id,
        )

    @property
    def applies_to_balance(self) -> bool:
        return self.status is TransactionStatus.COMPLETED

    @property
    def signed_amount(self) -> Decimal:
        if self.type is TransactionKind.CREDIT:
            return self.amount
        return -self.amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "amount": format_money(self.amount),
            "type": self.type.value,
            "description": self.description,
            "category": self.category,
            "recipientName": self.recipient_name,
            "status": self.status.value,
            "date": self.date.isoformat(),
            "paymentMethod": self.payment_method,
            "cardId": self.card_id,
        }


@dataclass(frozen=True)
class ContactRecord:
    id: int
    user_id: int
    contact_user_id: int
    last_paid: datetime | None = None
    # Joined from the payee account
    name: str = ""
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "contactUserId": self.contact_user_id,
            "name": self.name,
            "email": self.email,
            "lastPaid": self.last_paid.isoformat() if self.last_paid else None,
        }


@dataclass(frozen=True)
class NewCard:
    user_id: int
    card_number: str
    cardholder_name: str
    expiry_date: str
    cvv: str
    card_type: str
    is_default: bool = False


@dataclass(frozen=True)
class CardRecord:
    id: int
    user_id: int
    card_number: str
    cardholder_name: str
    expiry_date: str
    cvv: str = field(repr=False)
    card_type: str
    is_default: bool = False

    def with_default(self, is_default: bool) -> "CardRecord":
        return replace(self, is_default=is_default)

    def to_dict(self) -> dict[str, Any]:
        """Masked view; the full number and cvv never leave the server."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "cardNumber": f"•••• •••• •••• {self.card_number[-4:]}",
            "cardholderName": self.cardholder_name,
            "expiryDate": self.expiry_date,
            "cvv": "•••",
            "cardType": self.card_type,
            "isDefault": self.is_default,
        }


@dataclass(frozen=True)
class QrCodeRecord:
    id: int
    user_id: int
    qr_string: str
    active: bool
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "qrString": self.qr_string,
            "active": self.active,
            "createdAt": self.created_at.isoformat(),
        }
