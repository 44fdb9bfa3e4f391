"""Demo data for the in-memory backend.

Everything goes through the ledger service, so seeded balances match the
seeded transaction history.
"""

import logging
from decimal import Decimal

from payhub.ledger.records import NewAccount, NewCard
from payhub.ledger.service import LedgerService, TransactionIntent

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "Password123"

DEMO_USERS = [
    ("johndoe", "John", "Doe", "john.doe@example.com", "(123) 456-7890", "123 Main St, Anytown, CA 12345"),
    ("sarahjohnson", "Sarah", "Johnson", "sarah.johnson@example.com", "(234) 567-8901", "456 Oak St, Somewhere, NY 67890"),
    ("michaelbrown", "Michael", "Brown", "michael.brown@example.com", "(345) 678-9012", "789 Pine St, Elsewhere, TX 54321"),
]

# amount, type, description, category, recipient, status, payment method, uses card
DEMO_TRANSACTIONS = [
    ("25.00", "credit", "Payment Received", "payment", "Michael Brown", "completed", "bank", False),
    ("39.99", "debit", "Online Purchase", "shopping", "Amazon.com", "completed", "card", True),
    ("85.50", "debit", "Bill Payment", "bill", "Electric Company", "completed", "card", True),
    ("5.75", "debit", "QR Payment", "shopping", "Coffee Shop", "completed", "qr", False),
    ("24.99", "debit", "QR Payment", "shopping", "Bookstore", "completed", "qr", False),
    ("15.50", "credit", "QR Payment Received", "payment", "Michael Brown", "completed", "qr", False),
    ("50.00", "debit", "Money Sent", "payment", "Sarah Johnson", "completed", "direct", False),
    ("200.00", "debit", "Bank Transfer", "transfer", "Linked Account", "processing", "bank", False),
]


def seed_demo_data(ledger: LedgerService, hash_password, opening_balance: Decimal = Decimal("1000.00")) -> None:
    """Create the three demo users, John's cards, contacts and history."""
    accounts = [
        ledger.open_account(
            NewAccount(
                username=username,
                email=email,
                first_name=first_name,
                last_name=last_name,
                hashed_password=hash_password(DEMO_PASSWORD),
                phone=phone,
                address=address,
            ),
            opening_balance=opening_balance,
        )
        for username, first_name, last_name, email, phone, address in DEMO_USERS
    ]
    john, sarah, michael = accounts

    visa = ledger.add_card(NewCard(
        user_id=john.id,
        card_number="4111111111114582",
        cardholder_name="John Doe",
        expiry_date="09/25",
        cvv="123",
        card_type="visa",
        is_default=True,
    ))
    ledger.add_card(NewCard(
        user_id=john.id,
        card_number="5555555555557591",
        cardholder_name="John Doe",
        expiry_date="12/26",
        cvv="456",
        card_type="mastercard",
    ))

    ledger.add_contact(john.id, sarah.id)
    ledger.add_contact(john.id, michael.id)

    for amount, kind, description, category, recipient, status, method, uses_card in DEMO_TRANSACTIONS:
        ledger.post(TransactionIntent(
            user_id=john.id,
            amount=amount,
            type=kind,
            description=description,
            category=category,
            recipient_name=recipient,
            status=status,
            payment_method=method,
            card_id=visa.id if uses_card else None,
        ))

    logger.info("Seeded demo data for %d accounts", len(accounts))
