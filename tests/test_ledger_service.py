"""Tests for posting transactions through the ledger service.

Every test runs against both the in-memory and the SQLite storage.
"""

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from payhub.ledger.errors import AccountNotFound, InsufficientFunds, InvalidIntent
from payhub.ledger.records import NewCard, TransactionKind, TransactionStatus
from payhub.ledger.service import LedgerService


def completed_sum(transactions):
    return sum(
        (t.signed_amount for t in transactions if t.status is TransactionStatus.COMPLETED),
        Decimal("0.00"),
    )


class TestPost:
    def test_debit_example(self, ledger, account, intent):
        tx = ledger.post(intent(
            account.id,
            amount="39.99",
            type="debit",
            description="Online Purchase",
            category="shopping",
            recipient_name="Amazon.com",
            status="completed",
        ))

        assert tx.id > 0
        assert tx.date is not None
        assert tx.amount == Decimal("39.99")
        assert tx.type is TransactionKind.DEBIT
        assert ledger.get_balance(account.id) == Decimal("960.01")

    def test_credit_increases_balance(self, ledger, account, intent):
        ledger.post(intent(account.id, amount="25.00", type="credit"))
        assert ledger.get_balance(account.id) == Decimal("1025.00")

    def test_status_defaults_to_completed(self, ledger, account, intent):
        tx = ledger.post(intent(account.id))
        assert tx.status is TransactionStatus.COMPLETED

    def test_optional_fields_are_stored(self, ledger, account, intent):
        tx = ledger.post(intent(
            account.id,
            recipient_name="Coffee Shop",
            payment_method="qr",
        ))

        stored = ledger.storage.get_transaction(tx.id)
        assert stored == tx
        assert stored.recipient_name == "Coffee Shop"
        assert stored.payment_method == "qr"
        assert stored.card_id is None

    @pytest.mark.parametrize("status", ["processing", "failed"])
    def test_non_completed_status_is_recorded_but_not_applied(self, ledger, account, intent, status):
        tx = ledger.post(intent(account.id, amount="200.00", status=status))

        assert tx.status.value == status
        assert ledger.get_balance(account.id) == Decimal("1000.00")
        assert ledger.list_transactions(account.id)[0].id == tx.id

    def test_overdraft_allowed_by_default(self, ledger, make_account, intent):
        empty = make_account()
        ledger.post(intent(empty.id, amount="5.00"))
        assert ledger.get_balance(empty.id) == Decimal("-5.00")

    def test_opening_balance_is_a_transaction(self, ledger, account):
        history = ledger.list_transactions(account.id)
        assert len(history) == 1
        assert history[0].type is TransactionKind.CREDIT
        assert history[0].amount == Decimal("1000.00")

    def test_balance_equals_sum_of_completed_transactions(self, ledger, account, intent, clock):
        for amount, kind, status in [
            ("25.00", "credit", "completed"),
            ("39.99", "debit", "completed"),
            ("85.50", "debit", "completed"),
            ("200.00", "debit", "processing"),
            ("15.50", "credit", "completed"),
            ("12.00", "debit", "failed"),
            ("0.01", "debit", "completed"),
        ]:
            clock.advance(1)
            ledger.post(intent(account.id, amount=amount, type=kind, status=status))

        balance = ledger.get_balance(account.id)
        assert balance == completed_sum(ledger.list_transactions(account.id))
        assert balance == Decimal("915.00")


class TestValidation:
    @pytest.mark.parametrize("amount", ["0", "0.00", "-10.00", "abc", "", None, "1.005", "NaN"])
    def test_bad_amount_has_no_side_effects(self, ledger, account, intent, amount):
        with pytest.raises(InvalidIntent):
            ledger.post(intent(account.id, amount=amount))

        assert ledger.get_balance(account.id) == Decimal("1000.00")
        assert len(ledger.list_transactions(account.id)) == 1

    @pytest.mark.parametrize("fields, bad_field", [
        ({"type": "refund"}, "type"),
        ({"type": None}, "type"),
        ({"status": "pending"}, "status"),
        ({"description": ""}, "description"),
        ({"description": "   "}, "description"),
        ({"category": None}, "category"),
        ({"recipient_name": 42}, "recipientName"),
    ])
    def test_bad_fields_are_rejected(self, ledger, account, intent, fields, bad_field):
        with pytest.raises(InvalidIntent) as exc_info:
            ledger.post(intent(account.id, **fields))

        assert exc_info.value.field == bad_field
        assert len(ledger.list_transactions(account.id)) == 1

    def test_kind_and_status_are_case_insensitive(self, ledger, account, intent):
        tx = ledger.post(intent(account.id, type="CREDIT", status="Completed"))
        assert tx.type is TransactionKind.CREDIT
        assert tx.status is TransactionStatus.COMPLETED

    def test_blank_recipient_becomes_none(self, ledger, account, intent):
        tx = ledger.post(intent(account.id, recipient_name="  "))
        assert tx.recipient_name is None

    def test_unknown_account_is_rejected(self, ledger, account, intent):
        with pytest.raises(AccountNotFound):
            ledger.post(intent(9999))

        with pytest.raises(AccountNotFound):
            ledger.list_transactions(9999)
        assert ledger.storage.get_transaction(2) is None

    def test_card_of_another_account_is_rejected(self, ledger, account, make_account, intent):
        other = make_account(first_name="Jane")
        card = ledger.add_card(NewCard(
            user_id=other.id,
            card_number="4111111111111111",
            cardholder_name="Jane Doe",
            expiry_date="09/29",
            cvv="123",
            card_type="visa",
        ))

        with pytest.raises(InvalidIntent) as exc_info:
            ledger.post(intent(account.id, card_id=card.id, payment_method="card"))
        assert exc_info.value.field == "cardId"

        tx = ledger.post(intent(other.id, card_id=card.id, payment_method="card"))
        assert tx.card_id == card.id


class TestOverdraftPolicy:
    def test_refused_debit_rolls_back(self, storage, clock, make_account, intent):
        strict = LedgerService(storage, clock=clock, allow_overdraft=False)
        acct = make_account(opening_balance="50.00")

        with pytest.raises(InsufficientFunds):
            strict.post(intent(acct.id, amount="50.01"))

        assert strict.get_balance(acct.id) == Decimal("50.00")
        assert len(strict.list_transactions(acct.id)) == 1

    def test_debit_down_to_zero_is_allowed(self, storage, clock, make_account, intent):
        strict = LedgerService(storage, clock=clock, allow_overdraft=False)
        acct = make_account(opening_balance="50.00")

        strict.post(intent(acct.id, amount="50.00"))
        assert strict.get_balance(acct.id) == Decimal("0.00")

    def test_processing_debit_skips_the_check(self, storage, clock, make_account, intent):
        strict = LedgerService(storage, clock=clock, allow_overdraft=False)
        acct = make_account()

        strict.post(intent(acct.id, amount="500.00", status="processing"))
        assert strict.get_balance(acct.id) == Decimal("0.00")


class TestListTransactions:
    def test_limit_returns_most_recent_first(self, ledger, make_account, intent, clock):
        acct = make_account()
        posted = []
        for i in range(8):
            clock.advance(60)
            posted.append(ledger.post(intent(acct.id, amount=f"{i + 1}.00", type="credit")))

        recent = ledger.list_transactions(acct.id, 5)

        assert [t.id for t in recent] == [t.id for t in reversed(posted[-5:])]
        dates = [t.date for t in recent]
        assert all(a > b for a, b in zip(dates, dates[1:]))

    def test_ties_are_broken_by_descending_id(self, ledger, make_account, intent):
        acct = make_account()
        ids = [ledger.post(intent(acct.id)).id for _ in range(3)]

        assert [t.id for t in ledger.list_transactions(acct.id)] == list(reversed(ids))

    def test_timestamps_never_go_backwards(self, ledger, make_account, intent, clock):
        acct = make_account()
        first = ledger.post(intent(acct.id))

        clock.set_time(first.date - timedelta(hours=1))
        second = ledger.post(intent(acct.id))

        assert second.date >= first.date
        assert ledger.list_transactions(acct.id, 1)[0].id == second.id

    def test_only_own_transactions_are_listed(self, ledger, make_account, intent):
        a = make_account()
        b = make_account(first_name="Jane")
        ledger.post(intent(a.id))
        ledger.post(intent(b.id))
        ledger.post(intent(b.id))

        assert len(ledger.list_transactions(a.id)) == 1
        assert len(ledger.list_transactions(b.id)) == 2

    @pytest.mark.parametrize("limit", [0, -1, "5", True])
    def test_bad_limit_is_rejected(self, ledger, account, limit):
        with pytest.raises(InvalidIntent):
            ledger.list_transactions(account.id, limit)


class TestContactUpdate:
    @pytest.fixture
    def sarah_contact(self, ledger, account, make_account):
        sarah = make_account(first_name="Sarah", last_name="Johnson")
        return ledger.add_contact(account.id, sarah.id)

    def test_matching_recipient_sets_last_paid(self, ledger, account, intent, sarah_contact):
        assert sarah_contact.last_paid is None

        tx = ledger.post(intent(account.id, amount="50.00", recipient_name="Sarah Johnson"))

        (contact,) = ledger.list_contacts(account.id)
        assert contact.last_paid == tx.date

    def test_unknown_recipient_is_a_silent_no_op(self, ledger, account, intent, sarah_contact, caplog):
        with caplog.at_level(logging.DEBUG, logger="payhub.ledger.service"):
            tx = ledger.post(intent(account.id, amount="50.00", recipient_name="Unknown Person"))

        assert tx.id > 0
        assert ledger.list_contacts(account.id)[0].last_paid is None
        assert "Contact update skipped" in caplog.text

    def test_match_is_case_sensitive(self, ledger, account, intent, sarah_contact):
        ledger.post(intent(account.id, recipient_name="sarah johnson"))
        assert ledger.list_contacts(account.id)[0].last_paid is None

    def test_non_completed_payment_does_not_touch(self, ledger, account, intent, sarah_contact):
        ledger.post(intent(account.id, recipient_name="Sarah Johnson", status="failed"))
        assert ledger.list_contacts(account.id)[0].last_paid is None

    def test_other_owners_contacts_are_ignored(self, ledger, account, make_account, intent, sarah_contact):
        stranger = make_account(first_name="Stranger")
        ledger.post(intent(stranger.id, recipient_name="Sarah Johnson"))
        assert ledger.list_contacts(account.id)[0].last_paid is None

    def test_touch_failure_does_not_fail_the_post(self, ledger, account, intent, sarah_contact, monkeypatch, caplog):
        def broken_touch(contact_id, timestamp):
            raise RuntimeError("contacts table unavailable")

        monkeypatch.setattr(ledger.storage, "touch", broken_touch)

        with caplog.at_level(logging.ERROR, logger="payhub.ledger.service"):
            tx = ledger.post(intent(account.id, amount="50.00", recipient_name="Sarah Johnson"))

        assert ledger.storage.get_transaction(tx.id) == tx
        assert ledger.get_balance(account.id) == Decimal("950.00")
        assert "Contact update failed" in caplog.text

    def test_first_matching_contact_wins(self, ledger, account, make_account, intent, sarah_contact):
        other_sarah = make_account(first_name="Sarah", last_name="Johnson")
        ledger.add_contact(account.id, other_sarah.id)

        tx = ledger.post(intent(account.id, recipient_name="Sarah Johnson"))

        first, second = ledger.list_contacts(account.id)
        assert first.last_paid == tx.date
        assert second.last_paid is None
