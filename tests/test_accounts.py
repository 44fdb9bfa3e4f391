"""Profile updates and QR codes, checked against both storages."""

from decimal import Decimal

import pytest

from payhub.ledger.errors import AccountNotFound, DuplicateAccount, InvalidIntent
from payhub.ledger.records import AccountUpdate


class TestUpdateProfile:
    def test_changes_only_the_given_fields(self, ledger, account):
        updated = ledger.update_profile(account.id, AccountUpdate(first_name="Jonathan", phone="555-0100"))

        assert updated.first_name == "Jonathan"
        assert updated.phone == "555-0100"
        assert updated.last_name == account.last_name
        assert updated.email == account.email
        assert ledger.get_account(account.id) == updated

    def test_balance_is_untouched(self, ledger, account, intent):
        ledger.post(intent(account.id, amount="39.99"))

        ledger.update_profile(account.id, AccountUpdate(address="1 Elm St"))

        assert ledger.get_balance(account.id) == Decimal("960.01")
        assert ledger.get_account(account.id).balance == Decimal("960.01")

    def test_posts_after_an_update_still_apply(self, ledger, account, intent):
        ledger.update_profile(account.id, AccountUpdate(last_name="Smith"))
        ledger.post(intent(account.id, amount="25.00", type="credit"))

        assert ledger.get_balance(account.id) == Decimal("1025.00")

    def test_empty_update_is_a_no_op(self, ledger, account):
        assert ledger.update_profile(account.id, AccountUpdate()) == ledger.get_account(account.id)

    def test_email_taken_by_another_account(self, ledger, account, make_account):
        other = make_account(first_name="Jane")

        with pytest.raises(DuplicateAccount):
            ledger.update_profile(other.id, AccountUpdate(email=account.email))
        assert ledger.get_account(other.id).email == other.email

    def test_keeping_your_own_email_is_fine(self, ledger, account):
        updated = ledger.update_profile(account.id, AccountUpdate(email=account.email, first_name="Jon"))
        assert updated.email == account.email

    def test_blank_name_is_rejected(self, ledger, account):
        with pytest.raises(InvalidIntent) as exc_info:
            ledger.update_profile(account.id, AccountUpdate(first_name="  "))
        assert exc_info.value.field == "first_name"

    def test_unknown_account(self, ledger):
        with pytest.raises(AccountNotFound):
            ledger.update_profile(9999, AccountUpdate(first_name="Ghost"))


class TestQrCodes:
    def test_open_account_issues_an_active_code(self, ledger, account, clock):
        code = ledger.get_qr_code(account.id)

        assert code.active is True
        assert code.user_id == account.id
        assert code.qr_string == f"payhub:user:{account.id}:{int(clock.now().timestamp() * 1000)}"

    def test_reissue_retires_the_old_code(self, ledger, account, clock):
        first = ledger.get_qr_code(account.id)
        clock.advance(1)

        second = ledger.issue_qr_code(account.id)

        assert second.id != first.id
        assert second.qr_string != first.qr_string
        assert ledger.get_qr_code(account.id) == second

    def test_codes_are_unique(self, ledger, account):
        # Same account, same instant: same string
        with pytest.raises(InvalidIntent):
            ledger.issue_qr_code(account.id)
        assert ledger.get_qr_code(account.id).active is True

    def test_codes_differ_between_accounts(self, ledger, make_account):
        a = make_account()
        b = make_account()

        assert ledger.get_qr_code(a.id).qr_string != ledger.get_qr_code(b.id).qr_string

    def test_unknown_account(self, ledger):
        assert ledger.get_qr_code(9999) is None
        with pytest.raises(AccountNotFound):
            ledger.issue_qr_code(9999)


class TestAccountLookup:
    def test_get_account(self, ledger, account):
        assert ledger.get_account(account.id).username == account.username
        with pytest.raises(AccountNotFound):
            ledger.get_account(9999)

    def test_find_account(self, ledger, account):
        assert ledger.find_account(account.username).id == account.id
        assert ledger.find_account("nobody") is None


def test_unknown_ids_do_not_register_locks(memory_storage):
    with pytest.raises(AccountNotFound):
        with memory_storage.posting(9999):
            pass

    with pytest.raises(AccountNotFound):
        memory_storage.set_default_card(9998, 1)

    assert memory_storage._account_locks == {}
