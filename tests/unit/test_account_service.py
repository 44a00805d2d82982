"""
Unit tests for companies, bank accounts and account holds
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from treasury.models.account import Account, AccountHold, AccountHoldStatus, AccountHoldType
from treasury.models.company import Company, EntityStatus
from treasury.services.exceptions import BusinessRuleError, NotFoundError, ValidationError

VALID_IBAN = "ES9121000418450200051332"


class TestCompanyService:
    """Test company creation, isolation and deactivation"""

    def test_codes_are_sequential(self, container, user):
        service = container.get_company_service()
        first = service.create_company(user, Company(name="Uno"))
        second = service.create_company(user, Company(name="Dos"))
        assert (first.code, second.code) == ("EM01", "EM02")

    def test_codes_are_per_user(self, container, user, other_user, company):
        """Each user numbers their own companies"""
        theirs = container.get_company_service().create_company(other_user, Company(name="Ajena"))
        assert theirs.code == "EM01"

    def test_text_is_sanitized(self, container, user):
        saved = container.get_company_service().create_company(
            user, Company(name="<script>alert(1)</script>Acme <b>Norte</b>")
        )
        assert saved.name == "Acme Norte"

    def test_other_users_cannot_see_company(self, container, other_user, company):
        with pytest.raises(NotFoundError):
            container.get_company_service().get_company(other_user, company.id)

    def test_code_cannot_be_changed(self, container, user, company):
        service = container.get_company_service()
        updated = service.update_company(user, company.id, {"name": "Acme Sur", "code": "EM99"})
        assert updated.name == "Acme Sur"
        assert updated.code == company.code
        with pytest.raises(ValidationError):
            service.update_company(user, company.id, {"code": "EM99"})

    def test_delete_deactivates(self, container, user, company):
        service = container.get_company_service()
        service.delete_company(user, company.id)
        assert service.list_companies(user) == []
        assert service.list_companies(user, include_inactive=True)[0].status == EntityStatus.INACTIVE


class TestAccountService:
    """Test accounts, balances and the morning check"""

    def test_primary_account_is_unique(self, container, user, company, account):
        service = container.get_account_service()
        second = service.create_account(
            user, Account(company_id=company.id, bank_name="Sabadell", is_primary=True)
        )
        assert second.is_primary
        assert not service.get_account(user, account.id).is_primary

        service.set_primary(user, account.id)
        assert service.get_account(user, account.id).is_primary
        assert not service.get_account(user, second.id).is_primary

    def test_account_for_foreign_company_rejected(self, container, other_user, company):
        with pytest.raises(NotFoundError):
            container.get_account_service().create_account(
                other_user, Account(company_id=company.id, bank_name="BBVA")
            )

    def test_iban_shaped_account_number_is_checked(self, container, user, company):
        service = container.get_account_service()
        saved = service.create_account(
            user, Account(company_id=company.id, bank_name="BBVA", account_number=VALID_IBAN)
        )
        assert saved.account_number == VALID_IBAN
        masked = service.create_account(
            user, Account(company_id=company.id, bank_name="BBVA", account_number="****1332")
        )
        assert masked.account_number == "****1332"
        with pytest.raises(ValidationError):
            service.create_account(
                user, Account(company_id=company.id, bank_name="BBVA", account_number="ES0021000418450200051332")
            )

    def test_update_balance_records_difference(self, container, user, account):
        updated = container.get_account_service().update_balance(user, account.id, Decimal("12500.50"))
        assert updated.current_balance == Decimal("12500.50")
        assert updated.last_update_amount == Decimal("2500.50")
        assert updated.last_updated_by == user.id

    def test_morning_check(self, container, user, company, account):
        service = container.get_account_service()
        other = service.create_account(
            user, Account(company_id=company.id, bank_name="ING", current_balance=Decimal("300"))
        )
        results = service.morning_check(
            user,
            [{"account_id": account.id, "balance": "9000"}, {"account_id": other.id, "balance": 450}],
        )
        assert [r["difference"] for r in results] == [Decimal("-1000"), Decimal("150")]
        assert service.get_account(user, other.id).current_balance == Decimal("450")

    def test_morning_check_requires_updates(self, container, user):
        with pytest.raises(ValidationError):
            container.get_account_service().morning_check(user, [])

    def test_delete_deactivates_and_drops_primary(self, container, user, account):
        service = container.get_account_service()
        deleted = service.delete_account(user, account.id)
        assert deleted.status == EntityStatus.INACTIVE
        assert not deleted.is_primary
        assert service.list_accounts(user) == []


class TestAccountHolds:
    """Test retentions that reduce the available balance"""

    def _hold(self, account, amount="1500", **fields):
        return AccountHold(
            account_id=account.id,
            concept="Embargo AEAT",
            amount=Decimal(amount),
            start_date=fields.pop("start_date", date.today()),
            type=AccountHoldType.TAX,
            **fields,
        )

    def test_hold_reduces_available_balance(self, container, user, account):
        service = container.get_account_service()
        hold = service.create_hold(user, self._hold(account))
        assert hold.company_id == account.company_id
        assert service.available_balance(user, account.id) == Decimal("8500")
        assert service.total_hold_amount(user) == Decimal("1500")

    def test_release_hold(self, container, user, account):
        service = container.get_account_service()
        hold = service.create_hold(user, self._hold(account))
        released = service.release_hold(user, hold.id)
        assert released.status == AccountHoldStatus.RELEASED
        assert released.released_by == user.id
        assert released.released_at is not None
        assert service.available_balance(user, account.id) == Decimal("10000")
        with pytest.raises(BusinessRuleError):
            service.release_hold(user, hold.id)

    def test_expire_holds(self, container, user, account):
        service = container.get_account_service()
        start = date.today() - timedelta(days=30)
        expired = service.create_hold(user, self._hold(account, start_date=start, end_date=start + timedelta(days=10)))
        open_ended = service.create_hold(user, self._hold(account, amount="200"))
        assert service.expire_holds(user) == 1
        assert service.get_hold(user, expired.id).status == AccountHoldStatus.EXPIRED
        assert service.get_hold(user, open_ended.id).status == AccountHoldStatus.ACTIVE

    def test_list_holds_by_status(self, container, user, account):
        service = container.get_account_service()
        hold = service.create_hold(user, self._hold(account))
        service.create_hold(user, self._hold(account, amount="50"))
        service.release_hold(user, hold.id)
        active = service.list_holds(user, account_id=account.id, status=AccountHoldStatus.ACTIVE)
        assert [h.amount for h in active] == [Decimal("50")]
