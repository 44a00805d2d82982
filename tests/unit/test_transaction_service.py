"""
Unit tests for the transaction lifecycle and its balance effects
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from treasury.models.transaction import (
    CertaintyLevel,
    PaymentMethod,
    RecurrenceFrequency,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from treasury.services.exceptions import BusinessRuleError, NotFoundError, ValidationError
from treasury.utils.date_utils import DateUtils


def _balance(container, user, account):
    return container.get_account_service().get_account(user, account.id).current_balance


class TestCreateTransaction:
    """Test creation, ownership and duplicate detection"""

    def test_create_stamps_owner(self, container, user, make_transaction):
        tx = make_transaction("250")
        assert tx.user_id == user.id
        assert tx.created_by == user.id
        assert tx.status == TransactionStatus.PENDING

    def test_exact_duplicate_returns_existing(self, container, user, company):
        """Same company, type, amount, description and due date is one transaction"""
        service = container.get_transaction_service()
        data = dict(company_id=company.id, type=TransactionType.EXPENSE, amount=Decimal("99.90"),
                    due_date=date(2025, 5, 5), description="Cuota gestoría")
        first = service.create_transaction(user, Transaction(**data))
        second = service.create_transaction(user, Transaction(**data))
        assert second["transaction"].id == first["transaction"].id
        assert len(service.list_transactions(user)) == 1

    def test_unknown_company_rejected(self, container, other_user, company):
        with pytest.raises(NotFoundError):
            container.get_transaction_service().create_transaction(
                other_user,
                Transaction(company_id=company.id, type=TransactionType.INCOME, amount=Decimal("1"),
                            due_date=date.today()),
            )

    def test_transactions_are_private(self, container, other_user, make_transaction):
        tx = make_transaction("10")
        with pytest.raises(NotFoundError):
            container.get_transaction_service().get_transaction(other_user, tx.id)


class TestPaymentLifecycle:
    """Test paying, cancelling and reactivating transactions"""

    def test_paid_income_increases_balance(self, container, user, account, make_transaction):
        tx = make_transaction("1200", TransactionType.INCOME, account_id=account.id)
        paid = container.get_transaction_service().mark_as_paid(user, tx.id)
        assert paid.status == TransactionStatus.PAID
        assert paid.paid_date == date.today()
        assert _balance(container, user, account) == Decimal("11200")

    def test_paid_expense_uses_charge_account(self, container, user, account, make_transaction):
        tx = make_transaction("300", charge_account_id=account.id, payment_method=PaymentMethod.DIRECT_DEBIT)
        paid = container.get_transaction_service().mark_as_paid(user, tx.id, paid_date=date(2025, 1, 2))
        assert paid.paid_date == date(2025, 1, 2)
        assert paid.account_id == account.id
        assert _balance(container, user, account) == Decimal("9700")

    def test_paid_with_explicit_account(self, container, user, account, make_transaction):
        tx = make_transaction("50")
        paid = container.get_transaction_service().mark_as_paid(user, tx.id, account_id=account.id)
        assert paid.account_id == account.id
        assert _balance(container, user, account) == Decimal("9950")

    def test_paid_without_account_leaves_balances(self, container, user, account, make_transaction):
        tx = make_transaction("50")
        container.get_transaction_service().mark_as_paid(user, tx.id)
        assert _balance(container, user, account) == Decimal("10000")

    def test_cannot_pay_twice(self, container, user, make_transaction):
        service = container.get_transaction_service()
        tx = make_transaction("50")
        service.mark_as_paid(user, tx.id)
        with pytest.raises(BusinessRuleError) as exc_info:
            service.mark_as_paid(user, tx.id)
        assert exc_info.value.code == "ALREADY_PAID"

    def test_cancel_paid_reverts_balance(self, container, user, account, make_transaction):
        service = container.get_transaction_service()
        tx = make_transaction("400", account_id=account.id)
        service.mark_as_paid(user, tx.id)
        cancelled = service.cancel(user, tx.id)
        assert cancelled.status == TransactionStatus.CANCELLED
        assert cancelled.paid_date is None
        assert _balance(container, user, account) == Decimal("10000")
        with pytest.raises(BusinessRuleError):
            service.cancel(user, tx.id)

    def test_reactivate(self, container, user, make_transaction):
        service = container.get_transaction_service()
        tx = make_transaction("75")
        with pytest.raises(BusinessRuleError) as exc_info:
            service.reactivate(user, tx.id)
        assert exc_info.value.code == "NOT_CANCELLED"
        service.cancel(user, tx.id)
        assert service.reactivate(user, tx.id).status == TransactionStatus.PENDING

    def test_status_change_through_update(self, container, user, account, make_transaction):
        """PENDING to PAID applies the amount, PAID back to PENDING reverts it"""
        service = container.get_transaction_service()
        tx = make_transaction("600", TransactionType.INCOME, account_id=account.id)
        paid = service.update_transaction(user, tx.id, {"status": "PAID"})
        assert paid.paid_date == date.today()
        assert _balance(container, user, account) == Decimal("10600")
        pending = service.update_transaction(user, tx.id, {"status": "PENDING"})
        assert pending.paid_date is None
        assert _balance(container, user, account) == Decimal("10000")

    def test_delete_paid_gives_amount_back(self, container, user, account, make_transaction):
        service = container.get_transaction_service()
        tx = make_transaction("800", account_id=account.id)
        service.mark_as_paid(user, tx.id)
        assert _balance(container, user, account) == Decimal("9200")
        assert service.delete_transaction(user, tx.id)["deleted"] is True
        assert _balance(container, user, account) == Decimal("10000")


class TestRecurringSeries:
    """Test series created from a recurring transaction"""

    def _due(self):
        return DateUtils.add_months(date.today().replace(day=10), 1)

    def test_installments_create_series(self, container, user, company):
        service = container.get_transaction_service()
        result = service.create_transaction(
            user,
            Transaction(company_id=company.id, type=TransactionType.INCOME, amount=Decimal("2000"),
                        due_date=self._due(), description="Cuota mantenimiento",
                        recurrence=RecurrenceFrequency.MONTHLY, certainty=CertaintyLevel.HIGH),
            recurrence_installments=3,
        )
        first = result["transaction"]
        assert result["recurrence_id"]
        assert first.is_recurrence_instance
        assert first.instance_date == DateUtils.month_key(first.due_date)
        assert len(result["generated_ids"]) == 2

        series = service.list_transactions(user, recurrence_id=result["recurrence_id"])
        assert sorted(tx.due_date for tx in series) == [
            first.due_date,
            DateUtils.add_months(first.due_date, 1),
            DateUtils.add_months(first.due_date, 2),
        ]
        assert all(tx.income_layer == 2 for tx in series)

        recurrence = container.get_recurrence_service().get_recurrence(user, result["recurrence_id"])
        assert recurrence.day_of_month == 10
        assert recurrence.name == "Cuota mantenimiento"

    def test_single_installment_rejected(self, container, user, company):
        with pytest.raises(ValidationError):
            container.get_transaction_service().create_transaction(
                user,
                Transaction(company_id=company.id, type=TransactionType.EXPENSE, amount=Decimal("10"),
                            due_date=self._due(), recurrence=RecurrenceFrequency.MONTHLY),
                recurrence_installments=1,
            )

    def test_end_date_must_follow_due_date(self, container, user, company):
        due = self._due()
        with pytest.raises(ValidationError):
            container.get_transaction_service().create_transaction(
                user,
                Transaction(company_id=company.id, type=TransactionType.EXPENSE, amount=Decimal("10"),
                            due_date=due, recurrence=RecurrenceFrequency.MONTHLY),
                recurrence_end_date=due,
            )

    def test_editing_instance_marks_override(self, container, user, company):
        service = container.get_transaction_service()
        result = service.create_transaction(
            user,
            Transaction(company_id=company.id, type=TransactionType.EXPENSE, amount=Decimal("90"),
                        due_date=self._due(), description="Fibra", recurrence=RecurrenceFrequency.MONTHLY),
            recurrence_installments=2,
        )
        instance_id = result["generated_ids"][0]
        updated = service.update_transaction(user, instance_id, {"amount": "95"})
        assert updated.overridden_from_recurrence
        untouched = service.update_transaction(user, result["transaction"].id, {"notes": "sin cambios"})
        assert not untouched.overridden_from_recurrence

    def test_cleanup_duplicates_keeps_oldest(self, container, user, company):
        service = container.get_transaction_service()
        due = self._due()
        for _ in range(3):
            service.transaction_repository.save(
                Transaction(user_id=user.id, company_id=company.id, type=TransactionType.EXPENSE,
                            amount=Decimal("30"), due_date=due, recurrence_id="legacy",
                            is_recurrence_instance=True)
            )
        result = service.cleanup_duplicates(user)
        assert result == {"checked": 3, "deleted": 2}
        assert len(service.list_transactions(user, recurrence_id="legacy")) == 1


class TestQueries:
    """Test upcoming windows, eligibility and export"""

    def test_upcoming_stats(self, container, user, make_transaction):
        today = date.today()
        make_transaction("1000", TransactionType.INCOME, due_date=today + timedelta(days=3))
        make_transaction("400", due_date=today + timedelta(days=10))
        make_transaction("50", due_date=today + timedelta(days=40))
        stats = container.get_transaction_service().upcoming_stats(user, today=today)
        assert set(stats) == {7, 15, 21, 30}
        assert stats[7] == {"count": 1, "total": Decimal("1000"), "incomes": Decimal("1000"), "expenses": Decimal("0")}
        assert stats[15]["count"] == 2
        assert stats[30]["total"] == Decimal("600")

    def test_eligible_for_payment_order(self, make_transaction):
        from treasury.services.transaction_service import TransactionService

        transfer = make_transaction("10", payment_method=PaymentMethod.TRANSFER)
        debit = make_transaction("11", payment_method=PaymentMethod.DIRECT_DEBIT)
        income = make_transaction("12", TransactionType.INCOME, payment_method=PaymentMethod.TRANSFER)
        assert TransactionService.eligible_for_payment_order(transfer)
        assert not TransactionService.eligible_for_payment_order(debit)
        assert not TransactionService.eligible_for_payment_order(income)

    def test_export_csv(self, container, user, make_transaction):
        make_transaction("1234.5", TransactionType.INCOME, description="Factura Cliente A")
        content = container.get_transaction_service().export_csv(user)
        header, row = content.strip().splitlines()
        assert header.startswith("Vencimiento;Tipo;Estado;Categoría;Descripción")
        assert "Factura Cliente A" in row
        assert "1234,5" in row
