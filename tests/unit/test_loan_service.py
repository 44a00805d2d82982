"""
Unit tests for loans and their installments
"""

from datetime import date
from decimal import Decimal

import pytest

from treasury.models.loan import Loan, LoanStatus
from treasury.models.transaction import CertaintyLevel, PaymentMethod, TransactionStatus
from treasury.services.exceptions import BusinessRuleError, NotFoundError, ValidationError
from treasury.services.loan_service import LoanService


@pytest.fixture
def loan_data(company, account):
    return Loan(
        company_id=company.id,
        bank_name="CaixaBank",
        alias="ICO maquinaria",
        original_principal=Decimal("10000"),
        interest_rate=Decimal("5"),
        monthly_payment=Decimal("856.07"),
        payment_day=31,
        charge_account_id=account.id,
        remaining_balance=Decimal("10000"),
        remaining_installments=3,
        first_pending_date=date(2025, 1, 31),
    )


class TestLoanCalculations:
    """Test amortisation and schedule arithmetic"""

    def test_french_installment(self):
        assert LoanService.calculate_monthly_payment(Decimal("10000"), Decimal("5"), 12) == Decimal("856.07")

    def test_zero_interest_divides_principal(self):
        assert LoanService.calculate_monthly_payment(Decimal("1200"), Decimal("0"), 12) == Decimal("100.00")

    def test_months_must_be_positive(self):
        with pytest.raises(ValidationError):
            LoanService.calculate_monthly_payment(Decimal("1200"), Decimal("3"), 0)

    def test_installment_dates_clamp_to_month_end(self):
        first = date(2025, 1, 31)
        assert LoanService.installment_date(first, 1, 31) == date(2025, 1, 31)
        assert LoanService.installment_date(first, 2, 31) == date(2025, 2, 28)
        assert LoanService.end_date(first, 4, 31) == date(2025, 4, 30)

    def test_updated_balance_never_negative(self):
        assert LoanService.updated_balance(Decimal("1000"), Decimal("300"), 2) == Decimal("400")
        assert LoanService.updated_balance(Decimal("1000"), Decimal("300"), 5) == Decimal("0")

    def test_summary(self, loan_data):
        loan = loan_data.model_copy(update={"paid_installments": 1})
        summary = LoanService.loan_summary(loan)
        assert summary["remaining_installments"] == 2
        assert summary["total_remaining_amount"] == Decimal("1712.14")
        assert summary["next_payment_date"] == date(2025, 2, 28)
        assert summary["progress_percentage"] == 33


class TestLoanLifecycle:
    """Test loans stored with their installment transactions"""

    def test_create_generates_installments(self, container, user, loan_data, account):
        result = container.get_loan_service().create_loan(user, loan_data)
        loan = result["loan"]
        assert result["transactions_generated"] == 3
        assert loan.end_date == date(2025, 3, 31)

        installments = sorted(
            container.get_loan_service().installments(user, loan.id), key=lambda tx: tx.loan_installment_number
        )
        assert [tx.description for tx in installments] == [
            "Cuota 1/3 - ICO maquinaria",
            "Cuota 2/3 - ICO maquinaria",
            "Cuota 3/3 - ICO maquinaria",
        ]
        assert [tx.due_date for tx in installments] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]
        first = installments[0]
        assert first.category == "Préstamo"
        assert first.payment_method == PaymentMethod.DIRECT_DEBIT
        assert first.certainty == CertaintyLevel.HIGH
        assert first.charge_account_id == account.id
        assert "Capital original" in first.notes

    def test_charge_account_must_be_owned(self, container, other_user, loan_data):
        with pytest.raises(NotFoundError):
            container.get_loan_service().create_loan(other_user, loan_data)

    def test_paying_every_installment_pays_off(self, container, user, loan_data, account):
        loan = container.get_loan_service().create_loan(user, loan_data)["loan"]
        transactions = container.get_transaction_service()
        for tx in container.get_loan_service().installments(user, loan.id):
            transactions.mark_as_paid(user, tx.id)

        refreshed = container.get_loan_service().get_loan(user, loan.id)
        assert refreshed.paid_installments == 3
        assert refreshed.status == LoanStatus.PAID_OFF
        assert container.get_account_service().get_account(user, account.id).current_balance == Decimal("7431.79")

    def test_partial_payment_keeps_loan_active(self, container, user, loan_data):
        loan = container.get_loan_service().create_loan(user, loan_data)["loan"]
        first = container.get_loan_service().installments(user, loan.id)[0]
        container.get_transaction_service().mark_as_paid(user, first.id)
        refreshed = container.get_loan_service().get_loan(user, loan.id)
        assert refreshed.paid_installments == 1
        assert refreshed.status == LoanStatus.ACTIVE

    def test_delete_removes_pending_installments(self, container, user, loan_data):
        service = container.get_loan_service()
        loan = service.create_loan(user, loan_data)["loan"]
        assert service.delete_loan(user, loan.id) == {"transactions_deleted": 3}
        assert container.get_transaction_service().list_transactions(user, loan_id=loan.id) == []

    def test_delete_refused_with_paid_installments(self, container, user, loan_data):
        service = container.get_loan_service()
        loan = service.create_loan(user, loan_data)["loan"]
        installment = service.installments(user, loan.id)[0]
        container.get_transaction_service().mark_as_paid(user, installment.id)
        with pytest.raises(BusinessRuleError) as exc_info:
            service.delete_loan(user, loan.id)
        assert exc_info.value.code == "HAS_PAID_INSTALLMENTS"
        assert service.get_loan(user, loan.id).status == LoanStatus.ACTIVE

    def test_cancelling_paid_installment_recounts(self, container, user, loan_data):
        service = container.get_loan_service()
        loan = service.create_loan(user, loan_data)["loan"]
        installment = service.installments(user, loan.id)[0]
        transactions = container.get_transaction_service()
        transactions.mark_as_paid(user, installment.id)
        assert transactions.cancel(user, installment.id).status == TransactionStatus.CANCELLED
        assert service.get_loan(user, loan.id).paid_installments == 0

    def test_reverting_payment_reopens_paid_off_loan(self, container, user, loan_data):
        service = container.get_loan_service()
        loan = service.create_loan(user, loan_data)["loan"]
        transactions = container.get_transaction_service()
        installments = service.installments(user, loan.id)
        for tx in installments:
            transactions.mark_as_paid(user, tx.id)
        assert service.get_loan(user, loan.id).status == LoanStatus.PAID_OFF

        transactions.cancel(user, installments[-1].id)
        reopened = service.get_loan(user, loan.id)
        assert reopened.paid_installments == 2
        assert reopened.status == LoanStatus.ACTIVE
