"""
Unit tests for workers, payroll batches and the payroll wizard
"""

from datetime import date
from decimal import Decimal

import pytest

from treasury.models.company import Company, EntityStatus
from treasury.models.payroll import (
    PayrollBatch,
    PayrollBatchStatus,
    PayrollLine,
    PayrollLineStatus,
    PayrollType,
)
from treasury.models.transaction import PaymentMethod, TransactionStatus
from treasury.models.worker import Worker
from treasury.services.exceptions import BusinessRuleError, ValidationError
from treasury.services.payroll_service import PayrollService
from treasury.services.payroll_wizard import PayrollWizard, WizardStep

VALID_IBAN = "ES9121000418450200051332"


@pytest.fixture
def second_worker(container, user, company):
    return container.get_worker_service().create_worker(
        user,
        Worker(company_id=company.id, display_name="Luis Pérez", iban=VALID_IBAN, default_amount=Decimal("1300")),
    )


@pytest.fixture
def batch(container, user, company):
    """Draft monthly batch for March 2025"""
    return container.get_payroll_service().create_batch(
        user, PayrollBatch(company_id=company.id, year=2025, month=3)
    )


def _line(status, amount="100"):
    return PayrollLine(
        payroll_batch_id="b", company_id="c", worker_id="w", worker_name="W",
        amount=Decimal(amount), status=status,
    )


class TestWorkerService:
    """Test worker master data"""

    def test_iban_is_cleaned(self, container, user, company):
        worker = container.get_worker_service().create_worker(
            user, Worker(company_id=company.id, display_name="Eva", iban="es91 2100 0418 4502 0005 1332")
        )
        assert worker.iban == VALID_IBAN

    def test_invalid_iban_rejected(self, container, user, company):
        with pytest.raises(ValidationError):
            container.get_worker_service().create_worker(
                user, Worker(company_id=company.id, display_name="Eva", iban="ES0000000000000000000000")
            )

    def test_deactivate_and_reactivate(self, container, user, company, worker, second_worker):
        service = container.get_worker_service()
        service.deactivate_worker(user, second_worker.id)
        assert [w.id for w in service.active_workers(user, company.id)] == [worker.id]
        assert len(service.list_workers(user, company.id)) == 2
        assert service.reactivate_worker(user, second_worker.id).status == EntityStatus.ACTIVE

    def test_update_worker(self, container, user, worker):
        updated = container.get_worker_service().update_worker(user, worker.id, {"default_amount": "1600"})
        assert updated.default_amount == Decimal("1600")


class TestPayrollBatches:
    """Test batch lines, totals and validation"""

    def test_default_title(self, batch):
        assert batch.title == "Nóminas Marzo 2025"
        assert batch.status == PayrollBatchStatus.DRAFT

    def test_lines_update_totals(self, container, user, batch, worker, second_worker):
        service = container.get_payroll_service()
        service.add_lines(
            user,
            batch.id,
            [{"worker_id": worker.id, "amount": "1500"}, {"worker_id": second_worker.id, "amount": 1300}],
        )
        refreshed = service.get_batch(user, batch.id)
        assert refreshed.total_amount == Decimal("2800")
        assert refreshed.worker_count == 2
        line = service.list_lines(user, batch.id)[0]
        assert line.iban_snapshot == VALID_IBAN

    def test_worker_of_other_company_rejected(self, container, user, batch):
        other_company = container.get_company_service().create_company(user, Company(name="Filial SL"))
        stranger = container.get_worker_service().create_worker(
            user, Worker(company_id=other_company.id, display_name="Ajeno", iban=VALID_IBAN)
        )
        with pytest.raises(ValidationError):
            container.get_payroll_service().add_line(user, batch.id, stranger.id, Decimal("1000"))

    def test_validate_detects_duplicates(self, container, user, batch, worker):
        service = container.get_payroll_service()
        service.add_line(user, batch.id, worker.id, Decimal("1500"))
        service.add_line(user, batch.id, worker.id, Decimal("200"), notes="Atrasos")
        result = service.validate_batch(user, batch.id)
        assert not result["is_valid"]
        assert [e["error_type"] for e in result["errors"]] == ["DUPLICATE_WORKER"]

    def test_validate_detects_inactive_worker(self, container, user, batch, worker):
        service = container.get_payroll_service()
        service.add_line(user, batch.id, worker.id, Decimal("1500"))
        container.get_worker_service().deactivate_worker(user, worker.id)
        errors = service.validate_batch(user, batch.id)["errors"]
        assert [e["error_type"] for e in errors] == ["INACTIVE_WORKER"]

    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([], PayrollBatchStatus.DRAFT),
            ([PayrollLineStatus.PENDING, PayrollLineStatus.PENDING], PayrollBatchStatus.CONFIRMED),
            ([PayrollLineStatus.PAID, PayrollLineStatus.PENDING], PayrollBatchStatus.PARTIALLY_PAID),
            ([PayrollLineStatus.PAID, PayrollLineStatus.CANCELLED], PayrollBatchStatus.COMPLETED),
            ([PayrollLineStatus.CANCELLED], PayrollBatchStatus.CANCELLED),
        ],
    )
    def test_derive_status(self, statuses, expected):
        assert PayrollService.derive_status([_line(s) for s in statuses]) == expected


class TestPayrollLifecycle:
    """Test confirmation, payment and cancellation of batches"""

    def test_confirm_creates_parent_expense(self, container, user, batch, worker, second_worker):
        service = container.get_payroll_service()
        service.add_line(user, batch.id, worker.id, Decimal("1500"))
        service.add_line(user, batch.id, second_worker.id, Decimal("1300"))
        confirmed = service.confirm_batch(user, batch.id)

        assert confirmed.status == PayrollBatchStatus.CONFIRMED
        assert confirmed.due_date == date(2025, 3, 31)
        assert confirmed.confirmed_by == user.id
        assert all(line.due_date == date(2025, 3, 31) for line in service.list_lines(user, batch.id))

        parent = container.get_transaction_service().get_transaction(user, confirmed.parent_transaction_id)
        assert parent.amount == Decimal("2800")
        assert parent.category == "Nóminas"
        assert parent.description == "Nóminas Marzo 2025"
        assert parent.payment_method == PaymentMethod.TRANSFER

        with pytest.raises(BusinessRuleError):
            service.confirm_batch(user, batch.id)

    def test_confirm_empty_batch_rejected(self, container, user, batch):
        with pytest.raises(ValidationError):
            container.get_payroll_service().confirm_batch(user, batch.id)

    def test_paying_lines_completes_batch(self, container, user, batch, worker, second_worker):
        service = container.get_payroll_service()
        first = service.add_line(user, batch.id, worker.id, Decimal("1500"))
        second = service.add_line(user, batch.id, second_worker.id, Decimal("1300"))
        service.confirm_batch(user, batch.id)

        service.mark_line_paid(user, first.id)
        assert service.get_batch(user, batch.id).status == PayrollBatchStatus.PARTIALLY_PAID
        service.mark_line_paid(user, second.id, paid_date=date(2025, 3, 30))
        assert service.get_batch(user, batch.id).status == PayrollBatchStatus.COMPLETED

        summary = service.summary(user, batch.id)
        assert summary["paid_count"] == 2
        assert summary["paid_amount"] == Decimal("2800")
        with pytest.raises(BusinessRuleError):
            service.mark_line_paid(user, first.id)

    def test_cancel_batch(self, container, user, batch, worker):
        service = container.get_payroll_service()
        line = service.add_line(user, batch.id, worker.id, Decimal("1500"))
        confirmed = service.confirm_batch(user, batch.id)

        with pytest.raises(BusinessRuleError):
            service.delete_batch(user, batch.id)

        cancelled = service.cancel_batch(user, batch.id)
        assert cancelled.status == PayrollBatchStatus.CANCELLED
        assert service.get_line(user, line.id).status == PayrollLineStatus.CANCELLED
        parent = container.get_transaction_service().get_transaction(user, confirmed.parent_transaction_id)
        assert parent.status == TransactionStatus.CANCELLED

        service.delete_batch(user, batch.id)
        assert service.list_batches(user) == []

    def test_link_payment_order(self, container, user, batch, worker):
        service = container.get_payroll_service()
        line = service.add_line(user, batch.id, worker.id, Decimal("1500"))
        linked = service.link_payment_order(user, batch.id, "order-1", "OP-2025-0001")
        assert linked.payment_order_number == "OP-2025-0001"
        assert service.get_line(user, line.id).payment_order_id == "order-1"


class TestPreviousAmounts:
    """Test amounts carried over from earlier batches"""

    def test_copy_from_previous_month(self, container, user, company, worker, second_worker):
        service = container.get_payroll_service()
        february = service.create_batch(user, PayrollBatch(company_id=company.id, year=2025, month=2))
        service.add_line(user, february.id, worker.id, Decimal("1450"))
        service.add_line(user, february.id, second_worker.id, Decimal("1300"))
        container.get_worker_service().deactivate_worker(user, second_worker.id)

        copied = service.copy_from_previous_month(user, company.id, 2025, 3)
        assert copied["copied_workers"] == 1
        assert copied["skipped_workers"] == 1
        assert copied["entries"] == [{"worker_id": worker.id, "worker_name": "Ana García", "amount": Decimal("1450")}]
        assert copied["total_amount"] == Decimal("1450")

    def test_no_previous_batch(self, container, user, company):
        assert container.get_payroll_service().copy_from_previous_month(user, company.id, 2025, 1) is None

    def test_last_amount_for_worker(self, container, user, batch, worker, second_worker):
        service = container.get_payroll_service()
        assert service.last_amount_for_worker(user, worker.id) is None
        service.add_line(user, batch.id, worker.id, Decimal("1525"))
        assert service.last_amount_for_worker(user, worker.id) == Decimal("1525")


class TestPayrollWizard:
    """Test the step-by-step batch assistant"""

    def _wizard(self, container, user, **kwargs):
        return PayrollWizard(container.get_payroll_service(), user, **kwargs)

    def test_full_flow(self, container, user, company, worker, second_worker):
        wizard = self._wizard(container, user)
        wizard.set_period(company.id, 2025, 4)
        assert wizard.next() == WizardStep.SELECT_WORKERS
        # Without a previous batch every active worker starts selected
        assert len(wizard.selected) == 2

        wizard.select_workers([worker.id])
        assert wizard.next() == WizardStep.REVIEW_AMOUNTS
        wizard.set_amount(worker.id, "1550")
        assert wizard.total_amount == Decimal("1550")
        assert wizard.next() == WizardStep.CONFIRM
        assert wizard.next() == WizardStep.DONE

        batch = container.get_payroll_service().get_batch(user, wizard.batch_id)
        assert batch.status == PayrollBatchStatus.CONFIRMED
        assert batch.total_amount == Decimal("1550")
        assert wizard.to_dict()["step"] == "DONE"

    def test_previous_month_preselects_workers(self, container, user, company, worker, second_worker):
        service = container.get_payroll_service()
        march = service.create_batch(user, PayrollBatch(company_id=company.id, year=2025, month=3))
        service.add_line(user, march.id, second_worker.id, Decimal("1350"))

        wizard = self._wizard(container, user)
        wizard.set_period(company.id, 2025, 4)
        wizard.next()
        assert [s.worker_id for s in wizard.selected] == [second_worker.id]
        assert wizard.selected[0].amount == Decimal("1350")

    def test_extra_payroll_uses_extra_amount(self, container, user, company, worker):
        wizard = self._wizard(container, user, confirm_on_finish=False)
        wizard.set_period(company.id, 2025, 6, PayrollType.EXTRA_SUMMER)
        wizard.next()
        assert wizard.selections[0].amount == Decimal("1800")

    def test_existing_period_rejected(self, container, user, company, batch, worker):
        wizard = self._wizard(container, user)
        wizard.set_period(company.id, 2025, 3)
        with pytest.raises(ValidationError):
            wizard.next()
        assert wizard.step == WizardStep.SELECT_PERIOD

    def test_invalid_amount_blocks_review(self, container, user, company, worker):
        wizard = self._wizard(container, user)
        wizard.set_period(company.id, 2025, 4)
        wizard.next()
        wizard.next()
        wizard.set_amount(worker.id, "0")
        with pytest.raises(ValidationError):
            wizard.next()
        with pytest.raises(ValidationError):
            wizard.set_amount(worker.id, "mucho")

    def test_back_and_wrong_step(self, container, user, company, worker):
        wizard = self._wizard(container, user)
        with pytest.raises(ValidationError):
            wizard.back()
        with pytest.raises(ValidationError):
            wizard.select_workers([worker.id])
        wizard.set_period(company.id, 2025, 4)
        wizard.next()
        assert wizard.back() == WizardStep.SELECT_PERIOD

    def test_unfinished_wizard_keeps_draft(self, container, user, company, worker):
        wizard = self._wizard(container, user, confirm_on_finish=False)
        wizard.set_period(company.id, 2025, 5)
        for _ in range(3):
            wizard.next()
        wizard.next()
        batch = container.get_payroll_service().get_batch(user, wizard.batch_id)
        assert batch.status == PayrollBatchStatus.DRAFT
