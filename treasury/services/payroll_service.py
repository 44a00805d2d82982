"""
Payroll batches (remesas de nóminas) and their lines.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..models.company import EntityStatus
from ..models.payroll import (
    PayrollBatch,
    PayrollBatchStatus,
    PayrollLine,
    PayrollLineStatus,
    PayrollType,
    payroll_title,
)
from ..models.transaction import (
    PAYROLL_CATEGORY,
    CertaintyLevel,
    PaymentMethod,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ..models.user import User
from ..repositories.payroll_repository import PayrollBatchRepository, PayrollLineRepository
from ..security.audit import AuditAction, AuditEntity
from ..utils.date_utils import DateUtils
from .base import BaseService
from .company_service import CompanyService
from .exceptions import BusinessRuleError, ValidationError
from .logging_service import get_structured_logger
from .worker_service import WorkerService

logger = get_structured_logger().get_logger(__name__)

LOCKED_STATUSES = (PayrollBatchStatus.CANCELLED, PayrollBatchStatus.COMPLETED)


class PayrollService(BaseService):
    entity_label = "Payroll batch"
    audit_entity = AuditEntity.PAYROLL

    def __init__(
        self,
        batch_repository: PayrollBatchRepository,
        line_repository: PayrollLineRepository,
        worker_service: WorkerService,
        company_service: CompanyService,
        transaction_service=None,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.batch_repository = batch_repository
        self.line_repository = line_repository
        self.worker_service = worker_service
        self.company_service = company_service
        self.transaction_service = transaction_service

    # Batches

    def list_batches(
        self,
        user: User,
        company_id: Optional[str] = None,
        year: Optional[int] = None,
        status: Optional[PayrollBatchStatus] = None,
    ) -> List[PayrollBatch]:
        filters: Dict[str, Any] = {"user_id": user.id}
        if company_id:
            filters["company_id"] = company_id
        if year:
            filters["year"] = year
        if status:
            filters["status"] = status
        return self.batch_repository.find_by(order_by="year DESC, month DESC, created_at DESC", **filters)

    def get_batch(self, user: User, batch_id: str) -> PayrollBatch:
        return self._get_owned(self.batch_repository, batch_id, user)

    def get_for_period(
        self,
        user: User,
        company_id: str,
        year: int,
        month: int,
        payroll_type: Optional[PayrollType] = None,
    ) -> Optional[PayrollBatch]:
        """Non-cancelled batch of a company for a period, if any."""
        for batch in self.batch_repository.find_for_period(user.id, company_id, year, month, payroll_type):
            if batch.status != PayrollBatchStatus.CANCELLED:
                return batch
        return None

    def create_batch(self, user: User, batch: PayrollBatch) -> PayrollBatch:
        self.company_service.require_company(user, batch.company_id)
        batch = self._prepare_new(batch, user)
        batch.title = batch.title or payroll_title(batch.year, batch.month, batch.payroll_type)
        batch.status = PayrollBatchStatus.DRAFT
        batch.total_amount = Decimal("0")
        batch.worker_count = 0
        batch.created_by = user.id
        saved = self.batch_repository.save(batch)
        logger.info("Payroll batch created", batch_id=saved.id, year=saved.year, month=saved.month)
        self._audit(user, AuditAction.CREATE, saved.id, saved.title)
        return saved

    def update_batch(self, user: User, batch_id: str, changes: Dict[str, Any]) -> PayrollBatch:
        current = self.get_batch(user, batch_id)
        self._require_editable(current)
        updated = self._apply_changes(
            current,
            changes,
            protected={
                "company_id",
                "status",
                "total_amount",
                "worker_count",
                "confirmed_at",
                "confirmed_by",
                "parent_transaction_id",
                "created_by",
            },
        )
        saved = self.batch_repository.save(updated)
        self._audit(user, AuditAction.UPDATE, saved.id, saved.title, previous_value=current, new_value=saved)
        return saved

    def delete_batch(self, user: User, batch_id: str) -> None:
        """Only draft or cancelled batches can be deleted."""
        batch = self.get_batch(user, batch_id)
        if batch.status not in (PayrollBatchStatus.DRAFT, PayrollBatchStatus.CANCELLED):
            raise BusinessRuleError("Solo se pueden eliminar remesas en borrador o canceladas")
        self.line_repository.delete_by(payroll_batch_id=batch.id)
        self.batch_repository.delete(batch.id)
        self._audit(user, AuditAction.DELETE, batch.id, batch.title)

    # Lines

    def list_lines(self, user: User, batch_id: str) -> List[PayrollLine]:
        batch = self.get_batch(user, batch_id)
        return self.line_repository.for_batch(batch.id)

    def add_line(
        self,
        user: User,
        batch_id: str,
        worker_id: str,
        amount: Decimal,
        notes: Optional[str] = None,
    ) -> PayrollLine:
        batch = self.get_batch(user, batch_id)
        self._require_editable(batch)
        line = self._build_line(user, batch, worker_id, amount, notes)
        saved = self.line_repository.save(line)
        self.recalculate_totals(user, batch.id)
        return saved

    def add_lines(self, user: User, batch_id: str, entries: Iterable[Dict[str, Any]]) -> List[PayrollLine]:
        """Add several lines at once; each entry has ``worker_id``, ``amount`` and optional ``notes``."""
        batch = self.get_batch(user, batch_id)
        self._require_editable(batch)
        lines = [
            self._build_line(user, batch, entry["worker_id"], entry["amount"], entry.get("notes"))
            for entry in entries
        ]
        saved = [self.line_repository.save(line) for line in lines]
        self.recalculate_totals(user, batch.id)
        return saved

    def get_line(self, user: User, line_id: str) -> PayrollLine:
        return self._get_owned(self.line_repository, line_id, user, "Payroll line")

    def update_line(self, user: User, line_id: str, changes: Dict[str, Any]) -> PayrollLine:
        current = self.get_line(user, line_id)
        batch = self.get_batch(user, current.payroll_batch_id)
        self._require_editable(batch)
        updated = self._apply_changes(
            current,
            changes,
            protected={"payroll_batch_id", "company_id", "worker_id", "worker_name", "iban_snapshot"},
        )
        if updated.status == PayrollLineStatus.PAID and current.status != PayrollLineStatus.PAID:
            updated.paid_date = updated.paid_date or date.today()
        saved = self.line_repository.save(updated)
        self.recalculate_totals(user, batch.id)
        if saved.status != current.status:
            self.update_status(user, batch.id)
        return saved

    def delete_line(self, user: User, line_id: str) -> None:
        line = self.get_line(user, line_id)
        batch = self.get_batch(user, line.payroll_batch_id)
        self._require_editable(batch)
        self.line_repository.delete(line.id)
        self.recalculate_totals(user, batch.id)

    def mark_line_paid(self, user: User, line_id: str, paid_date: Optional[date] = None) -> PayrollLine:
        line = self.get_line(user, line_id)
        if line.status == PayrollLineStatus.PAID:
            raise BusinessRuleError("La línea ya está pagada", code="ALREADY_PAID")
        self.line_repository.update_fields(
            line.id, status=PayrollLineStatus.PAID, paid_date=paid_date or date.today()
        )
        self.update_status(user, line.payroll_batch_id)
        return self.line_repository.find_by_id(line.id)

    # Totals and status

    def recalculate_totals(self, user: User, batch_id: str) -> PayrollBatch:
        batch = self.get_batch(user, batch_id)
        lines = self.line_repository.for_batch(batch.id)
        self.batch_repository.update_fields(
            batch.id,
            total_amount=sum((line.amount for line in lines), Decimal("0")),
            worker_count=len(lines),
        )
        return self.batch_repository.find_by_id(batch.id)

    @staticmethod
    def derive_status(lines: List[PayrollLine]) -> PayrollBatchStatus:
        """Batch status implied by the statuses of its lines."""
        if not lines:
            return PayrollBatchStatus.DRAFT
        paid = sum(1 for line in lines if line.status == PayrollLineStatus.PAID)
        cancelled = sum(1 for line in lines if line.status == PayrollLineStatus.CANCELLED)
        if paid == 0 and cancelled == len(lines):
            return PayrollBatchStatus.CANCELLED
        if paid + cancelled == len(lines):
            return PayrollBatchStatus.COMPLETED
        if paid > 0:
            return PayrollBatchStatus.PARTIALLY_PAID
        return PayrollBatchStatus.CONFIRMED

    def update_status(self, user: User, batch_id: str) -> PayrollBatch:
        batch = self.get_batch(user, batch_id)
        status = self.derive_status(self.line_repository.for_batch(batch.id))
        # A batch that was never confirmed stays a draft until confirm_batch.
        if status == PayrollBatchStatus.CONFIRMED and batch.status == PayrollBatchStatus.DRAFT:
            status = PayrollBatchStatus.DRAFT
        if status != batch.status:
            self.batch_repository.update_fields(batch.id, status=status)
            logger.info("Payroll batch status changed", batch_id=batch.id, status=PayrollBatchStatus(status).value)
        return self.batch_repository.find_by_id(batch.id)

    def summary(self, user: User, batch_id: str) -> Dict[str, Any]:
        batch = self.get_batch(user, batch_id)
        lines = self.line_repository.for_batch(batch.id)
        pending = [line for line in lines if line.status == PayrollLineStatus.PENDING]
        paid = [line for line in lines if line.status == PayrollLineStatus.PAID]
        return {
            "batch": batch,
            "lines": lines,
            "pending_count": len(pending),
            "paid_count": len(paid),
            "pending_amount": sum((line.amount for line in pending), Decimal("0")),
            "paid_amount": sum((line.amount for line in paid), Decimal("0")),
        }

    def validate_batch(self, user: User, batch_id: str) -> Dict[str, Any]:
        """Check a batch before confirming it; returns ``is_valid`` and a list of errors."""
        batch = self.get_batch(user, batch_id)
        workers = {w.id: w for w in self.worker_service.list_workers(user, batch.company_id)}
        errors: List[Dict[str, str]] = []
        seen = set()

        def add(line: PayrollLine, error_type: str, message: str) -> None:
            errors.append(
                {
                    "worker_id": line.worker_id,
                    "worker_name": line.worker_name,
                    "error_type": error_type,
                    "message": message,
                }
            )

        for line in self.line_repository.for_batch(batch.id):
            if line.worker_id in seen:
                add(line, "DUPLICATE_WORKER", f'Trabajador "{line.worker_name}" aparece más de una vez en el lote')
            seen.add(line.worker_id)

            worker = workers.get(line.worker_id)
            if worker is None:
                add(line, "INACTIVE_WORKER", f'Trabajador "{line.worker_name}" no encontrado en el maestro')
                continue
            if worker.status != EntityStatus.ACTIVE:
                add(line, "INACTIVE_WORKER", f'Trabajador "{line.worker_name}" está inactivo')
            if not (worker.iban or "").strip():
                add(line, "MISSING_IBAN", f'Trabajador "{line.worker_name}" no tiene IBAN registrado')
            if not line.amount or line.amount <= 0:
                add(line, "INVALID_AMOUNT", f'Importe inválido para "{line.worker_name}"')

        return {"is_valid": not errors, "errors": errors}

    # Amount helpers

    def copy_from_previous_month(self, user: User, company_id: str, year: int, month: int) -> Optional[Dict[str, Any]]:
        """
        Amounts of the previous month's monthly payroll for workers that are still active.

        Returns None when there is no previous batch or it has no lines.
        """
        self.company_service.require_company(user, company_id)
        prev_year, prev_month = DateUtils.previous_period(year, month)
        previous = self.get_for_period(user, company_id, prev_year, prev_month, PayrollType.MONTHLY)
        if previous is None:
            return None
        lines = self.line_repository.for_batch(previous.id)
        if not lines:
            return None

        active = {w.id: w for w in self.worker_service.active_workers(user, company_id)}
        entries = []
        skipped = 0
        for line in lines:
            worker = active.get(line.worker_id)
            if worker is None:
                skipped += 1
                continue
            entries.append({"worker_id": worker.id, "worker_name": worker.display_name, "amount": line.amount})
        return {
            "entries": entries,
            "copied_workers": len(entries),
            "skipped_workers": skipped,
            "total_amount": sum((e["amount"] for e in entries), Decimal("0")),
        }

    def last_amount_for_worker(self, user: User, worker_id: str) -> Optional[Decimal]:
        worker = self.worker_service.get_worker(user, worker_id)
        line = self.line_repository.latest_for_worker(worker.id)
        return line.amount if line and line.amount else None

    # Lifecycle

    def confirm_batch(self, user: User, batch_id: str) -> PayrollBatch:
        """
        Confirm a draft batch and create the expense that represents it in the forecast.

        Raises:
            ValidationError: If the batch has no lines or does not pass validate_batch
            BusinessRuleError: If the batch is not a draft
        """
        batch = self.recalculate_totals(user, batch_id)
        if batch.status != PayrollBatchStatus.DRAFT:
            raise BusinessRuleError("Solo se pueden confirmar remesas en borrador")
        if batch.worker_count == 0 or batch.total_amount <= 0:
            raise ValidationError("La remesa no tiene líneas con importe", field="lines")
        validation = self.validate_batch(user, batch.id)
        if not validation["is_valid"]:
            raise ValidationError(
                "La remesa no es válida",
                errors=[f"{e['error_type']}: {e['message']}" for e in validation["errors"]],
            )

        due_date = batch.due_date or DateUtils.end_of_month(date(batch.year, batch.month, 1))
        fields: Dict[str, Any] = {
            "status": PayrollBatchStatus.CONFIRMED,
            "confirmed_at": datetime.now(),
            "confirmed_by": user.id,
            "due_date": due_date,
        }
        if self.transaction_service is not None:
            result = self.transaction_service.create_transaction(
                user,
                Transaction(
                    user_id=user.id,
                    company_id=batch.company_id,
                    type=TransactionType.EXPENSE,
                    amount=batch.total_amount,
                    status=TransactionStatus.PENDING,
                    due_date=due_date,
                    category=PAYROLL_CATEGORY,
                    description=batch.title or payroll_title(batch.year, batch.month, batch.payroll_type),
                    notes=f"{batch.worker_count} trabajadores",
                    payment_method=PaymentMethod.TRANSFER,
                    certainty=CertaintyLevel.HIGH,
                ),
            )
            fields["parent_transaction_id"] = result["transaction"].id

        self.batch_repository.update_fields(batch.id, **fields)
        for line in self.line_repository.for_batch(batch.id):
            if line.due_date is None:
                self.line_repository.update_fields(line.id, due_date=due_date)

        logger.info("Payroll batch confirmed", batch_id=batch.id, total=str(batch.total_amount))
        self._audit(user, AuditAction.APPROVE, batch.id, batch.title, details=f"Total {batch.total_amount}")
        return self.batch_repository.find_by_id(batch.id)

    def cancel_batch(self, user: User, batch_id: str) -> PayrollBatch:
        """Cancel a batch, its pending lines and its parent transaction."""
        batch = self.get_batch(user, batch_id)
        if batch.status in LOCKED_STATUSES:
            raise BusinessRuleError("La remesa ya está cerrada")
        for line in self.line_repository.for_batch(batch.id):
            if line.status == PayrollLineStatus.PENDING:
                self.line_repository.update_fields(line.id, status=PayrollLineStatus.CANCELLED)
        if batch.parent_transaction_id and self.transaction_service is not None:
            parent = self.transaction_service.transaction_repository.find_by_id(batch.parent_transaction_id)
            if parent is not None and parent.status != TransactionStatus.CANCELLED:
                self.transaction_service.cancel(user, parent.id)
        self.batch_repository.update_fields(batch.id, status=PayrollBatchStatus.CANCELLED)
        self._audit(user, AuditAction.CANCEL, batch.id, batch.title)
        return self.batch_repository.find_by_id(batch.id)

    def link_payment_order(self, user: User, batch_id: str, order_id: str, order_number: str) -> PayrollBatch:
        batch = self.get_batch(user, batch_id)
        self.batch_repository.update_fields(batch.id, payment_order_id=order_id, payment_order_number=order_number)
        for line in self.line_repository.for_batch(batch.id):
            if line.status == PayrollLineStatus.PENDING:
                self.line_repository.update_fields(line.id, payment_order_id=order_id)
        return self.batch_repository.find_by_id(batch.id)

    # Helpers

    @staticmethod
    def _require_editable(batch: PayrollBatch) -> None:
        if batch.status in LOCKED_STATUSES:
            raise BusinessRuleError("La remesa está cerrada y no admite cambios")

    def _build_line(
        self,
        user: User,
        batch: PayrollBatch,
        worker_id: str,
        amount: Any,
        notes: Optional[str],
    ) -> PayrollLine:
        worker = self.worker_service.get_worker(user, worker_id)
        if worker.company_id != batch.company_id:
            raise ValidationError("El trabajador no pertenece a la empresa de la remesa", field="worker_id")
        line = PayrollLine(
            payroll_batch_id=batch.id,
            company_id=batch.company_id,
            worker_id=worker.id,
            worker_name=worker.display_name,
            iban_snapshot=worker.iban,
            bank_alias_snapshot=worker.bank_alias,
            amount=Decimal(str(amount)),
            due_date=batch.due_date,
            notes=notes,
        )
        return self._prepare_new(line, user, skip={"iban_snapshot"})
