"""
Step-by-step assistant to build and confirm a payroll batch.

SELECT_PERIOD -> SELECT_WORKERS -> REVIEW_AMOUNTS -> CONFIRM -> DONE
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.payroll import EXTRA_PAYROLL_TYPES, PayrollBatch, PayrollType
from ..models.user import User
from .exceptions import ValidationError
from .logging_service import get_structured_logger
from .payroll_service import PayrollService

logger = get_structured_logger().get_logger(__name__)


class WizardStep(str, Enum):
    SELECT_PERIOD = "SELECT_PERIOD"
    SELECT_WORKERS = "SELECT_WORKERS"
    REVIEW_AMOUNTS = "REVIEW_AMOUNTS"
    CONFIRM = "CONFIRM"
    DONE = "DONE"


_ORDER = list(WizardStep)


@dataclass
class WorkerSelection:
    worker_id: str
    worker_name: str
    iban: str
    amount: Optional[Decimal] = None
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "worker_name": self.worker_name,
            "iban": self.iban,
            "amount": self.amount,
            "selected": self.selected,
        }


@dataclass
class PayrollWizard:
    payroll_service: PayrollService
    user: User
    step: WizardStep = WizardStep.SELECT_PERIOD
    company_id: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    payroll_type: PayrollType = PayrollType.MONTHLY
    due_date: Optional[date] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    confirm_on_finish: bool = True
    selections: List[WorkerSelection] = field(default_factory=list)
    batch_id: Optional[str] = None

    # Input for each step

    def set_period(
        self,
        company_id: str,
        year: int,
        month: int,
        payroll_type: PayrollType = PayrollType.MONTHLY,
        due_date: Optional[date] = None,
        title: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        self._expect(WizardStep.SELECT_PERIOD)
        self.company_id = company_id
        self.year = year
        self.month = month
        self.payroll_type = PayrollType(payroll_type)
        self.due_date = due_date
        self.title = title
        self.notes = notes

    def select_workers(self, worker_ids: List[str]) -> None:
        self._expect(WizardStep.SELECT_WORKERS)
        wanted = set(worker_ids)
        unknown = wanted - {s.worker_id for s in self.selections}
        if unknown:
            raise ValidationError("Trabajador no disponible para esta remesa", field="worker_ids", value=sorted(unknown))
        for selection in self.selections:
            selection.selected = selection.worker_id in wanted

    def set_amount(self, worker_id: str, amount: Any) -> None:
        self._expect(WizardStep.REVIEW_AMOUNTS)
        selection = self._selection(worker_id)
        try:
            selection.amount = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationError("Importe inválido", field="amount", value=amount)

    # Navigation

    def next(self) -> WizardStep:
        """Validate the current step and move forward (persisting on CONFIRM)."""
        if self.step == WizardStep.SELECT_PERIOD:
            self._load_period()
        elif self.step == WizardStep.SELECT_WORKERS:
            if not self.selected:
                raise ValidationError("Selecciona al menos un trabajador", field="worker_ids")
        elif self.step == WizardStep.REVIEW_AMOUNTS:
            invalid = [s.worker_name for s in self.selected if not s.amount or s.amount <= 0]
            if invalid:
                raise ValidationError(
                    "Corrige los importes antes de continuar",
                    errors=[f"{name}: Importe inválido" for name in invalid],
                )
        elif self.step == WizardStep.CONFIRM:
            self._persist()
        else:
            raise ValidationError("El asistente ya ha terminado")
        self.step = _ORDER[_ORDER.index(self.step) + 1]
        return self.step

    def back(self) -> WizardStep:
        if self.step in (WizardStep.SELECT_PERIOD, WizardStep.DONE):
            raise ValidationError(f"No se puede retroceder desde {self.step.value}")
        self.step = _ORDER[_ORDER.index(self.step) - 1]
        return self.step

    @property
    def selected(self) -> List[WorkerSelection]:
        return [s for s in self.selections if s.selected]

    @property
    def total_amount(self) -> Decimal:
        return sum((s.amount or Decimal("0") for s in self.selected), Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "company_id": self.company_id,
            "year": self.year,
            "month": self.month,
            "payroll_type": self.payroll_type.value,
            "due_date": self.due_date,
            "workers": [s.to_dict() for s in self.selections],
            "selected_count": len(self.selected),
            "total_amount": self.total_amount,
            "batch_id": self.batch_id,
        }

    # Internals

    def _expect(self, step: WizardStep) -> None:
        if self.step != step:
            raise ValidationError(f"Operación no válida en el paso {self.step.value}")

    def _selection(self, worker_id: str) -> WorkerSelection:
        for selection in self.selections:
            if selection.worker_id == worker_id:
                return selection
        raise ValidationError("Trabajador no disponible para esta remesa", field="worker_id", value=worker_id)

    def _load_period(self) -> None:
        if not self.company_id or not self.year or not self.month:
            raise ValidationError("Empresa, año y mes son obligatorios", field="period")
        service = self.payroll_service
        existing = service.get_for_period(self.user, self.company_id, self.year, self.month, self.payroll_type)
        if existing is not None:
            raise ValidationError(
                f'Ya existe la remesa "{existing.title}" para este período', field="period", value=existing.id
            )

        previous: Dict[str, Decimal] = {}
        if self.payroll_type == PayrollType.MONTHLY:
            copied = service.copy_from_previous_month(self.user, self.company_id, self.year, self.month)
            if copied:
                previous = {e["worker_id"]: e["amount"] for e in copied["entries"]}

        self.selections = []
        for worker in service.worker_service.active_workers(self.user, self.company_id):
            if self.payroll_type in EXTRA_PAYROLL_TYPES:
                amount = worker.default_extra_amount or worker.default_amount
            else:
                amount = previous.get(worker.id, worker.default_amount)
            self.selections.append(
                WorkerSelection(
                    worker_id=worker.id,
                    worker_name=worker.display_name,
                    iban=worker.iban,
                    amount=amount,
                    selected=worker.id in previous if previous else True,
                )
            )

    def _persist(self) -> None:
        service = self.payroll_service
        batch = service.create_batch(
            self.user,
            PayrollBatch(
                company_id=self.company_id,
                year=self.year,
                month=self.month,
                payroll_type=self.payroll_type,
                due_date=self.due_date,
                title=self.title,
                notes=self.notes,
            ),
        )
        service.add_lines(
            self.user,
            batch.id,
            [{"worker_id": s.worker_id, "amount": s.amount} for s in self.selected],
        )
        service.recalculate_totals(self.user, batch.id)
        if self.confirm_on_finish:
            service.confirm_batch(self.user, batch.id)
        self.batch_id = batch.id
        logger.info("Payroll wizard finished", batch_id=batch.id, workers=len(self.selected))
