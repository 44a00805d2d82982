from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from ...container import Container
from ...models.payroll import PayrollBatch, PayrollBatchStatus, PayrollType
from ...models.user import User
from ...services.payroll_wizard import PayrollWizard
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(prefix="/payroll", tags=["payroll"])


class LineEntry(BaseModel):
    worker_id: str
    amount: Decimal = Field(..., ge=0)
    notes: Optional[str] = None


class LinePayment(BaseModel):
    paid_date: Optional[date] = None


class PaymentOrderLink(BaseModel):
    payment_order_id: str
    payment_order_number: str


class WizardPeriod(BaseModel):
    company_id: str
    year: int
    month: int
    payroll_type: PayrollType = PayrollType.MONTHLY
    due_date: Optional[date] = None
    title: Optional[str] = None
    notes: Optional[str] = None


class WizardWorker(BaseModel):
    worker_id: str
    amount: Decimal


class WizardCompletion(WizardPeriod):
    workers: List[WizardWorker]
    confirm: bool = True


def _start_wizard(user: User, c: Container, period: WizardPeriod, confirm: bool = True) -> PayrollWizard:
    wizard = PayrollWizard(c.get_payroll_service(), user, confirm_on_finish=confirm)
    wizard.set_period(
        period.company_id,
        period.year,
        period.month,
        period.payroll_type,
        period.due_date,
        period.title,
        period.notes,
    )
    wizard.next()
    return wizard


# Batches

@router.get("/batches")
def list_batches(
    company_id: Optional[str] = None,
    year: Optional[int] = None,
    status: Optional[PayrollBatchStatus] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_payroll_service().list_batches(user, company_id, year, status))


@router.post("/batches", status_code=201)
def create_batch(batch: PayrollBatch, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().create_batch(user, batch))


@router.get("/copy-previous")
def copy_previous(
    company_id: str,
    year: int,
    month: int,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_payroll_service().copy_from_previous_month(user, company_id, year, month))


@router.get("/batches/{batch_id}")
def get_batch(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().get_batch(user, batch_id))


@router.put("/batches/{batch_id}")
def update_batch(
    batch_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_payroll_service().update_batch(user, batch_id, changes))


@router.delete("/batches/{batch_id}")
def delete_batch(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    c.get_payroll_service().delete_batch(user, batch_id)
    return ok({"deleted": True})


@router.get("/batches/{batch_id}/summary")
def batch_summary(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().summary(user, batch_id))


@router.get("/batches/{batch_id}/validate")
def validate_batch(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().validate_batch(user, batch_id))


@router.post("/batches/{batch_id}/recalculate")
def recalculate(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().recalculate_totals(user, batch_id))


@router.post("/batches/{batch_id}/confirm")
def confirm_batch(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().confirm_batch(user, batch_id))


@router.post("/batches/{batch_id}/cancel")
def cancel_batch(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().cancel_batch(user, batch_id))


@router.post("/batches/{batch_id}/payment-order")
def link_payment_order(
    batch_id: str, data: PaymentOrderLink, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(
        c.get_payroll_service().link_payment_order(user, batch_id, data.payment_order_id, data.payment_order_number)
    )


# Lines

@router.get("/batches/{batch_id}/lines")
def list_lines(batch_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payroll_service().list_lines(user, batch_id))


@router.post("/batches/{batch_id}/lines", status_code=201)
def add_lines(
    batch_id: str,
    entries: List[LineEntry],
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_payroll_service().add_lines(user, batch_id, [e.model_dump() for e in entries]))


@router.put("/lines/{line_id}")
def update_line(
    line_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_payroll_service().update_line(user, line_id, changes))


@router.delete("/lines/{line_id}")
def delete_line(line_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    c.get_payroll_service().delete_line(user, line_id)
    return ok({"deleted": True})


@router.post("/lines/{line_id}/pay")
def mark_line_paid(
    line_id: str,
    data: Optional[LinePayment] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    paid_date = data.paid_date if data else None
    return ok(c.get_payroll_service().mark_line_paid(user, line_id, paid_date))


# Wizard

@router.post("/wizard/start")
def wizard_start(period: WizardPeriod, user: User = Depends(current_user), c: Container = Depends(container)):
    """First step of the wizard: the workers proposed for the period with their amounts."""
    return ok(_start_wizard(user, c, period).to_dict())


@router.post("/wizard/complete", status_code=201)
def wizard_complete(
    data: WizardCompletion, user: User = Depends(current_user), c: Container = Depends(container)
):
    """Run every wizard step with the chosen workers and amounts and create the batch."""
    wizard = _start_wizard(user, c, data, data.confirm)
    wizard.select_workers([w.worker_id for w in data.workers])
    wizard.next()
    for worker in data.workers:
        wizard.set_amount(worker.worker_id, worker.amount)
    wizard.next()
    wizard.next()
    result = wizard.to_dict()
    result["batch"] = c.get_payroll_service().get_batch(user, wizard.batch_id)
    return ok(result)
