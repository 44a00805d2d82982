from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...container import Container
from ...models.loan import Loan, LoanStatus
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(prefix="/loans", tags=["loans"])


@router.get("")
def list_loans(
    company_id: Optional[str] = None,
    status: Optional[LoanStatus] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    service = c.get_loan_service()
    return ok(
        [{**loan.model_dump(), **service.loan_summary(loan)} for loan in service.list_loans(user, company_id, status)]
    )


@router.post("", status_code=201)
def create_loan(loan: Loan, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_loan_service().create_loan(user, loan))


@router.get("/{loan_id}")
def get_loan(loan_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_loan_service().get_loan(user, loan_id))


@router.get("/{loan_id}/summary")
def loan_summary(loan_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    service = c.get_loan_service()
    return ok(service.loan_summary(service.get_loan(user, loan_id)))


@router.get("/{loan_id}/installments")
def loan_installments(loan_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_loan_service().installments(user, loan_id))


@router.put("/{loan_id}")
def update_loan(
    loan_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_loan_service().update_loan(user, loan_id, changes))


@router.delete("/{loan_id}")
def delete_loan(loan_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_loan_service().delete_loan(user, loan_id))
