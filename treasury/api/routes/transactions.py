from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel

from ...container import Container
from ...models.transaction import Transaction, TransactionStatus, TransactionType
from ...models.user import User
from ..dependencies import build_model, container, current_user
from ..responses import ok

router = APIRouter(prefix="/transactions", tags=["transactions"])


class SeriesOptions(BaseModel):
    recurrence_end_date: Optional[date] = None
    recurrence_installments: Optional[int] = None


class PayRequest(BaseModel):
    paid_date: Optional[date] = None
    account_id: Optional[str] = None


def _filters(
    company_id: Optional[str] = None,
    type: Optional[TransactionType] = None,
    status: Optional[TransactionStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    third_party_id: Optional[str] = None,
    recurrence_id: Optional[str] = None,
    loan_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "company_id": company_id,
        "type": type,
        "status": status,
        "start_date": start_date,
        "end_date": end_date,
        "third_party_id": third_party_id,
        "recurrence_id": recurrence_id,
        "loan_id": loan_id,
    }


@router.get("")
def list_transactions(
    filters: Dict[str, Any] = Depends(_filters),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_transaction_service().list_transactions(user, **filters))


@router.post("", status_code=201)
def create_transaction(
    data: Dict[str, Any] = Body(...), user: User = Depends(current_user), c: Container = Depends(container)
):
    """Create a transaction; a recurring one also creates its series."""
    data = dict(data)
    series = build_model(SeriesOptions, {name: data.pop(name, None) for name in SeriesOptions.model_fields})
    result = c.get_transaction_service().create_transaction(
        user,
        build_model(Transaction, data),
        recurrence_end_date=series.recurrence_end_date,
        recurrence_installments=series.recurrence_installments,
    )
    return ok(result)


@router.get("/upcoming")
def upcoming(
    days: int = Query(7, ge=1, le=365),
    company_id: Optional[str] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_transaction_service().upcoming(user, days, company_id))


@router.get("/upcoming/stats")
def upcoming_stats(
    company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_transaction_service().upcoming_stats(user, company_id))


@router.get("/export")
def export_csv(
    filters: Dict[str, Any] = Depends(_filters),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    content = c.get_transaction_service().export_csv(user, **filters)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="transacciones_{date.today().isoformat()}.csv"'},
    )


@router.post("/cleanup-duplicates")
def cleanup_duplicates(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_transaction_service().cleanup_duplicates(user))


@router.get("/{transaction_id}")
def get_transaction(transaction_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    tx = c.get_transaction_service().get_transaction(user, transaction_id)
    return ok({**tx.model_dump(), "income_layer": tx.income_layer})


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_transaction_service().update_transaction(user, transaction_id, changes))


@router.delete("/{transaction_id}")
def delete_transaction(transaction_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_transaction_service().delete_transaction(user, transaction_id))


@router.post("/{transaction_id}/pay")
def mark_as_paid(
    transaction_id: str,
    data: Optional[PayRequest] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    data = data or PayRequest()
    return ok(c.get_transaction_service().mark_as_paid(user, transaction_id, data.paid_date, data.account_id))


@router.post("/{transaction_id}/cancel")
def cancel(transaction_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_transaction_service().cancel(user, transaction_id))


@router.post("/{transaction_id}/reactivate")
def reactivate(transaction_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_transaction_service().reactivate(user, transaction_id))
