from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from ...container import Container
from ...models.recurrence import Recurrence, RecurrenceStatus
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(tags=["recurrences"])


class VersionCreate(BaseModel):
    recurrence_id: str
    amount: Decimal = Field(..., gt=0)
    effective_from: date
    change_reason: Optional[str] = Field(default=None, max_length=500)
    update_future_transactions: bool = True


@router.get("/recurrences")
def list_recurrences(
    company_id: Optional[str] = None,
    status: Optional[RecurrenceStatus] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_recurrence_service().list_recurrences(user, company_id, status))


@router.post("/recurrences", status_code=201)
def create_recurrence(
    recurrence: Recurrence,
    generate: bool = True,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_recurrence_service().create_recurrence(user, recurrence, generate))


@router.post("/recurrences/regenerate")
def regenerate_all(
    company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_recurrence_service().regenerate_all(user, company_id))


@router.get("/recurrences/{recurrence_id}")
def get_recurrence(recurrence_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_recurrence_service().get_recurrence(user, recurrence_id))


@router.put("/recurrences/{recurrence_id}")
def update_recurrence(
    recurrence_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_recurrence_service().update_recurrence(user, recurrence_id, changes))


@router.delete("/recurrences/{recurrence_id}")
def delete_recurrence(
    recurrence_id: str,
    delete_future: bool = True,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_recurrence_service().delete_recurrence(user, recurrence_id, delete_future))


@router.post("/recurrences/{recurrence_id}/generate")
def generate(
    recurrence_id: str,
    months_ahead: Optional[int] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    service = c.get_recurrence_service()
    return ok(service.generate_for_recurrence(user, service.get_recurrence(user, recurrence_id), months_ahead))


@router.post("/recurrences/{recurrence_id}/fix-dates")
def fix_dates(recurrence_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok({"updated": c.get_recurrence_service().fix_dates(user, recurrence_id)})


@router.get("/recurrences/{recurrence_id}/amount")
def amount_for_date(
    recurrence_id: str, day: date, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok({"date": day, "amount": c.get_recurrence_service().amount_for_date(user, recurrence_id, day)})


# Versions

@router.get("/recurrence-versions")
def list_versions(recurrence_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_recurrence_service().list_versions(user, recurrence_id))


@router.post("/recurrence-versions", status_code=201)
def create_version(data: VersionCreate, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(
        c.get_recurrence_service().create_version(
            user,
            data.recurrence_id,
            data.amount,
            data.effective_from,
            data.change_reason,
            data.update_future_transactions,
        )
    )
