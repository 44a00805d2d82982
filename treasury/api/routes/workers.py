from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...container import Container
from ...models.user import User
from ...models.worker import Worker
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(prefix="/workers", tags=["workers"])


@router.get("")
def list_workers(
    company_id: Optional[str] = None,
    active_only: bool = False,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_worker_service().list_workers(user, company_id, active_only))


@router.post("", status_code=201)
def create_worker(worker: Worker, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_worker_service().create_worker(user, worker))


@router.get("/{worker_id}")
def get_worker(worker_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_worker_service().get_worker(user, worker_id))


@router.get("/{worker_id}/last-amount")
def last_amount(worker_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok({"amount": c.get_payroll_service().last_amount_for_worker(user, worker_id)})


@router.put("/{worker_id}")
def update_worker(
    worker_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_worker_service().update_worker(user, worker_id, changes))


@router.delete("/{worker_id}")
def deactivate_worker(worker_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_worker_service().deactivate_worker(user, worker_id))


@router.post("/{worker_id}/reactivate")
def reactivate_worker(worker_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_worker_service().reactivate_worker(user, worker_id))
