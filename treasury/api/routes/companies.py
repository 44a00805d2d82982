from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ...container import Container
from ...models.company import Company
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("")
def list_companies(
    include_inactive: bool = False, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_company_service().list_companies(user, include_inactive))


@router.post("", status_code=201)
def create_company(company: Company, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_company_service().create_company(user, company))


@router.get("/{company_id}")
def get_company(company_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_company_service().get_company(user, company_id))


@router.put("/{company_id}")
def update_company(
    company_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_company_service().update_company(user, company_id, changes))


@router.delete("/{company_id}")
def delete_company(company_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_company_service().delete_company(user, company_id))
