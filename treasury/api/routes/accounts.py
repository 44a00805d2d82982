from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from ...container import Container
from ...models.account import Account, AccountHold, AccountHoldStatus
from ...models.user import User
from ..dependencies import build_model, container, current_user
from ..responses import ok

router = APIRouter(tags=["accounts"])


class BalanceUpdate(BaseModel):
    balance: Decimal


class MorningCheckItem(BaseModel):
    account_id: str
    balance: Decimal


@router.get("/accounts")
def list_accounts(
    company_id: Optional[str] = None,
    include_inactive: bool = False,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_account_service().list_accounts(user, company_id, include_inactive))


@router.post("/accounts", status_code=201)
def create_account(account: Account, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_account_service().create_account(user, account))


@router.post("/accounts/morning-check")
def morning_check(
    updates: List[MorningCheckItem], user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_account_service().morning_check(user, [u.model_dump() for u in updates]))


@router.get("/accounts/{account_id}")
def get_account(account_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    service = c.get_account_service()
    account = service.get_account(user, account_id)
    return ok({**account.model_dump(), "available_balance": service.available_balance(user, account_id)})


@router.put("/accounts/{account_id}")
def update_account(
    account_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_account_service().update_account(user, account_id, changes))


@router.delete("/accounts/{account_id}")
def delete_account(account_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_account_service().delete_account(user, account_id))


@router.put("/accounts/{account_id}/balance")
def update_balance(
    account_id: str, data: BalanceUpdate, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_account_service().update_balance(user, account_id, data.balance))


@router.post("/accounts/{account_id}/primary")
def set_primary(account_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_account_service().set_primary(user, account_id))


@router.get("/accounts/{account_id}/holds")
def list_account_holds(
    account_id: str,
    status: Optional[AccountHoldStatus] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_account_service().list_holds(user, account_id, status))


@router.post("/accounts/{account_id}/holds", status_code=201)
def create_account_hold(
    account_id: str,
    data: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    hold = build_model(AccountHold, {**data, "account_id": account_id})
    return ok(c.get_account_service().create_hold(user, hold))


# Holds

@router.get("/account-holds")
def list_holds(
    status: Optional[AccountHoldStatus] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_account_service().list_holds(user, status=status))


@router.post("/account-holds/expire")
def expire_holds(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok({"expired": c.get_account_service().expire_holds(user)})


@router.get("/account-holds/{hold_id}")
def get_hold(hold_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_account_service().get_hold(user, hold_id))


@router.put("/account-holds/{hold_id}")
def update_hold(
    hold_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_account_service().update_hold(user, hold_id, changes))


@router.post("/account-holds/{hold_id}/release")
def release_hold(hold_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_account_service().release_hold(user, hold_id))


@router.delete("/account-holds/{hold_id}")
def delete_hold(hold_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    c.get_account_service().delete_hold(user, hold_id)
    return ok({"deleted": True})
