from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...container import Container
from ...models.payment_order import PaymentOrder, PaymentOrderStatus
from ...models.user import User
from ...security.auth import Permission
from ..dependencies import container, current_user, require_permission
from ..responses import ok

router = APIRouter(prefix="/payment-orders", tags=["payment-orders"])

manage_orders = require_permission(Permission.MANAGE_PAYMENT_ORDERS)


@router.get("")
def list_orders(
    status: Optional[PaymentOrderStatus] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_payment_order_service().list_orders(user, status))


@router.get("/eligible")
def eligible_transactions(
    company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_payment_order_service().eligible_transactions(user, company_id))


@router.get("/next-number")
def next_number(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok({"order_number": c.get_payment_order_service().next_order_number(user)})


@router.post("", status_code=201)
def create_order(order: PaymentOrder, user: User = Depends(manage_orders), c: Container = Depends(container)):
    return ok(c.get_payment_order_service().create_order(user, order))


@router.get("/{order_id}")
def get_order(order_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_payment_order_service().get_order(user, order_id))


@router.put("/{order_id}")
def update_order(
    order_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(manage_orders),
    c: Container = Depends(container),
):
    return ok(c.get_payment_order_service().update_order(user, order_id, changes))


@router.delete("/{order_id}")
def delete_order(order_id: str, user: User = Depends(manage_orders), c: Container = Depends(container)):
    return ok(c.get_payment_order_service().delete_order(user, order_id))
