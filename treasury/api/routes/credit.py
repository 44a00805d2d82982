from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from ...container import Container
from ...models.credit import CreditCard, CreditLine
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(tags=["credit"])


class DrawnUpdate(BaseModel):
    current_drawn: Decimal


class CardBalanceUpdate(BaseModel):
    current_balance: Decimal


@router.get("/credit-lines")
def list_lines(
    company_id: Optional[str] = None,
    include_inactive: bool = False,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_credit_service().list_lines(user, company_id, include_inactive))


@router.get("/credit-lines/expiring")
def expiring_lines(
    days: Optional[int] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_credit_service().expiring_lines(user, days))


@router.post("/credit-lines", status_code=201)
def create_line(line: CreditLine, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_credit_service().create_line(user, line))


@router.get("/credit-lines/{line_id}")
def get_line(line_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_credit_service().get_line(user, line_id))


@router.put("/credit-lines/{line_id}")
def update_line(
    line_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_credit_service().update_line(user, line_id, changes))


@router.put("/credit-lines/{line_id}/drawn")
def update_drawn(
    line_id: str, data: DrawnUpdate, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_credit_service().update_drawn(user, line_id, data.current_drawn))


@router.delete("/credit-lines/{line_id}")
def delete_line(line_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_credit_service().delete_line(user, line_id))


# Cards

@router.get("/credit-cards")
def list_cards(
    company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    service = c.get_credit_service()
    return ok(
        [
            {**card.model_dump(), "next_payment_date": service.next_payment_date(card)}
            for card in service.list_cards(user, company_id)
        ]
    )


@router.post("/credit-cards", status_code=201)
def create_card(card: CreditCard, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_credit_service().create_card(user, card))


@router.get("/credit-cards/{card_id}")
def get_card(card_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_credit_service().get_card(user, card_id))


@router.put("/credit-cards/{card_id}")
def update_card(
    card_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_credit_service().update_card(user, card_id, changes))


@router.put("/credit-cards/{card_id}/balance")
def update_card_balance(
    card_id: str, data: CardBalanceUpdate, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_credit_service().update_card_balance(user, card_id, data.current_balance))


@router.delete("/credit-cards/{card_id}")
def delete_card(card_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_credit_service().delete_card(user, card_id))
