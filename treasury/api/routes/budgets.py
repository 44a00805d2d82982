from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Path
from pydantic import BaseModel

from ...container import Container
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(tags=["budgets"])


class BudgetEntry(BaseModel):
    year: int
    month: int
    income_goal: Decimal
    notes: Optional[str] = None


class CopyYear(BaseModel):
    from_year: int
    to_year: int


@router.get("/budgets")
def list_budgets(year: Optional[int] = None, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_budget_service().list_budgets(user, year))


@router.put("/budgets")
def upsert_budget(entry: BudgetEntry, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_budget_service().upsert_budget(user, entry.year, entry.month, entry.income_goal, entry.notes))


@router.post("/budgets/bulk")
def bulk_upsert(entries: List[BudgetEntry], user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_budget_service().bulk_upsert(user, [e.model_dump() for e in entries]))


@router.post("/budgets/copy-year")
def copy_year(data: CopyYear, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_budget_service().copy_year(user, data.from_year, data.to_year))


@router.get("/budgets/{year}/{month}")
def budget_for(
    year: int, month: int = Path(..., ge=1, le=12), user: User = Depends(current_user), c: Container = Depends(container)
):
    """Effective income goal of a month, including the fallback to the monthly target."""
    return ok({"year": year, "month": month, "income_goal": c.get_budget_service().budget_for(user, year, month)})


@router.delete("/budgets/{budget_id}")
def delete_budget(budget_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    c.get_budget_service().delete_budget(user, budget_id)
    return ok({"deleted": True})


@router.get("/user-settings")
def get_settings(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_budget_service().get_settings(user))


@router.put("/user-settings")
def update_settings(
    changes: Dict[str, Any] = Body(...), user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_budget_service().update_settings(user, changes))
