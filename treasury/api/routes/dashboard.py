from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...container import Container
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)):
    """Position, runway, forecast and warnings in one call."""
    return ok(c.get_forecast_service().dashboard(user, company_id))


@router.get("/position")
def position(company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_forecast_service().position(user, company_id))


@router.get("/forecast")
def forecast(
    months: Optional[int] = Query(default=None, ge=1, le=24),
    company_id: Optional[str] = None,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_forecast_service().monthly_forecast(user, months, company_id))


@router.get("/runway")
def runway(company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_forecast_service().runway(user, company_id))


@router.get("/income-layers")
def income_layers(
    company_id: Optional[str] = None, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_forecast_service().income_layers(user, company_id))


@router.get("/stale-accounts")
def stale_accounts(
    hours: Optional[int] = Query(default=None, ge=1), user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_forecast_service().stale_accounts(user, hours))


@router.post("/snapshot", status_code=201)
def take_snapshot(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_forecast_service().take_snapshot(user))


@router.get("/snapshots")
def list_snapshots(
    limit: int = Query(default=30, ge=1, le=365), user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_forecast_service().list_snapshots(user, limit))
