"""
HTTP API for the treasury back office.

Every resource router is mounted on ``api_router``; the application
factory in ``main`` serves it under ``/api``.
"""
from fastapi import APIRouter

from .routes import (
    accounts,
    alerts,
    audit,
    auth,
    budgets,
    companies,
    credit,
    dashboard,
    loans,
    payment_orders,
    payroll,
    recurrences,
    third_parties,
    transactions,
    workers,
)

api_router = APIRouter()

for module in (
    auth,
    companies,
    accounts,
    credit,
    loans,
    transactions,
    recurrences,
    third_parties,
    workers,
    payroll,
    payment_orders,
    budgets,
    dashboard,
    alerts,
    audit,
):
    api_router.include_router(module.router)

# Expose a generic name for convenience
router = api_router

__all__ = ["api_router", "router"]
