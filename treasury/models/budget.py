"""
Monthly income budgets and per-user settings.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from .base import OwnedModel


class MonthlyBudget(OwnedModel):
    """Income goal for one month; unique per user, year and month."""

    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    income_goal: Decimal = Field(..., ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class UserSettings(OwnedModel):
    monthly_income_target: Decimal = Field(default=Decimal("0"), ge=0)
    show_income_layers: bool = True
    default_forecast_months: int = Field(default=4, ge=1, le=24)
