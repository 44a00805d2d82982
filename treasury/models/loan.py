"""
Loan (préstamo) model.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import OwnedModel


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAID_OFF = "PAID_OFF"
    DEFAULTED = "DEFAULTED"


class Loan(OwnedModel):
    """A bank loan repaid in fixed monthly installments."""

    company_id: str
    bank_name: str = Field(..., min_length=1, max_length=100)
    alias: Optional[str] = Field(default=None, max_length=100)
    original_principal: Decimal = Field(default=Decimal("0"), ge=0)
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    monthly_payment: Decimal = Field(..., gt=0)
    payment_day: int = Field(..., ge=1, le=31)
    charge_account_id: str
    remaining_balance: Decimal = Field(default=Decimal("0"), ge=0)
    remaining_installments: int = Field(..., ge=1, le=600)
    first_pending_date: date
    end_date: Optional[date] = None
    paid_installments: int = Field(default=0, ge=0)
    status: LoanStatus = LoanStatus.ACTIVE
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.alias or self.bank_name
