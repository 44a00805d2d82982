"""
Bank account and account hold (retención) models.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from .base import OwnedModel
from .company import EntityStatus


class Account(OwnedModel):
    """Bank account of a company with its last confirmed balance."""

    company_id: str
    bank_name: str = Field(..., min_length=1, max_length=100)
    alias: Optional[str] = Field(default=None, max_length=100)
    account_number: Optional[str] = Field(default=None, max_length=50)
    current_balance: Decimal = Decimal("0")
    last_update_amount: Decimal = Decimal("0")
    last_update_date: Optional[datetime] = None
    last_updated_by: Optional[str] = None
    status: EntityStatus = EntityStatus.ACTIVE
    is_primary: bool = False

    @property
    def display_name(self) -> str:
        return self.alias or self.bank_name


class AccountHoldType(str, Enum):
    """Kind of retention applied on a bank account"""

    JUDICIAL = "JUDICIAL"
    TAX = "TAX"
    BANK_GUARANTEE = "BANK_GUARANTEE"
    PARTIAL = "PARTIAL"
    FRAUD_BLOCK = "FRAUD_BLOCK"
    OTHER = "OTHER"


class AccountHoldStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RELEASED = "RELEASED"
    EXPIRED = "EXPIRED"


class AccountHold(OwnedModel):
    """An amount blocked on an account that cannot be spent."""

    account_id: str
    company_id: Optional[str] = None
    concept: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    start_date: date
    end_date: Optional[date] = None
    type: AccountHoldType = AccountHoldType.OTHER
    status: AccountHoldStatus = AccountHoldStatus.ACTIVE
    reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=500)
    released_at: Optional[datetime] = None
    released_by: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self) -> "AccountHold":
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
