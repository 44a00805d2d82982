"""
Credit products: credit lines (pólizas) and credit cards.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator

from .base import OwnedModel
from .company import EntityStatus


class CreditLineType(str, Enum):
    CREDIT = "CREDIT"
    DISCOUNT = "DISCOUNT"


class CreditLine(OwnedModel):
    """Credit line; ``available`` is always ``credit_limit - current_drawn``."""

    company_id: str
    bank_name: str = Field(..., min_length=1, max_length=100)
    alias: Optional[str] = Field(default=None, max_length=100)
    line_type: CreditLineType = CreditLineType.CREDIT
    credit_limit: Decimal = Field(..., gt=0)
    current_drawn: Decimal = Field(default=Decimal("0"), ge=0)
    available: Decimal = Decimal("0")
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    expiry_date: Optional[date] = None
    auto_draw_threshold: Optional[Decimal] = Field(default=None, ge=0)
    account_id: Optional[str] = None
    status: EntityStatus = EntityStatus.ACTIVE

    @model_validator(mode="after")
    def compute_available(self) -> "CreditLine":
        if self.current_drawn > self.credit_limit:
            raise ValueError("current_drawn cannot exceed credit_limit")
        self.available = self.credit_limit - self.current_drawn
        return self

    @property
    def available_ratio(self) -> Decimal:
        return self.available / self.credit_limit


class CreditCard(OwnedModel):
    """Credit card with its statement cycle."""

    company_id: str
    bank_name: str = Field(..., min_length=1, max_length=100)
    card_alias: Optional[str] = Field(default=None, max_length=100)
    card_number_last4: str = Field(..., pattern=r"^\d{4}$")
    card_holder: Optional[str] = Field(default=None, max_length=100)
    credit_limit: Decimal = Field(..., gt=0)
    current_balance: Decimal = Field(default=Decimal("0"), ge=0)
    available_credit: Decimal = Decimal("0")
    cutoff_day: int = Field(default=1, ge=1, le=31)
    payment_due_day: int = Field(default=1, ge=1, le=31)
    charge_account_id: Optional[str] = None
    status: EntityStatus = EntityStatus.ACTIVE

    @field_validator("card_number_last4", mode="before")
    @classmethod
    def strip_last4(cls, v):
        return str(v).strip() if v is not None else v

    @model_validator(mode="after")
    def compute_available(self) -> "CreditCard":
        if self.current_balance > self.credit_limit:
            raise ValueError("current_balance cannot exceed credit_limit")
        self.available_credit = self.credit_limit - self.current_balance
        return self
