"""
Recurrence templates that generate transaction instances, and their amount versions.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from .base import OwnedModel
from .transaction import CertaintyLevel, PaymentMethod, RecurrenceFrequency, TransactionType

MONTHLY_FREQUENCIES = (
    RecurrenceFrequency.MONTHLY,
    RecurrenceFrequency.QUARTERLY,
    RecurrenceFrequency.YEARLY,
)
WEEKLY_FREQUENCIES = (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY)


class RecurrenceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ENDED = "ENDED"


class Recurrence(OwnedModel):
    """Template of a transaction that repeats on a schedule."""

    company_id: str
    type: TransactionType
    name: str = Field(..., min_length=1, max_length=100)
    base_amount: Decimal = Field(..., gt=0)
    category: str = Field(default="Otros", max_length=100)
    third_party_id: Optional[str] = None
    third_party_name: Optional[str] = Field(default=None, max_length=200)
    account_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    charge_account_id: Optional[str] = None
    certainty: CertaintyLevel = CertaintyLevel.MEDIUM
    notes: Optional[str] = Field(default=None, max_length=2000)

    frequency: RecurrenceFrequency
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6, description="0 = Sunday")
    start_date: date
    end_date: Optional[date] = None
    generate_months_ahead: int = Field(default=6, ge=1, le=24)

    last_generated_date: Optional[date] = None
    next_occurrence_date: Optional[date] = None
    current_version_id: Optional[str] = None
    status: RecurrenceStatus = RecurrenceStatus.ACTIVE
    created_by: Optional[str] = None
    last_updated_by: Optional[str] = None

    @model_validator(mode="after")
    def check_schedule(self) -> "Recurrence":
        if self.frequency == RecurrenceFrequency.NONE:
            raise ValueError("frequency must not be NONE for a recurrence")
        if self.frequency in MONTHLY_FREQUENCIES and self.day_of_month is None:
            raise ValueError("day_of_month is required for monthly, quarterly and yearly recurrences")
        if self.frequency in WEEKLY_FREQUENCIES and self.day_of_week is None:
            raise ValueError("day_of_week is required for weekly recurrences")
        if self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class RecurrenceVersion(OwnedModel):
    """An amount that applies to a recurrence from ``effective_from`` on."""

    recurrence_id: str
    amount: Decimal = Field(..., gt=0)
    effective_from: date
    effective_to: Optional[date] = None
    change_reason: Optional[str] = Field(default=None, max_length=500)
    version_number: int = Field(default=1, ge=1)
    is_active: bool = True
    created_by: Optional[str] = None

    def covers(self, day: date) -> bool:
        """Whether this version is the effective one on ``day``."""
        if day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to
