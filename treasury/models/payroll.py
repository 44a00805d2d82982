"""
Payroll batch (remesa de nóminas) and payroll line models.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import OwnedModel

SPANISH_MONTHS = [
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
]


class PayrollType(str, Enum):
    MONTHLY = "MONTHLY"
    EXTRA_SUMMER = "EXTRA_SUMMER"
    EXTRA_CHRISTMAS = "EXTRA_CHRISTMAS"
    BONUS = "BONUS"
    OTHER = "OTHER"


class PayrollBatchStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PayrollLineStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


EXTRA_PAYROLL_TYPES = (PayrollType.EXTRA_SUMMER, PayrollType.EXTRA_CHRISTMAS)


def payroll_title(year: int, month: int, payroll_type) -> str:
    """Default title of a batch for its period and type."""
    month_name = SPANISH_MONTHS[month - 1]
    if payroll_type == PayrollType.MONTHLY:
        return f"Nóminas {month_name} {year}"
    if payroll_type == PayrollType.EXTRA_SUMMER:
        return f"Paga Extra Verano {year}"
    if payroll_type == PayrollType.EXTRA_CHRISTMAS:
        return f"Paga Extra Navidad {year}"
    if payroll_type == PayrollType.BONUS:
        return f"Bonus {month_name} {year}"
    return f"Pago Extraordinario {month_name} {year}"


class PayrollBatch(OwnedModel):
    company_id: str
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    payroll_type: PayrollType = PayrollType.MONTHLY
    title: Optional[str] = Field(default=None, max_length=200)
    total_amount: Decimal = Decimal("0")
    worker_count: int = 0
    status: PayrollBatchStatus = PayrollBatchStatus.DRAFT
    due_date: Optional[date] = None
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None
    parent_transaction_id: Optional[str] = None
    payment_order_id: Optional[str] = None
    payment_order_number: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: Optional[str] = None


class PayrollLine(OwnedModel):
    """One worker's payment inside a batch, with a snapshot of the worker's bank data."""

    payroll_batch_id: str
    company_id: str
    worker_id: str
    worker_name: str
    iban_snapshot: Optional[str] = None
    bank_alias_snapshot: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    status: PayrollLineStatus = PayrollLineStatus.PENDING
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    payment_order_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)
