"""
Payment order (orden de pago) authorizing finance to pay a set of expenses.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel as PydanticBaseModel, Field

from .base import OwnedModel


class PaymentOrderStatus(str, Enum):
    AUTHORIZED = "AUTHORIZED"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"


class PaymentOrderItem(PydanticBaseModel):
    transaction_id: str
    description: str = ""
    third_party_name: Optional[str] = None
    supplier_invoice_number: Optional[str] = None
    supplier_bank_account: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    due_date: date
    charge_account_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentOrder(OwnedModel):
    order_number: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    default_charge_account_id: Optional[str] = None
    items: List[PaymentOrderItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    item_count: int = 0
    status: PaymentOrderStatus = PaymentOrderStatus.AUTHORIZED
    authorized_by: Optional[str] = None
    authorized_by_name: Optional[str] = None
    authorized_at: Optional[datetime] = None
    executed_by: Optional[str] = None
    executed_by_name: Optional[str] = None
    executed_at: Optional[datetime] = None
    notes_for_finance: Optional[str] = Field(default=None, max_length=1000)
