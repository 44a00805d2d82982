"""
Transaction domain model: incomes (cobros) and expenses (pagos).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .base import OwnedModel


class TransactionType(str, Enum):
    """Transaction type enumeration"""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionStatus(str, Enum):
    """Transaction status enumeration"""

    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class RecurrenceFrequency(str, Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class CertaintyLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class PaymentMethod(str, Enum):
    TRANSFER = "TRANSFER"
    DIRECT_DEBIT = "DIRECT_DEBIT"


EXPENSE_CATEGORIES = [
    "Nóminas",
    "Seguros Sociales",
    "Alquiler",
    "Suministros",
    "Proveedores",
    "Impuestos",
    "Seguros",
    "Viajes",
    "Material",
    "Servicios Externos",
    "Mantenimiento",
    "Préstamo",
    "Otros",
]

INCOME_CATEGORIES = [
    "Facturación Clientes",
    "Subvenciones",
    "Intereses",
    "Otros Ingresos",
]

PAYROLL_CATEGORY = "Nóminas"
LOAN_CATEGORY = "Préstamo"


class Transaction(OwnedModel):
    """A pending, paid or cancelled movement of money for a company."""

    company_id: str
    account_id: Optional[str] = None
    type: TransactionType
    amount: Decimal = Field(..., gt=0, description="Transaction amount must be positive")
    status: TransactionStatus = TransactionStatus.PENDING
    due_date: date
    paid_date: Optional[date] = None
    category: str = Field(default="Otros", max_length=100)
    description: str = Field(default="", max_length=500)
    third_party_id: Optional[str] = None
    third_party_name: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=2000)

    invoice_number: Optional[str] = Field(default=None, max_length=100)
    supplier_invoice_number: Optional[str] = Field(default=None, max_length=100)
    supplier_bank_account: Optional[str] = Field(default=None, max_length=50)
    payment_method: Optional[PaymentMethod] = None
    charge_account_id: Optional[str] = None

    recurrence: RecurrenceFrequency = RecurrenceFrequency.NONE
    certainty: CertaintyLevel = CertaintyLevel.MEDIUM

    recurrence_id: Optional[str] = None
    recurrence_version_id: Optional[str] = None
    is_recurrence_instance: bool = False
    instance_date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}$")
    overridden_from_recurrence: bool = False

    loan_id: Optional[str] = None
    loan_installment_number: Optional[int] = Field(default=None, ge=1)

    payment_order_id: Optional[str] = None
    payment_order_number: Optional[str] = None

    created_by: Optional[str] = None
    last_updated_by: Optional[str] = None

    @field_validator("supplier_bank_account")
    @classmethod
    def normalize_bank_account(cls, v: Optional[str]) -> Optional[str]:
        return v.replace(" ", "").upper() if v else v

    @property
    def signed_amount(self) -> Decimal:
        """Amount with sign: positive for incomes, negative for expenses."""
        return self.amount if self.type == TransactionType.INCOME else -self.amount

    @property
    def income_layer(self) -> int:
        return income_layer(self)


def income_layer(tx: Transaction) -> int:
    """
    Classify the certainty of an income.

    1: invoiced, 2: recurring with high certainty, 3: everything else.
    Expenses are always layer 3.
    """
    if tx.type != TransactionType.INCOME:
        return 3
    if tx.invoice_number and tx.invoice_number.strip():
        return 1
    if tx.recurrence != RecurrenceFrequency.NONE and tx.certainty == CertaintyLevel.HIGH:
        return 2
    return 3
