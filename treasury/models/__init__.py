"""
Domain models for the treasury service.
"""

from .account import Account, AccountHold, AccountHoldStatus, AccountHoldType
from .alert import ALERT_DESCRIPTIONS, Alert, AlertConfig, AlertType, DailySnapshot, RiskLevel
from .base import BaseModel, OwnedModel, to_cents
from .budget import MonthlyBudget, UserSettings
from .company import Company, EntityStatus
from .credit import CreditCard, CreditLine, CreditLineType
from .loan import Loan, LoanStatus
from .payment_order import PaymentOrder, PaymentOrderItem, PaymentOrderStatus
from .payroll import (
    PayrollBatch,
    PayrollBatchStatus,
    PayrollLine,
    PayrollLineStatus,
    PayrollType,
    payroll_title,
)
from .recurrence import Recurrence, RecurrenceStatus, RecurrenceVersion
from .third_party import ThirdParty, ThirdPartyType
from .transaction import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    CertaintyLevel,
    PaymentMethod,
    RecurrenceFrequency,
    Transaction,
    TransactionStatus,
    TransactionType,
    income_layer,
)
from .user import AuditLog, User, UserCreate, UserRole
from .worker import Worker

__all__ = [
    "Account",
    "AccountHold",
    "AccountHoldStatus",
    "AccountHoldType",
    "ALERT_DESCRIPTIONS",
    "Alert",
    "AlertConfig",
    "AlertType",
    "AuditLog",
    "BaseModel",
    "CertaintyLevel",
    "Company",
    "CreditCard",
    "CreditLine",
    "CreditLineType",
    "DailySnapshot",
    "EntityStatus",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "Loan",
    "LoanStatus",
    "MonthlyBudget",
    "OwnedModel",
    "PaymentMethod",
    "PaymentOrder",
    "PaymentOrderItem",
    "PaymentOrderStatus",
    "PayrollBatch",
    "PayrollBatchStatus",
    "PayrollLine",
    "PayrollLineStatus",
    "PayrollType",
    "Recurrence",
    "RecurrenceFrequency",
    "RecurrenceStatus",
    "RecurrenceVersion",
    "RiskLevel",
    "ThirdParty",
    "ThirdPartyType",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "User",
    "UserCreate",
    "UserRole",
    "UserSettings",
    "Worker",
    "income_layer",
    "payroll_title",
    "to_cents",
]
