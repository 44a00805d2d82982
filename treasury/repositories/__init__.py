"""
Repository layer: persistence of domain models in SQLite.
"""

from .account_repository import AccountHoldRepository, AccountRepository
from .alert_repository import AlertConfigRepository, AlertRepository, DailySnapshotRepository
from .base import BaseRepository, DatabaseConnection
from .budget_repository import MonthlyBudgetRepository, UserSettingsRepository
from .company_repository import CompanyRepository
from .credit_repository import CreditCardRepository, CreditLineRepository
from .loan_repository import LoanRepository
from .payment_order_repository import PaymentOrderRepository
from .payroll_repository import PayrollBatchRepository, PayrollLineRepository
from .recurrence_repository import RecurrenceRepository, RecurrenceVersionRepository
from .third_party_repository import ThirdPartyRepository
from .transaction_repository import TransactionRepository
from .user_repository import AuditLogRepository, UserRepository
from .worker_repository import WorkerRepository

__all__ = [
    "AccountHoldRepository",
    "AccountRepository",
    "AlertConfigRepository",
    "AlertRepository",
    "AuditLogRepository",
    "BaseRepository",
    "CompanyRepository",
    "CreditCardRepository",
    "CreditLineRepository",
    "DailySnapshotRepository",
    "DatabaseConnection",
    "LoanRepository",
    "MonthlyBudgetRepository",
    "PaymentOrderRepository",
    "PayrollBatchRepository",
    "PayrollLineRepository",
    "RecurrenceRepository",
    "RecurrenceVersionRepository",
    "ThirdPartyRepository",
    "TransactionRepository",
    "UserRepository",
    "UserSettingsRepository",
    "WorkerRepository",
]
