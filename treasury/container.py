"""
Dependency Injection Container

Builds every repository and service once, wired to a single database
connection, and hands them out to the API layer.
"""

from typing import Any, Dict, Optional

from .config.settings import Settings
from .repositories.account_repository import AccountHoldRepository, AccountRepository
from .repositories.alert_repository import AlertConfigRepository, AlertRepository, DailySnapshotRepository
from .repositories.base import DatabaseConnection
from .repositories.budget_repository import MonthlyBudgetRepository, UserSettingsRepository
from .repositories.company_repository import CompanyRepository
from .repositories.credit_repository import CreditCardRepository, CreditLineRepository
from .repositories.loan_repository import LoanRepository
from .repositories.payment_order_repository import PaymentOrderRepository
from .repositories.payroll_repository import PayrollBatchRepository, PayrollLineRepository
from .repositories.recurrence_repository import RecurrenceRepository, RecurrenceVersionRepository
from .repositories.third_party_repository import ThirdPartyRepository
from .repositories.transaction_repository import TransactionRepository
from .repositories.user_repository import AuditLogRepository, UserRepository
from .repositories.worker_repository import WorkerRepository
from .security.audit import AuditLogger
from .security.auth import PasswordHasher, TokenManager
from .security.rate_limiter import RateLimiter
from .services.account_service import AccountService
from .services.alert_service import AlertService
from .services.budget_service import BudgetService
from .services.company_service import CompanyService
from .services.credit_service import CreditService
from .services.forecast_service import ForecastService
from .services.loan_service import LoanService
from .services.logging_service import configure_logging
from .services.payment_order_service import PaymentOrderService
from .services.payroll_service import PayrollService
from .services.recurrence_service import RecurrenceService
from .services.third_party_service import ThirdPartyService
from .services.transaction_service import TransactionService
from .services.user_service import UserService
from .services.worker_service import WorkerService
from .utils.db_init import init_db


class Container:
    """Dependency injection container for managing application services."""

    def __init__(self):
        self._singletons: Dict[str, Any] = {}
        self._settings: Optional[Settings] = None
        self._db_connection: Optional[DatabaseConnection] = None

    def configure(self, settings: Optional[Settings] = None) -> None:
        """Configure the container with settings and make sure the schema exists."""
        self._settings = settings or Settings()
        configure_logging(self._settings.app.log_level, json_output=not self._settings.app.is_development)
        database = self._settings.database
        self._db_connection = DatabaseConnection(
            database.absolute_path, database.connection_timeout, database.enable_foreign_keys
        )
        init_db(self._db_connection)

        self._register_repositories()
        self._register_services()

    def get_settings(self) -> Settings:
        """Get application settings."""
        if not self._settings:
            self._settings = Settings()
        return self._settings

    def get_db_connection(self) -> DatabaseConnection:
        """Get database connection."""
        if not self._db_connection:
            self._db_connection = DatabaseConnection(self.get_settings().database.absolute_path)
        return self._db_connection

    def _register_repositories(self) -> None:
        db = self.get_db_connection()
        for name, repository_class in (
            ("user_repository", UserRepository),
            ("audit_log_repository", AuditLogRepository),
            ("company_repository", CompanyRepository),
            ("account_repository", AccountRepository),
            ("hold_repository", AccountHoldRepository),
            ("credit_line_repository", CreditLineRepository),
            ("credit_card_repository", CreditCardRepository),
            ("transaction_repository", TransactionRepository),
            ("recurrence_repository", RecurrenceRepository),
            ("recurrence_version_repository", RecurrenceVersionRepository),
            ("third_party_repository", ThirdPartyRepository),
            ("loan_repository", LoanRepository),
            ("worker_repository", WorkerRepository),
            ("payroll_batch_repository", PayrollBatchRepository),
            ("payroll_line_repository", PayrollLineRepository),
            ("payment_order_repository", PaymentOrderRepository),
            ("budget_repository", MonthlyBudgetRepository),
            ("user_settings_repository", UserSettingsRepository),
            ("alert_config_repository", AlertConfigRepository),
            ("alert_repository", AlertRepository),
            ("snapshot_repository", DailySnapshotRepository),
        ):
            self._singletons[name] = repository_class(db)

    def _register_services(self) -> None:
        settings = self.get_settings()
        repo = self._singletons
        treasury = settings.treasury

        audit = AuditLogger(repo["audit_log_repository"])
        self._singletons["audit_logger"] = audit
        self._singletons["rate_limiter"] = RateLimiter(settings.rate_limit)
        self._singletons["user_service"] = UserService(
            repo["user_repository"],
            PasswordHasher(settings.security.bcrypt_rounds),
            TokenManager(settings.security),
            audit,
        )

        company = CompanyService(repo["company_repository"], audit)
        account = AccountService(repo["account_repository"], repo["hold_repository"], company, audit)
        credit = CreditService(
            repo["credit_line_repository"], repo["credit_card_repository"], company, treasury, audit
        )
        recurrence = RecurrenceService(
            repo["recurrence_repository"],
            repo["recurrence_version_repository"],
            repo["transaction_repository"],
            company,
            treasury,
            audit,
        )
        third_party = ThirdPartyService(
            repo["third_party_repository"], repo["transaction_repository"], treasury, audit
        )
        loan = LoanService(repo["loan_repository"], repo["transaction_repository"], company, account, audit)
        transaction = TransactionService(
            repo["transaction_repository"], company, account, recurrence, third_party, loan, audit
        )
        worker = WorkerService(repo["worker_repository"], company, audit)
        payroll = PayrollService(
            repo["payroll_batch_repository"], repo["payroll_line_repository"], worker, company, transaction, audit
        )
        budget = BudgetService(repo["budget_repository"], repo["user_settings_repository"], audit)
        forecast = ForecastService(account, credit, transaction, budget, repo["snapshot_repository"], treasury)

        self._singletons.update(
            company_service=company,
            account_service=account,
            credit_service=credit,
            recurrence_service=recurrence,
            third_party_service=third_party,
            loan_service=loan,
            transaction_service=transaction,
            worker_service=worker,
            payroll_service=payroll,
            payment_order_service=PaymentOrderService(repo["payment_order_repository"], transaction, company, audit),
            budget_service=budget,
            forecast_service=forecast,
            alert_service=AlertService(
                repo["alert_config_repository"], repo["alert_repository"], forecast, credit, audit
            ),
        )

    def get_user_service(self) -> UserService:
        return self._singletons["user_service"]

    def get_company_service(self) -> CompanyService:
        return self._singletons["company_service"]

    def get_account_service(self) -> AccountService:
        return self._singletons["account_service"]

    def get_credit_service(self) -> CreditService:
        return self._singletons["credit_service"]

    def get_recurrence_service(self) -> RecurrenceService:
        return self._singletons["recurrence_service"]

    def get_third_party_service(self) -> ThirdPartyService:
        return self._singletons["third_party_service"]

    def get_loan_service(self) -> LoanService:
        return self._singletons["loan_service"]

    def get_transaction_service(self) -> TransactionService:
        return self._singletons["transaction_service"]

    def get_worker_service(self) -> WorkerService:
        return self._singletons["worker_service"]

    def get_payroll_service(self) -> PayrollService:
        return self._singletons["payroll_service"]

    def get_payment_order_service(self) -> PaymentOrderService:
        return self._singletons["payment_order_service"]

    def get_budget_service(self) -> BudgetService:
        return self._singletons["budget_service"]

    def get_forecast_service(self) -> ForecastService:
        return self._singletons["forecast_service"]

    def get_alert_service(self) -> AlertService:
        return self._singletons["alert_service"]

    def get_audit_logger(self) -> AuditLogger:
        return self._singletons["audit_logger"]

    def get_rate_limiter(self) -> RateLimiter:
        return self._singletons["rate_limiter"]

    def get_singleton(self, name: str) -> Any:
        """Get a singleton instance by name."""
        return self._singletons.get(name)

    def register_singleton(self, name: str, instance: Any) -> None:
        self._singletons[name] = instance

    def cleanup(self) -> None:
        """Cleanup container resources."""
        if self._db_connection:
            self._db_connection.close_all_connections()
        self._singletons.clear()


# Global container instance
_container: Optional[Container] = None


def get_container() -> Container:
    """Get the global container instance."""
    global _container
    if _container is None:
        _container = Container()
        _container.configure()
    return _container


def configure_container(settings: Optional[Settings] = None) -> Container:
    """Configure and return the global container."""
    global _container
    if _container is not None:
        _container.cleanup()
    _container = Container()
    _container.configure(settings)
    return _container


def cleanup_container() -> None:
    """Cleanup the global container."""
    global _container
    if _container:
        _container.cleanup()
        _container = None
