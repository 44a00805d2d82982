"""
Treasury position, monthly forecast, runway and daily snapshots.

Everything here is derived from pending transactions, account balances,
active holds and credit lines; nothing is stored except the snapshots.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from ..config.settings import TreasuryConfig
from ..models.alert import DailySnapshot, RiskLevel
from ..models.transaction import Transaction, TransactionStatus, TransactionType
from ..models.user import User
from ..repositories.alert_repository import DailySnapshotRepository
from ..utils.date_utils import DateUtils
from .account_service import AccountService
from .budget_service import BudgetService
from .credit_service import CreditService
from .logging_service import get_structured_logger
from .transaction_service import TransactionService

logger = get_structured_logger().get_logger(__name__)

MONTH_NAMES = [
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
]

NO_BURN_RUNWAY_DAYS = 999
MEDIUM_RISK_RATIO = Decimal("0.3")
ZERO = Decimal("0")


@dataclass
class TreasuryPosition:
    liquidity: Decimal
    held: Decimal
    available_liquidity: Decimal
    credit_available: Decimal
    net_position: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForecastBucket:
    """Expected movements of one calendar month."""

    label: str
    month: str
    start_date: date
    end_date: date
    incomes: Decimal = ZERO
    estimated_incomes: Decimal = ZERO
    effective_incomes: Decimal = ZERO
    expenses: Decimal = ZERO
    net_flow: Decimal = ZERO
    cumulative_balance: Decimal = ZERO
    risk_level: RiskLevel = RiskLevel.LOW
    transaction_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = RiskLevel(self.risk_level).value
        return data


def _total(transactions: List[Transaction], tx_type: TransactionType) -> Decimal:
    return sum((tx.amount for tx in transactions if tx.type == tx_type), ZERO)


def risk_level(cumulative: Decimal, liquidity: Decimal) -> RiskLevel:
    if cumulative < 0:
        return RiskLevel.HIGH
    if cumulative < liquidity * MEDIUM_RISK_RATIO:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class ForecastService:
    """Read-only projections over a user's treasury."""

    def __init__(
        self,
        account_service: AccountService,
        credit_service: CreditService,
        transaction_service: TransactionService,
        budget_service: BudgetService,
        snapshot_repository: DailySnapshotRepository,
        config: Optional[TreasuryConfig] = None,
    ):
        self.account_service = account_service
        self.credit_service = credit_service
        self.transaction_service = transaction_service
        self.budget_service = budget_service
        self.snapshot_repository = snapshot_repository
        self.config = config or TreasuryConfig()

    # Position

    def position(self, user: User, company_id: Optional[str] = None) -> TreasuryPosition:
        accounts = self.account_service.list_accounts(user, company_id)
        liquidity = sum((a.current_balance for a in accounts), ZERO)
        account_ids = {a.id for a in accounts}
        held = sum(
            (h.amount for h in self.account_service.hold_repository.find_active(user.id) if h.account_id in account_ids),
            ZERO,
        )
        credit_available = self.credit_service.total_available(user, company_id)
        return TreasuryPosition(
            liquidity=liquidity,
            held=held,
            available_liquidity=liquidity - held,
            credit_available=credit_available,
            net_position=liquidity + credit_available,
        )

    def liquidity_by_company(self, user: User) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = {}
        for account in self.account_service.list_accounts(user):
            totals[account.company_id] = totals.get(account.company_id, ZERO) + account.current_balance
        return totals

    # Forecast

    def monthly_forecast(
        self,
        user: User,
        months: Optional[int] = None,
        company_id: Optional[str] = None,
        today: Optional[date] = None,
        position: Optional[TreasuryPosition] = None,
    ) -> List[ForecastBucket]:
        """
        Project the balance month by month.

        The first bucket runs from today to the end of the month and also
        collects overdue pending transactions. Months with fewer invoiced
        incomes than their budget get the difference as estimated income.
        """
        today = today or date.today()
        months = months or self.config.forecast_months
        position = position or self.position(user, company_id)

        buckets = []
        start = today
        for _ in range(months):
            end = DateUtils.end_of_month(start)
            buckets.append(
                ForecastBucket(
                    label=f"{MONTH_NAMES[start.month - 1]} {start.year}",
                    month=DateUtils.month_key(start),
                    start_date=start,
                    end_date=end,
                )
            )
            start = end + timedelta(days=1)

        pending = self.transaction_service.transaction_repository.pending_until(
            user.id, buckets[-1].end_date, company_id
        )
        grouped: Dict[int, List[Transaction]] = {i: [] for i in range(len(buckets))}
        for tx in pending:
            if tx.due_date < today:
                grouped[0].append(tx)
                continue
            for index, bucket in enumerate(buckets):
                if bucket.start_date <= tx.due_date <= bucket.end_date:
                    grouped[index].append(tx)
                    break

        running = position.available_liquidity
        for index, bucket in enumerate(buckets):
            items = grouped[index]
            budget = self.budget_service.budget_for(user, bucket.start_date.year, bucket.start_date.month)
            bucket.incomes = _total(items, TransactionType.INCOME)
            bucket.expenses = _total(items, TransactionType.EXPENSE)
            bucket.estimated_incomes = max(ZERO, budget - bucket.incomes)
            bucket.effective_incomes = bucket.incomes + bucket.estimated_incomes
            bucket.net_flow = bucket.effective_incomes - bucket.expenses
            running += bucket.net_flow
            bucket.cumulative_balance = running
            bucket.risk_level = risk_level(running, position.liquidity)
            bucket.transaction_count = len(items)
        return buckets

    def runway(
        self,
        user: User,
        company_id: Optional[str] = None,
        today: Optional[date] = None,
        position: Optional[TreasuryPosition] = None,
    ) -> Dict[str, Any]:
        """Days the available liquidity lasts at the expected spending rate."""
        today = today or date.today()
        horizon = self.config.runway_horizon_months
        position = position or self.position(user, company_id)
        pending = self.transaction_service.transaction_repository.search(
            user.id,
            company_id=company_id,
            type=TransactionType.EXPENSE,
            status=TransactionStatus.PENDING,
            start_date=today,
            end_date=DateUtils.add_months(today, horizon),
        )
        monthly = sum((tx.amount for tx in pending), ZERO) / horizon
        daily = monthly / 30
        if daily > 0:
            days = int((position.available_liquidity / daily).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        else:
            days = NO_BURN_RUNWAY_DAYS
        return {"monthly_expenses": monthly, "daily_burn": daily, "runway_days": days}

    def income_layers(self, user: User, company_id: Optional[str] = None) -> Dict[int, Dict[str, Any]]:
        """Pending incomes grouped by certainty layer."""
        layers = {layer: {"count": 0, "total": ZERO} for layer in (1, 2, 3)}
        for tx in self.transaction_service.list_transactions(
            user, company_id=company_id, type=TransactionType.INCOME, status=TransactionStatus.PENDING
        ):
            layers[tx.income_layer]["count"] += 1
            layers[tx.income_layer]["total"] += tx.amount
        return layers

    def credit_needed(self, buckets: List[ForecastBucket]) -> Decimal:
        if not buckets:
            return ZERO
        lowest = min(b.cumulative_balance for b in buckets)
        return max(ZERO, -lowest)

    # Dashboard

    def dashboard_alerts(
        self,
        user: User,
        buckets: List[ForecastBucket],
        runway_days: int,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Warnings shown on the dashboard, computed on the fly."""
        alerts = []
        if buckets and buckets[0].cumulative_balance < 0:
            alerts.append(
                {"message": f"Saldo proyectado negativo en {buckets[0].label}", "severity": RiskLevel.HIGH.value}
            )
        if runway_days < self.config.runway_alert_days:
            alerts.append({"message": f"Runway crítico: {runway_days} días", "severity": RiskLevel.HIGH.value})
        if self.stale_accounts(user, now=now):
            alerts.append(
                {
                    "message": f"Hay cuentas sin actualizar hace más de {self.config.stale_data_hours}h",
                    "severity": RiskLevel.MEDIUM.value,
                }
            )
        return alerts

    def stale_accounts(
        self, user: User, hours: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """Active accounts whose balance has not been confirmed for ``hours``."""
        hours = hours if hours is not None else self.config.stale_data_hours
        now = now or datetime.now()
        stale = []
        for account in self.account_service.list_accounts(user):
            if account.last_update_date is None:
                stale.append({"account_id": account.id, "account": account.display_name, "hours": None})
                continue
            elapsed = DateUtils.hours_since(account.last_update_date, now)
            if elapsed > hours:
                stale.append({"account_id": account.id, "account": account.display_name, "hours": elapsed})
        return stale

    def dashboard(
        self, user: User, company_id: Optional[str] = None, today: Optional[date] = None
    ) -> Dict[str, Any]:
        today = today or date.today()
        position = self.position(user, company_id)
        buckets = self.monthly_forecast(user, company_id=company_id, today=today, position=position)
        runway = self.runway(user, company_id, today, position)
        return {
            "position": position.to_dict(),
            "runway": runway,
            "forecast": [b.to_dict() for b in buckets],
            "credit_needed": self.credit_needed(buckets),
            "income_layers": self.income_layers(user, company_id),
            "upcoming": self.transaction_service.upcoming_stats(user, company_id, today),
            "alerts": self.dashboard_alerts(user, buckets, runway["runway_days"]),
        }

    # Snapshots

    def take_snapshot(self, user: User, today: Optional[date] = None) -> DailySnapshot:
        """Store today's position, replacing an earlier snapshot of the same day."""
        today = today or date.today()
        position = self.position(user)
        runway = self.runway(user, today=today, position=position)
        snapshot = DailySnapshot(
            user_id=user.id,
            snapshot_date=today.isoformat(),
            total_liquidity=position.liquidity,
            total_credit_available=position.credit_available,
            net_position=position.net_position,
            runway_days=runway["runway_days"],
            liquidity_by_company=self.liquidity_by_company(user),
        )
        existing = self.snapshot_repository.for_date(user.id, snapshot.snapshot_date)
        if existing is not None:
            snapshot.id = existing.id
            snapshot.created_at = existing.created_at
        saved = self.snapshot_repository.save(snapshot)
        logger.info("Daily snapshot stored", snapshot_date=saved.snapshot_date, replaced=existing is not None)
        return saved

    def list_snapshots(self, user: User, limit: Optional[int] = 30) -> List[DailySnapshot]:
        return self.snapshot_repository.find_by(user_id=user.id, order_by="snapshot_date DESC", limit=limit)
