"""
Alert configuration and evaluation.

Each enabled ``AlertConfig`` is checked against the current treasury
position; the ones that trigger produce an ``Alert`` row unless an unread
alert already exists for that config.
"""

from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

from ..models.alert import ALERT_DESCRIPTIONS, Alert, AlertConfig, AlertType, RiskLevel
from ..models.transaction import TransactionStatus, TransactionType
from ..models.user import User
from ..repositories.alert_repository import AlertConfigRepository, AlertRepository
from ..security.audit import AuditAction, AuditEntity
from ..utils.currency_utils import format_currency
from .base import BaseService
from .credit_service import CreditService
from .forecast_service import ForecastService
from .logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

CONCENTRATION_DAYS = 7

# (value, severity, message), or None when the alert does not trigger.
Evaluation = Optional[Tuple[Decimal, RiskLevel, str]]


def _money(amount: Decimal) -> str:
    return f"-{format_currency(amount)}" if amount < 0 else format_currency(amount)


def describe(alert_type: AlertType) -> str:
    return ALERT_DESCRIPTIONS[AlertType(alert_type)]


class AlertService(BaseService):
    entity_label = "Alert config"
    audit_entity = AuditEntity.ALERT

    def __init__(
        self,
        config_repository: AlertConfigRepository,
        alert_repository: AlertRepository,
        forecast_service: ForecastService,
        credit_service: CreditService,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.config_repository = config_repository
        self.alert_repository = alert_repository
        self.forecast_service = forecast_service
        self.credit_service = credit_service

    # Configs

    def list_configs(self, user: User) -> List[AlertConfig]:
        return self.config_repository.find_by(user_id=user.id)

    def get_config(self, user: User, config_id: str) -> AlertConfig:
        return self._get_owned(self.config_repository, config_id, user)

    def create_config(self, user: User, config: AlertConfig) -> AlertConfig:
        saved = self.config_repository.save(self._prepare_new(config, user))
        self._audit(user, AuditAction.CREATE, saved.id, describe(saved.type), new_value=saved)
        return saved

    def update_config(self, user: User, config_id: str, changes: Dict[str, Any]) -> AlertConfig:
        current = self.get_config(user, config_id)
        updated = self._apply_changes(current, changes)
        saved = self.config_repository.save(updated)
        self._audit(
            user, AuditAction.UPDATE, saved.id, describe(saved.type), previous_value=current, new_value=saved
        )
        return saved

    def toggle_config(self, user: User, config_id: str) -> AlertConfig:
        current = self.get_config(user, config_id)
        return self.update_config(user, config_id, {"enabled": not current.enabled})

    def delete_config(self, user: User, config_id: str) -> None:
        current = self.get_config(user, config_id)
        self.config_repository.delete(current.id)
        self._audit(user, AuditAction.DELETE, current.id, describe(current.type))

    # Alerts

    def unread(self, user: User) -> List[Alert]:
        return self.alert_repository.unread(user.id)

    def recent(self, user: User, days: int = 7) -> List[Alert]:
        return self.alert_repository.recent(user.id, days)

    def mark_read(self, user: User, alert_id: str) -> Alert:
        alert = self._get_owned(self.alert_repository, alert_id, user, "Alert")
        self.alert_repository.update_fields(alert.id, is_read=True)
        return self.alert_repository.find_by_id(alert.id)

    def mark_all_read(self, user: User) -> int:
        return self.alert_repository.mark_all_read(user.id)

    def evaluate_alerts(
        self, user: User, today: Optional[date] = None, now: Optional[datetime] = None
    ) -> List[Alert]:
        """Check every enabled config and store an alert for each one that triggers."""
        today = today or date.today()
        configs = [c for c in self.list_configs(user) if c.enabled]
        if not configs:
            return []

        already_open = {a.config_id for a in self.unread(user) if a.config_id}
        created = []
        for config in configs:
            if config.id in already_open:
                continue
            result = self._evaluate(user, config, today, now)
            if result is None:
                continue
            value, severity, message = result
            alert = Alert(
                user_id=user.id,
                config_id=config.id,
                type=config.type,
                message=message,
                severity=severity,
                value=value,
                threshold=config.threshold,
                company_id=config.company_id,
            )
            created.append(self.alert_repository.save(alert))

        logger.info("Alerts evaluated", configs=len(configs), created=len(created))
        return created

    # Evaluation of each alert type

    def _evaluate(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        handlers = {
            AlertType.MIN_LIQUIDITY: self._min_liquidity,
            AlertType.CRITICAL_RUNWAY: self._critical_runway,
            AlertType.CONCENTRATED_MATURITIES: self._concentrated_maturities,
            AlertType.LOW_CREDIT_LINE: self._low_credit_line,
            AlertType.OVERDUE_COLLECTIONS: self._overdue_collections,
            AlertType.STALE_DATA: self._stale_data,
            AlertType.CREDIT_NEED: self._credit_need,
        }
        return handlers[AlertType(config.type)](user, config, today, now)

    def _min_liquidity(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        available = self.forecast_service.position(user, config.company_id).available_liquidity
        if available >= config.threshold:
            return None
        severity = RiskLevel.CRITICAL if available < 0 else RiskLevel.HIGH
        message = f"Liquidez por debajo del umbral: {_money(available)} < {_money(config.threshold)}"
        return available, severity, message

    def _critical_runway(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        days = self.forecast_service.runway(user, config.company_id, today)["runway_days"]
        if Decimal(days) >= config.threshold:
            return None
        return Decimal(days), RiskLevel.HIGH, f"Runway crítico: solo quedan {days} días de operación"

    def _concentrated_maturities(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        expenses = self.forecast_service.transaction_service.transaction_repository.search(
            user.id,
            company_id=config.company_id,
            type=TransactionType.EXPENSE,
            status=TransactionStatus.PENDING,
            start_date=today,
            end_date=today + timedelta(days=CONCENTRATION_DAYS),
        )
        total = sum((tx.amount for tx in expenses), Decimal("0"))
        if total <= config.threshold:
            return None
        return total, RiskLevel.MEDIUM, f"{_money(total)} en vencimientos la próxima semana"

    def _low_credit_line(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        lines = self.credit_service.line_repository.find_active(user.id, config.company_id)
        low = [(line.available_ratio * 100, line) for line in lines if line.available_ratio * 100 < config.threshold]
        if not low:
            return None
        percentage, line = min(low, key=lambda item: item[0])
        percentage = percentage.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        name = line.alias or line.bank_name
        return percentage, RiskLevel.MEDIUM, f"Póliza {name} con solo {percentage}% disponible"

    def _overdue_collections(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        overdue = self.forecast_service.transaction_service.transaction_repository.search(
            user.id,
            company_id=config.company_id,
            type=TransactionType.INCOME,
            status=TransactionStatus.PENDING,
            end_date=today - timedelta(days=1),
        )
        total = sum((tx.amount for tx in overdue), Decimal("0"))
        if total <= config.threshold:
            return None
        return total, RiskLevel.HIGH, f"{len(overdue)} cobros vencidos por {_money(total)}"

    def _stale_data(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        stale = self.forecast_service.stale_accounts(user, hours=int(config.threshold), now=now)
        if not stale:
            return None
        known = [s["hours"] for s in stale if s["hours"] is not None]
        hours = Decimal(int(max(known))) if known else config.threshold
        return hours, RiskLevel.MEDIUM, f"{len(stale)} cuentas sin actualizar desde hace {hours} horas"

    def _credit_need(self, user: User, config: AlertConfig, today: date, now: Optional[datetime]) -> Evaluation:
        buckets = self.forecast_service.monthly_forecast(user, company_id=config.company_id, today=today)
        needed = self.forecast_service.credit_needed(buckets)
        if needed <= config.threshold:
            return None
        return needed, RiskLevel.CRITICAL, f"Se necesita financiación de {_money(needed)} en los próximos meses"
