"""
Alert configuration, triggered alerts and daily treasury snapshots.
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from .base import OwnedModel


class AlertType(str, Enum):
    MIN_LIQUIDITY = "MIN_LIQUIDITY"
    CRITICAL_RUNWAY = "CRITICAL_RUNWAY"
    CONCENTRATED_MATURITIES = "CONCENTRATED_MATURITIES"
    LOW_CREDIT_LINE = "LOW_CREDIT_LINE"
    OVERDUE_COLLECTIONS = "OVERDUE_COLLECTIONS"
    STALE_DATA = "STALE_DATA"
    CREDIT_NEED = "CREDIT_NEED"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


ALERT_DESCRIPTIONS = {
    AlertType.MIN_LIQUIDITY: "Liquidez mínima",
    AlertType.CRITICAL_RUNWAY: "Runway crítico",
    AlertType.CONCENTRATED_MATURITIES: "Vencimientos concentrados",
    AlertType.LOW_CREDIT_LINE: "Póliza baja",
    AlertType.OVERDUE_COLLECTIONS: "Cobros atrasados",
    AlertType.STALE_DATA: "Dato caduco",
    AlertType.CREDIT_NEED: "Necesidad de póliza",
}


class AlertConfig(OwnedModel):
    type: AlertType
    threshold: Decimal = Field(..., ge=0)
    enabled: bool = True
    notify_email: bool = False
    notify_in_app: bool = True
    company_id: Optional[str] = None


class Alert(OwnedModel):
    config_id: Optional[str] = None
    type: AlertType
    message: str
    severity: RiskLevel = RiskLevel.MEDIUM
    value: Decimal = Decimal("0")
    threshold: Decimal = Decimal("0")
    company_id: Optional[str] = None
    is_read: bool = False


class DailySnapshot(OwnedModel):
    """Treasury position captured once per user and day."""

    snapshot_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    total_liquidity: Decimal = Decimal("0")
    total_credit_available: Decimal = Decimal("0")
    net_position: Decimal = Decimal("0")
    runway_days: int = 0
    liquidity_by_company: Dict[str, Decimal] = Field(default_factory=dict)
