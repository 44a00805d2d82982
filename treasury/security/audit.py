"""
Audit Logging for Treasury Operations
"""

import json
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.base import BaseModel
from ..models.user import AuditLog, User
from ..repositories.user_repository import AuditLogRepository
from ..services.logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


class AuditAction(str, Enum):
    """Audit action types"""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    EXECUTE = "EXECUTE"
    CANCEL = "CANCEL"
    REACTIVATE = "REACTIVATE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"


class AuditEntity(str, Enum):
    COMPANY = "company"
    ACCOUNT = "account"
    ACCOUNT_HOLD = "account_hold"
    TRANSACTION = "transaction"
    CREDIT_LINE = "credit_line"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"
    RECURRENCE = "recurrence"
    THIRD_PARTY = "third_party"
    WORKER = "worker"
    PAYROLL = "payroll"
    PAYMENT_ORDER = "payment_order"
    BUDGET = "budget"
    ALERT = "alert"
    USER = "user"
    SETTINGS = "settings"
    REPORT = "report"


def _snapshot(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return json.loads(json.dumps(value, default=lambda v: str(v) if isinstance(v, Decimal) else repr(v)))


class AuditLogger:
    """Writes audit entries; failures are logged and never propagate."""

    def __init__(self, repository: AuditLogRepository):
        self.repository = repository

    def log(
        self,
        user: Optional[User],
        action: AuditAction,
        entity_type: AuditEntity,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        details: Optional[str] = None,
        previous_value: Any = None,
        new_value: Any = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> Optional[AuditLog]:
        try:
            entry = AuditLog(
                user_id=user.id if user else None,
                user_email=user.email if user else None,
                action=AuditAction(action).value,
                entity_type=AuditEntity(entity_type).value,
                entity_id=entity_id,
                entity_name=entity_name,
                details=details,
                previous_value=_snapshot(previous_value),
                new_value=_snapshot(new_value),
                success=success,
                error_message=error_message,
            )
            saved = self.repository.save(entry)
            logger.info(
                "Audit entry recorded",
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entity_id,
                user_id=entry.user_id,
            )
            return saved
        except Exception as e:
            logger.error(
                "Failed to write audit entry",
                action=str(action),
                entity_type=str(entity_type),
                error=str(e),
            )
            return None

    def history(
        self,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        return self.repository.search(
            user_id=user_id, entity_type=entity_type, entity_id=entity_id, limit=limit
        )
