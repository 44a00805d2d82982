from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...container import Container
from ...models.user import User
from ...security.auth import Permission
from ..dependencies import container, require_permission
from ..responses import ok

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("")
def audit_logs(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    user: User = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
    c: Container = Depends(container),
):
    return ok(c.get_audit_logger().history(user_id, entity_type, entity_id, limit))
