"""
User and audit log repositories.
"""

from typing import List, Optional, Type

from ..models.user import AuditLog, User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User entities."""

    def _get_table_name(self) -> str:
        return "users"

    def _get_model_class(self) -> Type[User]:
        return User

    def find_by_email(self, email: str) -> Optional[User]:
        """Find user by email address."""
        return self.find_one_by(email=email.strip().lower())


class AuditLogRepository(BaseRepository[AuditLog]):
    """Append-only store of audit entries."""

    json_fields = ("previous_value", "new_value")

    def _get_table_name(self) -> str:
        return "audit_logs"

    def _get_model_class(self) -> Type[AuditLog]:
        return AuditLog

    def search(
        self,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        filters = {}
        if user_id:
            filters["user_id"] = user_id
        if entity_type:
            filters["entity_type"] = entity_type
        if entity_id:
            filters["entity_id"] = entity_id
        return self.find_by(limit=limit, **filters)
