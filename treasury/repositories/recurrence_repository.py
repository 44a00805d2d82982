"""
Recurrence and recurrence version repositories.
"""

from typing import List, Optional, Type

from ..models.recurrence import Recurrence, RecurrenceStatus, RecurrenceVersion
from .base import BaseRepository


class RecurrenceRepository(BaseRepository[Recurrence]):
    default_order = "name ASC"

    def _get_table_name(self) -> str:
        return "recurrences"

    def _get_model_class(self) -> Type[Recurrence]:
        return Recurrence

    def find_active(self, user_id: str, company_id: Optional[str] = None) -> List[Recurrence]:
        filters = {"user_id": user_id, "status": RecurrenceStatus.ACTIVE}
        if company_id:
            filters["company_id"] = company_id
        return self.find_by(**filters)


class RecurrenceVersionRepository(BaseRepository[RecurrenceVersion]):
    default_order = "version_number ASC"

    def _get_table_name(self) -> str:
        return "recurrence_versions"

    def _get_model_class(self) -> Type[RecurrenceVersion]:
        return RecurrenceVersion

    def for_recurrence(self, recurrence_id: str) -> List[RecurrenceVersion]:
        return self.find_by(recurrence_id=recurrence_id)

    def latest(self, recurrence_id: str) -> Optional[RecurrenceVersion]:
        versions = self.find_by(recurrence_id=recurrence_id, order_by="version_number DESC", limit=1)
        return versions[0] if versions else None
