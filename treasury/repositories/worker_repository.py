"""
Worker repository.
"""

from typing import List, Optional, Type

from ..models.company import EntityStatus
from ..models.worker import Worker
from .base import BaseRepository


class WorkerRepository(BaseRepository[Worker]):
    default_order = "display_name ASC"

    def _get_table_name(self) -> str:
        return "workers"

    def _get_model_class(self) -> Type[Worker]:
        return Worker

    def find_for_company(
        self, user_id: str, company_id: Optional[str] = None, active_only: bool = False
    ) -> List[Worker]:
        filters = {"user_id": user_id}
        if company_id:
            filters["company_id"] = company_id
        if active_only:
            filters["status"] = EntityStatus.ACTIVE
        return self.find_by(**filters)
