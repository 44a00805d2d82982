"""
Company repository.
"""

from typing import List, Type

from ..models.company import Company, EntityStatus
from .base import BaseRepository


class CompanyRepository(BaseRepository[Company]):
    default_order = "code ASC"

    def _get_table_name(self) -> str:
        return "companies"

    def _get_model_class(self) -> Type[Company]:
        return Company

    def find_for_user(self, user_id: str, include_inactive: bool = False) -> List[Company]:
        if include_inactive:
            return self.find_by(user_id=user_id)
        return self.find_by(user_id=user_id, status=EntityStatus.ACTIVE)

    def codes_for_user(self, user_id: str) -> List[str]:
        rows = self.execute_query("SELECT code FROM companies WHERE user_id = ?", (user_id,))
        return [row["code"] for row in rows if row["code"]]
