"""
Credit line and credit card repositories.
"""

from typing import List, Optional, Type

from ..models.company import EntityStatus
from ..models.credit import CreditCard, CreditLine
from .base import BaseRepository


class CreditLineRepository(BaseRepository[CreditLine]):
    default_order = "bank_name ASC"

    def _get_table_name(self) -> str:
        return "credit_lines"

    def _get_model_class(self) -> Type[CreditLine]:
        return CreditLine

    def find_active(self, user_id: str, company_id: Optional[str] = None) -> List[CreditLine]:
        filters = {"user_id": user_id, "status": EntityStatus.ACTIVE}
        if company_id:
            filters["company_id"] = company_id
        return self.find_by(**filters)


class CreditCardRepository(BaseRepository[CreditCard]):
    default_order = "bank_name ASC"

    def _get_table_name(self) -> str:
        return "credit_cards"

    def _get_model_class(self) -> Type[CreditCard]:
        return CreditCard
