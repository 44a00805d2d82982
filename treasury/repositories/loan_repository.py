"""
Loan repository.
"""

from typing import Type

from ..models.loan import Loan
from .base import BaseRepository


class LoanRepository(BaseRepository[Loan]):
    default_order = "first_pending_date ASC"

    def _get_table_name(self) -> str:
        return "loans"

    def _get_model_class(self) -> Type[Loan]:
        return Loan
