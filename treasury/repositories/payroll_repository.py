"""
Payroll batch and payroll line repositories.
"""

from typing import List, Optional, Type

from ..models.payroll import PayrollBatch, PayrollLine
from .base import BaseRepository


class PayrollBatchRepository(BaseRepository[PayrollBatch]):
    default_order = "year DESC, month DESC, created_at DESC"

    def _get_table_name(self) -> str:
        return "payroll_batches"

    def _get_model_class(self) -> Type[PayrollBatch]:
        return PayrollBatch

    def find_for_period(
        self, user_id: str, company_id: str, year: int, month: int, payroll_type=None
    ) -> List[PayrollBatch]:
        filters = {"user_id": user_id, "company_id": company_id, "year": year, "month": month}
        if payroll_type is not None:
            filters["payroll_type"] = payroll_type
        return self.find_by(**filters)


class PayrollLineRepository(BaseRepository[PayrollLine]):
    default_order = "worker_name ASC"

    def _get_table_name(self) -> str:
        return "payroll_lines"

    def _get_model_class(self) -> Type[PayrollLine]:
        return PayrollLine

    def for_batch(self, batch_id: str) -> List[PayrollLine]:
        return self.find_by(payroll_batch_id=batch_id)

    def latest_for_worker(self, worker_id: str) -> Optional[PayrollLine]:
        return self.find_one_by(worker_id=worker_id, order_by="created_at DESC")
