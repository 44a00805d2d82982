"""
Payment order repository.
"""

from typing import Type

from ..models.payment_order import PaymentOrder
from .base import BaseRepository


class PaymentOrderRepository(BaseRepository[PaymentOrder]):
    json_fields = ("items",)

    def _get_table_name(self) -> str:
        return "payment_orders"

    def _get_model_class(self) -> Type[PaymentOrder]:
        return PaymentOrder

    def last_sequence_for_year(self, user_id: str, year: int) -> int:
        """Highest ``NNNN`` among the user's ``OP-<year>-NNNN`` order numbers (0 if none)."""
        prefix = f"OP-{year}-"
        rows = self.execute_query(
            "SELECT order_number FROM payment_orders WHERE user_id = ? AND order_number LIKE ?",
            (user_id, f"{prefix}%"),
        )
        sequences = [int(row["order_number"][len(prefix):]) for row in rows if row["order_number"][len(prefix):].isdigit()]
        return max(sequences, default=0)
