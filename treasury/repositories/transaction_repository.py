"""
Transaction repository with the date-range and recurrence queries used by services.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Type

from ..models.transaction import Transaction, TransactionStatus, TransactionType
from ..services.error_handler import get_error_handler
from .base import BaseRepository, DatabaseConnection


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction entities."""

    default_order = "due_date ASC, created_at ASC"

    def __init__(self, db_connection: DatabaseConnection):
        super().__init__(db_connection)
        self.error_handler = get_error_handler()

    def _get_table_name(self) -> str:
        return "transactions"

    def _get_model_class(self) -> Type[Transaction]:
        return Transaction

    def search(
        self,
        user_id: str,
        company_id: Optional[str] = None,
        type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        third_party_id: Optional[str] = None,
        recurrence_id: Optional[str] = None,
        loan_id: Optional[str] = None,
    ) -> List[Transaction]:
        """Find transactions of a user matching every given filter."""
        clauses = ["user_id = ?"]
        params: list = [user_id]
        for column, value in (
            ("company_id", company_id),
            ("type", type),
            ("status", status),
            ("third_party_id", third_party_id),
            ("recurrence_id", recurrence_id),
            ("loan_id", loan_id),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(self._to_db_value(value))
        if start_date:
            clauses.append("due_date >= ?")
            params.append(start_date.isoformat())
        if end_date:
            clauses.append("due_date <= ?")
            params.append(end_date.isoformat())

        try:
            return self.find_where(" AND ".join(clauses), params)
        except Exception as e:
            self.error_handler.handle_database_error(
                e, operation="search_transactions", affected_table=self._table_name
            )
            raise

    def pending_until(
        self, user_id: str, end_date: date, company_id: Optional[str] = None
    ) -> List[Transaction]:
        """Pending transactions due on or before ``end_date`` (overdue included)."""
        clauses = "user_id = ? AND status = ? AND due_date <= ?"
        params: list = [user_id, TransactionStatus.PENDING.value, end_date.isoformat()]
        if company_id:
            clauses += " AND company_id = ?"
            params.append(company_id)
        return self.find_where(clauses, params)

    def future_instances(self, recurrence_id: str, from_date: date) -> List[Transaction]:
        """Pending, non-overridden instances of a recurrence due on or after ``from_date``."""
        return self.find_where(
            "recurrence_id = ? AND status = ? AND overridden_from_recurrence = 0 AND due_date >= ?",
            (recurrence_id, TransactionStatus.PENDING.value, from_date.isoformat()),
        )

    def due_dates_for_recurrence(self, recurrence_id: str) -> set:
        rows = self.execute_query(
            "SELECT due_date FROM transactions WHERE recurrence_id = ?", (recurrence_id,)
        )
        return {row["due_date"] for row in rows}

    def matching_due_dates(
        self,
        user_id: str,
        company_id: str,
        third_party_id: str,
        type: TransactionType,
        amount,
    ) -> set:
        """Due dates of transactions that look like the same obligation."""
        rows = self.execute_query(
            "SELECT due_date, amount FROM transactions WHERE user_id = ? AND company_id = ? "
            "AND third_party_id = ? AND type = ?",
            (user_id, company_id, third_party_id, self._to_db_value(type)),
        )
        return {row["due_date"] for row in rows if Decimal(str(row["amount"])) == Decimal(str(amount))}

    def clear_payment_order(self, payment_order_id: str) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE transactions SET payment_order_id = NULL, payment_order_number = NULL "
                "WHERE payment_order_id = ?",
                (payment_order_id,),
            )
            return cursor.rowcount
