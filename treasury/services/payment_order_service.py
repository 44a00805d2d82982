"""
Payment orders: batches of expenses authorized for finance to pay.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..models.payment_order import PaymentOrder, PaymentOrderItem, PaymentOrderStatus
from ..models.transaction import Transaction, TransactionStatus, TransactionType
from ..models.user import User
from ..repositories.payment_order_repository import PaymentOrderRepository
from ..security.audit import AuditAction, AuditEntity
from .base import BaseService
from .company_service import CompanyService
from .exceptions import BusinessRuleError, ValidationError
from .logging_service import get_structured_logger
from .transaction_service import TransactionService

logger = get_structured_logger().get_logger(__name__)


class PaymentOrderService(BaseService):
    entity_label = "Payment order"
    audit_entity = AuditEntity.PAYMENT_ORDER

    def __init__(
        self,
        order_repository: PaymentOrderRepository,
        transaction_service: TransactionService,
        company_service: CompanyService,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.order_repository = order_repository
        self.transaction_service = transaction_service
        self.company_service = company_service

    def next_order_number(self, user: User, year: Optional[int] = None) -> str:
        year = year or date.today().year
        sequence = self.order_repository.last_sequence_for_year(user.id, year) + 1
        return f"OP-{year}-{sequence:04d}"

    def list_orders(self, user: User, status: Optional[PaymentOrderStatus] = None) -> List[PaymentOrder]:
        filters: Dict[str, Any] = {"user_id": user.id}
        if status:
            filters["status"] = status
        return self.order_repository.find_by(order_by="created_at DESC", **filters)

    def get_order(self, user: User, order_id: str) -> PaymentOrder:
        return self._get_owned(self.order_repository, order_id, user)

    def eligible_transactions(self, user: User, company_id: Optional[str] = None) -> List[Transaction]:
        """Pending transfer expenses that are not in a payment order yet."""
        return [
            tx
            for tx in self.transaction_service.list_transactions(
                user, company_id=company_id, type=TransactionType.EXPENSE, status=TransactionStatus.PENDING
            )
            if self.transaction_service.eligible_for_payment_order(tx) and not tx.payment_order_id
        ]

    def create_order(self, user: User, order: PaymentOrder) -> PaymentOrder:
        """Create an authorized order and link its transactions to it."""
        if not order.title or not order.items:
            raise ValidationError("Título y al menos un item son requeridos", field="items")
        order = self._prepare_new(order, user)
        self._check_items(user, order.items)

        if order.company_id:
            order.company_name = self.company_service.require_company(user, order.company_id).name
        if order.default_charge_account_id:
            self.transaction_service.account_service.get_account(user, order.default_charge_account_id)

        order.order_number = self.next_order_number(user)
        order.status = PaymentOrderStatus.AUTHORIZED
        order.authorized_by = user.id
        order.authorized_by_name = user.name
        order.authorized_at = datetime.now()
        self._compute_totals(order)
        saved = self.order_repository.save(order)

        self._link(saved)
        logger.info("Payment order created", order_number=saved.order_number, items=saved.item_count)
        self._audit(
            user,
            AuditAction.CREATE,
            saved.id,
            saved.order_number,
            details=f"{saved.item_count} pagos, total {saved.total_amount}",
        )
        return saved

    def update_order(self, user: User, order_id: str, changes: Dict[str, Any]) -> PaymentOrder:
        """
        Edit an order or move it to EXECUTED or CANCELLED.

        Executing marks every linked transaction as paid today, charging the
        item's account or the order's default one. Cancelling unlinks them.
        Executed orders are final.
        """
        current = self.get_order(user, order_id)
        if current.status == PaymentOrderStatus.EXECUTED:
            raise BusinessRuleError("Una orden ejecutada no se puede modificar", code="ORDER_EXECUTED")

        updated = self._apply_changes(
            current,
            changes,
            protected={
                "order_number",
                "authorized_by",
                "authorized_by_name",
                "authorized_at",
                "executed_by",
                "executed_by_name",
                "executed_at",
                "total_amount",
                "item_count",
            },
        )
        if "items" in changes:
            if not updated.items:
                raise ValidationError("La orden debe tener al menos un item", field="items")
            self._check_items(user, updated.items, order_id=current.id)
            self._compute_totals(updated)
            self.transaction_service.transaction_repository.clear_payment_order(current.id)

        new_status = updated.status
        if new_status == PaymentOrderStatus.EXECUTED and current.status != PaymentOrderStatus.EXECUTED:
            updated.executed_by = user.id
            updated.executed_by_name = user.name
            updated.executed_at = datetime.now()

        saved = self.order_repository.save(updated)

        if new_status == PaymentOrderStatus.CANCELLED:
            self.transaction_service.transaction_repository.clear_payment_order(saved.id)
            self._audit(user, AuditAction.CANCEL, saved.id, saved.order_number)
        else:
            if "items" in changes:
                self._link(saved)
            if new_status == PaymentOrderStatus.EXECUTED and current.status != PaymentOrderStatus.EXECUTED:
                paid = self._execute(user, saved)
                logger.info("Payment order executed", order_number=saved.order_number, paid=paid)
                self._audit(user, AuditAction.EXECUTE, saved.id, saved.order_number, details=f"{paid} pagos ejecutados")
            else:
                self._audit(
                    user, AuditAction.UPDATE, saved.id, saved.order_number, previous_value=current, new_value=saved
                )
        return self.order_repository.find_by_id(saved.id)

    def delete_order(self, user: User, order_id: str) -> Dict[str, Any]:
        current = self.get_order(user, order_id)
        if current.status == PaymentOrderStatus.EXECUTED:
            raise BusinessRuleError("Una orden ejecutada no se puede eliminar", code="ORDER_EXECUTED")
        unlinked = self.transaction_service.transaction_repository.clear_payment_order(current.id)
        self.order_repository.delete(current.id)
        self._audit(user, AuditAction.DELETE, current.id, current.order_number)
        return {"deleted": True, "transactions_unlinked": unlinked}

    # Helpers

    @staticmethod
    def _compute_totals(order: PaymentOrder) -> None:
        order.total_amount = sum((Decimal(str(item.amount)) for item in order.items), Decimal("0"))
        order.item_count = len(order.items)

    def _check_items(self, user: User, items: List[PaymentOrderItem], order_id: Optional[str] = None) -> None:
        seen = set()
        for item in items:
            if item.transaction_id in seen:
                raise ValidationError("Una transacción aparece dos veces en la orden", field="items")
            seen.add(item.transaction_id)
            tx = self.transaction_service.get_transaction(user, item.transaction_id)
            if not self.transaction_service.eligible_for_payment_order(tx):
                raise BusinessRuleError(
                    f'"{tx.description}" no es un pago pendiente por transferencia', code="NOT_ELIGIBLE"
                )
            if tx.payment_order_id and tx.payment_order_id != order_id:
                raise BusinessRuleError(
                    f'"{tx.description}" ya está en la orden {tx.payment_order_number}', code="ALREADY_IN_ORDER"
                )

    def _link(self, order: PaymentOrder) -> None:
        repository = self.transaction_service.transaction_repository
        for item in order.items:
            repository.update_fields(
                item.transaction_id, payment_order_id=order.id, payment_order_number=order.order_number
            )

    def _execute(self, user: User, order: PaymentOrder) -> int:
        today = date.today()
        paid = 0
        for item in order.items:
            tx = self.transaction_service.transaction_repository.find_by_id(item.transaction_id)
            if tx is None or tx.status != TransactionStatus.PENDING:
                continue
            account_id = item.charge_account_id or order.default_charge_account_id
            self.transaction_service.mark_as_paid(user, tx.id, paid_date=today, account_id=account_id)
            paid += 1
        return paid
