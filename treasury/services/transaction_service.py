"""
Transaction service: incomes and expenses, their status lifecycle and balance effects.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from ..models.recurrence import Recurrence
from ..models.transaction import (
    PaymentMethod,
    RecurrenceFrequency,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ..models.user import User
from ..repositories.transaction_repository import TransactionRepository
from ..security.audit import AuditAction, AuditEntity
from ..utils.date_utils import DateUtils
from ..utils.export import transactions_to_csv
from .account_service import AccountService
from .base import BaseService
from .company_service import CompanyService
from .exceptions import BusinessRuleError, ValidationError
from .logging_service import get_structured_logger
from .recurrence_service import RecurrenceService
from .third_party_service import ThirdPartyService

logger = get_structured_logger().get_logger(__name__)

UPCOMING_WINDOWS = (7, 15, 21, 30)
# Editing any of these on a recurrence instance detaches it from its template.
OVERRIDE_FIELDS = ("amount", "due_date", "description")

_INSTALLMENT_STEPS = {
    RecurrenceFrequency.DAILY: relativedelta(days=1),
    RecurrenceFrequency.WEEKLY: relativedelta(weeks=1),
    RecurrenceFrequency.BIWEEKLY: relativedelta(weeks=2),
    RecurrenceFrequency.MONTHLY: relativedelta(months=1),
    RecurrenceFrequency.QUARTERLY: relativedelta(months=3),
    RecurrenceFrequency.YEARLY: relativedelta(years=1),
}


class TransactionService(BaseService):
    """Service for transaction business logic"""

    entity_label = "Transaction"
    audit_entity = AuditEntity.TRANSACTION

    def __init__(
        self,
        transaction_repository: TransactionRepository,
        company_service: CompanyService,
        account_service: AccountService,
        recurrence_service: RecurrenceService,
        third_party_service: ThirdPartyService,
        loan_service=None,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.transaction_repository = transaction_repository
        self.company_service = company_service
        self.account_service = account_service
        self.recurrence_service = recurrence_service
        self.third_party_service = third_party_service
        self.loan_service = loan_service

    # Queries

    def list_transactions(
        self,
        user: User,
        company_id: Optional[str] = None,
        type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        third_party_id: Optional[str] = None,
        recurrence_id: Optional[str] = None,
        loan_id: Optional[str] = None,
    ) -> List[Transaction]:
        return self.transaction_repository.search(
            user.id,
            company_id=company_id,
            type=type,
            status=status,
            start_date=start_date,
            end_date=end_date,
            third_party_id=third_party_id,
            recurrence_id=recurrence_id,
            loan_id=loan_id,
        )

    def get_transaction(self, user: User, transaction_id: str) -> Transaction:
        return self._get_owned(self.transaction_repository, transaction_id, user)

    def upcoming(
        self,
        user: User,
        days: int,
        company_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[Transaction]:
        """Pending transactions due between today and ``days`` days from now."""
        today = today or date.today()
        return self.transaction_repository.search(
            user.id,
            company_id=company_id,
            status=TransactionStatus.PENDING,
            start_date=today,
            end_date=today + timedelta(days=days),
        )

    def upcoming_stats(
        self, user: User, company_id: Optional[str] = None, today: Optional[date] = None
    ) -> Dict[int, Dict[str, Any]]:
        """Count and totals of pending transactions for the next 7, 15, 21 and 30 days."""
        today = today or date.today()
        pending = self.upcoming(user, max(UPCOMING_WINDOWS), company_id, today)
        stats = {}
        for days in UPCOMING_WINDOWS:
            limit = today + timedelta(days=days)
            window = [tx for tx in pending if tx.due_date <= limit]
            incomes = sum((tx.amount for tx in window if tx.type == TransactionType.INCOME), Decimal("0"))
            expenses = sum((tx.amount for tx in window if tx.type == TransactionType.EXPENSE), Decimal("0"))
            stats[days] = {
                "count": len(window),
                "total": incomes - expenses,
                "incomes": incomes,
                "expenses": expenses,
            }
        return stats

    @staticmethod
    def eligible_for_payment_order(tx: Transaction) -> bool:
        """Only pending expenses paid by transfer can go into a payment order."""
        return (
            tx.type == TransactionType.EXPENSE
            and tx.status == TransactionStatus.PENDING
            and tx.payment_method == PaymentMethod.TRANSFER
        )

    def export_csv(self, user: User, **filters) -> str:
        transactions = self.list_transactions(user, **filters)
        self._audit(user, AuditAction.EXPORT, details=f"{len(transactions)} transacciones exportadas")
        return transactions_to_csv(transactions)

    # Create / update / delete

    def create_transaction(
        self,
        user: User,
        transaction: Transaction,
        recurrence_end_date: Optional[date] = None,
        recurrence_installments: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Create a transaction.

        A transaction with a recurrence frequency that is not yet attached to a
        recurrence becomes the first instance of a new recurrence template, and
        the rest of the series is generated. An identical transaction (same
        company, type, amount, description and due date) is returned instead of
        creating a second one.
        """
        self.company_service.require_company(user, transaction.company_id)
        if transaction.account_id:
            self.account_service.get_account(user, transaction.account_id)
        if transaction.charge_account_id:
            self.account_service.get_account(user, transaction.charge_account_id)

        transaction = self._prepare_new(transaction, user)
        duplicate = self._find_exact_duplicate(user, transaction)
        if duplicate is not None:
            logger.info("Duplicate transaction detected, returning existing", transaction_id=duplicate.id)
            return {"transaction": duplicate, "recurrence_id": duplicate.recurrence_id, "generated_ids": []}

        transaction.created_by = user.id
        transaction.last_updated_by = user.id

        recurrence: Optional[Recurrence] = None
        is_new_series = (
            transaction.recurrence != RecurrenceFrequency.NONE
            and not transaction.recurrence_id
            and not transaction.is_recurrence_instance
        )
        if is_new_series:
            recurrence = self.recurrence_service.create_recurrence(
                user,
                self._recurrence_from(user, transaction, recurrence_end_date, recurrence_installments),
                generate=False,
            )
            transaction.recurrence_id = recurrence.id
            transaction.recurrence_version_id = recurrence.current_version_id
            transaction.is_recurrence_instance = True
            transaction.instance_date = DateUtils.month_key(transaction.due_date)

        saved = self.transaction_repository.save(transaction)
        self.third_party_service.touch_last_used(user, saved.third_party_id)

        generated_ids: List[str] = []
        if recurrence is not None:
            result = self.recurrence_service.generate_for_recurrence(user, recurrence)
            generated_ids = result.transaction_ids

        self._audit(user, AuditAction.CREATE, saved.id, self._name(saved), new_value=saved)
        return {
            "transaction": saved,
            "recurrence_id": saved.recurrence_id,
            "generated_ids": generated_ids,
        }

    def update_transaction(self, user: User, transaction_id: str, changes: Dict[str, Any]) -> Transaction:
        """
        Update a transaction.

        Status transitions move the account balance: PENDING to PAID applies
        the signed amount, PAID to PENDING or CANCELLED reverts it.
        """
        current = self.get_transaction(user, transaction_id)
        if changes.get("company_id") and changes["company_id"] != current.company_id:
            self.company_service.require_company(user, changes["company_id"])
        if changes.get("account_id") and changes["account_id"] != current.account_id:
            self.account_service.get_account(user, changes["account_id"])

        updated = self._apply_changes(
            current,
            changes,
            protected={"created_by", "recurrence_id", "is_recurrence_instance", "payment_order_id", "payment_order_number"},
        )
        updated.last_updated_by = user.id
        if current.is_recurrence_instance and any(
            name in changes and getattr(updated, name) != getattr(current, name) for name in OVERRIDE_FIELDS
        ):
            updated.overridden_from_recurrence = True
        if updated.due_date != current.due_date and updated.instance_date:
            updated.instance_date = DateUtils.month_key(updated.due_date)

        if current.status != updated.status:
            if updated.status == TransactionStatus.PAID:
                updated.paid_date = updated.paid_date or date.today()
                account_id = self._balance_account(updated)
                if self._apply_balance(user, updated, account_id, 1) and not updated.account_id:
                    updated.account_id = account_id
            elif current.status == TransactionStatus.PAID:
                self._apply_balance(user, updated, self._balance_account(updated), -1)
                updated.paid_date = None

        saved = self.transaction_repository.save(updated)
        if saved.third_party_id != current.third_party_id:
            self.third_party_service.touch_last_used(user, saved.third_party_id)
        self._after_status_change(user, current, saved)
        self._audit(user, AuditAction.UPDATE, saved.id, self._name(saved), previous_value=current, new_value=saved)
        return saved

    def delete_transaction(self, user: User, transaction_id: str) -> Dict[str, Any]:
        """Delete a transaction; a paid one gives its amount back to the account."""
        current = self.get_transaction(user, transaction_id)
        if current.status == TransactionStatus.PAID:
            self._apply_balance(user, current, self._balance_account(current), -1)
        self.transaction_repository.delete(current.id)
        if current.loan_id and self.loan_service is not None:
            self.loan_service.refresh_paid_installments(user, current.loan_id)
        self._audit(user, AuditAction.DELETE, current.id, self._name(current), previous_value=current)
        return {"deleted": True, "id": current.id}

    # Actions

    def mark_as_paid(
        self,
        user: User,
        transaction_id: str,
        paid_date: Optional[date] = None,
        account_id: Optional[str] = None,
    ) -> Transaction:
        current = self.get_transaction(user, transaction_id)
        if current.status == TransactionStatus.PAID:
            raise BusinessRuleError("La transacción ya está pagada", code="ALREADY_PAID")
        if account_id:
            self.account_service.get_account(user, account_id)

        fields: Dict[str, Any] = {
            "status": TransactionStatus.PAID,
            "paid_date": paid_date or date.today(),
            "last_updated_by": user.id,
        }
        target = account_id or self._balance_account(current)
        if self._apply_balance(user, current, target, 1) and target != current.account_id:
            fields["account_id"] = target
        self.transaction_repository.update_fields(current.id, **fields)
        saved = self.transaction_repository.find_by_id(current.id)

        self._after_status_change(user, current, saved)
        self._audit(
            user,
            AuditAction.EXECUTE,
            saved.id,
            self._name(saved),
            details="markAsPaid",
            new_value={"amount": str(saved.amount), "account_id": saved.account_id},
        )
        return saved

    def cancel(self, user: User, transaction_id: str) -> Transaction:
        current = self.get_transaction(user, transaction_id)
        if current.status == TransactionStatus.CANCELLED:
            raise BusinessRuleError("La transacción ya está cancelada", code="ALREADY_CANCELLED")
        if current.status == TransactionStatus.PAID:
            self._apply_balance(user, current, self._balance_account(current), -1)
        self.transaction_repository.update_fields(
            current.id, status=TransactionStatus.CANCELLED, paid_date=None, last_updated_by=user.id
        )
        saved = self.transaction_repository.find_by_id(current.id)
        self._after_status_change(user, current, saved)
        self._audit(
            user,
            AuditAction.CANCEL,
            saved.id,
            self._name(saved),
            previous_value={"status": current.status},
        )
        return saved

    def reactivate(self, user: User, transaction_id: str) -> Transaction:
        """Bring a cancelled transaction back to pending."""
        current = self.get_transaction(user, transaction_id)
        if current.status != TransactionStatus.CANCELLED:
            raise BusinessRuleError("Solo se pueden reactivar transacciones canceladas", code="NOT_CANCELLED")
        self.transaction_repository.update_fields(
            current.id, status=TransactionStatus.PENDING, last_updated_by=user.id
        )
        saved = self.transaction_repository.find_by_id(current.id)
        self._audit(user, AuditAction.REACTIVATE, saved.id, self._name(saved))
        return saved

    def cleanup_duplicates(self, user: User) -> Dict[str, int]:
        """Keep the oldest pending instance per recurrence and due date, delete the rest."""
        seen: Dict[tuple, Transaction] = {}
        duplicates: List[Transaction] = []
        instances = self.transaction_repository.find_where(
            "user_id = ? AND status = ? AND recurrence_id IS NOT NULL",
            (user.id, TransactionStatus.PENDING.value),
            order_by="created_at ASC",
        )
        for tx in instances:
            key = (tx.recurrence_id, tx.due_date)
            if key in seen:
                duplicates.append(tx)
            else:
                seen[key] = tx
        for tx in duplicates:
            self.transaction_repository.delete(tx.id)
        logger.info("Duplicate instances removed", deleted=len(duplicates), checked=len(instances))
        if duplicates:
            self._audit(user, AuditAction.DELETE, details=f"{len(duplicates)} duplicados eliminados")
        return {"checked": len(instances), "deleted": len(duplicates)}

    # Helpers

    @staticmethod
    def _name(tx: Transaction) -> str:
        return tx.description or f"{tx.type} - {tx.amount}"

    @staticmethod
    def _balance_account(tx: Transaction) -> Optional[str]:
        return tx.account_id or tx.charge_account_id

    def _apply_balance(self, user: User, tx: Transaction, account_id: Optional[str], sign: int) -> bool:
        """Move ``account_id`` by the signed amount of ``tx`` (reverted when ``sign`` is -1)."""
        if not account_id:
            return False
        account = self.account_service.adjust_balance(user, account_id, tx.signed_amount * sign)
        return account is not None

    def _after_status_change(self, user: User, before: Transaction, after: Transaction) -> None:
        if before.status != after.status and after.loan_id and self.loan_service is not None:
            self.loan_service.refresh_paid_installments(user, after.loan_id)

    def _find_exact_duplicate(self, user: User, tx: Transaction) -> Optional[Transaction]:
        candidates = self.transaction_repository.search(
            user.id,
            company_id=tx.company_id,
            type=tx.type,
            start_date=tx.due_date,
            end_date=tx.due_date,
        )
        for candidate in candidates:
            if candidate.amount == tx.amount and candidate.description == tx.description:
                return candidate
        return None

    @staticmethod
    def _recurrence_from(
        user: User,
        tx: Transaction,
        end_date: Optional[date],
        installments: Optional[int],
    ) -> Recurrence:
        frequency = RecurrenceFrequency(tx.recurrence)
        if end_date is None and installments:
            if installments < 2:
                raise ValidationError(
                    "A recurring series needs at least 2 installments",
                    field="recurrence_installments",
                    value=installments,
                )
            end_date = tx.due_date + _INSTALLMENT_STEPS[frequency] * (installments - 1)
        if end_date is not None and end_date <= tx.due_date:
            raise ValidationError(
                "recurrence_end_date must be after due_date", field="recurrence_end_date", value=end_date
            )
        kind = "Ingreso" if tx.type == TransactionType.INCOME else "Gasto"
        return Recurrence(
            user_id=user.id,
            company_id=tx.company_id,
            account_id=tx.account_id,
            type=tx.type,
            name=(tx.description or f"{tx.category} - {kind}")[:100],
            base_amount=tx.amount,
            category=tx.category,
            third_party_id=tx.third_party_id,
            third_party_name=tx.third_party_name,
            payment_method=tx.payment_method,
            charge_account_id=tx.charge_account_id,
            certainty=tx.certainty,
            notes=tx.notes,
            frequency=frequency,
            day_of_month=tx.due_date.day,
            day_of_week=DateUtils.sunday_based_weekday(tx.due_date),
            start_date=tx.due_date,
            end_date=end_date,
        )
