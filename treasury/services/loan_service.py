"""
Loans and their monthly installment transactions.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from ..models.base import CENT
from ..models.loan import Loan, LoanStatus
from ..models.transaction import (
    LOAN_CATEGORY,
    CertaintyLevel,
    PaymentMethod,
    RecurrenceFrequency,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ..models.user import User
from ..repositories.loan_repository import LoanRepository
from ..repositories.transaction_repository import TransactionRepository
from ..security.audit import AuditAction, AuditEntity
from ..utils.date_utils import DateUtils
from .account_service import AccountService
from .base import BaseService
from .company_service import CompanyService
from .exceptions import BusinessRuleError, ValidationError
from .logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


class LoanService(BaseService):
    entity_label = "Loan"
    audit_entity = AuditEntity.LOAN

    def __init__(
        self,
        loan_repository: LoanRepository,
        transaction_repository: TransactionRepository,
        company_service: CompanyService,
        account_service: AccountService,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.loan_repository = loan_repository
        self.transaction_repository = transaction_repository
        self.company_service = company_service
        self.account_service = account_service

    # Calculations

    @staticmethod
    def installment_date(first_pending: date, installment_number: int, payment_day: int) -> date:
        """Due date of installment ``installment_number`` (1 is ``first_pending``'s month)."""
        target = DateUtils.add_months(first_pending.replace(day=1), installment_number - 1)
        return DateUtils.clamp_day(target.year, target.month, payment_day)

    @classmethod
    def end_date(cls, first_pending: date, remaining_installments: int, payment_day: int) -> date:
        return cls.installment_date(first_pending, remaining_installments, payment_day)

    @staticmethod
    def calculate_monthly_payment(principal: Decimal, annual_rate: Decimal, months: int) -> Decimal:
        """French amortisation installment, rounded to cents."""
        if months <= 0:
            raise ValidationError("Number of installments must be positive", field="months", value=months)
        principal = Decimal(str(principal))
        annual_rate = Decimal(str(annual_rate))
        if annual_rate == 0:
            return (principal / months).quantize(CENT, rounding=ROUND_HALF_UP)
        monthly_rate = annual_rate / Decimal("100") / Decimal("12")
        factor = (1 + monthly_rate) ** months
        payment = principal * monthly_rate * factor / (factor - 1)
        return payment.quantize(CENT, rounding=ROUND_HALF_UP)

    @staticmethod
    def updated_balance(remaining_balance: Decimal, monthly_payment: Decimal, paid_installments: int) -> Decimal:
        return max(Decimal("0"), remaining_balance - monthly_payment * paid_installments)

    @classmethod
    def loan_summary(cls, loan: Loan) -> Dict[str, Any]:
        """Remaining amount, remaining installments, next payment and progress of a loan."""
        remaining = max(0, loan.remaining_installments - loan.paid_installments)
        next_payment = None
        if remaining > 0:
            next_payment = cls.installment_date(
                loan.first_pending_date, loan.paid_installments + 1, loan.payment_day
            )
        return {
            "loan_id": loan.id,
            "total_remaining_amount": loan.monthly_payment * remaining,
            "remaining_installments": remaining,
            "next_payment_date": next_payment,
            "progress_percentage": round(loan.paid_installments / loan.remaining_installments * 100),
        }

    @classmethod
    def generate_installments(cls, loan: Loan, user: User) -> List[Transaction]:
        """Build one pending expense per remaining installment (not persisted)."""
        name = loan.display_name
        if loan.original_principal > 0:
            notes = (
                f"Préstamo: {name}. Capital original: {loan.original_principal}€, "
                f"Interés: {loan.interest_rate}%"
            )
        else:
            notes = f"Préstamo: {name}. Interés: {loan.interest_rate}%"

        installments = []
        for number in range(1, loan.remaining_installments + 1):
            installments.append(
                Transaction(
                    user_id=user.id,
                    company_id=loan.company_id,
                    type=TransactionType.EXPENSE,
                    amount=loan.monthly_payment,
                    status=TransactionStatus.PENDING,
                    due_date=cls.installment_date(loan.first_pending_date, number, loan.payment_day),
                    category=LOAN_CATEGORY,
                    description=f"Cuota {number}/{loan.remaining_installments} - {name}",
                    third_party_name=loan.bank_name,
                    notes=notes,
                    payment_method=PaymentMethod.DIRECT_DEBIT,
                    charge_account_id=loan.charge_account_id,
                    loan_id=loan.id,
                    loan_installment_number=number,
                    recurrence=RecurrenceFrequency.NONE,
                    certainty=CertaintyLevel.HIGH,
                    created_by=user.id,
                    last_updated_by=user.id,
                )
            )
        return installments

    # CRUD

    def list_loans(
        self, user: User, company_id: Optional[str] = None, status: Optional[LoanStatus] = None
    ) -> List[Loan]:
        filters: Dict[str, Any] = {"user_id": user.id}
        if company_id:
            filters["company_id"] = company_id
        if status:
            filters["status"] = status
        return self.loan_repository.find_by(order_by="created_at DESC", **filters)

    def get_loan(self, user: User, loan_id: str) -> Loan:
        return self._get_owned(self.loan_repository, loan_id, user)

    def installments(self, user: User, loan_id: str) -> List[Transaction]:
        loan = self.get_loan(user, loan_id)
        return self.transaction_repository.search(user.id, loan_id=loan.id)

    def create_loan(self, user: User, loan: Loan) -> Dict[str, Any]:
        """Store a loan and generate all of its pending installments."""
        self.company_service.require_company(user, loan.company_id)
        self.account_service.get_account(user, loan.charge_account_id)

        loan = self._prepare_new(loan, user)
        loan.end_date = self.end_date(loan.first_pending_date, loan.remaining_installments, loan.payment_day)
        loan.paid_installments = 0
        loan.created_by = user.id
        saved = self.loan_repository.save(loan)

        transaction_ids = [
            self.transaction_repository.save(tx).id for tx in self.generate_installments(saved, user)
        ]
        logger.info("Loan created", loan_id=saved.id, installments=len(transaction_ids))
        self._audit(
            user,
            AuditAction.CREATE,
            saved.id,
            saved.display_name,
            details=f"{len(transaction_ids)} cuotas generadas",
            new_value=saved,
        )
        return {"loan": saved, "transactions_generated": len(transaction_ids), "transaction_ids": transaction_ids}

    def update_loan(self, user: User, loan_id: str, changes: Dict[str, Any]) -> Loan:
        current = self.get_loan(user, loan_id)
        if changes.get("company_id") and changes["company_id"] != current.company_id:
            self.company_service.require_company(user, changes["company_id"])
        if changes.get("charge_account_id") and changes["charge_account_id"] != current.charge_account_id:
            self.account_service.get_account(user, changes["charge_account_id"])
        updated = self._apply_changes(current, changes, protected={"created_by"})
        saved = self.loan_repository.save(updated)
        self._audit(user, AuditAction.UPDATE, saved.id, saved.display_name, previous_value=current, new_value=saved)
        return saved

    def refresh_paid_installments(self, user: User, loan_id: str) -> Loan:
        """Recount paid installments; a loan with every installment paid is paid off, else active."""
        loan = self.get_loan(user, loan_id)
        installments = self.transaction_repository.search(user.id, loan_id=loan.id)
        paid = sum(1 for tx in installments if tx.status == TransactionStatus.PAID)
        fields: Dict[str, Any] = {"paid_installments": paid}
        paid_off = bool(installments) and paid >= loan.remaining_installments
        if paid_off and loan.status == LoanStatus.ACTIVE:
            fields["status"] = LoanStatus.PAID_OFF
            logger.info("Loan paid off", loan_id=loan.id)
        elif not paid_off and loan.status == LoanStatus.PAID_OFF:
            fields["status"] = LoanStatus.ACTIVE
            logger.info("Loan reopened", loan_id=loan.id, paid_installments=paid)
        self.loan_repository.update_fields(loan.id, **fields)
        return self.loan_repository.find_by_id(loan.id)

    def delete_loan(self, user: User, loan_id: str) -> Dict[str, Any]:
        """Delete a loan and its installments; loans with paid installments must be kept."""
        loan = self.get_loan(user, loan_id)
        installments = self.transaction_repository.search(user.id, loan_id=loan.id)
        paid = [tx for tx in installments if tx.status == TransactionStatus.PAID]
        if paid:
            raise BusinessRuleError(
                f"No se puede eliminar el préstamo porque tiene {len(paid)} cuotas pagadas",
                code="HAS_PAID_INSTALLMENTS",
            )
        for tx in installments:
            self.transaction_repository.delete(tx.id)
        self.loan_repository.delete(loan.id)
        self._audit(
            user,
            AuditAction.DELETE,
            loan.id,
            loan.display_name,
            details=f"{len(installments)} cuotas eliminadas",
            previous_value=loan,
        )
        return {"transactions_deleted": len(installments)}
