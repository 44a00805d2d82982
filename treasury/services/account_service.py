"""
Bank accounts, morning balance check and account holds.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..models.account import Account, AccountHold, AccountHoldStatus
from ..models.company import EntityStatus
from ..models.user import User
from ..repositories.account_repository import AccountHoldRepository, AccountRepository
from ..security.audit import AuditAction, AuditEntity
from .base import BaseService
from .company_service import CompanyService
from .exceptions import BusinessRuleError, ValidationError
from .logging_service import get_structured_logger
from .validators import validate_iban

logger = get_structured_logger().get_logger(__name__)


class AccountService(BaseService):
    entity_label = "Account"
    audit_entity = AuditEntity.ACCOUNT

    def __init__(
        self,
        account_repository: AccountRepository,
        hold_repository: AccountHoldRepository,
        company_service: CompanyService,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.account_repository = account_repository
        self.hold_repository = hold_repository
        self.company_service = company_service

    # Accounts

    def list_accounts(
        self, user: User, company_id: Optional[str] = None, include_inactive: bool = False
    ) -> List[Account]:
        return self.account_repository.find_for_user(user.id, company_id, include_inactive)

    def get_account(self, user: User, account_id: str) -> Account:
        return self._get_owned(self.account_repository, account_id, user)

    def create_account(self, user: User, account: Account) -> Account:
        self.company_service.require_company(user, account.company_id)
        self._check_account_number(account.account_number)
        account = self._prepare_new(account, user)
        account.last_update_date = datetime.now()
        account.last_updated_by = user.id
        saved = self.account_repository.save(account)
        if saved.is_primary:
            self._clear_other_primary(user, saved.id)
        self._audit(user, AuditAction.CREATE, saved.id, saved.display_name, new_value=saved)
        return saved

    def update_account(self, user: User, account_id: str, changes: Dict[str, Any]) -> Account:
        current = self.get_account(user, account_id)
        changes = dict(changes)
        new_balance = changes.pop("current_balance", None)
        if "company_id" in changes:
            self.company_service.require_company(user, changes["company_id"])
        if "account_number" in changes:
            self._check_account_number(changes["account_number"])

        saved = current
        if changes:
            updated = self._apply_changes(
                current, changes, protected={"last_update_amount", "last_update_date", "last_updated_by"}
            )
            saved = self.account_repository.save(updated)
            if saved.is_primary and not current.is_primary:
                self._clear_other_primary(user, saved.id)
        if new_balance is not None:
            saved = self.update_balance(user, account_id, Decimal(str(new_balance)))
        self._audit(user, AuditAction.UPDATE, saved.id, saved.display_name, previous_value=current, new_value=saved)
        return saved

    def delete_account(self, user: User, account_id: str) -> Account:
        current = self.get_account(user, account_id)
        current.status = EntityStatus.INACTIVE
        current.is_primary = False
        saved = self.account_repository.save(current)
        self._audit(user, AuditAction.DELETE, saved.id, saved.display_name)
        return saved

    def set_primary(self, user: User, account_id: str) -> Account:
        current = self.get_account(user, account_id)
        current.is_primary = True
        saved = self.account_repository.save(current)
        self._clear_other_primary(user, saved.id)
        return saved

    def update_balance(self, user: User, account_id: str, new_balance: Decimal) -> Account:
        """Record the confirmed bank balance; the difference is kept as the last movement."""
        account = self.get_account(user, account_id)
        previous = account.current_balance
        account.current_balance = new_balance
        account.last_update_amount = new_balance - previous
        account.last_update_date = datetime.now()
        account.last_updated_by = user.id
        saved = self.account_repository.save(account)
        logger.info(
            "Account balance updated",
            account_id=account_id,
            difference=str(saved.last_update_amount),
        )
        return saved

    def morning_check(self, user: User, updates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Apply the balances read from the banks first thing in the morning."""
        if not updates:
            raise ValidationError("At least one balance is required", field="updates")
        results = []
        for item in updates:
            account = self.get_account(user, item["account_id"])
            previous = account.current_balance
            saved = self.update_balance(user, account.id, Decimal(str(item["balance"])))
            results.append(
                {
                    "account_id": saved.id,
                    "account": saved.display_name,
                    "previous_balance": previous,
                    "new_balance": saved.current_balance,
                    "difference": saved.last_update_amount,
                }
            )
        self._audit(user, AuditAction.UPDATE, details=f"Morning check of {len(results)} accounts")
        return results

    def adjust_balance(self, user: User, account_id: str, delta: Decimal) -> Optional[Account]:
        """Move an account balance by ``delta`` as a consequence of a paid transaction."""
        account = self.account_repository.find_by_id(account_id)
        if account is None or account.user_id != user.id:
            logger.warning("Balance adjustment skipped, account not found", account_id=account_id)
            return None
        account.current_balance = account.current_balance + delta
        account.last_update_amount = delta
        account.last_update_date = datetime.now()
        account.last_updated_by = user.id
        return self.account_repository.save(account)

    def available_balance(self, user: User, account_id: str) -> Decimal:
        """Balance minus active holds."""
        account = self.get_account(user, account_id)
        return account.current_balance - self.total_hold_amount(user, account_id)

    def _clear_other_primary(self, user: User, primary_id: str) -> None:
        for other in self.account_repository.find_by(user_id=user.id, is_primary=True):
            if other.id != primary_id:
                self.account_repository.update_fields(other.id, is_primary=False)

    @staticmethod
    def _check_account_number(account_number: Optional[str]) -> None:
        # Free text (e.g. a masked number) is accepted; anything shaped like an IBAN must be valid.
        if not account_number:
            return
        compact = account_number.replace(" ", "").replace("-", "").upper()
        if len(compact) >= 15 and compact[:2].isalpha() and compact[2:4].isdigit():
            result = validate_iban(compact, allow_international=True)
            if not result.is_valid:
                raise ValidationError(result.error, field="account_number", value=account_number)

    # Holds

    def list_holds(
        self,
        user: User,
        account_id: Optional[str] = None,
        status: Optional[AccountHoldStatus] = None,
    ) -> List[AccountHold]:
        filters: Dict[str, Any] = {"user_id": user.id}
        if account_id:
            self.get_account(user, account_id)
            filters["account_id"] = account_id
        if status:
            filters["status"] = status
        return self.hold_repository.find_by(**filters)

    def get_hold(self, user: User, hold_id: str) -> AccountHold:
        return self._get_owned(self.hold_repository, hold_id, user, "Account hold")

    def create_hold(self, user: User, hold: AccountHold) -> AccountHold:
        account = self.get_account(user, hold.account_id)
        hold = self._prepare_new(hold, user)
        hold.company_id = account.company_id
        hold.status = AccountHoldStatus.ACTIVE
        saved = self.hold_repository.save(hold)
        logger.info("Account hold created", hold_id=saved.id, account_id=account.id, amount=str(saved.amount))
        self._audit(
            user, AuditAction.CREATE, saved.id, saved.concept, new_value=saved,
            entity_type=AuditEntity.ACCOUNT_HOLD,
        )
        return saved

    def update_hold(self, user: User, hold_id: str, changes: Dict[str, Any]) -> AccountHold:
        current = self.get_hold(user, hold_id)
        updated = self._apply_changes(
            current, changes, protected={"account_id", "company_id", "released_at", "released_by"}
        )
        if updated.status == AccountHoldStatus.RELEASED and current.status != AccountHoldStatus.RELEASED:
            updated.released_at = datetime.now()
            updated.released_by = user.id
        saved = self.hold_repository.save(updated)
        self._audit(
            user, AuditAction.UPDATE, saved.id, saved.concept, previous_value=current, new_value=saved,
            entity_type=AuditEntity.ACCOUNT_HOLD,
        )
        return saved

    def release_hold(self, user: User, hold_id: str) -> AccountHold:
        current = self.get_hold(user, hold_id)
        if current.status != AccountHoldStatus.ACTIVE:
            raise BusinessRuleError("Only active holds can be released")
        return self.update_hold(user, hold_id, {"status": AccountHoldStatus.RELEASED})

    def delete_hold(self, user: User, hold_id: str) -> None:
        current = self.get_hold(user, hold_id)
        self.hold_repository.delete(current.id)
        self._audit(user, AuditAction.DELETE, current.id, current.concept, entity_type=AuditEntity.ACCOUNT_HOLD)

    def total_hold_amount(self, user: User, account_id: Optional[str] = None) -> Decimal:
        return sum((h.amount for h in self.hold_repository.find_active(user.id, account_id)), Decimal("0"))

    def expire_holds(self, user: User, today: Optional[date] = None) -> int:
        """Mark active holds whose end date has passed as expired."""
        today = today or date.today()
        expired = 0
        for hold in self.hold_repository.find_active(user.id):
            if hold.end_date and hold.end_date < today:
                self.hold_repository.update_fields(hold.id, status=AccountHoldStatus.EXPIRED)
                expired += 1
        if expired:
            logger.info("Account holds expired", count=expired)
        return expired
