"""
Credit lines (pólizas) and credit cards.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..config.settings import TreasuryConfig
from ..models.company import EntityStatus
from ..models.credit import CreditCard, CreditLine
from ..models.user import User
from ..repositories.credit_repository import CreditCardRepository, CreditLineRepository
from ..security.audit import AuditAction, AuditEntity
from ..utils.date_utils import DateUtils
from .base import BaseService
from .company_service import CompanyService
from .exceptions import ValidationError


class CreditService(BaseService):
    entity_label = "Credit line"
    audit_entity = AuditEntity.CREDIT_LINE

    def __init__(
        self,
        line_repository: CreditLineRepository,
        card_repository: CreditCardRepository,
        company_service: CompanyService,
        config: Optional[TreasuryConfig] = None,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.line_repository = line_repository
        self.card_repository = card_repository
        self.company_service = company_service
        self.config = config or TreasuryConfig()

    # Credit lines

    def list_lines(self, user: User, company_id: Optional[str] = None, include_inactive: bool = False) -> List[CreditLine]:
        filters: Dict[str, Any] = {"user_id": user.id}
        if company_id:
            filters["company_id"] = company_id
        if not include_inactive:
            filters["status"] = EntityStatus.ACTIVE
        return self.line_repository.find_by(**filters)

    def get_line(self, user: User, line_id: str) -> CreditLine:
        return self._get_owned(self.line_repository, line_id, user)

    def create_line(self, user: User, line: CreditLine) -> CreditLine:
        self.company_service.require_company(user, line.company_id)
        saved = self.line_repository.save(self._prepare_new(line, user))
        self._audit(user, AuditAction.CREATE, saved.id, saved.alias or saved.bank_name, new_value=saved)
        return saved

    def update_line(self, user: User, line_id: str, changes: Dict[str, Any]) -> CreditLine:
        """Update a credit line; ``available`` is recomputed from limit and drawn amount."""
        current = self.get_line(user, line_id)
        if "company_id" in changes:
            self.company_service.require_company(user, changes["company_id"])
        updated = self._apply_changes(current, changes, protected={"available"})
        saved = self.line_repository.save(updated)
        self._audit(user, AuditAction.UPDATE, saved.id, saved.alias or saved.bank_name, previous_value=current, new_value=saved)
        return saved

    def update_drawn(self, user: User, line_id: str, drawn: Decimal) -> CreditLine:
        return self.update_line(user, line_id, {"current_drawn": drawn})

    def delete_line(self, user: User, line_id: str) -> CreditLine:
        current = self.get_line(user, line_id)
        current.status = EntityStatus.INACTIVE
        saved = self.line_repository.save(current)
        self._audit(user, AuditAction.DELETE, saved.id, saved.alias or saved.bank_name)
        return saved

    def total_available(self, user: User, company_id: Optional[str] = None) -> Decimal:
        lines = self.line_repository.find_active(user.id, company_id)
        return sum((line.available for line in lines), Decimal("0"))

    def available_by_company(self, user: User) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = {}
        for line in self.line_repository.find_active(user.id):
            totals[line.company_id] = totals.get(line.company_id, Decimal("0")) + line.available
        return totals

    def expiring_lines(self, user: User, days: Optional[int] = None, today: Optional[date] = None) -> List[CreditLine]:
        """Active lines whose expiry date falls within the next ``days`` days."""
        today = today or date.today()
        limit = today + timedelta(days=days if days is not None else self.config.expiring_credit_days)
        return [
            line
            for line in self.line_repository.find_active(user.id)
            if line.expiry_date and today <= line.expiry_date <= limit
        ]

    def low_available_lines(self, user: User, ratio: Optional[Decimal] = None) -> List[CreditLine]:
        """Active lines with less than ``ratio`` of their limit still available."""
        ratio = ratio if ratio is not None else self.config.low_credit_ratio
        return [line for line in self.line_repository.find_active(user.id) if line.available_ratio < ratio]

    # Credit cards

    def list_cards(self, user: User, company_id: Optional[str] = None) -> List[CreditCard]:
        filters: Dict[str, Any] = {"user_id": user.id, "status": EntityStatus.ACTIVE}
        if company_id:
            filters["company_id"] = company_id
        return self.card_repository.find_by(**filters)

    def get_card(self, user: User, card_id: str) -> CreditCard:
        return self._get_owned(self.card_repository, card_id, user, "Credit card")

    def create_card(self, user: User, card: CreditCard) -> CreditCard:
        self.company_service.require_company(user, card.company_id)
        saved = self.card_repository.save(self._prepare_new(card, user))
        self._audit(
            user, AuditAction.CREATE, saved.id, saved.card_alias or saved.bank_name,
            entity_type=AuditEntity.CREDIT_CARD,
        )
        return saved

    def update_card(self, user: User, card_id: str, changes: Dict[str, Any]) -> CreditCard:
        current = self.get_card(user, card_id)
        updated = self._apply_changes(current, changes, protected={"available_credit"})
        saved = self.card_repository.save(updated)
        self._audit(
            user, AuditAction.UPDATE, saved.id, saved.card_alias or saved.bank_name,
            previous_value=current, new_value=saved, entity_type=AuditEntity.CREDIT_CARD,
        )
        return saved

    def update_card_balance(self, user: User, card_id: str, balance: Decimal) -> CreditCard:
        if balance < 0:
            raise ValidationError("Balance cannot be negative", field="current_balance", value=balance)
        return self.update_card(user, card_id, {"current_balance": balance})

    def delete_card(self, user: User, card_id: str) -> CreditCard:
        current = self.get_card(user, card_id)
        current.status = EntityStatus.INACTIVE
        saved = self.card_repository.save(current)
        self._audit(user, AuditAction.DELETE, saved.id, saved.card_alias, entity_type=AuditEntity.CREDIT_CARD)
        return saved

    @staticmethod
    def next_payment_date(card: CreditCard, today: Optional[date] = None) -> date:
        """Next statement payment: this month's due day if not past, else next month's."""
        today = today or date.today()
        candidate = DateUtils.clamp_day(today.year, today.month, card.payment_due_day)
        if candidate >= today:
            return candidate
        following = DateUtils.add_months(date(today.year, today.month, 1), 1)
        return DateUtils.clamp_day(following.year, following.month, card.payment_due_day)
