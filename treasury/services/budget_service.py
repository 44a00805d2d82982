"""
Monthly income budgets and user preferences.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..models.budget import MonthlyBudget, UserSettings
from ..models.user import User
from ..repositories.budget_repository import MonthlyBudgetRepository, UserSettingsRepository
from ..security.audit import AuditAction, AuditEntity
from .base import BaseService
from .exceptions import ValidationError


class BudgetService(BaseService):
    entity_label = "Budget"
    audit_entity = AuditEntity.BUDGET

    def __init__(
        self,
        budget_repository: MonthlyBudgetRepository,
        settings_repository: UserSettingsRepository,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.budget_repository = budget_repository
        self.settings_repository = settings_repository

    # Budgets

    def list_budgets(self, user: User, year: Optional[int] = None) -> List[MonthlyBudget]:
        return self.budget_repository.for_user(user.id, year)

    def upsert_budget(
        self,
        user: User,
        year: int,
        month: int,
        income_goal: Decimal,
        notes: Optional[str] = None,
    ) -> MonthlyBudget:
        """Create or replace the income goal of a month."""
        existing = self.budget_repository.find_period(user.id, year, month)
        if existing:
            updated = self._apply_changes(existing, {"income_goal": income_goal, "notes": notes})
            saved = self.budget_repository.save(updated)
            self._audit(user, AuditAction.UPDATE, saved.id, f"{year}-{month:02d}", previous_value=existing, new_value=saved)
            return saved
        budget = self._validate(
            MonthlyBudget, {"year": year, "month": month, "income_goal": income_goal, "notes": notes}
        )
        saved = self.budget_repository.save(self._prepare_new(budget, user))
        self._audit(user, AuditAction.CREATE, saved.id, f"{year}-{month:02d}", new_value=saved)
        return saved

    def bulk_upsert(self, user: User, entries: Iterable[Dict[str, Any]]) -> List[MonthlyBudget]:
        entries = list(entries)
        if not entries:
            raise ValidationError("Se requiere al menos un presupuesto", field="budgets")
        return [
            self.upsert_budget(user, e["year"], e["month"], e["income_goal"], e.get("notes"))
            for e in entries
        ]

    def delete_budget(self, user: User, budget_id: str) -> None:
        budget = self._get_owned(self.budget_repository, budget_id, user)
        self.budget_repository.delete(budget.id)
        self._audit(user, AuditAction.DELETE, budget.id, f"{budget.year}-{budget.month:02d}")

    def copy_year(self, user: User, from_year: int, to_year: int) -> List[MonthlyBudget]:
        """Copy every monthly goal of ``from_year`` onto the same months of ``to_year``."""
        if from_year == to_year:
            raise ValidationError("Los años de origen y destino deben ser distintos", field="to_year")
        source = self.budget_repository.for_user(user.id, from_year)
        return [self.upsert_budget(user, to_year, b.month, b.income_goal, b.notes) for b in source]

    def budget_for(self, user: User, year: int, month: int) -> Decimal:
        """Income goal of a month, falling back to the user's monthly target."""
        budget = self.budget_repository.find_period(user.id, year, month)
        if budget is not None:
            return budget.income_goal
        return self.get_settings(user).monthly_income_target or Decimal("0")

    # User settings

    def get_settings(self, user: User) -> UserSettings:
        settings = self.settings_repository.for_user(user.id)
        if settings is None:
            settings = self.settings_repository.save(UserSettings(user_id=user.id))
        return settings

    def update_settings(self, user: User, changes: Dict[str, Any]) -> UserSettings:
        current = self.get_settings(user)
        updated = self._apply_changes(current, changes)
        saved = self.settings_repository.save(updated)
        self._audit(
            user, AuditAction.UPDATE, saved.id, "user_settings", previous_value=current, new_value=saved,
            entity_type=AuditEntity.SETTINGS,
        )
        return saved
