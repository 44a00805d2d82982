"""
Monthly budget and user settings repositories.
"""

from typing import List, Optional, Type

from ..models.budget import MonthlyBudget, UserSettings
from .base import BaseRepository


class MonthlyBudgetRepository(BaseRepository[MonthlyBudget]):
    default_order = "year DESC, month ASC"

    def _get_table_name(self) -> str:
        return "monthly_budgets"

    def _get_model_class(self) -> Type[MonthlyBudget]:
        return MonthlyBudget

    def find_period(self, user_id: str, year: int, month: int) -> Optional[MonthlyBudget]:
        return self.find_one_by(user_id=user_id, year=year, month=month)

    def for_user(self, user_id: str, year: Optional[int] = None) -> List[MonthlyBudget]:
        if year is None:
            return self.find_by(user_id=user_id)
        return self.find_by(user_id=user_id, year=year)


class UserSettingsRepository(BaseRepository[UserSettings]):
    def _get_table_name(self) -> str:
        return "user_settings"

    def _get_model_class(self) -> Type[UserSettings]:
        return UserSettings

    def for_user(self, user_id: str) -> Optional[UserSettings]:
        return self.find_one_by(user_id=user_id)
