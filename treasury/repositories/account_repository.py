"""
Bank account and account hold repositories.
"""

from typing import List, Optional, Type

from ..models.account import Account, AccountHold, AccountHoldStatus
from ..models.company import EntityStatus
from .base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    default_order = "bank_name ASC"

    def _get_table_name(self) -> str:
        return "accounts"

    def _get_model_class(self) -> Type[Account]:
        return Account

    def find_for_user(
        self,
        user_id: str,
        company_id: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[Account]:
        filters = {"user_id": user_id}
        if company_id:
            filters["company_id"] = company_id
        if not include_inactive:
            filters["status"] = EntityStatus.ACTIVE
        return self.find_by(**filters)


class AccountHoldRepository(BaseRepository[AccountHold]):
    default_order = "start_date DESC"

    def _get_table_name(self) -> str:
        return "account_holds"

    def _get_model_class(self) -> Type[AccountHold]:
        return AccountHold

    def find_active(self, user_id: str, account_id: Optional[str] = None) -> List[AccountHold]:
        filters = {"user_id": user_id, "status": AccountHoldStatus.ACTIVE}
        if account_id:
            filters["account_id"] = account_id
        return self.find_by(**filters)
