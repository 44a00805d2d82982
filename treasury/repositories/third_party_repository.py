"""
Third party repository.
"""

from typing import List, Type

from ..models.third_party import ThirdParty
from .base import BaseRepository


class ThirdPartyRepository(BaseRepository[ThirdParty]):
    default_order = "display_name ASC"

    def _get_table_name(self) -> str:
        return "third_parties"

    def _get_model_class(self) -> Type[ThirdParty]:
        return ThirdParty

    def find_for_user(self, user_id: str, include_inactive: bool = False) -> List[ThirdParty]:
        if include_inactive:
            return self.find_by(user_id=user_id)
        return self.find_by(user_id=user_id, is_active=True)
