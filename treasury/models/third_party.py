"""
Third parties: customers, suppliers and creditors.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .base import OwnedModel


class ThirdPartyType(str, Enum):
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    CREDITOR = "CREDITOR"
    MIXED = "MIXED"


class ThirdParty(OwnedModel):
    """Counterparty of transactions, deduplicated by normalized name."""

    type: ThirdPartyType = ThirdPartyType.SUPPLIER
    display_name: str = Field(..., min_length=1, max_length=200)
    normalized_name: str = ""
    cif: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    is_active: bool = True
    last_used_at: Optional[datetime] = None
    avg_payment_delay: Optional[int] = None
    total_volume_12m: Optional[Decimal] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: Optional[str] = None

    @field_validator("cif")
    @classmethod
    def normalize_cif(cls, v: Optional[str]) -> Optional[str]:
        return v.replace(" ", "").upper() if v else v
