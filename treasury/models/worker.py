"""
Worker (trabajador) model used to build payroll batches.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from .base import OwnedModel
from .company import EntityStatus


class Worker(OwnedModel):
    company_id: str
    display_name: str = Field(..., min_length=1, max_length=200)
    identifier: Optional[str] = Field(default=None, max_length=20, description="DNI/NIE")
    alias: Optional[str] = Field(default=None, max_length=100)
    iban: str = Field(..., min_length=1, max_length=40)
    bank_alias: Optional[str] = Field(default=None, max_length=100)
    default_amount: Optional[Decimal] = Field(default=None, ge=0)
    default_extra_amount: Optional[Decimal] = Field(default=None, ge=0)
    number_of_payments: int = Field(default=14, ge=1, le=16)
    extras_prorated: bool = False
    status: EntityStatus = EntityStatus.ACTIVE
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("iban")
    @classmethod
    def normalize_iban(cls, v: str) -> str:
        cleaned = v.replace(" ", "").upper()
        if not cleaned:
            raise ValueError("IBAN is required")
        return cleaned

    @field_validator("identifier")
    @classmethod
    def normalize_identifier(cls, v: Optional[str]) -> Optional[str]:
        return v.replace(" ", "").upper() if v else v
