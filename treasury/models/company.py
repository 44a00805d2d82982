"""
Company domain model.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .base import OwnedModel

COMPANY_CODE_PATTERN = re.compile(r"^EM(\d+)$")
DEFAULT_COMPANY_COLOR = "#3B82F6"


class EntityStatus(str, Enum):
    """Lifecycle status shared by companies, accounts, credit products and workers"""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Company(OwnedModel):
    """A company (empresa) whose treasury is managed."""

    code: Optional[str] = Field(default=None, max_length=10)
    name: str = Field(..., min_length=1, max_length=100)
    cif: Optional[str] = Field(default=None, max_length=20)
    color: str = Field(default=DEFAULT_COMPANY_COLOR, pattern=r"^#[0-9A-Fa-f]{6}$")
    status: EntityStatus = EntityStatus.ACTIVE

    @field_validator("cif")
    @classmethod
    def normalize_cif(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


def next_company_code(existing_codes) -> str:
    """Return ``EMnn`` one above the highest existing ``EM`` code."""
    highest = 0
    for code in existing_codes:
        match = COMPANY_CODE_PATTERN.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"EM{highest + 1:02d}"
