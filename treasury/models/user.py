"""
User and audit log models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from .base import BaseModel


class UserRole(str, Enum):
    """User role enumeration"""

    ADMIN = "ADMIN"
    TREASURY_MANAGER = "TREASURY_MANAGER"
    COMPANY_MANAGER = "COMPANY_MANAGER"
    VIEWER = "VIEWER"


class User(BaseModel):
    email: str = Field(..., pattern=r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
    display_name: Optional[str] = Field(default=None, max_length=100)
    password_hash: str = ""
    role: UserRole = UserRole.TREASURY_MANAGER
    is_active: bool = True
    last_login: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @property
    def name(self) -> str:
        return self.display_name or self.email

    def public_dict(self) -> Dict[str, Any]:
        """Serializable view without credentials."""
        return self.model_dump(mode="json", exclude={"password_hash"})


class UserCreate(BaseModel):
    email: str = Field(..., pattern=r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
    password: str = Field(..., min_length=8, max_length=100)
    display_name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = UserRole.TREASURY_MANAGER


class AuditLog(BaseModel):
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    details: Optional[str] = None
    previous_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    success: bool = True
    error_message: Optional[str] = None
