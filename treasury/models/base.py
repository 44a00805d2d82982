"""
Base models and utilities for Pydantic v2.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field

CENT = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    """Round a money amount to two decimals."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class BaseModel(PydanticBaseModel):
    """Base model with common configuration and persistence fields."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    id: Optional[str] = Field(default=None, description="Unique identifier")
    created_at: Optional[datetime] = Field(
        default_factory=datetime.now,
        description="Timestamp when the record was created",
    )
    updated_at: Optional[datetime] = Field(
        default_factory=datetime.now,
        description="Timestamp when the record was last updated",
    )

    def touch(self) -> None:
        """Refresh the update timestamp."""
        self.updated_at = datetime.now()


class OwnedModel(BaseModel):
    """A record that belongs to one user; every query is scoped by ``user_id``."""

    user_id: Optional[str] = Field(default=None, description="Owner of the record")


def validation_messages(error) -> list[str]:
    """Flatten a pydantic ``ValidationError`` into ``"path: message"`` strings."""
    messages = []
    for item in error.errors():
        path = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        messages.append(f"{path}: {item.get('msg')}" if path else str(item.get("msg")))
    return messages
