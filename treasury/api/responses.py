"""
Response envelope helpers.
"""

import dataclasses
from decimal import Decimal
from typing import Any

from fastapi.encoders import jsonable_encoder

from ..models.base import BaseModel, to_cents
from ..models.user import User


def _plain(value: Any) -> Any:
    if isinstance(value, User):
        return value.public_dict()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="python")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _plain(value.to_dict() if hasattr(value, "to_dict") else dataclasses.asdict(value))
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def encode(value: Any) -> Any:
    """JSON-ready data; money is rounded to cents and sent as a number."""
    return jsonable_encoder(_plain(value), custom_encoder={Decimal: lambda d: float(to_cents(d))})


def ok(data: Any = None) -> dict:
    return {"success": True, "data": encode(data)}
