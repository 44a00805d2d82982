"""
Shared plumbing for services: ownership checks, validated partial updates and auditing.
"""

from typing import Any, Dict, Iterable, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..models.base import BaseModel, validation_messages
from ..models.user import User
from ..security.audit import AuditAction, AuditEntity, AuditLogger
from ..security.sanitize import sanitize_dict
from .exceptions import NotFoundError, ValidationError

M = TypeVar("M", bound=BaseModel)

PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at"})


class BaseService:
    """Base class for services working on user-owned records."""

    entity_label = "Record"
    audit_entity: Optional[AuditEntity] = None

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self.audit_logger = audit_logger

    def _get_owned(self, repository, entity_id: str, user: User, label: Optional[str] = None):
        """Load a record and make sure it belongs to ``user``; otherwise it does not exist."""
        entity = repository.find_by_id(entity_id) if entity_id else None
        if entity is None or getattr(entity, "user_id", None) != user.id:
            raise NotFoundError(label or self.entity_label, entity_id)
        return entity

    def _prepare_new(self, model: M, user: User, skip: Iterable[str] = ()) -> M:
        """Sanitize a new record's text and stamp its owner."""
        data = model.model_dump()
        data = sanitize_dict(data, skip=set(skip) | PROTECTED_FIELDS)
        data["id"] = None
        data["user_id"] = user.id
        return self._validate(type(model), data)

    def _apply_changes(
        self,
        model: M,
        changes: Dict[str, Any],
        protected: Iterable[str] = (),
        skip_sanitize: Iterable[str] = (),
    ) -> M:
        """Return a validated copy of ``model`` with ``changes`` applied."""
        blocked = PROTECTED_FIELDS | set(protected)
        allowed = {k: v for k, v in changes.items() if k not in blocked and k in type(model).model_fields}
        if not allowed:
            raise ValidationError("No updatable fields provided")
        allowed = sanitize_dict(allowed, skip=skip_sanitize)
        merged = model.model_dump()
        merged.update(allowed)
        return self._validate(type(model), merged)

    @staticmethod
    def _validate(model_class, data: Dict[str, Any]):
        try:
            return model_class.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError("Datos no válidos", errors=validation_messages(e))

    def _audit(
        self,
        user: Optional[User],
        action: AuditAction,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        details: Optional[str] = None,
        previous_value: Any = None,
        new_value: Any = None,
        entity_type: Optional[AuditEntity] = None,
    ) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.log(
            user,
            action,
            entity_type or self.audit_entity,
            entity_id=entity_id,
            entity_name=entity_name,
            details=details,
            previous_value=previous_value,
            new_value=new_value,
        )
