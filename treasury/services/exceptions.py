"""
Domain exceptions raised by services and translated to HTTP responses by the API layer.
"""

from typing import Any, List, Optional


class TreasuryError(Exception):
    """Base class for all expected treasury errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(TreasuryError):
    """Raised when input data breaks a validation rule"""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        errors: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.field = field
        self.value = value
        self.errors = errors or ([f"{field}: {message}"] if field else [])


class AuthenticationError(TreasuryError):
    code = "UNAUTHORIZED"
    status_code = 401


class InvalidTokenError(AuthenticationError):
    code = "INVALID_TOKEN"


class PermissionDeniedError(TreasuryError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(TreasuryError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(TreasuryError):
    code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class BusinessRuleError(TreasuryError):
    """Raised when an operation is valid input-wise but not allowed in the current state."""

    code = "BUSINESS_RULE"
    status_code = 400


class RateLimitExceededError(TreasuryError):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after
