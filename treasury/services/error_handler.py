"""
Error handling service for comprehensive error management.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from .exceptions import TreasuryError, ValidationError
from .logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


class ErrorHandler:
    """Centralized error handling service."""

    def __init__(self):
        self.logger = logger

    def handle_exception(
        self,
        exception: Exception,
        context: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Handle exception with logging and a client-safe error payload."""
        error_id = self._generate_error_id()

        if isinstance(exception, TreasuryError) and exception.status_code < 500:
            self.logger.warning(
                "Request rejected",
                error_id=error_id,
                error_type=type(exception).__name__,
                code=exception.code,
                context=context or "unknown context",
                user_id=user_id,
            )
        else:
            self.logger.error(
                "Exception occurred",
                error_id=error_id,
                error_type=type(exception).__name__,
                context=context or "unknown context",
                user_id=user_id,
                exc_info=exception,
            )

        payload = {
            "success": False,
            "error_id": error_id,
            "error": self._get_user_friendly_message(exception),
            "code": exception.code if isinstance(exception, TreasuryError) else "INTERNAL_ERROR",
            "timestamp": datetime.now().isoformat(),
        }
        if isinstance(exception, ValidationError) and exception.errors:
            payload["validation_errors"] = exception.errors
        return payload

    def handle_validation_error(
        self, errors: list, context: Optional[str] = None
    ) -> Dict[str, Any]:
        """Handle request validation errors (a list of ``"path: message"`` strings)."""
        error_id = self._generate_error_id()

        self.logger.warning(
            "Validation error",
            error_id=error_id,
            errors=errors,
            context=context or "unknown context",
        )
        return {
            "success": False,
            "error_id": error_id,
            "error": "Datos de entrada no válidos",
            "code": "VALIDATION_ERROR",
            "validation_errors": errors,
            "timestamp": datetime.now().isoformat(),
        }

    def handle_database_error(
        self,
        exception: Exception,
        operation: str,
        affected_table: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Handle database-specific errors."""
        error_id = self._generate_error_id()

        self.logger.error(
            "Database error",
            error_id=error_id,
            error_type=type(exception).__name__,
            error=str(exception),
            operation=operation,
            affected_table=affected_table,
        )

        return {
            "success": False,
            "error_id": error_id,
            "error": "A database error occurred. Please try again later.",
            "code": "INTERNAL_ERROR",
            "operation": operation,
            "timestamp": datetime.now().isoformat(),
        }

    def _generate_error_id(self) -> str:
        """Generate unique error ID for tracking."""
        return str(uuid.uuid4())[:8]

    def _get_user_friendly_message(self, exception: Exception) -> str:
        """Convert technical exception to a message that is safe to return."""
        if isinstance(exception, TreasuryError):
            return exception.message
        if isinstance(exception, (ValueError, TypeError)):
            return "Invalid input provided. Please check your data and try again."
        if isinstance(exception, PermissionError):
            return "Permission denied. Please contact your administrator."
        return "Internal server error"


_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler
