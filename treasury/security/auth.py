"""
Authentication (bcrypt passwords, signed bearer tokens) and role-based access control.
"""

from enum import Enum
from typing import Optional, Set

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..config.settings import SecurityConfig
from ..models.user import UserRole
from ..services.exceptions import InvalidTokenError, PermissionDeniedError
from ..services.logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


class Permission(str, Enum):
    """System permissions"""

    VIEW = "view"
    WRITE = "write"
    MANAGE_PAYMENT_ORDERS = "manage_payment_orders"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    MANAGE_USERS = "manage_users"


class RoleBasedAccessControl:
    """Role-Based Access Control system"""

    ROLE_PERMISSIONS = {
        UserRole.ADMIN: {
            Permission.VIEW,
            Permission.WRITE,
            Permission.MANAGE_PAYMENT_ORDERS,
            Permission.VIEW_AUDIT_LOGS,
            Permission.MANAGE_USERS,
        },
        UserRole.TREASURY_MANAGER: {
            Permission.VIEW,
            Permission.WRITE,
            Permission.MANAGE_PAYMENT_ORDERS,
            Permission.VIEW_AUDIT_LOGS,
        },
        UserRole.COMPANY_MANAGER: {
            Permission.VIEW,
            Permission.WRITE,
        },
        UserRole.VIEWER: {
            Permission.VIEW,
        },
    }

    @classmethod
    def get_user_permissions(cls, role) -> Set[Permission]:
        """Get all permissions for a user role"""
        return cls.ROLE_PERMISSIONS.get(UserRole(role), set())

    @classmethod
    def has_permission(cls, role, permission: Permission) -> bool:
        """Check if role has specific permission"""
        return permission in cls.get_user_permissions(role)

    @classmethod
    def require(cls, role, permission: Permission) -> None:
        if not cls.has_permission(role, permission):
            raise PermissionDeniedError(f"Permission '{permission.value}' required")


class PasswordHasher:
    """bcrypt password hashing"""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False


class TokenManager:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(self, config: Optional[SecurityConfig] = None):
        self.config = config or SecurityConfig()
        self._serializer = URLSafeTimedSerializer(self.config.secret_key, salt=self.config.token_salt)

    def issue(self, user_id: str, role: str) -> str:
        return self._serializer.dumps({"sub": user_id, "role": role})

    def verify(self, token: str) -> dict:
        """
        Decode a token.

        Raises:
            InvalidTokenError: If the token is tampered with or expired
        """
        try:
            return self._serializer.loads(token, max_age=self.config.token_max_age_minutes * 60)
        except SignatureExpired:
            raise InvalidTokenError("Token expired")
        except BadSignature:
            raise InvalidTokenError("Invalid token")

    @property
    def max_age_seconds(self) -> int:
        return self.config.token_max_age_minutes * 60
