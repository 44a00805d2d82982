"""
User registration and login.
"""

from datetime import datetime
from typing import Optional, Tuple

from ..models.user import User, UserCreate
from ..repositories.user_repository import UserRepository
from ..security.audit import AuditAction, AuditEntity, AuditLogger
from ..security.auth import PasswordHasher, TokenManager
from .base import BaseService
from .exceptions import AuthenticationError, ConflictError, InvalidTokenError
from .logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


class UserService(BaseService):
    entity_label = "User"
    audit_entity = AuditEntity.USER

    def __init__(
        self,
        user_repository: UserRepository,
        password_hasher: PasswordHasher,
        token_manager: TokenManager,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self.user_repository = user_repository
        self.password_hasher = password_hasher
        self.token_manager = token_manager

    def register(self, data: UserCreate) -> User:
        """Create a user account; emails are unique."""
        if self.user_repository.find_by_email(data.email):
            raise ConflictError("Email already registered")
        user = User(
            email=data.email,
            display_name=data.display_name,
            role=data.role,
            password_hash=self.password_hasher.hash(data.password),
        )
        user = self.user_repository.save(user)
        logger.info("User registered", user_id=user.id, role=user.role)
        self._audit(user, AuditAction.CREATE, entity_id=user.id, entity_name=user.email)
        return user

    def authenticate(self, email: str, password: str) -> Tuple[User, str]:
        """
        Check credentials and issue a bearer token.

        Raises:
            AuthenticationError: On unknown email, wrong password or inactive user
        """
        user = self.user_repository.find_by_email(email)
        if user is None or not self.password_hasher.verify(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("User is disabled")

        self.user_repository.update_fields(user.id, last_login=datetime.now())
        self._audit(user, AuditAction.LOGIN, entity_id=user.id, entity_name=user.email)
        return user, self.token_manager.issue(user.id, user.role)

    def resolve_token(self, token: str) -> User:
        """Return the active user a bearer token was issued to."""
        payload = self.token_manager.verify(token)
        user = self.user_repository.find_by_id(payload.get("sub", ""))
        if user is None or not user.is_active:
            raise InvalidTokenError("Invalid token")
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self.user_repository.find_by_id(user_id)
