"""
FastAPI dependencies: container access, bearer authentication, roles and rate limits.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError

from ..container import Container, get_container
from ..models.base import validation_messages
from ..models.user import User
from ..security.auth import Permission, RoleBasedAccessControl
from ..services.exceptions import AuthenticationError, RateLimitExceededError, ValidationError

bearer_scheme = HTTPBearer(auto_error=False)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def container() -> Container:
    return get_container()


def client_id(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(identifier: str, rule_name: str, c: Container) -> None:
    result = c.get_rate_limiter().check(identifier, rule_name)
    if not result.allowed:
        raise RateLimitExceededError("Demasiadas solicitudes", retry_after=result.retry_after or 1)


def auth_rate_limit(request: Request, c: Container = Depends(container)) -> None:
    enforce_rate_limit(client_id(request), "auth", c)


def current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    c: Container = Depends(container),
) -> User:
    """Resolve the bearer token, then apply the read or write rate limit."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    user = c.get_user_service().resolve_token(credentials.credentials)
    request.state.user_id = user.id
    rule = "write" if request.method in WRITE_METHODS else "api"
    enforce_rate_limit(user.id, rule, c)
    if request.method in WRITE_METHODS:
        RoleBasedAccessControl.require(user.role, Permission.WRITE)
    return user


def require_permission(permission: Permission):
    def dependency(user: User = Depends(current_user)) -> User:
        RoleBasedAccessControl.require(user.role, permission)
        return user

    return dependency


def build_model(model_class, data: dict):
    """Validate a request payload into a domain model, raising the domain ``ValidationError``."""
    try:
        return model_class.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Datos no válidos", errors=validation_messages(e))
