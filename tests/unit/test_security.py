"""
Unit tests for authentication, access control, sanitization and rate limiting
"""

from unittest.mock import patch

import pytest
from itsdangerous import SignatureExpired

from treasury.config.settings import RateLimitConfig, SecurityConfig
from treasury.models.user import UserCreate, UserRole
from treasury.security.audit import AuditAction, AuditEntity
from treasury.security.auth import Permission, PasswordHasher, RoleBasedAccessControl, TokenManager
from treasury.security.rate_limiter import MemoryRateLimitStore, RateLimiter, RateLimitRule
from treasury.security.sanitize import sanitize_dict, sanitize_string
from treasury.services.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    PermissionDeniedError,
)
from treasury.services.logging_service import mask_sensitive

PASSWORD = "Secreto123!"


class TestUserService:
    """Test registration, login and token resolution"""

    def test_register_hashes_password(self, container):
        user = container.get_user_service().register(
            UserCreate(email="Nueva@Example.com", password=PASSWORD)
        )
        assert user.email == "nueva@example.com"
        assert user.password_hash != PASSWORD
        assert "password_hash" not in user.public_dict()

    def test_duplicate_email(self, container, user):
        with pytest.raises(ConflictError):
            container.get_user_service().register(UserCreate(email=user.email, password=PASSWORD))

    def test_authenticate_returns_usable_token(self, container, user):
        service = container.get_user_service()
        logged_in, token = service.authenticate(user.email, PASSWORD)
        assert logged_in.id == user.id
        assert service.resolve_token(token).id == user.id
        assert service.get_user(user.id).last_login is not None

    def test_wrong_password(self, container, user):
        with pytest.raises(AuthenticationError):
            container.get_user_service().authenticate(user.email, "otra-clave")

    def test_unknown_email(self, container):
        with pytest.raises(AuthenticationError):
            container.get_user_service().authenticate("nadie@example.com", PASSWORD)

    def test_disabled_user(self, container, user):
        service = container.get_user_service()
        _, token = service.authenticate(user.email, PASSWORD)
        service.user_repository.update_fields(user.id, is_active=False)
        with pytest.raises(AuthenticationError, match="disabled"):
            service.authenticate(user.email, PASSWORD)
        with pytest.raises(InvalidTokenError):
            service.resolve_token(token)

    def test_garbage_token(self, container):
        with pytest.raises(InvalidTokenError):
            container.get_user_service().resolve_token("not-a-token")


class TestPasswordHasher:
    """Test bcrypt hashing"""

    def test_hash_and_verify(self):
        hasher = PasswordHasher(rounds=4)
        first = hasher.hash(PASSWORD)
        second = hasher.hash(PASSWORD)
        assert first != second
        assert hasher.verify(PASSWORD, first)
        assert not hasher.verify("wrong-password", first)

    def test_empty_or_malformed_hash(self):
        hasher = PasswordHasher(rounds=4)
        assert not hasher.verify(PASSWORD, "")
        assert not hasher.verify(PASSWORD, "not-a-bcrypt-hash")


class TestTokenManager:
    """Test signed bearer tokens"""

    def test_round_trip(self):
        manager = TokenManager(SecurityConfig(secret_key="k" * 32))
        payload = manager.verify(manager.issue("user-1", "VIEWER"))
        assert payload == {"sub": "user-1", "role": "VIEWER"}
        assert manager.max_age_seconds == 480 * 60

    def test_tampered_token(self):
        manager = TokenManager(SecurityConfig(secret_key="k" * 32))
        token = manager.issue("user-1", "VIEWER")
        with pytest.raises(InvalidTokenError, match="Invalid token"):
            manager.verify(token[:-2] + ("AA" if not token.endswith("AA") else "BB"))

    def test_token_from_other_secret(self):
        token = TokenManager(SecurityConfig(secret_key="a" * 32)).issue("user-1", "VIEWER")
        with pytest.raises(InvalidTokenError):
            TokenManager(SecurityConfig(secret_key="b" * 32)).verify(token)

    def test_expired_token(self):
        manager = TokenManager(SecurityConfig(secret_key="k" * 32))
        token = manager.issue("user-1", "VIEWER")
        with patch.object(manager._serializer, "loads", side_effect=SignatureExpired("expired")):
            with pytest.raises(InvalidTokenError, match="Token expired"):
                manager.verify(token)

    def test_short_secret_rejected(self):
        with pytest.raises(ValueError):
            SecurityConfig(secret_key="short")


class TestRoleBasedAccessControl:
    """Test role permissions"""

    @pytest.mark.parametrize(
        "role,permission,allowed",
        [
            (UserRole.ADMIN, Permission.MANAGE_USERS, True),
            (UserRole.TREASURY_MANAGER, Permission.MANAGE_PAYMENT_ORDERS, True),
            (UserRole.TREASURY_MANAGER, Permission.MANAGE_USERS, False),
            (UserRole.COMPANY_MANAGER, Permission.WRITE, True),
            (UserRole.COMPANY_MANAGER, Permission.VIEW_AUDIT_LOGS, False),
            (UserRole.VIEWER, Permission.VIEW, True),
            (UserRole.VIEWER, Permission.WRITE, False),
        ],
    )
    def test_has_permission(self, role, permission, allowed):
        assert RoleBasedAccessControl.has_permission(role, permission) is allowed

    def test_string_roles_accepted(self):
        assert RoleBasedAccessControl.has_permission("VIEWER", Permission.VIEW)

    def test_require(self):
        RoleBasedAccessControl.require("ADMIN", Permission.MANAGE_USERS)
        with pytest.raises(PermissionDeniedError):
            RoleBasedAccessControl.require("VIEWER", Permission.WRITE)


class TestSanitization:
    """Test removal of script vectors from free text"""

    def test_script_removed(self):
        assert sanitize_string("  Pago <script>alert(1)</script>proveedor ") == "Pago proveedor"

    def test_tags_and_handlers(self):
        assert sanitize_string('<b onclick="x()">Nómina</b>') == "Nómina"
        assert sanitize_string("javascript:alert(1)") == "alert(1)"

    def test_none_and_truncation(self):
        assert sanitize_string(None) == ""
        assert sanitize_string("abcdef", max_length=3) == "abc"

    def test_escape(self):
        assert sanitize_string("A & B", escape=True) == "A &amp; B"

    def test_nested_dict(self):
        cleaned = sanitize_dict(
            {"notes": "<i>ok</i>", "meta": {"tag": "<b>x</b>"}, "tags": ["<u>y</u>", 3], "raw": "<p>"},
            skip=["raw"],
        )
        assert cleaned == {"notes": "ok", "meta": {"tag": "x"}, "tags": ["y", 3], "raw": "<p>"}


class TestRateLimiter:
    """Test the sliding window limiter"""

    def test_disabled_always_allows(self):
        limiter = RateLimiter(RateLimitConfig(enabled=False))
        result = limiter.check("client", "auth")
        assert result.allowed
        assert result.remaining == 999

    def test_unknown_rule_allows(self):
        limiter = RateLimiter(RateLimitConfig(enabled=True))
        assert limiter.check("client", "unknown").remaining == 999

    def test_denies_after_limit(self):
        limiter = RateLimiter(RateLimitConfig(enabled=True, auth_max_requests=2, auth_window_seconds=60))
        assert limiter.check("client", "auth", now=1000.0).remaining == 1
        assert limiter.check("client", "auth", now=1010.0).remaining == 0
        denied = limiter.check("client", "auth", now=1020.0)
        assert not denied.allowed
        assert denied.retry_after == 41

    def test_window_slides(self):
        limiter = RateLimiter(RateLimitConfig(enabled=True, auth_max_requests=1, auth_window_seconds=60))
        assert limiter.check("client", "auth", now=1000.0).allowed
        assert not limiter.check("client", "auth", now=1059.0).allowed
        assert limiter.check("client", "auth", now=1060.0).allowed

    def test_identifiers_are_independent(self):
        limiter = RateLimiter(RateLimitConfig(enabled=True, auth_max_requests=1))
        assert limiter.check("a", "auth", now=1000.0).allowed
        assert limiter.check("b", "auth", now=1000.0).allowed
        assert not limiter.check("a", "auth", now=1001.0).allowed

    def test_reset(self):
        limiter = RateLimiter(RateLimitConfig(enabled=True, auth_max_requests=1))
        limiter.check("a", "auth", now=1000.0)
        limiter.reset()
        assert limiter.check("a", "auth", now=1001.0).allowed

    def test_idle_keys_are_dropped(self):
        store = MemoryRateLimitStore(sweep_interval=60)
        rule = RateLimitRule(max_requests=5, window_seconds=60)
        store.hit("client-a", rule, 1000.0)
        store.hit("client-b", rule, 1030.0)
        assert len(store) == 2

        store.hit("client-c", rule, 1070.0)
        assert len(store) == 2
        store.hit("client-c", rule, 1200.0)
        assert len(store) == 1


class TestSensitiveDataMasking:
    """Test masking of account numbers and tax ids in log output"""

    def test_iban(self):
        assert mask_sensitive("Pago a ES91 2100 0418 4502 0005 1332") == "Pago a ES91****1332"
        assert mask_sensitive("ES9121000418450200051332") == "ES91****1332"

    def test_tax_id(self):
        assert mask_sensitive("CIF B12345678") == "CIF B*******8"
        assert mask_sensitive("NIF 12345678Z") == "NIF 1*******Z"

    def test_plain_text_untouched(self):
        assert mask_sensitive("Nómina marzo") == "Nómina marzo"


class TestAuditLogger:
    """Test audit trail writes and queries"""

    def test_registration_is_audited(self, container, user):
        [entry] = container.get_audit_logger().history(user_id=user.id, entity_type="user")
        assert entry.action == "CREATE"
        assert entry.entity_id == user.id
        assert entry.user_email == user.email

    def test_log_with_snapshots(self, container, user, company):
        audit = container.get_audit_logger()
        entry = audit.log(
            user,
            AuditAction.UPDATE,
            AuditEntity.COMPANY,
            entity_id=company.id,
            previous_value={"name": "Antes"},
            new_value=company,
        )
        assert entry.previous_value == {"name": "Antes"}
        assert entry.new_value["name"] == "Acme Servicios SL"
        history = audit.history(entity_type="company", entity_id=company.id)
        assert AuditAction.UPDATE.value in [e.action for e in history]
