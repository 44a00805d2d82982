"""
Company management.
"""

from typing import Any, Dict, List

from ..models.company import Company, EntityStatus, next_company_code
from ..models.user import User
from ..repositories.company_repository import CompanyRepository
from ..security.audit import AuditAction, AuditEntity
from .base import BaseService
from .logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


class CompanyService(BaseService):
    entity_label = "Company"
    audit_entity = AuditEntity.COMPANY

    def __init__(self, company_repository: CompanyRepository, audit_logger=None):
        super().__init__(audit_logger)
        self.company_repository = company_repository

    def list_companies(self, user: User, include_inactive: bool = False) -> List[Company]:
        return self.company_repository.find_for_user(user.id, include_inactive=include_inactive)

    def get_company(self, user: User, company_id: str) -> Company:
        return self._get_owned(self.company_repository, company_id, user)

    def create_company(self, user: User, company: Company) -> Company:
        """Create a company with the next free ``EMnn`` code."""
        company = self._prepare_new(company, user)
        company.code = next_company_code(self.company_repository.codes_for_user(user.id))
        saved = self.company_repository.save(company)
        logger.info("Company created", company_id=saved.id, code=saved.code)
        self._audit(user, AuditAction.CREATE, saved.id, saved.name, new_value=saved)
        return saved

    def update_company(self, user: User, company_id: str, changes: Dict[str, Any]) -> Company:
        current = self.get_company(user, company_id)
        updated = self._apply_changes(current, changes, protected={"code"})
        saved = self.company_repository.save(updated)
        self._audit(user, AuditAction.UPDATE, saved.id, saved.name, previous_value=current, new_value=saved)
        return saved

    def delete_company(self, user: User, company_id: str) -> Company:
        """Companies are never removed, only deactivated."""
        current = self.get_company(user, company_id)
        current.status = EntityStatus.INACTIVE
        saved = self.company_repository.save(current)
        self._audit(user, AuditAction.DELETE, saved.id, saved.name)
        return saved

    def require_company(self, user: User, company_id: str) -> Company:
        """Ownership check used by services that attach records to a company."""
        return self.get_company(user, company_id)
