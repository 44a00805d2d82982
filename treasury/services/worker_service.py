"""
Worker master data used by payroll.
"""

from typing import Any, Dict, List, Optional

from ..models.company import EntityStatus
from ..models.user import User
from ..models.worker import Worker
from ..repositories.worker_repository import WorkerRepository
from ..security.audit import AuditAction, AuditEntity
from .base import BaseService
from .company_service import CompanyService
from .validators import require_valid_iban


class WorkerService(BaseService):
    entity_label = "Worker"
    audit_entity = AuditEntity.WORKER

    def __init__(self, worker_repository: WorkerRepository, company_service: CompanyService, audit_logger=None):
        super().__init__(audit_logger)
        self.worker_repository = worker_repository
        self.company_service = company_service

    def list_workers(
        self, user: User, company_id: Optional[str] = None, active_only: bool = False
    ) -> List[Worker]:
        return self.worker_repository.find_for_company(user.id, company_id, active_only)

    def active_workers(self, user: User, company_id: str) -> List[Worker]:
        return self.worker_repository.find_for_company(user.id, company_id, active_only=True)

    def get_worker(self, user: User, worker_id: str) -> Worker:
        return self._get_owned(self.worker_repository, worker_id, user)

    def create_worker(self, user: User, worker: Worker) -> Worker:
        self.company_service.require_company(user, worker.company_id)
        worker = self._prepare_new(worker, user, skip={"iban"})
        worker.iban = require_valid_iban(worker.iban)
        saved = self.worker_repository.save(worker)
        self._audit(user, AuditAction.CREATE, saved.id, saved.display_name)
        return saved

    def update_worker(self, user: User, worker_id: str, changes: Dict[str, Any]) -> Worker:
        current = self.get_worker(user, worker_id)
        if changes.get("company_id") and changes["company_id"] != current.company_id:
            self.company_service.require_company(user, changes["company_id"])
        if "iban" in changes:
            changes = dict(changes, iban=require_valid_iban(changes["iban"]))
        updated = self._apply_changes(current, changes, skip_sanitize={"iban"})
        saved = self.worker_repository.save(updated)
        # IBANs are personal data; only the name goes into the audit trail.
        self._audit(user, AuditAction.UPDATE, saved.id, saved.display_name)
        return saved

    def deactivate_worker(self, user: User, worker_id: str) -> Worker:
        return self._set_status(user, worker_id, EntityStatus.INACTIVE, AuditAction.DELETE)

    def reactivate_worker(self, user: User, worker_id: str) -> Worker:
        return self._set_status(user, worker_id, EntityStatus.ACTIVE, AuditAction.REACTIVATE)

    def _set_status(self, user: User, worker_id: str, status: EntityStatus, action: AuditAction) -> Worker:
        current = self.get_worker(user, worker_id)
        self.worker_repository.update_fields(current.id, status=status)
        self._audit(user, action, current.id, current.display_name)
        return self.worker_repository.find_by_id(current.id)
