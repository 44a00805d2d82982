"""
Recurring transaction templates: instance generation and amount versioning.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from ..config.settings import TreasuryConfig
from ..models.recurrence import Recurrence, RecurrenceStatus, RecurrenceVersion
from ..models.transaction import Transaction, TransactionStatus
from ..models.user import User
from ..repositories.recurrence_repository import RecurrenceRepository, RecurrenceVersionRepository
from ..repositories.transaction_repository import TransactionRepository
from ..security.audit import AuditAction, AuditEntity
from ..utils.date_utils import DateUtils
from .base import BaseService
from .company_service import CompanyService
from .exceptions import BusinessRuleError, ValidationError
from .logging_service import get_structured_logger
from .recurrence_generator import next_occurrence, occurrence_dates

logger = get_structured_logger().get_logger(__name__)

# Changing any of these moves or resizes the series, so future instances are rebuilt.
SCHEDULE_FIELDS = {
    "frequency",
    "day_of_month",
    "day_of_week",
    "start_date",
    "end_date",
    "base_amount",
    "generate_months_ahead",
}
# Changing any of these is copied onto future instances as they are.
CASCADE_FIELDS = {
    "name": "description",
    "category": "category",
    "third_party_id": "third_party_id",
    "third_party_name": "third_party_name",
    "account_id": "account_id",
    "certainty": "certainty",
    "notes": "notes",
    "payment_method": "payment_method",
    "charge_account_id": "charge_account_id",
}


@dataclass
class GenerationResult:
    recurrence_id: str
    generated_count: int = 0
    transaction_ids: List[str] = field(default_factory=list)
    last_generated_date: Optional[date] = None
    skipped_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RecurrenceService(BaseService):
    entity_label = "Recurrence"
    audit_entity = AuditEntity.RECURRENCE

    def __init__(
        self,
        recurrence_repository: RecurrenceRepository,
        version_repository: RecurrenceVersionRepository,
        transaction_repository: TransactionRepository,
        company_service: CompanyService,
        config: Optional[TreasuryConfig] = None,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.recurrence_repository = recurrence_repository
        self.version_repository = version_repository
        self.transaction_repository = transaction_repository
        self.company_service = company_service
        self.config = config or TreasuryConfig()

    # CRUD

    def list_recurrences(
        self,
        user: User,
        company_id: Optional[str] = None,
        status: Optional[RecurrenceStatus] = None,
    ) -> List[Recurrence]:
        filters: Dict[str, Any] = {"user_id": user.id}
        if company_id:
            filters["company_id"] = company_id
        if status:
            filters["status"] = status
        return self.recurrence_repository.find_by(**filters)

    def get_recurrence(self, user: User, recurrence_id: str) -> Recurrence:
        return self._get_owned(self.recurrence_repository, recurrence_id, user)

    def create_recurrence(self, user: User, recurrence: Recurrence, generate: bool = True) -> Recurrence:
        """Store a template, open its first amount version and generate its instances."""
        self.company_service.require_company(user, recurrence.company_id)
        recurrence = self._prepare_new(recurrence, user)
        recurrence.created_by = user.id
        recurrence.last_updated_by = user.id
        recurrence.status = RecurrenceStatus.ACTIVE
        saved = self.recurrence_repository.save(recurrence)

        version = self.version_repository.save(
            RecurrenceVersion(
                user_id=user.id,
                recurrence_id=saved.id,
                amount=saved.base_amount,
                effective_from=saved.start_date,
                version_number=1,
                change_reason="Versión inicial",
                created_by=user.id,
            )
        )
        self.recurrence_repository.update_fields(saved.id, current_version_id=version.id)
        saved = self.recurrence_repository.find_by_id(saved.id)

        self._audit(user, AuditAction.CREATE, saved.id, saved.name, new_value=saved)
        if generate:
            self.generate_for_recurrence(user, saved)
            saved = self.recurrence_repository.find_by_id(saved.id)
        return saved

    def update_recurrence(self, user: User, recurrence_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a template and keep its future instances consistent.

        Schedule or amount changes drop the future non-overridden instances and
        regenerate them; descriptive changes are copied onto them. Pausing or
        ending a recurrence drops its future instances.
        """
        current = self.get_recurrence(user, recurrence_id)
        if "company_id" in changes:
            self.company_service.require_company(user, changes["company_id"])
        updated = self._apply_changes(
            current,
            changes,
            protected={"last_generated_date", "next_occurrence_date", "current_version_id", "created_by"},
        )
        updated.last_updated_by = user.id
        saved = self.recurrence_repository.save(updated)

        today = date.today()
        deleted = 0
        regenerated: Optional[GenerationResult] = None
        schedule_changed = any(
            name in changes and getattr(current, name) != getattr(saved, name) for name in SCHEDULE_FIELDS
        )
        if saved.base_amount != current.base_amount:
            # The version in force prices regenerated instances
            active = self.version_repository.latest(saved.id)
            if active:
                self.version_repository.update_fields(active.id, amount=saved.base_amount)

        if saved.status != RecurrenceStatus.ACTIVE:
            deleted = self.delete_future_occurrences(saved.id, today)
        elif schedule_changed:
            deleted = self.delete_future_occurrences(saved.id, today)
            regenerated = self.generate_for_recurrence(user, saved)
        else:
            self._cascade_to_instances(saved, changes, today)
            if current.status != RecurrenceStatus.ACTIVE:
                regenerated = self.generate_for_recurrence(user, saved)

        self._audit(user, AuditAction.UPDATE, saved.id, saved.name, previous_value=current, new_value=saved)
        return {
            "recurrence": self.recurrence_repository.find_by_id(saved.id),
            "deleted_count": deleted,
            "generation": regenerated.to_dict() if regenerated else None,
        }

    def delete_recurrence(self, user: User, recurrence_id: str, delete_future: bool = True) -> Dict[str, Any]:
        """Delete a template; paid and overridden instances stay as plain transactions."""
        current = self.get_recurrence(user, recurrence_id)
        deleted = self.delete_future_occurrences(current.id, date.today()) if delete_future else 0
        self.version_repository.delete_by(recurrence_id=current.id)
        self.recurrence_repository.delete(current.id)
        self._audit(user, AuditAction.DELETE, current.id, current.name, previous_value=current)
        return {"deleted_instances": deleted}

    # Generation

    def generate_for_recurrence(
        self,
        user: User,
        recurrence: Recurrence,
        months_ahead: Optional[int] = None,
        skip_existing: bool = True,
        today: Optional[date] = None,
    ) -> GenerationResult:
        """
        Create the pending instances of a recurrence up to ``months_ahead`` months from today.

        Dates are computed from the recurrence start date; dates that already
        have an instance (or a transaction for the same third party, company,
        type and amount) are skipped.
        """
        today = today or date.today()
        months_ahead = months_ahead or recurrence.generate_months_ahead or self.config.default_months_ahead
        max_date = today + relativedelta(months=months_ahead)
        result = GenerationResult(recurrence_id=recurrence.id)

        dates = occurrence_dates(
            recurrence.start_date,
            recurrence.end_date,
            recurrence.frequency,
            recurrence.day_of_month,
            recurrence.day_of_week,
            max_date=max_date,
            max_occurrences=self.config.max_occurrences,
        )
        if not dates:
            return result

        existing: set = set()
        if skip_existing:
            existing |= self.transaction_repository.due_dates_for_recurrence(recurrence.id)
            if recurrence.third_party_id:
                existing |= self.transaction_repository.matching_due_dates(
                    user.id,
                    recurrence.company_id,
                    recurrence.third_party_id,
                    recurrence.type,
                    recurrence.base_amount,
                )

        versions = self.version_repository.for_recurrence(recurrence.id)
        for occurrence in dates:
            if occurrence.isoformat() in existing:
                result.skipped_count += 1
                continue
            version = self._version_for(versions, occurrence)
            instance = self._build_instance(user, recurrence, occurrence, version)
            saved = self.transaction_repository.save(instance)
            result.transaction_ids.append(saved.id)
            result.generated_count += 1
            if result.last_generated_date is None or occurrence > result.last_generated_date:
                result.last_generated_date = occurrence

        if result.generated_count:
            self.recurrence_repository.update_fields(
                recurrence.id,
                last_generated_date=result.last_generated_date,
                next_occurrence_date=next_occurrence(
                    dates[-1], recurrence.frequency, recurrence.day_of_month, recurrence.day_of_week
                ),
            )
        logger.info(
            "Recurrence generated",
            recurrence_id=recurrence.id,
            generated=result.generated_count,
            skipped=result.skipped_count,
        )
        return result

    def regenerate_all(self, user: User, company_id: Optional[str] = None) -> List[GenerationResult]:
        """Top up the instances of every active recurrence of the user."""
        return [
            self.generate_for_recurrence(user, recurrence)
            for recurrence in self.recurrence_repository.find_active(user.id, company_id)
        ]

    def delete_future_occurrences(self, recurrence_id: str, from_date: Optional[date] = None) -> int:
        """Delete pending, non-overridden instances due on or after ``from_date``."""
        from_date = from_date or date.today()
        instances = self.transaction_repository.future_instances(recurrence_id, from_date)
        for tx in instances:
            self.transaction_repository.delete(tx.id)
        if instances:
            logger.info("Future occurrences deleted", recurrence_id=recurrence_id, count=len(instances))
        return len(instances)

    def fix_dates(self, user: User, recurrence_id: str) -> int:
        """Re-align pending, non-overridden instances to the recurrence's day of month."""
        recurrence = self.get_recurrence(user, recurrence_id)
        if not recurrence.day_of_month:
            return 0
        fixed = 0
        for tx in self.transaction_repository.find_by(
            recurrence_id=recurrence.id, status=TransactionStatus.PENDING, overridden_from_recurrence=False
        ):
            expected = DateUtils.clamp_day(tx.due_date.year, tx.due_date.month, recurrence.day_of_month)
            if expected != tx.due_date:
                self.transaction_repository.update_fields(
                    tx.id, due_date=expected, instance_date=DateUtils.month_key(expected)
                )
                fixed += 1
        logger.info("Recurrence dates fixed", recurrence_id=recurrence.id, fixed=fixed)
        return fixed

    # Versions

    def list_versions(self, user: User, recurrence_id: str) -> List[RecurrenceVersion]:
        self.get_recurrence(user, recurrence_id)
        return self.version_repository.for_recurrence(recurrence_id)

    def create_version(
        self,
        user: User,
        recurrence_id: str,
        amount: Decimal,
        effective_from: date,
        change_reason: Optional[str] = None,
        update_future_transactions: bool = True,
    ) -> Dict[str, Any]:
        """
        Change the amount of a recurrence from ``effective_from`` on.

        The previous version is closed the day before; pending, non-overridden
        instances due from ``effective_from`` take the new amount when
        ``update_future_transactions`` is set.
        """
        recurrence = self.get_recurrence(user, recurrence_id)
        if amount is None or Decimal(str(amount)) <= 0:
            raise ValidationError("Amount must be positive", field="amount", value=amount)
        amount = Decimal(str(amount))

        previous = self.version_repository.latest(recurrence.id)
        if previous and effective_from <= previous.effective_from:
            raise BusinessRuleError("effective_from must be after the current version start")
        if previous:
            self.version_repository.update_fields(
                previous.id,
                is_active=False,
                effective_to=effective_from - timedelta(days=1),
            )

        version = self.version_repository.save(
            RecurrenceVersion(
                user_id=user.id,
                recurrence_id=recurrence.id,
                amount=amount,
                effective_from=effective_from,
                change_reason=change_reason,
                version_number=(previous.version_number + 1) if previous else 1,
                is_active=True,
                created_by=user.id,
            )
        )
        self.recurrence_repository.update_fields(
            recurrence.id, base_amount=amount, current_version_id=version.id, last_updated_by=user.id
        )

        updated = 0
        if update_future_transactions:
            for tx in self.transaction_repository.future_instances(recurrence.id, effective_from):
                self.transaction_repository.update_fields(
                    tx.id, amount=amount, recurrence_version_id=version.id, last_updated_by=user.id
                )
                updated += 1

        logger.info(
            "Recurrence version created",
            recurrence_id=recurrence.id,
            version=version.version_number,
            updated_transactions=updated,
        )
        self._audit(
            user,
            AuditAction.UPDATE,
            recurrence.id,
            recurrence.name,
            details=f"Nueva versión {version.version_number}: {amount}",
            previous_value={"amount": str(recurrence.base_amount)},
            new_value={"amount": str(amount), "effective_from": effective_from.isoformat()},
        )
        return {"version": version, "updated_transactions": updated}

    def amount_for_date(self, user: User, recurrence_id: str, day: date) -> Decimal:
        """Amount of the version in force on ``day`` (base amount when none covers it)."""
        recurrence = self.get_recurrence(user, recurrence_id)
        version = self._version_for(self.version_repository.for_recurrence(recurrence.id), day)
        return version.amount if version else recurrence.base_amount

    # Helpers

    @staticmethod
    def _version_for(versions: List[RecurrenceVersion], day: date) -> Optional[RecurrenceVersion]:
        covering = [v for v in versions if v.covers(day)]
        return max(covering, key=lambda v: v.version_number) if covering else None

    @staticmethod
    def _build_instance(
        user: User, recurrence: Recurrence, occurrence: date, version: Optional[RecurrenceVersion]
    ) -> Transaction:
        return Transaction(
            user_id=user.id,
            company_id=recurrence.company_id,
            account_id=recurrence.account_id,
            type=recurrence.type,
            amount=version.amount if version else recurrence.base_amount,
            status=TransactionStatus.PENDING,
            due_date=occurrence,
            category=recurrence.category,
            description=recurrence.name,
            third_party_id=recurrence.third_party_id,
            third_party_name=recurrence.third_party_name,
            notes=recurrence.notes,
            payment_method=recurrence.payment_method,
            charge_account_id=recurrence.charge_account_id,
            recurrence=recurrence.frequency,
            certainty=recurrence.certainty,
            recurrence_id=recurrence.id,
            recurrence_version_id=version.id if version else None,
            is_recurrence_instance=True,
            instance_date=DateUtils.month_key(occurrence),
            overridden_from_recurrence=False,
            created_by=user.id,
            last_updated_by=user.id,
        )

    def _cascade_to_instances(self, recurrence: Recurrence, changes: Dict[str, Any], from_date: date) -> int:
        fields = {
            tx_field: getattr(recurrence, rec_field)
            for rec_field, tx_field in CASCADE_FIELDS.items()
            if rec_field in changes
        }
        if not fields:
            return 0
        instances = self.transaction_repository.future_instances(recurrence.id, from_date)
        for tx in instances:
            self.transaction_repository.update_fields(tx.id, **fields)
        return len(instances)
