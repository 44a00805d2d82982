"""
Unit tests for recurrence templates, instance generation and amount versions
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from treasury.models.recurrence import Recurrence, RecurrenceStatus
from treasury.models.transaction import RecurrenceFrequency, TransactionType
from treasury.services.exceptions import BusinessRuleError, NotFoundError
from treasury.utils.date_utils import DateUtils


@pytest.fixture
def start():
    """Day 10 of next month"""
    return DateUtils.add_months(date.today().replace(day=10), 1)


@pytest.fixture
def recurrence(container, user, company, start):
    """Monthly rent with three instances"""
    return container.get_recurrence_service().create_recurrence(
        user,
        Recurrence(
            company_id=company.id,
            type=TransactionType.EXPENSE,
            name="Alquiler oficina",
            base_amount=Decimal("1200"),
            category="Alquiler",
            frequency=RecurrenceFrequency.MONTHLY,
            day_of_month=10,
            start_date=start,
            end_date=DateUtils.add_months(start, 2),
        ),
    )


def _instances(container, user, recurrence):
    return sorted(
        container.get_transaction_service().list_transactions(user, recurrence_id=recurrence.id),
        key=lambda tx: tx.due_date,
    )


class TestRecurrenceGeneration:
    """Test creation and instance generation"""

    def test_create_generates_instances(self, container, user, recurrence, start):
        instances = _instances(container, user, recurrence)
        assert [tx.due_date for tx in instances] == [
            start,
            DateUtils.add_months(start, 1),
            DateUtils.add_months(start, 2),
        ]
        assert all(tx.amount == Decimal("1200") for tx in instances)
        assert all(tx.description == "Alquiler oficina" for tx in instances)
        assert all(tx.recurrence_version_id == recurrence.current_version_id for tx in instances)
        assert recurrence.last_generated_date == DateUtils.add_months(start, 2)

    def test_initial_version(self, container, user, recurrence, start):
        versions = container.get_recurrence_service().list_versions(user, recurrence.id)
        assert len(versions) == 1
        assert versions[0].version_number == 1
        assert versions[0].change_reason == "Versión inicial"
        assert versions[0].effective_from == start

    def test_generation_skips_existing(self, container, user, recurrence):
        """Running generation twice never duplicates an instance"""
        result = container.get_recurrence_service().generate_for_recurrence(user, recurrence)
        assert result.generated_count == 0
        assert result.skipped_count == 3
        assert len(_instances(container, user, recurrence)) == 3

    def test_months_ahead_bounds_open_series(self, container, user, company):
        today = date(2025, 1, 5)
        service = container.get_recurrence_service()
        rec = service.create_recurrence(
            user,
            Recurrence(
                company_id=company.id,
                type=TransactionType.INCOME,
                name="Iguala cliente",
                base_amount=Decimal("500"),
                frequency=RecurrenceFrequency.MONTHLY,
                day_of_month=1,
                start_date=date(2025, 2, 1),
            ),
            generate=False,
        )
        result = service.generate_for_recurrence(user, rec, months_ahead=3, today=today)
        assert result.generated_count == 3
        assert result.last_generated_date == date(2025, 4, 1)

    def test_private_to_owner(self, container, other_user, recurrence):
        with pytest.raises(NotFoundError):
            container.get_recurrence_service().get_recurrence(other_user, recurrence.id)

    def test_delete_future_occurrences(self, container, user, recurrence, start):
        service = container.get_recurrence_service()
        assert service.delete_future_occurrences(recurrence.id, DateUtils.add_months(start, 1)) == 2
        assert [tx.due_date for tx in _instances(container, user, recurrence)] == [start]

    def test_regenerate_all_refills_missing_dates(self, container, user, other_user, recurrence, start):
        service = container.get_recurrence_service()
        service.delete_future_occurrences(recurrence.id, start)
        assert _instances(container, user, recurrence) == []

        assert service.regenerate_all(other_user) == []
        [result] = service.regenerate_all(user)
        assert result.recurrence_id == recurrence.id
        assert result.generated_count == 3
        assert len(_instances(container, user, recurrence)) == 3


class TestRecurrenceUpdates:
    """Test how template changes reach future instances"""

    def test_descriptive_change_cascades(self, container, user, recurrence):
        result = container.get_recurrence_service().update_recurrence(
            user, recurrence.id, {"name": "Alquiler nave", "category": "Local"}
        )
        assert result["deleted_count"] == 0
        assert result["generation"] is None
        instances = _instances(container, user, recurrence)
        assert {tx.description for tx in instances} == {"Alquiler nave"}
        assert {tx.category for tx in instances} == {"Local"}

    def test_amount_change_regenerates(self, container, user, recurrence):
        result = container.get_recurrence_service().update_recurrence(
            user, recurrence.id, {"base_amount": "1300"}
        )
        assert result["deleted_count"] == 3
        assert result["generation"]["generated_count"] == 3
        assert {tx.amount for tx in _instances(container, user, recurrence)} == {Decimal("1300")}

    def test_amount_change_reprices_current_version(self, container, user, recurrence, start):
        service = container.get_recurrence_service()
        service.update_recurrence(user, recurrence.id, {"base_amount": "1300"})
        [version] = service.list_versions(user, recurrence.id)
        assert version.amount == Decimal("1300")
        assert service.amount_for_date(user, recurrence.id, DateUtils.add_months(start, 1)) == Decimal("1300")

        [result] = service.regenerate_all(user)
        assert result.generated_count == 0
        assert {tx.recurrence_version_id for tx in _instances(container, user, recurrence)} == {version.id}

    def test_overridden_instance_survives_regeneration(self, container, user, recurrence):
        first = _instances(container, user, recurrence)[0]
        container.get_transaction_service().update_transaction(user, first.id, {"amount": "999"})
        result = container.get_recurrence_service().update_recurrence(
            user, recurrence.id, {"base_amount": "1300"}
        )
        assert result["deleted_count"] == 2
        instances = _instances(container, user, recurrence)
        assert len(instances) == 3
        assert instances[0].amount == Decimal("999")

    def test_pausing_drops_future_instances(self, container, user, recurrence):
        service = container.get_recurrence_service()
        result = service.update_recurrence(user, recurrence.id, {"status": RecurrenceStatus.PAUSED})
        assert result["deleted_count"] == 3
        assert _instances(container, user, recurrence) == []

        resumed = service.update_recurrence(user, recurrence.id, {"status": RecurrenceStatus.ACTIVE})
        assert resumed["generation"]["generated_count"] == 3

    def test_delete_recurrence(self, container, user, recurrence):
        service = container.get_recurrence_service()
        assert service.delete_recurrence(user, recurrence.id) == {"deleted_instances": 3}
        with pytest.raises(NotFoundError):
            service.get_recurrence(user, recurrence.id)

    def test_fix_dates(self, container, user, recurrence):
        """Instances moved off the day of month are put back"""
        tx = _instances(container, user, recurrence)[1]
        repository = container.get_transaction_service().transaction_repository
        repository.update_fields(tx.id, due_date=tx.due_date + timedelta(days=2))
        assert container.get_recurrence_service().fix_dates(user, recurrence.id) == 1
        assert repository.find_by_id(tx.id).due_date == tx.due_date


class TestRecurrenceVersions:
    """Test amount changes effective from a date"""

    def test_new_version_updates_future_instances(self, container, user, recurrence, start):
        service = container.get_recurrence_service()
        effective = DateUtils.add_months(start, 1)
        result = service.create_version(user, recurrence.id, Decimal("1250"), effective, "IPC")
        assert result["updated_transactions"] == 2
        assert result["version"].version_number == 2

        versions = service.list_versions(user, recurrence.id)
        first = next(v for v in versions if v.version_number == 1)
        assert not first.is_active
        assert first.effective_to == effective - timedelta(days=1)

        amounts = [tx.amount for tx in _instances(container, user, recurrence)]
        assert amounts == [Decimal("1200"), Decimal("1250"), Decimal("1250")]
        assert service.amount_for_date(user, recurrence.id, start) == Decimal("1200")
        assert service.amount_for_date(user, recurrence.id, effective) == Decimal("1250")
        assert service.get_recurrence(user, recurrence.id).base_amount == Decimal("1250")

    def test_version_without_updating_instances(self, container, user, recurrence, start):
        result = container.get_recurrence_service().create_version(
            user, recurrence.id, Decimal("1250"), DateUtils.add_months(start, 1),
            update_future_transactions=False,
        )
        assert result["updated_transactions"] == 0
        assert {tx.amount for tx in _instances(container, user, recurrence)} == {Decimal("1200")}

    def test_version_must_start_later(self, container, user, recurrence, start):
        with pytest.raises(BusinessRuleError):
            container.get_recurrence_service().create_version(user, recurrence.id, Decimal("1250"), start)
