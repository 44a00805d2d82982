"""
Unit tests for monthly budgets and user settings
"""

from decimal import Decimal

import pytest

from treasury.services.exceptions import NotFoundError, ValidationError


class TestBudgets:
    """Test monthly income goals"""

    def test_upsert_creates_then_replaces(self, container, user):
        service = container.get_budget_service()
        created = service.upsert_budget(user, 2025, 3, Decimal("40000"))
        replaced = service.upsert_budget(user, 2025, 3, Decimal("45000"), notes="Campaña primavera")
        assert replaced.id == created.id
        assert replaced.income_goal == Decimal("45000")
        assert len(service.list_budgets(user, 2025)) == 1

    def test_invalid_month_rejected(self, container, user):
        with pytest.raises(ValidationError):
            container.get_budget_service().upsert_budget(user, 2025, 13, Decimal("1"))

    def test_bulk_upsert(self, container, user):
        service = container.get_budget_service()
        saved = service.bulk_upsert(
            user, [{"year": 2025, "month": m, "income_goal": Decimal("30000")} for m in (1, 2, 3)]
        )
        assert len(saved) == 3
        with pytest.raises(ValidationError):
            service.bulk_upsert(user, [])

    def test_copy_year(self, container, user):
        service = container.get_budget_service()
        service.upsert_budget(user, 2024, 11, Decimal("20000"))
        service.upsert_budget(user, 2024, 12, Decimal("25000"))
        copied = service.copy_year(user, 2024, 2025)
        assert sorted(b.month for b in copied) == [11, 12]
        assert service.budget_for(user, 2025, 12) == Decimal("25000")
        with pytest.raises(ValidationError):
            service.copy_year(user, 2025, 2025)

    def test_budget_falls_back_to_monthly_target(self, container, user):
        service = container.get_budget_service()
        assert service.budget_for(user, 2025, 6) == Decimal("0")
        service.update_settings(user, {"monthly_income_target": "15000"})
        assert service.budget_for(user, 2025, 6) == Decimal("15000")
        service.upsert_budget(user, 2025, 6, Decimal("18000"))
        assert service.budget_for(user, 2025, 6) == Decimal("18000")

    def test_budgets_are_private(self, container, user, other_user):
        service = container.get_budget_service()
        budget = service.upsert_budget(user, 2025, 1, Decimal("100"))
        assert service.list_budgets(other_user) == []
        with pytest.raises(NotFoundError):
            service.delete_budget(other_user, budget.id)
        service.delete_budget(user, budget.id)
        assert service.list_budgets(user) == []


class TestUserSettings:
    """Test per-user preferences"""

    def test_defaults_created_on_first_read(self, container, user):
        settings = container.get_budget_service().get_settings(user)
        assert settings.user_id == user.id
        assert settings.default_forecast_months == 4
        assert settings.show_income_layers

    def test_update_settings(self, container, user):
        service = container.get_budget_service()
        service.update_settings(user, {"default_forecast_months": 6, "show_income_layers": False})
        settings = service.get_settings(user)
        assert settings.default_forecast_months == 6
        assert not settings.show_income_layers
