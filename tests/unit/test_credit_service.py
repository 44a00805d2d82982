"""
Unit tests for credit lines and credit cards
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from treasury.models.company import EntityStatus
from treasury.models.credit import CreditCard, CreditLine
from treasury.services.credit_service import CreditService
from treasury.services.exceptions import NotFoundError, ValidationError


def _line(company, limit="50000", drawn="0", **fields):
    return CreditLine(
        company_id=company.id,
        bank_name=fields.pop("bank_name", "Bankinter"),
        credit_limit=Decimal(limit),
        current_drawn=Decimal(drawn),
        **fields,
    )


def _card(company, **fields):
    return CreditCard(
        company_id=company.id,
        bank_name="BBVA",
        card_alias="Visa empresa",
        card_number_last4=fields.pop("card_number_last4", "4321"),
        credit_limit=Decimal("3000"),
        **fields,
    )


class TestCreditLines:
    """Test credit lines and their available amount"""

    def test_available_is_limit_minus_drawn(self, container, user, company):
        line = container.get_credit_service().create_line(user, _line(company, drawn="12000"))
        assert line.available == Decimal("38000")

    def test_update_drawn_recomputes_available(self, container, user, company):
        service = container.get_credit_service()
        line = service.create_line(user, _line(company))
        updated = service.update_drawn(user, line.id, Decimal("45000"))
        assert updated.available == Decimal("5000")

    def test_drawn_cannot_exceed_limit(self, container, user, company):
        service = container.get_credit_service()
        line = service.create_line(user, _line(company))
        with pytest.raises(ValidationError):
            service.update_drawn(user, line.id, Decimal("60000"))

    def test_available_cannot_be_set_directly(self, container, user, company):
        service = container.get_credit_service()
        line = service.create_line(user, _line(company))
        updated = service.update_line(user, line.id, {"available": "1", "alias": "Póliza ICO"})
        assert updated.available == Decimal("50000")
        assert updated.alias == "Póliza ICO"

    def test_totals(self, container, user, company):
        service = container.get_credit_service()
        service.create_line(user, _line(company, drawn="10000"))
        second = service.create_line(user, _line(company, limit="20000", bank_name="Sabadell"))
        assert service.total_available(user) == Decimal("60000")
        assert service.available_by_company(user) == {company.id: Decimal("60000")}

        service.delete_line(user, second.id)
        assert service.total_available(user, company.id) == Decimal("40000")
        assert service.get_line(user, second.id).status == EntityStatus.INACTIVE
        assert len(service.list_lines(user, include_inactive=True)) == 2

    def test_expiring_lines(self, container, user, company):
        today = date(2025, 6, 1)
        service = container.get_credit_service()
        soon = service.create_line(user, _line(company, expiry_date=today + timedelta(days=30)))
        service.create_line(user, _line(company, expiry_date=today + timedelta(days=200)))
        service.create_line(user, _line(company, expiry_date=today - timedelta(days=1)))
        assert [line.id for line in service.expiring_lines(user, today=today)] == [soon.id]
        assert len(service.expiring_lines(user, days=365, today=today)) == 2

    def test_low_available_lines(self, container, user, company):
        service = container.get_credit_service()
        tight = service.create_line(user, _line(company, drawn="45000"))
        service.create_line(user, _line(company, drawn="10000"))
        assert [line.id for line in service.low_available_lines(user)] == [tight.id]

    def test_lines_are_private(self, container, user, other_user, company):
        line = container.get_credit_service().create_line(user, _line(company))
        with pytest.raises(NotFoundError):
            container.get_credit_service().get_line(other_user, line.id)


class TestCreditCards:
    """Test credit cards and their statement dates"""

    def test_create_card(self, container, user, company):
        card = container.get_credit_service().create_card(user, _card(company, current_balance=Decimal("500")))
        assert card.available_credit == Decimal("2500")

    def test_update_card_balance(self, container, user, company):
        service = container.get_credit_service()
        card = service.create_card(user, _card(company))
        assert service.update_card_balance(user, card.id, Decimal("1200")).available_credit == Decimal("1800")
        with pytest.raises(ValidationError):
            service.update_card_balance(user, card.id, Decimal("-1"))

    def test_last4_must_be_digits(self, company):
        with pytest.raises(ValueError):
            _card(company, card_number_last4="12a4")

    def test_delete_card(self, container, user, company):
        service = container.get_credit_service()
        card = service.create_card(user, _card(company))
        service.delete_card(user, card.id)
        assert service.list_cards(user) == []

    @pytest.mark.parametrize(
        "due_day,today,expected",
        [
            (15, date(2025, 3, 10), date(2025, 3, 15)),
            (15, date(2025, 3, 15), date(2025, 3, 15)),
            (5, date(2025, 3, 10), date(2025, 4, 5)),
            (31, date(2025, 2, 10), date(2025, 2, 28)),
            (31, date(2025, 12, 31), date(2025, 12, 31)),
            (1, date(2025, 12, 2), date(2026, 1, 1)),
        ],
    )
    def test_next_payment_date(self, company, due_day, today, expected):
        card = _card(company, payment_due_day=due_day)
        assert CreditService.next_payment_date(card, today) == expected
