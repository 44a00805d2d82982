"""
Currency utility functions for amounts typed in Spanish or English notation.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[int, float, str, Decimal]

_NON_NUMERIC = re.compile(r"[^\d.\-]")


class CurrencyUtils:
    """Utility functions for currency operations."""

    CURRENCY_SYMBOL = "€"

    @staticmethod
    def parse_amount(amount_str: Optional[str], allow_negative: bool = True) -> Decimal:
        """
        Parse an amount typed by a user.

        ``1.234,56`` and ``1234,56`` use the comma as decimal separator, ``1234.56``
        uses the dot. Currency symbols and spaces are ignored. Anything that
        cannot be read as a number gives ``0``.

        Args:
            amount_str: Raw text as typed
            allow_negative: When False the absolute value is returned

        Returns:
            Parsed amount
        """
        if amount_str is None:
            return Decimal("0")
        if isinstance(amount_str, (int, float, Decimal)):
            value = Decimal(str(amount_str))
            return value if allow_negative else abs(value)

        cleaned = amount_str.strip()
        if not cleaned:
            return Decimal("0")

        if "," in cleaned and "." in cleaned:
            cleaned = cleaned.replace(".", "").replace(",", ".")
        elif "," in cleaned:
            cleaned = cleaned.replace(",", ".")

        cleaned = _NON_NUMERIC.sub("", cleaned)

        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
        if not value.is_finite():
            return Decimal("0")
        return value if allow_negative else abs(value)

    @staticmethod
    def round_amount(amount: Number) -> Decimal:
        return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @staticmethod
    def format_amount(amount: Optional[Number], show_symbol: bool = True) -> str:
        """Format an absolute amount in Spanish notation, e.g. ``1.234,56 €``."""
        if amount is None:
            amount = 0
        rounded = CurrencyUtils.round_amount(abs(Decimal(str(amount))))
        formatted = f"{rounded:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
        return f"{formatted} {CurrencyUtils.CURRENCY_SYMBOL}" if show_symbol else formatted

    @staticmethod
    def format_compact(amount: Optional[Number]) -> str:
        """Short form for dashboards: ``1.2M €``, ``3.5K €``."""
        value = abs(Decimal(str(amount or 0)))
        if value >= 1_000_000:
            return f"{value / 1_000_000:.1f}M {CurrencyUtils.CURRENCY_SYMBOL}"
        if value >= 1_000:
            return f"{value / 1_000:.1f}K {CurrencyUtils.CURRENCY_SYMBOL}"
        return CurrencyUtils.format_amount(value)

    @staticmethod
    def calculate_percentage_change(old_value: Number, new_value: Number) -> Decimal:
        """Calculate percentage change between two values."""
        old_value = Decimal(str(old_value))
        new_value = Decimal(str(new_value))
        if old_value == 0:
            return Decimal("100") if new_value > 0 else Decimal("0")
        change = ((new_value - old_value) / abs(old_value)) * 100
        return change.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @staticmethod
    def format_date(value: Optional[date]) -> str:
        """Spanish date format ``dd/mm/yyyy``."""
        if value is None:
            return "-"
        return value.strftime("%d/%m/%Y")


parse_amount = CurrencyUtils.parse_amount
format_currency = CurrencyUtils.format_amount
format_compact_currency = CurrencyUtils.format_compact
