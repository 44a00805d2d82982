"""
Utility helpers: money parsing and formatting, dates, schema and exports.
"""

from .currency_utils import CurrencyUtils, format_compact_currency, format_currency, parse_amount
from .date_utils import DateUtils

__all__ = [
    "CurrencyUtils",
    "DateUtils",
    "format_compact_currency",
    "format_currency",
    "parse_amount",
]
