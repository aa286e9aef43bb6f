"""
Normalizer module for parsing dates and amounts.
"""
from .date_parser import parse_date, is_valid_date, to_iso_date, today_iso
from .amount_parser import (
    parse_amount,
    has_valid_amount,
    to_amount,
    to_count,
    to_non_negative_amount,
    format_indian_currency,
)

__all__ = [
    'parse_date', 'is_valid_date', 'to_iso_date', 'today_iso',
    'parse_amount', 'has_valid_amount', 'to_amount', 'to_count',
    'to_non_negative_amount', 'format_indian_currency',
]
