"""
Unit tests for date and amount normalizers.
"""
import unittest
from datetime import date, datetime
from decimal import Decimal

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from normalizer.date_parser import parse_date, is_valid_date, to_iso_date
from normalizer.amount_parser import (
    format_indian_currency,
    has_valid_amount,
    parse_amount,
    to_amount,
    to_count,
    to_non_negative_amount,
)


class TestDateParser(unittest.TestCase):
    """Tests for date parsing functions."""

    def test_iso_format(self):
        self.assertEqual(parse_date("2025-01-15"), date(2025, 1, 15))

    def test_pandas_datetime_string(self):
        """Excel date cells read as text come out with a time part."""
        self.assertEqual(parse_date("2025-01-15 00:00:00"), date(2025, 1, 15))

    def test_dd_mm_yyyy_slash(self):
        self.assertEqual(parse_date("15/01/2025"), date(2025, 1, 15))

    def test_dd_mmm_yyyy(self):
        self.assertEqual(parse_date("15 Jan 2025"), date(2025, 1, 15))

    def test_datetime_input(self):
        self.assertEqual(parse_date(datetime(2025, 1, 15, 9, 30)), date(2025, 1, 15))

    def test_extra_spaces(self):
        self.assertEqual(parse_date("  15/01/2025  "), date(2025, 1, 15))

    def test_invalid_date(self):
        self.assertIsNone(parse_date("not a date"))

    def test_empty_and_none(self):
        self.assertIsNone(parse_date(""))
        self.assertIsNone(parse_date(None))
        self.assertIsNone(parse_date("nan"))

    def test_is_valid_date(self):
        self.assertTrue(is_valid_date("2025-01-15"))
        self.assertFalse(is_valid_date("tomorrow-ish"))

    def test_to_iso_date(self):
        self.assertEqual(to_iso_date("15-01-2025"), "2025-01-15")
        self.assertIsNone(to_iso_date("garbage"))


class TestAmountParser(unittest.TestCase):
    """Tests for amount parsing functions."""

    def test_simple_number(self):
        self.assertEqual(parse_amount("905"), 905.0)

    def test_decimal_number(self):
        self.assertEqual(parse_amount("905.50"), 905.50)

    def test_indian_format(self):
        self.assertEqual(parse_amount("9,17,390.58"), 917390.58)

    def test_rupee_symbol(self):
        self.assertEqual(parse_amount("₹1000"), 1000.0)

    def test_rs_prefix(self):
        self.assertEqual(parse_amount("Rs. 1000"), 1000.0)

    def test_negative_forms(self):
        self.assertEqual(parse_amount("-50"), -50.0)
        self.assertEqual(parse_amount("(50)"), -50.0)
        self.assertEqual(parse_amount("50 DR"), -50.0)

    def test_unparseable_is_zero(self):
        self.assertEqual(parse_amount("abc"), 0.0)
        self.assertEqual(parse_amount(""), 0.0)
        self.assertEqual(parse_amount(None), 0.0)

    def test_bool_is_not_an_amount(self):
        self.assertEqual(parse_amount(True), 0.0)

    def test_has_valid_amount(self):
        self.assertTrue(has_valid_amount("₹1,000.50"))
        self.assertTrue(has_valid_amount(12))
        self.assertFalse(has_valid_amount("twelve"))
        self.assertFalse(has_valid_amount(""))
        self.assertFalse(has_valid_amount(float("nan")))


class TestCoercion(unittest.TestCase):
    """Zero-fallback coercion used by every ledger field."""

    def test_numeric_types(self):
        self.assertEqual(to_amount(Decimal("-12.50")), -12.5)
        self.assertEqual(to_non_negative_amount(Decimal("905.00")), 905.0)
        self.assertEqual(to_count(Decimal("3")), 3)
        self.assertEqual(to_amount(Decimal("NaN")), 0.0)
        self.assertEqual(to_amount(complex(1, 2)), 0.0)
        self.assertTrue(has_valid_amount(Decimal("1.5")))

    def test_to_amount_keeps_sign(self):
        self.assertEqual(to_amount("-25.5"), -25.5)

    def test_to_amount_rejects_non_finite(self):
        self.assertEqual(to_amount(float("nan")), 0.0)
        self.assertEqual(to_amount("inf"), 0.0)

    def test_to_amount_rejects_containers(self):
        self.assertEqual(to_amount([1, 2]), 0.0)
        self.assertEqual(to_amount({"a": 1}), 0.0)

    def test_to_non_negative_amount(self):
        self.assertEqual(to_non_negative_amount("905"), 905.0)
        self.assertEqual(to_non_negative_amount("-10"), 0.0)
        self.assertEqual(to_non_negative_amount("oops"), 0.0)

    def test_to_count(self):
        self.assertEqual(to_count("10"), 10)
        self.assertEqual(to_count(2.9), 2)
        self.assertEqual(to_count("-3"), 0)
        self.assertEqual(to_count("x"), 0)
        self.assertIsInstance(to_count("4.0"), int)


class TestCurrencyFormat(unittest.TestCase):

    def test_format_indian_currency(self):
        self.assertEqual(format_indian_currency(917390.58), "₹9,17,390.58")

    def test_format_indian_currency_negative(self):
        self.assertEqual(format_indian_currency(-1000.00), "₹-1,000.00")

    def test_format_small_and_none(self):
        self.assertEqual(format_indian_currency(5.5, include_symbol=False), "5.50")
        self.assertEqual(format_indian_currency(None), "")


if __name__ == '__main__':
    unittest.main()
