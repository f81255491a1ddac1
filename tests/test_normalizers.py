"""
Unit tests for the French number, percentage and date normalizers.
"""

import pytest

from field_extraction.postprocessor.normalizers import (
    normalize_date,
    normalize_number,
    normalize_percentage,
)


class TestNormalizeNumber:
    """Amount parsing."""

    @pytest.mark.parametrize("raw, expected", [
        ("1 234,56 €", 1234.56),
        ("1234.56", 1234.56),
        ("1.234,56", 1234.56),
        ("1\u00a0234,56\u00a0€", 1234.56),
        ("1 000,00 EUR", 1000.0),
        ("1,234.56", 1234.56),
        ("200,5", 200.5),
        ("-12,50", -12.5),
        ("42", 42.0),
    ])
    def test_french_formats(self, raw, expected):
        assert normalize_number(raw) == expected

    def test_dot_before_two_digits_is_decimal(self):
        """A dot followed by two digits is a decimal point, not a separator."""
        assert normalize_number("12.50") == 12.5

    def test_spreadsheet_numbers_pass_through(self):
        assert normalize_number(1200) == 1200.0
        assert normalize_number(19.6) == 19.6

    @pytest.mark.parametrize("raw", ["abc", "", "   ", "€", None, True, "12,34,56x"])
    def test_unparsable_gives_none(self, raw):
        assert normalize_number(raw) is None


class TestNormalizePercentage:
    """Percentage parsing, unbounded by design."""

    def test_with_percent_sign(self):
        assert normalize_percentage("20 %") == 20.0
        assert normalize_percentage("5,5%") == 5.5

    def test_not_bounded(self):
        """The [0, 100] bound belongs to the caller."""
        assert normalize_percentage("150 %") == 150.0

    def test_garbage(self):
        assert normalize_percentage("taux") is None


class TestNormalizeDate:
    """D/M/Y dates only."""

    def test_two_digit_year(self):
        assert normalize_date("05/03/24") == "2024-03-05"

    def test_four_digit_year_with_dashes(self):
        assert normalize_date("5-3-2024") == "2024-03-05"

    def test_date_inside_text(self):
        assert normalize_date("Date : 31/12/2023 à Paris") == "2023-12-31"

    @pytest.mark.parametrize("raw", ["31/02/2024", "2024-03-05", "mars 2024", "", None, "13/13/13"])
    def test_invalid_gives_none(self, raw):
        assert normalize_date(raw) is None
