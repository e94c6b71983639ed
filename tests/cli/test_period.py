from datetime import date

import pytest

from cli.transactions import format_amount, month_range, to_minor_units


class TestMonthRange:
    """Tests for parsing YYYY/MM periods."""

    def test_month(self):
        assert month_range("2025/02") == (date(2025, 2, 1), date(2025, 2, 28))

    def test_leap_year(self):
        assert month_range("2024/02")[1] == date(2024, 2, 29)

    def test_long_month(self):
        assert month_range("2025/12") == (date(2025, 12, 1), date(2025, 12, 31))

    @pytest.mark.parametrize("month", ["2025/13", "2025/0", "abc", "2025", "2025/01/01"])
    def test_invalid(self, month):
        with pytest.raises(ValueError):
            month_range(month)


class TestAmounts:
    """Tests for converting between decimal amounts and minor units."""

    @pytest.mark.parametrize(
        "text, expected",
        [("-12.50", -1250), ("3", 300), ("0.01", 1), ("1000.99", 100099)],
    )
    def test_to_minor_units(self, text, expected):
        assert to_minor_units(text) == expected

    def test_invalid_amount(self):
        with pytest.raises(ValueError):
            to_minor_units("twelve")

    def test_format_amount(self):
        assert format_amount(-1250) == "-12.50"
        assert format_amount(5) == "0.05"
        assert format_amount(0) == "0.00"
