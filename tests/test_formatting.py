"""Tests for spreadsheet number-format codes."""

from __future__ import annotations

from datetime import datetime

import pytest

from sheetscript.formatting import FormatKind, NumberFormat, format_value, serial_to_datetime


class TestClassification:
    @pytest.mark.parametrize(
        "code,kind",
        [
            ("General", FormatKind.general),
            ("", FormatKind.general),
            ("0.00", FormatKind.number),
            ("#,##0", FormatKind.number),
            ("[Red]0.00", FormatKind.number),
            ("$#,##0.00", FormatKind.currency),
            ("0%", FormatKind.percentage),
            ("0.0E+00", FormatKind.scientific),
            ("yyyy-mm-dd", FormatKind.date),
            ("hh:mm:ss", FormatKind.time),
            ('0" units"', FormatKind.custom),
        ],
    )
    def test_kind(self, code, kind) -> None:
        assert NumberFormat.parse(code).kind is kind

    def test_number_details(self) -> None:
        fmt = NumberFormat.parse("#,##0.000")
        assert fmt.decimals == 3
        assert fmt.thousands is True


class TestNumbers:
    def test_fixed_and_grouped(self) -> None:
        assert format_value(1234.5, "#,##0.00") == "1,234.50"
        assert format_value(1234.567, "0.00") == "1234.57"
        assert format_value(1234567, "#,##0") == "1,234,567"

    def test_rounds_half_away_from_zero(self) -> None:
        assert format_value(2.5, "0") == "3"
        assert format_value(-2.5, "0") == "-3"
        assert format_value(1.005, "0.00") == "1.01"

    def test_negative_zero_has_no_sign(self) -> None:
        assert format_value(-0.001, "0.00") == "0.00"

    def test_currency(self) -> None:
        assert format_value(1234.5, "$#,##0.00") == "$1,234.50"
        assert format_value(-3, "$0.00") == "-$3.00"

    def test_percentage(self) -> None:
        assert format_value(0.256, "0%") == "26%"
        assert format_value(0.256, "0.0%") == "25.6%"

    def test_scientific(self) -> None:
        assert format_value(12345, "0.00E+00") == "1.23E+04"


class TestDates:
    def test_serial_epoch(self) -> None:
        assert serial_to_datetime(1) == datetime(1900, 1, 1)
        assert serial_to_datetime(61) == datetime(1900, 3, 1)
        assert serial_to_datetime(-1) is None

    def test_date_codes(self) -> None:
        assert format_value(44562, "yyyy-mm-dd") == "2022-01-01"
        assert format_value(44562, "mmm d, yyyy") == "Jan 1, 2022"
        assert format_value(44562, "dddd") == "Saturday"
        assert format_value(44562, "mm/dd/yy") == "01/01/22"

    def test_time_codes(self) -> None:
        assert format_value(0.5, "hh:mm:ss") == "12:00:00"
        assert format_value(0.75, "h:mm AM/PM") == "6:00 PM"
        assert format_value(44562.25, "yyyy-mm-dd hh:mm") == "2022-01-01 06:00"


class TestSections:
    def test_negative_section(self) -> None:
        assert format_value(-1.5, "0.00;(0.00)") == "(1.50)"
        assert format_value(1.5, "0.00;(0.00)") == "1.50"

    def test_zero_section(self) -> None:
        assert format_value(0, "0.00;(0.00);-") == "-"

    def test_text_section(self) -> None:
        assert format_value("abc", '0;0;0;"Text: "@') == "Text: abc"


class TestCustomAndFallbacks:
    def test_literal_suffix(self) -> None:
        assert format_value(5, '0" units"') == "5 units"
        assert format_value(1234.56, '#,##0.0 "kg"') == "1,234.6 kg"

    def test_text_placeholder(self) -> None:
        assert format_value("hi", "@") == "hi"
        assert format_value(5, "@") == "5"

    def test_text_passes_through_number_codes(self) -> None:
        assert format_value("abc", "0.00") == "abc"

    def test_general(self) -> None:
        assert format_value(None, "General") == ""
        assert format_value(True, "General") == "TRUE"
        assert format_value(2.0, "General") == "2"

    def test_never_raises(self) -> None:
        assert format_value(float("nan"), "0.00") == "NaN"
        assert format_value(1e300, "yyyy") == "1e+300"
        assert format_value([1], "0.00") == "[1]"
        assert format_value(3, "zzz") == "zzz"
