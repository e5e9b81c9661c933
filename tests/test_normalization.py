"""
Tests for the currency, date and physician-ID normalizers.
"""

from datetime import date
from decimal import Decimal

import pytest

from claims_ai.services.normalization import (
    UNKNOWN_DOCTOR_ID,
    normalize_doctor_id,
    parse_currency,
    parse_date,
    round_money,
    today_iso,
)


class TestParseCurrency:

    def test_dollar_string(self):
        assert parse_currency("$1,234.56") == 1234.56

    def test_empty(self):
        assert parse_currency("") == 0

    def test_none(self):
        assert parse_currency(None) == 0

    def test_numeric_input_is_idempotent(self):
        assert parse_currency(1234.56) == 1234.56
        assert parse_currency(parse_currency("$99.90")) == 99.9
        assert parse_currency(500) == 500.0

    def test_garbage_is_zero(self):
        assert parse_currency("N/A") == 0
        assert parse_currency("-") == 0

    def test_longest_numeric_prefix(self):
        assert parse_currency("1.2.3") == 1.2
        assert parse_currency("$1,250.00.") == 1250.0
        assert parse_currency("$1,250.00 (approx.)") == 1250.0
        assert parse_currency("$80.00 (incl. tax)") == 80.0
        assert parse_currency("450 - pending") == 450.0

    def test_negative_kept(self):
        assert parse_currency("-25.00") == -25.0


class TestParseDate:

    def test_us_format(self):
        assert parse_date("03/04/2024") == "2024-03-04"

    def test_iso_unpadded(self):
        assert parse_date("2024-3-4") == "2024-03-04"

    def test_month_name(self):
        assert parse_date("March 4, 2024") == "2024-03-04"

    def test_short_month_name(self):
        assert parse_date("Sep 12 2023") == "2023-09-12"

    def test_garbage(self):
        assert parse_date("garbage") is None

    def test_empty_and_none(self):
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_impossible_us_date_falls_back_to_day_first(self):
        assert parse_date("26/01/2026") == "2026-01-26"

    def test_invalid_calendar_date(self):
        assert parse_date("02/30/2024") is None

    def test_iso_datetime(self):
        assert parse_date("2024-05-06T10:30:00") == "2024-05-06"

    def test_date_object(self):
        assert parse_date(date(2024, 1, 2)) == "2024-01-02"

    def test_unknown_month_name(self):
        assert parse_date("Smarch 4, 2024") is None

    def test_us_date_with_time(self):
        assert parse_date("03/04/2024 10:30 AM") == "2024-03-04"

    def test_weekday_prefix(self):
        assert parse_date("Monday, March 4, 2024") == "2024-03-04"

    def test_ordinal_day(self):
        assert parse_date("4th March 2024") == "2024-03-04"

    def test_partial_date_rejected(self):
        assert parse_date("March 2024") is None
        assert parse_date("Visit 12") is None


class TestNormalizeDoctorId:

    @pytest.mark.parametrize("value", ["N/A", "n/a", None, "", "   "])
    def test_unknown(self, value):
        assert normalize_doctor_id(value) == UNKNOWN_DOCTOR_ID == "MD-UNKNOWN"

    def test_license_label(self):
        assert normalize_doctor_id("License No: 123456") == "MD123456"

    def test_bare_digits(self):
        assert normalize_doctor_id("567890") == "MD567890"

    def test_md_prefix_with_separator(self):
        assert normalize_doctor_id("md-98765") == "MD98765"

    def test_no_digits(self):
        assert normalize_doctor_id("Dr. Smith") == UNKNOWN_DOCTOR_ID


class TestRoundMoney:

    def test_two_places(self):
        assert round_money(100.005) == Decimal("100.01")
        assert str(round_money(800)) == "800.00"

    def test_negative_clamped(self):
        assert round_money(-3.5) == Decimal("0.00")

    def test_none(self):
        assert round_money(None) == Decimal("0.00")


def test_today_iso():
    assert today_iso() == date.today().isoformat()
