"""Tests for cell-level number and date parsing."""

from datetime import date, datetime, timedelta, timezone

import pytest

from analytics_ingest.normalize import (
    normalize_header,
    parse_date,
    parse_number,
    serial_to_datetime,
    to_iso,
)


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12.5%", 0.125),
            ("3,1%", 0.031),
            ("1,316", 1.316),
            ("1,316.5", 1316.5),
            ("1,234,567.89", 1234567.89),
            ("12,5", 12.5),
            ("1 234", 1234.0),
            ("4 500", 4500.0),
            (" 42 ", 42.0),
            ("-7", -7.0),
            ("USD 99.5", 99.5),
        ],
    )
    def test_strings(self, raw, expected):
        assert parse_number(raw) == pytest.approx(expected)

    def test_native_numbers_unchanged(self):
        assert parse_number(1200) == 1200
        assert parse_number(0.045) == 0.045
        assert parse_number(0) == 0

    @pytest.mark.parametrize("raw", [None, "", "   ", "n/a", "%", "-", float("nan"), float("inf"), True])
    def test_unparseable_returns_none(self, raw):
        assert parse_number(raw) is None

    def test_percent_stripped_before_separator_inference(self):
        # "1,5%" has a comma and no dot once the percent sign is gone
        assert parse_number("1,5%") == pytest.approx(0.015)


class TestParseDate:
    @pytest.mark.parametrize("serial", [1, 59, 60, 61, 45000, 45000.5, 45231.75])
    def test_serial_numbers(self, serial):
        expected = datetime(1899, 12, 30, tzinfo=timezone.utc) + timedelta(
            milliseconds=round(serial * 86400000)
        )
        assert parse_date(serial) == to_iso(expected)

    def test_known_serial(self):
        assert parse_date(45000) == "2023-03-15T00:00:00.000Z"
        assert parse_date(45000.5) == "2023-03-15T12:00:00.000Z"

    def test_serial_sixty_uses_plain_epoch_arithmetic(self):
        assert parse_date(60) == "1900-02-28T00:00:00.000Z"

    def test_digit_strings_are_serials(self):
        assert parse_date("45000") == "2023-03-15T00:00:00.000Z"
        assert parse_date("45000.25") == "2023-03-15T06:00:00.000Z"

    def test_native_datetimes(self):
        assert parse_date(datetime(2025, 11, 1, 9, 30)) == "2025-11-01T09:30:00.000Z"
        aware = datetime(2025, 11, 1, 9, 30, tzinfo=timezone(timedelta(hours=2)))
        assert parse_date(aware) == "2025-11-01T07:30:00.000Z"
        assert parse_date(date(2025, 11, 1)) == "2025-11-01T00:00:00.000Z"

    def test_free_text_dates(self):
        assert parse_date("2025-10-18T00:00:00Z") == "2025-10-18T00:00:00.000Z"
        assert parse_date("Oct 20, 2025") == "2025-10-20T00:00:00.000Z"
        assert parse_date("11/02/2025") == "2025-11-02T00:00:00.000Z"

    @pytest.mark.parametrize("raw", [None, "", "   ", "not a date", True, float("nan")])
    def test_invalid_returns_none(self, raw):
        assert parse_date(raw) is None

    @pytest.mark.parametrize("raw", ["Monday", "March", "Oct 20", "2025-11"])
    def test_partial_dates_return_none(self, raw):
        assert parse_date(raw) is None

    def test_out_of_range_serial_returns_none(self):
        assert parse_date(10**12) is None


class TestHelpers:
    def test_to_iso_millisecond_precision(self):
        value = datetime(2025, 10, 24, 16, 38, 34, 207999, tzinfo=timezone.utc)
        assert to_iso(value) == "2025-10-24T16:38:34.207Z"

    def test_serial_to_datetime_is_utc(self):
        assert serial_to_datetime(0) == datetime(1899, 12, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Post Title", "post title"),
            ("  Engagement\nrate ", "engagement rate"),
            ("Impressions   (total)", "impressions (total)"),
            (None, ""),
            (2025, "2025"),
        ],
    )
    def test_normalize_header(self, raw, expected):
        assert normalize_header(raw) == expected
