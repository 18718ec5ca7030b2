"""Tests for activity id extraction and timestamp decoding."""

import pytest

from analytics_ingest.activity_ids import (
    WORKER_AND_SEQUENCE_BITS,
    activity_id_to_timestamp_iso,
    derive_activity_timestamp,
    extract_activity_id,
)

ACTIVITY_ID = "7387527938654691329"
EXPECTED_ISO = "2025-10-24T16:38:34.207Z"


class TestExtractActivityId:
    @pytest.mark.parametrize(
        "value",
        [
            f"https://www.linkedin.com/feed/update/urn:li:activity:{ACTIVITY_ID}",
            f"https://www.linkedin.com/feed/update/urn%3Ali%3Aactivity%3A{ACTIVITY_ID}/",
            f"urn:li:ACTIVITY:{ACTIVITY_ID}",
            f"https://www.linkedin.com/posts/acme_robots-activity-x?x=activity:{ACTIVITY_ID}&utm=1",
        ],
    )
    def test_from_strings(self, value):
        assert extract_activity_id(value) == ACTIVITY_ID

    def test_from_numeric_cell(self):
        assert extract_activity_id(7387527938654691329) == ACTIVITY_ID
        assert extract_activity_id(12345.0) == "12345"

    @pytest.mark.parametrize(
        "value",
        [None, "", "https://example.com/posts/123", "activity-7387", 12.5, True, ["activity:1"]],
    )
    def test_no_id(self, value):
        assert extract_activity_id(value) is None

    def test_plain_digit_string_is_not_an_id(self):
        assert extract_activity_id(ACTIVITY_ID) is None


class TestActivityIdToTimestamp:
    def test_known_fixture(self):
        assert activity_id_to_timestamp_iso(ACTIVITY_ID) == EXPECTED_ISO

    def test_int_input(self):
        assert activity_id_to_timestamp_iso(int(ACTIVITY_ID)) == EXPECTED_ISO

    def test_low_bits_ignored(self):
        base = (1761323914207 << WORKER_AND_SEQUENCE_BITS)
        assert activity_id_to_timestamp_iso(base) == EXPECTED_ISO
        assert activity_id_to_timestamp_iso(base + (1 << WORKER_AND_SEQUENCE_BITS) - 1) == EXPECTED_ISO

    @pytest.mark.parametrize(
        "value", [None, "", "0", 0, "-5", "abc", "12.5", True, "1_000", "+5", "\u0661\u0662\u0663"]
    )
    def test_rejected(self, value):
        assert activity_id_to_timestamp_iso(value) is None

    def test_out_of_range_returns_none(self):
        assert activity_id_to_timestamp_iso(2**200) is None


class TestDeriveActivityTimestamp:
    def test_composes_extract_and_decode(self):
        url = f"https://www.linkedin.com/feed/update/urn:li:activity:{ACTIVITY_ID}"
        assert derive_activity_timestamp(url) == EXPECTED_ISO

    def test_malformed_url(self):
        assert derive_activity_timestamp("https://www.linkedin.com/feed/update/urn:li:share:") is None
        assert derive_activity_timestamp("https://www.linkedin.com/company/acme/") is None

    def test_none(self):
        assert derive_activity_timestamp(None) is None
