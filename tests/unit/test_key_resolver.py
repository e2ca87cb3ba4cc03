"""Unit tests for record key resolution."""

from datetime import date

import pytest

from conftest import BUCKET, TODAY, client_error
from ecg_records.core.key_resolver import (
    build_key,
    candidate_keys,
    date_shard,
    extract_date_shard,
    resolve_key,
)
from ecg_records.errors import BackendError
from ecg_records.types import FileKind

UNDATED_ID = "a1b2c3d4e5f6a7b8c9d0e1f2a3b4c5d6"


class TestExtractDateShard:
    """Test cases for date token sniffing."""

    def test_report_style_identifier(self):
        assert extract_date_shard("ECG_Report_20250101_120000") == "2025/01/01/"

    def test_identifier_without_date(self):
        assert extract_date_shard(UNDATED_ID) is None

    def test_invalid_calendar_date_is_ignored(self):
        assert extract_date_shard("rec_20251341_x") is None

    def test_longer_digit_runs_are_not_dates(self):
        assert extract_date_shard("device_202501011") is None

    def test_skips_to_first_valid_date(self):
        assert extract_date_shard("batch_99999999_20250102") == "2025/01/02/"

    def test_date_shard_pads_fields(self):
        assert date_shard(date(2025, 3, 7)) == "2025/03/07/"


class TestCandidateKeys:
    """Test cases for candidate key generation."""

    def test_primary_candidate_uses_embedded_date(self):
        keys = candidate_keys("ECG_Report_20250101_090000", FileKind.JSON, TODAY)
        assert keys[0] == "ecg-data/2025/01/01/ECG_Report_20250101_090000.json"

    def test_dated_identifier_outside_window_yields_eight_keys(self):
        keys = candidate_keys("ECG_Report_20240101_090000", "pdf", TODAY)
        assert len(keys) == 8
        assert keys[1] == "ecg-reports/2025/01/10/ECG_Report_20240101_090000.pdf"
        assert keys[-1] == "ecg-reports/2025/01/04/ECG_Report_20240101_090000.pdf"

    def test_undated_identifier_does_not_repeat_today(self):
        keys = candidate_keys(UNDATED_ID, FileKind.JSON, TODAY)
        assert len(keys) == 7
        assert len(set(keys)) == len(keys)
        assert keys[0] == f"ecg-data/2025/01/10/{UNDATED_ID}.json"

    def test_custom_prefixes(self):
        prefixes = {FileKind.JSON: "meta/", FileKind.PDF: "pdf/"}
        assert build_key("r1", FileKind.PDF, "2025/01/01/", prefixes) == "pdf/2025/01/01/r1.pdf"


class TestResolveKey:
    """Test cases for the bounded key search."""

    @pytest.mark.asyncio
    async def test_primary_hit_needs_one_probe(self, s3):
        key = "ecg-data/2025/01/01/ECG_Report_20250101_090000.json"
        s3.put(key)

        result = await resolve_key(s3, BUCKET, "ECG_Report_20250101_090000", "json", today=TODAY)

        assert result == key
        assert s3.head_calls == [key]

    @pytest.mark.asyncio
    async def test_resolution_is_repeatable(self, s3):
        key = "ecg-data/2025/01/01/ECG_Report_20250101_090000.json"
        s3.put(key)

        first = await resolve_key(s3, BUCKET, "ECG_Report_20250101_090000", "json", today=TODAY)
        second = await resolve_key(s3, BUCKET, "ECG_Report_20250101_090000", "json", today=TODAY)

        assert first == second == key

    @pytest.mark.asyncio
    async def test_undated_identifier_found_three_days_back(self, s3):
        key = f"ecg-data/2025/01/07/{UNDATED_ID}.json"
        s3.put(key)

        result = await resolve_key(s3, BUCKET, UNDATED_ID, FileKind.JSON, today=TODAY)

        assert result == key
        assert len(s3.head_calls) == 4

    @pytest.mark.asyncio
    async def test_late_upload_found_under_today(self, s3):
        key = "ecg-reports/2025/01/10/ECG_Report_20250109_235959.pdf"
        s3.put(key)

        result = await resolve_key(s3, BUCKET, "ECG_Report_20250109_235959", FileKind.PDF, today=TODAY)

        assert result == key
        assert s3.head_calls[0] == "ecg-reports/2025/01/09/ECG_Report_20250109_235959.pdf"
        assert len(s3.head_calls) == 2

    @pytest.mark.asyncio
    async def test_most_recent_day_wins(self, s3):
        s3.put(f"ecg-data/2025/01/05/{UNDATED_ID}.json")
        s3.put(f"ecg-data/2025/01/08/{UNDATED_ID}.json")

        result = await resolve_key(s3, BUCKET, UNDATED_ID, FileKind.JSON, today=TODAY)

        assert result == f"ecg-data/2025/01/08/{UNDATED_ID}.json"

    @pytest.mark.asyncio
    async def test_search_is_bounded(self, s3):
        result = await resolve_key(s3, BUCKET, "ECG_Report_20240101_090000", FileKind.JSON, today=TODAY)

        assert result is None
        assert len(s3.head_calls) == 8

    @pytest.mark.asyncio
    async def test_objects_older_than_window_are_not_found(self, s3):
        s3.put(f"ecg-data/2025/01/03/{UNDATED_ID}.json")

        result = await resolve_key(s3, BUCKET, UNDATED_ID, FileKind.JSON, today=TODAY)

        assert result is None
        assert len(s3.head_calls) <= 8

    @pytest.mark.asyncio
    async def test_permission_error_stops_the_search(self, s3):
        primary = "ecg-data/2025/01/01/ECG_Report_20250101_090000.json"
        s3.head_errors[primary] = client_error("403", 403)

        with pytest.raises(BackendError) as exc_info:
            await resolve_key(s3, BUCKET, "ECG_Report_20250101_090000", FileKind.JSON, today=TODAY)

        assert exc_info.value.status_code == 403
        assert s3.head_calls == [primary]
