"""Unit tests for request and response DTOs."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from schemas.dto.requests.ads import (
    DEFAULT_LOG_PAGE,
    MAX_LOG_PAGE,
    BulkDeleteRequest,
    CreateAdRequest,
    LogsQuery,
    UpdateAdRequest,
)
from schemas.dto.requests.stats import StatsQuery
from schemas.dto.responses.ads import AdResponse
from schemas.models.ad import AdDoc
from shared.time_bucket_utils import Granularity


# ── CreateAdRequest / UpdateAdRequest ─────────────────────────────────────────

class TestCreateAdRequest:
    def test_camel_case_accepted_and_stripped(self):
        req = CreateAdRequest.model_validate(
            {"adName": " spring ", "adDomain": "example.com", "adCode": " og "}
        )
        assert req.ad_name == "spring"
        assert req.ad_domain == "example.com"
        assert req.ad_code == "og"

    def test_defaults_empty(self):
        req = CreateAdRequest()
        assert (req.ad_name, req.ad_domain, req.ad_code) == ("", "", "")

    def test_none_becomes_empty(self):
        assert CreateAdRequest.model_validate({"ad_code": None}).ad_code == ""


class TestUpdateAdRequest:
    def test_only_provided_fields(self):
        req = UpdateAdRequest.model_validate({"adName": "x"})
        assert req.provided_fields() == {"ad_name": "x"}

    def test_explicit_null_is_provided(self):
        req = UpdateAdRequest.model_validate({"ad_code": None})
        assert req.provided_fields() == {"ad_code": None}

    def test_empty_body(self):
        assert UpdateAdRequest.model_validate({}).provided_fields() == {}


# ── BulkDeleteRequest ─────────────────────────────────────────────────────────

class TestBulkDeleteRequest:
    def test_split_refs(self):
        req = BulkDeleteRequest.model_validate(
            {"adSeqList": [1, "2", "2_3", " ", "2_3", " 4 "]}
        )
        assert req.split_refs() == ([1, 2, 4], ["2_3"])

    def test_empty(self):
        assert BulkDeleteRequest().split_refs() == ([], [])


# ── LogsQuery ─────────────────────────────────────────────────────────────────

class TestLogsQuery:
    @pytest.mark.parametrize(
        "limit, expected",
        [
            ("50", 50),
            ("0", 1),
            ("-3", 1),
            ("100000", MAX_LOG_PAGE),
            ("abc", DEFAULT_LOG_PAGE),
            ("inf", DEFAULT_LOG_PAGE),
        ],
    )
    def test_limit_clamped(self, limit, expected):
        assert LogsQuery(userAdNo="2_1", limit=limit).limit == expected

    @pytest.mark.parametrize("offset, expected", [("10", 10), ("-1", 0), ("x", 0)])
    def test_offset_clamped(self, offset, expected):
        assert LogsQuery(userAdNo="2_1", offset=offset).offset == expected

    @pytest.mark.parametrize("value", ["", "   "])
    def test_user_ad_no_required(self, value):
        with pytest.raises(ValidationError):
            LogsQuery(userAdNo=value)


# ── StatsQuery ────────────────────────────────────────────────────────────────

class TestStatsQuery:
    def test_defaults(self):
        q = StatsQuery()
        assert q.granularity == Granularity.HOURLY
        assert q.effective_days == 7
        assert q.ad_filter is None

    @pytest.mark.parametrize("ad", ["", "ALL", "all", "  "])
    def test_all_ads(self, ad):
        assert StatsQuery(ad=ad).ad_filter is None

    def test_specific_ad(self):
        assert StatsQuery(ad=" 2_1 ").ad_filter == "2_1"

    @pytest.mark.parametrize(
        "bucket, days, expected",
        [("1m", 7, 1), ("5m", 7, 3), ("10m", 30, 7), ("1d", 30, 30)],
    )
    def test_days_capped_per_bucket(self, bucket, days, expected):
        assert StatsQuery(bucket=bucket, days=days).effective_days == expected

    @pytest.mark.parametrize("days, expected", [(None, 7), ("", 7), ("0", 1), ("3.9", 3)])
    def test_days_coerced(self, days, expected):
        assert StatsQuery(days=days).days == expected

    def test_bad_days_rejected(self):
        with pytest.raises(ValidationError):
            StatsQuery(days="many")

    def test_unknown_bucket_rejected(self):
        with pytest.raises(ValidationError, match="bucket must be one of"):
            StatsQuery(bucket="2h")

    def test_explicit_range_parsed(self):
        q = StatsQuery(
            bucket="5m",
            start_date="2024-01-01T00:00:00Z",
            end_date="1704153600",  # 2024-01-02T00:00:00Z
        )
        assert q.parsed_start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert q.parsed_end == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_naive_range_uses_context_timezone(self):
        q = StatsQuery.model_validate(
            {"bucket": "5m", "start_date": "2024-01-01T00:00", "end_date": "2024-01-01T00:15"},
            context={"tz": ZoneInfo("Asia/Seoul")},
        )
        assert q.parsed_start == datetime(2023, 12, 31, 15, 0, tzinfo=timezone.utc)
        assert q.parsed_end == datetime(2023, 12, 31, 15, 15, tzinfo=timezone.utc)

    def test_naive_range_without_context_is_utc(self):
        q = StatsQuery(start_date="2024-01-01T00:00", end_date="2024-01-01T00:15")
        assert q.parsed_start == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_range_requires_both_ends(self):
        with pytest.raises(ValidationError):
            StatsQuery(start_date="2024-01-01T00:00:00Z")

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            StatsQuery(start_date="2024-01-02T00:00:00Z", end_date="2024-01-01T00:00:00Z")

    def test_range_longer_than_cap_rejected(self):
        with pytest.raises(ValidationError, match="range too long"):
            StatsQuery(
                bucket="1m",
                start_date="2024-01-01T00:00:00Z",
                end_date="2024-01-03T00:00:00Z",
            )


# ── AdResponse ────────────────────────────────────────────────────────────────

def test_ad_response_from_doc():
    doc = AdDoc(
        owner_id=2,
        ad_seq=1,
        user_ad_no="2_1",
        ad_name="spring",
        ad_code="og",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    body = AdResponse.from_doc(doc).model_dump()
    assert body["ad_seq"] == 1
    assert body["user_ad_no"] == "2_1"
    assert body["ad_code"] == "og"
    assert "owner_id" not in body
