"""
Request DTO for the dashboard statistics endpoint.

StatsQuery — GET /api/ads/stats  (query parameters)

The window is normally ``days`` local days ending today. An explicit
``start_date``/``end_date`` pair (ISO 8601 or Unix epoch seconds) replaces
it; bounds without a UTC offset are read in the reference timezone,
supplied as the ``tz`` validation context. Sub-hour buckets cap the
window length: 1m → 1 day, 5m → 3 days, 10m → 7 days.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from shared.datetime_utils import parse_datetime
from shared.time_bucket_utils import (
    BUCKET_CONFIGS,
    Granularity,
    clamp_days,
    parse_granularity,
)

ALL_ADS = "ALL"


class StatsQuery(BaseModel):
    """Query parameters for GET /api/ads/stats."""

    model_config = ConfigDict(populate_by_name=True)

    days: int = 7
    bucket: str = "1h"
    # user_ad_no of a single ad; empty or "ALL" selects every visible ad
    ad: Optional[str] = None

    start_date: Optional[str] = None
    end_date: Optional[str] = None

    # --- Parsed/validated results (excluded from serialization) ---
    granularity: Granularity = Field(default=Granularity.HOURLY, exclude=True)
    effective_days: int = Field(default=7, exclude=True)
    parsed_start: Optional[datetime] = Field(default=None, exclude=True)
    parsed_end: Optional[datetime] = Field(default=None, exclude=True)

    @field_validator("days", mode="before")
    @classmethod
    def _coerce_days(cls, v: Any) -> int:
        if v is None or v == "":
            return 7
        try:
            return max(1, int(float(v)))
        except (TypeError, ValueError, OverflowError):
            raise ValueError("days must be a number") from None

    @field_validator("ad", mode="after")
    @classmethod
    def _normalise_ad(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v or v.upper() == ALL_ADS:
            return None
        return v

    @model_validator(mode="after")
    def _parse_window(self, info: ValidationInfo) -> "StatsQuery":
        self.granularity = parse_granularity(self.bucket or "1h")
        self.effective_days = clamp_days(self.days, self.granularity)

        if self.start_date is None and self.end_date is None:
            return self

        tz = (info.context or {}).get("tz") or timezone.utc
        start = parse_datetime(self.start_date, tz)
        end = parse_datetime(self.end_date, tz)
        if start is None or end is None:
            raise ValueError("start_date and end_date must both be valid datetimes")
        if start > end:
            raise ValueError("start_date must not be after end_date")

        cap = BUCKET_CONFIGS[self.granularity].max_days
        if cap is not None and end - start > timedelta(days=cap):
            raise ValueError(
                f"range too long for {self.granularity.value} buckets (max {cap} days)"
            )

        self.parsed_start = start
        self.parsed_end = end
        return self

    @property
    def ad_filter(self) -> Optional[str]:
        return self.ad
