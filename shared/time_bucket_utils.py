"""
Calendar bucketing for visit analytics.

Every function here works on wall-clock time in an explicitly passed
timezone: a day bucket starts at local midnight, a month bucket on the
local 1st, a week bucket on the local Monday. Stepping from one bucket to
the next adds calendar units (minutes, hours, days, months), never a fixed
number of seconds, so a month step always lands on day 1.

The same truncation is expressed twice: in Python (``floor_to_bucket`` /
``bucket_label``) for generating the x-axis, and as a MongoDB expression
(``create_mongo_time_bucket_expr``) for grouping stored visits. The two must
produce byte-identical label strings.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Iterator, Optional


class Granularity(Enum):
    """Supported bucket widths, keyed by their query-string spelling."""

    MINUTE_1 = "1m"
    MINUTE_5 = "5m"
    MINUTE_10 = "10m"
    MINUTE_30 = "30m"
    HOURLY = "1h"
    DAILY = "1d"
    WEEKLY = "1w"
    MONTHLY = "1mo"


class BucketConfig:
    """Configuration for one granularity."""

    def __init__(
        self,
        granularity: Granularity,
        label_format: str,
        mongo_format: str,
        step_minutes: Optional[int],
        max_days: Optional[int] = None,
    ):
        self.granularity = granularity
        self.label_format = label_format
        self.mongo_format = mongo_format
        # None means calendar-month stepping
        self.step_minutes = step_minutes
        # Upper bound on the dashboard window; None is uncapped
        self.max_days = max_days

    @property
    def is_sub_hour(self) -> bool:
        return self.step_minutes is not None and self.step_minutes < 60


BUCKET_CONFIGS = {
    Granularity.MINUTE_1: BucketConfig(
        granularity=Granularity.MINUTE_1,
        label_format="%Y-%m-%d %H:%M",
        mongo_format="%Y-%m-%d %H:%M",
        step_minutes=1,
        max_days=1,
    ),
    Granularity.MINUTE_5: BucketConfig(
        granularity=Granularity.MINUTE_5,
        label_format="%Y-%m-%d %H:%M",
        mongo_format="%Y-%m-%d %H:%M",
        step_minutes=5,
        max_days=3,
    ),
    Granularity.MINUTE_10: BucketConfig(
        granularity=Granularity.MINUTE_10,
        label_format="%Y-%m-%d %H:%M",
        mongo_format="%Y-%m-%d %H:%M",
        step_minutes=10,
        max_days=7,
    ),
    Granularity.MINUTE_30: BucketConfig(
        granularity=Granularity.MINUTE_30,
        label_format="%Y-%m-%d %H:%M",
        mongo_format="%Y-%m-%d %H:%M",
        step_minutes=30,
    ),
    Granularity.HOURLY: BucketConfig(
        granularity=Granularity.HOURLY,
        label_format="%Y-%m-%d %H:00",
        mongo_format="%Y-%m-%d %H:00",
        step_minutes=60,
    ),
    Granularity.DAILY: BucketConfig(
        granularity=Granularity.DAILY,
        label_format="%Y-%m-%d",
        mongo_format="%Y-%m-%d",
        step_minutes=1440,  # 24 * 60
    ),
    Granularity.WEEKLY: BucketConfig(
        granularity=Granularity.WEEKLY,
        label_format="%G-W%V",  # ISO week-year and week number
        mongo_format="%G-W%V",
        step_minutes=10080,  # 7 * 24 * 60
    ),
    Granularity.MONTHLY: BucketConfig(
        granularity=Granularity.MONTHLY,
        label_format="%Y-%m",
        mongo_format="%Y-%m",
        step_minutes=None,
    ),
}


def get_bucket_config(granularity: Granularity) -> BucketConfig:
    """Get the bucket configuration for a given granularity"""
    return BUCKET_CONFIGS[granularity]


def parse_granularity(value: str) -> Granularity:
    """Map a query-string value such as ``"5m"`` to a Granularity.

    Raises:
        ValueError: for unsupported values.
    """
    try:
        return Granularity(str(value).strip())
    except ValueError:
        allowed = ", ".join(g.value for g in Granularity)
        raise ValueError(f"bucket must be one of: {allowed}") from None


def clamp_days(days: int, granularity: Granularity) -> int:
    """Apply the per-granularity range cap to a dashboard window length."""
    cap = BUCKET_CONFIGS[granularity].max_days
    if cap is None:
        return days
    return min(days, cap)


def _to_local(ts: datetime, tz: tzinfo) -> datetime:
    # naive datetimes are UTC, matching what pymongo hands back
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz)


def floor_to_bucket(ts: datetime, granularity: Granularity, tz: tzinfo) -> datetime:
    """Truncate *ts* to the start of its bucket, as an aware datetime in *tz*."""
    local = _to_local(ts, tz)
    config = BUCKET_CONFIGS[granularity]

    if config.is_sub_hour:
        step = config.step_minutes
        return local.replace(
            minute=(local.minute // step) * step, second=0, microsecond=0
        )
    if granularity == Granularity.HOURLY:
        return local.replace(minute=0, second=0, microsecond=0)

    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity == Granularity.DAILY:
        return midnight
    if granularity == Granularity.WEEKLY:
        return midnight - timedelta(days=midnight.weekday())
    return midnight.replace(day=1)


def bucket_label(ts: datetime, granularity: Granularity, tz: tzinfo) -> str:
    """Canonical label of the bucket containing *ts*.

    ``1m``..``30m`` → ``YYYY-MM-DD HH:MM``, ``1h`` → ``YYYY-MM-DD HH:00``,
    ``1d`` → ``YYYY-MM-DD``, ``1w`` → ``YYYY-W##`` (ISO week-year / week),
    ``1mo`` → ``YYYY-MM``.
    """
    boundary = floor_to_bucket(ts, granularity, tz)
    if granularity == Granularity.WEEKLY:
        # isocalendar() applies the Thursday rule, so the year is the ISO year
        iso_year, iso_week, _ = boundary.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return boundary.strftime(BUCKET_CONFIGS[granularity].label_format)


def step_bucket(boundary: datetime, granularity: Granularity, steps: int = 1) -> datetime:
    """Move a bucket boundary by *steps* bucket widths (negative goes back).

    Arithmetic on an aware datetime keeps its tzinfo and shifts wall-clock
    fields, which is what calendar bucketing needs.
    """
    config = BUCKET_CONFIGS[granularity]
    if config.step_minutes is not None:
        return boundary + timedelta(minutes=config.step_minutes * steps)

    month_index = boundary.year * 12 + (boundary.month - 1) + steps
    year, month = divmod(month_index, 12)
    return boundary.replace(year=year, month=month + 1, day=1)


class LabelSeries:
    """Every bucket label from ``floor(start)`` through ``floor(end)``.

    Iterating is lazy and may be repeated; each iteration starts over.
    """

    def __init__(
        self, start: datetime, end: datetime, granularity: Granularity, tz: tzinfo
    ):
        self.granularity = granularity
        self.tz = tz
        self.first = floor_to_bucket(start, granularity, tz)
        self.last = floor_to_bucket(end, granularity, tz)

    def boundaries(self) -> Iterator[datetime]:
        current = self.first
        while current <= self.last:
            yield current
            current = step_bucket(current, self.granularity)

    def __iter__(self) -> Iterator[str]:
        for boundary in self.boundaries():
            yield bucket_label(boundary, self.granularity, self.tz)


def generate_bucket_labels(
    start: datetime, end: datetime, granularity: Granularity, tz: tzinfo
) -> list[str]:
    """Materialised ``LabelSeries``."""
    return list(LabelSeries(start, end, granularity, tz))


def mongo_timezone_name(tz: tzinfo) -> str:
    """IANA name for ZoneInfo zones, ``+HH:MM`` for fixed offsets."""
    key = getattr(tz, "key", None)
    if key:
        return key
    offset = datetime.now(tz).utcoffset() or timedelta(0)
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def create_mongo_time_bucket_expr(
    granularity: Granularity,
    created_at_field: str = "created_at",
    timezone: str = "Asia/Seoul",
) -> Dict[str, Any]:
    """
    Build the MongoDB expression that maps a stored timestamp to its label.

    Sub-hour buckets above one minute need the minute rounded down to the
    bucket width before formatting, so their parts are extracted in the
    target timezone, the minute floored, and the date rebuilt.

    Args:
        granularity: Bucket width to group by
        created_at_field: Name of the datetime field in the collection
        timezone: IANA timezone the labels are expressed in

    Returns:
        Dict usable as a ``$group`` ``_id`` component
    """
    config = BUCKET_CONFIGS[granularity]
    field = f"${created_at_field}"

    if config.is_sub_hour and config.step_minutes > 1:
        step = config.step_minutes

        def part(operator: str) -> Dict[str, Any]:
            return {operator: {"date": field, "timezone": timezone}}

        return {
            "$dateToString": {
                "format": config.mongo_format,
                "date": {
                    "$dateFromParts": {
                        "year": part("$year"),
                        "month": part("$month"),
                        "day": part("$dayOfMonth"),
                        "hour": part("$hour"),
                        "minute": {
                            "$multiply": [
                                {"$floor": {"$divide": [part("$minute"), step]}},
                                step,
                            ]
                        },
                        "timezone": timezone,
                    }
                },
                "timezone": timezone,
            }
        }

    return {
        "$dateToString": {
            "format": config.mongo_format,
            "date": field,
            "timezone": timezone,
        }
    }
