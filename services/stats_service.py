"""
Dashboard statistics: per-ad visit counts in calendar buckets.

One aggregation groups the selected ads' visits by (ad, bucket label); the
sparse rows are then spread over a dense, zero-filled label axis generated
from the same calendar rules. Rows whose label is not on the axis are
dropped rather than matched approximately.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Callable, Iterable, Optional

from pymongo.errors import PyMongoError

from errors import StoreError
from infrastructure.cache.dual_cache import DualCache
from repositories.ad_repository import AdRepository
from repositories.visit_log_repository import VisitLogRepository
from schemas.dto.requests.stats import StatsQuery
from schemas.dto.responses.stats import BucketSeries, SeriesEntry
from schemas.models.ad import AdDoc, resolve_display_name
from shared.datetime_utils import local_end_of_day, local_midnight, utcnow
from shared.logging import get_logger, should_sample
from shared.time_bucket_utils import (
    Granularity,
    bucket_label,
    create_mongo_time_bucket_expr,
    floor_to_bucket,
    generate_bucket_labels,
    mongo_timezone_name,
    step_bucket,
)

log = get_logger(__name__)


def align_series(
    labels: list[str],
    targets: list[str],
    rows: Iterable[dict[str, Any]],
    ads_by_no: dict[str, AdDoc],
    granularity: Granularity,
    end: datetime,
    tz: tzinfo,
) -> BucketSeries:
    """Reshape grouped count rows into one label-aligned series per target.

    Fewer than two labels get one empty bucket prepended (the bucket before
    ``end``'s) so a line chart always has two points.
    """
    index = {label: i for i, label in enumerate(labels)}
    counts: dict[str, list[int]] = {target: [0] * len(labels) for target in targets}

    dropped = 0
    for row in rows:
        pos = index.get(str(row.get("bucket")))
        data = counts.get(row.get("user_ad_no"))
        if pos is None or data is None:
            dropped += 1
            continue
        data[pos] += int(row.get("count", 0))
    if dropped:
        log.debug("stats_rows_dropped", dropped=dropped, granularity=granularity.value)

    labels = list(labels)
    if len(labels) < 2:
        previous = step_bucket(floor_to_bucket(end, granularity, tz), granularity, -1)
        labels.insert(0, bucket_label(previous, granularity, tz))
        for data in counts.values():
            data.insert(0, 0)

    series = []
    for user_ad_no, data in counts.items():
        ad = ads_by_no.get(user_ad_no)
        series.append(
            SeriesEntry(
                user_ad_no=user_ad_no,
                ad_seq=ad.ad_seq if ad else None,
                name=resolve_display_name(ad, user_ad_no),
                data=data,
            )
        )
    return BucketSeries(labels=labels, series=series)


class StatsService:
    def __init__(
        self,
        ads: AdRepository,
        logs: VisitLogRepository,
        tz: tzinfo,
        cache: Optional[DualCache] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ads = ads
        self._logs = logs
        self._tz = tz
        self._cache = cache
        self._clock = clock

    async def query_stats(
        self,
        visible_ads: list[AdDoc],
        start: datetime,
        end: datetime,
        granularity: Granularity,
        ad_filter: Optional[str] = None,
    ) -> BucketSeries:
        """Bucketed visit counts for *visible_ads* within ``[start, end]``.

        An empty ad list, or an *ad_filter* outside the visible set, yields
        an empty result rather than an error.
        """
        if not visible_ads:
            return BucketSeries.empty()

        ads_by_no = {ad.user_ad_no: ad for ad in visible_ads}
        targets = list(ads_by_no)
        if ad_filter:
            if ad_filter not in ads_by_no:
                return BucketSeries.empty()
            targets = [ad_filter]

        labels = generate_bucket_labels(start, end, granularity, self._tz)
        bucket_expr = create_mongo_time_bucket_expr(
            granularity, timezone=mongo_timezone_name(self._tz)
        )
        try:
            rows = await self._logs.count_by_bucket(targets, start, end, bucket_expr)
        except PyMongoError as e:
            log.error(
                "stats_aggregation_failed",
                granularity=granularity.value,
                targets=len(targets),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreError("failed to load statistics") from e

        return align_series(labels, targets, rows, ads_by_no, granularity, end, self._tz)

    def window(self, query: StatsQuery) -> tuple[datetime, datetime]:
        """``days`` local days ending today, unless an explicit range was given."""
        if query.parsed_start is not None and query.parsed_end is not None:
            return query.parsed_start, query.parsed_end
        now = self._clock()
        start = local_midnight(now, self._tz, days_back=query.effective_days - 1)
        return start, local_end_of_day(now, self._tz)

    async def dashboard_stats(self, owner_id: int, query: StatsQuery) -> BucketSeries:
        start, end = self.window(query)

        async def compute() -> BucketSeries:
            visible = await self._ads.list_for_owner(owner_id)
            return await self.query_stats(
                visible, start, end, query.granularity, query.ad_filter
            )

        result: Any = None
        if self._cache is not None and query.parsed_start is None:
            cache_key = (
                f"stats:{owner_id}:{query.granularity.value}:"
                f"{query.effective_days}:{query.ad_filter or 'ALL'}:"
                f"{start.date().isoformat()}"
            )
            result = await self._cache.get_or_set(
                cache_key, compute, serializer_fn=lambda s: s.model_dump()
            )

        if result is None:
            result = await compute()
        elif isinstance(result, dict):
            result = BucketSeries.model_validate(result)

        if should_sample("stats_query"):
            log.info(
                "stats_query",
                owner_id=owner_id,
                bucket=query.granularity.value,
                days=query.effective_days,
                labels=len(result.labels),
                series=len(result.series),
            )
        return result
