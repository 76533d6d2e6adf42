"""
GET /api/ads/stats — bucketed visit counts for the caller's ads.

## Query Parameters
- **days** (int, default 7): local days ending today; capped at 1 / 3 / 7
  for 1m / 5m / 10m buckets
- **bucket** (string, default "1h"): one of 1m, 5m, 10m, 30m, 1h, 1d, 1w, 1mo
- **ad** (string): a user_ad_no; empty or "ALL" selects every ad
- **start_date** / **end_date** (ISO 8601 or epoch seconds): explicit
  window, replaces ``days`` when both are given

## Response
```json
{
  "labels": ["2024-01-01 00:00", "2024-01-01 00:05"],
  "series": [{"user_ad_no": "2_1", "ad_seq": 1, "name": "banner", "data": [1, 0]}]
}
```
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Query

from dependencies import get_current_owner, get_reference_tz, get_stats_service
from errors import ValidationError
from schemas.dto.requests.stats import StatsQuery
from schemas.dto.responses.stats import BucketSeries
from services.stats_service import StatsService

router = APIRouter(tags=["stats"])


def _first_error(exc: pydantic.ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid query"
    message = str(errors[0].get("msg", "invalid query"))
    return message.removeprefix("Value error, ")


@router.get("/ads/stats", response_model=BucketSeries)
async def ads_stats(
    days: Optional[str] = Query(default=None),
    bucket: str = Query(default="1h"),
    ad: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    owner_id: int = Depends(get_current_owner),
    service: StatsService = Depends(get_stats_service),
    tz: tzinfo = Depends(get_reference_tz),
) -> BucketSeries:
    try:
        query = StatsQuery.model_validate(
            {
                "days": days,
                "bucket": bucket,
                "ad": ad,
                "start_date": start_date,
                "end_date": end_date,
            },
            context={"tz": tz},
        )
    except pydantic.ValidationError as exc:
        raise ValidationError(_first_error(exc)) from exc

    return await service.dashboard_stats(owner_id, query)
