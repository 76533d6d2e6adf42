"""
Response DTO for the statistics endpoint.

BucketSeries — GET /api/ads/stats  (200)

``labels`` is the x-axis; each entry of ``series`` carries one count per
label, index-aligned.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class SeriesEntry(BaseModel):
    """One ad's counts, aligned with BucketSeries.labels."""

    model_config = ConfigDict(populate_by_name=True)

    user_ad_no: str
    ad_seq: Optional[int] = None
    name: str
    data: list[int]


class BucketSeries(BaseModel):
    """Response body for GET /api/ads/stats."""

    model_config = ConfigDict(populate_by_name=True)

    labels: list[str]
    series: list[SeriesEntry]

    @classmethod
    def empty(cls) -> "BucketSeries":
        return cls(labels=[], series=[])
