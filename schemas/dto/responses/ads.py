"""
Response DTOs for ad management and visit-log listing.

AdResponse          — POST /api/ads (201), GET /api/ads/{ref}, GET /api/ads/list items
UpdateAdResponse    — PUT /api/ads/{ref}
BulkDeleteResponse  — POST /api/ads/bulk-delete
LogListResponse     — GET /api/ads/logs
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.ad import AdDoc
from schemas.models.visit_log import VisitLogDoc


class AdResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ad_seq: int
    user_ad_no: str
    ad_name: str
    ad_domain: str
    ad_code: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: AdDoc) -> "AdResponse":
        return cls(
            ad_seq=doc.ad_seq,
            user_ad_no=doc.user_ad_no,
            ad_name=doc.ad_name,
            ad_domain=doc.ad_domain,
            ad_code=doc.ad_code,
            created_at=doc.created_at,
        )


class UpdateAdResponse(BaseModel):
    updated: int


class BulkDeleteResponse(BaseModel):
    deleted: int


class LogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    log_key: str
    user_ad_no: str
    raw_ip: str
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: VisitLogDoc) -> "LogEntry":
        return cls(
            log_key=doc.log_key,
            user_ad_no=doc.user_ad_no,
            raw_ip=doc.raw_ip,
            created_at=doc.created_at,
        )


class LogPageMeta(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class LogListResponse(BaseModel):
    user_ad_no: str
    logs: list[LogEntry]
    meta: LogPageMeta
