"""
Ad management endpoints. All routes require an authenticated owner.

GET  /api/ads/list         — caller's ads, newest first
GET  /api/ads/logs         — paginated visit logs of one ad
POST /api/ads              — create (allocates the next free ad number)
POST /api/ads/bulk-delete  — delete ads with their logs and counters
GET  /api/ads/{ref}        — one ad by ad_seq or user_ad_no
PUT  /api/ads/{ref}        — update name / domain / code
"""

from __future__ import annotations

import pydantic
from fastapi import APIRouter, Depends, Query

from dependencies import get_ad_service, get_current_owner
from errors import ValidationError
from schemas.dto.requests.ads import (
    DEFAULT_LOG_PAGE,
    BulkDeleteRequest,
    CreateAdRequest,
    LogsQuery,
    UpdateAdRequest,
)
from schemas.dto.responses.ads import (
    AdResponse,
    BulkDeleteResponse,
    LogListResponse,
    UpdateAdResponse,
)
from services.ad_service import AdService

router = APIRouter(tags=["ads"])


def _ref(raw: str) -> str:
    ref = raw.strip()
    if not ref:
        raise ValidationError("Invalid adSeq")
    return ref


@router.get("/ads/list", response_model=list[AdResponse])
async def list_ads(
    owner_id: int = Depends(get_current_owner),
    service: AdService = Depends(get_ad_service),
) -> list[AdResponse]:
    return [AdResponse.from_doc(ad) for ad in await service.list_ads(owner_id)]


@router.get("/ads/logs", response_model=LogListResponse)
async def list_ad_logs(
    user_ad_no: str = Query(default="", alias="userAdNo"),
    limit: str = Query(default=str(DEFAULT_LOG_PAGE)),
    offset: str = Query(default="0"),
    owner_id: int = Depends(get_current_owner),
    service: AdService = Depends(get_ad_service),
) -> LogListResponse:
    try:
        query = LogsQuery(user_ad_no=user_ad_no, limit=limit, offset=offset)
    except pydantic.ValidationError as exc:
        raise ValidationError("userAdNo is required", field="userAdNo") from exc
    return await service.list_logs(owner_id, query.user_ad_no, query.limit, query.offset)


@router.post("/ads", status_code=201, response_model=AdResponse)
async def create_ad(
    payload: CreateAdRequest,
    owner_id: int = Depends(get_current_owner),
    service: AdService = Depends(get_ad_service),
) -> AdResponse:
    ad = await service.create_ad(owner_id, payload)
    return AdResponse.from_doc(ad)


@router.post("/ads/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_ads(
    payload: BulkDeleteRequest,
    owner_id: int = Depends(get_current_owner),
    service: AdService = Depends(get_ad_service),
) -> BulkDeleteResponse:
    seqs, user_ad_nos = payload.split_refs()
    deleted = await service.delete_ads(owner_id, seqs, user_ad_nos)
    return BulkDeleteResponse(deleted=deleted)


@router.get("/ads/{ref}", response_model=AdResponse)
async def get_ad(
    ref: str,
    owner_id: int = Depends(get_current_owner),
    service: AdService = Depends(get_ad_service),
) -> AdResponse:
    ad = await service.get_ad(owner_id, _ref(ref))
    return AdResponse.from_doc(ad)


@router.put("/ads/{ref}", response_model=UpdateAdResponse)
async def update_ad(
    ref: str,
    payload: UpdateAdRequest,
    owner_id: int = Depends(get_current_owner),
    service: AdService = Depends(get_ad_service),
) -> UpdateAdResponse:
    updated = await service.update_ad(owner_id, _ref(ref), payload.provided_fields())
    return UpdateAdResponse(updated=updated)
