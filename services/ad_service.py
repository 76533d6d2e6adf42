"""
Ad management: create, list, inspect, update and cascading bulk delete,
plus the per-ad visit log listing.

Refs passed by clients are either an ad sequence number (digits) or a
composite ``user_ad_no``; every lookup is scoped to the calling owner.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import ConflictError, NotFoundError, StoreError, ValidationError
from infrastructure.mongo import TransactionRunner
from repositories.ad_repository import AdRef, AdRepository, is_ad_code_conflict
from repositories.visit_log_repository import (
    DailySequenceRepository,
    VisitLogRepository,
)
from schemas.dto.requests.ads import CreateAdRequest
from schemas.dto.responses.ads import LogEntry, LogListResponse, LogPageMeta
from schemas.models.ad import AdDoc, make_user_ad_no
from services.sequence_allocator import AdSequenceAllocator
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

UPDATABLE_FIELDS = ("ad_name", "ad_domain", "ad_code")


class AdService:
    def __init__(
        self,
        ads: AdRepository,
        logs: VisitLogRepository,
        sequences: DailySequenceRepository,
        allocator: AdSequenceAllocator,
        transactions: TransactionRunner,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ads = ads
        self._logs = logs
        self._sequences = sequences
        self._allocator = allocator
        self._transactions = transactions
        self._clock = clock

    async def create_ad(self, owner_id: int, request: CreateAdRequest) -> AdDoc:
        created_at = self._clock()

        def build(ad_seq: int) -> AdDoc:
            return AdDoc(
                owner_id=owner_id,
                ad_seq=ad_seq,
                user_ad_no=make_user_ad_no(owner_id, ad_seq),
                ad_name=request.ad_name,
                ad_domain=request.ad_domain,
                ad_code=request.ad_code or None,
                created_at=created_at,
            )

        try:
            ad = await self._allocator.allocate(owner_id, build)
        except PyMongoError as e:
            log.error(
                "ad_create_failed",
                owner_id=owner_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreError("failed to create ad") from e

        log.info("ad_created", owner_id=owner_id, ad_seq=ad.ad_seq, user_ad_no=ad.user_ad_no)
        return ad

    async def list_ads(self, owner_id: int) -> list[AdDoc]:
        return await self._ads.list_for_owner(owner_id)

    async def get_ad(self, owner_id: int, ref: AdRef) -> AdDoc:
        ad = await self._ads.find_for_owner(owner_id, ref)
        if ad is None:
            raise NotFoundError("Not found")
        return ad

    async def update_ad(self, owner_id: int, ref: AdRef, fields: dict[str, Any]) -> int:
        updates = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not updates:
            raise ValidationError("No fields to update")
        if "ad_code" in updates:
            code = "" if updates["ad_code"] is None else str(updates["ad_code"]).strip()
            updates["ad_code"] = code or None

        try:
            updated = await self._ads.update_fields(owner_id, ref, updates)
        except DuplicateKeyError as e:
            if is_ad_code_conflict(e):
                raise ConflictError("adCode is already in use") from e
            raise ConflictError("Conflicting update. Please try again.") from e
        log.info("ad_updated", owner_id=owner_id, ref=str(ref), fields=sorted(updates))
        return updated

    async def delete_ads(
        self, owner_id: int, seqs: list[int], user_ad_nos: list[str]
    ) -> int:
        """Delete the caller's ads and their logs and counters atomically."""
        if not seqs and not user_ad_nos:
            return 0

        async def cascade(session) -> int:
            owned = await self._ads.resolve_owned(
                owner_id, seqs, user_ad_nos, session=session
            )
            if not owned:
                return 0
            await self._logs.delete_for_ads(owned, session=session)
            await self._sequences.delete_for_ads(owned, session=session)
            return await self._ads.delete_many(owner_id, owned, session=session)

        try:
            deleted = await self._transactions.run(cascade)
        except PyMongoError as e:
            log.error(
                "ad_bulk_delete_failed",
                owner_id=owner_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreError("failed to delete ads") from e

        log.info("ads_deleted", owner_id=owner_id, deleted=deleted)
        return deleted

    async def list_logs(
        self, owner_id: int, user_ad_no: str, limit: int, offset: int
    ) -> LogListResponse:
        ad = await self._ads.find_for_owner(owner_id, user_ad_no)
        if ad is None:
            raise NotFoundError("Ad not found")

        docs = await self._logs.list_for_ad(ad.user_ad_no, limit, offset)
        total = await self._logs.count_for_ad(ad.user_ad_no)
        return LogListResponse(
            user_ad_no=ad.user_ad_no,
            logs=[LogEntry.from_doc(doc) for doc in docs],
            meta=LogPageMeta(
                limit=limit,
                offset=offset,
                total=total,
                has_more=offset + len(docs) < total,
            ),
        )
