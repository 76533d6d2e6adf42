"""
Visit ingest for the tracking pixel.

Resolves the tracking code to its ad, draws the next log key for the
current local day and stores one visit log. A log-key collision (the
counter and the log collection disagree) is retried once with a fresh
counter value; anything still failing surfaces as StoreError.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Callable

from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import NotFoundError, StoreError
from repositories.ad_repository import AdRepository
from repositories.visit_log_repository import VisitLogRepository
from schemas.models.visit_log import VisitLogDoc
from services.sequence_allocator import LogKeyAllocator, is_duplicate_key
from shared.datetime_utils import local_day, utcnow
from shared.logging import get_logger, hash_ip, should_sample
from shared.retry import with_retry

log = get_logger(__name__)


class TrackingService:
    def __init__(
        self,
        ads: AdRepository,
        logs: VisitLogRepository,
        log_keys: LogKeyAllocator,
        tz: tzinfo,
        attempts: int = 2,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ads = ads
        self._logs = logs
        self._log_keys = log_keys
        self._tz = tz
        self.attempts = attempts
        self._clock = clock

    async def ingest_visit(self, ad_code: str, client_ip: str) -> str:
        """Record one visit; returns the stored log key.

        Raises:
            NotFoundError: no ad uses *ad_code*.
            StoreError: the visit could not be stored.
        """
        try:
            ad = await self._ads.find_by_code(ad_code)
        except PyMongoError as e:
            raise StoreError("failed to resolve tracking code") from e
        if ad is None:
            raise NotFoundError("ad not found", field="adCode")

        now = self._clock()
        day = local_day(now, self._tz)

        async def record(_: int) -> str:
            log_key = await self._log_keys.next_log_key(day, ad_code, ad.user_ad_no)
            await self._logs.insert(
                VisitLogDoc(
                    log_key=log_key,
                    user_ad_no=ad.user_ad_no,
                    raw_ip=client_ip,
                    created_at=now,
                )
            )
            return log_key

        try:
            log_key = await with_retry(
                record,
                attempts=self.attempts,
                is_retryable=is_duplicate_key,
                label="visit_log_insert",
            )
        except DuplicateKeyError as e:
            raise StoreError("log key collision persisted after retry") from e
        except PyMongoError as e:
            raise StoreError("failed to record visit") from e

        if should_sample("visit_recorded"):
            log.info(
                "visit_recorded",
                user_ad_no=ad.user_ad_no,
                log_key=log_key,
                ip_hash=hash_ip(client_ip),
            )
        return log_key
