"""
Identifier allocation for ads and visit logs.

Ad sequences
    The smallest positive integer not yet used by the owner. Allocation
    holds the owner lock, reads the owner's sequences in ascending order
    inside a transaction, and inserts the ad. A duplicate sequence on insert
    bumps the candidate by one and retries, up to ``attempts`` times.

Log sequences
    A per (local day, ad) counter bumped with an atomic upsert. The counter
    value becomes the 4-digit suffix of the visit's log key.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from pymongo.errors import DuplicateKeyError

from errors import AllocationExhaustedError, ConflictError
from infrastructure.mongo import TransactionRunner
from infrastructure.owner_lock import OwnerLock
from repositories.ad_repository import AdRepository, is_ad_code_conflict
from repositories.visit_log_repository import DailySequenceRepository
from schemas.models.ad import AdDoc
from schemas.models.visit_log import make_log_key
from shared.datetime_utils import LocalDay
from shared.logging import get_logger
from shared.retry import with_retry

log = get_logger(__name__)


def is_duplicate_key(error: BaseException) -> bool:
    return isinstance(error, DuplicateKeyError)


def is_sequence_conflict(error: BaseException) -> bool:
    return isinstance(error, DuplicateKeyError) and not is_ad_code_conflict(error)


def next_free_sequence(existing: Iterable[int]) -> int:
    """Smallest positive integer missing from *existing* (sorted ascending).

    >>> next_free_sequence([1, 2, 4])
    3
    """
    candidate = 1
    for value in existing:
        if value < candidate:
            # duplicates and non-positive values
            continue
        if value == candidate:
            candidate += 1
        else:
            break
    return candidate


class AdSequenceAllocator:
    def __init__(
        self,
        ads: AdRepository,
        lock: OwnerLock,
        transactions: TransactionRunner,
        attempts: int = 5,
    ) -> None:
        self._ads = ads
        self._lock = lock
        self._transactions = transactions
        self.attempts = attempts

    async def allocate(self, owner_id: int, build: Callable[[int], AdDoc]) -> AdDoc:
        """Insert ``build(ad_seq)`` under the first free sequence for *owner_id*.

        Raises:
            LockTimeoutError: the owner lock was not acquired in time.
            AllocationExhaustedError: every attempt hit a duplicate sequence.
            ConflictError: the ad code belongs to another ad.
        """
        async with self._lock.hold(owner_id):
            candidate: Optional[int] = None

            async def insert_candidate(session) -> AdDoc:
                nonlocal candidate
                if candidate is None:
                    existing = await self._ads.list_sequences(owner_id, session=session)
                    candidate = next_free_sequence(existing)
                return await self._ads.insert(build(candidate), session=session)

            async def attempt(_: int) -> AdDoc:
                nonlocal candidate
                try:
                    return await self._transactions.run(insert_candidate)
                except DuplicateKeyError as e:
                    if is_ad_code_conflict(e):
                        raise ConflictError("adCode is already in use") from e
                    log.warning("ad_seq_conflict", owner_id=owner_id, ad_seq=candidate)
                    candidate += 1
                    raise

            try:
                return await with_retry(
                    attempt,
                    attempts=self.attempts,
                    is_retryable=is_sequence_conflict,
                    label="ad_seq_insert",
                )
            except DuplicateKeyError as e:
                log.error(
                    "ad_seq_allocation_exhausted",
                    owner_id=owner_id,
                    attempts=self.attempts,
                )
                raise AllocationExhaustedError(
                    "Could not allocate an ad number. Please try again."
                ) from e


class LogKeyAllocator:
    def __init__(self, sequences: DailySequenceRepository) -> None:
        self._sequences = sequences

    async def next_log_key(self, day: LocalDay, ad_code: str, user_ad_no: str) -> str:
        seq = await self._sequences.next_value(day.iso, user_ad_no)
        return make_log_key(day.compact, ad_code, seq)
