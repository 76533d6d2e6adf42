"""
Repository layer: one class per MongoDB collection.

``build_repositories(db)`` wires every repository to its collection and
``ensure_indexes(repos)`` is awaited once from the app lifespan.
"""

from __future__ import annotations

from dataclasses import dataclass

from pymongo.asynchronous.database import AsyncDatabase

from repositories.ad_repository import AdRepository
from repositories.lock_repository import LockRepository
from repositories.visit_log_repository import (
    DailySequenceRepository,
    VisitLogRepository,
)

ADS_COLLECTION = "ads"
LOGS_COLLECTION = "ad-logs"
SEQUENCES_COLLECTION = "ad-log-sequences"
LOCKS_COLLECTION = "ad-owner-locks"


@dataclass
class Repositories:
    ads: AdRepository
    logs: VisitLogRepository
    sequences: DailySequenceRepository
    locks: LockRepository


def build_repositories(db: AsyncDatabase) -> Repositories:
    return Repositories(
        ads=AdRepository(db[ADS_COLLECTION]),
        logs=VisitLogRepository(db[LOGS_COLLECTION]),
        sequences=DailySequenceRepository(db[SEQUENCES_COLLECTION]),
        locks=LockRepository(db[LOCKS_COLLECTION]),
    )


async def ensure_indexes(repos: Repositories) -> None:
    await repos.ads.ensure_indexes()
    await repos.logs.ensure_indexes()
    await repos.sequences.ensure_indexes()
    await repos.locks.ensure_indexes()


__all__ = [
    "AdRepository",
    "DailySequenceRepository",
    "LockRepository",
    "Repositories",
    "VisitLogRepository",
    "build_repositories",
    "ensure_indexes",
]
