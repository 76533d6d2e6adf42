"""
Service wiring.

``build_services`` assembles repositories, the owner lock, the transaction
runner and the stats cache into the services the API layer depends on.
The app lifespan stores the result on ``app.state.services``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from infrastructure.cache.dual_cache import DualCache
from infrastructure.mongo import TransactionRunner
from infrastructure.owner_lock import OwnerLock
from repositories import Repositories, build_repositories
from services.ad_service import AdService
from services.sequence_allocator import AdSequenceAllocator, LogKeyAllocator
from services.stats_service import StatsService
from services.tracking_service import TrackingService


@dataclass
class Services:
    repositories: Repositories
    ads: AdService
    stats: StatsService
    tracking: TrackingService


def build_services(
    settings: AppSettings,
    mongo_client: AsyncMongoClient,
    redis_client: Optional[aioredis.Redis] = None,
) -> Services:
    tracking_settings = settings.tracking
    tz = tracking_settings.tz

    repos = build_repositories(mongo_client[settings.db.db_name])
    transactions = TransactionRunner(mongo_client)
    owner_lock = OwnerLock(
        repos.locks,
        timeout_seconds=tracking_settings.owner_lock_timeout_seconds,
        ttl_seconds=tracking_settings.owner_lock_ttl_seconds,
        poll_seconds=tracking_settings.owner_lock_poll_seconds,
    )
    allocator = AdSequenceAllocator(
        repos.ads,
        owner_lock,
        transactions,
        attempts=tracking_settings.ad_seq_attempts,
    )

    stats_cache = None
    if redis_client is not None:
        stats_cache = DualCache(
            redis_client,
            primary_ttl=settings.redis.stats_cache_ttl_seconds,
            stale_ttl=settings.redis.stats_cache_stale_ttl_seconds,
        )

    return Services(
        repositories=repos,
        ads=AdService(
            repos.ads, repos.logs, repos.sequences, allocator, transactions
        ),
        stats=StatsService(repos.ads, repos.logs, tz, cache=stats_cache),
        tracking=TrackingService(
            repos.ads,
            repos.logs,
            LogKeyAllocator(repos.sequences),
            tz,
            attempts=tracking_settings.log_seq_attempts,
        ),
    )
