"""Owner-scoped mutual exclusion backed by the lock collection.

Acquisition polls with a bounded wait and raises LockTimeoutError instead of
blocking indefinitely. Release runs on every exit path; a failed release is
logged and never replaces the outcome of the guarded block.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from errors import LockTimeoutError
from repositories.lock_repository import LockRepository
from shared.logging import get_logger

log = get_logger(__name__)


def owner_lock_name(owner_id: int) -> str:
    return f"ads_user_{owner_id}"


class OwnerLock:
    def __init__(
        self,
        repo: LockRepository,
        timeout_seconds: float = 5.0,
        ttl_seconds: int = 30,
        poll_seconds: float = 0.05,
    ) -> None:
        self._repo = repo
        self.timeout_seconds = timeout_seconds
        self.ttl_seconds = ttl_seconds
        self.poll_seconds = poll_seconds

    async def _acquire(self, name: str, token: str) -> None:
        deadline = time.monotonic() + self.timeout_seconds
        while True:
            if await self._repo.try_acquire(name, token, self.ttl_seconds):
                return
            if time.monotonic() >= deadline:
                log.warning("owner_lock_timeout", lock=name, timeout=self.timeout_seconds)
                raise LockTimeoutError(
                    "Another ad is being created for this account. Please retry."
                )
            await asyncio.sleep(self.poll_seconds)

    async def _release(self, name: str, token: str) -> None:
        try:
            released = await self._repo.release(name, token)
        except Exception as e:
            log.error(
                "owner_lock_release_failed",
                lock=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        if not released:
            # lease expired and someone else took it over
            log.warning("owner_lock_lost", lock=name)

    @asynccontextmanager
    async def hold(self, owner_id: int) -> AsyncIterator[None]:
        name = owner_lock_name(owner_id)
        token = secrets.token_hex(16)
        await self._acquire(name, token)
        try:
            yield
        finally:
            await self._release(name, token)
