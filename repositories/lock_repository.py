"""
Repository for the `ad-owner-locks` collection.

A lock is a document whose _id is the lock name. Inserting it acquires the
lock; the unique _id makes a second insert fail. Each holder writes a random
token so only the holder can release. ``expires_at`` bounds how long a
crashed holder can block others: an expired lock can be taken over, and a
TTL index removes leftovers.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from shared.datetime_utils import utcnow


class LockRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)

    async def try_acquire(self, name: str, token: str, ttl_seconds: int) -> bool:
        now = utcnow()
        expires_at: datetime = now + timedelta(seconds=ttl_seconds)
        try:
            await self._col.insert_one(
                {"_id": name, "token": token, "expires_at": expires_at}
            )
            return True
        except DuplicateKeyError:
            pass

        # Holder died without releasing: take over once its lease ran out.
        result = await self._col.update_one(
            {"_id": name, "expires_at": {"$lt": now}},
            {"$set": {"token": token, "expires_at": expires_at}},
        )
        return result.modified_count == 1

    async def release(self, name: str, token: str) -> bool:
        result = await self._col.delete_one({"_id": name, "token": token})
        return result.deleted_count == 1
