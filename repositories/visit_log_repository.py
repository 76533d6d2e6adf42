"""
Repository for the `ad-logs` and `ad-log-sequences` collections.

Visit logs are keyed by their log key (_id). The daily counter collection
holds one document per (created_day, user_ad_no); ``next_value`` bumps it
with a single upserting find_one_and_update, which MongoDB applies
atomically per document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.visit_log import DailySequenceDoc, VisitLogDoc


class VisitLogRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("user_ad_no", ASCENDING), ("created_at", DESCENDING)]
        )

    async def insert(
        self, doc: VisitLogDoc, session: Optional[AsyncClientSession] = None
    ) -> None:
        await self._col.insert_one(doc.to_mongo(), session=session)

    async def count_by_bucket(
        self,
        user_ad_nos: list[str],
        start: datetime,
        end: datetime,
        bucket_expr: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Group visits in ``[start, end]`` by (ad, bucket label) and count.

        Returns rows shaped ``{"user_ad_no": str, "bucket": str, "count": int}``.
        """
        pipeline = [
            {
                "$match": {
                    "user_ad_no": {"$in": user_ad_nos},
                    "created_at": {"$gte": start, "$lte": end},
                }
            },
            {
                "$group": {
                    "_id": {"user_ad_no": "$user_ad_no", "bucket": bucket_expr},
                    "count": {"$sum": 1},
                }
            },
            {"$sort": {"_id.bucket": 1}},
            {
                "$project": {
                    "_id": 0,
                    "user_ad_no": "$_id.user_ad_no",
                    "bucket": "$_id.bucket",
                    "count": 1,
                }
            },
        ]
        cursor = await self._col.aggregate(pipeline)
        return [row async for row in cursor]

    async def list_for_ad(
        self, user_ad_no: str, limit: int, offset: int
    ) -> list[VisitLogDoc]:
        cursor = (
            self._col.find({"user_ad_no": user_ad_no})
            .sort("created_at", DESCENDING)
            .skip(offset)
            .limit(limit)
        )
        return [VisitLogDoc.from_mongo(doc) async for doc in cursor]

    async def count_for_ad(self, user_ad_no: str) -> int:
        return await self._col.count_documents({"user_ad_no": user_ad_no})

    async def delete_for_ads(
        self, user_ad_nos: list[str], session: Optional[AsyncClientSession] = None
    ) -> int:
        result = await self._col.delete_many(
            {"user_ad_no": {"$in": user_ad_nos}}, session=session
        )
        return result.deleted_count


class DailySequenceRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("created_day", ASCENDING), ("user_ad_no", ASCENDING)], unique=True
        )

    async def next_value(
        self,
        created_day: str,
        user_ad_no: str,
        session: Optional[AsyncClientSession] = None,
    ) -> int:
        """Issue the next counter value for (day, ad): 1 on first use, then +1."""
        doc = await self._col.find_one_and_update(
            {"created_day": created_day, "user_ad_no": user_ad_no},
            {"$inc": {"next_seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return DailySequenceDoc.model_validate(doc).next_seq

    async def delete_for_ads(
        self, user_ad_nos: list[str], session: Optional[AsyncClientSession] = None
    ) -> int:
        result = await self._col.delete_many(
            {"user_ad_no": {"$in": user_ad_nos}}, session=session
        )
        return result.deleted_count
