"""
Repository for the `ads` collection.

All methods are async (pymongo AsyncMongoClient). Methods that take part in
a multi-document transaction accept an optional ``session``. PyMongo errors,
DuplicateKeyError included, propagate to the service layer.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from schemas.models.ad import AdDoc

AdRef = Union[int, str]

AD_CODE_INDEX = "ad_code_unique"


def is_ad_code_conflict(error: BaseException) -> bool:
    """True when *error* is a duplicate on the unique ad_code index."""
    if not isinstance(error, DuplicateKeyError):
        return False
    details = error.details or {}
    if "ad_code" in (details.get("keyPattern") or {}):
        return True
    return AD_CODE_INDEX in str(details.get("errmsg", error))


def ref_filter(owner_id: int, ref: AdRef) -> dict[str, Any]:
    """Digits select by ad_seq, anything else by user_ad_no."""
    if isinstance(ref, int) or str(ref).isdigit():
        return {"owner_id": owner_id, "ad_seq": int(ref)}
    return {"owner_id": owner_id, "user_ad_no": str(ref)}


class AdRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("owner_id", ASCENDING), ("ad_seq", ASCENDING)], unique=True
        )
        await self._col.create_index([("user_ad_no", ASCENDING)], unique=True)
        # tracking codes resolve to exactly one ad; ads without a code are not indexed
        await self._col.create_index(
            [("ad_code", ASCENDING)],
            name=AD_CODE_INDEX,
            unique=True,
            partialFilterExpression={"ad_code": {"$type": "string"}},
        )
        await self._col.create_index(
            [("owner_id", ASCENDING), ("created_at", DESCENDING)]
        )

    async def list_sequences(
        self, owner_id: int, session: Optional[AsyncClientSession] = None
    ) -> list[int]:
        """All ad_seq values of *owner_id*, ascending."""
        cursor = self._col.find(
            {"owner_id": owner_id},
            {"ad_seq": 1, "_id": 0},
            session=session,
        ).sort("ad_seq", ASCENDING)
        return [doc["ad_seq"] async for doc in cursor]

    async def insert(
        self, doc: AdDoc, session: Optional[AsyncClientSession] = None
    ) -> AdDoc:
        result = await self._col.insert_one(doc.to_mongo(), session=session)
        return doc.model_copy(update={"id": result.inserted_id})

    async def find_by_code(self, ad_code: str) -> Optional[AdDoc]:
        doc = await self._col.find_one({"ad_code": ad_code})
        return AdDoc.from_mongo(doc)

    async def list_for_owner(self, owner_id: int) -> list[AdDoc]:
        cursor = self._col.find({"owner_id": owner_id}).sort("created_at", DESCENDING)
        return [AdDoc.from_mongo(doc) async for doc in cursor]

    async def find_for_owner(self, owner_id: int, ref: AdRef) -> Optional[AdDoc]:
        doc = await self._col.find_one(ref_filter(owner_id, ref))
        return AdDoc.from_mongo(doc)

    async def update_fields(
        self, owner_id: int, ref: AdRef, fields: dict[str, Any]
    ) -> int:
        """Apply *fields*; returns the number of matched ads (0 or 1)."""
        result = await self._col.update_one(ref_filter(owner_id, ref), {"$set": fields})
        return result.matched_count

    async def resolve_owned(
        self,
        owner_id: int,
        seqs: list[int],
        user_ad_nos: list[str],
        session: Optional[AsyncClientSession] = None,
    ) -> list[str]:
        """Keep only the refs that belong to *owner_id*, as user_ad_no values."""
        clauses: list[dict[str, Any]] = []
        if seqs:
            clauses.append({"ad_seq": {"$in": seqs}})
        if user_ad_nos:
            clauses.append({"user_ad_no": {"$in": user_ad_nos}})
        if not clauses:
            return []

        cursor = self._col.find(
            {"owner_id": owner_id, "$or": clauses},
            {"user_ad_no": 1, "_id": 0},
            session=session,
        )
        found: list[str] = []
        async for doc in cursor:
            value = doc.get("user_ad_no")
            if value and value not in found:
                found.append(value)
        return found

    async def delete_many(
        self,
        owner_id: int,
        user_ad_nos: list[str],
        session: Optional[AsyncClientSession] = None,
    ) -> int:
        result = await self._col.delete_many(
            {"owner_id": owner_id, "user_ad_no": {"$in": user_ad_nos}},
            session=session,
        )
        return result.deleted_count
