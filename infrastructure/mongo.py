"""Async MongoDB client factory and transaction runner."""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def create_mongo_client(mongodb_uri: str) -> AsyncMongoClient:
    # tz_aware so datetimes read back compare cleanly with aware values
    client: AsyncMongoClient = AsyncMongoClient(mongodb_uri, tz_aware=True)
    log.info("mongo_client_created", host=mongodb_uri.split("@")[-1])  # mask credentials
    return client


class TransactionRunner:
    """Runs a callback inside a client-session transaction.

    ``with_transaction`` commits on return, aborts on exception, and retries
    the whole callback on transient errors such as write conflicts. Other
    errors (DuplicateKeyError included) propagate after the abort.
    """

    def __init__(self, client: AsyncMongoClient) -> None:
        self._client = client

    async def run(self, callback: Callable[[AsyncClientSession], Awaitable[T]]) -> T:
        async with self._client.start_session() as session:
            return await session.with_transaction(callback)
