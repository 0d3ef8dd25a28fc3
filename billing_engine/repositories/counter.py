import asyncio
import logging
from typing import Dict, Protocol
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from billing_engine.exceptions import StoreUnavailable
from billing_engine.models.counter import Counter
from billing_engine.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

class SequenceStore(Protocol):
    async def next_sequence(self, sequence_id: str) -> int:
        ...

class CounterRepository(BaseRepository[Counter]):
    """
    Durable per-bucket counters. One document per bucket id, created lazily.
    """

    async def next_sequence(self, sequence_id: str) -> int:
        """
        Atomically increment the bucket and return the post-increment value.
        The first call for an unseen bucket returns 1.
        """
        try:
            doc = await self._increment(sequence_id)
        except DuplicateKeyError:
            # Two first-time upserts raced on the same _id; the row exists now
            logger.debug(f"Upsert race on counter {sequence_id}, retrying increment")
            try:
                doc = await self._increment(sequence_id)
            except PyMongoError as e:
                raise StoreUnavailable(f"Counter store unavailable for '{sequence_id}': {e}") from e
        except PyMongoError as e:
            raise StoreUnavailable(f"Counter store unavailable for '{sequence_id}': {e}") from e

        if not doc:
            raise StoreUnavailable(f"Counter store returned no document for '{sequence_id}'")
        return int(doc["sequence"])

    async def _increment(self, sequence_id: str):
        return await self.collection.find_one_and_update(
            {"_id": sequence_id},
            {"$inc": {"sequence": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def current(self, sequence_id: str) -> int:
        """Last value handed out for a bucket, 0 if it was never used."""
        try:
            doc = await self.collection.find_one({"_id": sequence_id})
        except PyMongoError as e:
            raise StoreUnavailable(f"Counter store unavailable for '{sequence_id}': {e}") from e
        return int(doc["sequence"]) if doc else 0

class InMemoryCounterStore:
    """
    Process-local counters for tests and single-process development.
    Not shared across workers.
    """

    def __init__(self):
        self._values: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def next_sequence(self, sequence_id: str) -> int:
        async with self._lock:
            value = self._values.get(sequence_id, 0) + 1
            self._values[sequence_id] = value
            return value

    async def current(self, sequence_id: str) -> int:
        return self._values.get(sequence_id, 0)
