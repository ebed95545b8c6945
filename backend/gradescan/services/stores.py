"""
MongoDB-backed stores: durable processing cache tier and answer keys.
"""

from typing import List, Optional

from gradescan.config import logger
from gradescan.database import get_db
from gradescan.models import CacheEntry


class MongoCacheStore:
    """PersistentCacheStore over the processing_cache collection."""

    def __init__(self, db=None, collection_name: str = "processing_cache"):
        self._db = db
        self._collection_name = collection_name

    @property
    def collection(self):
        db = self._db if self._db is not None else get_db()
        return db[self._collection_name]

    async def get(self, file_hash: str) -> Optional[CacheEntry]:
        doc = await self.collection.find_one({"file_hash": file_hash}, {"_id": 0})
        if not doc:
            return None
        return CacheEntry.model_validate(doc)

    async def put(self, file_hash: str, entry: CacheEntry) -> None:
        await self.collection.update_one(
            {"file_hash": file_hash},
            {"$set": entry.model_dump()},
            upsert=True
        )

    async def touch(self, file_hash: str, access_count: int, last_accessed_at: float) -> None:
        await self.collection.update_one(
            {"file_hash": file_hash},
            {"$set": {"access_count": access_count, "last_accessed_at": last_accessed_at}}
        )

    async def delete(self, file_hash: str) -> None:
        await self.collection.delete_one({"file_hash": file_hash})

    async def delete_expired(self, now: float) -> int:
        result = await self.collection.delete_many({"expires_at": {"$lte": now}})
        return result.deleted_count


class MongoAnswerKeyStore:
    """AnswerKeyStore over the answer_keys collection (one document per question)."""

    def __init__(self, db=None, collection_name: str = "answer_keys"):
        self._db = db
        self._collection_name = collection_name

    @property
    def collection(self):
        db = self._db if self._db is not None else get_db()
        return db[self._collection_name]

    async def get_question_numbers(self, exam_id: str) -> List[int]:
        docs = await self.collection.find(
            {"exam_id": exam_id}, {"_id": 0, "question_number": 1}
        ).to_list(1000)
        numbers = sorted({int(d["question_number"]) for d in docs if d.get("question_number") is not None})
        logger.info(f"Found {len(numbers)} questions in answer key for exam {exam_id}")
        return numbers

    async def list_exam_ids(self) -> List[str]:
        return sorted(await self.collection.distinct("exam_id"))
