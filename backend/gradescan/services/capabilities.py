"""
External capabilities the pipeline depends on.

Concrete vendor adapters live in utils/vision_ocr_service.py, llm.py,
mark_detection.py and stores.py; tests substitute in-memory fakes.
"""

from typing import List, Optional, Protocol

from gradescan.models import CacheEntry, DetectionResult, OcrResult, SemanticParse


class OcrCapability(Protocol):
    async def extract_text(self, image_bytes: bytes) -> OcrResult:
        """Raise on transport/auth errors."""
        ...


class StructureDetectionCapability(Protocol):
    async def detect(self, image_bytes: bytes) -> DetectionResult:
        ...


class SemanticParseCapability(Protocol):
    async def parse(self, text: str) -> SemanticParse:
        ...


class AnswerKeyStore(Protocol):
    async def get_question_numbers(self, exam_id: str) -> List[int]:
        ...

    async def list_exam_ids(self) -> List[str]:
        ...


class PersistentCacheStore(Protocol):
    async def get(self, file_hash: str) -> Optional[CacheEntry]:
        ...

    async def put(self, file_hash: str, entry: CacheEntry) -> None:
        ...

    async def touch(self, file_hash: str, access_count: int, last_accessed_at: float) -> None:
        ...

    async def delete(self, file_hash: str) -> None:
        ...

    async def delete_expired(self, now: float) -> int:
        ...
