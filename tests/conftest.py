"""Shared fakes for the GradeScan test suite. Nothing here touches the network."""

import asyncio
from typing import Dict, List, Optional

import pytest

from gradescan.models import (
    AnswerKeyEntry,
    CacheEntry,
    DetectionResult,
    FileInput,
    MarkDetection,
    OcrResult,
    SemanticParse,
)


class FakeClock:
    """Callable clock returning a settable time in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeOcr:
    """OCR capability keyed by the raw page bytes."""

    def __init__(self, pages: Optional[Dict[bytes, str]] = None, failures: Optional[Dict[bytes, Exception]] = None,
                 delay: float = 0):
        self.pages = pages or {}
        self.failures = failures or {}
        self.delay = delay
        self.calls: List[bytes] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract_text(self, image_bytes: bytes) -> OcrResult:
        self.calls.append(image_bytes)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if image_bytes in self.failures:
                raise self.failures[image_bytes]
            return OcrResult(text=self.pages.get(image_bytes, ""), confidence=0.95)
        finally:
            self.in_flight -= 1


class FakeDetector:
    def __init__(self, detections: Optional[List[MarkDetection]] = None, error: Optional[Exception] = None):
        self.detections = detections or []
        self.error = error
        self.calls = 0

    async def detect(self, image_bytes: bytes) -> DetectionResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return DetectionResult(mark_count=len(self.detections), detections=self.detections)


class FakeParser:
    def __init__(self, parse: Optional[SemanticParse] = None, error: Optional[Exception] = None):
        self.result = parse or SemanticParse()
        self.error = error
        self.calls: List[str] = []

    async def parse(self, text: str) -> SemanticParse:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result


class InMemoryCacheStore:
    """PersistentCacheStore that copies entries in and out, like a real database."""

    def __init__(self, fail: bool = False):
        self.entries: Dict[str, CacheEntry] = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise ConnectionError("cache store offline")

    async def get(self, file_hash):
        self._check()
        entry = self.entries.get(file_hash)
        return entry.model_copy(deep=True) if entry else None

    async def put(self, file_hash, entry):
        self._check()
        self.entries[file_hash] = entry.model_copy(deep=True)

    async def touch(self, file_hash, access_count, last_accessed_at):
        self._check()
        entry = self.entries.get(file_hash)
        if entry:
            entry.access_count = access_count
            entry.last_accessed_at = last_accessed_at

    async def delete(self, file_hash):
        self._check()
        self.entries.pop(file_hash, None)

    async def delete_expired(self, now):
        self._check()
        expired = [h for h, e in self.entries.items() if e.expires_at <= now]
        for file_hash in expired:
            del self.entries[file_hash]
        return len(expired)


class InMemoryAnswerKeyStore:
    """AnswerKeyStore built from answer key rows."""

    def __init__(self, entries: List[AnswerKeyEntry]):
        self.entries = list(entries)
        self.calls: List[str] = []
        self.fail = False

    async def get_question_numbers(self, exam_id):
        self.calls.append(exam_id)
        if self.fail:
            raise ConnectionError("answer key store offline")
        return sorted({e.question_number for e in self.entries if e.exam_id == exam_id})

    async def list_exam_ids(self):
        if self.fail:
            raise ConnectionError("answer key store offline")
        return sorted({e.exam_id for e in self.entries})


def make_answer_key(exam_id: str, count: int) -> List[AnswerKeyEntry]:
    return [
        AnswerKeyEntry(exam_id=exam_id, question_number=n, correct_answer="ABCD"[n % 4])
        for n in range(1, count + 1)
    ]


def page(name: str, content: bytes) -> FileInput:
    return FileInput(file_name=name, raw_bytes=content)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def answer_key_store():
    # MATH-101 has ten questions, SCI-200 has four
    return InMemoryAnswerKeyStore(make_answer_key("MATH-101", 10) + make_answer_key("SCI-200", 4))
