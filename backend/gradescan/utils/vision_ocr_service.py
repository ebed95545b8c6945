"""
Google Cloud Vision OCR service wrapper.
Provides full-page text detection for scanned test pages.
"""

import asyncio
from typing import List, Optional

from gradescan.config import logger
from gradescan.errors import ConfigurationError
from gradescan.models import OcrResult


class VisionOCRService:
    """Wrapper around Google Cloud Vision API for document text detection."""

    def __init__(self, languages: Optional[List[str]] = None):
        self._client = None
        self._available = False
        self._init_attempted = False
        self._languages = languages

    def _init_client(self):
        """Lazily initialize the Vision client."""
        if self._init_attempted:
            return
        self._init_attempted = True
        try:
            from google.cloud import vision
            self._client = vision.ImageAnnotatorClient()
            self._available = True
            logger.info("✅ Google Cloud Vision OCR initialized")
        except Exception as e:
            logger.warning(f"⚠️ Google Cloud Vision not available: {e}")
            self._available = False

    def is_available(self) -> bool:
        self._init_client()
        return self._available

    def _detect(self, image_bytes: bytes) -> OcrResult:
        from google.cloud import vision

        image = vision.Image(content=image_bytes)
        context = None
        if self._languages:
            context = vision.ImageContext(language_hints=self._languages)

        response = self._client.document_text_detection(image=image, image_context=context)
        if response.error.message:
            raise RuntimeError(f"Google Vision API error: {response.error.message}")

        annotation = response.full_text_annotation
        confidences = [page.confidence for page in annotation.pages if page.confidence]
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(text=annotation.text or "", confidence=confidence)

    async def extract_text(self, image_bytes: bytes) -> OcrResult:
        """Run text detection in a worker thread (the Vision client is synchronous)."""
        self._init_client()
        if not self._available:
            raise ConfigurationError("Google Cloud Vision client could not be initialized")
        return await asyncio.to_thread(self._detect, image_bytes)
