"""
Single-page extraction: OCR -> mark detection -> semantic parsing, each stage
behind its own circuit breaker, with pattern-based exam ID / name fallback.
"""

import asyncio
from typing import Optional

from gradescan.config import logger
from gradescan.errors import ExtractionFailed, ServiceUnavailable, StageOutcome
from gradescan.models import (
    DetectionResult,
    ExtractionResult,
    FileInput,
    OcrResult,
    PageText,
    SemanticParse,
    StructuredData,
)
from gradescan.services.capabilities import (
    OcrCapability,
    SemanticParseCapability,
    StructureDetectionCapability,
)
from gradescan.services.file_processing import prepare_page_image
from gradescan.services.mark_detection import answers_from_detections
from gradescan.services.student_detection import (
    detect_exam_id,
    detect_student_name,
    extract_questions_from_ocr,
    is_valid_name,
)
from gradescan.utils.circuit_breaker import CircuitBreakerRegistry

OCR_SERVICE = "ocr"
DETECTION_SERVICE = "mark_detection"
PARSE_SERVICE = "semantic_parse"

CONFIDENCE_WITH_EXAM_ID = 0.9
CONFIDENCE_WITHOUT_EXAM_ID = 0.6


class DocumentExtractionService:
    """Turns one uploaded page into an ExtractionResult."""

    def __init__(
        self,
        ocr: OcrCapability,
        detector: Optional[StructureDetectionCapability],
        parser: Optional[SemanticParseCapability],
        breakers: Optional[CircuitBreakerRegistry] = None,
    ):
        self.ocr = ocr
        self.detector = detector
        self.parser = parser
        self.breakers = breakers or CircuitBreakerRegistry()

    # ============== STAGES ==============

    async def _run_ocr(self, image_bytes: bytes) -> StageOutcome:
        try:
            result = await self.breakers.get(OCR_SERVICE).call(self.ocr.extract_text, image_bytes)
            return StageOutcome.ok(result)
        except Exception as e:
            return StageOutcome.fatal(e)

    async def _run_detection(self, image_bytes: bytes) -> StageOutcome:
        if self.detector is None:
            return StageOutcome.degraded("detection unavailable: no detector configured")
        try:
            result = await self.breakers.get(DETECTION_SERVICE).call(self.detector.detect, image_bytes)
            return StageOutcome.ok(result)
        except Exception as e:
            return StageOutcome.degraded(f"detection unavailable: {e}")

    async def _run_parse(self, text: str) -> StageOutcome:
        if not text.strip():
            return StageOutcome.ok(SemanticParse())
        if self.parser is None:
            return StageOutcome.degraded("parsing unavailable: no parser configured")
        try:
            result = await self.breakers.get(PARSE_SERVICE).call(self.parser.parse, text)
            return StageOutcome.ok(result)
        except Exception as e:
            return StageOutcome.degraded(f"parsing unavailable: {e}")

    # ============== PIPELINE ==============

    async def extract(self, file: FileInput, conversion_limit: Optional[asyncio.Semaphore] = None) -> ExtractionResult:
        """
        Run the full pipeline for one file.
        Raises ExtractionFailed only when OCR fails or its breaker is open.
        conversion_limit bounds PDF rendering across concurrent calls.
        """
        logger.info(f"Processing individual file: {file.file_name}")
        image_bytes = await prepare_page_image(file.raw_bytes, conversion_limit)

        ocr_outcome = await self._run_ocr(image_bytes)
        if ocr_outcome.is_fatal:
            error = ocr_outcome.error
            if isinstance(error, ServiceUnavailable):
                raise ExtractionFailed(file.file_name, str(error)) from error
            raise ExtractionFailed(file.file_name, f"OCR failed: {error}") from error
        ocr: OcrResult = ocr_outcome.value
        text = ocr.text or ""

        notes = []
        methods = ["ocr"]

        detection_outcome = await self._run_detection(image_bytes)
        detection: Optional[DetectionResult] = None
        if detection_outcome.is_ok:
            detection = detection_outcome.value
            methods.append("mark_detection")
        else:
            logger.warning(f"Mark detection failed for {file.file_name}: {detection_outcome.reason}")
            notes.append(detection_outcome.reason)

        parse_outcome = await self._run_parse(text)
        parsed = SemanticParse()
        if parse_outcome.is_ok:
            parsed = parse_outcome.value
            if text.strip() and self.parser is not None:
                methods.append("semantic_parse")
        else:
            logger.warning(f"Semantic parsing failed for {file.file_name}: {parse_outcome.reason}")
            notes.append(parse_outcome.reason)

        pattern_exam_id = detect_exam_id(text)
        pattern_name = detect_student_name(text)

        exam_id = parsed.exam_id or pattern_exam_id
        if parsed.exam_id and pattern_exam_id and parsed.exam_id != pattern_exam_id:
            logger.info(
                f"Exam ID mismatch for {file.file_name}: parser={parsed.exam_id} pattern={pattern_exam_id}"
            )
        student_name = parsed.student_name if is_valid_name(parsed.student_name) else pattern_name

        questions = parsed.questions or extract_questions_from_ocr(text)
        answers = answers_from_detections(detection.detections) if detection else []

        confidence = CONFIDENCE_WITH_EXAM_ID if pattern_exam_id else CONFIDENCE_WITHOUT_EXAM_ID
        structured = StructuredData(
            pages=[PageText(page_number=1, text=text, confidence=ocr.confidence)],
            questions=questions,
            answers=answers,
            confidence_scores={
                "ocr": ocr.confidence,
                "mark_detection": 0.9 if detection else 0.0,
                "overall": confidence,
            },
        )

        return ExtractionResult(
            file_name=file.file_name,
            extracted_text=text,
            exam_id=exam_id,
            student_name=student_name,
            structured_data=structured,
            confidence=confidence,
            detection_available=detection is not None,
            processing_methods=methods,
            notes=notes,
        )
