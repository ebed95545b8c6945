"""
End-to-end grading pipeline: batch extraction -> page grouping -> answer key
validation -> text report. Also builds the default, vendor-backed pipeline
from configuration.
"""

from typing import Dict, List, Optional

from gradescan.config import logger, get_settings, get_version_info, PipelineSettings
from gradescan.errors import ConfigurationError
from gradescan.models import (
    ExtractionResult,
    FileInput,
    PageGroup,
    PipelineReport,
    StudentResultsEntry,
)
from gradescan.services.answer_key_validation import (
    AnswerKeyValidationService,
    generate_validation_report,
)
from gradescan.services.batch import BatchExtractionCoordinator, ProgressCallback
from gradescan.services.cache import ContentAddressedCache
from gradescan.services.extraction import DocumentExtractionService
from gradescan.services.file_processing import expand_uploads
from gradescan.services.page_detection import INFERRED, MultiPageDetectionService
from gradescan.services.student_detection import resolve_exam_id
from gradescan.utils.circuit_breaker import CircuitBreakerRegistry


def merge_group_questions(group: PageGroup, results_by_file: Dict[str, ExtractionResult]) -> List[dict]:
    """Questions across a group's pages in page order, first occurrence of each number wins."""
    merged = {}
    for page in group.pages:
        result = results_by_file.get(page.file_id)
        if result is None:
            continue
        for question in result.structured_data.questions:
            merged.setdefault(question.question_number, question.model_dump())
    return [merged[n] for n in sorted(merged)]


class GradingPipeline:

    def __init__(
        self,
        coordinator: BatchExtractionCoordinator,
        validator: AnswerKeyValidationService,
        page_detector: Optional[MultiPageDetectionService] = None,
        fuzzy_threshold: int = 70,
    ):
        self.coordinator = coordinator
        self.validator = validator
        self.page_detector = page_detector or MultiPageDetectionService()
        self.fuzzy_threshold = fuzzy_threshold

    async def _known_exam_ids(self) -> List[str]:
        try:
            return await self.validator.answer_key_store.list_exam_ids()
        except Exception as e:
            logger.error(f"Could not list answer key exams: {e}")
            return []

    async def run(
        self,
        files: List[FileInput],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PipelineReport:
        files = expand_uploads(files)
        extraction = await self.coordinator.process_batch(files, progress_callback=progress_callback)

        detection = self.page_detector.detect_page_groups(extraction.results)
        detected_names = {g.group_id: g.student_name for g in detection.page_groups}
        self.page_detector.infer_missing_information(detection.page_groups)

        known_exam_ids = await self._known_exam_ids()
        results_by_file = {r.file_id or r.file_name: r for r in extraction.results}

        entries = []
        for group in detection.page_groups:
            exam_id = group.exam_id if group.exam_id != INFERRED else None
            if exam_id:
                exam_id = resolve_exam_id(exam_id, known_exam_ids, self.fuzzy_threshold) or exam_id
            entries.append(StudentResultsEntry(
                results=merge_group_questions(group, results_by_file),
                student_id=detected_names.get(group.group_id),
                exam_id=exam_id,
            ))

        summary = await self.validator.validate_batch_results(entries)
        return PipelineReport(
            extraction=extraction,
            page_detection=detection,
            validation=summary,
            report_text=generate_validation_report(summary),
        )


def build_default_pipeline(settings: Optional[PipelineSettings] = None) -> GradingPipeline:
    """
    Wire Google Vision, Gemini, the HTTP mark detector and MongoDB together.
    Raises ConfigurationError when any required credential is missing.
    """
    from gradescan.services.llm import GeminiSemanticParser
    from gradescan.services.mark_detection import HttpMarkDetector
    from gradescan.services.stores import MongoAnswerKeyStore, MongoCacheStore
    from gradescan.utils.vision_ocr_service import VisionOCRService

    settings = settings or get_settings()

    missing = [
        name for name, value in (
            ("GOOGLE_APPLICATION_CREDENTIALS", settings.gcp_credentials_path),
            ("GEMINI_API_KEY", settings.gemini_api_key),
            ("MARK_DETECTION_URL", settings.mark_detection_url),
            ("MARK_DETECTION_API_KEY", settings.mark_detection_api_key),
            ("MONGO_URL", settings.mongo_url),
            ("DB_NAME", settings.db_name),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Required configuration missing: {', '.join(missing)}")

    breakers = CircuitBreakerRegistry(
        failure_threshold=settings.breaker_failure_threshold,
        recovery_timeout_ms=settings.breaker_recovery_timeout_ms,
    )
    extraction_service = DocumentExtractionService(
        ocr=VisionOCRService(),
        detector=HttpMarkDetector(settings.mark_detection_url, settings.mark_detection_api_key),
        parser=GeminiSemanticParser(api_key=settings.gemini_api_key),
        breakers=breakers,
    )
    cache = ContentAddressedCache(
        store=MongoCacheStore(),
        ttl_hours=settings.cache_ttl_hours,
        max_entries=settings.cache_max_entries,
    )
    coordinator = BatchExtractionCoordinator(
        extraction_service,
        cache=cache,
        chunk_size=settings.batch_chunk_size,
    )
    logger.info(f"✅ Default grading pipeline configured (commit {get_version_info()['git_commit']})")
    return GradingPipeline(
        coordinator=coordinator,
        validator=AnswerKeyValidationService(MongoAnswerKeyStore()),
    )
