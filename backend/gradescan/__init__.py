"""GradeScan: batch OCR extraction, page grouping and answer key validation for scanned tests.

Public API; ``from gradescan import X`` works for everything callers need.
"""

from .errors import (
    ConfigurationError,
    ExtractionFailed,
    GradeScanError,
    ServiceUnavailable,
    StageOutcome,
)
from .models import (
    BatchExtractionReport,
    BatchValidationSummary,
    CacheStats,
    ExtractionResult,
    FileInput,
    PageDetectionResult,
    PageGroup,
    PipelineReport,
    StudentResultsEntry,
    ValidationResult,
    ValidationStatus,
)
from .services.answer_key_validation import AnswerKeyValidationService, generate_validation_report
from .services.batch import BatchExtractionCoordinator
from .services.cache import ContentAddressedCache
from .services.extraction import DocumentExtractionService
from .services.page_detection import MultiPageDetectionService
from .services.pipeline import GradingPipeline, build_default_pipeline
from .utils.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, CircuitState

__all__ = [
    # Errors
    "GradeScanError",
    "ConfigurationError",
    "ExtractionFailed",
    "ServiceUnavailable",
    "StageOutcome",
    # Models
    "FileInput",
    "ExtractionResult",
    "BatchExtractionReport",
    "PageGroup",
    "PageDetectionResult",
    "StudentResultsEntry",
    "ValidationStatus",
    "ValidationResult",
    "BatchValidationSummary",
    "CacheStats",
    "PipelineReport",
    # Services
    "CircuitState",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "DocumentExtractionService",
    "BatchExtractionCoordinator",
    "MultiPageDetectionService",
    "AnswerKeyValidationService",
    "generate_validation_report",
    "ContentAddressedCache",
    "GradingPipeline",
    "build_default_pipeline",
]
