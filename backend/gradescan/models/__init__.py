"""Pydantic models for the GradeScan pipeline"""

from .extraction import (
    FileInput,
    OcrResult,
    MarkDetection,
    DetectionResult,
    ParsedQuestion,
    SemanticParse,
    PageText,
    StructuredData,
    ExtractionResult,
    FileError,
    ProcessingStats,
    BatchExtractionReport,
)
from .pages import PageEntry, PageGroup, GroupSuggestion, PageDetectionResult
from .validation import (
    ValidationStatus,
    AnswerKeyEntry,
    ValidationResult,
    StudentResultsEntry,
    BatchValidationSummary,
)
from .cache import CacheEntry, TopFile, CacheStats
from .report import PipelineReport
