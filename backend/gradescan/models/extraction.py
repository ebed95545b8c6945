"""Extraction-related Pydantic models"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any


class FileInput(BaseModel):
    """An uploaded file as handed to the pipeline."""
    file_name: str
    raw_bytes: bytes

    @property
    def file_size(self) -> int:
        return len(self.raw_bytes)


class OcrResult(BaseModel):
    text: str = ""
    confidence: float = 0.0


class MarkDetection(BaseModel):
    """One mark/bubble found on a page by the detection capability."""
    model_config = ConfigDict(extra="ignore")
    label: str = ""  # e.g. "question-3-B-filled"
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    confidence: float = 0


class DetectionResult(BaseModel):
    mark_count: int = 0
    detections: List[MarkDetection] = []


class ParsedQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore")
    question_number: int
    question_text: Optional[str] = None
    selected_answer: Optional[str] = None  # Option letter, e.g. "B"
    confidence: float = 0


class SemanticParse(BaseModel):
    """Structure recovered from OCR text by the parsing capability."""
    model_config = ConfigDict(extra="ignore")
    exam_id: Optional[str] = None
    student_name: Optional[str] = None
    questions: List[ParsedQuestion] = []


class PageText(BaseModel):
    page_number: int = 1
    text: str = ""
    confidence: float = 0.0


class StructuredData(BaseModel):
    model_config = ConfigDict(frozen=True)
    pages: List[PageText] = []
    questions: List[ParsedQuestion] = []
    answers: List[Dict[str, Any]] = []  # Selected marks per question from detection
    confidence_scores: Dict[str, float] = {}


class ExtractionResult(BaseModel):
    """Output of the extraction pipeline for one file. Never modified once built."""
    model_config = ConfigDict(frozen=True, extra="ignore")
    file_name: str
    file_id: str = ""  # Unique within a batch, assigned by the batch coordinator
    extracted_text: str = ""
    exam_id: Optional[str] = None
    student_name: Optional[str] = None
    structured_data: StructuredData = Field(default_factory=StructuredData)
    confidence: float = 0.6
    detection_available: bool = False
    processing_methods: List[str] = []
    notes: List[str] = []  # Degraded-stage reasons


class FileError(BaseModel):
    file_name: str
    error: str


class ProcessingStats(BaseModel):
    total_files: int = 0
    successful_files: int = 0
    failed_files: int = 0
    cached_files: int = 0
    total_processing_time_ms: int = 0


class BatchExtractionReport(BaseModel):
    results: List[ExtractionResult] = []
    errors: List[FileError] = []
    processing_stats: ProcessingStats = Field(default_factory=ProcessingStats)
