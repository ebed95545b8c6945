"""End-to-end pipeline report"""

from pydantic import BaseModel

from .extraction import BatchExtractionReport
from .pages import PageDetectionResult
from .validation import BatchValidationSummary


class PipelineReport(BaseModel):
    extraction: BatchExtractionReport
    page_detection: PageDetectionResult
    validation: BatchValidationSummary
    report_text: str
