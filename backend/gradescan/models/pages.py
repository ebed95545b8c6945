"""Page grouping models"""

from pydantic import BaseModel
from typing import Optional, List


class PageEntry(BaseModel):
    page_number: int
    file_name: str
    file_id: str = ""  # ExtractionResult.file_id of the page
    confidence: float


class PageGroup(BaseModel):
    """Pages believed to belong to one student's submission for one exam."""
    group_id: str  # "<exam>__<student>"
    exam_id: Optional[str] = None
    student_name: Optional[str] = None
    pages: List[PageEntry] = []  # Sorted ascending by page_number
    total_pages: int = 0
    is_complete: bool = False
    inferred: bool = False  # exam_id/student_name backfilled heuristically


class GroupSuggestion(BaseModel):
    exam_id: str
    student_name: str
    confidence: float = 0.5


class PageDetectionResult(BaseModel):
    page_groups: List[PageGroup] = []
    ungrouped_files: List[str] = []
    suggestions: List[GroupSuggestion] = []
