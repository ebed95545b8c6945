"""Answer key validation models"""

from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any


class ValidationStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    INCOMPLETE = "incomplete"
    NO_ANSWER_KEY = "no_answer_key"


class AnswerKeyEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)
    exam_id: str
    question_number: int
    correct_answer: str
    points: float = 1


class ValidationResult(BaseModel):
    exam_id: str
    student_id: Optional[str] = None
    expected_questions: int
    actual_questions: int
    completion_percentage: int = 0
    is_complete: bool = False
    status: ValidationStatus
    missing_questions: Optional[List[int]] = None


class StudentResultsEntry(BaseModel):
    """One student's parsed results handed to batch validation."""
    results: List[Dict[str, Any]] = []  # Each carries a "question_number"
    student_id: Optional[str] = None
    exam_id: Optional[str] = None


class BatchValidationSummary(BaseModel):
    total_students: int = 0
    complete_students: int = 0
    partial_students: int = 0
    incomplete_students: int = 0
    no_answer_key_students: int = 0
    overall_success_rate: int = 0
    student_id_detection_rate: int = 0
    validation_results: Dict[str, ValidationResult] = {}
    recommendations: List[str] = []
