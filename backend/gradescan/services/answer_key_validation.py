"""
Answer key validation: compare a student's parsed results with the exam's
answer key and summarise a whole batch.
"""

from typing import Any, Dict, Iterable, List, Optional

from gradescan.config import logger
from gradescan.models import (
    BatchValidationSummary,
    StudentResultsEntry,
    ValidationResult,
    ValidationStatus,
)
from gradescan.services.capabilities import AnswerKeyStore

UNKNOWN_STUDENT = "Unknown_Student"
UNKNOWN_EXAM = "Unknown_Exam"

PARTIAL_THRESHOLD = 80
SUCCESS_RATE_TARGET = 90
ID_DETECTION_TARGET = 95


def _question_number(result: Any) -> Optional[int]:
    if isinstance(result, dict):
        value = result.get("question_number")
    else:
        value = getattr(result, "question_number", None)
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _percent(part: int, total: int) -> int:
    """Whole percentage, halves rounded up."""
    return (200 * part + total) // (2 * total) if total else 0


class AnswerKeyValidationService:

    def __init__(self, answer_key_store: AnswerKeyStore):
        self.answer_key_store = answer_key_store
        # Answer keys do not change during a grading session
        self._answer_key_cache: Dict[str, int] = {}

    async def get_expected_question_count(self, exam_id: str) -> int:
        if exam_id in self._answer_key_cache:
            return self._answer_key_cache[exam_id]

        try:
            question_numbers = await self.answer_key_store.get_question_numbers(exam_id)
        except Exception as e:
            logger.error(f"Failed to get expected question count for {exam_id}: {e}")
            return 0

        count = len(question_numbers)
        self._answer_key_cache[exam_id] = count
        return count

    async def validate_student_results(
        self,
        exam_id: str,
        student_results: List[Any],
        student_id: Optional[str] = None,
    ) -> ValidationResult:
        expected = await self.get_expected_question_count(exam_id)
        actual = len(student_results)

        if expected == 0:
            logger.info(f"⚠️ No answer key found for exam {exam_id}")
            return ValidationResult(
                exam_id=exam_id,
                student_id=student_id,
                expected_questions=0,
                actual_questions=actual,
                completion_percentage=0,
                is_complete=False,
                status=ValidationStatus.NO_ANSWER_KEY,
            )

        completion = _percent(actual, expected)
        is_complete = actual == expected

        if is_complete:
            status = ValidationStatus.COMPLETE
        elif actual > 0 and completion >= PARTIAL_THRESHOLD:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.INCOMPLETE

        missing = None
        if not is_complete:
            observed = {n for n in (_question_number(r) for r in student_results) if n is not None}
            missing = [q for q in range(1, expected + 1) if q not in observed]

        logger.info(f"📊 Validation result: {status.value} ({actual}/{expected} questions) for exam {exam_id}")
        return ValidationResult(
            exam_id=exam_id,
            student_id=student_id,
            expected_questions=expected,
            actual_questions=actual,
            completion_percentage=completion,
            is_complete=is_complete,
            status=status,
            missing_questions=missing,
        )

    async def validate_batch_results(
        self, batch_results: Iterable[StudentResultsEntry]
    ) -> BatchValidationSummary:
        entries = list(batch_results)
        logger.info(f"🎯 Validating batch results for {len(entries)} students")

        validation_results: Dict[str, ValidationResult] = {}
        counts = {status: 0 for status in ValidationStatus}
        detected_ids = 0

        for entry in entries:
            student_key = entry.student_id or UNKNOWN_STUDENT
            exam_id = entry.exam_id or UNKNOWN_EXAM
            if entry.student_id:
                detected_ids += 1

            validation = await self.validate_student_results(exam_id, entry.results, entry.student_id)
            counts[validation.status] += 1

            # Students sharing a key (e.g. several unknowns) keep distinct entries
            key = student_key
            suffix = 2
            while key in validation_results:
                key = f"{student_key}_{suffix}"
                suffix += 1
            validation_results[key] = validation

        total = len(entries)
        complete = counts[ValidationStatus.COMPLETE]
        partial = counts[ValidationStatus.PARTIAL]
        no_answer_key = counts[ValidationStatus.NO_ANSWER_KEY]
        # Students without an answer key cannot be complete, so they count as incomplete too
        incomplete = counts[ValidationStatus.INCOMPLETE] + no_answer_key

        overall_success_rate = _percent(complete + partial, total)
        id_detection_rate = _percent(detected_ids, total)

        summary = BatchValidationSummary(
            total_students=total,
            complete_students=complete,
            partial_students=partial,
            incomplete_students=incomplete,
            no_answer_key_students=no_answer_key,
            overall_success_rate=overall_success_rate,
            student_id_detection_rate=id_detection_rate,
            validation_results=validation_results,
            recommendations=self._recommendations(
                incomplete, partial, no_answer_key, overall_success_rate, id_detection_rate
            ),
        )

        logger.info(f"📈 Batch validation summary: {overall_success_rate}% success rate")
        logger.info(f"   Complete: {complete}, Partial: {partial}, Incomplete: {incomplete}, No answer key: {no_answer_key}")
        return summary

    @staticmethod
    def _recommendations(
        incomplete: int,
        partial: int,
        no_answer_key: int,
        overall_success_rate: int,
        id_detection_rate: int,
    ) -> List[str]:
        recommendations = []
        if id_detection_rate < ID_DETECTION_TARGET:
            recommendations.append(
                f"Student ID detection rate is {id_detection_rate}%. "
                "Standardize student ID formats on test papers."
            )
        if incomplete > 0:
            recommendations.append(
                f"{incomplete} student(s) have incomplete results. Review file quality and processing."
            )
        if partial > 0:
            recommendations.append(
                f"{partial} student(s) have partial results. Check for missing pages or unclear answers."
            )
        if overall_success_rate < SUCCESS_RATE_TARGET:
            recommendations.append(
                "Overall success rate is below 90%. Consider improving file quality or processing parameters."
            )
        if no_answer_key > 0:
            recommendations.append(
                f"{no_answer_key} exam(s) missing answer keys. Upload answer keys for proper validation."
            )
        return recommendations

    def clear_cache(self):
        self._answer_key_cache.clear()
        logger.info("🧹 Answer key cache cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._answer_key_cache),
            "entries": list(self._answer_key_cache.keys()),
        }


def generate_validation_report(summary: BatchValidationSummary) -> str:
    """Plain-text report of a batch validation summary."""
    total = summary.total_students
    lines = [
        "Answer Key Validation Report",
        "================================",
        "",
        f"Total Students: {total}",
        f"Complete Results: {summary.complete_students} ({_percent(summary.complete_students, total)}%)",
        f"Partial Results: {summary.partial_students} ({_percent(summary.partial_students, total)}%)",
        f"Incomplete Results: {summary.incomplete_students} ({_percent(summary.incomplete_students, total)}%)",
        f"  of which No Answer Key: {summary.no_answer_key_students}",
        f"Overall Success Rate: {summary.overall_success_rate}%",
        f"Student ID Detection Rate: {summary.student_id_detection_rate}%",
        "",
    ]

    if summary.recommendations:
        lines.append("Recommendations:")
        for index, rec in enumerate(summary.recommendations, start=1):
            lines.append(f"{index}. {rec}")
        lines.append("")

    lines.append("Detailed Results:")
    lines.append("-----------------")
    for student, result in summary.validation_results.items():
        lines.append(
            f"{student}: {result.status.value.upper()} "
            f"({result.actual_questions}/{result.expected_questions} questions, {result.completion_percentage}%)"
        )
        if result.missing_questions:
            lines.append(f"  Missing: Questions {', '.join(str(q) for q in result.missing_questions)}")

    return "\n".join(lines) + "\n"
