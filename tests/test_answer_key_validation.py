import asyncio

import pytest

from gradescan.models import StudentResultsEntry, ValidationStatus
from gradescan.services.answer_key_validation import (
    AnswerKeyValidationService,
    _percent,
    generate_validation_report,
)


def _answers(*numbers):
    return [{"question_number": n, "selected_answer": "A"} for n in numbers]


@pytest.fixture
def validator(answer_key_store):
    return AnswerKeyValidationService(answer_key_store)


class TestPercent:

    def test_rounds_halves_up(self):
        assert _percent(1, 8) == 13
        assert _percent(2, 3) == 67
        assert _percent(1, 3) == 33
        assert _percent(5, 0) == 0


class TestStudentValidation:

    @pytest.mark.parametrize("count,status,percent", [
        (10, ValidationStatus.COMPLETE, 100),
        (8, ValidationStatus.PARTIAL, 80),
        (7, ValidationStatus.INCOMPLETE, 70),
        (0, ValidationStatus.INCOMPLETE, 0),
    ])
    def test_status_boundaries(self, validator, count, status, percent):
        result = asyncio.run(validator.validate_student_results("MATH-101", _answers(*range(1, count + 1))))
        assert result.status == status
        assert result.completion_percentage == percent
        assert result.expected_questions == 10
        assert result.actual_questions == count
        assert result.is_complete is (status == ValidationStatus.COMPLETE)

    def test_complete_has_no_missing_list(self, validator):
        result = asyncio.run(validator.validate_student_results("MATH-101", _answers(*range(1, 11))))
        assert result.missing_questions is None

    def test_missing_questions_listed(self, validator):
        result = asyncio.run(
            validator.validate_student_results("MATH-101", _answers(1, 3, 5, 6, 7, 8, 9, 10), "Jane Doe")
        )
        assert result.status == ValidationStatus.PARTIAL
        assert result.missing_questions == [2, 4]
        assert result.student_id == "Jane Doe"

    def test_no_answer_key(self, validator):
        result = asyncio.run(validator.validate_student_results("HIST-9", _answers(1, 2)))
        assert result.status == ValidationStatus.NO_ANSWER_KEY
        assert result.expected_questions == 0
        assert result.completion_percentage == 0
        assert result.missing_questions is None

    def test_expected_count_is_memoised(self, validator, answer_key_store):
        asyncio.run(validator.validate_student_results("MATH-101", []))
        asyncio.run(validator.validate_student_results("MATH-101", []))
        assert answer_key_store.calls == ["MATH-101"]
        assert validator.get_cache_stats() == {"size": 1, "entries": ["MATH-101"]}

        validator.clear_cache()
        asyncio.run(validator.validate_student_results("MATH-101", []))
        assert answer_key_store.calls == ["MATH-101", "MATH-101"]

    def test_store_failure_treated_as_no_key_and_not_cached(self, validator, answer_key_store):
        answer_key_store.fail = True
        result = asyncio.run(validator.validate_student_results("MATH-101", _answers(1)))
        assert result.status == ValidationStatus.NO_ANSWER_KEY

        answer_key_store.fail = False
        result = asyncio.run(validator.validate_student_results("MATH-101", _answers(1)))
        assert result.status == ValidationStatus.INCOMPLETE


class TestBatchValidation:

    def _mixed_batch(self):
        return [
            StudentResultsEntry(student_id="Jane Doe", exam_id="MATH-101", results=_answers(*range(1, 11))),
            StudentResultsEntry(student_id="Bob Ray", exam_id="MATH-101", results=_answers(*range(1, 9))),
            StudentResultsEntry(student_id="Ann Lee", exam_id="SCI-200", results=_answers(1, 2)),
            StudentResultsEntry(results=_answers(1)),
        ]

    def test_summary_counts(self, validator):
        summary = asyncio.run(validator.validate_batch_results(self._mixed_batch()))

        assert summary.total_students == 4
        assert summary.complete_students == 1
        assert summary.partial_students == 1
        assert summary.incomplete_students == 2
        assert summary.no_answer_key_students == 1
        assert summary.overall_success_rate == 50
        assert summary.student_id_detection_rate == 75
        assert set(summary.validation_results) == {"Jane Doe", "Bob Ray", "Ann Lee", "Unknown_Student"}
        assert summary.validation_results["Unknown_Student"].exam_id == "Unknown_Exam"

    def test_recommendations_in_order(self, validator):
        summary = asyncio.run(validator.validate_batch_results(self._mixed_batch()))
        recs = summary.recommendations

        assert len(recs) == 5
        assert recs[0].startswith("Student ID detection rate is 75%")
        assert recs[1].startswith("2 student(s) have incomplete results")
        assert recs[2].startswith("1 student(s) have partial results")
        assert recs[3].startswith("Overall success rate is below 90%")
        assert recs[4].startswith("1 exam(s) missing answer keys")

    def test_clean_batch_has_no_recommendations(self, validator):
        summary = asyncio.run(validator.validate_batch_results([
            StudentResultsEntry(student_id="Jane Doe", exam_id="SCI-200", results=_answers(1, 2, 3, 4)),
            StudentResultsEntry(student_id="Bob Ray", exam_id="SCI-200", results=_answers(1, 2, 3, 4)),
        ]))
        assert summary.overall_success_rate == 100
        assert summary.student_id_detection_rate == 100
        assert summary.student_id_detection_rate == 0
        assert len(summary.recommendations) == 2
        assert summary.recommendations[0].startswith("Student ID detection rate is 0%")
        assert summary.recommendations[1].startswith("Overall success rate is below 90%")

    def test_empty_batch(self, validator):
        summary = asyncio.run(validator.validate_batch_results([]))
        assert summary.total_students == 0
        assert summary.overall_success_rate == 0
        assert summary.recommendations == []

    def test_unknown_students_keep_separate_entries(self, validator):
        summary = asyncio.run(validator.validate_batch_results([
            StudentResultsEntry(exam_id="SCI-200", results=_answers(1)),
            StudentResultsEntry(exam_id="SCI-200", results=_answers(1, 2)),
        ]))
        assert list(summary.validation_results) == ["Unknown_Student", "Unknown_Student_2"]
        assert summary.validation_results["Unknown_Student_2"].actual_questions == 2

    def test_idempotent(self, validator):
        first = asyncio.run(validator.validate_batch_results(self._mixed_batch()))
        second = asyncio.run(validator.validate_batch_results(self._mixed_batch()))
        assert first.model_dump() == second.model_dump()


class TestReport:

    def test_report_text(self, validator):
        summary = asyncio.run(validator.validate_batch_results([
            StudentResultsEntry(student_id="Jane Doe", exam_id="MATH-101", results=_answers(1, 3, 5, 6, 7, 8, 9, 10)),
        ]))
        report = generate_validation_report(summary)

        assert report.startswith("Answer Key Validation Report\n")
        assert "Total Students: 1\n" in report
        assert "Partial Results: 1 (100%)" in report
        assert "Overall Success Rate: 100%" in report
        assert "Jane Doe: PARTIAL (8/10 questions, 80%)" in report
        assert "  Missing: Questions 2, 4" in report
        assert "1. 1 student(s) have partial results." in report
