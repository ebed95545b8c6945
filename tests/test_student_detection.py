import pytest

from gradescan.services.student_detection import (
    detect_exam_id,
    detect_student_name,
    extract_questions_from_ocr,
    is_valid_name,
    parse_student_from_filename,
    resolve_exam_id,
)


class TestExamId:

    @pytest.mark.parametrize("text,expected", [
        ("Exam ID: MATH-101\nName: Jane Doe", "MATH-101"),
        ("Biology Test #: BIO-7", "BIO-7"),
        ("Form ID: ABC123", "ABC123"),
        ("CHEM204\nPeriodic table review", "CHEM204"),
    ])
    def test_patterns(self, text, expected):
        assert detect_exam_id(text) == expected

    def test_short_candidates_rejected(self):
        assert detect_exam_id("Quiz 42") is None

    def test_nothing_found(self):
        assert detect_exam_id("") is None
        assert detect_exam_id("just some handwriting") is None


class TestStudentName:

    def test_generated_header(self):
        text = "Jane Doe   Algebra Quiz   ID: MATH-101\n1. Solve for x"
        assert detect_student_name(text) == "Jane Doe"

    def test_name_label_stops_at_next_field(self):
        assert detect_student_name("Name: John Smith   Date: 2024-05-01") == "John Smith"

    def test_student_label(self):
        assert detect_student_name("Student: Mary-Jane O'Neil\n1. First question") == "Mary-Jane O'Neil"

    def test_capitalised_line(self):
        assert detect_student_name("Algebra worksheet\nPriya Sharma\n1. Solve") == "Priya Sharma"

    def test_label_words_are_not_names(self):
        assert detect_student_name("Name: Answer Key") is None

    @pytest.mark.parametrize("name,valid", [
        ("John Smith", True),
        ("Anne-Marie de la Cruz", True),
        ("Jo", False),
        ("Johnathan", False),
        ("J0hn Smith", False),
        ("A B C D E", False),
        ("Test Paper", False),
        (None, False),
    ])
    def test_is_valid_name(self, name, valid):
        assert is_valid_name(name) is valid


class TestQuestionsFromOcr:

    def test_numbered_questions_with_answers(self):
        text = "1. Capital of France?\nAnswer: B\n2) Largest planet?\n3 Boiling point of water\nSelected: d\n1. repeated"
        questions = extract_questions_from_ocr(text)

        assert [q.question_number for q in questions] == [1, 2, 3]
        assert questions[0].question_text == "Capital of France?"
        assert questions[0].selected_answer == "B"
        assert questions[0].confidence == 0.7
        assert questions[2].selected_answer == "D"

    def test_empty_text(self):
        assert extract_questions_from_ocr("") == []


class TestFilenames:

    @pytest.mark.parametrize("filename,expected", [
        ("STU003_Sagar_Patel_Maths.pdf", ("STU003", "Sagar Patel")),
        ("123_John_Doe_page2.pdf", ("123", "John Doe")),
        ("Jane_Doe.pdf", (None, "Jane Doe")),
        ("scan_001.png", (None, None)),
    ])
    def test_parse_student_from_filename(self, filename, expected):
        assert parse_student_from_filename(filename) == expected


class TestResolveExamId:

    KNOWN = ["MATH-101", "SCI-200"]

    def test_exact_case_insensitive(self):
        assert resolve_exam_id("math-101", self.KNOWN) == "MATH-101"

    def test_fuzzy_match(self):
        assert resolve_exam_id("SCI-2O0", self.KNOWN) == "SCI-200"

    def test_no_match(self):
        assert resolve_exam_id("HIST-9", self.KNOWN) is None
        assert resolve_exam_id("MATH-101", []) is None
        assert resolve_exam_id(None, self.KNOWN) is None
