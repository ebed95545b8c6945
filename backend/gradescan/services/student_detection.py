"""
Exam ID, student name and question detection from OCR text and filenames.

These are deterministic pattern heuristics. Patterns are tried in the listed
order and the first acceptable match wins.
"""

import re
from typing import List, Optional, Sequence, Tuple

from thefuzz import fuzz

from gradescan.config import logger
from gradescan.models import ParsedQuestion

EXAM_ID_PATTERNS = [
    re.compile(r"(?:Exam|Test|Quiz)\s*(?:ID|#)?\s*:?\s*([A-Z0-9\-_]+)", re.IGNORECASE),
    re.compile(r"ID:\s*([A-Z0-9\-_]+)", re.IGNORECASE),
    re.compile(r"^([A-Z]{2,4}\d{2,4})", re.MULTILINE),
]

NAME_CHARS = r"[A-Za-z \-'.]"

# (pattern, search only the header lines)
NAME_PATTERNS = [
    # Generated test header: "Jane Doe  Algebra Quiz  ID: MATH-101"
    (re.compile(r"^([A-Z][a-z]+(?: +[A-Z][a-z]+)+?) +.*(?:ID:|Exam)", re.MULTILINE), True),
    (re.compile(rf"Name:[ \t]*({NAME_CHARS}+)", re.IGNORECASE), False),
    (re.compile(rf"Student:[ \t]*({NAME_CHARS}+)", re.IGNORECASE), False),
    (re.compile(rf"(?:student[ \t]*name|name|student)[ \t]*:?[ \t]*({NAME_CHARS}+)", re.IGNORECASE), False),
    (re.compile(r"^([A-Z][a-z]+ +[A-Z][a-z]+(?: +[A-Z][a-z]+)?)[ \t]*$", re.MULTILINE), False),
]

HEADER_LINE_COUNT = 5

VALID_NAME_RE = re.compile(r"^[A-Za-z\s\-'.]+$")

# Words that show up next to name fields on forms but are never part of a name
LABEL_WORDS = {
    "test", "exam", "quiz", "assignment", "homework", "name", "student",
    "answer", "key", "sheet", "page", "question", "number", "date", "class",
    "subject", "grade", "score", "points", "instructions", "directions", "id",
}

QUESTION_LINE_RE = re.compile(r"^(\d+)[.)\s]")
ANSWER_LINE_RE = re.compile(r"(?:Answer|Selected):\s*([A-E])", re.IGNORECASE)

SUBJECT_NAMES = {
    'maths', 'math', 'mathematics', 'english', 'science', 'physics',
    'chemistry', 'biology', 'history', 'geography', 'social', 'economics',
    'computer', 'arts', 'music', 'exam', 'test', 'quiz', 'page', 'scan',
}


def detect_exam_id(text: str) -> Optional[str]:
    """Return the first exam ID candidate of at least 3 characters, or None."""
    if not text:
        return None
    for pattern in EXAM_ID_PATTERNS:
        match = pattern.search(text)
        if match and len(match.group(1)) >= 3:
            return match.group(1)
    return None


def is_valid_name(name: Optional[str]) -> bool:
    """
    Accept 2-4 whitespace-separated tokens, 5-50 characters overall, made only
    of letters, spaces, hyphens, apostrophes and periods.
    """
    if not name:
        return False
    trimmed = name.strip()
    if len(trimmed) < 5 or len(trimmed) > 50:
        return False
    if not VALID_NAME_RE.match(trimmed):
        return False
    words = trimmed.split()
    if len(words) < 2 or len(words) > 4:
        return False
    for word in words:
        if not word[0].isalpha():
            return False
        if word.lower().strip(".'-") in LABEL_WORDS:
            return False
    return True


def _clean_name(raw: str) -> str:
    # A run of 2+ spaces or a tab ends the field
    field = re.split(r" {2,}|\t", raw.strip())[0]
    words = field.split()
    while words and words[-1].lower() in LABEL_WORDS:
        words.pop()
    return " ".join(words).strip(" -'.")


def detect_student_name(text: str) -> Optional[str]:
    if not text:
        return None
    header = "\n".join(text.split("\n")[:HEADER_LINE_COUNT])
    for pattern, header_only in NAME_PATTERNS:
        haystack = header if header_only else text
        for match in pattern.finditer(haystack):
            candidate = _clean_name(match.group(1))
            if is_valid_name(candidate):
                return candidate
    return None


def extract_questions_from_ocr(text: str) -> List[ParsedQuestion]:
    """
    Recover numbered questions from raw OCR lines.
    An "Answer: X" / "Selected: X" line within the next 10 lines gives the chosen option.
    """
    questions = []
    seen = set()
    lines = text.split("\n") if text else []
    for i, raw_line in enumerate(lines):
        line = raw_line.strip()
        match = QUESTION_LINE_RE.match(line)
        if not match:
            continue
        number = int(match.group(1))
        if number in seen:
            continue
        seen.add(number)

        selected = None
        for follow in lines[i + 1:i + 10]:
            answer_match = ANSWER_LINE_RE.search(follow)
            if answer_match:
                selected = answer_match.group(1).upper()
                break

        questions.append(ParsedQuestion(
            question_number=number,
            question_text=line[match.end():].strip() or f"Question {number}",
            selected_answer=selected,
            confidence=0.7 if selected else 0,
        ))
    return questions


def parse_student_from_filename(filename: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse student ID and name from filename
    Expected formats:
    - STU003_Sagar_Patel_Maths.pdf -> (STU003, Sagar Patel)
    - 123_John_Doe_page2.pdf -> (123, John Doe)
    - Jane_Doe.pdf -> (None, Jane Doe)
    Returns: (student_id, student_name)
    """
    stem = re.sub(r"\.[A-Za-z0-9]{2,4}$", "", filename)
    parts = [p for p in re.split(r"[_\-\s]+", stem) if p]

    def name_from(tokens):
        words = [
            t for t in tokens
            if t.isalpha() and t.lower() not in SUBJECT_NAMES
        ]
        name = " ".join(words).title()
        return name if is_valid_name(name) else None

    if len(parts) >= 2 and any(ch.isdigit() for ch in parts[0]) and len(parts[0]) <= 20:
        return parts[0], name_from(parts[1:])

    return None, name_from(parts)


def resolve_exam_id(candidate: Optional[str], known_exam_ids: Sequence[str], threshold: int = 70) -> Optional[str]:
    """
    Map a detected exam ID onto a known one: exact (case-insensitive) match
    first, otherwise the closest fuzzy match scoring at least threshold.
    """
    if not candidate or not known_exam_ids:
        return None
    lowered = candidate.lower()
    for known in known_exam_ids:
        if known.lower() == lowered:
            return known

    best, best_score = None, 0
    for known in known_exam_ids:
        score = fuzz.ratio(lowered, known.lower())
        if score > best_score:
            best, best_score = known, score
    if best is not None and best_score >= threshold:
        logger.info(f"Fuzzy-matched exam ID '{candidate}' to '{best}' (score {best_score})")
        return best
    return None
