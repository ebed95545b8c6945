"""
Multi-page detection: group extracted pages into per-student documents.
"""

import os
import re
from typing import Dict, List, Optional

from gradescan.config import logger
from gradescan.models import (
    ExtractionResult,
    GroupSuggestion,
    PageDetectionResult,
    PageEntry,
    PageGroup,
)
from gradescan.services.student_detection import detect_exam_id, parse_student_from_filename

NO_EXAM = "NO_EXAM"
NO_STUDENT = "NO_STUDENT"
INFERRED = "INFERRED"

FILENAME_PAGE_PATTERNS = [
    re.compile(r"page[\s_-]*(\d+)", re.IGNORECASE),
    re.compile(r"p[\s_-]*(\d+)", re.IGNORECASE),
    re.compile(r"_(\d+)\.pdf$", re.IGNORECASE),
    re.compile(r"-(\d+)\.", re.IGNORECASE),
    re.compile(r"\((\d+)\)"),
]

CONTENT_PAGE_PATTERNS = [
    re.compile(r"page\s*(\d+)", re.IGNORECASE),
    re.compile(r"p\.?\s*(\d+)", re.IGNORECASE),
    re.compile(r"^\s*(\d+)\s*$", re.MULTILINE),
]

MAX_CONTENT_PAGE = 99

EXAM_FILENAME_CUES = ("exam", "test", "quiz")

GROUPED_CONFIDENCE_WITH_EXAM = 0.9
GROUPED_CONFIDENCE_WITHOUT_EXAM = 0.6
SUGGESTION_CONFIDENCE = 0.5


def create_group_key(exam_id: Optional[str], student_name: Optional[str]) -> Optional[str]:
    if not exam_id and not student_name:
        return None
    return f"{exam_id or NO_EXAM}__{student_name or NO_STUDENT}"


def detect_page_number(file_name: str, content: str) -> int:
    """
    Filename patterns first, then content patterns (1-99 only); page 1 when
    nothing matches.
    """
    for pattern in FILENAME_PAGE_PATTERNS:
        match = pattern.search(file_name)
        if match:
            return int(match.group(1))

    for pattern in CONTENT_PAGE_PATTERNS:
        match = pattern.search(content or "")
        if match:
            page_num = int(match.group(1))
            if 0 < page_num <= MAX_CONTENT_PAGE:
                return page_num

    return 1


def is_complete_sequence(page_numbers: List[int]) -> bool:
    """True iff the positive page numbers, sorted, are exactly 1..N."""
    positive = sorted(n for n in page_numbers if n > 0)
    if not positive:
        return False
    return positive == list(range(1, len(positive) + 1))


class MultiPageDetectionService:
    """
    Groups pages by (exam ID, student name).

    With group_partial=True (default) a page with either field is grouped and
    the missing one is keyed as NO_EXAM / NO_STUDENT. With group_partial=False
    only pages carrying both are grouped; pages with one of the two become
    low-confidence suggestions instead.
    """

    def __init__(self, group_partial: bool = True):
        self.group_partial = group_partial

    def detect_page_groups(self, extract_results: List[ExtractionResult]) -> PageDetectionResult:
        group_map: Dict[str, PageGroup] = {}
        ungrouped_files: List[str] = []
        suggestions: List[GroupSuggestion] = []

        for result in extract_results:
            has_both = bool(result.exam_id and result.student_name)
            has_any = bool(result.exam_id or result.student_name)
            group_key = create_group_key(result.exam_id, result.student_name)

            if group_key and (has_both or self.group_partial):
                group = group_map.get(group_key)
                if group is None:
                    group = PageGroup(
                        group_id=group_key,
                        exam_id=result.exam_id,
                        student_name=result.student_name,
                    )
                    group_map[group_key] = group

                group.pages.append(PageEntry(
                    page_number=detect_page_number(result.file_name, result.extracted_text),
                    file_name=result.file_name,
                    file_id=result.file_id or result.file_name,
                    confidence=GROUPED_CONFIDENCE_WITH_EXAM if result.exam_id else GROUPED_CONFIDENCE_WITHOUT_EXAM,
                ))
            else:
                ungrouped_files.append(result.file_name)
                if has_any:
                    suggestions.append(GroupSuggestion(
                        exam_id=result.exam_id or "Unknown",
                        student_name=result.student_name or "Unknown",
                        confidence=SUGGESTION_CONFIDENCE,
                    ))

        page_groups = []
        for group in group_map.values():
            group.pages.sort(key=lambda p: p.page_number)
            group.total_pages = len(group.pages)
            group.is_complete = is_complete_sequence([p.page_number for p in group.pages])
            page_groups.append(group)

        logger.info(
            f"Page detection: {len(page_groups)} group(s), {len(ungrouped_files)} ungrouped file(s)"
        )
        return PageDetectionResult(
            page_groups=page_groups,
            ungrouped_files=ungrouped_files,
            suggestions=self._deduplicate_suggestions(suggestions),
        )

    @staticmethod
    def _deduplicate_suggestions(suggestions: List[GroupSuggestion]) -> List[GroupSuggestion]:
        seen = set()
        unique = []
        for suggestion in suggestions:
            key = f"{suggestion.exam_id}__{suggestion.student_name}"
            if key in seen:
                continue
            seen.add(key)
            unique.append(suggestion)
        return unique

    def infer_missing_information(self, page_groups: List[PageGroup]) -> List[PageGroup]:
        """
        Backfill missing exam IDs / student names from the group's filenames.

        Exam ID: an ID-looking token in a filename, else the INFERRED
        placeholder when a filename mentions exam/test/quiz. Student name: a
        name parsed from a filename, else INFERRED. Groups touched here get
        inferred=True; the values are a convenience, not an identification.
        """
        for group in page_groups:
            # Archive folders ("alice_smith/page_1.png") count as part of the name
            file_names = [p.file_name.replace("/", "_") for p in group.pages]

            if not group.exam_id:
                exam_id = None
                for name in file_names:
                    exam_id = detect_exam_id(re.sub(r"[_\-.]+", " ", os.path.splitext(name)[0]))
                    if exam_id:
                        break
                if exam_id is None and any(cue in n.lower() for n in file_names for cue in EXAM_FILENAME_CUES):
                    exam_id = INFERRED
                if exam_id:
                    group.exam_id = exam_id
                    group.inferred = True

            if not group.student_name:
                student_name = None
                for name in file_names:
                    _, student_name = parse_student_from_filename(name)
                    if student_name:
                        break
                group.student_name = student_name or INFERRED
                group.inferred = True

        return page_groups
