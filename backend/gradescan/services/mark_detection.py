"""
Bubble/mark detection over HTTP, and folding detections into per-question answers.
"""

import base64
import re
from typing import Any, Dict, List, Optional

import httpx

from gradescan.errors import ConfigurationError
from gradescan.models import DetectionResult, MarkDetection

QUESTION_LABEL_RE = re.compile(r"question-(\d+)")
OPTION_LABEL_RE = re.compile(r"[A-E]")

# Rows are assumed ~50px apart when a detection carries no question label
ROW_HEIGHT_PX = 50
# Option columns are assumed ~100px wide when the label carries no letter
OPTION_COLUMN_PX = 100


class HttpMarkDetector:
    """StructureDetectionCapability that posts page images to a detection endpoint."""

    def __init__(self, url: Optional[str], api_key: Optional[str], timeout_seconds: float = 30.0):
        if not url or not api_key:
            raise ConfigurationError("MARK_DETECTION_URL and MARK_DETECTION_API_KEY must be set")
        self._url = url
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds

    async def detect(self, image_bytes: bytes) -> DetectionResult:
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            response = await client.post(
                self._url,
                params={"api_key": self._api_key},
                content=base64.b64encode(image_bytes),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            payload = response.json()

        detections = [
            MarkDetection(
                label=p.get("class", ""),
                x=p.get("x", 0),
                y=p.get("y", 0),
                width=p.get("width", 0),
                height=p.get("height", 0),
                confidence=p.get("confidence", 0),
            )
            for p in payload.get("predictions", [])
        ]
        return DetectionResult(mark_count=len(detections), detections=detections)


def _question_number(detection: MarkDetection) -> int:
    match = QUESTION_LABEL_RE.search(detection.label)
    if match:
        return int(match.group(1))
    return int(detection.y // ROW_HEIGHT_PX) + 1


def _option_letter(detection: MarkDetection) -> str:
    # Strip the "question-N" prefix so its letters are not mistaken for options
    match = OPTION_LABEL_RE.search(QUESTION_LABEL_RE.sub("", detection.label))
    if match:
        return match.group(0)
    column = min(int(detection.x // OPTION_COLUMN_PX), 4)
    return "ABCDE"[column]


def answers_from_detections(detections: List[MarkDetection]) -> List[Dict[str, Any]]:
    """
    Group detections by question and pick the highest-confidence filled mark.
    Returns one entry per question, sorted by question number.
    """
    grouped: Dict[int, List[MarkDetection]] = {}
    for d in detections:
        grouped.setdefault(_question_number(d), []).append(d)

    answers = []
    for number in sorted(grouped):
        marks = grouped[number]
        filled = [m for m in marks if "selected" in m.label or "filled" in m.label]
        best = max(filled, key=lambda m: m.confidence) if filled else None
        answers.append({
            "question_number": number,
            "selected_answer": _option_letter(best) if best else None,
            "confidence": best.confidence if best else 0,
            "detection_count": len(marks),
        })
    return answers
