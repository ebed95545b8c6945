"""Exception types and per-stage outcome wrapper for the extraction pipeline."""

from dataclasses import dataclass
from typing import Any, Optional


class GradeScanError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(GradeScanError):
    """Required credentials or capability bindings are missing."""


class ServiceUnavailable(GradeScanError):
    """Raised by an OPEN circuit breaker instead of calling the service."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(f"{service_name} circuit breaker is OPEN - service temporarily unavailable")


class ExtractionFailed(GradeScanError):
    """A file could not be extracted (OCR failed or its breaker is open)."""

    def __init__(self, file_name: str, message: str):
        self.file_name = file_name
        super().__init__(f"{file_name}: {message}")


@dataclass(frozen=True)
class StageOutcome:
    """
    Result of one pipeline stage.

    kind is "ok" (value holds the stage output, possibly empty), "degraded"
    (the stage was unavailable, reason says why) or "fatal" (error holds the
    exception that must abort this file).
    """
    kind: str
    value: Any = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, value: Any) -> "StageOutcome":
        return cls(kind="ok", value=value)

    @classmethod
    def degraded(cls, reason: str) -> "StageOutcome":
        return cls(kind="degraded", reason=reason)

    @classmethod
    def fatal(cls, error: BaseException) -> "StageOutcome":
        return cls(kind="fatal", error=error, reason=str(error))

    @property
    def is_ok(self) -> bool:
        return self.kind == "ok"

    @property
    def is_degraded(self) -> bool:
        return self.kind == "degraded"

    @property
    def is_fatal(self) -> bool:
        return self.kind == "fatal"
