"""Error taxonomy for friction analysis.

Categorizes failures so that a batch run can degrade gracefully: a bad
line or an unreadable file is recorded and skipped, and only an empty
batch is surfaced to the caller.

Usage:
    from friction.errors import FrictionError, handle_error

    try:
        analyze()
    except Exception as e:
        result = handle_error(e)
        print(result.to_compact())
"""

from __future__ import annotations

import builtins
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling."""

    FILE_NOT_FOUND = auto()  # Missing files
    PERMISSION_DENIED = auto()  # Access issues
    PARSE_ERROR = auto()  # Unreadable log or graph documents
    CONFIG = auto()  # Configuration problems
    VALIDATION = auto()  # Invalid input/state
    ANALYSIS = auto()  # Failure inside an analysis phase
    NO_DATA = auto()  # Nothing to analyze
    RESOURCE = auto()  # OS level failures
    INTERNAL = auto()  # Unexpected internal errors


@dataclass
class ErrorResult:
    """Structured error result with context and suggestions."""

    category: ErrorCategory
    message: str
    original: Exception | None = None
    suggestion: str | None = None
    context: dict[str, Any] | None = None
    recoverable: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "category": self.category.name,
            "message": self.message,
            "suggestion": self.suggestion,
            "recoverable": self.recoverable,
            "context": self.context,
        }

    def to_compact(self) -> str:
        """Format as compact string."""
        parts = [f"[{self.category.name}] {self.message}"]
        if self.suggestion:
            parts.append(f"  Try: {self.suggestion}")
        return "\n".join(parts)


class FrictionError(Exception):
    """Base exception for friction with structured error handling."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.category = category
        self.suggestion = suggestion
        self.context = context or {}
        self.recoverable = recoverable

    def to_result(self) -> ErrorResult:
        """Convert to ErrorResult."""
        return ErrorResult(
            category=self.category,
            message=str(self),
            original=self,
            suggestion=self.suggestion,
            context=self.context,
            recoverable=self.recoverable,
        )


class LogReadError(FrictionError):
    """A log file could not be read at all."""

    def __init__(self, path: str | Path, detail: str = ""):
        msg = f"Cannot read log file {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(
            msg,
            category=ErrorCategory.PARSE_ERROR,
            suggestion="Check the file exists and is readable",
            context={"path": str(path)},
        )
        self.path = Path(path)


class ConfigError(FrictionError):
    """Configuration file or setting issue."""

    def __init__(
        self,
        message: str,
        file: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            suggestion="Check friction.toml or pyproject.toml [tool.friction]",
            context={"file": file, **(context or {})},
        )


class ValidationError(FrictionError):
    """Invalid input or state."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            context=context,
        )


class AnalysisError(FrictionError):
    """Failure inside one phase of session analysis."""

    def __init__(
        self,
        message: str,
        phase: str,
        session_id: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.ANALYSIS,
            context={"phase": phase, "session_id": session_id, **(context or {})},
        )
        self.phase = phase
        self.session_id = session_id


class KnowledgeGraphError(FrictionError):
    """The knowledge graph document is unreadable or malformed."""

    def __init__(self, path: str | Path, detail: str = ""):
        msg = f"Invalid knowledge graph document {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(
            msg,
            category=ErrorCategory.PARSE_ERROR,
            suggestion="Fix or remove the file; it is rebuilt on the next run",
            context={"path": str(path)},
        )


class NoSessionsFoundError(FrictionError):
    """A batch produced no analyzable sessions."""

    def __init__(self, file_count: int, failed_count: int = 0, skipped_count: int = 0):
        super().__init__(
            f"No sessions found in {file_count} log file(s)",
            category=ErrorCategory.NO_DATA,
            suggestion="Point at a directory containing assistant .jsonl logs",
            context={
                "file_count": file_count,
                "failed_count": failed_count,
                "skipped_count": skipped_count,
            },
            recoverable=False,
        )


_ERROR_PATTERNS: list[tuple[type, ErrorCategory, str | None]] = [
    (builtins.FileNotFoundError, ErrorCategory.FILE_NOT_FOUND, "Check path exists"),
    (builtins.PermissionError, ErrorCategory.PERMISSION_DENIED, "Check file permissions"),
    (builtins.UnicodeDecodeError, ErrorCategory.PARSE_ERROR, "Check the file is UTF-8 text"),
    (builtins.OSError, ErrorCategory.RESOURCE, None),
    (builtins.ValueError, ErrorCategory.VALIDATION, None),
    (builtins.TypeError, ErrorCategory.VALIDATION, None),
]


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> ErrorResult:
    """Convert any exception to a structured ErrorResult."""
    if isinstance(error, FrictionError):
        result = error.to_result()
        if context:
            result.context = {**(result.context or {}), **context}
        return result

    for error_type, category, suggestion in _ERROR_PATTERNS:
        if isinstance(error, error_type):
            return ErrorResult(
                category=category,
                message=str(error),
                original=error,
                suggestion=suggestion,
                context=context,
            )

    return ErrorResult(
        category=ErrorCategory.INTERNAL,
        message=str(error),
        original=error,
        suggestion="This may be a bug in friction",
        context=context,
        recoverable=False,
    )


class ErrorCollector:
    """Collect multiple errors without stopping execution.

    Used by batch runs: every file is attempted and failures are
    reported together at the end.
    """

    def __init__(self):
        self.errors: list[ErrorResult] = []
        self.successes: int = 0

    def record(self, error: Exception, context: dict[str, Any] | None = None) -> ErrorResult:
        """Record an error."""
        result = handle_error(error, context)
        self.errors.append(result)
        return result

    def success(self) -> None:
        """Record a successful operation."""
        self.successes += 1

    def has_errors(self) -> bool:
        """Check if any errors were recorded."""
        return len(self.errors) > 0

    def summary(self) -> str:
        """Get summary of collected errors."""
        total = self.successes + len(self.errors)
        if not self.errors:
            return f"All {total} operations succeeded"

        lines = [f"{self.successes}/{total} succeeded, {len(self.errors)} errors:"]
        for i, err in enumerate(self.errors[:10], 1):
            lines.append(f"  {i}. {err.to_compact()}")
        if len(self.errors) > 10:
            lines.append(f"  ... and {len(self.errors) - 10} more")
        return "\n".join(lines)
