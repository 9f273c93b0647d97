"""Struggle pattern types shared by all detectors."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar

from friction.config import DetectorConfig
from friction.models import Confidence, Session
from friction.rules import RuleSet


class Severity(Enum):
    """How serious a finding is."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank, most severe first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


class PatternKind(Enum):
    """Kinds of struggle pattern."""

    SIMPLE_LOOP = "simple_loop"
    ADVANCED_LOOP = "advanced_loop"
    ERROR_STREAK = "error_streak"
    STAGNATION = "stagnation"
    READING_SPIRAL = "reading_spiral"
    SHOTGUN_DEBUGGING = "shotgun_debugging"
    REDUNDANT_SEQUENCE = "redundant_sequence"
    CONTEXT_SWITCHING = "context_switching"
    LONG_SESSION = "long_session"

    # Supplementary kinds reported alongside the core nine
    NO_PROGRESS = "no_progress"
    PLAN_EDITING_LOOP = "plan_editing_loop"
    ERROR_PATTERN = "error_pattern"


@dataclass(frozen=True)
class Provenance:
    """Where and when a finding was produced."""

    pattern_type: str
    session_id: str
    source_file: str
    confidence: Confidence
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern_type": self.pattern_type,
            "session_id": self.session_id,
            "source_file": self.source_file,
            "confidence": self.confidence.value,
            "detection_timestamp": self.detected_at.isoformat(),
        }


@dataclass
class StrugglePattern:
    """Base of all findings.

    Subclasses set ``kind`` and ``severity`` and add their own fields.
    """

    kind: ClassVar[PatternKind]
    severity: ClassVar[Severity] = Severity.WARNING

    provenance: Provenance = field(kw_only=True)

    @property
    def tool_indices(self) -> list[int]:
        """Indices of the tool operations this finding covers."""
        return []

    @property
    def first_index(self) -> int | None:
        indices = self.tool_indices
        return min(indices) if indices else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value, "severity": self.severity.value}
        for f in fields(self):
            if f.name == "provenance":
                continue
            value = getattr(self, f.name)
            data[f.name] = value.to_dict() if hasattr(value, "to_dict") else value
        data["_provenance"] = self.provenance.to_dict()
        return data


@dataclass
class SpanPattern(StrugglePattern):
    """A finding covering a contiguous run of tool operations."""

    start_index: int
    end_index: int

    @property
    def tool_indices(self) -> list[int]:
        return list(range(self.start_index, self.end_index + 1))


@dataclass
class BaseDetector:
    """Shared plumbing for detectors.

    A detector is a pure function of the session: it reads the session
    and its own thresholds, and returns findings without side effects.
    """

    name: ClassVar[str]
    kind: ClassVar[PatternKind]

    config: DetectorConfig = field(default_factory=DetectorConfig)
    rules: RuleSet = field(default_factory=RuleSet)

    def detect(self, session: Session) -> list[StrugglePattern]:
        raise NotImplementedError

    def provenance(self, session: Session, confidence: Confidence) -> Provenance:
        return Provenance(
            pattern_type=self.kind.value,
            session_id=session.session_id,
            source_file=str(session.file_path),
            confidence=confidence,
        )
