"""Data models for analyzed sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from friction.parsing import LogRecord, content_text

SUMMARY_LENGTH = 100


class InitiationType(Enum):
    """Why a tool was likely invoked."""

    USER_DIRECTED = "user_directed"  # The user asked for this tool's action
    GUIDED_AUTONOMOUS = "guided_autonomous"  # The user set a goal, the agent chose the tool
    FULLY_AUTONOMOUS = "fully_autonomous"  # No user prompting in the recent context


class Confidence(Enum):
    """Heuristic confidence label."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def summarize(text: str, limit: int = SUMMARY_LENGTH) -> str:
    return text[:limit]


@dataclass
class ContextMetadata:
    """Conversation context captured when a tool operation was emitted.

    ``window`` holds the entries that preceded the tool result, never the
    entry carrying the result itself.
    """

    initiation_type: InitiationType
    window: list[LogRecord] = field(default_factory=list)
    preceding_user_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "initiation_type": self.initiation_type.value,
            "preceding_user_message": self.preceding_user_message,
            "conversation_context": [
                {
                    "type": entry.type,
                    "timestamp": _iso(entry.timestamp),
                    "content_summary": summarize(entry.text),
                }
                for entry in self.window
            ],
        }


@dataclass
class ToolOperation:
    """One tool invocation correlated with its result."""

    name: str
    input: dict[str, Any]
    output: Any
    status: str  # "success" or "error"
    tool_use_id: str
    index: int
    timestamp: datetime | None = None
    context: ContextMetadata | None = None
    result_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @property
    def initiation_type(self) -> InitiationType:
        if self.context is None:
            return InitiationType.FULLY_AUTONOMOUS
        return self.context.initiation_type

    @property
    def output_text(self) -> str:
        return content_text(self.output)

    @property
    def output_size(self) -> int:
        return len(self.output_text)

    @property
    def target_file(self) -> str | None:
        """File this operation reads or writes, if any."""
        for key in ("file_path", "notebook_path", "path"):
            value = self.input.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    @property
    def command(self) -> str | None:
        value = self.input.get("command")
        return value if isinstance(value, str) else None

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "tool_use_id": self.tool_use_id,
            "timestamp": _iso(self.timestamp),
            "operation_index": self.index,
            "output_size": self.output_size,
        }
        if self.is_error:
            metadata["error_code"] = "TOOL_ERROR"
        if self.result_metadata:
            metadata["result"] = self.result_metadata
        return {
            "name": self.name,
            "input": self.input,
            "output": self.output,
            "status": self.status,
            "metadata": metadata,
            "context": self.context.to_dict() if self.context else None,
        }


@dataclass(frozen=True)
class ActiveSegment:
    """A stretch of conversation without long pauses."""

    start: datetime
    end: datetime
    duration_seconds: float
    message_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_seconds": self.duration_seconds,
            "message_count": self.message_count,
        }


@dataclass(frozen=True)
class ExcludedGap:
    """A pause long enough to be left out of the active duration."""

    start: datetime
    end: datetime
    duration_minutes: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_minutes": self.duration_minutes,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DurationAnalysis:
    """Break-aware duration estimate for one session."""

    active_duration_seconds: float
    active_segments: tuple[ActiveSegment, ...] = ()
    excluded_gaps: tuple[ExcludedGap, ...] = ()
    confidence: Confidence = Confidence.LOW
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_duration_seconds": self.active_duration_seconds,
            "active_segments": [s.to_dict() for s in self.active_segments],
            "excluded_gaps": [g.to_dict() for g in self.excluded_gaps],
            "confidence": self.confidence.value,
            "metadata": dict(self.metadata),
        }


@dataclass
class Session:
    """One conversation built from a single log file.

    ``session_id`` is the log file name without its ``.jsonl`` suffix, so
    re-analyzing a file always yields the same id. It is not derived from
    the first timestamp of the conversation.
    """

    session_id: str
    file_path: Path
    project_name: str
    conversation: list[LogRecord] = field(default_factory=list)
    tool_operations: list[ToolOperation] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_seconds: float | None = None
    active_duration_seconds: float | None = None
    duration_analysis: DurationAnalysis | None = None
    entry_count: int = 0
    human_message_count: int = 0
    assistant_message_count: int = 0
    corrupted_entry_count: int = 0
    data_quality_issues: list[str] = field(default_factory=list)
    is_self_generated: bool = False
    is_normalized: bool = False
    has_struggle: bool = False
    struggle_indicators: list[str] = field(default_factory=list)

    def add_issue(self, issue: str) -> None:
        self.data_quality_issues.append(issue)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "file_path": str(self.file_path),
            "project_name": self.project_name,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_seconds": self.duration_seconds,
            "active_duration_seconds": self.active_duration_seconds,
            "duration_analysis": (
                self.duration_analysis.to_dict() if self.duration_analysis else None
            ),
            "entry_count": self.entry_count,
            "human_message_count": self.human_message_count,
            "assistant_message_count": self.assistant_message_count,
            "corrupted_entry_count": self.corrupted_entry_count,
            "tool_operations": [op.to_dict() for op in self.tool_operations],
            "data_quality_issues": list(self.data_quality_issues),
            "is_self_generated": self.is_self_generated,
            "is_normalized": self.is_normalized,
            "has_struggle": self.has_struggle,
            "struggle_indicators": list(self.struggle_indicators),
        }
