"""Annotations rendered alongside a session's tool timeline.

Each finding becomes one annotation with a severity, a short message and
a suggestion. Annotations are ordered by the first tool index they touch,
then by severity (error, warning, info); annotations that touch no tool
come last.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from friction.detectors.base import PatternKind, Severity, StrugglePattern
from friction.detectors.error_patterns import (
    ENVIRONMENT_SETUP,
    HIGH_ERROR_DENSITY,
    STRING_REPLACEMENT_FAILURE,
    TIMEOUT,
    USER_INTERRUPTION,
    ErrorPattern,
)
from friction.detectors.exploration import ReadingSpiral, ShotgunDebugging
from friction.detectors.long_sessions import LongSession, Trend
from friction.detectors.loops import AdvancedLoop, SimpleLoop
from friction.detectors.progress import NoProgress, PlanEditingLoop
from friction.detectors.redundant import UNNECESSARY_RE_READ, RedundantSequence
from friction.detectors.streaks import ErrorStreak, Stagnation
from friction.detectors.switching import ContextSwitching

_ERROR_PATTERN_SUGGESTIONS = {
    STRING_REPLACEMENT_FAILURE: "Re-read the file before editing; it has changed since it was read",
    USER_INTERRUPTION: "Confirm the intended action with the user before acting",
    TIMEOUT: "Run long commands in the background or raise the timeout",
    HIGH_ERROR_DENSITY: "Too many calls are failing; step back and diagnose one failure",
    ENVIRONMENT_SETUP: "Fix the environment setup before continuing development",
}


@dataclass
class Annotation:
    kind: PatternKind
    severity: Severity
    message: str
    suggestion: str
    tool_indices: tuple[int, int] | None = None  # inclusive first/last index

    @property
    def sort_key(self) -> tuple[float, int]:
        first = self.tool_indices[0] if self.tool_indices else float("inf")
        return (first, self.severity.rank)

    def covers(self, index: int) -> bool:
        if self.tool_indices is None:
            return False
        return self.tool_indices[0] <= index <= self.tool_indices[1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
            "tool_indices": list(self.tool_indices) if self.tool_indices else None,
        }


def _describe(finding: StrugglePattern) -> tuple[str, str]:
    if isinstance(finding, SimpleLoop):
        return (
            f"Loop detected: {finding.name} called {finding.count} times "
            "with identical parameters",
            "Check whether the tool output changed or the approach is stuck",
        )
    if isinstance(finding, AdvancedLoop):
        return (
            f"Pattern loop: [{' -> '.join(finding.tool_sequence)}] "
            f"repeated {finding.count} times",
            "This pattern suggests getting stuck; consider changing approach",
        )
    if isinstance(finding, ErrorStreak):
        return (
            f"Error streak: {finding.name} failed {finding.count} consecutive times",
            "Repeated failures call for a different approach or closer debugging",
        )
    if isinstance(finding, Stagnation):
        return (
            f"Stagnation: {finding.name} produced identical results {finding.count} times",
            "Same output means no progress; try an alternative approach",
        )
    if isinstance(finding, ReadingSpiral):
        return (
            f"Reading spiral: {finding.read_count} reads with only "
            f"{finding.action_count} actions ({finding.ratio:.1f}:1 ratio)",
            "Search before reading whole files and plan the change first",
        )
    if isinstance(finding, ShotgunDebugging):
        return (
            f"Shotgun debugging: {finding.tool_variety} different tools in "
            f"{finding.duration_minutes:.1f} minutes ({finding.tool_velocity:.1f} tools/min)",
            "Slow down and test one hypothesis at a time",
        )
    if isinstance(finding, RedundantSequence):
        if finding.sequence_type == UNNECESSARY_RE_READ:
            return (
                "Redundant sequence: Read -> Edit -> Read of the same file",
                "The edit left the file unchanged; re-reading it adds nothing",
            )
        return (
            "Redundant sequence: duplicate command execution",
            "Check whether the command succeeded before running it again",
        )
    if isinstance(finding, ContextSwitching):
        return (
            f"Context switching: {finding.unique_files} files, "
            f"{finding.switch_rate * 100:.0f}% switch rate",
            "Finish the changes in one file before moving to the next",
        )
    if isinstance(finding, LongSession):
        message = f"Long session: {round(finding.duration_seconds / 60)} minutes"
        if finding.trend is not None and finding.trend.trend is not Trend.TOO_SHORT:
            message += f", struggle {finding.trend.trend.value}"
        return (
            message,
            "Extended sessions may indicate complexity or inefficiency",
        )
    if isinstance(finding, NoProgress):
        return (
            f"No progress: none of {finding.tool_count} tool calls succeeded",
            "Stop and check the environment or the approach before trying again",
        )
    if isinstance(finding, PlanEditingLoop):
        return (
            f"Plan editing loop: {finding.file_path} edited {finding.count} times in a row",
            "Settle the plan and start on the work it describes",
        )
    if isinstance(finding, ErrorPattern):
        return (
            f"Error pattern ({finding.error_type.replace('_', ' ')}): {finding.details}",
            _ERROR_PATTERN_SUGGESTIONS.get(finding.error_type, ""),
        )
    return (finding.kind.value.replace("_", " "), "")


def annotate(finding: StrugglePattern) -> Annotation:
    message, suggestion = _describe(finding)
    indices = finding.tool_indices
    return Annotation(
        kind=finding.kind,
        severity=finding.severity,
        message=message,
        suggestion=suggestion,
        tool_indices=(min(indices), max(indices)) if indices else None,
    )


def build_annotations(findings: list[StrugglePattern]) -> list[Annotation]:
    """Turn findings into annotations in rendering order."""
    return sorted((annotate(f) for f in findings), key=lambda a: a.sort_key)


def annotations_for_tool(annotations: list[Annotation], index: int) -> list[Annotation]:
    """Annotations whose tool range includes ``index``."""
    return [a for a in annotations if a.covers(index)]
