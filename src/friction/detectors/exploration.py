"""Detectors for unfocused exploration.

Both look only at operations the agent chose by itself: calls the user
asked for explicitly are part of the user's plan, not a struggle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, Severity, StrugglePattern
from friction.models import Confidence, InitiationType, Session, ToolOperation


@dataclass
class WindowPattern(StrugglePattern):
    """A finding covering a set of (possibly non-adjacent) operations."""

    indices: list[int] = field(default_factory=list)

    @property
    def tool_indices(self) -> list[int]:
        return list(self.indices)


@dataclass
class ReadingSpiral(WindowPattern):
    """Lots of reading and searching, very little changing."""

    kind: ClassVar[PatternKind] = PatternKind.READING_SPIRAL

    read_count: int = 0
    action_count: int = 0
    ratio: float = 0.0
    unique_files: int = 0


@dataclass
class ShotgunDebugging(WindowPattern):
    """Many different tools fired in quick succession."""

    kind: ClassVar[PatternKind] = PatternKind.SHOTGUN_DEBUGGING
    severity: ClassVar[Severity] = Severity.ERROR

    tool_variety: int = 0
    total_tools: int = 0
    duration_minutes: float = 0.0
    diversity_ratio: float = 0.0
    tool_velocity: float = 0.0


def autonomous_operations(session: Session) -> list[ToolOperation]:
    return [
        op
        for op in session.tool_operations
        if op.initiation_type is not InitiationType.USER_DIRECTED
    ]


def merge_spans(spans: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merge overlapping inclusive ``(start, end)`` spans."""
    merged: list[tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


@dataclass
class ReadingSpiralDetector(BaseDetector):
    name: ClassVar[str] = "reading_spiral"
    kind: ClassVar[PatternKind] = PatternKind.READING_SPIRAL

    def _counts(self, ops: list[ToolOperation]) -> tuple[int, int]:
        reads = sum(1 for op in ops if op.name in self.rules.read_tools)
        actions = sum(1 for op in ops if op.name in self.rules.action_tools)
        return reads, actions

    def _is_spiral(self, ops: list[ToolOperation]) -> bool:
        reads, actions = self._counts(ops)
        if reads < self.config.reading_spiral_min_reads:
            return False
        return reads / max(actions, 1) > self.config.reading_spiral_ratio

    def detect(self, session: Session) -> list[ReadingSpiral]:
        ops = autonomous_operations(session)
        size = self.config.reading_spiral_window
        if len(ops) < size:
            spans = [(0, len(ops) - 1)] if ops and self._is_spiral(ops) else []
        else:
            spans = [
                (i, i + size - 1)
                for i in range(len(ops) - size + 1)
                if self._is_spiral(ops[i : i + size])
            ]

        findings: list[ReadingSpiral] = []
        for start, end in merge_spans(spans):
            window = ops[start : end + 1]
            reads, actions = self._counts(window)
            ratio = reads / max(actions, 1)
            files = {
                op.target_file or str(op.input.get("pattern", ""))
                for op in window
                if op.name in self.rules.read_tools
            }
            findings.append(
                ReadingSpiral(
                    indices=[op.index for op in window],
                    read_count=reads,
                    action_count=actions,
                    ratio=round(ratio, 2),
                    unique_files=len(files - {""}),
                    provenance=self.provenance(
                        session, Confidence.HIGH if ratio > 10 else Confidence.MEDIUM
                    ),
                )
            )
        return findings


@dataclass
class ShotgunDebuggingDetector(BaseDetector):
    name: ClassVar[str] = "shotgun_debugging"
    kind: ClassVar[PatternKind] = PatternKind.SHOTGUN_DEBUGGING

    def _stats(self, ops: list[ToolOperation]) -> tuple[int, int, float, float]:
        """Variety, count, span in minutes (at least one) and velocity."""
        variety = len({op.name for op in ops})
        span = (ops[-1].timestamp - ops[0].timestamp).total_seconds() / 60
        minutes = max(span, 1.0)
        return variety, len(ops), span, len(ops) / minutes

    @staticmethod
    def _within(first: ToolOperation, last: ToolOperation, seconds: float) -> bool:
        return (last.timestamp - first.timestamp).total_seconds() <= seconds

    def _is_burst(self, ops: list[ToolOperation]) -> bool:
        variety, count, _, velocity = self._stats(ops)
        return (
            count >= self.config.shotgun_min_calls
            and variety >= self.config.shotgun_min_variety
            and velocity >= self.config.shotgun_min_velocity
        )

    def detect(self, session: Session) -> list[ShotgunDebugging]:
        ops = [op for op in autonomous_operations(session) if op.timestamp is not None]
        window_seconds = self.config.shotgun_window_minutes * 60
        spans: list[tuple[int, int]] = []

        end = 0
        for start in range(len(ops)):
            end = max(end, start)
            while end + 1 < len(ops) and self._within(ops[start], ops[end + 1], window_seconds):
                end += 1
            if self._is_burst(ops[start : end + 1]):
                spans.append((start, end))

        findings: list[ShotgunDebugging] = []
        for start, end in merge_spans(spans):
            window = ops[start : end + 1]
            variety, count, span, velocity = self._stats(window)
            findings.append(
                ShotgunDebugging(
                    indices=[op.index for op in window],
                    tool_variety=variety,
                    total_tools=count,
                    duration_minutes=round(span, 1),
                    diversity_ratio=round(variety / count, 2),
                    tool_velocity=round(velocity, 1),
                    provenance=self.provenance(
                        session, Confidence.HIGH if velocity > 5 else Confidence.MEDIUM
                    ),
                )
            )
        return findings


def detect_reading_spirals(session: Session, **kwargs: Any) -> list[ReadingSpiral]:
    return ReadingSpiralDetector(**kwargs).detect(session)


def detect_shotgun_debugging(session: Session, **kwargs: Any) -> list[ShotgunDebugging]:
    return ShotgunDebuggingDetector(**kwargs).detect(session)
