"""Detectors for runs of failing or unproductive calls."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, Severity, SpanPattern
from friction.models import Confidence, Session, ToolOperation


@dataclass
class ErrorStreak(SpanPattern):
    """Consecutive failures of the same tool."""

    kind: ClassVar[PatternKind] = PatternKind.ERROR_STREAK
    severity: ClassVar[Severity] = Severity.ERROR

    name: str
    count: int


@dataclass
class Stagnation(SpanPattern):
    """Consecutive calls to one tool that returned exactly the same output."""

    kind: ClassVar[PatternKind] = PatternKind.STAGNATION

    name: str
    count: int
    output_size: int


def _output_key(op: ToolOperation) -> str | None:
    """Canonical serialization of an output, or None when there is nothing to compare."""
    if op.output is None or op.output == "" or op.output == []:
        return None
    if isinstance(op.output, str):
        return op.output
    return json.dumps(op.output, sort_keys=True, ensure_ascii=False, default=str)


@dataclass
class ErrorStreakDetector(BaseDetector):
    name: ClassVar[str] = "error_streak"
    kind: ClassVar[PatternKind] = PatternKind.ERROR_STREAK

    def detect(self, session: Session) -> list[ErrorStreak]:
        ops = session.tool_operations
        findings: list[ErrorStreak] = []
        i = 0

        while i < len(ops):
            if not ops[i].is_error:
                i += 1
                continue
            end = i
            while end + 1 < len(ops) and ops[end + 1].is_error and ops[end + 1].name == ops[i].name:
                end += 1
            count = end - i + 1
            if count >= self.config.error_streak_min_count:
                findings.append(
                    ErrorStreak(
                        start_index=i,
                        end_index=end,
                        name=ops[i].name,
                        count=count,
                        provenance=self.provenance(session, Confidence.HIGH),
                    )
                )
            i = end + 1

        return findings


@dataclass
class StagnationDetector(BaseDetector):
    name: ClassVar[str] = "stagnation"
    kind: ClassVar[PatternKind] = PatternKind.STAGNATION

    def detect(self, session: Session) -> list[Stagnation]:
        ops = session.tool_operations
        keys = [_output_key(op) for op in ops]
        findings: list[Stagnation] = []
        i = 0

        while i < len(ops):
            if keys[i] is None:
                i += 1
                continue
            end = i
            while (
                end + 1 < len(ops)
                and ops[end + 1].name == ops[i].name
                and keys[end + 1] == keys[i]
            ):
                end += 1
            count = end - i + 1
            if count >= self.config.stagnation_min_count:
                findings.append(
                    Stagnation(
                        start_index=i,
                        end_index=end,
                        name=ops[i].name,
                        count=count,
                        output_size=ops[i].output_size,
                        provenance=self.provenance(
                            session, Confidence.HIGH if count > 2 else Confidence.MEDIUM
                        ),
                    )
                )
            i = end + 1

        return findings


def detect_error_streaks(session: Session, **kwargs: Any) -> list[ErrorStreak]:
    return ErrorStreakDetector(**kwargs).detect(session)


def detect_stagnation(session: Session, **kwargs: Any) -> list[Stagnation]:
    return StagnationDetector(**kwargs).detect(session)
