"""Detectors for sessions that do not move forward.

- no_progress: many tool calls and not one of them succeeded
- plan_editing_loop: the same plan file edited again and again with
  nothing else edited in between
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, Severity, StrugglePattern
from friction.models import Confidence, Session, ToolOperation

PLAN_EDIT_TOOLS = frozenset({"Edit", "MultiEdit"})


@dataclass
class NoProgress(StrugglePattern):
    """A session whose tool calls all failed."""

    kind: ClassVar[PatternKind] = PatternKind.NO_PROGRESS
    severity: ClassVar[Severity] = Severity.ERROR

    tool_count: int


@dataclass
class PlanEditingLoop(StrugglePattern):
    """Back-to-back edits of one plan file."""

    kind: ClassVar[PatternKind] = PatternKind.PLAN_EDITING_LOOP

    file_path: str
    edit_indices: list[int]
    count: int

    @property
    def tool_indices(self) -> list[int]:
        return list(self.edit_indices)


@dataclass
class NoProgressDetector(BaseDetector):
    name: ClassVar[str] = "no_progress"
    kind: ClassVar[PatternKind] = PatternKind.NO_PROGRESS

    def detect(self, session: Session) -> list[NoProgress]:
        ops = session.tool_operations
        if len(ops) < self.config.no_progress_min_calls:
            return []
        if any(not op.is_error for op in ops):
            return []
        return [
            NoProgress(
                tool_count=len(ops),
                provenance=self.provenance(session, Confidence.HIGH),
            )
        ]


@dataclass
class PlanEditingLoopDetector(BaseDetector):
    """Edits of plan files, grouped into runs on the same file.

    Only plan-file edits are considered when deciding what is "back to
    back", so a Read or Bash call between two edits of the same plan does
    not break the run; an edit of a different plan file does.
    """

    name: ClassVar[str] = "plan_editing_loop"
    kind: ClassVar[PatternKind] = PatternKind.PLAN_EDITING_LOOP

    def _is_plan_edit(self, op: ToolOperation) -> bool:
        if op.name not in PLAN_EDIT_TOOLS or not op.target_file:
            return False
        return self.config.plan_file_marker.lower() in PurePath(op.target_file).name.lower()

    def detect(self, session: Session) -> list[PlanEditingLoop]:
        edits = [op for op in session.tool_operations if self._is_plan_edit(op)]
        findings: list[PlanEditingLoop] = []
        run: list[ToolOperation] = []

        for op in [*edits, None]:
            if op is not None and run and op.target_file == run[0].target_file:
                run.append(op)
                continue
            if len(run) >= self.config.plan_edit_min_count:
                findings.append(
                    PlanEditingLoop(
                        file_path=run[0].target_file,
                        edit_indices=[e.index for e in run],
                        count=len(run),
                        provenance=self.provenance(
                            session, Confidence.HIGH if len(run) > 2 else Confidence.MEDIUM
                        ),
                    )
                )
            run = [op] if op is not None else []

        return findings


def detect_no_progress(session: Session, **kwargs: Any) -> list[NoProgress]:
    return NoProgressDetector(**kwargs).detect(session)


def detect_plan_editing_loops(session: Session, **kwargs: Any) -> list[PlanEditingLoop]:
    return PlanEditingLoopDetector(**kwargs).detect(session)
