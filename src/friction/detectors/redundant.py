"""Redundant sequence detection.

Two shapes count as redundant: re-reading a file straight after an edit
that changed nothing, and running the same shell command twice in a row
after it already succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, StrugglePattern
from friction.models import Confidence, Session, ToolOperation

UNNECESSARY_RE_READ = "unnecessary_re_read"
DUPLICATE_COMMAND = "duplicate_command"

EDIT_TOOLS = ("Edit", "MultiEdit")


@dataclass
class RedundantSequence(StrugglePattern):
    kind: ClassVar[PatternKind] = PatternKind.REDUNDANT_SEQUENCE

    sequence_type: str
    indices: list[int]
    tools: list[str]
    file_path: str | None = None
    command: str | None = None

    @property
    def tool_indices(self) -> list[int]:
        return list(self.indices)


def _is_noop_edit(op: ToolOperation) -> bool:
    old = op.input.get("old_string")
    new = op.input.get("new_string")
    return old is not None and new is not None and old == new


@dataclass
class RedundantSequenceDetector(BaseDetector):
    name: ClassVar[str] = "redundant_sequence"
    kind: ClassVar[PatternKind] = PatternKind.REDUNDANT_SEQUENCE

    def _is_git_workflow(self, command: str) -> bool:
        return any(command.startswith(prefix) for prefix in self.rules.git_workflow_prefixes)

    def detect(self, session: Session) -> list[RedundantSequence]:
        ops = session.tool_operations
        findings: list[RedundantSequence] = []

        for i in range(len(ops) - 2):
            first, edit, second = ops[i : i + 3]
            path = first.target_file
            if (
                first.name == "Read"
                and edit.name in EDIT_TOOLS
                and second.name == "Read"
                and path is not None
                and edit.target_file == path
                and second.target_file == path
                and _is_noop_edit(edit)
            ):
                findings.append(
                    RedundantSequence(
                        sequence_type=UNNECESSARY_RE_READ,
                        indices=[i, i + 1, i + 2],
                        tools=[first.name, edit.name, second.name],
                        file_path=path,
                        provenance=self.provenance(session, Confidence.HIGH),
                    )
                )

        for i in range(len(ops) - 1):
            first, second = ops[i], ops[i + 1]
            command = first.command
            if (
                first.name == "Bash"
                and second.name == "Bash"
                and command
                and second.command == command
                and not first.is_error
                and not self._is_git_workflow(command)
            ):
                findings.append(
                    RedundantSequence(
                        sequence_type=DUPLICATE_COMMAND,
                        indices=[i, i + 1],
                        tools=[first.name, second.name],
                        command=command,
                        provenance=self.provenance(session, Confidence.MEDIUM),
                    )
                )

        findings.sort(key=lambda f: f.indices[0])
        return findings


def detect_redundant_sequences(session: Session, **kwargs: Any) -> list[RedundantSequence]:
    return RedundantSequenceDetector(**kwargs).detect(session)
