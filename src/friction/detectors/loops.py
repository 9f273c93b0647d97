"""Loop detectors.

A simple loop repeats one call verbatim. An advanced loop repeats a
sequence of tool names, e.g. Edit, Bash, Edit, Bash.

Not every verbatim repeat is a struggle. Unless disabled, simple loops
that look like ordinary work are dropped: a Grep returning different
results each time, successful or multi-file Edits, TodoWrite updates,
and Reads next to an edit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, SpanPattern
from friction.models import Confidence, Session, ToolOperation

EDIT_TOOLS = frozenset({"Edit", "MultiEdit", "Write"})
OUTPUT_DIVERSITY_RATIO = 0.7
READ_EDIT_DISTANCE = 5

_FILENAME_PATTERNS = (
    re.compile(r"to (\w+\.\w+)", re.IGNORECASE),
    re.compile(r"in (\w+\.\w+)", re.IGNORECASE),
    re.compile(r"(\w+\.\w+)"),
)

_EDIT_ACTIONS = (
    (re.compile(r"added|created|implementing", re.IGNORECASE), "add"),
    (re.compile(r"updated|modified|changed", re.IGNORECASE), "update"),
    (re.compile(r"function|method", re.IGNORECASE), "function"),
    (re.compile(r"UI|interface|component", re.IGNORECASE), "ui"),
    (re.compile(r"initialization|init|setup", re.IGNORECASE), "init"),
    (re.compile(r"alert|notification", re.IGNORECASE), "feature"),
)


def _edited_file(output: str) -> str | None:
    """File name mentioned in an edit result, e.g. "Added a button to app.js"."""
    for pattern in _FILENAME_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1)
    return None


def _edit_action(output: str) -> str | None:
    for pattern, action in _EDIT_ACTIONS:
        if pattern.search(output):
            return action
    return None


def _edits_differ(prev: ToolOperation, op: ToolOperation) -> bool:
    prev_file, file = _edited_file(prev.output_text), _edited_file(op.output_text)
    if prev_file and file and prev_file != file:
        return True
    prev_action, action = _edit_action(prev.output_text), _edit_action(op.output_text)
    return bool(prev_action and action and prev_action != action)


def is_productive_loop(ops: list[ToolOperation], start: int, end: int) -> bool:
    """True if the repeated calls ``ops[start:end + 1]`` look like ordinary work."""
    name = ops[start].name
    loop_ops = ops[start : end + 1]

    if name == "TodoWrite":
        return True

    if name == "Grep":
        outputs = {op.output_text.strip() or "no-output" for op in loop_ops}
        return len(outputs) / len(loop_ops) >= OUTPUT_DIVERSITY_RATIO

    if name == "Edit":
        if any(_edits_differ(prev, op) for prev, op in zip(loop_ops, loop_ops[1:])):
            return True
        return all(not op.is_error for op in loop_ops)

    if name == "Read":
        nearby = ops[max(0, start - READ_EDIT_DISTANCE) : end + READ_EDIT_DISTANCE + 1]
        return any(op.name in EDIT_TOOLS for op in nearby)

    return False


@dataclass
class SimpleLoop(SpanPattern):
    """The same tool called consecutively with identical input."""

    kind: ClassVar[PatternKind] = PatternKind.SIMPLE_LOOP

    name: str
    input: dict[str, Any]
    count: int


@dataclass
class AdvancedLoop(SpanPattern):
    """A sequence of tool names repeated back to back."""

    kind: ClassVar[PatternKind] = PatternKind.ADVANCED_LOOP

    tool_sequence: list[str]
    count: int


@dataclass
class SimpleLoopDetector(BaseDetector):
    name: ClassVar[str] = "simple_loop"
    kind: ClassVar[PatternKind] = PatternKind.SIMPLE_LOOP

    def detect(self, session: Session) -> list[SimpleLoop]:
        ops = session.tool_operations
        findings: list[SimpleLoop] = []
        start = 0

        for i in range(1, len(ops) + 1):
            if i < len(ops) and (ops[i].name, ops[i].input) == (ops[start].name, ops[start].input):
                continue
            count = i - start
            if count >= self.config.simple_loop_min_count and not self._skipped(ops, start, i - 1):
                findings.append(
                    SimpleLoop(
                        start_index=start,
                        end_index=i - 1,
                        name=ops[start].name,
                        input=ops[start].input,
                        count=count,
                        provenance=self.provenance(session, Confidence.HIGH),
                    )
                )
            start = i

        return findings

    def _skipped(self, ops: list[ToolOperation], start: int, end: int) -> bool:
        return self.config.simple_loop_skip_productive and is_productive_loop(ops, start, end)


def _is_primitive(sequence: list[str]) -> bool:
    """True if the sequence is not itself a shorter unit repeated."""
    n = len(sequence)
    for unit in range(1, n // 2 + 1):
        if n % unit == 0 and sequence[:unit] * (n // unit) == sequence:
            return False
    return True


@dataclass
class AdvancedLoopDetector(BaseDetector):
    name: ClassVar[str] = "advanced_loop"
    kind: ClassVar[PatternKind] = PatternKind.ADVANCED_LOOP

    def detect(self, session: Session) -> list[AdvancedLoop]:
        names = [op.name for op in session.tool_operations]
        min_length = self.config.pattern_loop_min_length
        min_repeats = self.config.pattern_loop_min_repeats
        covered: set[int] = set()
        findings: list[AdvancedLoop] = []

        for length in range(min_length, len(names) // 2 + 1):
            i = 0
            while i + 2 * length <= len(names):
                sequence = names[i : i + length]
                if i in covered or not _is_primitive(sequence):
                    i += 1
                    continue

                count = 1
                end = i + length
                while end + length <= len(names) and names[end : end + length] == sequence:
                    count += 1
                    end += length

                if count < min_repeats:
                    i += 1
                    continue

                span = range(i, end)
                if not covered.isdisjoint(span):
                    i += 1
                    continue

                covered.update(span)
                findings.append(
                    AdvancedLoop(
                        start_index=i,
                        end_index=end - 1,
                        tool_sequence=sequence,
                        count=count,
                        provenance=self.provenance(
                            session, Confidence.HIGH if count > 2 else Confidence.MEDIUM
                        ),
                    )
                )
                i = end

        findings.sort(key=lambda f: f.start_index)
        return findings


def detect_simple_loops(session: Session, **kwargs: Any) -> list[SimpleLoop]:
    return SimpleLoopDetector(**kwargs).detect(session)


def detect_advanced_loops(session: Session, **kwargs: Any) -> list[AdvancedLoop]:
    return AdvancedLoopDetector(**kwargs).detect(session)
