"""Context switching detection."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, StrugglePattern
from friction.models import Confidence, Session


@dataclass
class ContextSwitching(StrugglePattern):
    """Hopping between many files without finishing work in any of them."""

    kind: ClassVar[PatternKind] = PatternKind.CONTEXT_SWITCHING

    unique_files: int
    total_file_ops: int
    switches: int
    avg_ops_per_file: float
    switch_rate: float
    top_files: list[dict[str, Any]] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)

    @property
    def tool_indices(self) -> list[int]:
        return list(self.indices)


@dataclass
class ContextSwitchingDetector(BaseDetector):
    name: ClassVar[str] = "context_switching"
    kind: ClassVar[PatternKind] = PatternKind.CONTEXT_SWITCHING

    def detect(self, session: Session) -> list[ContextSwitching]:
        file_ops = [
            op
            for op in session.tool_operations
            if op.name in self.rules.file_tools and op.target_file
        ]
        if len(file_ops) < self.config.context_switch_min_file_ops:
            return []

        frequency: Counter[str] = Counter()
        switches = 0
        current: str | None = None
        for op in file_ops:
            path = op.target_file
            frequency[path] += 1
            if current is not None and path != current:
                switches += 1
            current = path

        unique = len(frequency)
        avg_ops = len(file_ops) / unique
        rate = switches / len(file_ops)

        if (
            unique < self.config.context_switch_min_unique_files
            or avg_ops >= self.config.context_switch_max_ops_per_file
            or rate <= self.config.context_switch_min_rate
        ):
            return []

        return [
            ContextSwitching(
                unique_files=unique,
                total_file_ops=len(file_ops),
                switches=switches,
                avg_ops_per_file=round(avg_ops, 1),
                switch_rate=round(rate, 2),
                top_files=[
                    {"file": PurePosixPath(path).name, "count": count}
                    for path, count in frequency.most_common(3)
                ],
                indices=[op.index for op in file_ops],
                provenance=self.provenance(
                    session, Confidence.HIGH if rate > 0.6 else Confidence.MEDIUM
                ),
            )
        ]


def detect_context_switching(session: Session, **kwargs: Any) -> list[ContextSwitching]:
    return ContextSwitchingDetector(**kwargs).detect(session)
