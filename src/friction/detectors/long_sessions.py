"""Long session detection (informational).

A long session with enough tool calls also carries a struggle trend:
the calls are cut into fixed-size chunks, each chunk gets a score from
its error rate, tool switching and tool variety, and the last third of
the chunks is compared with the first third.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, Severity, StrugglePattern
from friction.models import Confidence, Session, ToolOperation

HIGH_VARIETY_TOOLS = 8
VARIETY_PENALTY = 0.5
DEGRADING_FACTOR = 1.3
IMPROVING_FACTOR = 0.7
MIN_TREND_CHUNKS = 3


class Trend(Enum):
    DEGRADING = "degrading"
    IMPROVING = "improving"
    STEADY = "steady"
    TOO_SHORT = "too_short"


@dataclass(frozen=True)
class ChunkMetrics:
    chunk_index: int
    operations: int
    error_rate: float
    switch_rate: float
    tool_variety: int

    @property
    def struggle_score(self) -> float:
        penalty = VARIETY_PENALTY if self.tool_variety > HIGH_VARIETY_TOOLS else 0.0
        return self.error_rate * 2 + self.switch_rate + penalty

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_index": self.chunk_index,
            "operations": self.operations,
            "error_rate": self.error_rate,
            "switch_rate": self.switch_rate,
            "tool_variety": self.tool_variety,
            "struggle_score": self.struggle_score,
        }


@dataclass
class StruggleTrend:
    """How struggle changed from the start of a session to its end."""

    trend: Trend
    chunks: list[ChunkMetrics] = field(default_factory=list)
    first_third_score: float = 0.0
    last_third_score: float = 0.0

    @property
    def change_score(self) -> float:
        return self.last_third_score - self.first_third_score

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend.value,
            "chunks": [c.to_dict() for c in self.chunks],
            "first_third_score": self.first_third_score,
            "last_third_score": self.last_third_score,
            "change_score": self.change_score,
        }


def _chunk_metrics(index: int, chunk: list[ToolOperation]) -> ChunkMetrics:
    errors = sum(1 for op in chunk if op.is_error)
    switches = sum(1 for prev, op in zip(chunk, chunk[1:]) if prev.name != op.name)
    return ChunkMetrics(
        chunk_index=index,
        operations=len(chunk),
        error_rate=errors / len(chunk),
        switch_rate=switches / len(chunk),
        tool_variety=len({op.name for op in chunk}),
    )


def analyze_struggle_trend(
    ops: list[ToolOperation],
    min_operations: int = 100,
    chunk_size: int = 50,
) -> StruggleTrend | None:
    """Compare struggle early and late in a session.

    Returns None below ``min_operations`` calls, and a TOO_SHORT trend
    when there are fewer than three chunks to compare.
    """
    if len(ops) < min_operations or not ops:
        return None

    chunks = [
        _chunk_metrics(n, ops[i : i + chunk_size])
        for n, i in enumerate(range(0, len(ops), chunk_size))
    ]
    if len(chunks) < MIN_TREND_CHUNKS:
        return StruggleTrend(Trend.TOO_SHORT, chunks)

    third = len(chunks) // 3
    first = sum(c.struggle_score for c in chunks[:third]) / third
    last = sum(c.struggle_score for c in chunks[-third:]) / third

    if last > first * DEGRADING_FACTOR:
        trend = Trend.DEGRADING
    elif last < first * IMPROVING_FACTOR:
        trend = Trend.IMPROVING
    else:
        trend = Trend.STEADY
    return StruggleTrend(trend, chunks, first, last)


@dataclass
class LongSession(StrugglePattern):
    """A session whose wall-clock span exceeds the threshold."""

    kind: ClassVar[PatternKind] = PatternKind.LONG_SESSION
    severity: ClassVar[Severity] = Severity.INFO

    duration_seconds: float
    threshold_seconds: float
    active_duration_seconds: float | None = None
    tool_count: int = 0
    trend: StruggleTrend | None = None


@dataclass
class LongSessionDetector(BaseDetector):
    name: ClassVar[str] = "long_session"
    kind: ClassVar[PatternKind] = PatternKind.LONG_SESSION

    def detect(self, session: Session) -> list[LongSession]:
        threshold = self.config.long_session_threshold_seconds
        if not session.duration_seconds or session.duration_seconds <= threshold:
            return []

        return [
            LongSession(
                duration_seconds=session.duration_seconds,
                threshold_seconds=threshold,
                active_duration_seconds=session.active_duration_seconds,
                tool_count=len(session.tool_operations),
                trend=analyze_struggle_trend(
                    session.tool_operations,
                    self.config.trend_min_operations,
                    self.config.trend_chunk_size,
                ),
                provenance=self.provenance(session, Confidence.HIGH),
            )
        ]


def detect_long_sessions(session: Session, **kwargs: Any) -> list[LongSession]:
    return LongSessionDetector(**kwargs).detect(session)
