"""Break-aware active duration.

Wall-clock span overstates how long someone worked when a session was
left open over lunch or overnight. Consecutive entries separated by more
than ``max_gap_minutes`` split the session into active segments; only
segments longer than ``min_active_seconds`` count toward the total.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from friction.models import ActiveSegment, Confidence, DurationAnalysis, ExcludedGap

DEFAULT_MAX_GAP_MINUTES = 30
DEFAULT_MIN_ACTIVE_SECONDS = 10

# Gaps longer than this are tagged as a break rather than a pause
BREAK_THRESHOLD_MINUTES = 60
LONG_SESSION_SECONDS = 3600
LOW_RATIO = 0.2
MIN_SUPPORTING_ENTRIES = 10


class Timestamped(Protocol):
    timestamp: datetime | None


def _format_gap(minutes: int) -> str:
    if minutes > 60:
        return f"{round(minutes / 60)}h"
    return f"{minutes}m"


def _analysis_text(gaps: list[ExcludedGap], reduction: float) -> str:
    if not gaps:
        return "Continuous session with no significant breaks detected"

    total = sum(g.duration_minutes for g in gaps)
    longest = max(g.duration_minutes for g in gaps)
    plural = "s" if len(gaps) > 1 else ""
    text = (
        f"Detected {len(gaps)} break{plural} totaling {total} minutes"
        f" (longest: {_format_gap(longest)})"
    )
    if reduction > 0.5:
        text += ". Significant improvement in active duration accuracy"
    elif reduction > 0.2:
        text += ". Moderate improvement in duration accuracy"
    else:
        text += ". Minor adjustments to duration"
    return text


def _empty(reason: str, total_messages: int) -> DurationAnalysis:
    return DurationAnalysis(
        active_duration_seconds=0,
        confidence=Confidence.LOW,
        metadata={"reason": reason, "total_messages": total_messages},
    )


def calculate_active_duration(
    entries: Sequence[Timestamped],
    max_gap_minutes: float = DEFAULT_MAX_GAP_MINUTES,
    min_active_seconds: float = DEFAULT_MIN_ACTIVE_SECONDS,
) -> DurationAnalysis:
    """Compute the active duration of a sequence of timestamped entries.

    Entries without a timestamp are ignored. Fewer than two timestamped
    entries yield a zero duration with low confidence.
    """
    if not entries:
        return _empty("no conversation data", 0)

    stamps = sorted(e.timestamp for e in entries if e.timestamp is not None)
    if len(stamps) < 2:
        return _empty("insufficient timestamp data", len(stamps))

    max_gap_seconds = max_gap_minutes * 60
    segments: list[ActiveSegment] = []
    gaps: list[ExcludedGap] = []
    segment_start = 0

    def close_segment(first: int, last: int) -> None:
        duration = (stamps[last] - stamps[first]).total_seconds()
        if duration > min_active_seconds:
            segments.append(
                ActiveSegment(
                    start=stamps[first],
                    end=stamps[last],
                    duration_seconds=duration,
                    message_count=last - first + 1,
                )
            )

    for i in range(1, len(stamps)):
        gap_seconds = (stamps[i] - stamps[i - 1]).total_seconds()
        if gap_seconds <= max_gap_seconds:
            continue

        close_segment(segment_start, i - 1)
        gap_minutes = round(gap_seconds / 60)
        gaps.append(
            ExcludedGap(
                start=stamps[i - 1],
                end=stamps[i],
                duration_minutes=gap_minutes,
                reason=(
                    "likely break/overnight"
                    if gap_seconds / 60 > BREAK_THRESHOLD_MINUTES
                    else "extended pause"
                ),
            )
        )
        segment_start = i

    close_segment(segment_start, len(stamps) - 1)

    active = sum(s.duration_seconds for s in segments)
    raw = (stamps[-1] - stamps[0]).total_seconds()
    ratio = active / raw if raw > 0 else 1.0

    confidence = Confidence.HIGH
    if (
        (raw > LONG_SESSION_SECONDS and not gaps)
        or ratio < LOW_RATIO
        or len(stamps) < MIN_SUPPORTING_ENTRIES
    ):
        confidence = Confidence.MEDIUM

    reduction = 1 - ratio
    metadata: dict[str, Any] = {
        "total_messages": len(stamps),
        "active_segment_count": len(segments),
        "excluded_gap_count": len(gaps),
        "time_reduction_percent": round(reduction * 100),
        "max_gap_minutes": max_gap_minutes,
        "analysis": _analysis_text(gaps, reduction),
    }

    return DurationAnalysis(
        active_duration_seconds=active,
        active_segments=tuple(segments),
        excluded_gaps=tuple(gaps),
        confidence=confidence,
        metadata=metadata,
    )


CONFIDENCE_MARKS = {Confidence.HIGH: "✓", Confidence.MEDIUM: "~", Confidence.LOW: "?"}


def format_active_duration(analysis: DurationAnalysis | None) -> str:
    """Format an active duration for display, e.g. ``"1h 5m ✓"`` or ``"4m 30s ~"``.

    Seconds are shown only for durations under an hour. The trailing mark
    reflects the confidence label.
    """
    if analysis is None or analysis.active_duration_seconds <= 0:
        return "0m (no active time detected)"

    seconds = int(analysis.active_duration_seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs and not hours:
        parts.append(f"{secs}s")
    return f"{' '.join(parts)} {CONFIDENCE_MARKS[analysis.confidence]}"
