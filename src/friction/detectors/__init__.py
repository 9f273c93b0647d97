"""Struggle detectors.

Each detector reads a finished session and returns zero or more
findings. Detectors never see each other's output, so they can run in
any order:

- simple_loop: the same call repeated verbatim
- advanced_loop: a sequence of tools repeated back to back
- error_streak: consecutive failures of one tool
- stagnation: consecutive calls returning identical output
- reading_spiral: reading far more than changing
- shotgun_debugging: many different tools fired quickly
- redundant_sequence: re-reads after no-op edits, duplicate commands
- context_switching: hopping between many files
- long_session: sessions over a duration threshold

Supplementary detectors, on by default like the rest:

- no_progress: many calls and not one success
- plan_editing_loop: one plan file edited over and over
- error_pattern: session-wide failure patterns (interruptions, timeouts,
  failed replacements, environment problems, high error density)

Detectors can be registered via entry points or programmatically.

Entry point group: friction.detectors

Example plugin registration in pyproject.toml:
    [project.entry-points."friction.detectors"]
    my_detector = "my_package.detectors:MyDetector"
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Protocol

from friction.detectors.annotations import Annotation, annotations_for_tool, build_annotations
from friction.detectors.base import (
    BaseDetector,
    PatternKind,
    Provenance,
    Severity,
    StrugglePattern,
)
from friction.detectors.error_patterns import ErrorPattern, ErrorPatternDetector
from friction.detectors.exploration import (
    ReadingSpiral,
    ReadingSpiralDetector,
    ShotgunDebugging,
    ShotgunDebuggingDetector,
)
from friction.detectors.long_sessions import LongSession, LongSessionDetector
from friction.detectors.loops import (
    AdvancedLoop,
    AdvancedLoopDetector,
    SimpleLoop,
    SimpleLoopDetector,
)
from friction.detectors.progress import (
    NoProgress,
    NoProgressDetector,
    PlanEditingLoop,
    PlanEditingLoopDetector,
)
from friction.detectors.redundant import RedundantSequence, RedundantSequenceDetector
from friction.detectors.streaks import (
    ErrorStreak,
    ErrorStreakDetector,
    Stagnation,
    StagnationDetector,
)
from friction.detectors.switching import ContextSwitching, ContextSwitchingDetector

if TYPE_CHECKING:
    from friction.config import AnalysisConfig, DetectorConfig
    from friction.models import Session
    from friction.rules import RuleSet

logger = logging.getLogger(__name__)


class Detector(Protocol):
    """Protocol for struggle detectors."""

    def detect(self, session: Session) -> list[StrugglePattern]:
        """Analyze one session.

        Args:
            session: A fully built session

        Returns:
            Findings, possibly empty
        """
        ...


# Detector registry: name -> class accepting (config=..., rules=...)
_DETECTORS: dict[str, type] = {}


def register_detector(name: str, detector_class: type) -> None:
    """Register a struggle detector.

    Args:
        name: Detector name (e.g., "simple_loop")
        detector_class: Class implementing the Detector protocol, constructed
            with ``config`` and ``rules`` keyword arguments
    """
    _DETECTORS[name] = detector_class


def get_detector(
    name: str,
    config: DetectorConfig | None = None,
    rules: RuleSet | None = None,
) -> Detector:
    """Get a detector instance by name.

    Raises:
        ValueError: If detector not found
    """
    if name not in _DETECTORS:
        available = ", ".join(_DETECTORS.keys())
        raise ValueError(f"Detector '{name}' not found. Available: {available}")
    kwargs = {}
    if config is not None:
        kwargs["config"] = config
    if rules is not None:
        kwargs["rules"] = rules
    return _DETECTORS[name](**kwargs)


def list_detectors() -> list[str]:
    """List all registered detector names."""
    return list(_DETECTORS.keys())


def get_all_detectors(config: AnalysisConfig | None = None) -> list[Detector]:
    """Instances of the detectors enabled in ``config`` (all when unset)."""
    if config is None:
        return [get_detector(name) for name in _DETECTORS]
    names = config.detectors.enabled
    if names is None:
        names = list(_DETECTORS)
    return [get_detector(name, config.detectors, config.rules) for name in names]


def detect_struggles(
    session: Session,
    config: AnalysisConfig | None = None,
) -> list[StrugglePattern]:
    """Run every enabled detector over a session."""
    findings: list[StrugglePattern] = []
    for detector in get_all_detectors(config):
        findings.extend(detector.detect(session))
    return findings


def apply_struggle_results(session: Session, findings: list[StrugglePattern]) -> Session:
    """Record on the session which kinds of struggle were found."""
    kinds: list[str] = []
    for finding in findings:
        if finding.kind.value not in kinds:
            kinds.append(finding.kind.value)
    session.has_struggle = bool(findings)
    session.struggle_indicators = kinds
    return session


def _discover_entry_points() -> None:
    """Discover and register detectors from entry points."""
    for ep in entry_points(group="friction.detectors"):
        if ep.name in _DETECTORS:
            continue
        try:
            register_detector(ep.name, ep.load())
        except Exception as e:
            logger.warning("Failed to load detector plugin %s: %s", ep.name, e)


def _register_builtin_detectors() -> None:
    """Register built-in detectors."""
    for cls in (
        SimpleLoopDetector,
        AdvancedLoopDetector,
        ErrorStreakDetector,
        StagnationDetector,
        ReadingSpiralDetector,
        ShotgunDebuggingDetector,
        RedundantSequenceDetector,
        ContextSwitchingDetector,
        LongSessionDetector,
        NoProgressDetector,
        PlanEditingLoopDetector,
        ErrorPatternDetector,
    ):
        register_detector(cls.name, cls)


# Auto-register on import
_register_builtin_detectors()
_discover_entry_points()

__all__ = [
    "AdvancedLoop",
    "AdvancedLoopDetector",
    "Annotation",
    "BaseDetector",
    "ContextSwitching",
    "ContextSwitchingDetector",
    "Detector",
    "ErrorPattern",
    "ErrorPatternDetector",
    "ErrorStreak",
    "ErrorStreakDetector",
    "LongSession",
    "LongSessionDetector",
    "NoProgress",
    "NoProgressDetector",
    "PatternKind",
    "PlanEditingLoop",
    "PlanEditingLoopDetector",
    "Provenance",
    "ReadingSpiral",
    "ReadingSpiralDetector",
    "RedundantSequence",
    "RedundantSequenceDetector",
    "Severity",
    "ShotgunDebugging",
    "ShotgunDebuggingDetector",
    "SimpleLoop",
    "SimpleLoopDetector",
    "Stagnation",
    "StagnationDetector",
    "StrugglePattern",
    "annotations_for_tool",
    "apply_struggle_results",
    "build_annotations",
    "detect_struggles",
    "get_all_detectors",
    "get_detector",
    "list_detectors",
    "register_detector",
]
