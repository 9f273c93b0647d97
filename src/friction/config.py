"""Configuration for friction analysis.

A run is driven by one explicit ``AnalysisConfig``, created before the
batch starts and passed down to every phase. Nothing reads configuration
from module-level state.

Example:
    config = AnalysisConfig()
    config.with_duration(max_gap_minutes=45).with_detectors(enabled=["simple_loop"])
    errors = config.validate()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from friction.knowledge.graph import DEFAULT_FILE_NAME
from friction.rules import RuleSet

DEFAULT_GRAPH_PATH = Path(".friction") / DEFAULT_FILE_NAME


@dataclass
class DurationConfig:
    """Settings for the active-duration calculation."""

    max_gap_minutes: float = 30
    min_active_seconds: float = 10


@dataclass
class DetectorConfig:
    """Thresholds for the struggle detectors.

    ``enabled`` is ``None`` for all registered detectors, otherwise a list
    of detector names.
    """

    enabled: list[str] | None = None

    simple_loop_min_count: int = 3
    # Drop loops that read as ordinary work (varied Grep output, multi-file edits)
    simple_loop_skip_productive: bool = True
    pattern_loop_min_length: int = 2
    pattern_loop_min_repeats: int = 2
    error_streak_min_count: int = 3
    stagnation_min_count: int = 2

    reading_spiral_ratio: float = 3.0
    reading_spiral_window: int = 10
    reading_spiral_min_reads: int = 6

    shotgun_window_minutes: float = 10.0
    shotgun_min_calls: int = 10
    shotgun_min_variety: int = 5
    shotgun_min_velocity: float = 3.0  # calls per minute

    context_switch_min_file_ops: int = 8
    context_switch_min_unique_files: int = 6
    context_switch_max_ops_per_file: float = 3.0
    context_switch_min_rate: float = 0.4

    long_session_threshold_seconds: float = 600
    trend_min_operations: int = 100
    trend_chunk_size: int = 50

    no_progress_min_calls: int = 10
    plan_file_marker: str = "plan"
    plan_edit_min_count: int = 2

    string_replace_min_failures: int = 3
    user_interruption_min_count: int = 2
    environment_error_min_count: int = 2
    error_density_min_rate: float = 0.25
    error_density_min_count: int = 5


@dataclass
class KnowledgeConfig:
    """Settings for the cross-session knowledge graph."""

    enabled: bool = True
    graph_path: Path = field(default_factory=lambda: DEFAULT_GRAPH_PATH)


@dataclass
class AnalysisConfig:
    """Complete configuration for one analysis run."""

    duration: DurationConfig = field(default_factory=DurationConfig)
    detectors: DetectorConfig = field(default_factory=DetectorConfig)
    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)
    rules: RuleSet = field(default_factory=RuleSet)

    # Conversation entries handed to the intent classifier
    context_window: int = 5
    skip_self_generated: bool = True

    def with_duration(
        self,
        max_gap_minutes: float | None = None,
        min_active_seconds: float | None = None,
    ) -> AnalysisConfig:
        """Configure the active-duration calculation."""
        if max_gap_minutes is not None:
            self.duration.max_gap_minutes = max_gap_minutes
        if min_active_seconds is not None:
            self.duration.min_active_seconds = min_active_seconds
        return self

    def with_detectors(self, enabled: list[str] | None = None, **kwargs: Any) -> AnalysisConfig:
        """Configure detector selection and thresholds."""
        if enabled is not None:
            self.detectors.enabled = list(enabled)
        for key, value in kwargs.items():
            if not hasattr(self.detectors, key):
                raise AttributeError(f"Unknown detector setting: {key}")
            setattr(self.detectors, key, value)
        return self

    def with_knowledge(
        self,
        graph_path: Path | None = None,
        enabled: bool | None = None,
    ) -> AnalysisConfig:
        """Configure the knowledge graph."""
        if graph_path is not None:
            self.knowledge.graph_path = graph_path
        if enabled is not None:
            self.knowledge.enabled = enabled
        return self

    def with_rules(self, rules: RuleSet) -> AnalysisConfig:
        self.rules = rules
        return self

    def validate(self) -> list[str]:
        """Validate the configuration.

        Returns a list of validation errors (empty if valid).
        """
        errors: list[str] = []

        if self.duration.max_gap_minutes <= 0:
            errors.append("max_gap_minutes must be positive")
        if self.duration.min_active_seconds < 0:
            errors.append("min_active_seconds must not be negative")
        if self.context_window < 1:
            errors.append("context_window must be at least 1")

        d = self.detectors
        if d.simple_loop_min_count < 2:
            errors.append("simple_loop_min_count must be at least 2")
        if d.pattern_loop_min_length < 2:
            errors.append("pattern_loop_min_length must be at least 2")
        if d.pattern_loop_min_repeats < 2:
            errors.append("pattern_loop_min_repeats must be at least 2")
        if d.error_streak_min_count < 2:
            errors.append("error_streak_min_count must be at least 2")
        if d.stagnation_min_count < 2:
            errors.append("stagnation_min_count must be at least 2")
        if d.reading_spiral_ratio <= 0:
            errors.append("reading_spiral_ratio must be positive")
        if d.reading_spiral_window < 2:
            errors.append("reading_spiral_window must be at least 2")
        if d.shotgun_window_minutes <= 0:
            errors.append("shotgun_window_minutes must be positive")
        if not 0 <= d.context_switch_min_rate <= 1:
            errors.append("context_switch_min_rate must be between 0 and 1")
        if d.long_session_threshold_seconds <= 0:
            errors.append("long_session_threshold_seconds must be positive")
        if d.trend_chunk_size < 1:
            errors.append("trend_chunk_size must be at least 1")
        if d.no_progress_min_calls < 1:
            errors.append("no_progress_min_calls must be at least 1")
        if not d.plan_file_marker:
            errors.append("plan_file_marker must not be empty")
        if d.plan_edit_min_count < 2:
            errors.append("plan_edit_min_count must be at least 2")
        if not 0 < d.error_density_min_rate <= 1:
            errors.append("error_density_min_rate must be between 0 and 1")

        if d.enabled is not None:
            from friction.detectors import list_detectors

            known = set(list_detectors())
            for name in d.enabled:
                if name not in known:
                    errors.append(f"Unknown detector: {name}")

        return errors
