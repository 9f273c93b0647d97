"""Batch analysis of many log files.

Each file is parsed, built into a session, run through the detectors and
mined for knowledge. A file that fails is recorded and skipped; only a
batch that yields no sessions at all is an error.

Usage:
    from friction.pipeline import BatchAnalyzer

    analyzer = BatchAnalyzer(config, graph=KnowledgeGraph(path))
    result = analyzer.analyze(find_log_files(root))
    for session in result.sessions:
        print(session.session_id, result.findings[session.session_id])
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from friction.config import AnalysisConfig
from friction.detectors import StrugglePattern, apply_struggle_results, detect_struggles
from friction.discovery import find_log_files
from friction.errors import (
    AnalysisError,
    ErrorCollector,
    FrictionError,
    NoSessionsFoundError,
    ValidationError,
)
from friction.knowledge import KnowledgeGraph, extract_session_knowledge
from friction.logging import get_logger, log_event
from friction.models import Session
from friction.session_builder import load_session

logger = get_logger("pipeline")

# (current, total, message)
ProgressCallback = Callable[[int, int, str], None]


@dataclass
class FileFailure:
    """A file that could not be analyzed."""

    path: Path
    message: str
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "message": self.message, "category": self.category}


@dataclass
class BatchResult:
    """Outcome of analyzing a batch of log files."""

    sessions: list[Session] = field(default_factory=list)
    findings: dict[str, list[StrugglePattern]] = field(default_factory=dict)
    failures: list[FileFailure] = field(default_factory=list)
    file_count: int = 0
    skipped_self_generated: int = 0
    corrupted_entries: int = 0
    duration_ms: float = 0.0

    @property
    def struggling_sessions(self) -> list[Session]:
        return [s for s in self.sessions if s.has_struggle]

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_count": self.file_count,
            "session_count": len(self.sessions),
            "skipped_self_generated": self.skipped_self_generated,
            "corrupted_entries": self.corrupted_entries,
            "duration_ms": round(self.duration_ms, 2),
            "failures": [f.to_dict() for f in self.failures],
            "sessions": [
                {
                    **s.to_dict(),
                    "findings": [f.to_dict() for f in self.findings.get(s.session_id, [])],
                }
                for s in self.sessions
            ],
        }


def analyze_file(
    path: Path,
    config: AnalysisConfig | None = None,
) -> tuple[Session | None, list[StrugglePattern]]:
    """Analyze one log file.

    Returns the session (None for an empty file) and its findings. The
    session's struggle summary is filled in.

    Raises:
        LogReadError: If the file cannot be read
        AnalysisError: If a detector fails on the session
    """
    config = config or AnalysisConfig()
    session = load_session(path, config)
    if session is None:
        return None, []
    try:
        findings = detect_struggles(session, config)
    except Exception as e:
        # Plugin detectors may raise anything
        raise AnalysisError(str(e), phase="detect", session_id=session.session_id) from e
    apply_struggle_results(session, findings)
    return session, findings


class BatchAnalyzer:
    """Analyze log files one at a time, isolating per-file failures."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        graph: KnowledgeGraph | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            config: Analysis settings (defaults when omitted)
            graph: Knowledge graph to record sessions into; None disables it
            progress: Called before each file with (current, total, message)

        Raises:
            ValidationError: If the configuration is invalid
        """
        self.config = config or AnalysisConfig()
        errors = self.config.validate()
        if errors:
            raise ValidationError(
                f"Invalid configuration: {'; '.join(errors)}", context={"errors": errors}
            )
        self.graph = graph
        self.progress = progress

    def analyze(self, paths: Iterable[Path]) -> BatchResult:
        """Analyze every file in ``paths``.

        Raises:
            NoSessionsFoundError: If no file produced a session
        """
        paths = list(paths)
        result = BatchResult(file_count=len(paths))
        collector = ErrorCollector()
        start = time.perf_counter()

        for i, path in enumerate(paths, 1):
            if self.progress is not None:
                self.progress(i, len(paths), f"Analyzing session {i} of {len(paths)}")

            log = logger.with_context(file=str(path))
            try:
                with log.timed("analyze_file"):
                    session, findings = analyze_file(path, self.config)
            except Exception as e:
                error = collector.record(e, {"path": str(path)})
                result.failures.append(FileFailure(path, error.message, error.category.name))
                if isinstance(e, (FrictionError, OSError)):
                    log.warning("Skipping log file", error=error.message)
                else:
                    log.exception("Unexpected failure, skipping log file")
                continue

            if session is None:
                log.debug("Log file has no records")
                continue

            collector.success()
            result.corrupted_entries += session.corrupted_entry_count
            log = log.with_session(session.session_id)

            if session.is_self_generated and self.config.skip_self_generated:
                result.skipped_self_generated += 1
                log.debug("Skipping self-generated session")
                continue

            result.sessions.append(session)
            result.findings[session.session_id] = findings
            log.debug("Session analyzed", findings=len(findings))
            self._record_knowledge(session)

        result.duration_ms = (time.perf_counter() - start) * 1000

        if collector.has_errors():
            logger.info(collector.summary())
        log_event(
            "pipeline",
            "Batch analyzed",
            files=len(paths),
            sessions=len(result.sessions),
            failures=len(result.failures),
        )

        if not result.sessions:
            raise NoSessionsFoundError(
                len(paths),
                failed_count=len(result.failures),
                skipped_count=result.skipped_self_generated,
            )
        return result

    def _record_knowledge(self, session: Session) -> None:
        if self.graph is None or not self.config.knowledge.enabled:
            return
        knowledge = extract_session_knowledge(session, self.config.rules)
        try:
            self.graph.add_session_connections(session.session_id, knowledge)
        except (FrictionError, OSError) as e:
            log = logger.with_session(session.session_id).with_operation("record_knowledge")
            log.warning("Could not update knowledge graph", error=str(e))


def analyze_directory(
    root: Path,
    config: AnalysisConfig | None = None,
    graph: KnowledgeGraph | None = None,
    progress: ProgressCallback | None = None,
) -> BatchResult:
    """Discover the logs under ``root`` and analyze them."""
    return BatchAnalyzer(config, graph, progress).analyze(find_log_files(root))
