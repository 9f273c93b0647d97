"""Cross-session knowledge graph.

A single JSON document holding, per session, the concepts, errors and
solutions extracted from it, plus inverted indexes from concept and
error strings to session ids:

    {
      "sessions": {"<id>": {"concepts": [...], "errors": [...],
                            "solutions": [...], "project": "...",
                            "timestamp": "..."}},
      "indexes": {"concepts": {"react": ["<id>"]}, "errors": {...}}
    }

The document is read on first access and cached. Every session added is
written back immediately by replacing the whole file, so a crash loses
at most the session in flight. Only one writer is supported at a time.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from friction.errors import KnowledgeGraphError
from friction.knowledge.extraction import SessionKnowledge

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "knowledge-connections.json"
CONCEPT_WEIGHT = 2
ERROR_WEIGHT = 3


@dataclass
class SimilarSession:
    session_id: str
    project: str
    concepts: list[str]
    errors: list[str]
    solutions: list[str]
    similarity_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "project": self.project,
            "concepts": self.concepts,
            "errors": self.errors,
            "solutions": self.solutions,
            "similarity_score": self.similarity_score,
        }


@dataclass
class SolutionMatch:
    solution: str
    session_id: str
    project: str
    error_matched: str
    relevance_score: float
    context: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "solution": self.solution,
            "session_id": self.session_id,
            "project": self.project,
            "error_matched": self.error_matched,
            "relevance_score": self.relevance_score,
            "context": self.context,
        }


def terms_match(a: str, b: str) -> bool:
    """Case-insensitive substring match in either direction."""
    a, b = a.lower(), b.lower()
    return a in b or b in a


def overlap_count(query: list[str], stored: list[str]) -> int:
    """Number of query terms matching at least one stored term."""
    return sum(1 for q in query if any(terms_match(q, s) for s in stored))


def _empty_document() -> dict[str, Any]:
    return {"sessions": {}, "indexes": {"concepts": {}, "errors": {}}}


class KnowledgeGraph:
    """Persistent concept/error/solution store with similarity queries."""

    def __init__(
        self,
        path: Path,
        clock: Callable[[], datetime] | None = None,
    ):
        self.path = Path(path)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._data: dict[str, Any] | None = None

    @property
    def sessions(self) -> dict[str, dict[str, Any]]:
        return self._ensure_loaded()["sessions"]

    @property
    def indexes(self) -> dict[str, dict[str, list[str]]]:
        return self._ensure_loaded()["indexes"]

    def _ensure_loaded(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        if not self.path.exists():
            self._data = _empty_document()
            return self._data

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise KnowledgeGraphError(self.path, str(e)) from e
        if not isinstance(data, dict):
            raise KnowledgeGraphError(self.path, "top level is not an object")

        data.setdefault("sessions", {})
        indexes = data.setdefault("indexes", {})
        indexes.setdefault("concepts", {})
        indexes.setdefault("errors", {})
        self._data = data
        logger.debug("Loaded %d session(s) from %s", len(data["sessions"]), self.path)
        return data

    def _save(self) -> None:
        data = self._ensure_loaded()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _unindex(self, session_id: str) -> None:
        for index in self.indexes.values():
            for key in list(index):
                ids = index[key]
                if session_id in ids:
                    ids.remove(session_id)
                if not ids:
                    del index[key]

    def _index(self, session_id: str, kind: str, values: list[str]) -> None:
        index = self.indexes[kind]
        for value in values:
            ids = index.setdefault(value, [])
            if session_id not in ids:
                ids.append(session_id)

    def add_session_connections(
        self,
        session_id: str,
        connections: SessionKnowledge | dict[str, Any],
    ) -> None:
        """Store a session's knowledge, update the indexes and persist.

        Adding a session id again replaces its previous entry.
        """
        if isinstance(connections, SessionKnowledge):
            connections = connections.to_dict()

        concepts = list(connections.get("concepts") or [])
        errors = list(connections.get("errors") or [])
        self._unindex(session_id)
        self.sessions[session_id] = {
            "concepts": concepts,
            "errors": errors,
            "solutions": list(connections.get("solutions") or []),
            "project": connections.get("project") or "unknown",
            "timestamp": self._clock().isoformat(),
        }
        self._index(session_id, "concepts", concepts)
        self._index(session_id, "errors", errors)
        self._save()

    def find_similar_sessions(
        self,
        concepts: list[str] | None = None,
        errors: list[str] | None = None,
    ) -> list[SimilarSession]:
        """Rank stored sessions by concept and error overlap with the query.

        Score is 2 per matching concept plus 3 per matching error; sessions
        scoring 0 are left out.
        """
        concepts = concepts or []
        errors = errors or []
        results = []

        for session_id, entry in self.sessions.items():
            score = CONCEPT_WEIGHT * overlap_count(concepts, entry.get("concepts", []))
            score += ERROR_WEIGHT * overlap_count(errors, entry.get("errors", []))
            if score > 0:
                results.append(
                    SimilarSession(
                        session_id=session_id,
                        project=entry.get("project", "unknown"),
                        concepts=entry.get("concepts", []),
                        errors=entry.get("errors", []),
                        solutions=entry.get("solutions", []),
                        similarity_score=score,
                    )
                )

        return sorted(results, key=lambda r: r.similarity_score, reverse=True)

    def get_solutions_for_error(
        self,
        error_pattern: str,
        context_concepts: list[str] | None = None,
    ) -> list[SolutionMatch]:
        """Solutions from sessions that hit a matching error.

        Each is ranked by the share of ``context_concepts`` the session
        also covers (1.0 when no context is given).
        """
        context_concepts = context_concepts or []
        matches = []

        for session_id, entry in self.sessions.items():
            matched = next(
                (e for e in entry.get("errors", []) if terms_match(e, error_pattern)), None
            )
            if matched is None:
                continue

            session_concepts = entry.get("concepts", [])
            if context_concepts:
                relevance = overlap_count(context_concepts, session_concepts) / len(
                    context_concepts
                )
            else:
                relevance = 1.0

            for solution in entry.get("solutions", []):
                matches.append(
                    SolutionMatch(
                        solution=solution,
                        session_id=session_id,
                        project=entry.get("project", "unknown"),
                        error_matched=matched,
                        relevance_score=relevance,
                        context=list(session_concepts),
                    )
                )

        return sorted(matches, key=lambda m: m.relevance_score, reverse=True)
