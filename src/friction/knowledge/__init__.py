"""Cross-session knowledge: extraction from sessions and the persisted graph."""

from friction.knowledge.extraction import SessionKnowledge, extract_session_knowledge
from friction.knowledge.graph import (
    DEFAULT_FILE_NAME,
    KnowledgeGraph,
    SimilarSession,
    SolutionMatch,
)

__all__ = [
    "DEFAULT_FILE_NAME",
    "KnowledgeGraph",
    "SessionKnowledge",
    "SimilarSession",
    "SolutionMatch",
    "extract_session_knowledge",
]
