"""friction: Struggle detection for AI coding assistant logs.

Reads the JSONL conversation logs an assistant writes, rebuilds each
session, flags where it got stuck and keeps a cross-session record of
concepts, errors and the solutions that fixed them.

Example:
    from friction import AnalysisConfig, analyze_directory

    result = analyze_directory(Path("~/.claude/projects").expanduser())
    for session in result.struggling_sessions:
        print(session.session_id, session.struggle_indicators)
"""

from friction.config import AnalysisConfig, DetectorConfig, DurationConfig, KnowledgeConfig
from friction.errors import FrictionError, NoSessionsFoundError
from friction.knowledge import KnowledgeGraph, extract_session_knowledge
from friction.models import Session, ToolOperation
from friction.pipeline import BatchAnalyzer, BatchResult, analyze_directory, analyze_file
from friction.rules import RuleSet
from friction.session_builder import load_session

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "BatchAnalyzer",
    "BatchResult",
    "DetectorConfig",
    "DurationConfig",
    "FrictionError",
    "KnowledgeConfig",
    "KnowledgeGraph",
    "NoSessionsFoundError",
    "RuleSet",
    "Session",
    "ToolOperation",
    "__version__",
    "analyze_directory",
    "analyze_file",
    "extract_session_knowledge",
    "load_session",
]
