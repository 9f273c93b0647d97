"""Session construction from parsed log records.

Turns the records of one log file into a ``Session``: the ordered
conversation, tool calls correlated with their results, timestamps,
counts and data-quality notes.
"""

from __future__ import annotations

import logging
from pathlib import Path

from friction.config import AnalysisConfig
from friction.duration import calculate_active_duration
from friction.intent import classify_tool_intent, find_preceding_user_message
from friction.models import ContextMetadata, Session, ToolOperation, summarize
from friction.parsing import LogRecord, ParseResult, TextContent, ToolUseContent, parse_log_file
from friction.rules import RuleSet

logger = logging.getLogger(__name__)

CWD_LOOKAHEAD = 5
SUMMARY_PROJECT = "summary-session"
GENERIC_LOG_DIRS = {"logs", "log", "sessions"}

SELF_GENERATED_ISSUE = (
    "Programmatically triggered analysis session (excluded from user session analysis)"
)
MISSING_DURATION_ISSUE = "Could not determine session duration due to missing timestamps."


def _stem(path: Path) -> str:
    return path.name.removesuffix(".jsonl")


def _project_from_encoded_dir(dirname: str) -> str | None:
    """Recover a project name from an encoded path like ``-Users-me-development-my-app``."""
    cleaned = dirname[1:]
    segments = cleaned.split("-")
    if len(segments) >= 4 and "development" in segments:
        idx = segments.index("development")
        if idx < len(segments) - 1:
            return "-".join(segments[idx + 1 :])
    if "development-" in cleaned:
        return cleaned.split("development-", 1)[1]
    return None


def resolve_project_name(records: list[LogRecord], path: Path) -> str:
    """Work out which project a log belongs to.

    Tried in order: a ``cwd`` in the first few records, the
    summary-only marker, then the directory layout around the file.
    """
    for record in records[:CWD_LOOKAHEAD]:
        if record.cwd and record.cwd.strip():
            name = Path(record.cwd.strip()).name
            if name and name not in (".", ".."):
                return name

    if records and all(r.is_summary for r in records):
        return SUMMARY_PROJECT

    parent = path.parent.name
    if not parent:
        return _stem(path)

    if parent in GENERIC_LOG_DIRS:
        grandparent = path.parent.parent.name
        if grandparent and not grandparent.startswith("-") and grandparent not in (".", ".."):
            return grandparent
        return _stem(path)

    if parent.startswith("-"):
        return _project_from_encoded_dir(parent) or _stem(path)

    return parent


def _first_text(record: LogRecord) -> str:
    for item in record.content:
        if isinstance(item, TextContent):
            return item.text
    return ""


def is_self_generated(conversation: list[LogRecord], rules: RuleSet) -> bool:
    """Check user messages for the signatures of programmatic analysis prompts."""
    for record in conversation:
        if record.type != "user":
            continue
        text = _first_text(record)
        if not text:
            continue
        for signature in rules.self_generated_signatures:
            if signature and all(phrase in text for phrase in signature):
                return True
    return False


def normalize_session(session: Session) -> Session:
    """Bring a session to the current schema.

    Only one log schema exists today, so this only marks the session.
    """
    session.is_normalized = True
    return session


def build_session(
    path: Path,
    records: list[LogRecord],
    config: AnalysisConfig | None = None,
    corrupted_count: int = 0,
) -> Session | None:
    """Build a session from the records of one file.

    Returns None when the file has no usable records.
    """
    if not records:
        return None

    config = config or AnalysisConfig()
    session = Session(
        session_id=_stem(path),
        file_path=path,
        project_name=resolve_project_name(records, path),
        entry_count=len(records),
        corrupted_entry_count=corrupted_count,
    )
    if corrupted_count:
        session.add_issue(f"{corrupted_count} corrupted line(s) skipped while parsing.")

    pending: dict[str, ToolUseContent] = {}

    for record in records:
        if record.timestamp is not None:
            if session.start_time is None or record.timestamp < session.start_time:
                session.start_time = record.timestamp
            if session.end_time is None or record.timestamp > session.end_time:
                session.end_time = record.timestamp
        elif not record.is_summary:
            session.add_issue(f"Missing timestamp in an entry (type: {record.type}).")

        # Snapshot before appending so a result never sees its own record as context
        window = session.conversation[-config.context_window :]

        if not record.is_summary:
            session.conversation.append(record)

        if record.type == "assistant":
            for tool_use in record.tool_uses:
                pending[tool_use.id] = tool_use

        if record.type != "user":
            continue

        for result in record.tool_results:
            tool_use = pending.pop(result.tool_use_id, None)
            if tool_use is None:
                continue

            status = (record.tool_use_result or {}).get("status")
            if status not in ("success", "error"):
                status = "error" if result.is_error else "success"

            preceding = find_preceding_user_message(window)
            session.tool_operations.append(
                ToolOperation(
                    name=tool_use.name,
                    input=tool_use.input,
                    output=result.content,
                    status=status,
                    tool_use_id=tool_use.id,
                    index=len(session.tool_operations),
                    timestamp=record.timestamp,
                    context=ContextMetadata(
                        initiation_type=classify_tool_intent(tool_use.name, window, config.rules),
                        window=list(window),
                        preceding_user_message=summarize(preceding.text) if preceding else None,
                    ),
                    result_metadata=dict(record.tool_use_result or {}),
                )
            )

    if pending:
        logger.debug("%d tool call(s) without a result in %s", len(pending), path)

    session.human_message_count = sum(1 for r in session.conversation if r.type == "user")
    session.assistant_message_count = sum(
        1 for r in session.conversation if r.type == "assistant"
    )

    if is_self_generated(session.conversation, config.rules):
        session.is_self_generated = True
        session.add_issue(SELF_GENERATED_ISSUE)

    if session.start_time is not None and session.end_time is not None:
        session.duration_seconds = (session.end_time - session.start_time).total_seconds()
    elif session.conversation:
        session.add_issue(MISSING_DURATION_ISSUE)

    _apply_active_duration(session, config)
    return session


def _apply_active_duration(session: Session, config: AnalysisConfig) -> None:
    raw = session.duration_seconds or 0
    try:
        analysis = calculate_active_duration(
            session.conversation,
            max_gap_minutes=config.duration.max_gap_minutes,
            min_active_seconds=config.duration.min_active_seconds,
        )
    except Exception as e:
        logger.warning("Active duration failed for %s: %s", session.session_id, e)
        session.add_issue(f"Active duration calculation failed: {e}")
        session.active_duration_seconds = raw
        return

    session.duration_analysis = analysis
    session.active_duration_seconds = min(analysis.active_duration_seconds, raw)


def build_session_from_result(
    result: ParseResult, config: AnalysisConfig | None = None
) -> Session | None:
    return build_session(result.path, result.records, config, result.corrupted_count)


def load_session(path: Path, config: AnalysisConfig | None = None) -> Session | None:
    """Parse, build and normalize the session stored in ``path``.

    Raises:
        LogReadError: If the file cannot be read
    """
    session = build_session_from_result(parse_log_file(path), config)
    return normalize_session(session) if session is not None else None
