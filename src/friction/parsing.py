"""Log parsing for assistant conversation logs.

Each line of a log is one JSON object. Lines that are not JSON objects
are counted and skipped; they never abort the file. Message content,
which arrives either as a plain string or as a list of typed items, is
normalized here once into ``TextContent | ToolUseContent |
ToolResultContent`` so that downstream code never inspects raw shapes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from friction.errors import LogReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextContent:
    """Plain text written by the user or the assistant."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseContent:
    """A tool invocation requested by the assistant."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass(frozen=True)
class ToolResultContent:
    """The result of a tool invocation, returned on a user record."""

    tool_use_id: str
    content: Any = None
    is_error: bool = False

    @property
    def text(self) -> str:
        return content_text(self.content)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
            "is_error": self.is_error,
        }


ContentItem = TextContent | ToolUseContent | ToolResultContent


def content_text(content: Any) -> str:
    """Flatten raw tool output (string or list of text blocks) to a string."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
        return "\n".join(parts)
    return json.dumps(content, sort_keys=True, default=str)


def _normalize_item(item: Any) -> ContentItem | None:
    if isinstance(item, str):
        return TextContent(item)
    if not isinstance(item, dict):
        return None

    item_type = item.get("type")
    if item_type == "text":
        return TextContent(str(item.get("text") or ""))
    if item_type == "tool_use" and item.get("id"):
        tool_input = item.get("input")
        return ToolUseContent(
            id=str(item["id"]),
            name=str(item.get("name") or "unknown"),
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if item_type == "tool_result" and item.get("tool_use_id"):
        return ToolResultContent(
            tool_use_id=str(item["tool_use_id"]),
            content=item.get("content"),
            is_error=bool(item.get("is_error", False)),
        )
    # thinking, image and other block types carry nothing we analyze
    return None


def normalize_content(raw: Any) -> list[ContentItem]:
    """Normalize ``message.content`` into a list of content items."""
    if raw is None:
        return []
    if isinstance(raw, str):
        return [TextContent(raw)] if raw else []
    if isinstance(raw, list):
        items = (_normalize_item(item) for item in raw)
        return [item for item in items if item is not None]
    return []


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None when absent or invalid.

    Timestamps without an offset are taken to be UTC, so every parsed value
    is timezone-aware and comparable.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class LogRecord:
    """One parsed line of a log file."""

    type: str
    line_number: int
    timestamp: datetime | None = None
    raw_timestamp: str | None = None
    cwd: str | None = None
    content: list[ContentItem] = field(default_factory=list)
    tool_use_result: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_summary(self) -> bool:
        return self.type == "summary"

    @property
    def text(self) -> str:
        """Text items joined with spaces."""
        return " ".join(item.text for item in self.content if isinstance(item, TextContent))

    @property
    def tool_uses(self) -> list[ToolUseContent]:
        return [item for item in self.content if isinstance(item, ToolUseContent)]

    @property
    def tool_results(self) -> list[ToolResultContent]:
        return [item for item in self.content if isinstance(item, ToolResultContent)]

    @classmethod
    def from_json(cls, data: dict[str, Any], line_number: int) -> LogRecord:
        message = data.get("message")
        raw_content = message.get("content") if isinstance(message, dict) else None
        tool_use_result = data.get("toolUseResult")
        raw_timestamp = data.get("timestamp")
        cwd = data.get("cwd")

        return cls(
            type=str(data.get("type") or "unknown"),
            line_number=line_number,
            timestamp=parse_timestamp(raw_timestamp),
            raw_timestamp=raw_timestamp if isinstance(raw_timestamp, str) else None,
            cwd=cwd if isinstance(cwd, str) else None,
            content=normalize_content(raw_content),
            tool_use_result=tool_use_result if isinstance(tool_use_result, dict) else None,
            raw=data,
        )


@dataclass
class CorruptedLine:
    """A line that could not be parsed."""

    line_number: int
    error: str


@dataclass
class ParseResult:
    """Records read from one file plus the lines that were skipped."""

    path: Path
    records: list[LogRecord] = field(default_factory=list)
    corrupted: list[CorruptedLine] = field(default_factory=list)

    @property
    def corrupted_count(self) -> int:
        return len(self.corrupted)


def parse_lines(lines: Iterable[str], path: Path) -> ParseResult:
    """Parse an iterable of lines into log records."""
    result = ParseResult(path=path)

    for line_number, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            result.corrupted.append(CorruptedLine(line_number, str(e)))
            logger.debug("Skipping malformed line %d in %s: %s", line_number, path, e)
            continue
        if not isinstance(data, dict):
            result.corrupted.append(CorruptedLine(line_number, "not a JSON object"))
            logger.debug("Skipping non-object line %d in %s", line_number, path)
            continue
        result.records.append(LogRecord.from_json(data, line_number))

    return result


def parse_log_file(path: Path) -> ParseResult:
    """Read and parse a log file.

    Raises:
        LogReadError: If the file cannot be opened or decoded
    """
    try:
        with open(path, encoding="utf-8") as f:
            return parse_lines(f, path)
    except (OSError, UnicodeDecodeError) as e:
        raise LogReadError(path, str(e)) from e
