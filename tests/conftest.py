"""Shared fixtures: a builder for assistant JSONL logs."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from itertools import count
from pathlib import Path
from typing import Any

import pytest

from friction.config import AnalysisConfig
from friction.models import Session
from friction.output import reset_output
from friction.session_builder import load_session

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def stamp(seconds: float) -> str:
    """ISO timestamp ``seconds`` after BASE_TIME, in the log's Z form."""
    return (BASE_TIME + timedelta(seconds=seconds)).isoformat().replace("+00:00", "Z")


class LogBuilder:
    """Builds the lines of one log file.

    Every entry advances the clock by ``step`` seconds; ``advance`` adds a pause.
    """

    def __init__(self, cwd: str | None = "/Users/dev/projects/my-app", step: float = 5):
        self.entries: list[dict[str, Any]] = []
        self.clock: float = 0
        self.cwd = cwd
        self.step = step
        self._ids = count(1)

    def advance(self, seconds: float) -> LogBuilder:
        self.clock += seconds
        return self

    def entry(self, type_: str, content: Any, **extra: Any) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "type": type_,
            "timestamp": stamp(self.clock),
            "message": {"role": type_, "content": content},
        }
        if self.cwd:
            entry["cwd"] = self.cwd
        entry.update(extra)
        self.entries.append(entry)
        self.clock += self.step
        return entry

    def user(self, text: str) -> LogBuilder:
        self.entry("user", text)
        return self

    def assistant(self, text: str) -> LogBuilder:
        self.entry("assistant", [{"type": "text", "text": text}])
        return self

    def tool_use(self, name: str, tool_input: dict[str, Any] | None = None) -> str:
        tool_id = f"toolu_{next(self._ids):03d}"
        self.entry(
            "assistant",
            [{"type": "tool_use", "id": tool_id, "name": name, "input": tool_input or {}}],
        )
        return tool_id

    def tool_result(
        self,
        tool_id: str,
        output: Any = "ok",
        is_error: bool = False,
        status: str | None = None,
    ) -> LogBuilder:
        extra = {"toolUseResult": {"status": status}} if status else {}
        block = {
            "type": "tool_result",
            "tool_use_id": tool_id,
            "content": output,
            "is_error": is_error,
        }
        self.entry("user", [block], **extra)
        return self

    def tool(
        self,
        name: str,
        tool_input: dict[str, Any] | None = None,
        output: Any = "ok",
        is_error: bool = False,
        status: str | None = None,
    ) -> LogBuilder:
        """A tool call followed immediately by its result."""
        return self.tool_result(self.tool_use(name, tool_input), output, is_error, status)

    def summary(self, text: str) -> LogBuilder:
        self.entries.append({"type": "summary", "summary": text, "leafUuid": "leaf-1"})
        return self

    def lines(self) -> list[str]:
        return [json.dumps(e) for e in self.entries]

    def write(self, path: Path, extra_lines: list[str] | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = self.lines() + list(extra_lines or [])
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path


@pytest.fixture
def builder() -> LogBuilder:
    return LogBuilder()


@pytest.fixture
def make_session(tmp_path: Path):
    """Write a builder's log under tmp_path and load it as a session."""

    def _make(
        log: LogBuilder,
        name: str = "session-1",
        config: AnalysisConfig | None = None,
    ) -> Session:
        path = log.write(tmp_path / "logs" / f"{name}.jsonl")
        session = load_session(path, config)
        assert session is not None
        return session

    return _make


@pytest.fixture(autouse=True)
def _clean_global_state():
    """Fresh CLI output and an unconfigured ``friction`` logger for every test."""
    reset_output()
    yield
    reset_output()
    root = logging.getLogger("friction")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
