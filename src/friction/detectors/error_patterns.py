"""Session-wide error patterns.

Error streaks only see consecutive failures of one tool. The patterns
here look at every failure in the session at once:

- string_replacement_failure: Edits whose old string was not in the file
- user_interruption: the user rejecting or interrupting tool calls
- timeout: commands killed for running too long
- high_error_density: a large share of all calls failing
- environment_setup: shell failures caused by the machine rather than
  the code (missing commands, services that are down)

``classify_bash_error`` sorts one failed shell command into expected,
environment and workflow failures.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from friction.detectors.base import BaseDetector, PatternKind, StrugglePattern
from friction.models import Confidence, Session, ToolOperation

STRING_REPLACEMENT_FAILURE = "string_replacement_failure"
USER_INTERRUPTION = "user_interruption"
TIMEOUT = "timeout"
HIGH_ERROR_DENSITY = "high_error_density"
ENVIRONMENT_SETUP = "environment_setup"

_INTERRUPTION_MARKERS = (
    "The user doesn't want to proceed",
    "The user doesn't want to take this action",
    "[Request interrupted by user",
)

_SETUP_WORDS = ("install", "setup", "init")
_NETWORK_WORDS = (*_SETUP_WORDS, "pull", "push", "clone", "curl")
_TEST_WORDS = ("test", "spec", "jest", "mocha", "pytest")
_BUILD_WORDS = ("build", "compile", "make", "tsc")
_RUN_WORDS = ("start", "run", "node", "python", "java")

_MISSING_COMMAND = re.compile(r"(?:bash: )?([^:\n]+): command not found")


class BashErrorCategory(Enum):
    """Broad cause of a failed shell command."""

    EXPECTED = "expected"  # Deliberate failures, e.g. a red test in TDD
    ENVIRONMENT = "environment"  # The machine is not set up for the work
    WORKFLOW = "workflow"  # Ordinary development errors in the code itself


@dataclass(frozen=True)
class BashErrorClass:
    category: BashErrorCategory
    error_type: str
    suggestion: str

    @property
    def actionable(self) -> bool:
        return self.category is not BashErrorCategory.EXPECTED


def _any(words: tuple[str, ...], text: str) -> bool:
    return any(w in text for w in words)


def _is_expected(command: str, output: str) -> bool:
    return (
        "experiment" in command
        or ("curl" in command and "404" in output)
        or _any(("as expected", "expected during", "intentional"), output)
        or ("test" in command and _any(("failed as expected", "tdd"), output))
    )


def _is_command_not_found(command: str, output: str) -> bool:
    return "not found" in output or "is not recognized as an internal or external" in output


def _is_setup_timeout(command: str, output: str) -> bool:
    return _any(_NETWORK_WORDS, command) and _any(("timeout", "timed out", "no response"), output)


def _is_missing_dependency(command: str, output: str) -> bool:
    missing = ("cannot find module", "no such file or directory", "missing dependency")
    if _any(_SETUP_WORDS, command) and _any((*missing, "package not found"), output):
        return True
    return "not found" in output and _any(("python", "node"), output)


def _is_service_unavailable(command: str, output: str) -> bool:
    markers = (
        "cannot connect to",
        "connection refused",
        "service unavailable",
        "docker daemon",
        "database connection failed",
    )
    return _any(markers, output)


def _is_test_failure(command: str, output: str) -> bool:
    return _any(_TEST_WORDS, command) and _any(("failing", "failed", "error", "assertion"), output)


def _is_compilation_error(command: str, output: str) -> bool:
    markers = ("compilation", "compile error", "syntax error", "type error", "ts2")
    return _any(_BUILD_WORDS, command) and _any(markers, output)


def _is_runtime_exception(command: str, output: str) -> bool:
    markers = (
        "exception",
        "error:",
        "typeerror",
        "referenceerror",
        "cannot read property",
        "cannot find module",
    )
    return _any(_RUN_WORDS, command) and _any(markers, output)


_Check = Callable[[str, str], bool]

# Checked in order; the first match wins
_BASH_RULES: tuple[tuple[_Check, BashErrorCategory, str, str], ...] = (
    (
        _is_expected,
        BashErrorCategory.EXPECTED,
        "expected_failure",
        "This appears to be an expected failure during development",
    ),
    (
        _is_command_not_found,
        BashErrorCategory.ENVIRONMENT,
        "command_not_found",
        "Install the missing command: {command}",
    ),
    (
        _is_setup_timeout,
        BashErrorCategory.ENVIRONMENT,
        "timeout_during_setup",
        "Check network connectivity or increase the timeout",
    ),
    (
        _is_missing_dependency,
        BashErrorCategory.ENVIRONMENT,
        "missing_dependencies",
        "Install the missing dependencies or check system requirements",
    ),
    (
        _is_service_unavailable,
        BashErrorCategory.ENVIRONMENT,
        "service_unavailable",
        "Start the required services (Docker, database, etc.)",
    ),
    (
        _is_test_failure,
        BashErrorCategory.WORKFLOW,
        "test_failures",
        "Fix the failing tests or update their expectations",
    ),
    (
        _is_compilation_error,
        BashErrorCategory.WORKFLOW,
        "compilation_errors",
        "Fix the compilation errors in the source",
    ),
    (
        _is_runtime_exception,
        BashErrorCategory.WORKFLOW,
        "runtime_exceptions",
        "Debug the runtime error and fix the application logic",
    ),
)


def classify_bash_error(op: ToolOperation) -> BashErrorClass | None:
    """Classify a failed Bash call; None for anything else."""
    if op.name != "Bash" or not op.is_error:
        return None
    command = (op.command or "").lower()
    output = op.output_text.lower()

    for check, category, error_type, suggestion in _BASH_RULES:
        if check(command, output):
            if "{command}" in suggestion:
                match = _MISSING_COMMAND.search(output)
                suggestion = suggestion.format(
                    command=match.group(1).strip() if match else "unknown command"
                )
            return BashErrorClass(category, error_type, suggestion)

    return BashErrorClass(
        BashErrorCategory.WORKFLOW,
        "unclassified_error",
        "Review the error output and fix the underlying issue",
    )


@dataclass
class ErrorPattern(StrugglePattern):
    """A pattern across the failed calls of a session."""

    kind: ClassVar[PatternKind] = PatternKind.ERROR_PATTERN

    error_type: str
    count: int
    operation_indices: list[int]
    details: str

    @property
    def tool_indices(self) -> list[int]:
        return list(self.operation_indices)


@dataclass
class ErrorPatternDetector(BaseDetector):
    name: ClassVar[str] = "error_pattern"
    kind: ClassVar[PatternKind] = PatternKind.ERROR_PATTERN

    def detect(self, session: Session) -> list[ErrorPattern]:
        ops = session.tool_operations
        if len(ops) < 2:
            return []
        errors = [op for op in ops if op.is_error]
        c = self.config
        findings: list[ErrorPattern] = []

        def add(error_type: str, matched: list[ToolOperation], details: str) -> None:
            confidence = Confidence.HIGH if len(matched) > 3 else Confidence.MEDIUM
            findings.append(
                ErrorPattern(
                    error_type=error_type,
                    count=len(matched),
                    operation_indices=[op.index for op in matched],
                    details=details,
                    provenance=self.provenance(session, confidence),
                )
            )

        replaced = [op for op in ops if "String to replace not found" in op.output_text]
        if len(replaced) >= c.string_replace_min_failures:
            add(
                STRING_REPLACEMENT_FAILURE,
                replaced,
                f"{len(replaced)} edits failed because the text to replace was not in the file",
            )

        interrupted = [op for op in errors if _any(_INTERRUPTION_MARKERS, op.output_text)]
        if len(interrupted) >= c.user_interruption_min_count:
            add(
                USER_INTERRUPTION,
                interrupted,
                f"The user interrupted {len(interrupted)} tool calls",
            )

        timed_out = [op for op in errors if "timed out after" in op.output_text]
        if timed_out:
            add(TIMEOUT, timed_out, f"{len(timed_out)} command(s) timed out")

        rate = len(errors) / len(ops)
        if len(errors) >= c.error_density_min_count and rate >= c.error_density_min_rate:
            add(
                HIGH_ERROR_DENSITY,
                errors,
                f"{len(errors)} of {len(ops)} calls failed ({rate * 100:.0f}%)",
            )

        classified = [(op, classify_bash_error(op)) for op in errors]
        environment = [
            (op, cls)
            for op, cls in classified
            if cls is not None and cls.category is BashErrorCategory.ENVIRONMENT
        ]
        if len(environment) >= c.environment_error_min_count:
            types = sorted({cls.error_type for _, cls in environment})
            add(
                ENVIRONMENT_SETUP,
                [op for op, _ in environment],
                f"{len(environment)} shell failures from the environment ({', '.join(types)})",
            )

        return findings


def detect_error_patterns(session: Session, **kwargs: Any) -> list[ErrorPattern]:
    return ErrorPatternDetector(**kwargs).detect(session)
