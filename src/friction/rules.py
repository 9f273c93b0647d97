"""Lexical rule tables.

Every keyword list used by the classifiers lives here as data. The
defaults can be overlaid from configuration, so changing what counts as
a concept or a guidance phrase never touches detection code.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

DEFAULT_TOOL_KEYWORDS: dict[str, list[str]] = {
    "Read": ["read", "check", "look at", "examine", "view", "show me"],
    "Write": ["write", "create", "make a file", "save to"],
    "Edit": ["edit", "change", "modify", "update", "fix"],
    "Bash": ["run", "execute", "test", "build", "install"],
    "Grep": ["search", "find", "grep", "look for"],
    "Glob": ["list", "find files", "what files"],
}

DEFAULT_GUIDANCE_PHRASES = [
    "understand this",
    "figure out",
    "debug",
    "investigate",
    "help me with",
    "implement",
    "fix the issue",
    "add feature",
    "fix the failing",
    "fix the",
    "failing tests",
    "read through all",
    "tell me about",
    "tell me how",
    "check all",
    "review these",
    "go through",
    "what does this",
    "how does this",
    "explain",
    "configuration files",
    "system setup",
]

DEFAULT_CONCEPT_TERMS = [
    "react",
    "vue",
    "angular",
    "javascript",
    "typescript",
    "node",
    "express",
    "api",
    "database",
    "mongodb",
    "postgres",
    "mysql",
    "testing",
    "jest",
    "cypress",
    "playwright",
    "unit test",
    "integration test",
    "docker",
    "kubernetes",
    "aws",
    "github",
    "git",
    "deployment",
    "deploying",
    "css",
    "html",
    "sass",
    "tailwind",
    "bootstrap",
    "webpack",
    "vite",
    "build",
    "bundle",
    "npm",
    "yarn",
]

DEFAULT_CONCEPT_ALIASES = {"deploy": "deployment"}

DEFAULT_ERROR_TERMS = [
    "module not found",
    "cannot resolve",
    "syntax error",
    "type error",
    "reference error",
    "network error",
    "connection refused",
    "404",
    "permission denied",
    "access denied",
    "authentication failed",
    "build failed",
    "compilation error",
    "test failed",
]

DEFAULT_RESOLUTION_CUES = [
    "✅",
    "fixed",
    "solved",
    "working now",
    "success",
    "resolved",
    "completed",
    "done",
    "works",
    "working",
]

DEFAULT_GENERIC_PHRASES = [
    "let me",
    "i will",
    "i can",
    "i'll",
    "here is",
    "this should",
    "let's",
    "we can",
    "we should",
    "you can",
    "you should",
]

# Substrings marking text as concrete enough to act on
DEFAULT_CODE_MARKERS = [
    "{",
    "}",
    "(",
    ")",
    "[",
    "]",
    ";",
    "`",
    "npm ",
    "git ",
    "cd ",
    "mkdir ",
    "touch ",
    ".js",
    ".ts",
    ".css",
    ".html",
]

DEFAULT_SELF_GENERATED_SIGNATURES = [
    ["AI Code Analysis Task", "Enhanced Structured Analysis"],
    [
        "You are an expert AI assistant analyzing developer productivity data",
        "Analysis Data Summary",
    ],
    ["Data Provenance & Quality Assessment", "Source File Distribution"],
]

DEFAULT_READ_TOOLS = ["Read", "Grep", "Glob", "LS", "NotebookRead", "WebFetch", "WebSearch"]
DEFAULT_ACTION_TOOLS = ["Edit", "Write", "MultiEdit", "NotebookEdit"]
DEFAULT_FILE_TOOLS = ["Read", "Edit", "Write", "MultiEdit", "NotebookEdit", "NotebookRead"]
DEFAULT_GIT_WORKFLOW_PREFIXES = [
    "git status",
    "git diff",
    "git log",
    "git add",
    "git show",
    "git branch",
    "git commit",
    "git push",
]


@dataclass
class RuleSet:
    """All lexical tables consulted by the classifiers.

    Matching is case-insensitive substring matching unless noted;
    tool-name tables are matched exactly.
    """

    tool_keywords: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_TOOL_KEYWORDS.items()}
    )
    guidance_phrases: list[str] = field(default_factory=lambda: list(DEFAULT_GUIDANCE_PHRASES))
    concept_terms: list[str] = field(default_factory=lambda: list(DEFAULT_CONCEPT_TERMS))
    concept_aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CONCEPT_ALIASES))
    error_terms: list[str] = field(default_factory=lambda: list(DEFAULT_ERROR_TERMS))
    resolution_cues: list[str] = field(default_factory=lambda: list(DEFAULT_RESOLUTION_CUES))
    generic_phrases: list[str] = field(default_factory=lambda: list(DEFAULT_GENERIC_PHRASES))
    code_markers: list[str] = field(default_factory=lambda: list(DEFAULT_CODE_MARKERS))
    # Signatures match case-sensitively; every phrase in a group must appear
    self_generated_signatures: list[list[str]] = field(
        default_factory=lambda: [list(s) for s in DEFAULT_SELF_GENERATED_SIGNATURES]
    )
    read_tools: list[str] = field(default_factory=lambda: list(DEFAULT_READ_TOOLS))
    action_tools: list[str] = field(default_factory=lambda: list(DEFAULT_ACTION_TOOLS))
    file_tools: list[str] = field(default_factory=lambda: list(DEFAULT_FILE_TOOLS))
    git_workflow_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_GIT_WORKFLOW_PREFIXES)
    )

    @classmethod
    def default(cls) -> RuleSet:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any], base: RuleSet | None = None) -> RuleSet:
        """Overlay a mapping of tables onto ``base`` (or the defaults).

        A plain key replaces the table. An ``extend_<key>`` entry appends to
        a list table or updates a mapping table.

        Raises:
            ValueError: If a key does not name a table or has the wrong shape
        """
        rules = replace(base) if base is not None else cls()
        names = {f.name for f in fields(cls)}

        for key, value in data.items():
            extend = key.startswith("extend_")
            name = key.removeprefix("extend_")
            if name not in names:
                raise ValueError(f"Unknown rule table: {key}")

            current = getattr(rules, name)
            if isinstance(current, dict):
                if not isinstance(value, dict):
                    raise ValueError(f"Rule table '{key}' must be a table")
                merged = dict(current) if extend else {}
                merged.update(value)
                setattr(rules, name, merged)
            else:
                if not isinstance(value, list):
                    raise ValueError(f"Rule table '{key}' must be a list")
                setattr(rules, name, list(current) + list(value) if extend else list(value))

        return rules

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def find_terms(text: str, terms: list[str]) -> list[str]:
    """Return the terms that occur in ``text``, case-insensitively, in table order."""
    lowered = text.lower()
    return [term for term in terms if term.lower() in lowered]


def contains_any(text: str, terms: list[str]) -> bool:
    """Check whether any term occurs in ``text``, case-insensitively."""
    lowered = text.lower()
    return any(term.lower() in lowered for term in terms)
