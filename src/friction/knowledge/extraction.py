"""Knowledge extraction from session conversations.

Concepts and errors come from fixed term tables matched against the
lower-cased message text. Solutions are paragraphs (or failing that,
sentences) that carry a resolution cue such as "fixed" or "working now".
Assistant-authored solutions must also read as actionable: specific,
not a question, and free of filler like "let me".

Extraction is deterministic: the same conversation always yields the
same lists, in first-seen order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from friction.models import Session
from friction.rules import RuleSet, contains_any, find_terms

PARAGRAPH_SPLIT = re.compile(r"\n\n+")
SENTENCE_SPLIT = re.compile(r"[.!?]+")

PARAGRAPH_MIN, PARAGRAPH_MAX = 50, 500
SENTENCE_MIN, SENTENCE_MAX = 30, 300
ACTIONABLE_MIN = 30
SPECIFIC_LENGTH = 80
USER_SOLUTION_MIN = 10


@dataclass
class SessionKnowledge:
    """Concepts, errors and solutions found in one session."""

    concepts: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    solutions: list[str] = field(default_factory=list)
    project: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "concepts": list(self.concepts),
            "errors": list(self.errors),
            "solutions": list(self.solutions),
            "project": self.project,
        }


def _add(target: list[str], values: list[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def has_resolution_cue(text: str, rules: RuleSet) -> bool:
    return contains_any(text, rules.resolution_cues)


def extract_solution(text: str, rules: RuleSet) -> str | None:
    """Pick the paragraph, or else the sentence, that reports a resolution."""
    for block in PARAGRAPH_SPLIT.split(text):
        if PARAGRAPH_MIN < len(block) < PARAGRAPH_MAX and has_resolution_cue(block, rules):
            return block.strip()

    for sentence in SENTENCE_SPLIT.split(text):
        if SENTENCE_MIN < len(sentence) < SENTENCE_MAX and has_resolution_cue(sentence, rules):
            return sentence.strip()

    return None


def is_actionable(solution: str, rules: RuleSet) -> bool:
    """Reject generic or questioning text; require code-like detail or length."""
    if len(solution) < ACTIONABLE_MIN:
        return False
    if "?" in solution:
        return False
    if contains_any(solution, rules.generic_phrases):
        return False
    specific = any(marker in solution for marker in rules.code_markers)
    return specific or len(solution) > SPECIFIC_LENGTH


def extract_session_knowledge(session: Session, rules: RuleSet | None = None) -> SessionKnowledge:
    """Extract concepts, errors and solutions from a session's conversation."""
    rules = rules or RuleSet.default()
    knowledge = SessionKnowledge(project=session.project_name)

    for entry in session.conversation:
        text = entry.text
        if not text:
            continue

        _add(knowledge.concepts, find_terms(text, rules.concept_terms))
        lowered = text.lower()
        _add(
            knowledge.concepts,
            [concept for cue, concept in rules.concept_aliases.items() if cue.lower() in lowered],
        )
        _add(knowledge.errors, find_terms(text, rules.error_terms))

        if not has_resolution_cue(text, rules):
            continue
        solution = extract_solution(text, rules)
        if solution is None:
            continue
        if entry.type == "assistant":
            if is_actionable(solution, rules):
                _add(knowledge.solutions, [solution])
        elif len(solution) > USER_SOLUTION_MIN:
            _add(knowledge.solutions, [solution])

    return knowledge
