"""Tool-intent classification.

Labels each tool call by how directly the user asked for it, using the
text of the most recent user message before the call:

- user_directed: the message names the tool's action ("read", "run", ...)
- guided_autonomous: the message sets a goal ("debug", "implement", ...)
- fully_autonomous: neither, or no user message in the window
"""

from __future__ import annotations

from collections.abc import Sequence

from friction.models import InitiationType
from friction.parsing import LogRecord
from friction.rules import RuleSet, contains_any


def find_preceding_user_message(context: Sequence[LogRecord]) -> LogRecord | None:
    """Most recent user entry in ``context`` that carries text.

    User records that only transport tool results are skipped; they are
    plumbing, not something the user wrote.
    """
    for entry in reversed(context):
        if entry.type == "user" and entry.text.strip():
            return entry
    return None


def classify_text(tool_name: str, text: str, rules: RuleSet) -> InitiationType:
    """Classify a tool call given the text of the user message before it."""
    keywords = rules.tool_keywords.get(tool_name, [])
    if contains_any(text, keywords):
        return InitiationType.USER_DIRECTED
    if contains_any(text, rules.guidance_phrases):
        return InitiationType.GUIDED_AUTONOMOUS
    return InitiationType.FULLY_AUTONOMOUS


def classify_tool_intent(
    tool_name: str,
    context: Sequence[LogRecord],
    rules: RuleSet | None = None,
) -> InitiationType:
    """Classify why a tool was invoked from the conversation window before it."""
    message = find_preceding_user_message(context)
    if message is None:
        return InitiationType.FULLY_AUTONOMOUS
    return classify_text(tool_name, message.text, rules or RuleSet.default())
