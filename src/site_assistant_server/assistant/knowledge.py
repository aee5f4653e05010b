"""
Knowledge Assembly

Turns search matches into the text block that grounds the assistant's answer.
When nothing was retrieved, the model is told to refuse rather than fall back
on its general training knowledge.
"""

from __future__ import annotations

from typing import Optional, Tuple

from .models import Match, SearchOutcome

NO_KNOWLEDGE_INSTRUCTION = (
    "IMPORTANT: No relevant knowledge found in the knowledge base. "
    "You must inform the user that you don't have this information and direct "
    "them to book a strategic session. Do NOT use any general knowledge or "
    "training data to answer."
)

KNOWLEDGE_SEPARATOR = "\n\n"


def _match_text(match: Match) -> Optional[str]:
    return match.metadata.get("text") or match.metadata.get("content") or match.id


def assemble_knowledge(outcome: Optional[SearchOutcome]) -> str:
    """
    Join each match's text (``text`` → ``content`` → ``id``) with blank lines.

    Returns an empty string when the search was unavailable or found nothing.
    """
    if outcome is None or not outcome.matches:
        return ""

    texts = [str(text) for text in map(_match_text, outcome.matches) if text]
    return KNOWLEDGE_SEPARATOR.join(texts)


def knowledge_or_refusal(knowledge: str) -> str:
    """Substitute the refusal instruction for blank knowledge."""
    if not knowledge or not knowledge.strip():
        return NO_KNOWLEDGE_INSTRUCTION
    return knowledge


def attribution(outcome: Optional[SearchOutcome]) -> Tuple[Optional[str], Optional[str]]:
    """
    Article URL and section of the first (authoritative) match, if any.
    """
    first = outcome.first_match if outcome is not None else None
    if first is None:
        return None, None

    meta = first.metadata
    url = meta.get("url") or meta.get("articleUrl")
    section = meta.get("section") or meta.get("articleSection")
    return (
        str(url) if url else None,
        str(section) if section else None,
    )
