"""Classify sessions into work categories."""

import re
from collections import Counter
from typing import Optional

from .models import GitActivity

# Checked in order, first match wins
TICKET_PATTERNS = (
    (re.compile(r"^(fix|bug|hotfix)[/-]", re.IGNORECASE), "bug-fix"),
    (re.compile(r"^(feat|feature)[/-]", re.IGNORECASE), "feature"),
    (re.compile(r"^(refactor|cleanup)[/-]", re.IGNORECASE), "refactor"),
    (re.compile(r"^(test|spec)[/-]", re.IGNORECASE), "testing"),
    (re.compile(r"^(doc|docs)[/-]", re.IGNORECASE), "docs"),
    (re.compile(r"^(investigate|explore|spike|research)[/-]", re.IGNORECASE), "investigation"),
)

COMMIT_PREFIXES = {
    "fix": "bug-fix",
    "feat": "feature",
    "refactor": "refactor",
    "test": "testing",
    "docs": "docs",
}

MESSAGE_PATTERNS = (
    (re.compile(r"\b(fix|bug|broken|error|crash)\b"), "bug-fix"),
    (re.compile(r"\b(add|implement|create|build|new feature)\b"), "feature"),
    (re.compile(r"\b(refactor|clean up|reorganize|restructure)\b"), "refactor"),
    (re.compile(r"\b(test|spec|coverage)\b"), "testing"),
    (re.compile(r"\b(investigate|explore|debug|figure out|understand)\b"), "investigation"),
    (re.compile(r"\b(doc|readme|documentation)\b"), "docs"),
)

COMMIT_PREFIX_PATTERN = re.compile(r"^(\w+):")
PROJECT_PATTERN = re.compile(r"^(.+)-\d+$")


def classify(
    ticket_id: str,
    git_activity: Optional[GitActivity] = None,
    conversations: Optional[list] = None,
) -> str:
    """Pick a work category for a finished session.

    Signals, in priority order:
        1. Ticket ID prefix (``fix/``, ``FEAT-``, ...)
        2. Conventional-commit prefixes, majority of classifiable commits
        3. Keywords in the first user message
        4. Fallback to "other"

    Args:
        ticket_id: Ticket the session was tracked under.
        git_activity: Commits made during the session, if captured.
        conversations: Session turns; only the first user turn is read.

    Returns:
        One of ``models.CATEGORIES``.
    """
    if ticket_id:
        category = _from_ticket_id(ticket_id)
        if category:
            return category

    if git_activity and git_activity.commits:
        category = _from_commits(git_activity.commits)
        if category:
            return category

    if conversations:
        first = next((t for t in conversations if t.role == "user"), None)
        if first is not None:
            category = _from_message(first.content)
            if category:
                return category

    return "other"


def _from_ticket_id(ticket_id: str) -> Optional[str]:
    for pattern, category in TICKET_PATTERNS:
        if pattern.search(ticket_id):
            return category
    return None


def _from_commits(commits: list) -> Optional[str]:
    counts = Counter()
    for commit in commits:
        match = COMMIT_PREFIX_PATTERN.match(commit.message or "")
        if not match:
            continue
        category = COMMIT_PREFIXES.get(match.group(1).lower())
        if category:
            counts[category] += 1

    classifiable = sum(counts.values())
    if classifiable == 0:
        return None

    for category, count in counts.items():
        if count / classifiable >= 0.5:
            return category
    return None


def _from_message(content: str) -> Optional[str]:
    lower = (content or "").lower()
    for pattern, category in MESSAGE_PATTERNS:
        if pattern.search(lower):
            return category
    return None


def extract_project(ticket_id: str) -> Optional[str]:
    """Project prefix of a ticket ID.

    "AUTH-123" -> "AUTH", "UI-REDESIGN-45" -> "UI-REDESIGN".
    Returns None when the ID has no numeric suffix.
    """
    if not ticket_id:
        return None
    match = PROJECT_PATTERN.match(ticket_id)
    return match.group(1) if match else None
