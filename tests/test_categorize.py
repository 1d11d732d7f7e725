"""Tests for session categorization and project extraction."""

import pytest

from sessionsight.categorize import classify, extract_project
from sessionsight.models import GitActivity, GitCommit

from helpers import assistant, user


def commits(*messages):
    return GitActivity(
        branch="main",
        commits=[GitCommit(hash=f"{i:07x}", message=m, timestamp="") for i, m in enumerate(messages)],
        total_commits=len(messages),
    )


class TestTicketPrefix:
    """Ticket ID prefixes win over every other signal."""

    @pytest.mark.parametrize("ticket_id,expected", [
        ("fix/login-redirect", "bug-fix"),
        ("BUG-12", "bug-fix"),
        ("hotfix/payments", "bug-fix"),
        ("feat/dark-mode", "feature"),
        ("FEATURE-9", "feature"),
        ("refactor/session-store", "refactor"),
        ("cleanup-old-flags", "refactor"),
        ("test/parser", "testing"),
        ("docs/readme", "docs"),
        ("spike-caching", "investigation"),
        ("research/vector-db", "investigation"),
    ])
    def test_prefixes(self, ticket_id, expected):
        assert classify(ticket_id) == expected

    def test_prefix_beats_commits(self):
        assert classify("docs/intro", commits("feat: a", "feat: b")) == "docs"

    def test_upper_case_fix_ticket_ignores_commits(self):
        assert classify("FIX-42", commits("feat: a", "feat: b", "feat: c")) == "bug-fix"


class TestCommitMajority:
    """Conventional-commit prefixes decide when half or more agree."""

    def test_majority(self):
        activity = commits("fix: null check", "fix: retry", "feat: new flag")
        assert classify("PROJ-1", activity) == "bug-fix"

    def test_three_fixes_and_one_feature(self):
        activity = commits("fix: a", "fix: b", "fix: c", "feat: d")
        assert classify("PROJ-7", activity) == "bug-fix"

    def test_exact_half_counts(self):
        activity = commits("refactor: split module", "test: add cases")
        assert classify("PROJ-1", activity) == "refactor"

    def test_unprefixed_commits_are_ignored(self):
        activity = commits("wip", "more wip", "docs: explain config")
        assert classify("PROJ-1", activity) == "docs"

    def test_no_classifiable_commits_falls_through(self):
        activity = commits("wip", "chore: bump deps")
        turns = [user("Add an export button")]
        assert classify("PROJ-1", activity, turns) == "feature"


class TestFirstMessage:
    """Keywords in the first user message are the last signal before "other"."""

    @pytest.mark.parametrize("message,expected", [
        ("Login is broken after the upgrade", "bug-fix"),
        ("Implement CSV export", "feature"),
        ("Please restructure the routes", "refactor"),
        ("Raise coverage on the parser", "testing"),
        ("Help me figure out why this is slow", "investigation"),
        ("Update the README", "docs"),
    ])
    def test_keywords(self, message, expected):
        assert classify("PROJ-1", None, [user(message)]) == expected

    def test_question_asking_for_a_toggle(self):
        assert classify("", None, [user("Can you add a dark mode toggle?")]) == "feature"

    def test_only_first_user_turn_is_read(self):
        turns = [assistant("How can I help?"), user("Rename a variable"), user("there is a bug")]
        assert classify("PROJ-1", None, turns) == "other"

    def test_fallback(self):
        assert classify("PROJ-1") == "other"
        assert classify("", None, []) == "other"


class TestExtractProject:
    """Project is everything before the trailing -<number>."""

    @pytest.mark.parametrize("ticket_id,expected", [
        ("AUTH-123", "AUTH"),
        ("UI-REDESIGN-45", "UI-REDESIGN"),
        ("fix/login", None),
        ("AUTH", None),
        ("", None),
    ])
    def test_extract(self, ticket_id, expected):
        assert extract_project(ticket_id) == expected
