"""Tests for period boundaries and the period-over-period digest."""

from datetime import datetime, timezone

import pytest

from sessionsight.digest import (
    custom_boundaries,
    digest,
    format_date_range,
    percent_change,
    period_metrics,
    week_boundaries,
)
from sessionsight.models import GitActivity

from helpers import session


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def corpus():
    return [
        session("AUTH-1", "2026-02-25T09:00:00Z", "2026-02-25T10:00:00Z",
                quality=3.0, total_tokens=1000, cost_estimate=1.0, user_email="alice@example.com"),
        session("AUTH-2", "2026-03-03T09:00:00Z", "2026-03-03T10:30:00Z",
                quality=4.0, total_tokens=2000, cost_estimate=2.0, user_email="alice@example.com",
                category="feature", message_count=10),
        session("AUTH-3", "2026-03-04T14:00:00Z", total_tokens=1500, cost_estimate=1.5,
                user_email="alice@example.com", category="bug-fix", message_count=4),
        session("UI-7", "2026-03-05T11:00:00Z", "2026-03-05T11:30:00Z",
                quality=3.0, total_tokens=1000, cost_estimate=0.5, user_name="Bob",
                category="feature", message_count=6),
        session("UI-8", "2026-03-09T08:00:00Z", total_tokens=9999),
    ]


class TestBoundaries:
    """ISO weeks start Monday 00:00 UTC; custom ranges mirror backwards."""

    def test_week_of_a_wednesday(self):
        bounds = week_boundaries("2026-03-04T15:30:00Z")
        assert bounds.current_start == utc(2026, 3, 2)
        assert bounds.current_end == utc(2026, 3, 9)
        assert bounds.previous_start == utc(2026, 2, 23)
        assert bounds.previous_end == utc(2026, 3, 2)

    def test_monday_midnight_is_its_own_week(self):
        assert week_boundaries("2026-03-02T00:00:00Z").current_start == utc(2026, 3, 2)

    def test_sunday_belongs_to_the_prior_monday(self):
        assert week_boundaries("2026-03-08T23:59:59Z").current_start == utc(2026, 3, 2)

    def test_unparseable_reference(self):
        with pytest.raises(ValueError):
            week_boundaries("not a date")

    def test_custom_range(self):
        bounds = custom_boundaries("2026-03-10", "2026-03-13")
        assert bounds.current_start == utc(2026, 3, 10)
        assert bounds.previous_start == utc(2026, 3, 7)
        assert bounds.previous_end == utc(2026, 3, 10)

    def test_custom_range_needs_both_ends(self):
        with pytest.raises(ValueError):
            custom_boundaries("2026-03-10", None)

    def test_label(self):
        assert format_date_range(utc(2026, 3, 2), utc(2026, 3, 9)) == "Mar 2 - Mar 8, 2026"
        assert format_date_range(utc(2026, 2, 23), utc(2026, 3, 2)) == "Feb 23 - Mar 1, 2026"


class TestPercentChange:

    @pytest.mark.parametrize("current,previous,expected", [
        (150, 100, 50),
        (50, 100, -50),
        (3.5, 3.0, 17),
        (5, 0, 100),
        (0, 0, None),
        (100, 100, 0),
    ])
    def test_values(self, current, previous, expected):
        assert percent_change(current, previous) == expected


class TestPeriodMetrics:

    def test_empty_period(self):
        metrics = period_metrics([])
        assert metrics.total_sessions == 0
        assert metrics.avg_duration == 0
        assert metrics.avg_quality is None
        assert metrics.total_cost == 0

    def test_durations_use_completed_sessions(self, corpus):
        metrics = period_metrics(corpus[1:4])
        assert metrics.total_sessions == 3
        assert metrics.completed_sessions == 2
        assert metrics.avg_duration == 60
        assert metrics.avg_quality == 3.5
        assert metrics.total_cost == 4.0
        assert metrics.total_messages == 20

    def test_git_totals(self):
        activity = GitActivity(branch="main", total_commits=3, total_insertions=40, total_deletions=7)
        metrics = period_metrics([session(git_activity=activity), session()])
        assert (metrics.total_commits, metrics.total_insertions, metrics.total_deletions) == (3, 40, 7)


class TestDigest:
    """Full digest over a small corpus spanning two weeks."""

    def test_comparison(self, corpus):
        result = digest(corpus, reference_date="2026-03-04T12:00:00Z")
        assert result.period_label == "Mar 2 - Mar 8, 2026"
        assert result.previous_label == "Feb 23 - Mar 1, 2026"
        assert result.comparison.current.total_sessions == 3
        assert result.comparison.previous.total_sessions == 1
        changes = result.comparison.changes
        assert changes.sessions == 200
        assert changes.tokens == 350
        assert changes.cost == 300
        assert changes.quality == 17
        assert changes.commits is None

    def test_top_projects(self, corpus):
        projects = digest(corpus, reference_date="2026-03-04").top_projects
        assert [(p.project, p.sessions, p.tokens) for p in projects] == [("AUTH", 2, 3500), ("UI", 1, 1000)]
        assert projects[0].cost == 3.5

    def test_developers_sorted_by_cost_per_session(self, corpus):
        developers = digest(corpus, reference_date="2026-03-04").developers
        assert [d.name for d in developers] == ["Bob", "alice@example.com"]
        assert developers[1].cost_per_session == 1.75
        assert developers[1].tokens_per_session == 1750
        assert developers[1].avg_quality == 4.0

    def test_categories(self, corpus):
        categories = digest(corpus, reference_date="2026-03-04").top_categories
        assert [(c.category, c.sessions, c.tokens) for c in categories] == [
            ("feature", 2, 3000),
            ("bug-fix", 1, 1500),
        ]

    def test_highlights(self, corpus):
        highlights = digest(corpus, reference_date="2026-03-04").highlights
        assert highlights == [
            "Sessions up 200% from last period",
            "AUTH was the busiest project (2 sessions)",
            "Quality improved from 3.0 to 3.5",
            "Token usage up 350%",
        ]

    def test_commit_highlight(self):
        activity = GitActivity(branch="main", total_commits=1, total_insertions=12, total_deletions=3)
        result = digest([session(git_activity=activity)], reference_date="2026-03-04")
        assert "1 commit (+12/-3 lines)" in result.highlights

    def test_empty_corpus(self):
        result = digest([], reference_date="2026-03-04")
        assert result.comparison.changes.sessions is None
        assert result.top_projects == []
        assert result.highlights == []

    def test_custom_date_range(self, corpus):
        result = digest(corpus, date_range=("2026-03-03T00:00:00Z", "2026-03-05T00:00:00Z"))
        assert result.comparison.current.total_sessions == 2
        assert result.period_label == "Mar 3 - Mar 4, 2026"
