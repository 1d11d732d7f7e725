"""Period-over-period digest of a session corpus."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from .categorize import extract_project
from .models import (
    CategoryBreakdown,
    DeveloperEfficiency,
    DigestChanges,
    DigestComparison,
    PeriodBounds,
    PeriodMetrics,
    TopProject,
    WeeklyDigest,
)
from .utils import average, parse_timestamp, round_half_up

TOP_PROJECTS = 5
TOKEN_SWING_PERCENT = 20


def week_boundaries(reference_date=None) -> PeriodBounds:
    """ISO week (Monday 00:00 UTC, exclusive end) containing reference_date.

    The previous period is the seven days before it.
    """
    ref = parse_timestamp(reference_date) if reference_date is not None else datetime.now(timezone.utc)
    if ref is None:
        raise ValueError(f"unparseable reference date: {reference_date!r}")
    monday = (ref - timedelta(days=ref.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return PeriodBounds(
        current_start=monday,
        current_end=monday + timedelta(days=7),
        previous_start=monday - timedelta(days=7),
        previous_end=monday,
    )


def custom_boundaries(start, end) -> PeriodBounds:
    """Half-open [start, end) range; the previous period has equal length and ends at start."""
    start = parse_timestamp(start)
    end = parse_timestamp(end)
    if start is None or end is None:
        raise ValueError("date range needs both a start and an end")
    return PeriodBounds(
        current_start=start,
        current_end=end,
        previous_start=start - (end - start),
        previous_end=start,
    )


def percent_change(current: float, previous: float) -> Optional[int]:
    """Whole-number percent change.

    A zero previous value gives 100 when current is positive, else None.
    """
    if previous == 0:
        return 100 if current > 0 else None
    return round_half_up((current - previous) / previous * 100)


def _duration_minutes(session) -> Optional[float]:
    started = parse_timestamp(session.started_at)
    finished = parse_timestamp(session.finished_at)
    if started is None or finished is None:
        return None
    return (finished - started).total_seconds() / 60


def period_metrics(sessions: list) -> PeriodMetrics:
    """Aggregate totals and averages for one period's sessions."""
    completed = [s for s in sessions if s.status == "COMPLETED"]

    durations = [d for d in (_duration_minutes(s) for s in completed if s.finished_at) if d is not None]
    avg_duration = round_half_up(sum(durations) / len(durations)) if durations else 0

    commits = insertions = deletions = 0
    for s in sessions:
        if s.git_activity:
            commits += s.git_activity.total_commits or 0
            insertions += s.git_activity.total_insertions or 0
            deletions += s.git_activity.total_deletions or 0

    return PeriodMetrics(
        total_sessions=len(sessions),
        completed_sessions=len(completed),
        total_tokens=sum(s.total_tokens for s in sessions),
        total_messages=sum(s.message_count for s in sessions),
        total_cost=round_half_up(sum(s.cost_estimate or 0 for s in sessions), 2),
        avg_duration=avg_duration,
        avg_quality=average(s.quality for s in sessions if s.quality is not None),
        total_commits=commits,
        total_insertions=insertions,
        total_deletions=deletions,
    )


def _in_range(session, start, end) -> bool:
    started = parse_timestamp(session.started_at)
    return started is not None and start <= started < end


def format_date_range(start: datetime, end: datetime) -> str:
    """Label such as "Mar 2 - Mar 8, 2026"; end is exclusive so shown as the day before."""
    last = end - timedelta(days=1)
    return f"{start.strftime('%b')} {start.day} - {last.strftime('%b')} {last.day}, {last.year}"


def digest(sessions: list, reference_date=None, date_range=None) -> WeeklyDigest:
    """Compare the current period against the one before it.

    Args:
        sessions: Session records to digest.
        reference_date: Any instant inside the week to report on. Defaults to now.
        date_range: Optional (from, to) pair; overrides the ISO week.

    Returns:
        WeeklyDigest with comparison, breakdowns and highlights.
    """
    if date_range is not None:
        bounds = custom_boundaries(*date_range)
    else:
        bounds = week_boundaries(reference_date)

    current_sessions = [s for s in sessions if _in_range(s, bounds.current_start, bounds.current_end)]
    previous_sessions = [s for s in sessions if _in_range(s, bounds.previous_start, bounds.previous_end)]

    current = period_metrics(current_sessions)
    previous = period_metrics(previous_sessions)

    if current.avg_quality is not None and previous.avg_quality is not None:
        quality_change = percent_change(current.avg_quality, previous.avg_quality)
    else:
        quality_change = None

    changes = DigestChanges(
        sessions=percent_change(current.total_sessions, previous.total_sessions),
        tokens=percent_change(current.total_tokens, previous.total_tokens),
        cost=percent_change(current.total_cost, previous.total_cost),
        messages=percent_change(current.total_messages, previous.total_messages),
        quality=quality_change,
        commits=percent_change(current.total_commits, previous.total_commits),
    )
    comparison = DigestComparison(current=current, previous=previous, changes=changes)

    top_projects = _top_projects(current_sessions)

    return WeeklyDigest(
        period_label=format_date_range(bounds.current_start, bounds.current_end),
        previous_label=format_date_range(bounds.previous_start, bounds.previous_end),
        comparison=comparison,
        top_projects=top_projects,
        developers=_developers(current_sessions),
        top_categories=_categories(current_sessions),
        highlights=_highlights(comparison, top_projects),
    )


def _top_projects(sessions: list) -> list:
    stats = {}
    for s in sessions:
        project = extract_project(s.ticket_id)
        if not project:
            continue
        entry = stats.setdefault(project, {"sessions": 0, "tokens": 0, "cost": 0.0})
        entry["sessions"] += 1
        entry["tokens"] += s.total_tokens
        entry["cost"] += s.cost_estimate or 0

    projects = [
        TopProject(project=name, sessions=e["sessions"], tokens=e["tokens"], cost=round_half_up(e["cost"], 2))
        for name, e in stats.items()
    ]
    projects.sort(key=lambda p: p.tokens, reverse=True)
    return projects[:TOP_PROJECTS]


def _developers(sessions: list) -> list:
    devs = {}
    for s in sessions:
        key = s.user_email or s.user_name or "local"
        entry = devs.setdefault(key, {
            "name": s.user_name or s.user_email or "local",
            "sessions": 0,
            "tokens": 0,
            "cost": 0.0,
            "qualities": [],
        })
        entry["sessions"] += 1
        entry["tokens"] += s.total_tokens
        entry["cost"] += s.cost_estimate or 0
        if s.quality is not None:
            entry["qualities"].append(s.quality)

    developers = [
        DeveloperEfficiency(
            name=e["name"],
            sessions=e["sessions"],
            tokens_per_session=round_half_up(e["tokens"] / e["sessions"]),
            cost_per_session=round_half_up(e["cost"] / e["sessions"], 2),
            avg_quality=average(e["qualities"]),
        )
        for e in devs.values()
    ]
    developers.sort(key=lambda d: d.cost_per_session)
    return developers


def _categories(sessions: list) -> list:
    stats = {}
    for s in sessions:
        entry = stats.setdefault(s.category or "other", [0, 0])
        entry[0] += 1
        entry[1] += s.total_tokens
    breakdown = [CategoryBreakdown(category=c, sessions=n, tokens=t) for c, (n, t) in stats.items()]
    breakdown.sort(key=lambda c: c.sessions, reverse=True)
    return breakdown


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


def _highlights(comparison: DigestComparison, top_projects: list) -> list:
    current, previous, changes = comparison.current, comparison.previous, comparison.changes
    highlights = []

    if changes.sessions:
        direction = "up" if changes.sessions > 0 else "down"
        highlights.append(f"Sessions {direction} {abs(changes.sessions)}% from last period")

    if top_projects:
        top = top_projects[0]
        highlights.append(f"{top.project} was the busiest project ({_plural(top.sessions, 'session')})")

    if (
        current.avg_quality is not None
        and previous.avg_quality is not None
        and current.avg_quality != previous.avg_quality
    ):
        verb = "improved" if current.avg_quality > previous.avg_quality else "declined"
        highlights.append(f"Quality {verb} from {previous.avg_quality} to {current.avg_quality}")

    if current.total_commits > 0:
        highlights.append(
            f"{_plural(current.total_commits, 'commit')} "
            f"(+{current.total_insertions}/-{current.total_deletions} lines)"
        )

    if changes.tokens is not None and abs(changes.tokens) >= TOKEN_SWING_PERCENT:
        direction = "up" if changes.tokens > 0 else "down"
        highlights.append(f"Token usage {direction} {abs(changes.tokens)}%")

    return highlights
