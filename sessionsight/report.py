"""Flat usage report over a set of sessions."""

from collections import Counter
from datetime import datetime, timedelta, timezone

from .categorize import extract_project
from .models import UsageReport
from .utils import parse_timestamp, round_half_up

PERIODS = ("today", "week", "month", "year")


def resolve_range(period: str, now=None) -> tuple:
    """Turn a named period into a (start, end) pair ending at now.

    Raises:
        ValueError: For a period name other than today, week, month or year.
    """
    now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    if period == "today":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == "week":
        start = now - timedelta(days=7)
    elif period == "month":
        start = _months_back(now, 1)
    elif period == "year":
        start = _months_back(now, 12)
    else:
        raise ValueError(f"Unknown period: {period}. Use today, week, month, or year.")
    return start, now


def _months_back(dt: datetime, months: int) -> datetime:
    month_index = dt.year * 12 + dt.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp e.g. Mar 31 -> Feb 28
    for day in (dt.day, 30, 29, 28):
        try:
            return dt.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    return dt.replace(year=year, month=month, day=28)


def build_report(sessions: list, period=None, date_range=None, now=None) -> UsageReport:
    """Summarize usage for the sessions started inside a range.

    Args:
        sessions: Session records.
        period: Named period ("today", "week", "month", "year").
        date_range: Explicit (from, to) pair; takes precedence over period.
        now: Reference instant for named periods. Defaults to now.

    Returns:
        UsageReport over all sessions when neither period nor range is given.
    """
    if date_range is not None:
        start, end = (parse_timestamp(d) for d in date_range)
        if start is None or end is None:
            raise ValueError("date range needs both a start and an end")
    elif period is not None:
        start, end = resolve_range(period, now)
    else:
        start = end = None

    if start is not None and end is not None:
        selected = []
        for s in sessions:
            started = parse_timestamp(s.started_at)
            if started is not None and start <= started <= end:
                selected.append(s)
        label = f"{start.date().isoformat()} to {end.date().isoformat()}"
    else:
        selected = list(sessions)
        label = "All time"

    completed = [s for s in selected if s.status == "COMPLETED"]
    durations = []
    for s in completed:
        started, finished = parse_timestamp(s.started_at), parse_timestamp(s.finished_at)
        if started is not None and finished is not None:
            durations.append((finished - started).total_seconds() / 60)

    models = []
    for s in selected:
        for model in s.models:
            if model not in models:
                models.append(model)

    client_tools = Counter(s.client_tool for s in selected if s.client_tool)
    tags = Counter(tag for s in selected for tag in s.tags)
    categories = Counter(s.category or "uncategorized" for s in selected)

    projects = {}
    for s in selected:
        project = extract_project(s.ticket_id)
        if project:
            entry = projects.setdefault(project, {"project": project, "sessions": 0, "tokens": 0})
            entry["sessions"] += 1
            entry["tokens"] += s.total_tokens

    commits = insertions = deletions = 0
    for s in selected:
        if s.git_activity:
            commits += s.git_activity.total_commits
            insertions += s.git_activity.total_insertions
            deletions += s.git_activity.total_deletions

    total_tokens = sum(s.total_tokens for s in selected)

    return UsageReport(
        label=label,
        total_sessions=len(selected),
        completed_sessions=len(completed),
        total_tokens=total_tokens,
        prompt_tokens=sum(s.prompt_tokens for s in selected),
        response_tokens=sum(s.response_tokens for s in selected),
        total_messages=sum(s.message_count for s in selected),
        total_tool_calls=sum(s.tool_call_count for s in selected),
        avg_duration=round_half_up(sum(durations) / len(durations)) if durations else 0,
        avg_tokens_per_session=round_half_up(total_tokens / len(selected)) if selected else 0,
        models=models,
        client_tools=dict(client_tools.most_common()),
        tags=dict(tags.most_common()),
        categories=dict(categories.most_common()),
        projects=sorted(projects.values(), key=lambda p: p["tokens"], reverse=True),
        total_commits=commits,
        total_insertions=insertions,
        total_deletions=deletions,
    )
