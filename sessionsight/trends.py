"""Per-project token and cost trends over rolling windows."""

from datetime import timedelta

from .categorize import extract_project
from .models import ProjectCostTrend, TrendPeriod
from .utils import parse_timestamp, round_half_up, to_iso

RISING_PERCENT = 10
FALLING_PERCENT = -10


def _windows(latest, period_count: int, period_days: int) -> list:
    """Calendar windows ending on the day of ``latest``, oldest first.

    Each window is [start, end) with whole-day edges.
    """
    last_day_end = latest.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
    windows = []
    for i in range(period_count):
        end = last_day_end - timedelta(days=i * period_days)
        start = end - timedelta(days=period_days)
        windows.append((start, end))
    windows.reverse()
    return windows


def _label(start, end) -> str:
    last = end - timedelta(days=1)
    return f"{start.strftime('%b')} {start.day} - {last.strftime('%b')} {last.day}"


def trends(sessions: list, period_count: int = 4, period_days: int = 7) -> list:
    """Bucket each project's usage into rolling windows and call its direction.

    Windows are anchored to the most recent session start. Direction compares
    the token totals of the first and last windows that used any tokens:
    above +10% is "rising", below -10% is "falling", anything else "stable".

    Returns:
        ProjectCostTrend list, highest total tokens first.
    """
    dated = []
    for s in sessions:
        started = parse_timestamp(s.started_at)
        if started is not None:
            dated.append((started, s))
    if not dated:
        return []

    latest = max(started for started, _ in dated)
    windows = _windows(latest, period_count, period_days)

    by_project = {}
    for started, s in dated:
        project = extract_project(s.ticket_id)
        if project:
            by_project.setdefault(project, []).append((started, s))

    results = []
    for project, project_sessions in by_project.items():
        periods = []
        for start, end in windows:
            bucket = [s for started, s in project_sessions if start <= started < end]
            periods.append(TrendPeriod(
                label=_label(start, end),
                start_date=to_iso(start),
                cost=round_half_up(sum(s.cost_estimate or 0 for s in bucket), 2),
                tokens=sum(s.total_tokens for s in bucket),
                sessions=len(bucket),
            ))

        direction, change = _direction(periods)
        results.append(ProjectCostTrend(
            project=project,
            periods=periods,
            total_cost=round_half_up(sum(p.cost for p in periods), 2),
            total_tokens=sum(p.tokens for p in periods),
            trend_direction=direction,
            change_percent=change,
        ))

    results.sort(key=lambda t: t.total_tokens, reverse=True)
    return results


def _direction(periods: list):
    used = [p for p in periods if p.tokens > 0]
    if len(used) < 2:
        return "stable", None

    first, last = used[0].tokens, used[-1].tokens
    change = round_half_up((last - first) / first * 100)
    if change > RISING_PERCENT:
        return "rising", change
    if change < FALLING_PERCENT:
        return "falling", change
    return "stable", change
