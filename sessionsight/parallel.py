"""Detect sessions that were running at the same time."""

from .models import ParallelSessionGroup, SessionRef
from .utils import parse_timestamp, round_half_up, to_iso

_START = 0
_END = 1


def overlaps(sessions: list, include_touching: bool = True) -> list:
    """Find groups of sessions active at the same wall-clock moment.

    Sweeps start/finish events in time order. Starts sort before ends at the
    same instant, so a session that begins exactly when another finishes
    still forms a group; such touching groups have ``overlap_minutes == 0``
    and are dropped when ``include_touching`` is False.

    Each combination of sessions is reported at most once.

    Returns:
        ParallelSessionGroup list, longest overlap first.
    """
    events = []
    for index, s in enumerate(sessions):
        started = parse_timestamp(s.started_at)
        finished = parse_timestamp(s.finished_at)
        if started is None or finished is None:
            continue
        events.append((started, _START, index, s, started, finished))
        events.append((finished, _END, index, s, started, finished))

    events.sort(key=lambda e: (e[0], e[1], e[2]))

    active = {}
    seen = set()
    groups = []

    for _, kind, index, session, started, finished in events:
        if kind == _END:
            active.pop(index, None)
            continue

        active[index] = (session, started, finished)
        if len(active) < 2:
            continue

        members = list(active.values())
        key = tuple(sorted(m[0].id or f"#{i}" for i, m in active.items()))
        if key in seen:
            continue
        seen.add(key)

        overlap_start = max(m[1] for m in members)
        overlap_end = min(m[2] for m in members)
        if overlap_end < overlap_start:
            continue
        if overlap_end == overlap_start and not include_touching:
            continue

        groups.append(ParallelSessionGroup(
            sessions=[SessionRef(id=m[0].id, ticket_id=m[0].ticket_id) for m in members],
            overlap_start=to_iso(overlap_start),
            overlap_end=to_iso(overlap_end),
            overlap_minutes=round_half_up((overlap_end - overlap_start).total_seconds() / 60),
            combined_tokens=sum(m[0].total_tokens for m in members),
        ))

    groups.sort(key=lambda g: g.overlap_minutes, reverse=True)
    return groups
