"""Cross-session correlations: skill usage and instruction-file edits vs quality."""

from .models import (
    InstructionChange,
    InstructionEffectiveness,
    SkillStats,
    SkillUsageAnalytics,
)
from .utils import average, parse_timestamp

COMPARISON_WINDOW = 5
STABLE_MARGIN = 0.2


def skill_usage(sessions: list) -> SkillUsageAnalytics:
    """Per-skill usage counts with the quality of sessions that used it.

    Sessions without any skill invocation form the shared baseline for
    ``avg_quality_when_not_used``.
    """
    stats = {}
    baseline = []

    for s in sessions:
        intelligence = s.intelligence
        skills = list(intelligence.tool_usage.skill_invocations) if intelligence and intelligence.tool_usage else []
        quality = s.quality

        if not skills:
            if quality is not None:
                baseline.append(quality)
            continue

        for skill in dict.fromkeys(skills):
            entry = stats.setdefault(skill, {"invocations": 0, "sessions": 0, "qualities": []})
            entry["invocations"] += skills.count(skill)
            entry["sessions"] += 1
            if quality is not None:
                entry["qualities"].append(quality)

    baseline_avg = average(baseline)
    result = [
        SkillStats(
            name=name,
            total_invocations=e["invocations"],
            sessions_used=e["sessions"],
            avg_quality_when_used=average(e["qualities"]),
            avg_quality_when_not_used=baseline_avg,
        )
        for name, e in stats.items()
    ]
    result.sort(key=lambda skill: skill.total_invocations, reverse=True)
    return SkillUsageAnalytics(skills=result)


def instruction_effectiveness(sessions: list) -> InstructionEffectiveness:
    """Did quality change after the first instruction-file edit?

    The earliest session whose git activity touched an instruction file is
    the pivot. The last five scored sessions before it are compared with the
    first five from the pivot on.
    """
    dated = []
    for s in sessions:
        started = parse_timestamp(s.started_at)
        if started is not None:
            dated.append((started, s))
    dated.sort(key=lambda item: item[0])

    changes = [
        InstructionChange(
            session_id=s.id,
            ticket_id=s.ticket_id,
            date=s.started_at,
            files=list(s.git_activity.instruction_file_changes),
        )
        for _, s in dated
        if s.git_activity and s.git_activity.instruction_file_changes
    ]

    if not changes:
        return InstructionEffectiveness(
            changes=[],
            before_avg_quality=None,
            after_avg_quality=None,
            verdict="not enough data",
            summary="No instruction file changes detected.",
        )

    pivot = parse_timestamp(changes[0].date)
    before = [s.quality for started, s in dated if s.quality is not None and started < pivot]
    after = [s.quality for started, s in dated if s.quality is not None and started >= pivot]

    before_avg = average(before[-COMPARISON_WINDOW:])
    after_avg = average(after[:COMPARISON_WINDOW])

    if before_avg is None or after_avg is None:
        verdict = "not enough data"
        summary = "Not enough data to compare quality before and after instruction changes."
    elif after_avg > before_avg + STABLE_MARGIN:
        verdict = "improved"
        summary = f"Quality improved from {before_avg} to {after_avg} after instruction file updates."
    elif after_avg < before_avg - STABLE_MARGIN:
        verdict = "declined"
        summary = f"Quality declined from {before_avg} to {after_avg} after instruction file updates."
    else:
        verdict = "stable"
        summary = f"Quality remained stable ({before_avg} -> {after_avg}) after instruction file updates."

    return InstructionEffectiveness(
        changes=changes,
        before_avg_quality=before_avg,
        after_avg_quality=after_avg,
        verdict=verdict,
        summary=summary,
    )
