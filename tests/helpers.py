"""Builders for turns, records and intelligence used across the tests."""

from sessionsight.models import (
    ContextMetrics,
    ConversationTurn,
    GitActivity,
    PromptQuality,
    QualityScore,
    SessionIntelligence,
    SessionRecord,
    SubagentStats,
    ToolCall,
    ToolUsage,
)


def user(content, **kwargs):
    return ConversationTurn(role="user", content=content, timestamp="", **kwargs)


def assistant(content="", **kwargs):
    return ConversationTurn(role="assistant", content=content, timestamp="", **kwargs)


def system(content, **kwargs):
    return ConversationTurn(role="system", content=content, timestamp="", **kwargs)


def call(name, input=None):
    return ToolCall(name=name, input=input or {}, timestamp="")


def intelligence(overall, skills=()):
    return SessionIntelligence(
        quality_score=QualityScore(
            overall=overall,
            plan_mode_used=False,
            correction_rate=0.0,
            one_shot_success=True,
            error_recovery=1.0,
            turns_to_complete=2,
        ),
        tool_usage=ToolUsage(tool_counts={}, skill_invocations=list(skills), total_tool_calls=0, top_tools=[]),
        subagent_stats=SubagentStats(total_spawned=0, subagent_types={}, top_types=[]),
        context_metrics=ContextMetrics(
            peak_token_count=0,
            summarization_events=0,
            token_growth_rate=0,
            turns_before_summarization=None,
            context_utilization=0.0,
        ),
        prompt_quality=PromptQuality(insights=[], prompt_efficiency=100, avg_prompt_length=0, back_and_forth_score=0),
    )


def session(ticket_id="PROJ-1", started_at="2026-03-04T10:00:00Z", finished_at=None, quality=None,
            skills=(), instruction_files=None, **kwargs):
    """SessionRecord with sensible defaults; quality/skills build intelligence."""
    if quality is not None or skills:
        kwargs.setdefault("intelligence", intelligence(quality, skills))
    if instruction_files is not None:
        kwargs.setdefault("git_activity", GitActivity(branch="main", instruction_file_changes=list(instruction_files)))
    kwargs.setdefault("id", ticket_id.lower() + "-" + started_at)
    kwargs.setdefault("status", "COMPLETED" if finished_at else "ACTIVE")
    return SessionRecord(ticket_id=ticket_id, started_at=started_at, finished_at=finished_at, **kwargs)
