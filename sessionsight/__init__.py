"""Sessionsight - Engineering insight from recorded AI coding sessions.

Sessionsight scores and classifies AI-assisted coding sessions from their
transcripts, git activity and timing, and aggregates a corpus of sessions
into digests, trends, overlap groups and cross-session correlations. It is
pure heuristics: no model calls, and the same input always gives the same
output.

Basic usage:
    from sessionsight import load_sessions, enrich_session, digest

    sessions = [enrich_session(s) for s in load_sessions(Path("sessions.jsonl"))]
    weekly = digest(sessions)
    print(weekly.highlights)

From a Claude Code log:
    from sessionsight import parse_transcript, analyze

    turns = parse_transcript(Path("~/.claude/projects/.../session.jsonl"))
    intelligence = analyze(turns, message_count=len(turns))
"""

__version__ = "0.1.0"

from .models import (
    CATEGORIES,
    ConversationTurn,
    GitActivity,
    GitCommit,
    InstructionEffectiveness,
    ParallelSessionGroup,
    ProjectCostTrend,
    SessionIntelligence,
    SessionRecord,
    SkillUsageAnalytics,
    ToolCall,
    UsageReport,
    WeeklyDigest,
    as_dict,
)
from .patterns import DEFAULT_PATTERNS, PatternSet
from .parser import (
    decode_json_field,
    load_sessions,
    parse_transcript,
    session_from_row,
)
from .categorize import classify, extract_project
from .analyzer import (
    analyze,
    compute_context_metrics,
    compute_prompt_quality,
    compute_quality_score,
    compute_subagent_stats,
    compute_tool_usage,
)
from .enrich import enrich_session
from .digest import custom_boundaries, digest, percent_change, period_metrics, week_boundaries
from .trends import trends
from .parallel import overlaps
from .insights import instruction_effectiveness, skill_usage
from .report import build_report, resolve_range
from .git import capture_git_activity, find_instruction_files, parse_git_log

__all__ = [
    # Models
    "CATEGORIES",
    "ConversationTurn",
    "GitActivity",
    "GitCommit",
    "InstructionEffectiveness",
    "ParallelSessionGroup",
    "ProjectCostTrend",
    "SessionIntelligence",
    "SessionRecord",
    "SkillUsageAnalytics",
    "ToolCall",
    "UsageReport",
    "WeeklyDigest",
    "as_dict",
    # Patterns
    "DEFAULT_PATTERNS",
    "PatternSet",
    # Parser
    "decode_json_field",
    "load_sessions",
    "parse_transcript",
    "session_from_row",
    # Classifier
    "classify",
    "extract_project",
    # Analyzer
    "analyze",
    "compute_context_metrics",
    "compute_prompt_quality",
    "compute_quality_score",
    "compute_subagent_stats",
    "compute_tool_usage",
    "enrich_session",
    # Aggregation
    "custom_boundaries",
    "digest",
    "percent_change",
    "period_metrics",
    "week_boundaries",
    "trends",
    "overlaps",
    "instruction_effectiveness",
    "skill_usage",
    "build_report",
    "resolve_range",
    # Git
    "capture_git_activity",
    "find_instruction_files",
    "parse_git_log",
]
