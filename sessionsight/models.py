"""Data models for session analytics."""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional

CATEGORIES = (
    "bug-fix", "feature", "refactor", "investigation", "testing", "docs", "other",
)


@dataclass
class ToolCall:
    """Represents a tool invocation during a session."""
    name: str
    input: Any
    timestamp: str
    output: Any = None


@dataclass
class ConversationTurn:
    """A single turn in the conversation."""
    role: str  # "user", "assistant" or "system"
    content: str
    timestamp: str
    model: Optional[str] = None
    token_count: Optional[int] = None
    tool_calls: list = field(default_factory=list)


@dataclass
class GitCommit:
    hash: str
    message: str
    timestamp: str
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0


@dataclass
class GitActivity:
    """Commits and diff stats captured over a session's lifetime."""
    branch: str
    commits: list = field(default_factory=list)
    total_commits: int = 0
    total_insertions: int = 0
    total_deletions: int = 0
    total_files_changed: int = 0
    instruction_file_changes: Optional[list] = None


@dataclass
class QualityScore:
    overall: float
    plan_mode_used: bool
    correction_rate: float
    one_shot_success: bool
    error_recovery: float  # 1.0, 0.7 or 0.3
    turns_to_complete: int


@dataclass
class ToolUsage:
    tool_counts: dict
    skill_invocations: list
    total_tool_calls: int
    top_tools: list  # [{"name", "count"}], at most 10


@dataclass
class SubagentStats:
    total_spawned: int
    subagent_types: dict
    top_types: list  # [{"type", "count"}], at most 10


@dataclass
class ContextMetrics:
    peak_token_count: int
    summarization_events: int
    token_growth_rate: int
    turns_before_summarization: Optional[int]
    context_utilization: float


@dataclass
class PromptInsight:
    type: str
    severity: str  # "info" or "warning"
    description: str
    suggestion: str
    turn_index: Optional[int] = None


@dataclass
class PromptQuality:
    insights: list
    prompt_efficiency: int
    avg_prompt_length: int
    back_and_forth_score: int


@dataclass
class SessionIntelligence:
    """Derived metrics for one session. Written once, at finish time."""
    quality_score: QualityScore
    tool_usage: ToolUsage
    subagent_stats: SubagentStats
    context_metrics: ContextMetrics
    prompt_quality: PromptQuality


@dataclass
class SessionRecord:
    """A recorded session as handed over by the session store."""
    ticket_id: str
    started_at: str
    id: str = ""
    finished_at: Optional[str] = None
    status: str = "ACTIVE"
    ticket_url: Optional[str] = None
    total_tokens: int = 0
    prompt_tokens: int = 0
    response_tokens: int = 0
    message_count: int = 0
    tool_call_count: int = 0
    conversations: list = field(default_factory=list)
    models: list = field(default_factory=list)
    tags: list = field(default_factory=list)
    client_tool: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    cost_estimate: Optional[float] = None
    git_activity: Optional[GitActivity] = None
    category: Optional[str] = None
    intelligence: Optional[SessionIntelligence] = None

    @property
    def quality(self) -> Optional[float]:
        """Overall quality score, if the session has been analyzed."""
        if self.intelligence is None or self.intelligence.quality_score is None:
            return None
        return self.intelligence.quality_score.overall


# Reporting structures. Rebuilt on every request, never stored.

@dataclass
class PeriodBounds:
    current_start: Any  # datetime
    current_end: Any
    previous_start: Any
    previous_end: Any


@dataclass
class PeriodMetrics:
    total_sessions: int
    completed_sessions: int
    total_tokens: int
    total_messages: int
    total_cost: float
    avg_duration: int  # minutes
    avg_quality: Optional[float]
    total_commits: int
    total_insertions: int
    total_deletions: int


@dataclass
class DigestChanges:
    sessions: Optional[int]
    tokens: Optional[int]
    cost: Optional[int]
    messages: Optional[int]
    quality: Optional[int]
    commits: Optional[int]


@dataclass
class DigestComparison:
    current: PeriodMetrics
    previous: PeriodMetrics
    changes: DigestChanges


@dataclass
class TopProject:
    project: str
    sessions: int
    tokens: int
    cost: float


@dataclass
class DeveloperEfficiency:
    name: str
    sessions: int
    tokens_per_session: int
    cost_per_session: float
    avg_quality: Optional[float]


@dataclass
class CategoryBreakdown:
    category: str
    sessions: int
    tokens: int


@dataclass
class WeeklyDigest:
    period_label: str
    previous_label: str
    comparison: DigestComparison
    top_projects: list
    developers: list
    top_categories: list
    highlights: list


@dataclass
class TrendPeriod:
    label: str
    start_date: str
    cost: float
    tokens: int
    sessions: int


@dataclass
class ProjectCostTrend:
    project: str
    periods: list
    total_cost: float
    total_tokens: int
    trend_direction: str  # "rising", "falling" or "stable"
    change_percent: Optional[int]


@dataclass
class SessionRef:
    id: str
    ticket_id: str


@dataclass
class ParallelSessionGroup:
    sessions: list
    overlap_start: str
    overlap_end: str
    overlap_minutes: int
    combined_tokens: int


@dataclass
class SkillStats:
    name: str
    total_invocations: int
    sessions_used: int
    avg_quality_when_used: Optional[float]
    avg_quality_when_not_used: Optional[float]


@dataclass
class SkillUsageAnalytics:
    skills: list


@dataclass
class InstructionChange:
    session_id: str
    ticket_id: str
    date: str
    files: list


@dataclass
class InstructionEffectiveness:
    changes: list
    before_avg_quality: Optional[float]
    after_avg_quality: Optional[float]
    verdict: str  # "improved", "declined", "stable" or "not enough data"
    summary: str


@dataclass
class UsageReport:
    label: str
    total_sessions: int
    completed_sessions: int
    total_tokens: int
    prompt_tokens: int
    response_tokens: int
    total_messages: int
    total_tool_calls: int
    avg_duration: int
    avg_tokens_per_session: int
    models: list
    client_tools: dict
    tags: dict
    categories: dict
    projects: list  # [{"project", "sessions", "tokens"}]
    total_commits: int
    total_insertions: int
    total_deletions: int


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def as_dict(obj: Any) -> Any:
    """Convert a model (or list of models) into a camelCase, JSON-ready dict.

    Only dataclass field names are renamed; keys of free-form maps such as
    tool or tag counts are kept verbatim.
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            _camel(f.name): as_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, dict):
        return {k: as_dict(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [as_dict(v) for v in obj]
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return obj
