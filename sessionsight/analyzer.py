"""Analyze a session transcript into quality and usage metrics.

Every function here is a pure, regex-driven heuristic over the ordered
conversation turns. No model calls; the same turns always produce the
same result.
"""

from collections import Counter
from typing import Optional

from .models import (
    ContextMetrics,
    PromptInsight,
    PromptQuality,
    QualityScore,
    SessionIntelligence,
    SubagentStats,
    ToolUsage,
)
from .patterns import (
    CODE_BLOCK_PATTERN,
    DEFAULT_PATTERNS,
    ERROR_KEYWORD_PATTERN,
    FILE_PATH_PATTERN,
    FUNCTION_CALL_PATTERN,
    SUBAGENT_TYPE_PATTERN,
    TASK_AGENT_PATTERN,
    PatternSet,
    agent_mention_pattern,
    is_continuation,
    is_correction,
    matches_any,
    word_pattern,
)
from .utils import estimate_tokens, round_half_up, word_count

CONTEXT_WINDOW_TOKENS = 200_000
# A running total falling below this share of the previous one is a compaction
SUMMARIZATION_DROP_RATIO = 0.7
TOP_N = 10

VAGUE_PROMPT_WORDS = 30
VAGUE_PROMPT_WINDOW = 6
VAGUE_PROMPT_FOLLOW_UPS = 3
BACK_AND_FORTH_ROUNDS = 3
MISSING_CONTEXT_WORDS = 10
SCOPE_CREEP_RATIO = 0.6
SCOPE_CREEP_MIN_WORDS = 10
LONG_PROMPT_WORDS = 500


def analyze(
    conversations: list,
    message_count: int,
    ticket_id: Optional[str] = None,
    patterns: PatternSet = DEFAULT_PATTERNS,
) -> SessionIntelligence:
    """Build the full intelligence bundle for one session.

    Args:
        conversations: Ordered conversation turns.
        message_count: Message counter recorded for the session.
        ticket_id: Ticket the session belongs to.
        patterns: Pattern tables to match against.

    Returns:
        SessionIntelligence with all five metric groups.
    """
    return SessionIntelligence(
        quality_score=compute_quality_score(conversations, patterns),
        tool_usage=compute_tool_usage(conversations, patterns),
        subagent_stats=compute_subagent_stats(conversations, patterns),
        context_metrics=compute_context_metrics(conversations, patterns),
        prompt_quality=compute_prompt_quality(conversations, patterns),
    )


def _turn_tokens(turn) -> int:
    if turn.token_count is not None:
        return turn.token_count
    return estimate_tokens(turn.content)


def _ranked(counts: dict, key: str) -> list:
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{key: name, "count": count} for name, count in ordered[:TOP_N]]


def compute_quality_score(conversations: list, patterns: PatternSet = DEFAULT_PATTERNS) -> QualityScore:
    """Score a session from 1 to 5.

    Starts at 3.0, then:
        +0.3 if plan mode shows up anywhere
        +0.8 for a one-shot session (at most two follow-up prompts)
        -1.5 x share of user turns that are corrections
        +errorRecovery x 0.5 - 0.25
    """
    user_turns = [t for t in conversations if t.role == "user"]
    assistant_turns = [t for t in conversations if t.role == "assistant"]
    all_content = "\n".join(t.content for t in conversations)

    plan_mode_used = matches_any(patterns.plan_mode, all_content)

    corrections = sum(1 for t in user_turns if is_correction(t.content, patterns))
    correction_rate = corrections / len(user_turns) if user_turns else 0.0

    follow_ups = max(0, len(user_turns) - 1)
    one_shot_success = follow_ups <= 2

    if not matches_any(patterns.errors, all_content):
        error_recovery = 1.0
    elif matches_any(patterns.resolutions, all_content):
        error_recovery = 0.7
    else:
        error_recovery = 0.3

    overall = 3.0
    if plan_mode_used:
        overall += 0.3
    if one_shot_success:
        overall += 0.8
    overall -= correction_rate * 1.5
    overall += error_recovery * 0.5 - 0.25
    overall = round_half_up(min(5.0, max(1.0, overall)), 1)

    return QualityScore(
        overall=overall,
        plan_mode_used=plan_mode_used,
        correction_rate=round_half_up(correction_rate, 2),
        one_shot_success=one_shot_success,
        error_recovery=error_recovery,
        turns_to_complete=len(user_turns) + len(assistant_turns),
    )


def compute_tool_usage(conversations: list, patterns: PatternSet = DEFAULT_PATTERNS) -> ToolUsage:
    """Count tool calls and collect the skills invoked in a session.

    Structured tool calls are counted as recorded. An assistant turn without
    any falls back to standalone-word mentions of the known tool names.
    """
    tool_counts = Counter()
    skills = []

    for turn in conversations:
        for call in turn.tool_calls or []:
            tool_counts[call.name] += 1

        if turn.role != "assistant":
            continue

        if not turn.tool_calls:
            for tool in patterns.known_tools:
                mentions = len(word_pattern(tool).findall(turn.content))
                if mentions:
                    tool_counts[tool] += mentions

        for pattern in patterns.skills:
            match = pattern.search(turn.content)
            if match and match.group(0) not in skills:
                skills.append(match.group(0))

    return ToolUsage(
        tool_counts=dict(tool_counts),
        skill_invocations=skills,
        total_tool_calls=sum(tool_counts.values()),
        top_tools=_ranked(tool_counts, "name"),
    )


def compute_subagent_stats(conversations: list, patterns: PatternSet = DEFAULT_PATTERNS) -> SubagentStats:
    """Count subagent spawns and the agent types they used."""
    total_spawned = 0
    types = Counter()

    for turn in conversations:
        if turn.role != "assistant":
            continue

        total_spawned += len(TASK_AGENT_PATTERN.findall(turn.content))

        for call in turn.tool_calls or []:
            if call.name != "Task":
                continue
            total_spawned += 1
            if isinstance(call.input, dict) and call.input.get("subagent_type"):
                types[str(call.input["subagent_type"])] += 1

        for agent_type in patterns.subagent_types:
            mentions = len(agent_mention_pattern(agent_type).findall(turn.content))
            if mentions:
                types[agent_type] += mentions

        for agent_type in SUBAGENT_TYPE_PATTERN.findall(turn.content):
            types[agent_type] += 1

    return SubagentStats(
        total_spawned=total_spawned,
        subagent_types=dict(types),
        top_types=_ranked(types, "type"),
    )


def compute_context_metrics(conversations: list, patterns: PatternSet = DEFAULT_PATTERNS) -> ContextMetrics:
    """Track the estimated context size across the session.

    The running total grows by each turn's tokens. A continuation summary
    restarts it from that turn alone; when the restart leaves less than 70%
    of the previous total, it counts as a summarization event. Other system
    turns just add to the total.
    """
    if not conversations:
        return ContextMetrics(
            peak_token_count=0,
            summarization_events=0,
            token_growth_rate=0,
            turns_before_summarization=None,
            context_utilization=0.0,
        )

    running = 0
    previous = 0
    peak = 0
    total = 0
    events = 0
    gaps = []
    since_last = 0

    for turn in conversations:
        tokens = _turn_tokens(turn)
        total += tokens
        if is_continuation(turn.content, patterns):
            running = tokens
        else:
            running += tokens

        if previous > 0 and running < previous * SUMMARIZATION_DROP_RATIO:
            events += 1
            gaps.append(since_last)
            since_last = 0

        peak = max(peak, running)
        previous = running
        since_last += 1

    turns_before = round_half_up(sum(gaps) / len(gaps)) if gaps else None
    utilization = round_half_up(peak / CONTEXT_WINDOW_TOKENS, 2)

    return ContextMetrics(
        peak_token_count=peak,
        summarization_events=events,
        token_growth_rate=round_half_up(total / len(conversations)),
        turns_before_summarization=turns_before,
        context_utilization=min(1.0, utilization),
    )


def compute_prompt_quality(conversations: list, patterns: PatternSet = DEFAULT_PATTERNS) -> PromptQuality:
    """Detect prompting anti-patterns and score prompt efficiency.

    At most one insight of each type is reported per session.
    """
    user_turns = [t for t in conversations if t.role == "user"]
    if not user_turns:
        return PromptQuality(insights=[], prompt_efficiency=100, avg_prompt_length=0, back_and_forth_score=0)

    insights = []
    for check in (_vague_prompt, _excessive_back_and_forth, _missing_context, _scope_creep, _long_prompt):
        insight = check(conversations, user_turns, patterns)
        if insight:
            insights.append(insight)

    avg_length = round_half_up(sum(word_count(t.content) for t in user_turns) / len(user_turns))

    total_tokens = sum(_turn_tokens(t) for t in conversations)
    wasted = sum(_turn_tokens(t) * 3 for t in user_turns if is_correction(t.content, patterns))
    if total_tokens > 0:
        efficiency = max(0, min(100, round_half_up(100 - wasted / total_tokens * 100)))
    else:
        efficiency = 100

    if len(user_turns) > 1:
        back_and_forth = round_half_up((len(user_turns) - 1) / len(conversations) * 100)
    else:
        back_and_forth = 0

    return PromptQuality(
        insights=insights,
        prompt_efficiency=efficiency,
        avg_prompt_length=avg_length,
        back_and_forth_score=back_and_forth,
    )


def _vague_prompt(conversations, user_turns, patterns) -> Optional[PromptInsight]:
    for i, turn in enumerate(conversations):
        if turn.role != "user":
            continue
        words = word_count(turn.content)
        if words >= VAGUE_PROMPT_WORDS:
            continue
        window = conversations[i + 1:i + 1 + VAGUE_PROMPT_WINDOW]
        follow_ups = sum(1 for t in window if t.role == "user")
        if follow_ups >= VAGUE_PROMPT_FOLLOW_UPS:
            return PromptInsight(
                type="vague-prompt",
                severity="warning",
                description=f"Short prompt ({words} words) followed by {follow_ups} follow-up messages",
                turn_index=i,
                suggestion="Include more context upfront: file paths, expected behavior and "
                           "constraints reduce back-and-forth.",
            )
    return None


def _excessive_back_and_forth(conversations, user_turns, patterns) -> Optional[PromptInsight]:
    rounds = 0
    for i in range(1, len(conversations)):
        if conversations[i].role == "user" and conversations[i - 1].role == "assistant":
            if matches_any(patterns.resolutions, conversations[i - 1].content):
                rounds = 0
            else:
                rounds += 1
        if rounds >= BACK_AND_FORTH_ROUNDS:
            return PromptInsight(
                type="excessive-back-and-forth",
                severity="warning",
                description=f"{rounds} rounds of conversation without clear resolution",
                turn_index=i,
                suggestion="Consider providing complete requirements in a single message to reduce iterations.",
            )
    return None


def _missing_context(conversations, user_turns, patterns) -> Optional[PromptInsight]:
    first = user_turns[0].content
    if word_count(first) <= MISSING_CONTEXT_WORDS:
        return None
    for signal in (FILE_PATH_PATTERN, FUNCTION_CALL_PATTERN, ERROR_KEYWORD_PATTERN, CODE_BLOCK_PATTERN):
        if signal.search(first):
            return None
    return PromptInsight(
        type="missing-context",
        severity="info",
        description="First prompt lacks specific code references (file paths, function names, error strings)",
        turn_index=conversations.index(user_turns[0]),
        suggestion="Including file paths, function names, or error messages helps the assistant "
                   "locate relevant code faster.",
    )


def _long_words(turns) -> set:
    return {w for t in turns for w in t.content.lower().split() if len(w) > 4}


def _scope_creep(conversations, user_turns, patterns) -> Optional[PromptInsight]:
    if len(user_turns) <= 3:
        return None
    early = _long_words(user_turns[:3])
    late = _long_words(user_turns[3:])
    if not late:
        return None
    new_words = late - early
    if len(new_words) / len(late) > SCOPE_CREEP_RATIO and len(new_words) > SCOPE_CREEP_MIN_WORDS:
        return PromptInsight(
            type="scope-creep",
            severity="info",
            description="Later prompts introduce significantly different topics from the initial request",
            suggestion="Consider starting a new session when the task scope changes significantly.",
        )
    return None


def _long_prompt(conversations, user_turns, patterns) -> Optional[PromptInsight]:
    for i, turn in enumerate(conversations):
        if turn.role != "user":
            continue
        words = word_count(turn.content)
        if words > LONG_PROMPT_WORDS:
            return PromptInsight(
                type="long-prompt",
                severity="info",
                description=f"Prompt with {words} words, may include unnecessary context",
                turn_index=i,
                suggestion="Long prompts aren't always bad, but make sure key requirements are "
                           "stated clearly at the start.",
            )
    return None
