"""Decode stored session records and Claude Code transcripts into models.

This is the only place raw, JSON-encoded data is read. A malformed field
degrades to an empty default so one bad record never stops a batch.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .models import (
    ContextMetrics,
    ConversationTurn,
    GitActivity,
    GitCommit,
    PromptInsight,
    PromptQuality,
    QualityScore,
    SessionIntelligence,
    SessionRecord,
    SubagentStats,
    ToolCall,
    ToolUsage,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def decode_json_field(raw: Any, default: Any = None, name: str = "field", record_id: str = "") -> Any:
    """Decode a JSON-encoded column, falling back to default on bad input.

    Values that are already decoded (lists, dicts) pass through unchanged.
    """
    if raw is None or raw == "":
        return default
    if not isinstance(raw, (str, bytes, bytearray)):
        return raw
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning("Could not decode %s of session %s: %s", name, record_id or "?", e)
        return default


def _get(row: dict, *keys, default=None):
    """First present key, so snake_case rows and camelCase exports both work."""
    for key in keys:
        value = row.get(key, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def _int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def tool_call_from_dict(data: dict) -> ToolCall:
    return ToolCall(
        name=str(data.get("name", "")),
        input=data.get("input"),
        timestamp=str(data.get("timestamp", "")),
        output=data.get("output"),
    )


def turn_from_dict(data: dict) -> ConversationTurn:
    """Build a ConversationTurn from its stored JSON shape."""
    calls = _get(data, "toolCalls", "tool_calls", default=[])
    token_count = _get(data, "tokenCount", "token_count")
    return ConversationTurn(
        role=str(data.get("role", "user")),
        content=str(_get(data, "content", "text", default="")),
        timestamp=str(data.get("timestamp", "")),
        model=data.get("model"),
        token_count=_int(token_count) if token_count is not None else None,
        tool_calls=[tool_call_from_dict(c) for c in calls if isinstance(c, dict)] if isinstance(calls, list) else [],
    )


def git_activity_from_dict(data: dict) -> GitActivity:
    commits = []
    for c in _get(data, "commits", default=[]):
        if not isinstance(c, dict):
            continue
        commits.append(GitCommit(
            hash=str(c.get("hash", "")),
            message=str(c.get("message", "")),
            timestamp=str(c.get("timestamp", "")),
            files_changed=_int(_get(c, "filesChanged", "files_changed")),
            insertions=_int(c.get("insertions")),
            deletions=_int(c.get("deletions")),
        ))
    instruction_files = _get(data, "instructionFileChanges", "instruction_file_changes")
    return GitActivity(
        branch=str(data.get("branch", "unknown")),
        commits=commits,
        total_commits=_int(_get(data, "totalCommits", "total_commits"), len(commits)),
        total_insertions=_int(_get(data, "totalInsertions", "total_insertions")),
        total_deletions=_int(_get(data, "totalDeletions", "total_deletions")),
        total_files_changed=_int(_get(data, "totalFilesChanged", "total_files_changed")),
        instruction_file_changes=list(instruction_files) if isinstance(instruction_files, list) else None,
    )


def intelligence_from_dict(data: dict) -> Optional[SessionIntelligence]:
    """Rebuild stored intelligence. Missing sub-sections get neutral values."""
    quality = _get(data, "qualityScore", "quality_score", default={})
    tools = _get(data, "toolUsage", "tool_usage", default={})
    agents = _get(data, "subagentStats", "subagent_stats", default={})
    context = _get(data, "contextMetrics", "context_metrics", default={})
    prompts = _get(data, "promptQuality", "prompt_quality", default={})

    if not isinstance(quality, dict) or _get(quality, "overall") is None:
        return None

    insights = []
    for item in _get(prompts, "insights", default=[]):
        if isinstance(item, dict):
            insights.append(PromptInsight(
                type=str(item.get("type", "")),
                severity=str(item.get("severity", "info")),
                description=str(item.get("description", "")),
                suggestion=str(item.get("suggestion", "")),
                turn_index=_get(item, "turnIndex", "turn_index"),
            ))

    return SessionIntelligence(
        quality_score=QualityScore(
            overall=float(quality["overall"]),
            plan_mode_used=bool(_get(quality, "planModeUsed", "plan_mode_used", default=False)),
            correction_rate=float(_get(quality, "correctionRate", "correction_rate", default=0)),
            one_shot_success=bool(_get(quality, "oneShotSuccess", "one_shot_success", default=False)),
            error_recovery=float(_get(quality, "errorRecovery", "error_recovery", default=1.0)),
            turns_to_complete=_int(_get(quality, "turnsToComplete", "turns_to_complete")),
        ),
        tool_usage=ToolUsage(
            tool_counts=dict(_get(tools, "toolCounts", "tool_counts", default={})),
            skill_invocations=list(_get(tools, "skillInvocations", "skill_invocations", default=[])),
            total_tool_calls=_int(_get(tools, "totalToolCalls", "total_tool_calls")),
            top_tools=list(_get(tools, "topTools", "top_tools", default=[])),
        ),
        subagent_stats=SubagentStats(
            total_spawned=_int(_get(agents, "totalSpawned", "total_spawned")),
            subagent_types=dict(_get(agents, "subagentTypes", "subagent_types", default={})),
            top_types=list(_get(agents, "topTypes", "top_types", default=[])),
        ),
        context_metrics=ContextMetrics(
            peak_token_count=_int(_get(context, "peakTokenCount", "peak_token_count")),
            summarization_events=_int(_get(context, "summarizationEvents", "summarization_events")),
            token_growth_rate=_int(_get(context, "tokenGrowthRate", "token_growth_rate")),
            turns_before_summarization=_get(context, "turnsBeforeSummarization", "turns_before_summarization"),
            context_utilization=float(_get(context, "contextUtilization", "context_utilization", default=0)),
        ),
        prompt_quality=PromptQuality(
            insights=insights,
            prompt_efficiency=_int(_get(prompts, "promptEfficiency", "prompt_efficiency"), 100),
            avg_prompt_length=_int(_get(prompts, "avgPromptLength", "avg_prompt_length")),
            back_and_forth_score=_int(_get(prompts, "backAndForthScore", "back_and_forth_score")),
        ),
    )


def _decode_nested(row: dict, record_id: str, builder, *keys):
    raw = _get(row, *keys)
    data = decode_json_field(raw, None, keys[0], record_id)
    if not isinstance(data, dict):
        return None
    try:
        return builder(data)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning("Malformed %s in session %s: %s", keys[0], record_id or "?", e)
        return None


def session_from_row(row: dict) -> SessionRecord:
    """Convert a store row or export dict into a SessionRecord.

    Args:
        row: Either a snake_case store row whose nested columns hold JSON
            text, or a camelCase export dict with those already decoded.

    Returns:
        SessionRecord; undecodable nested fields come back empty.
    """
    record_id = str(_get(row, "id", default=""))

    conversations = decode_json_field(_get(row, "conversations"), [], "conversations", record_id)
    turns = []
    if isinstance(conversations, list):
        for item in conversations:
            if isinstance(item, dict):
                turns.append(turn_from_dict(item))

    models = decode_json_field(_get(row, "models"), [], "models", record_id)
    tags = decode_json_field(_get(row, "tags"), [], "tags", record_id)

    return SessionRecord(
        id=record_id,
        ticket_id=str(_get(row, "ticket_id", "ticketId", default="")),
        ticket_url=_get(row, "ticket_url", "ticketUrl"),
        started_at=str(_get(row, "started_at", "startedAt", default="")),
        finished_at=_get(row, "finished_at", "finishedAt"),
        status=str(_get(row, "status", default="ACTIVE")).upper(),
        total_tokens=_int(_get(row, "total_tokens", "totalTokens")),
        prompt_tokens=_int(_get(row, "prompt_tokens", "promptTokens")),
        response_tokens=_int(_get(row, "response_tokens", "responseTokens")),
        message_count=_int(_get(row, "message_count", "messageCount")),
        tool_call_count=_int(_get(row, "tool_call_count", "toolCallCount")),
        conversations=turns,
        models=list(models) if isinstance(models, list) else [],
        tags=list(tags) if isinstance(tags, list) else [],
        client_tool=_get(row, "client_tool", "clientTool"),
        user_email=_get(row, "user_email", "userEmail"),
        user_name=_get(row, "user_name", "userName"),
        cost_estimate=_float(_get(row, "cost_estimate", "costEstimate")),
        git_activity=_decode_nested(row, record_id, git_activity_from_dict, "git_activity", "gitActivity"),
        category=_get(row, "category"),
        intelligence=_decode_nested(row, record_id, intelligence_from_dict, "intelligence"),
    )


def load_sessions(path: Path) -> list:
    """Load session rows from a JSON array file or a JSONL file.

    Lines that are not JSON objects are skipped.
    """
    text = Path(path).read_text()
    stripped = text.lstrip()

    rows = []
    if stripped.startswith("["):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            logger.warning("Could not decode session export %s: %s", path, e)
            data = []
        rows = [item for item in data if isinstance(item, dict)]
    else:
        for lineno, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping undecodable line %d of %s", lineno, path)
                continue
            if isinstance(entry, dict):
                rows.append(entry)

    return [session_from_row(row) for row in rows]


def parse_transcript(session_path: Path) -> list:
    """Parse a Claude Code session JSONL log into conversation turns.

    Args:
        session_path: Path to the .jsonl session file.

    Returns:
        Ordered ConversationTurn list. Compaction summaries become system
        turns; tool results are attached to the calls that produced them.
    """
    turns = []
    calls_by_id = {}

    with open(session_path, "r") as f:
        for line in f:
            if not line.strip():
                continue

            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue

            if not isinstance(entry, dict):
                continue

            if entry.get("type") == "user":
                turn = _process_user_message(entry, calls_by_id)
            elif entry.get("type") == "assistant":
                turn = _process_assistant_message(entry, calls_by_id)
            else:
                turn = None

            if turn is not None:
                turns.append(turn)

    return turns


def _process_user_message(entry: dict, calls_by_id: dict) -> Optional[ConversationTurn]:
    """Extract the user's text, and attach any tool results to their calls."""
    message = entry.get("message") or {}
    if not isinstance(message, dict):
        return None
    content = message.get("content", [])
    timestamp = entry.get("timestamp", "")

    text_parts = []
    if isinstance(content, str):
        text_parts.append(content.strip())
    elif isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "text":
                text_parts.append(str(block.get("text") or "").strip())
            elif block.get("type") == "tool_result":
                call = calls_by_id.get(block.get("tool_use_id"))
                if call is not None:
                    call.output = block.get("content")

    combined_text = "\n".join(t for t in text_parts if t)
    if not combined_text:
        return None

    role = "system" if entry.get("isCompactSummary") else "user"
    return ConversationTurn(role=role, content=combined_text, timestamp=timestamp)


def _process_assistant_message(entry: dict, calls_by_id: dict) -> Optional[ConversationTurn]:
    """Extract assistant text, tool calls and token usage from a message entry."""
    message = entry.get("message") or {}
    if not isinstance(message, dict):
        return None
    content = message.get("content", [])
    timestamp = entry.get("timestamp", "")

    if not isinstance(content, list):
        return None

    text_parts = []
    turn_tool_calls = []

    for block in content:
        if not isinstance(block, dict):
            continue

        if block.get("type") == "text":
            text = str(block.get("text") or "").strip()
            if text:
                text_parts.append(text)

        if block.get("type") == "tool_use":
            call = ToolCall(name=block.get("name", ""), input=block.get("input", {}), timestamp=timestamp)
            turn_tool_calls.append(call)
            if block.get("id"):
                calls_by_id[block["id"]] = call

    combined_text = "\n".join(text_parts)
    if not combined_text and not turn_tool_calls:
        return None

    usage = message.get("usage")
    output_tokens = usage.get("output_tokens") if isinstance(usage, dict) else None

    return ConversationTurn(
        role="assistant",
        content=combined_text,
        timestamp=timestamp,
        model=message.get("model"),
        token_count=_int(output_tokens) if output_tokens is not None else None,
        tool_calls=turn_tool_calls,
    )
