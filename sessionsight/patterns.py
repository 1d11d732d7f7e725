"""Fixed pattern tables used by the transcript heuristics.

Everything here is immutable. ``DEFAULT_PATTERNS`` is what the analyzer
uses unless a caller passes its own ``PatternSet``.
"""

import re
from functools import lru_cache
from dataclasses import dataclass

# Tool names counted from assistant text when a turn has no structured calls
KNOWN_TOOLS = (
    "Bash", "Read", "Edit", "Write", "Grep", "Glob",
    "WebFetch", "WebSearch", "Task", "TaskCreate", "TaskUpdate", "TaskList", "TaskGet",
    "NotebookEdit", "EnterPlanMode", "ExitPlanMode", "AskUserQuestion", "Skill",
)

SUBAGENT_TYPES = (
    "Explore", "Plan", "Bash", "general-purpose",
    "smart-commit-bundler", "statusline-setup",
)

SLASH_COMMANDS = (
    "commit", "review-pr", "track", "help", "init", "clear", "compact",
    "config", "doctor", "login", "logout", "memory", "model", "pr-comments",
    "status", "vim",
)


def _compile(*patterns, flags=0):
    return tuple(re.compile(p, flags) for p in patterns)


CORRECTION_PATTERNS = _compile(
    r"\bno,?\s+that'?s?\s+(wrong|not)",
    r"\btry\s+again\b",
    r"\bthat\s+didn'?t\s+work\b",
    r"\brevert\b",
    r"\bnot\s+what\s+I\s+(asked|wanted|meant)\b",
    r"\bundo\s+(that|this)\b",
    r"\bwrong\s+(file|approach|way)\b",
    r"\bstart\s+over\b",
    r"\bgo\s+back\b",
    r"\bactually,?\s+(don'?t|no|never\s*mind)\b",
    flags=re.IGNORECASE,
)

ERROR_PATTERNS = _compile(
    r"\berror\b",
    r"\bfailed\b",
    r"\bfailure\b",
    r"\bexit\s+code\s+[1-9]",
    r"\bcompilation\s+error",
    r"\bbuild\s+failed",
    r"\btest\s+failed",
    r"\bcommand\s+failed",
    flags=re.IGNORECASE,
) + _compile(
    r"\bENOENT\b",
    r"\bENOTDIR\b",
    r"\bTypeError\b",
    r"\bSyntaxError\b",
    r"\bReferenceError\b",
    r"\bTraceback\b",
)

RESOLUTION_PATTERNS = _compile(
    r"\bfixed\b",
    r"\bworking\s+now\b",
    r"\bsuccessfully\b",
    r"\bresolved\b",
    r"\btests?\s+pass",
    r"\bbuild\s+succeeded",
    r"\bcompiles?\s+clean",
    r"\ball\s+good\b",
    flags=re.IGNORECASE,
)

PLAN_MODE_PATTERNS = _compile(r"\bEnterPlanMode\b", r"\bExitPlanMode\b") + _compile(
    r"\bplan\s+mode\b",
    r"\bPlan\s+agent\b",
    flags=re.IGNORECASE,
)

SKILL_PATTERNS = tuple(
    re.compile(r"/" + re.escape(cmd) + r"\b") for cmd in SLASH_COMMANDS
) + _compile(r"Skill\s+tool", flags=re.IGNORECASE)

# Markers of a compacted / resumed conversation
CONTINUATION_PATTERNS = _compile(
    r"this session is being continued from a previous conversation",
    r"<compact[-_]summary>",
    r"\bconversation (was|has been) (compacted|summarized)\b",
    flags=re.IGNORECASE,
)

# Prompt context signals
FILE_PATH_PATTERN = re.compile(r"[/\\][\w.-]+\.\w+|`[^`]+`")
FUNCTION_CALL_PATTERN = re.compile(r"\b\w+\(")
ERROR_KEYWORD_PATTERN = re.compile(r"\b(error|exception|stack\s*trace)\b", re.IGNORECASE)
CODE_BLOCK_PATTERN = re.compile(r"```")

SUBAGENT_TYPE_PATTERN = re.compile(r"subagent_type\s*[=:]\s*[\"']?(\w+)", re.IGNORECASE)
TASK_AGENT_PATTERN = re.compile(r"\bTask\b.*\b(?:agent|subagent)", re.IGNORECASE)


@dataclass(frozen=True)
class PatternSet:
    """Bundle of the tables one analysis run works with."""
    known_tools: tuple = KNOWN_TOOLS
    subagent_types: tuple = SUBAGENT_TYPES
    corrections: tuple = CORRECTION_PATTERNS
    errors: tuple = ERROR_PATTERNS
    resolutions: tuple = RESOLUTION_PATTERNS
    plan_mode: tuple = PLAN_MODE_PATTERNS
    skills: tuple = SKILL_PATTERNS
    continuations: tuple = CONTINUATION_PATTERNS


DEFAULT_PATTERNS = PatternSet()


def matches_any(patterns, text: str) -> bool:
    """Check whether any of the compiled patterns occurs in text."""
    if not text:
        return False
    return any(p.search(text) for p in patterns)


def is_correction(text: str, patterns: PatternSet = DEFAULT_PATTERNS) -> bool:
    """Check if a user message asks the assistant to redo or undo something."""
    return matches_any(patterns.corrections, text)


def is_continuation(text: str, patterns: PatternSet = DEFAULT_PATTERNS) -> bool:
    """Check if text is the summary injected after a context compaction."""
    return matches_any(patterns.continuations, text)


@lru_cache(maxsize=None)
def word_pattern(word: str):
    """Standalone-word pattern for a tool name."""
    return re.compile(r"\b" + re.escape(word) + r"\b")


@lru_cache(maxsize=None)
def agent_mention_pattern(agent_type: str):
    """Matches "<type> agent" mentions in prose."""
    return re.compile(r"\b" + re.escape(agent_type) + r"\s+agent\b", re.IGNORECASE)
