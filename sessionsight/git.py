"""Git activity captured over a session window."""

import logging
import re
import subprocess
from pathlib import PurePosixPath
from typing import Optional

from .models import GitActivity, GitCommit

logger = logging.getLogger(__name__)

SEPARATOR = "---SESSIONSIGHT_SEP---"
LOG_FORMAT = f"{SEPARATOR}%n%h%n%s%n%aI"
GIT_TIMEOUT = 10

# Project-level guidance files read by AI coding assistants
INSTRUCTION_FILE_NAMES = frozenset([
    "CLAUDE.md", "AGENTS.md", "GEMINI.md", ".cursorrules", ".windsurfrules",
])
INSTRUCTION_FILE_PATHS = frozenset([
    ".github/copilot-instructions.md", ".codex/instructions.md",
])

_FILES = re.compile(r"(\d+) files? changed")
_INSERTIONS = re.compile(r"(\d+) insertions?")
_DELETIONS = re.compile(r"(\d+) deletions?")


def is_instruction_file(path: str) -> bool:
    """Check if a repository path is an assistant instruction file."""
    posix = PurePosixPath(path.replace("\\", "/"))
    if posix.name in INSTRUCTION_FILE_NAMES:
        return True
    return any(str(posix).endswith(p) for p in INSTRUCTION_FILE_PATHS)


def find_instruction_files(paths) -> list:
    """Instruction files among paths, deduplicated, in first-seen order."""
    found = []
    for path in paths:
        path = path.strip()
        if path and is_instruction_file(path) and path not in found:
            found.append(path)
    return found


def _stat(pattern, text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def parse_git_log(output: str, branch: str = "unknown") -> GitActivity:
    """Parse ``git log --format=<LOG_FORMAT> --shortstat`` output.

    Blocks with fewer than hash, subject and date lines are ignored. Empty
    commits get zero stats.
    """
    commits = []
    for block in output.split(SEPARATOR):
        lines = block.strip().splitlines()
        if len(lines) < 3:
            continue
        stat_line = " ".join(lines[3:])
        commits.append(GitCommit(
            hash=lines[0].strip(),
            message=lines[1].strip(),
            timestamp=lines[2].strip(),
            files_changed=_stat(_FILES, stat_line),
            insertions=_stat(_INSERTIONS, stat_line),
            deletions=_stat(_DELETIONS, stat_line),
        ))

    return GitActivity(
        branch=branch,
        commits=commits,
        total_commits=len(commits),
        total_insertions=sum(c.insertions for c in commits),
        total_deletions=sum(c.deletions for c in commits),
        total_files_changed=sum(c.files_changed for c in commits),
    )


def _git(args: list, cwd: Optional[str]) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT,
        check=True,
    )
    return result.stdout.strip()


def capture_git_activity(since: str, cwd: Optional[str] = None) -> Optional[GitActivity]:
    """Collect commits made since a session started.

    Args:
        since: Session start timestamp, passed to ``git log --since``.
        cwd: Repository directory. Defaults to the current directory.

    Returns:
        GitActivity, or None outside a git repository or when git fails.
    """
    try:
        _git(["rev-parse", "--is-inside-work-tree"], cwd)
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        return None

    try:
        branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd)
    except subprocess.CalledProcessError:
        branch = ""
    except subprocess.TimeoutExpired as e:
        logger.warning("git rev-parse timed out: %s", e)
        return None
    if not branch or branch == "HEAD":
        branch = "unknown"

    try:
        log_output = _git(["log", f"--since={since}", f"--format={LOG_FORMAT}", "--shortstat"], cwd)
        names = _git(["log", f"--since={since}", "--format=", "--name-only"], cwd)
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
        logger.warning("git log failed: %s", e)
        return None

    activity = parse_git_log(log_output, branch)
    instruction_files = find_instruction_files(names.splitlines())
    if instruction_files:
        activity.instruction_file_changes = instruction_files
    return activity
