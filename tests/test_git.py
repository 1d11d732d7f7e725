"""Tests for git log parsing and capture."""

import subprocess
from types import SimpleNamespace

import pytest

from sessionsight import git
from sessionsight.git import (
    SEPARATOR,
    capture_git_activity,
    find_instruction_files,
    is_instruction_file,
    parse_git_log,
)

LOG_OUTPUT = f"""{SEPARATOR}
a1b2c3d
feat: add export
2026-03-04T10:15:00+00:00

 3 files changed, 40 insertions(+), 5 deletions(-)
{SEPARATOR}
e4f5a6b
fix: typo
2026-03-04T10:05:00+00:00

 1 file changed, 1 insertion(+)
{SEPARATOR}
0000000
chore: empty
2026-03-04T10:01:00+00:00
"""


class TestInstructionFiles:

    @pytest.mark.parametrize("path,expected", [
        ("CLAUDE.md", True),
        ("packages/web/AGENTS.md", True),
        (".cursorrules", True),
        (".github/copilot-instructions.md", True),
        ("docs\\GEMINI.md", True),
        ("README.md", False),
        ("src/claude.md.bak", False),
    ])
    def test_is_instruction_file(self, path, expected):
        assert is_instruction_file(path) is expected

    def test_find_dedupes_in_order(self):
        paths = ["src/a.py", "CLAUDE.md", "", "AGENTS.md", "CLAUDE.md"]
        assert find_instruction_files(paths) == ["CLAUDE.md", "AGENTS.md"]


class TestParseGitLog:

    def test_commits_and_totals(self):
        activity = parse_git_log(LOG_OUTPUT, branch="feat/export")
        assert activity.branch == "feat/export"
        assert [c.hash for c in activity.commits] == ["a1b2c3d", "e4f5a6b", "0000000"]
        assert activity.commits[0].message == "feat: add export"
        assert (activity.commits[0].files_changed, activity.commits[0].insertions,
                activity.commits[0].deletions) == (3, 40, 5)
        assert activity.commits[1].deletions == 0
        assert activity.commits[2].files_changed == 0
        assert activity.total_commits == 3
        assert activity.total_insertions == 41
        assert activity.total_deletions == 5
        assert activity.total_files_changed == 4

    def test_empty_output(self):
        activity = parse_git_log("")
        assert activity.commits == []
        assert activity.branch == "unknown"


def fake_git(responses):
    """subprocess.run stand-in keyed on the git subcommand words."""
    def run(cmd, **kwargs):
        for key, value in responses.items():
            if key in " ".join(cmd):
                if isinstance(value, Exception):
                    raise value
                return SimpleNamespace(stdout=value)
        return SimpleNamespace(stdout="")
    return run


class TestCaptureGitActivity:

    def test_outside_repository(self, monkeypatch):
        error = subprocess.CalledProcessError(128, ["git"])
        monkeypatch.setattr(git.subprocess, "run", fake_git({"--is-inside-work-tree": error}))
        assert capture_git_activity("2026-03-04T10:00:00Z") is None

    def test_git_missing(self, monkeypatch):
        monkeypatch.setattr(git.subprocess, "run", fake_git({"--is-inside-work-tree": FileNotFoundError()}))
        assert capture_git_activity("2026-03-04T10:00:00Z") is None

    def test_collects_commits_and_instruction_files(self, monkeypatch):
        monkeypatch.setattr(git.subprocess, "run", fake_git({
            "--is-inside-work-tree": "true\n",
            "--abbrev-ref": "feat/export\n",
            "--shortstat": LOG_OUTPUT,
            "--name-only": "src/export.py\nCLAUDE.md\n\nsrc/export.py\n",
        }))
        activity = capture_git_activity("2026-03-04T10:00:00Z")
        assert activity.branch == "feat/export"
        assert activity.total_commits == 3
        assert activity.instruction_file_changes == ["CLAUDE.md"]

    def test_detached_head(self, monkeypatch):
        monkeypatch.setattr(git.subprocess, "run", fake_git({
            "--is-inside-work-tree": "true",
            "--abbrev-ref": "HEAD",
        }))
        activity = capture_git_activity("2026-03-04T10:00:00Z")
        assert activity.branch == "unknown"
        assert activity.instruction_file_changes is None

    def test_log_failure(self, monkeypatch):
        monkeypatch.setattr(git.subprocess, "run", fake_git({
            "--is-inside-work-tree": "true",
            "--abbrev-ref": "main",
            "--shortstat": subprocess.TimeoutExpired(["git"], 10),
        }))
        assert capture_git_activity("2026-03-04T10:00:00Z") is None

    def test_branch_lookup_timeout(self, monkeypatch):
        monkeypatch.setattr(git.subprocess, "run", fake_git({
            "--is-inside-work-tree": "true",
            "--abbrev-ref": subprocess.TimeoutExpired(["git", "rev-parse"], 10),
        }))
        assert capture_git_activity("2026-03-04T10:00:00Z") is None
