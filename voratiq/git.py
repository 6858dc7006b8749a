"""
Voratiq Git Adapter

Stateless wrappers around the `git` CLI. Every agent gets its own
worktree + branch derived from (run id, agent id), so two agents
working from the same base revision never share an index or a
checkout.

Failures come in two flavours:
  - GitRepositoryError: there is no repository where we looked
  - GitCommandError:    git ran and reported a failure
"""

from __future__ import annotations

import subprocess
import threading
from pathlib import Path

from loguru import logger


class GitError(Exception):
    pass


class GitRepositoryError(GitError):
    """Raised when the target directory is not inside a git work tree."""


class GitCommandError(GitError):
    """Raised when a git invocation exits non-zero or cannot be started."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(f"git {' '.join(args)} failed: {detail}")


_NOT_A_REPO_MARKERS = ("not a git repository", "not a work tree")

# `git worktree add` writes to the shared .git directory.
_WORKTREE_LOCK = threading.Lock()


def _run_git_raw(args: list[str], cwd: Path) -> bytes:
    if not Path(cwd).is_dir():
        raise GitRepositoryError(f"Repository path does not exist: {cwd}")

    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
        )
    except OSError as e:
        raise GitCommandError(args, None, str(e)) from e

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        if any(marker in stderr.lower() for marker in _NOT_A_REPO_MARKERS):
            raise GitRepositoryError(f"Not a git repository: {cwd}")
        raise GitCommandError(args, result.returncode, stderr)

    logger.debug(f"[GIT] git {' '.join(args)} ({cwd})")
    return result.stdout


def run_git(args: list[str], cwd: Path, strip: bool = True) -> str:
    """Run git in *cwd* and return its stdout (stripped unless asked not to).

    Worktree content is whatever the agent wrote, so output that is not
    valid UTF-8 is decoded with replacement characters.
    """
    output = _run_git_raw(args, cwd).decode("utf-8", errors="replace")
    return output.strip() if strip else output


def assert_git_repository(root: Path) -> None:
    """Check for .git metadata at the repository root."""
    if not (Path(root) / ".git").exists():
        raise GitRepositoryError(
            "Failed to locate .git metadata. Run `voratiq init` from the repository root."
        )


def head_revision(root: Path) -> str:
    return run_git(["rev-parse", "HEAD"], root)


def rev_parse(cwd: Path, revision: str) -> str:
    return run_git(["rev-parse", revision], cwd)


def create_worktree(root: Path, worktree_path: Path, branch: str, base_revision: str) -> Path:
    """
    Create an isolated worktree at *worktree_path* on a new *branch*
    pointing at *base_revision*. The destination may already exist as
    an empty directory.
    """
    with _WORKTREE_LOCK:
        run_git(
            ["worktree", "add", "-b", branch, str(worktree_path), base_revision],
            root,
        )
    logger.info(f"[GIT] Worktree created: {worktree_path} ({branch})")
    return worktree_path


def has_uncommitted_changes(cwd: Path) -> bool:
    """True when the working tree has modified, staged or untracked files."""
    return bool(run_git(["status", "--porcelain"], cwd))


def add_all(cwd: Path) -> None:
    run_git(["add", "-A"], cwd)


def has_staged_changes(cwd: Path) -> bool:
    return bool(run_git(["diff", "--cached", "--name-only"], cwd))


def commit_all(cwd: Path, message: str, author_name: str, author_email: str) -> str:
    """Commit the index with a fixed identity and return the new commit id."""
    run_git(
        [
            "-c", f"user.name={author_name}",
            "-c", f"user.email={author_email}",
            "commit", "--no-verify", "-m", message,
        ],
        cwd,
    )
    return rev_parse(cwd, "HEAD")


def diff(cwd: Path, base_revision: str, target_revision: str) -> bytes:
    """Full unified diff between two revisions, byte for byte."""
    return _run_git_raw(["diff", base_revision, target_revision], cwd)


def diff_shortstat(cwd: Path, base_revision: str, target_revision: str) -> str | None:
    """One-line change statistics, or None when the revisions are identical."""
    stat = run_git(["diff", "--shortstat", base_revision, target_revision], cwd)
    return stat or None
