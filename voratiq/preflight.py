"""
CLI preflight checks.

Everything a command needs to verify before it touches the run engine:
the current directory is a git repository, the .voratiq workspace is
intact, the spec exists, the requested run id is known.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from voratiq.git import assert_git_repository
from voratiq.run.types import RunRecord
from voratiq.workspace import (
    VORATIQ_CONFIG_FILE,
    VORATIQ_RUNS_DIR,
    VORATIQ_RUNS_FILE,
    display_path,
    resolve_workspace_path,
    validate_workspace,
)


class CliError(Exception):
    pass


class SpecNotFoundError(CliError):
    def __init__(self, spec_path: str):
        self.spec_path = spec_path
        super().__init__(f"Spec file not found: {spec_path}")


class RunNotFoundError(CliError):
    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


@dataclass(frozen=True)
class WorkspacePaths:
    root: Path
    workspace_dir: Path
    runs_dir: Path
    config_file: Path
    runs_file: Path


@dataclass(frozen=True)
class CliContext:
    root: Path
    workspace_paths: WorkspacePaths


@dataclass(frozen=True)
class ResolvedSpecPath:
    absolute_path: Path
    display_path: str


def resolve_cli_context(root: Path | None = None, require_workspace: bool = True) -> CliContext:
    root = Path(root or Path.cwd()).resolve()
    assert_git_repository(root)
    if require_workspace:
        validate_workspace(root)

    paths = WorkspacePaths(
        root=root,
        workspace_dir=resolve_workspace_path(root),
        runs_dir=resolve_workspace_path(root, VORATIQ_RUNS_DIR),
        config_file=resolve_workspace_path(root, VORATIQ_CONFIG_FILE),
        runs_file=resolve_workspace_path(root, VORATIQ_RUNS_FILE),
    )
    return CliContext(root=root, workspace_paths=paths)


def ensure_spec_path(spec_path: str | Path, root: Path) -> ResolvedSpecPath:
    """Resolve *spec_path* against *root* and require it to be a file."""
    candidate = Path(spec_path)
    absolute = candidate if candidate.is_absolute() else Path(root) / candidate
    shown = display_path(root, absolute)
    if not absolute.is_file():
        raise SpecNotFoundError(shown)
    return ResolvedSpecPath(absolute_path=absolute, display_path=shown)


def ensure_run_id(run_id: str, runs: Sequence[RunRecord]) -> RunRecord:
    for record in runs:
        if record.run_id == run_id:
            return record
    raise RunNotFoundError(run_id)
