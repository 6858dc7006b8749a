"""
Voratiq Workspace (.voratiq)

Layout inside the target repository:

  .voratiq/
    config.yaml     repo-level overrides (presets, jobs)
    runs.jsonl      append-only run log, one RunRecord per line
    runs/           one directory per run id
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from voratiq.config_loader import ConfigError, load_config

VORATIQ_DIR = ".voratiq"
VORATIQ_RUNS_DIR = "runs"
VORATIQ_CONFIG_FILE = "config.yaml"
VORATIQ_RUNS_FILE = "runs.jsonl"

_CONFIG_TEMPLATE = """# Voratiq repo-level config overrides
# These merge with the built-in defaults.

# Spec used when `voratiq run` is called without --spec or --preset:
# default:
#   spec_path: specs/feature.md
#   test_command: "pytest -q"

# Named presets for `voratiq run --preset <name>`:
# presets:
#   docs:
#     spec_path: specs/docs.md

# Number of agents run at once:
# jobs: 1
"""

_GITIGNORE_ENTRIES = [".voratiq/runs/"]


class WorkspaceError(Exception):
    pass


class WorkspaceMissingEntryError(WorkspaceError):
    def __init__(self, entry_path: str):
        self.entry_path = entry_path
        super().__init__(f"Missing workspace entry: {entry_path}")


class WorkspaceInvalidConfigError(WorkspaceError):
    def __init__(self, file_path: str, details: str):
        self.file_path = file_path
        self.details = details
        super().__init__(f"Invalid workspace config at {file_path}: {details}")


@dataclass
class CreateWorkspaceResult:
    created_directories: list[str] = field(default_factory=list)
    created_files: list[str] = field(default_factory=list)


def display_path(root: Path, target: Path) -> str:
    """Root-relative, forward-slash path for records and terminal output."""
    return Path(os.path.relpath(target, root)).as_posix()


def resolve_workspace_path(root: Path, *segments: str) -> Path:
    return Path(root).joinpath(VORATIQ_DIR, *segments)


def create_workspace(root: Path) -> CreateWorkspaceResult:
    """Create whatever parts of .voratiq are missing. Existing files are left alone."""
    result = CreateWorkspaceResult()

    for directory in (resolve_workspace_path(root), resolve_workspace_path(root, VORATIQ_RUNS_DIR)):
        if not directory.exists():
            directory.mkdir(parents=True)
            result.created_directories.append(display_path(root, directory))

    config_path = resolve_workspace_path(root, VORATIQ_CONFIG_FILE)
    if not config_path.exists():
        config_path.write_text(_CONFIG_TEMPLATE, encoding="utf-8")
        result.created_files.append(display_path(root, config_path))

    runs_file = resolve_workspace_path(root, VORATIQ_RUNS_FILE)
    if not runs_file.exists():
        runs_file.write_text("", encoding="utf-8")
        result.created_files.append(display_path(root, runs_file))

    _ensure_gitignore(Path(root))
    logger.info(f"[WORKSPACE] Workspace ready at {resolve_workspace_path(root)}")
    return result


def _ensure_gitignore(root: Path) -> None:
    gitignore = root / ".gitignore"
    if gitignore.exists():
        content = gitignore.read_text(encoding="utf-8")
        additions = [e for e in _GITIGNORE_ENTRIES if e not in content]
        if additions:
            with open(gitignore, "a", encoding="utf-8") as f:
                if content and not content.endswith("\n"):
                    f.write("\n")
                f.write("# Voratiq\n")
                for entry in additions:
                    f.write(f"{entry}\n")
    else:
        gitignore.write_text("# Voratiq\n" + "\n".join(_GITIGNORE_ENTRIES) + "\n", encoding="utf-8")


def validate_workspace(root: Path) -> None:
    """Raise a WorkspaceError if any part of .voratiq is missing or invalid."""
    for directory in (resolve_workspace_path(root), resolve_workspace_path(root, VORATIQ_RUNS_DIR)):
        if not directory.is_dir():
            raise WorkspaceMissingEntryError(display_path(root, directory))

    config_path = resolve_workspace_path(root, VORATIQ_CONFIG_FILE)
    if not config_path.is_file():
        raise WorkspaceMissingEntryError(display_path(root, config_path))
    try:
        load_config(Path(root))
    except ConfigError as e:
        raise WorkspaceInvalidConfigError(display_path(root, config_path), e.details) from e

    runs_file = resolve_workspace_path(root, VORATIQ_RUNS_FILE)
    if not runs_file.is_file():
        raise WorkspaceMissingEntryError(display_path(root, runs_file))
