from datetime import datetime, timezone

import pytest

from voratiq.git import GitRepositoryError
from voratiq.preflight import (
    RunNotFoundError,
    SpecNotFoundError,
    ensure_run_id,
    ensure_spec_path,
    resolve_cli_context,
)
from voratiq.run.types import RunRecord, SpecReference
from voratiq.workspace import WorkspaceMissingEntryError, create_workspace


def test_context_requires_git(tmp_path):
    with pytest.raises(GitRepositoryError):
        resolve_cli_context(tmp_path)


def test_context_requires_workspace(git_repo):
    with pytest.raises(WorkspaceMissingEntryError):
        resolve_cli_context(git_repo)

    ctx = resolve_cli_context(git_repo, require_workspace=False)
    assert ctx.root == git_repo.resolve()


def test_context_paths(git_repo):
    create_workspace(git_repo)

    paths = resolve_cli_context(git_repo).workspace_paths

    root = git_repo.resolve()
    assert paths.workspace_dir == root / ".voratiq"
    assert paths.runs_dir == root / ".voratiq" / "runs"
    assert paths.config_file == root / ".voratiq" / "config.yaml"
    assert paths.runs_file == root / ".voratiq" / "runs.jsonl"


def test_spec_path_relative_and_absolute(tmp_path):
    spec = tmp_path / "specs" / "a.md"
    spec.parent.mkdir()
    spec.write_text("x", encoding="utf-8")

    relative = ensure_spec_path("specs/a.md", tmp_path)
    absolute = ensure_spec_path(spec, tmp_path)

    assert relative.absolute_path == spec
    assert relative.display_path == "specs/a.md"
    assert absolute.display_path == "specs/a.md"


def test_missing_spec(tmp_path):
    with pytest.raises(SpecNotFoundError, match="Spec file not found: specs/missing.md"):
        ensure_spec_path("specs/missing.md", tmp_path)


def test_ensure_run_id():
    record = RunRecord(
        run_id="run-1",
        spec=SpecReference(path="spec.md", sha256="0" * 64),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        base_revision="b" * 40,
        root_path=".",
        run_path=".voratiq/runs/run-1",
    )

    assert ensure_run_id("run-1", [record]) is record
    with pytest.raises(RunNotFoundError, match="Run not found: run-2"):
        ensure_run_id("run-2", [record])
