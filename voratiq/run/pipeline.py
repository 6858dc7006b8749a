"""
Voratiq Agent Pipeline

Drives one agent through:

  scaffold -> checkout -> invoke -> harvest -> capture -> verify

Each stage takes the current AgentProgress and returns either a new
progress (the stage completed) or a StageFailure (the pipeline stops).
Whatever happens, exactly one AgentInvocationRecord and one AgentReport
come out the other end.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from voratiq import git
from voratiq.event_bus import EventBus
from voratiq.git import GitError
from voratiq.run.argv import build_agent_argv
from voratiq.run.errors import (
    AgentProcessError,
    AgentProcessPhase,
    GitOperationError,
    SummaryMissingError,
    SummaryProblem,
    TestCommandError,
    WorkspaceSetupError,
    describe_error,
)
from voratiq.run.process import run_agent_process, run_test_command
from voratiq.run.prompts import WORKSPACE_SUMMARY_FILENAME, build_agent_prompt
from voratiq.run.reports import to_agent_report
from voratiq.run.state import (
    AgentContext,
    AgentProgress,
    AgentStage,
    StageFailure,
    StageResult,
)
from voratiq.run.types import (
    AgentAssets,
    AgentInvocationRecord,
    AgentReport,
    AgentTestResult,
)
from voratiq.workspace import display_path

SERVICE_AUTHOR_NAME = "Voratiq Orchestrator"
SERVICE_AUTHOR_EMAIL = "cli@voratiq"


@dataclass(frozen=True)
class AgentExecution:
    record: AgentInvocationRecord
    report: AgentReport
    tests_failed: bool
    failure: StageFailure | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def scaffold(ctx: AgentContext, progress: AgentProgress) -> StageResult:
    paths = ctx.paths
    try:
        paths.agent_root.mkdir(parents=True, exist_ok=True)
        for placeholder in (paths.stdout, paths.stderr, paths.diff, paths.tests):
            placeholder.write_text("", encoding="utf-8")
        paths.workspace.mkdir(exist_ok=True)
    except OSError as e:
        error = WorkspaceSetupError(
            f"Failed to prepare agent directory {display_path(ctx.root, paths.agent_root)}: {e}"
        )
        return StageFailure(AgentStage.SCAFFOLDED, error, progress)
    return progress.advance(AgentStage.SCAFFOLDED)


def checkout(ctx: AgentContext, progress: AgentProgress) -> StageResult:
    try:
        git.create_worktree(ctx.root, ctx.paths.workspace, ctx.branch_name, ctx.base_revision)
    except GitError as e:
        error = WorkspaceSetupError(f"Failed to create worktree for {ctx.agent.id}: {e}")
        return StageFailure(AgentStage.CHECKED_OUT, error, progress)
    return progress.advance(AgentStage.CHECKED_OUT)


def invoke(ctx: AgentContext, progress: AgentProgress) -> StageResult:
    paths = ctx.paths
    prompt = build_agent_prompt(ctx.spec_content)
    argv = build_agent_argv(ctx.agent.argv, prompt)
    progress = progress.with_(prompt=prompt, argv=tuple(argv), started_at=_now())

    try:
        outcome = run_agent_process(
            ctx.agent.binary_path,
            argv,
            cwd=paths.workspace,
            environment=ctx.environment,
            prompt=prompt,
            stdout_path=paths.stdout,
            stderr_path=paths.stderr,
        )
    except OSError as e:
        progress = progress.with_(completed_at=_now())
        error = AgentProcessError(AgentProcessPhase.BEFORE_OUTPUT, detail=str(e))
        return StageFailure(AgentStage.INVOKED, error, progress)

    progress = progress.with_(completed_at=_now())
    if outcome.succeeded:
        return progress.advance(AgentStage.INVOKED)

    try:
        edited = git.has_uncommitted_changes(paths.workspace)
    except GitError as e:
        # An unreadable worktree counts as edited.
        logger.warning(f"[AGENT] Could not inspect workspace for {ctx.agent.id}: {e}")
        edited = True

    phase = AgentProcessPhase.AFTER_OUTPUT if edited else AgentProcessPhase.BEFORE_OUTPUT
    error = AgentProcessError(phase, exit_code=outcome.exit_code, detail=outcome.describe())
    return StageFailure(AgentStage.INVOKED, error, progress)


def harvest(ctx: AgentContext, progress: AgentProgress) -> StageResult:
    source = ctx.paths.workspace / WORKSPACE_SUMMARY_FILENAME
    try:
        raw = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return StageFailure(AgentStage.HARVESTED, SummaryMissingError(SummaryProblem.MISSING), progress)

    summary = raw.strip()
    if not summary:
        return StageFailure(AgentStage.HARVESTED, SummaryMissingError(SummaryProblem.EMPTY), progress)

    # The subject is the file's own first line, so a summary that opens
    # with a blank line has no subject even though it is not empty.
    first_line = raw.splitlines()[0] if raw.splitlines() else ""

    try:
        ctx.paths.summary.write_text(f"{summary}\n", encoding="utf-8")
        source.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"[AGENT] Could not move summary for {ctx.agent.id}: {e}")
        return StageFailure(AgentStage.HARVESTED, SummaryMissingError(SummaryProblem.MISSING), progress)

    return progress.advance(
        AgentStage.HARVESTED,
        summary=summary,
        summary_subject=first_line.strip(),
    )


def capture(ctx: AgentContext, progress: AgentProgress) -> StageResult:
    workspace = ctx.paths.workspace
    progress = progress.mark(diff_attempted=True)

    try:
        git.add_all(workspace)
        staged = git.has_staged_changes(workspace)
    except GitError as e:
        error = GitOperationError("Failed to stage workspace changes", str(e))
        return StageFailure(AgentStage.CAPTURED, error, progress)

    if not staged:
        logger.info(f"[AGENT] {ctx.agent.id} left no changes to commit")
        return progress.advance(AgentStage.CAPTURED)

    if not progress.summary_subject:
        error = SummaryMissingError(SummaryProblem.NO_SUBJECT)
        return StageFailure(AgentStage.CAPTURED, error, progress)

    try:
        commit = git.commit_all(
            workspace,
            progress.summary_subject,
            author_name=SERVICE_AUTHOR_NAME,
            author_email=SERVICE_AUTHOR_EMAIL,
        )
    except GitError as e:
        return StageFailure(AgentStage.CAPTURED, GitOperationError("Git commit failed", str(e)), progress)
    progress = progress.with_(commit=commit)

    try:
        patch = git.diff(workspace, ctx.base_revision, commit)
        change_summary = git.diff_shortstat(workspace, ctx.base_revision, commit)
    except GitError as e:
        return StageFailure(AgentStage.CAPTURED, GitOperationError("Git diff failed", str(e)), progress)

    try:
        ctx.paths.diff.write_bytes(patch)
    except OSError as e:
        return StageFailure(AgentStage.CAPTURED, GitOperationError("Failed to write diff", str(e)), progress)

    logger.info(f"[AGENT] {ctx.agent.id} committed {commit[:12]}: {change_summary}")
    return progress.advance(
        AgentStage.CAPTURED,
        change_summary=change_summary,
    ).mark(diff_captured=True)


def verify(ctx: AgentContext, progress: AgentProgress) -> StageResult:
    command = ctx.test_command
    if command is None:
        return progress

    progress = progress.mark(tests_attempted=True)
    try:
        exit_code = run_test_command(command, ctx.paths.workspace, ctx.environment, ctx.paths.tests)
    except OSError as e:
        error = TestCommandError(str(e))
        logger.warning(f"[TESTS] {ctx.agent.id}: {error}")
        tests = AgentTestResult(status="skipped", command=command, error=describe_error(error))
        return progress.advance(AgentStage.VERIFIED, tests=tests)

    tests = AgentTestResult(
        status="passed" if exit_code == 0 else "failed",
        command=command,
        exit_code=exit_code if exit_code >= 0 else None,
        log_path=display_path(ctx.root, ctx.paths.tests),
    )
    return progress.advance(AgentStage.VERIFIED, tests=tests)


STAGES: tuple[Callable[[AgentContext, AgentProgress], StageResult], ...] = (
    scaffold,
    checkout,
    invoke,
    harvest,
    capture,
    verify,
)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def execute_agent(ctx: AgentContext, bus: EventBus | None = None) -> AgentExecution:
    """Run every stage for one agent and fold the result into a record + report."""
    agent_id = ctx.agent.id
    _emit(bus, "agent_started", ctx)
    logger.info(f"[RUN] {agent_id}: starting ({ctx.branch_name})")

    progress = AgentProgress()
    failure: StageFailure | None = None

    for stage in STAGES:
        result = stage(ctx, progress)
        if isinstance(result, StageFailure):
            failure = result
            progress = result.progress
            logger.warning(
                f"[RUN] {agent_id}: {result.error.kind.value} during {result.stage.value}: {result.error}"
            )
            _emit(bus, "stage_failed", ctx, stage=result.stage.value, error=describe_error(result.error))
            break
        if result.stage is not progress.stage:
            _emit(bus, "stage_completed", ctx, stage=result.stage.value)
        progress = result

    record = build_record(ctx, progress, failure)
    report = to_agent_report(
        record,
        progress.state,
        error=describe_error(failure.error) if failure else None,
    )
    tests_failed = progress.tests is not None and (
        progress.tests.status == "failed" or progress.tests.error is not None
    )

    _emit(bus, "agent_completed", ctx, status=record.status, tests_failed=tests_failed)
    logger.info(f"[RUN] {agent_id}: {record.status}")
    return AgentExecution(record=record, report=report, tests_failed=tests_failed, failure=failure)


def build_record(
    ctx: AgentContext,
    progress: AgentProgress,
    failure: StageFailure | None,
) -> AgentInvocationRecord:
    root, paths = ctx.root, ctx.paths
    tests = progress.tests

    assets = AgentAssets(
        stdout=display_path(root, paths.stdout),
        stderr=display_path(root, paths.stderr),
        workspace=display_path(root, paths.workspace),
        diff=display_path(root, paths.diff) if progress.state.diff_captured else None,
        summary=display_path(root, paths.summary) if progress.summary is not None else None,
        tests=tests.log_path if tests is not None else None,
    )

    return AgentInvocationRecord(
        agent_id=ctx.agent.id,
        model=ctx.agent.model,
        binary_path=ctx.agent.binary_path,
        argv=list(progress.argv) if progress.argv is not None else None,
        prompt=progress.prompt,
        workspace_path=display_path(root, paths.workspace),
        started_at=progress.started_at,
        completed_at=progress.completed_at,
        status="failed" if failure else "succeeded",
        summary=progress.summary,
        commit=progress.commit,
        change_summary=progress.change_summary,
        assets=assets,
        tests=tests,
        error=str(failure.error) if failure else None,
    )


def _emit(bus: EventBus | None, event_type: str, ctx: AgentContext, **payload) -> None:
    if bus is not None:
        bus.emit(event_type, run_id=ctx.run_id, agent_id=ctx.agent.id, payload=payload)
