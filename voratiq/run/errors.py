"""
Run failure taxonomy.

Every pipeline stage failure is one of five kinds. Each kind owns its
canonical display message; `describe_error` is the single place the
reporting layer turns a failure into text.
"""

from __future__ import annotations

from enum import Enum


class RunErrorKind(str, Enum):
    WORKSPACE_SETUP = "workspace-setup"
    AGENT_PROCESS = "agent-process"
    SUMMARY_MISSING = "summary-missing"
    GIT_OPERATION = "git-operation"
    TEST_COMMAND = "test-command"


class RunCommandError(Exception):
    """Base class for failures folded into an agent's record."""

    kind: RunErrorKind

    def message_for_display(self) -> str:
        raise NotImplementedError


class WorkspaceSetupError(RunCommandError):
    kind = RunErrorKind.WORKSPACE_SETUP

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def message_for_display(self) -> str:
        return self.detail


class AgentProcessPhase(str, Enum):
    BEFORE_OUTPUT = "beforeOutput"
    AFTER_OUTPUT = "afterOutput"


class AgentProcessError(RunCommandError):
    kind = RunErrorKind.AGENT_PROCESS

    def __init__(
        self,
        phase: AgentProcessPhase,
        exit_code: int | None = None,
        detail: str | None = None,
    ):
        self.phase = phase
        self.exit_code = exit_code
        self.detail = detail
        message = self.message_for_display()
        super().__init__(f"{message}: {detail}" if detail else message)

    def message_for_display(self) -> str:
        if self.phase is AgentProcessPhase.BEFORE_OUTPUT:
            return "Agent exited before modifying the workspace"
        suffix = f" (exit code {self.exit_code})" if self.exit_code is not None else ""
        return f"Agent process failed after editing the workspace{suffix}"


class SummaryProblem(str, Enum):
    MISSING = "missing"
    EMPTY = "empty"
    NO_SUBJECT = "no-subject"


_SUMMARY_MESSAGES = {
    SummaryProblem.MISSING: "Agent did not produce .summary.txt",
    SummaryProblem.EMPTY: "Agent summary is empty",
    SummaryProblem.NO_SUBJECT: "Agent summary is missing a subject line",
}


class SummaryMissingError(RunCommandError):
    kind = RunErrorKind.SUMMARY_MISSING

    def __init__(self, problem: SummaryProblem = SummaryProblem.MISSING):
        self.problem = problem
        super().__init__(_SUMMARY_MESSAGES[problem])

    def message_for_display(self) -> str:
        return _SUMMARY_MESSAGES[self.problem]


class GitOperationError(RunCommandError):
    kind = RunErrorKind.GIT_OPERATION

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation}: {detail}")

    def message_for_display(self) -> str:
        return f"{self.operation}: {self.detail}"


class TestCommandError(RunCommandError):
    __test__ = False

    kind = RunErrorKind.TEST_COMMAND

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Tests command failed to start: {detail}")

    def message_for_display(self) -> str:
        return f"Tests command failed to start: {self.detail}"


def describe_error(error: RunCommandError) -> str:
    """Display text for a taxonomy error; unknown kinds are a bug."""
    if error.kind in (
        RunErrorKind.WORKSPACE_SETUP,
        RunErrorKind.AGENT_PROCESS,
        RunErrorKind.SUMMARY_MISSING,
        RunErrorKind.GIT_OPERATION,
        RunErrorKind.TEST_COMMAND,
    ):
        return error.message_for_display()
    raise AssertionError(f"Unhandled run error kind: {error.kind!r}")


# ---------------------------------------------------------------------------
# Coordinator-level errors (these propagate to the caller)
# ---------------------------------------------------------------------------

class RunDirectoryExistsError(FileExistsError):
    """The requested run id already has a directory on disk."""

    def __init__(self, run_id: str, display_path: str):
        self.run_id = run_id
        self.display_path = display_path
        super().__init__(f"Run directory already exists for id {run_id}: {display_path}")


class ReportConsistencyError(RuntimeError):
    """Run-level flags disagree with the per-agent reports."""
