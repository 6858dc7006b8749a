import pytest

from voratiq.run.errors import (
    AgentProcessError,
    AgentProcessPhase,
    GitOperationError,
    RunCommandError,
    RunDirectoryExistsError,
    RunErrorKind,
    SummaryMissingError,
    SummaryProblem,
    TestCommandError,
    WorkspaceSetupError,
    describe_error,
)


def test_each_kind_has_its_message():
    assert describe_error(WorkspaceSetupError("cannot mkdir")) == "cannot mkdir"
    assert describe_error(AgentProcessError(AgentProcessPhase.BEFORE_OUTPUT, exit_code=1)) == (
        "Agent exited before modifying the workspace"
    )
    assert describe_error(AgentProcessError(AgentProcessPhase.AFTER_OUTPUT, exit_code=2)) == (
        "Agent process failed after editing the workspace (exit code 2)"
    )
    assert describe_error(SummaryMissingError()) == "Agent did not produce .summary.txt"
    assert describe_error(SummaryMissingError(SummaryProblem.EMPTY)) == "Agent summary is empty"
    assert describe_error(GitOperationError("Git commit failed", "index.lock exists")) == (
        "Git commit failed: index.lock exists"
    )
    assert describe_error(TestCommandError("no shell")) == "Tests command failed to start: no shell"


def test_after_output_signal_has_no_exit_code():
    error = AgentProcessError(AgentProcessPhase.AFTER_OUTPUT, detail="Agent terminated by signal SIGKILL")
    assert describe_error(error) == "Agent process failed after editing the workspace"
    assert "SIGKILL" in str(error)


def test_kinds_are_closed():
    assert {e.kind for e in (
        WorkspaceSetupError("x"),
        AgentProcessError(AgentProcessPhase.BEFORE_OUTPUT),
        SummaryMissingError(),
        GitOperationError("op", "x"),
        TestCommandError("x"),
    )} == set(RunErrorKind)


def test_unknown_kind_is_a_bug():
    class Stray(RunCommandError):
        kind = "stray"

    with pytest.raises(AssertionError):
        describe_error(Stray("?"))


def test_run_directory_exists_is_a_file_exists_error():
    error = RunDirectoryExistsError("run-1", ".voratiq/runs/run-1")
    assert isinstance(error, FileExistsError)
    assert str(error) == "Run directory already exists for id run-1: .voratiq/runs/run-1"
