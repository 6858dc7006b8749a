import os

import pytest

from voratiq.run.process import (
    ProcessOutcome,
    build_agent_environment,
    ensure_test_command_runnable,
    run_agent_process,
    run_test_command,
)


def test_agent_environment_is_read_only():
    env = build_agent_environment({"PATH": "/bin"}, "codex", "gpt-5")

    assert env["VORATIQ_AGENT_ID"] == "codex"
    assert env["VORATIQ_AGENT_MODEL"] == "gpt-5"
    assert env["PATH"] == "/bin"
    with pytest.raises(TypeError):
        env["PATH"] = "/usr/bin"


def test_outcome_descriptions():
    assert ProcessOutcome(exit_code=0).succeeded
    assert ProcessOutcome(exit_code=2).describe() == "Agent exited with code 2"
    killed = ProcessOutcome(exit_code=None, signal_name="SIGTERM")
    assert not killed.succeeded
    assert killed.describe() == "Agent terminated by signal SIGTERM"


def test_run_agent_process_captures_streams(tmp_path, make_agent):
    binary = make_agent("env-echo")
    env = build_agent_environment(os.environ, "claude-code", "sonnet")

    outcome = run_agent_process(
        binary,
        ["--flag"],
        cwd=tmp_path,
        environment=env,
        prompt="hello prompt",
        stdout_path=tmp_path / "stdout.log",
        stderr_path=tmp_path / "stderr.log",
    )

    assert outcome.succeeded
    lines = (tmp_path / "stdout.log").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "claude-code sonnet"
    assert lines[1] == "['--flag']"
    assert (tmp_path / "stderr.log").read_text(encoding="utf-8") == "warming up\n"
    assert (tmp_path / "hello.txt").read_text(encoding="utf-8") == "hello prompt"


def test_run_agent_process_reports_signal(tmp_path, make_agent):
    outcome = run_agent_process(
        make_agent("killed"),
        [],
        cwd=tmp_path,
        environment=dict(os.environ),
        prompt="",
        stdout_path=tmp_path / "stdout.log",
        stderr_path=tmp_path / "stderr.log",
    )

    assert outcome.exit_code is None
    assert outcome.signal_name == "SIGKILL"


def test_run_test_command_interleaves_output(tmp_path):
    log = tmp_path / "tests.log"

    code = run_test_command("echo out; echo err 1>&2; exit 5", tmp_path, dict(os.environ), log)

    assert code == 5
    assert log.read_text(encoding="utf-8").splitlines() == ["out", "err"]


@pytest.mark.parametrize("command", [
    "test -f hello.txt",
    "echo nope; exit 4",
    "FOO=1 make check",
    "(cd sub && ls)",
    "sh -c 'exit 0'",
])
def test_shell_words_and_path_programs_are_runnable(tmp_path, command):
    ensure_test_command_runnable(command, tmp_path, dict(os.environ))


def test_relative_script_resolves_against_workspace(tmp_path):
    script = tmp_path / "check.sh"
    script.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    script.chmod(0o755)

    ensure_test_command_runnable("./check.sh --fast", tmp_path, dict(os.environ))
    assert run_test_command("./check.sh", tmp_path, dict(os.environ), tmp_path / "tests.log") == 0


def test_missing_test_program_raises_before_spawning(tmp_path):
    log = tmp_path / "tests.log"

    with pytest.raises(FileNotFoundError):
        run_test_command("/no/such/verify-script", tmp_path, dict(os.environ), log)
    with pytest.raises(FileNotFoundError):
        run_test_command("voratiq-no-such-runner", tmp_path, {"PATH": str(tmp_path)}, log)
    assert not log.exists()
