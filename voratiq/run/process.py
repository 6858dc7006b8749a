"""
Subprocess invocation for agents and verification commands.

Both calls block until the child exits and its output files are closed.
Neither imposes a timeout. OSError from a child that cannot be started
(including a test command whose program is missing) is left to the
caller to classify.
"""

from __future__ import annotations

import errno
import os
import re
import shlex
import shutil
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Sequence

from loguru import logger


@dataclass(frozen=True)
class ProcessOutcome:
    exit_code: int | None
    signal_name: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.signal_name is None

    def describe(self) -> str:
        if self.signal_name:
            return f"Agent terminated by signal {self.signal_name}"
        return f"Agent exited with code {self.exit_code}"


def _outcome_from_returncode(returncode: int) -> ProcessOutcome:
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = f"signal {-returncode}"
        return ProcessOutcome(exit_code=None, signal_name=name)
    return ProcessOutcome(exit_code=returncode)


def build_agent_environment(
    base: Mapping[str, str], agent_id: str, model: str
) -> Mapping[str, str]:
    """The complete, read-only environment an agent process receives."""
    return MappingProxyType(
        {**base, "VORATIQ_AGENT_ID": agent_id, "VORATIQ_AGENT_MODEL": model}
    )


def run_agent_process(
    binary_path: str,
    argv: Sequence[str],
    cwd: Path,
    environment: Mapping[str, str],
    prompt: str,
    stdout_path: Path,
    stderr_path: Path,
) -> ProcessOutcome:
    """Spawn the agent, feed the prompt on stdin, and wait for it to exit."""
    logger.info(f"[AGENT] Spawning {binary_path} in {cwd}")
    with open(stdout_path, "w", encoding="utf-8") as out, open(
        stderr_path, "w", encoding="utf-8"
    ) as err:
        proc = subprocess.Popen(
            [binary_path, *argv],
            cwd=cwd,
            env=dict(environment),
            stdin=subprocess.PIPE,
            stdout=out,
            stderr=err,
            encoding="utf-8",
        )
        proc.communicate(input=prompt)

    outcome = _outcome_from_returncode(proc.returncode)
    logger.info(f"[AGENT] {binary_path} finished: {outcome.describe()}")
    return outcome


# POSIX sh builtins and reserved words; these never resolve through PATH.
_SHELL_WORDS = frozenset({
    "!", ".", ":", "[", "{", "alias", "bg", "break", "case", "cd", "command",
    "continue", "echo", "eval", "exec", "exit", "export", "false", "fg", "for",
    "getopts", "hash", "if", "jobs", "kill", "printf", "pwd", "read", "readonly",
    "return", "set", "shift", "source", "test", "times", "trap", "true", "type",
    "ulimit", "umask", "unalias", "unset", "until", "wait", "while",
})

_COMMAND_WORD = re.compile(r"^[\w./+-]+$")


def ensure_test_command_runnable(command: str, cwd: Path, environment: Mapping[str, str]) -> None:
    """Raise OSError when the command's program cannot be found or executed.

    Only the first word is checked; words the shell interprets itself
    (builtins, keywords, assignments, subshells) are left alone.
    """
    try:
        words = shlex.split(command)
    except ValueError:
        return
    if not words:
        return
    program = words[0]
    if program in _SHELL_WORDS or not _COMMAND_WORD.match(program):
        return

    if "/" in program:
        target = Path(cwd) / program
        if not target.is_file():
            raise FileNotFoundError(errno.ENOENT, "Test command not found", program)
        if not os.access(target, os.X_OK):
            raise PermissionError(errno.EACCES, "Test command is not executable", program)
        return

    if shutil.which(program, path=environment.get("PATH", os.defpath)) is None:
        raise FileNotFoundError(errno.ENOENT, "Test command not found on PATH", program)


def run_test_command(
    command: str,
    cwd: Path,
    environment: Mapping[str, str],
    log_path: Path,
) -> int:
    """Run *command* through the shell; stdout and stderr share *log_path*."""
    ensure_test_command_runnable(command, cwd, environment)
    logger.info(f"[TESTS] Running `{command}` in {cwd}")
    with open(log_path, "w", encoding="utf-8") as log:
        proc = subprocess.Popen(
            command,
            shell=True,
            cwd=cwd,
            env=dict(environment),
            stdin=subprocess.DEVNULL,
            stdout=log,
            stderr=subprocess.STDOUT,
        )
        proc.wait()
    logger.info(f"[TESTS] `{command}` exited with {proc.returncode}")
    return proc.returncode
