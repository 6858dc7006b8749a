import os
import stat
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from voratiq.agents import AgentDefinition
from voratiq.run.process import build_agent_environment
from voratiq.run.state import AgentContext, AgentWorkspacePaths


def _git(args, cwd):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


@pytest.fixture
def git_repo(tmp_path):
    """A real repository with one commit on it."""
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(["init", "-q"], repo)
    _git(["config", "user.name", "Test User"], repo)
    _git(["config", "user.email", "test@example.com"], repo)
    _git(["config", "commit.gpgsign", "false"], repo)
    (repo / "README.md").write_text("# demo\n", encoding="utf-8")
    _git(["add", "README.md"], repo)
    _git(["commit", "-q", "-m", "initial"], repo)
    return repo


@pytest.fixture
def make_agent(tmp_path):
    """Write an executable Python script that behaves like one kind of agent."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(behaviour: str) -> str:
        script = bin_dir / f"agent-{behaviour}"
        source = f"#!{sys.executable}\nimport os, sys\n" + textwrap.dedent(AGENT_BEHAVIOURS[behaviour])
        script.write_text(source, encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make


@pytest.fixture
def make_context(git_repo):
    """Build an AgentContext for one agent under .voratiq/runs/<run_id>."""
    from voratiq.git import head_revision

    def _make(
        binary: str,
        agent_id: str = "codex",
        run_id: str = "20250101-000000-abcde",
        test_command: str | None = None,
        spec_content: str = "Create hello.txt containing hello.\n",
        argv=("--model", "m1"),
    ) -> AgentContext:
        agent = AgentDefinition(id=agent_id, model="m1", binary_path=binary, argv=list(argv))
        run_root = git_repo / ".voratiq" / "runs" / run_id
        run_root.mkdir(parents=True, exist_ok=True)
        return AgentContext(
            agent=agent,
            run_id=run_id,
            root=git_repo,
            base_revision=head_revision(git_repo),
            spec_content=spec_content,
            paths=AgentWorkspacePaths.for_agent(run_root, agent_id),
            environment=build_agent_environment(os.environ, agent_id, agent.model),
            test_command=test_command,
        )

    return _make


_EDITING = """
sys.stdin.read()
with open("hello.txt", "w") as f:
    f.write("hello\\n")
with open(".summary.txt", "w") as f:
    f.write("Add hello file\\n\\nCreates hello.txt as requested.\\n")
"""

_SILENT = """
sys.stdin.read()
with open("hello.txt", "w") as f:
    f.write("hello\\n")
"""

_NO_SUBJECT = """
sys.stdin.read()
with open("hello.txt", "w") as f:
    f.write("hello\\n")
with open(".summary.txt", "w") as f:
    f.write("   \\nThe body is here but the first line is blank.\\n")
"""

_SUMMARY_ONLY = """
sys.stdin.read()
with open(".summary.txt", "w") as f:
    f.write("Nothing to change\\n")
"""

_KILLED = """
import signal
os.kill(os.getpid(), signal.SIGKILL)
"""

_EARLY_EXIT = """
sys.stdin.read()
sys.exit(7)
"""

_CRASH_AFTER_EDIT = """
sys.stdin.read()
with open("hello.txt", "w") as f:
    f.write("half done\\n")
sys.exit(3)
"""

_ENV_ECHO = """
prompt = sys.stdin.read()
print(os.environ["VORATIQ_AGENT_ID"], os.environ["VORATIQ_AGENT_MODEL"])
print(sys.argv[1:])
sys.stderr.write("warming up\\n")
with open("hello.txt", "w") as f:
    f.write(prompt)
with open(".summary.txt", "w") as f:
    f.write("Echo the prompt\\n")
"""

_LATIN1 = """
sys.stdin.read()
with open("cafe.txt", "wb") as f:
    f.write(b"caf\\xe9\\n")
with open(".summary.txt", "w") as f:
    f.write("Add cafe file\\n")
"""

AGENT_BEHAVIOURS = {
    "editing": _EDITING,
    "silent": _SILENT,
    "no-subject": _NO_SUBJECT,
    "summary-only": _SUMMARY_ONLY,
    "killed": _KILLED,
    "crash-after-edit": _CRASH_AFTER_EDIT,
    "early-exit": _EARLY_EXIT,
    "env-echo": _ENV_ECHO,
    "latin1": _LATIN1,
}
