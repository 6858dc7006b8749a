from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Union

from voratiq.agents import AgentDefinition
from voratiq.run.errors import RunCommandError
from voratiq.run.types import AgentTestResult

STDOUT_FILENAME = "stdout.log"
STDERR_FILENAME = "stderr.log"
DIFF_FILENAME = "diff.patch"
SUMMARY_FILENAME = "summary.txt"
WORKSPACE_DIRNAME = "workspace"
TESTS_FILENAME = "tests.log"


@dataclass(frozen=True)
class AgentWorkspacePaths:
    """Every file location one agent owns inside the run directory."""
    agent_root: Path
    stdout: Path
    stderr: Path
    diff: Path
    summary: Path
    workspace: Path
    tests: Path

    @classmethod
    def for_agent(cls, run_root: Path, agent_id: str) -> "AgentWorkspacePaths":
        agent_root = run_root / agent_id
        return cls(
            agent_root=agent_root,
            stdout=agent_root / STDOUT_FILENAME,
            stderr=agent_root / STDERR_FILENAME,
            diff=agent_root / DIFF_FILENAME,
            summary=agent_root / SUMMARY_FILENAME,
            workspace=agent_root / WORKSPACE_DIRNAME,
            tests=agent_root / TESTS_FILENAME,
        )


@dataclass(frozen=True)
class AgentExecutionState:
    """Telemetry about which stages were reached. Flags only ever turn on."""
    diff_attempted: bool = False
    diff_captured: bool = False
    tests_attempted: bool = False

    def merge(
        self,
        diff_attempted: bool = False,
        diff_captured: bool = False,
        tests_attempted: bool = False,
    ) -> "AgentExecutionState":
        return AgentExecutionState(
            diff_attempted=self.diff_attempted or diff_attempted,
            diff_captured=self.diff_captured or diff_captured,
            tests_attempted=self.tests_attempted or tests_attempted,
        )


class AgentStage(str, Enum):
    SCAFFOLDED = "scaffolded"
    CHECKED_OUT = "checked-out"
    INVOKED = "invoked"
    HARVESTED = "harvested"
    CAPTURED = "captured"
    VERIFIED = "verified"


@dataclass(frozen=True)
class AgentContext:
    """Read-only inputs shared by every stage of one agent's pipeline."""
    agent: AgentDefinition
    run_id: str
    root: Path
    base_revision: str
    spec_content: str
    paths: AgentWorkspacePaths
    environment: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    test_command: str | None = None

    @property
    def branch_name(self) -> str:
        return f"voratiq/run/{self.run_id}/{self.agent.id}"


@dataclass(frozen=True)
class AgentProgress:
    """
    What one agent's pipeline has produced so far. Stages never mutate a
    progress value; they return a new one at the next stage. `stage` is
    the last stage that completed (None before scaffolding finishes).
    """
    stage: AgentStage | None = None
    state: AgentExecutionState = field(default_factory=AgentExecutionState)
    prompt: str | None = None
    argv: tuple[str, ...] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    summary: str | None = None
    summary_subject: str | None = None
    commit: str | None = None
    change_summary: str | None = None
    tests: AgentTestResult | None = None

    def advance(self, stage: AgentStage, **changes) -> "AgentProgress":
        return replace(self, stage=stage, **changes)

    def with_(self, **changes) -> "AgentProgress":
        """Record partial results without completing a stage."""
        return replace(self, **changes)

    def mark(self, **flags: bool) -> "AgentProgress":
        return replace(self, state=self.state.merge(**flags))


@dataclass(frozen=True)
class StageFailure:
    """
    Terminal outcome of a stage: the stage that was attempted, the error
    that ended the pipeline, and whatever the stage had produced by then.
    """
    stage: AgentStage
    error: RunCommandError
    progress: AgentProgress


StageResult = Union[AgentProgress, StageFailure]
