"""
Run record and report models.

Records are persisted (one RunRecord per line in runs.jsonl) with
camelCase keys; optional fields that were never computed are left out
of the JSON entirely. Reports are in-memory projections for rendering.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AgentStatus = Literal["succeeded", "failed"]
TestStatus = Literal["passed", "failed", "skipped"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class SpecReference(_CamelModel):
    path: str
    sha256: str


class AgentTestResult(_CamelModel):
    """Outcome of the verification command. skipped + error = could not start."""

    status: TestStatus
    command: str | None = None
    exit_code: int | None = None
    log_path: str | None = None
    error: str | None = None


class AgentAssets(_CamelModel):
    stdout: str
    stderr: str
    workspace: str
    diff: str | None = None
    summary: str | None = None
    tests: str | None = None


class AgentInvocationRecord(_CamelModel):
    agent_id: str
    model: str
    binary_path: str
    argv: list[str] | None = None
    prompt: str | None = None
    workspace_path: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    status: AgentStatus
    summary: str | None = None
    commit: str | None = None
    change_summary: str | None = None
    assets: AgentAssets
    tests: AgentTestResult | None = None
    error: str | None = None


class RunRecord(_CamelModel):
    run_id: str
    spec: SpecReference
    created_at: datetime
    base_revision: str
    root_path: str
    run_path: str
    agents: list[AgentInvocationRecord] = Field(default_factory=list)


class AgentReport(_CamelModel):
    agent_id: str
    status: AgentStatus
    summary: str | None = None
    commit: str | None = None
    change_summary: str | None = None
    assets: AgentAssets
    tests: AgentTestResult | None = None
    error: str | None = None
    diff_attempted: bool = False
    diff_captured: bool = False
    tests_attempted: bool = False

    @property
    def tests_failed(self) -> bool:
        return self.tests_attempted and self.tests is not None and (
            self.tests.status == "failed" or self.tests.error is not None
        )


class RunReport(_CamelModel):
    run_id: str
    spec: SpecReference
    agents: list[AgentReport]
    had_agent_failure: bool
    had_test_failure: bool
