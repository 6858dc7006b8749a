"""
Voratiq Run Coordinator

One run = one spec handed to every configured agent. The coordinator
owns the run directory for the duration of the run:

  1. Validate inputs and hash the spec once.
  2. Refuse to reuse a run id whose directory already exists.
  3. Resolve a single base revision shared by every agent.
  4. Drive each agent's pipeline (sequential unless max_workers > 1).
  5. Append exactly one RunRecord to runs.jsonl.
  6. Return the RunReport, with failure flags cross-checked.
"""

from __future__ import annotations

import hashlib
import os
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Sequence

from loguru import logger

from voratiq import git
from voratiq.agents import AgentDefinition
from voratiq.event_bus import EventBus
from voratiq.parallel import run_in_order
from voratiq.run.errors import RunDirectoryExistsError
from voratiq.run.id import generate_run_id
from voratiq.run.pipeline import AgentExecution, execute_agent
from voratiq.run.process import build_agent_environment
from voratiq.run.records import append_run_record
from voratiq.run.reports import to_run_report
from voratiq.run.state import AgentContext, AgentWorkspacePaths
from voratiq.run.types import RunRecord, RunReport, SpecReference
from voratiq.workspace import display_path


class RunCoordinator:
    def __init__(
        self,
        root: Path,
        runs_directory: Path,
        runs_file_path: Path,
        agents: Sequence[AgentDefinition],
        environment: Mapping[str, str] | None = None,
        bus: EventBus | None = None,
        max_workers: int = 1,
    ):
        self.root = Path(root).resolve()
        self.runs_directory = Path(runs_directory).resolve()
        self.runs_file_path = Path(runs_file_path)
        self.agents = list(agents)
        # Snapshot now; agents never see later changes to os.environ.
        self.environment = MappingProxyType(dict(os.environ if environment is None else environment))
        self.bus = bus
        self.max_workers = max_workers

    def execute(
        self,
        spec_absolute_path: Path,
        spec_display_path: str,
        test_command: str | None = None,
        run_id: str | None = None,
    ) -> RunReport:
        if test_command is not None and not test_command.strip():
            raise ValueError("Test command must not be empty")

        spec_content = Path(spec_absolute_path).read_text(encoding="utf-8")
        spec = SpecReference(
            path=spec_display_path,
            sha256=hashlib.sha256(spec_content.encode("utf-8")).hexdigest(),
        )

        run_id = run_id or generate_run_id()
        run_root = self.runs_directory / run_id
        if run_root.exists():
            raise RunDirectoryExistsError(run_id, display_path(self.root, run_root))
        try:
            run_root.mkdir(parents=True)
        except FileExistsError:
            raise RunDirectoryExistsError(run_id, display_path(self.root, run_root)) from None

        base_revision = git.head_revision(self.root)
        created_at = datetime.now(timezone.utc)
        logger.info(
            f"[RUN] {run_id}: {len(self.agents)} agent(s) on {base_revision[:12]} "
            f"(spec {spec.path}, sha256 {spec.sha256[:12]})"
        )
        if self.bus:
            self.bus.emit("run_started", run_id=run_id, payload={
                "agents": [agent.id for agent in self.agents],
                "base_revision": base_revision,
                "spec": spec.path,
            })

        def run_agent(agent: AgentDefinition) -> AgentExecution:
            context = AgentContext(
                agent=agent,
                run_id=run_id,
                root=self.root,
                base_revision=base_revision,
                spec_content=spec_content,
                paths=AgentWorkspacePaths.for_agent(run_root, agent.id),
                environment=build_agent_environment(self.environment, agent.id, agent.model),
                test_command=test_command,
            )
            return execute_agent(context, bus=self.bus)

        executions = run_in_order(self.agents, run_agent, max_workers=self.max_workers)

        record = RunRecord(
            run_id=run_id,
            spec=spec,
            created_at=created_at,
            base_revision=base_revision,
            root_path=display_path(self.root, self.root),
            run_path=display_path(self.root, run_root),
            agents=[execution.record for execution in executions],
        )
        append_run_record(self.runs_file_path, record)

        report = to_run_report(
            record,
            [execution.report for execution in executions],
            had_agent_failure=any(e.record.status == "failed" for e in executions),
            had_test_failure=any(e.tests_failed for e in executions),
        )

        logger.info(
            f"[RUN] {run_id}: done (agent failure: {report.had_agent_failure}, "
            f"test failure: {report.had_test_failure})"
        )
        if self.bus:
            self.bus.emit("run_completed", run_id=run_id, payload={
                "had_agent_failure": report.had_agent_failure,
                "had_test_failure": report.had_test_failure,
            })
        return report
