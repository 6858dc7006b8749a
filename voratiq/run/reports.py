"""
Report projections.

AgentReport and RunReport are derived from the persisted records. The
run-level failure flags are recomputed here from the agent reports and
must agree with what the pipeline observed; a disagreement is a
bookkeeping bug and is raised, never corrected.
"""

from __future__ import annotations

from typing import Sequence

from voratiq.run.errors import ReportConsistencyError
from voratiq.run.state import AgentExecutionState
from voratiq.run.types import AgentInvocationRecord, AgentReport, RunRecord, RunReport


def to_agent_report(
    record: AgentInvocationRecord,
    state: AgentExecutionState,
    error: str | None = None,
) -> AgentReport:
    """Project a record into its report.

    The record keeps the full failure detail (exit code, signal); *error*
    overrides it with the display text when given.
    """
    return AgentReport(
        agent_id=record.agent_id,
        status=record.status,
        summary=record.summary,
        commit=record.commit,
        change_summary=record.change_summary,
        assets=record.assets,
        tests=record.tests,
        error=error if error is not None else record.error,
        diff_attempted=state.diff_attempted,
        diff_captured=state.diff_captured,
        tests_attempted=state.tests_attempted,
    )


def derive_failure_flags(reports: Sequence[AgentReport]) -> tuple[bool, bool]:
    """(had_agent_failure, had_test_failure) computed from the agent reports."""
    had_agent_failure = any(report.status == "failed" for report in reports)
    had_test_failure = any(report.tests_failed for report in reports)
    return had_agent_failure, had_test_failure


def to_run_report(
    record: RunRecord,
    reports: Sequence[AgentReport],
    had_agent_failure: bool,
    had_test_failure: bool,
) -> RunReport:
    derived_agent_failure, derived_test_failure = derive_failure_flags(reports)

    if derived_agent_failure != had_agent_failure:
        raise ReportConsistencyError(
            f"had_agent_failure mismatch for run {record.run_id}: "
            f"pipeline={had_agent_failure}, reports={derived_agent_failure}"
        )
    if derived_test_failure != had_test_failure:
        raise ReportConsistencyError(
            f"had_test_failure mismatch for run {record.run_id}: "
            f"pipeline={had_test_failure}, reports={derived_test_failure}"
        )

    return RunReport(
        run_id=record.run_id,
        spec=record.spec,
        agents=list(reports),
        had_agent_failure=had_agent_failure,
        had_test_failure=had_test_failure,
    )
