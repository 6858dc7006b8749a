"""
Terminal rendering for runs.

render_run_summary is the plain-text block printed at the end of
`voratiq run`; the table builders back `voratiq review` and `voratiq list`.
"""

from __future__ import annotations

from typing import Sequence

from rich.table import Table

from voratiq.run.types import AgentAssets, AgentReport, RunRecord, RunReport

_STATUS_COLORS = {"succeeded": "green", "failed": "red"}
_TEST_COLORS = {"passed": "green", "failed": "red", "skipped": "yellow"}


def render_run_summary(report: RunReport) -> str:
    lines = [
        "",
        f"Running agents against spec: {report.spec.path}",
        f"Run ID: {report.run_id}",
        "",
    ]

    for index, agent in enumerate(report.agents):
        if index > 0:
            lines.append("")
        lines.extend(_agent_lines(agent))

    lines.extend([
        "",
        "Run complete. To review results, run:",
        f"  voratiq review {report.run_id}",
    ])
    return "\n".join(lines)


def _agent_lines(agent: AgentReport) -> list[str]:
    lines = [f"{agent.agent_id}:", "  - Running agent..."]
    if agent.diff_attempted:
        lines.append("  - Capturing diff...")
    if agent.tests_attempted:
        lines.append("  - Running tests...")

    lines.append(f"  - Status: {agent.status}")
    if agent.error:
        lines.append(f"  - Error: {agent.error}")

    tests = agent.tests
    if agent.tests_attempted and tests is not None:
        suffix = ""
        if tests.status == "failed":
            suffix = f" (exit code {tests.exit_code if tests.exit_code is not None else 'unknown'})"
        elif tests.error:
            suffix = f" ({tests.error})"
        lines.append(f"  - Tests: {tests.status}{suffix}")

    if agent.change_summary:
        lines.append(f"  - Changes: {agent.change_summary}")

    lines.append("  - Artifacts:")
    lines.extend(f"    - {entry}" for entry in _artifact_entries(agent.assets))
    return lines


def _artifact_entries(assets: AgentAssets) -> list[str]:
    entries = [f"stdout: {assets.stdout}", f"stderr: {assets.stderr}"]
    if assets.diff:
        entries.append(f"diff: {assets.diff}")
    if assets.tests:
        entries.append(f"tests: {assets.tests}")
    return entries


def build_run_table(record: RunRecord) -> Table:
    """Per-agent breakdown of one recorded run."""
    table = Table(title=f"Run {record.run_id}", border_style="cyan")
    table.add_column("Agent")
    table.add_column("Model", style="dim")
    table.add_column("Status")
    table.add_column("Tests")
    table.add_column("Commit", style="dim")
    table.add_column("Changes")
    table.add_column("Notes")

    for agent in record.agents:
        color = _STATUS_COLORS.get(agent.status, "red")
        if agent.tests:
            test_color = _TEST_COLORS.get(agent.tests.status, "dim")
            tests = f"[{test_color}]{agent.tests.status}[/]"
        else:
            tests = "—"
        table.add_row(
            agent.agent_id,
            agent.model,
            f"[{color}]{agent.status}[/]",
            tests,
            agent.commit[:12] if agent.commit else "—",
            agent.change_summary or "—",
            agent.error or (agent.summary.splitlines()[0] if agent.summary else ""),
        )
    return table


def build_record_table(records: Sequence[RunRecord], count: int) -> Table:
    """The most recent *count* runs, newest first."""
    table = Table(title=f"Recent Runs (last {count})", border_style="cyan")
    table.add_column("Time", style="dim")
    table.add_column("Run")
    table.add_column("Spec")
    table.add_column("Agents")
    table.add_column("Base", style="dim")

    for record in reversed(list(records)[-count:] if count > 0 else []):
        agents = ", ".join(
            f"[{_STATUS_COLORS.get(a.status, 'red')}]{a.agent_id}[/]" for a in record.agents
        )
        table.add_row(
            record.created_at.isoformat()[:19],
            record.run_id,
            record.spec.path,
            agents or "—",
            record.base_revision[:12],
        )
    return table
