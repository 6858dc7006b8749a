"""
VORATIQ CLI

  voratiq init [ROOT]                      (bootstrap .voratiq in a repo)
  voratiq run --spec <path>                (hand one spec to every agent)
  voratiq run --preset <name>              (spec + test command from config)
  voratiq review <run-id>                  (per-agent breakdown of a run)
  voratiq list                             (recent runs)

Agents are configured through the environment (VORATIQ_AGENT_<ID>_*),
optionally loaded from .env files.
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn, Optional

import typer
from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from voratiq.agents import AgentCatalogError, load_agent_catalog
from voratiq.config_loader import ConfigError, load_config
from voratiq.event_bus import EventBus, RunEvent
from voratiq.git import GitError
from voratiq.identity import BANNER, __codename__, __tagline__, __version__
from voratiq.preflight import (
    CliError,
    ensure_run_id,
    ensure_spec_path,
    resolve_cli_context,
)
from voratiq.render import build_record_table, build_run_table, render_run_summary
from voratiq.run.coordinator import RunCoordinator
from voratiq.run.errors import RunDirectoryExistsError
from voratiq.run.records import RunRecordParseError, read_run_records
from voratiq.workspace import WorkspaceError, create_workspace

# Load .env from current directory
load_dotenv()

app = typer.Typer(
    name="voratiq",
    help=f"{__codename__} — {__tagline__}",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

_HANDLED_ERRORS = (
    CliError,
    WorkspaceError,
    ConfigError,
    GitError,
    AgentCatalogError,
    RunDirectoryExistsError,
    RunRecordParseError,
    ValueError,
)


def version_callback(value: bool):
    if value:
        console.print(f"{__codename__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    pass


# ---------------------------------------------------------------------------
# Banner
# ---------------------------------------------------------------------------


def _print_banner():
    console.print(f"[bright_green]{BANNER}[/]")
    console.print(f"  [dim]v{__version__} — {__tagline__}[/]\n")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def init(
    root: Optional[Path] = typer.Argument(None, help="Path to repository"),
):
    """Initialize the .voratiq directory in a repository."""
    _print_banner()

    try:
        ctx = resolve_cli_context(root, require_workspace=False)
        result = create_workspace(ctx.root)
    except _HANDLED_ERRORS as e:
        _fail(e)

    paths = ctx.workspace_paths
    console.print(f"[green]✅ Initialized Voratiq in {paths.workspace_dir}[/]")
    console.print(f"  Config: {paths.config_file}")
    console.print(f"  Runs:   {paths.runs_dir}")
    for created in result.created_directories + result.created_files:
        console.print(f"  [dim]created {created}[/]")


@app.command()
def run(
    spec: Optional[Path] = typer.Option(None, "--spec", "-s", help="Path to the spec file"),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="Named preset from .voratiq/config.yaml"),
    test_command: Optional[str] = typer.Option(None, "--test-command", "-t", help="Command to verify each agent's work"),
    run_id: Optional[str] = typer.Option(None, "--id", help="Explicit run id (must not exist yet)"),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Agents to run at once"),
    root: Optional[Path] = typer.Option(None, "--repo", "-r", help="Path to the target repository"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run every configured agent against one spec."""
    _print_banner()
    _configure_logging(verbose)

    try:
        ctx = resolve_cli_context(root)
        load_dotenv(ctx.workspace_paths.workspace_dir / ".env")
        config = load_config(ctx.root)

        if spec is not None and preset is not None:
            raise CliError("Specify either --spec or --preset, not both")
        chosen = None if spec is not None else config.resolve_preset(preset)
        if spec is None and chosen is None:
            raise CliError("Specify --spec or --preset (no default preset configured)")

        resolved = ensure_spec_path(spec if spec is not None else chosen.spec_path, ctx.root)
        if test_command is None and chosen is not None:
            test_command = chosen.test_command

        agents = load_agent_catalog()
        if not agents:
            raise CliError("No agents configured")

        bus = EventBus()
        bus.subscribe(_print_event)
        coordinator = RunCoordinator(
            root=ctx.root,
            runs_directory=ctx.workspace_paths.runs_dir,
            runs_file_path=ctx.workspace_paths.runs_file,
            agents=agents,
            bus=bus,
            max_workers=jobs or config.jobs,
        )
        report = coordinator.execute(
            resolved.absolute_path,
            resolved.display_path,
            test_command=test_command,
            run_id=run_id,
        )
    except _HANDLED_ERRORS as e:
        _fail(e)

    console.print(render_run_summary(report), highlight=False, markup=False, soft_wrap=True)

    if report.had_agent_failure or report.had_test_failure:
        raise typer.Exit(1)


@app.command()
def review(
    run_id: str = typer.Argument(..., help="Run id to review"),
    root: Optional[Path] = typer.Option(None, "--repo", "-r", help="Path to the target repository"),
):
    """Show the per-agent breakdown of a recorded run."""
    try:
        ctx = resolve_cli_context(root)
        record = ensure_run_id(run_id, read_run_records(ctx.workspace_paths.runs_file))
    except _HANDLED_ERRORS as e:
        _fail(e)

    console.print(build_run_table(record))
    console.print(f"  [dim]Spec: {record.spec.path} (sha256 {record.spec.sha256[:12]})[/]")
    console.print(f"  [dim]Base: {record.base_revision}[/]")
    console.print(f"  [dim]Artifacts: {record.run_path}[/]")

    for agent in record.agents:
        if agent.tests and agent.tests.error:
            console.print(f"  [yellow]{agent.agent_id}: {escape(agent.tests.error)}[/]")


@app.command(name="list")
def list_runs(
    count: int = typer.Option(10, "--count", "-n", help="Number of runs to show"),
    root: Optional[Path] = typer.Option(None, "--repo", "-r", help="Path to the target repository"),
):
    """List recent runs."""
    try:
        ctx = resolve_cli_context(root)
        records = read_run_records(ctx.workspace_paths.runs_file)
    except _HANDLED_ERRORS as e:
        _fail(e)

    if not records:
        console.print("[dim]No runs yet. Start one with: voratiq run --spec <path>[/]")
        return

    console.print(build_record_table(records, count))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_STAGE_LABELS = {
    "scaffolded": "workspace ready",
    "checked-out": "worktree created",
    "invoked": "agent finished",
    "harvested": "summary collected",
    "captured": "changes captured",
    "verified": "tests finished",
}


def _print_event(event: RunEvent) -> None:
    agent = event.agent_id or "run"
    if event.event_type == "run_started":
        console.print(Panel(
            "\n".join(f"  {a}" for a in event.payload.get("agents", [])),
            title=f"Run {event.run_id}",
            border_style="cyan",
        ))
    elif event.event_type == "agent_started":
        console.print(f"[bold]▶ {agent}[/]")
    elif event.event_type == "stage_completed":
        label = _STAGE_LABELS.get(event.payload.get("stage"), event.payload.get("stage"))
        console.print(f"  [dim]{agent}: {label}[/]")
    elif event.event_type == "stage_failed":
        console.print(f"  [red]{agent}: {escape(str(event.payload.get('error')))}[/]")
    elif event.event_type == "agent_completed":
        color = "green" if event.payload.get("status") == "succeeded" else "red"
        console.print(f"  [{color}]{agent}: {event.payload.get('status')}[/]")


def _fail(error: Exception) -> NoReturn:
    console.print(str(error), style="red", highlight=False, markup=False, soft_wrap=True)
    raise typer.Exit(1)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    if verbose:
        logger.add(
            lambda msg: console.print(msg, end="", style="dim", highlight=False, markup=False),
            level="DEBUG",
            format="{time:HH:mm:ss} | {level:<7} | {message}",
        )
    else:
        logger.add(
            lambda msg: console.print(msg, end="", style="dim", highlight=False, markup=False),
            level="WARNING",
            format="{message}",
        )


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
