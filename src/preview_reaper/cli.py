"""CLI entry point for Preview Reaper."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from preview_reaper.config import (
    Config,
    ExpectedNamespacePolicy,
    get_default_config_path,
    load_config,
    save_config,
)
from preview_reaper.core.job import ReclaimJob
from preview_reaper.core.naming import BranchNameMapper
from preview_reaper.models.reclaim import PhaseStatus, ReclaimReport, ReclaimVerdict

console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def print_report(report: ReclaimReport) -> None:
    """Render a reclaim report as tables."""
    phases = Table(title="Phases", show_header=True, header_style="bold cyan")
    phases.add_column("Phase", style="bold")
    phases.add_column("Status", justify="center")
    phases.add_column("Details")

    colors = {
        PhaseStatus.DONE: "green",
        PhaseStatus.FAILED: "red",
        PhaseStatus.SKIPPED: "yellow",
    }
    for phase in report.phases:
        color = colors[phase.status]
        phases.add_row(phase.name, f"[{color}]{phase.status.value}[/{color}]", phase.message)

    console.print(phases)

    plan = report.plan
    if plan is None:
        return

    if plan.decisions or plan.excluded:
        table = Table(title="Previews", show_header=True, header_style="bold cyan")
        table.add_column("Namespace", style="bold")
        table.add_column("Verdict", justify="center")
        table.add_column("Reason")

        for decision in plan.decisions:
            verdict = (
                "[red]delete[/red]"
                if decision.verdict is ReclaimVerdict.DELETE
                else "[green]keep[/green]"
            )
            table.add_row(decision.namespace, verdict, decision.reason)

        for namespace, reason in sorted(plan.excluded.items()):
            table.add_row(namespace, "[dim]skipped[/dim]", reason)

        console.print(table)

    if report.dry_run:
        console.print("[blue]This is a dry run. No previews were deleted.[/blue]")
        console.print("[dim]Run with --no-dry-run to delete idle previews.[/dim]")
        return

    for result in report.deletions:
        if result.error:
            console.print(f"  [red]Failed to delete {result.namespace}: {result.error}[/red]")
        elif result.deleted:
            console.print(f"  [green]Deleting {result.namespace}[/green]")
        else:
            console.print(f"  [dim]{result.namespace} already gone[/dim]")


@click.group()
@click.version_option(package_name="preview-reaper")
def main() -> None:
    """Preview Reaper - reclaim idle preview environments.

    Finds preview namespaces without recent activity whose branch no longer
    exists and tears them down.
    """


@main.command("run")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a configuration file.",
)
@click.option(
    "--dry-run/--no-dry-run",
    default=None,
    help="Plan without deleting (default: from configuration, dry-run).",
)
@click.option(
    "--hours",
    type=click.IntRange(min=1),
    help="Hours without activity before a preview is idle (default: 24).",
)
@click.option(
    "--policy",
    type=click.Choice([p.value for p in ExpectedNamespacePolicy]),
    help="Whether previews of existing branches may be deleted.",
)
@click.option(
    "--deadline",
    type=float,
    help="Seconds to wait for activity checks before giving up on the rest.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def run_reclaim(
    config_path: Optional[str],
    dry_run: Optional[bool],
    hours: Optional[int],
    policy: Optional[str],
    deadline: Optional[float],
    verbose: bool,
) -> None:
    """Run one reclaim pass against the preview cluster.

    Exits non-zero when setup fails (cluster credentials, branch or
    namespace listing). Failed deletions are reported but do not change
    the exit status.

    Example:
        preview-reaper run                      # Dry run with defaults
        preview-reaper run --no-dry-run         # Delete idle previews
        preview-reaper run --hours 48 -v        # Longer window, debug logs
    """
    setup_logging(verbose)
    config = load_config(config_path)

    if hours is not None:
        config.reclaim.staleness_hours = hours
    if policy is not None:
        config.reclaim.policy = ExpectedNamespacePolicy(policy)
    if deadline is not None:
        config.reclaim.deadline_seconds = deadline

    report = ReclaimJob(config).run(dry_run=dry_run)
    print_report(report)

    if not report.succeeded:
        failed = next(p for p in report.phases if p.status is PhaseStatus.FAILED)
        raise click.ClickException(f"Phase '{failed.name}' failed: {failed.message}")


@main.command("names")
@click.argument("branches", nargs=-1, required=True)
@click.option("--prefix", default="staging-", help="Namespace prefix (default: staging-).")
def show_names(branches: tuple[str, ...], prefix: str) -> None:
    """Show the namespace names a preview for each BRANCH may use.

    Example:
        preview-reaper names feature/login main
    """
    mapper = BranchNameMapper(prefix=prefix)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Branch", style="green")
    table.add_column("Current name", style="bold")
    table.add_column("Legacy name")

    for branch in branches:
        pair = mapper.namespaces_for(branch)
        table.add_row(branch, pair.current_name, pair.legacy_name)

    console.print(table)


@main.command("init-config")
@click.option(
    "-p",
    "--path",
    type=click.Path(path_type=Path),
    help="Where to write the configuration (default: ./.previewreaperrc).",
)
@click.option("-f", "--force", is_flag=True, help="Overwrite an existing file.")
def init_config(path: Optional[Path], force: bool) -> None:
    """Write a configuration file with default values."""
    target = path or get_default_config_path()

    if target.exists() and not force:
        raise click.ClickException(f"{target} already exists (use --force to overwrite)")

    save_config(Config(), target)
    console.print(f"[green]Configuration written to {target}[/green]")


if __name__ == "__main__":
    main()
