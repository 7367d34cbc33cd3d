"""Pipeline CLI commands: materialize, reconcile, run-all."""

import json
import signal
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, parse_since, print_stats
from seeding.scenario import SeedError

console = Console()


class StopFlag:
    """Turns the first Ctrl+C into a graceful stop between observations."""

    def __init__(self):
        self.requested = False
        self._previous = None

    def __call__(self) -> bool:
        return self.requested

    def _handle(self, signum, frame):
        if self.requested:
            raise KeyboardInterrupt
        self.requested = True
        console.print("\n[yellow]Stopping after the current observation (Ctrl+C again to abort)[/]")

    def __enter__(self):
        self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc):
        signal.signal(signal.SIGINT, self._previous)
        return False


def _print_materialize(stats):
    table = Table(title="Materialized observations", show_header=True)
    table.add_column("Record type")
    table.add_column("Scanned", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Unchanged", justify="right")
    for record_type, counts in stats.by_type.items():
        table.add_row(
            str(record_type),
            str(counts.scanned),
            str(counts.inserted),
            str(counts.updated),
            str(counts.unchanged),
        )
    console.print(table)
    if stats.skipped_orphans:
        console.print(f"[yellow]Skipped {stats.skipped_orphans} orphaned records[/]")


@click.command()
@click.option("-s", "--subject", "subjects", multiple=True, type=int, help="Limit to subject id (repeatable)")
@click.option("--since", help="Only records created at/after this ISO date")
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.pass_obj
def materialize(obj, subjects: tuple[int, ...], since: str | None, user_id: int | None):
    """Render raw records into the observation log."""
    c = get_components(obj.get("config_path"))
    uid = user_id or c["config"].user_id
    stats = c["pipeline"].materialize(uid, list(subjects) or None, parse_since(since))
    _print_materialize(stats)
    console.print(
        f"[green]Done:[/] {stats.inserted} new, {stats.updated} updated, {stats.unchanged} unchanged"
    )


@click.command()
@click.option("-s", "--subject", "subjects", multiple=True, type=int, help="Limit to subject id (repeatable)")
@click.option("-n", "--limit", type=int, default=None, help="Max observations this run")
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.pass_obj
def reconcile(obj, subjects: tuple[int, ...], limit: int | None, user_id: int | None):
    """Extract facts from pending observations and merge them."""
    c = get_components(obj.get("config_path"))
    uid = user_id or c["config"].user_id
    limit = limit or c["config"].reconcile.batch_size

    with StopFlag() as stop:
        with console.status("Reconciling..."):
            stats = c["pipeline"].reconcile(uid, list(subjects) or None, limit, should_stop=stop)

    print_stats("Reconciliation", stats.to_dict())
    if stats.stopped:
        console.print(f"[yellow]Stopped early;[/] {stats.remaining} observations still pending")
    elif stats.failed:
        console.print(f"[yellow]{stats.failed} observations failed and stay pending[/]")


@click.command("run-all")
@click.option(
    "-f",
    "--scenario-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Scenario JSON file",
)
@click.option("-t", "--text", help="Free-text scenario, expanded by the LLM")
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.pass_obj
def run_all(obj, scenario_file: Path | None, text: str | None, user_id: int | None):
    """Seed a scenario, then materialize and reconcile it."""
    if bool(scenario_file) == bool(text):
        raise click.UsageError("Give exactly one of --scenario-file or --text")

    if scenario_file:
        try:
            scenario = json.loads(scenario_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--scenario-file")
    else:
        scenario = text

    c = get_components(obj.get("config_path"))
    uid = user_id or c["config"].user_id

    try:
        with StopFlag() as stop:
            with console.status("Running pipeline..."):
                result = c["pipeline"].run_all(uid, scenario, should_stop=stop)
    except SeedError as e:
        console.print(f"[red]Seeding failed:[/] {e}")
        raise SystemExit(1)

    console.print(f"[green]Seeded subjects:[/] {', '.join(map(str, result.seed.subject_ids))}")
    print_stats("Seeded records", result.seed.counts)
    _print_materialize(result.materialize)
    print_stats("Reconciliation", result.reconcile.to_dict())
