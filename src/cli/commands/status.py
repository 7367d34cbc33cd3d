"""Status CLI command: observation backlog and fact totals."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components
from facts.store import FactStore
from observations.store import ObservationStore

console = Console()


@click.command()
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.pass_obj
def status(obj, user_id: int | None):
    """Show processed/pending observations and facts by type."""
    c = get_components(obj.get("config_path"))
    db = c["db"]
    uid = user_id or c["config"].user_id

    obs_counts = ObservationStore(db).counts_by_type(uid)
    table = Table(title="Observations", show_header=True)
    table.add_column("Record type")
    table.add_column("Total", justify="right")
    table.add_column("Processed", justify="right")
    table.add_column("Pending", justify="right")
    for record_type, counts in sorted(obs_counts.items()):
        pending = counts["total"] - counts["processed"]
        table.add_row(
            record_type,
            str(counts["total"]),
            str(counts["processed"]),
            f"[yellow]{pending}[/]" if pending else "0",
        )
    console.print(table)

    fact_stats = FactStore(db).stats_by_type(uid)
    if not fact_stats:
        console.print("No facts stored.")
        return

    table = Table(title="Facts", show_header=True)
    table.add_column("Type")
    table.add_column("Total", justify="right")
    table.add_column("Live", justify="right")
    table.add_column("Avg conf", justify="right")
    for fact_type, stats in fact_stats.items():
        table.add_row(fact_type, str(stats["total"]), str(stats["live"]), f"{stats['avg_confidence']:.2f}")
    console.print(table)
