"""Facts CLI commands: list and inspect reconciled facts."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components
from facts.store import FactStore
from observations.store import ObservationStore
from shared_types import FactType

console = Console()


@click.group()
def facts():
    """Reconciled facts about your contacts."""
    pass


@facts.command("list")
@click.option("-s", "--subject", type=int, default=None, help="Only this subject")
@click.option(
    "-t",
    "--type",
    "fact_type",
    default=None,
    type=click.Choice([t.value for t in FactType]),
    help="Filter by fact type",
)
@click.option("-a", "--all", "show_all", is_flag=True, help="Include invalidated facts")
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.pass_obj
def facts_list(obj, subject: int | None, fact_type: str | None, show_all: bool, user_id: int | None):
    """List facts, highest confidence first."""
    c = get_components(obj.get("config_path"))
    store = FactStore(c["db"])
    uid = user_id or c["config"].user_id

    if subject is not None:
        rows = store.for_subject(subject, include_invalidated=show_all, fact_type=fact_type)
    else:
        rows = store.for_user(uid, fact_type=fact_type)
        if not show_all:
            rows = [f for f in rows if not f.invalidated]

    if not rows:
        console.print("No facts stored.")
        return

    table = Table(title="Facts")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Subject", width=8)
    table.add_column("Type", width=12)
    table.add_column("Key")
    table.add_column("Pol", width=4, justify="right")
    table.add_column("Conf", width=5, justify="right")
    table.add_column("Evidence")

    for f in rows:
        style = "dim strike" if f.invalidated else None
        table.add_row(
            str(f.id),
            str(f.subject_id),
            f.fact_type.value,
            f.fact_key,
            f"{f.polarity:+d}",
            f"{f.confidence:.2f}",
            f.evidence[:60],
            style=style,
        )

    console.print(table)


@facts.command("inspect")
@click.argument("fact_id", type=int)
@click.pass_obj
def facts_inspect(obj, fact_id: int):
    """Show a fact and the observation it was last extracted from."""
    c = get_components(obj.get("config_path"))
    fact = FactStore(c["db"]).get(fact_id)
    if not fact:
        console.print(f"[red]Fact not found: {fact_id}[/]")
        return

    console.print(f"ID: {fact.id}")
    console.print(f"Subject: {fact.subject_id}")
    console.print(f"Type: {fact.fact_type.value}")
    console.print(f"Key: {fact.fact_key}")
    console.print(f"Polarity: {fact.polarity:+d}")
    console.print(f"Confidence: {fact.confidence}{' (invalidated)' if fact.invalidated else ''}")
    console.print(f"Evidence: {fact.evidence}")
    console.print(f"Extracted: {fact.extracted_at}")

    if fact.observation_id is None:
        return
    obs = ObservationStore(c["db"]).get(fact.observation_id)
    if obs is None:
        console.print(f"[yellow]Source observation {fact.observation_id} no longer exists[/]")
        return
    console.print(f"\nSource: {obs.record_type}#{obs.natural_key} (observation {obs.id})")
    console.print(obs.rendered_text, markup=False)
