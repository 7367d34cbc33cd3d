"""Seed CLI command: insert synthetic relationship history."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, print_stats
from seeding.scenario import SeedError

console = Console()


@click.command()
@click.option(
    "-f",
    "--file",
    "scenario_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Scenario JSON file",
)
@click.option("-t", "--text", help="Free-text scenario, expanded by the LLM")
@click.option("-s", "--subject", type=int, default=None, help="Add history to this existing subject")
@click.option("--suggest", "domain", default=None, help="Only list LLM scenario ideas for a domain")
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.pass_obj
def seed(
    obj,
    scenario_file: Path | None,
    text: str | None,
    subject: int | None,
    domain: str | None,
    user_id: int | None,
):
    """Insert a scenario's subjects, events, gifts, chats and notes."""
    c = get_components(obj.get("config_path"))
    pipeline = c["pipeline"]
    uid = user_id or c["config"].user_id

    try:
        if domain:
            ideas = pipeline.writer.suggest(domain)
            table = Table(title=f"Scenario ideas: {domain}")
            table.add_column("Title")
            table.add_column("Description")
            for idea in ideas:
                table.add_row(str(idea.get("title", "")), str(idea.get("description", "")))
            console.print(table)
            return

        if bool(scenario_file) == bool(text):
            raise click.UsageError("Give exactly one of --file or --text")
        if scenario_file:
            try:
                data = json.loads(scenario_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise click.BadParameter(f"invalid JSON: {e}", param_hint="--file")
        else:
            data = pipeline.writer.expand(text)

        if subject is not None:
            result = pipeline.seeder.seed_for_subject(uid, subject, data)
        else:
            result = pipeline.seeder.seed(uid, data)
    except SeedError as e:
        console.print(f"[red]Seeding failed:[/] {e}")
        raise SystemExit(1)

    console.print(f"[green]Seeded subjects:[/] {', '.join(map(str, result.subject_ids))}")
    print_stats("Seeded records", result.counts)
