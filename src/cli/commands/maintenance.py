"""Maintenance CLI commands."""

import click
from rich.console import Console

from cli.utils import get_components, print_stats
from records.cleanup import cleanup_orphans

console = Console()


@click.command()
@click.option("--user-id", type=int, default=None, help="Override configured user id")
@click.confirmation_option(prompt="Delete rows that reference missing contacts?")
@click.pass_obj
def cleanup(obj, user_id: int | None):
    """Remove or relink history rows whose contact no longer exists."""
    c = get_components(obj.get("config_path"))
    uid = user_id or c["config"].user_id
    stats = cleanup_orphans(c["db"], uid)
    print_stats("Cleanup", stats.to_dict())
