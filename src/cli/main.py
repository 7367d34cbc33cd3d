"""relmem CLI: relationship fact reconciliation."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import cleanup, facts, materialize, reconcile, run_all, seed, status
from cli.config import load_config_model
from cli.logging_config import setup_logging
from observability import log_run_summary, metrics


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml",
)
@click.pass_context
def cli(ctx, verbose: bool, json_logs: bool, config_path: Path | None):
    """relmem - turn contact history into reconciled facts."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    try:
        config = load_config_model(config_path)
        level, json_mode = config.logging.level, config.logging.json_mode
        log_file = config.paths.log_file
    except ValueError:
        # Reported properly by the command itself
        level, json_mode, log_file = "INFO", False, None

    setup_logging(
        json_mode=json_logs or json_mode,
        level="DEBUG" if verbose else level,
        log_file=log_file,
    )
    metrics.reset()
    command = ctx.invoked_subcommand
    ctx.call_on_close(lambda: log_run_summary(command))


cli.add_command(materialize)
cli.add_command(reconcile)
cli.add_command(run_all)
cli.add_command(seed)
cli.add_command(status)
cli.add_command(facts)
cli.add_command(cleanup)


if __name__ == "__main__":
    cli()
