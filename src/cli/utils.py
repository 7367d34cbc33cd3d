"""Shared CLI utilities."""

import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from db import Database
from facts.extractor import FactExtractor
from facts.pipeline import FactPipeline
from facts.reconciler import FactReconciler
from observations.materializer import ObservationMaterializer
from seeding.scenario import ScenarioSeeder, ScenarioWriter
from seeding.timeline import TimelineGenerator, TimelineSettings

from .config import load_config_model
from .config_models import PipelineConfig

console = Console()
logger = structlog.get_logger()


def timeline_settings(config: PipelineConfig) -> TimelineSettings:
    t = config.timeline
    return TimelineSettings(
        business_start_hour=t.business_start_hour,
        business_end_hour=t.business_end_hour,
        weekday_bias=t.weekday_bias,
        min_event_gap_days=t.min_event_gap_days,
        max_event_gap_days=t.max_event_gap_days,
        note_offset_minutes=t.note_offset_minutes,
        max_collision_attempts=t.max_collision_attempts,
    )


def _provider_factory(config: PipelineConfig):
    """Lazily build providers so commands without LLM work never need a key."""
    llm = config.llm
    provider = None if llm.provider == "auto" else llm.provider

    def extraction():
        from llm.factory import create_extraction_provider

        return create_extraction_provider(provider=provider, api_key=llm.api_key, model=llm.model)

    def general():
        from llm.factory import create_llm_provider

        return create_llm_provider(provider=provider, api_key=llm.api_key, model=llm.model)

    return extraction, general


class _LazyProvider:
    """Defers provider construction until the first generate() call."""

    def __init__(self, factory):
        self._factory = factory
        self._provider = None

    def generate(self, *args, **kwargs):
        if self._provider is None:
            self._provider = self._factory()
        return self._provider.generate(*args, **kwargs)


def build_pipeline(
    config: PipelineConfig,
    db: Database,
    extraction_provider=None,
    writer_provider=None,
) -> FactPipeline:
    """Wire the pipeline phases from config."""
    extraction, general = _provider_factory(config)
    extractor = FactExtractor(
        provider=extraction_provider or _LazyProvider(extraction),
        max_context_facts=config.reconcile.max_context_facts,
        max_tokens=config.llm.max_tokens,
        temperature=config.llm.temperature,
        strict_evidence=config.reconcile.strict_evidence,
    )
    reconciler = FactReconciler(
        db,
        extractor=extractor,
        delay_seconds=config.reconcile.delay_seconds,
        max_context_facts=config.reconcile.max_context_facts,
    )
    timeline = TimelineGenerator(
        rng=random.Random(config.timeline.seed),
        settings=timeline_settings(config),
    )
    return FactPipeline(
        db,
        materializer=ObservationMaterializer(db),
        reconciler=reconciler,
        seeder=ScenarioSeeder(db, timeline=timeline),
        writer=ScenarioWriter(provider=writer_provider or _LazyProvider(general)),
    )


def open_database(config: PipelineConfig) -> Database:
    return Database(config.paths.db_path).open()


def get_components(config_path: Path | None = None) -> dict:
    """Load config, open the database and build the pipeline.

    The database is closed when the current click context tears down.
    """
    try:
        config = load_config_model(config_path)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    db = open_database(config)
    ctx = click.get_current_context(silent=True)
    if ctx is not None:
        ctx.call_on_close(db.close)

    return {
        "config": config,
        "db": db,
        "pipeline": build_pipeline(config, db),
    }


def parse_since(value: str | None) -> datetime | None:
    """Parse an ISO date/datetime option; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO date: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def print_stats(title: str, stats: dict) -> None:
    """Render a flat stats dict as a two-column table."""
    table = Table(title=title, show_header=True)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for key, value in stats.items():
        if isinstance(value, dict):
            continue
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)
