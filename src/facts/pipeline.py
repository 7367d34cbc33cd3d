"""Fact pipeline: orchestrates seed -> materialize -> reconcile."""

from dataclasses import dataclass
from datetime import datetime

import structlog

from db import Database
from observations.materializer import ObservationMaterializer
from observations.models import MaterializeStats
from seeding.scenario import ScenarioSeeder, ScenarioWriter, SeedResult

from .models import ReconcileStats
from .reconciler import FactReconciler

logger = structlog.get_logger()


@dataclass
class RunAllResult:
    seed: SeedResult
    materialize: MaterializeStats
    reconcile: ReconcileStats

    def to_dict(self) -> dict:
        return {
            "seed": {"subject_ids": self.seed.subject_ids, **self.seed.counts},
            "materialize": self.materialize.to_dict(),
            "reconcile": self.reconcile.to_dict(),
        }


class FactPipeline:
    """Entry points for the three phases, individually or end to end."""

    def __init__(
        self,
        db: Database,
        materializer: ObservationMaterializer | None = None,
        reconciler: FactReconciler | None = None,
        seeder: ScenarioSeeder | None = None,
        writer: ScenarioWriter | None = None,
    ):
        self.db = db
        self.materializer = materializer or ObservationMaterializer(db)
        self.reconciler = reconciler or FactReconciler(db)
        self.seeder = seeder or ScenarioSeeder(db)
        self.writer = writer or ScenarioWriter()

    def materialize(
        self,
        user_id: int,
        subject_ids: list[int] | None = None,
        created_after: datetime | None = None,
    ) -> MaterializeStats:
        return self.materializer.materialize(user_id, subject_ids, created_after)

    def reconcile(
        self,
        user_id: int,
        subject_ids: list[int] | None = None,
        limit: int | None = None,
        should_stop=None,
    ) -> ReconcileStats:
        return self.reconciler.reconcile(user_id, subject_ids, limit, should_stop)

    def run_all(self, user_id: int, scenario: dict | str, should_stop=None) -> RunAllResult:
        """Seed a scenario, then materialize and reconcile only what it created.

        ``scenario`` is either a scenario dict or free text, which is first
        expanded into records by the LLM.
        """
        data = self.writer.expand(scenario) if isinstance(scenario, str) else scenario
        seeded = self.seeder.seed(user_id, data)
        materialized = self.materialize(user_id, subject_ids=seeded.subject_ids)
        reconciled = self.reconcile(
            user_id, subject_ids=seeded.subject_ids, should_stop=should_stop
        )
        result = RunAllResult(seeded, materialized, reconciled)
        logger.info(
            "pipeline.run_all_complete",
            user_id=user_id,
            subject_ids=seeded.subject_ids,
            observations=materialized.total_written,
            facts_saved=reconciled.facts_saved,
        )
        return result
