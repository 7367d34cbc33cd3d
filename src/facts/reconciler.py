"""Fact reconciler: pending observations -> extract -> validate -> merge."""

import time
from collections.abc import Callable

import structlog

from db import Database, utcnow
from observability import metrics
from observations.models import Observation
from observations.store import ObservationStore
from shared_types import FactAction, MergeOutcome

from .extractor import FactExtractor
from .models import CandidateFact, ReconcileStats
from .store import FactStore
from .validator import deduplicate_facts, validate_facts

logger = structlog.get_logger()


class FactReconciler:
    """Drains unprocessed observations into the facts table.

    Each observation is its own unit of work: invalidations, merges and the
    processed flag commit together. A failed extraction leaves the
    observation pending so the next run retries it.
    """

    def __init__(
        self,
        db: Database,
        extractor: FactExtractor | None = None,
        facts: FactStore | None = None,
        observations: ObservationStore | None = None,
        delay_seconds: float = 0.5,
        max_context_facts: int = 25,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.extractor = extractor or FactExtractor(max_context_facts=max_context_facts)
        self.facts = facts or FactStore(db)
        self.observations = observations or ObservationStore(db)
        self.delay_seconds = delay_seconds
        self.max_context_facts = max_context_facts
        self._sleep = sleep

    def reconcile(
        self,
        user_id: int,
        subject_ids: list[int] | None = None,
        limit: int | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> ReconcileStats:
        """Process pending observations oldest first.

        Args:
            user_id: Owner of the observations.
            subject_ids: Restrict to these subjects. None or empty means all.
            limit: Max observations this run (None = all pending).
            should_stop: Polled between observations; True ends the run early.
        """
        stats = ReconcileStats()
        pending = self.observations.pending(user_id, subject_ids, limit)
        stats.observations_seen = len(pending)
        logger.info("reconcile.start", user_id=user_id, pending=len(pending))

        with metrics.timer("reconcile_duration"):
            for index, obs in enumerate(pending):
                if should_stop is not None and should_stop():
                    stats.stopped = True
                    logger.info("reconcile.stopped", user_id=user_id, processed=stats.processed)
                    break
                if index and self.delay_seconds > 0:
                    self._sleep(self.delay_seconds)
                self._process(obs, stats)

        stats.remaining = self.observations.count_pending(user_id, subject_ids)
        metrics.counter("observations_processed", stats.processed)
        metrics.counter("observations_failed", stats.failed)
        metrics.counter("facts_saved", stats.facts_saved)
        logger.info("reconcile.complete", user_id=user_id, **stats.to_dict())
        return stats

    def _process(self, obs: Observation, stats: ReconcileStats) -> None:
        known = self.facts.known_facts(obs.subject_id, limit=self.max_context_facts)
        try:
            raw = self.extractor.extract(obs, known)
        except Exception as e:
            stats.failed += 1
            logger.warning(
                "reconcile.extraction_failed",
                observation_id=obs.id,
                subject_id=obs.subject_id,
                error=str(e),
            )
            return

        if not raw:
            with self.db.transaction():
                self.observations.mark_processed(obs.id)
            stats.empty += 1
            stats.processed += 1
            return

        batch = validate_facts(raw)
        stats.facts_extracted += len(raw)
        stats.facts_valid += len(batch.valid)
        stats.facts_invalid += len(batch.invalid)
        for bad in batch.invalid:
            logger.info(
                "reconcile.fact_rejected",
                observation_id=obs.id,
                index=bad.index,
                errors=bad.errors,
            )

        candidates = deduplicate_facts(batch.valid)
        now = utcnow()
        with self.db.transaction():
            for candidate in candidates:
                if candidate.action == FactAction.INVALIDATE and candidate.invalidate_key:
                    stats.facts_invalidated += self._invalidate(obs, candidate)
            for candidate in candidates:
                self._merge(obs, candidate, now, stats)
            self.observations.mark_processed(obs.id, now)
        stats.processed += 1

    def _invalidate(self, obs: Observation, candidate: CandidateFact) -> int:
        changed = self.facts.invalidate(obs.subject_id, candidate.invalidate_key)
        if changed:
            logger.info(
                "reconcile.fact_invalidated",
                subject_id=obs.subject_id,
                fact_key=candidate.invalidate_key,
                rows=changed,
            )
        return changed

    def _merge(self, obs: Observation, candidate: CandidateFact, now, stats: ReconcileStats) -> None:
        outcome = self.facts.merge(obs.user_id, obs.subject_id, candidate, obs.id, now)
        if outcome == MergeOutcome.INSERTED:
            stats.facts_inserted += 1
        elif outcome == MergeOutcome.UPDATED:
            stats.facts_updated += 1
        else:
            stats.facts_skipped += 1
        logger.debug(
            f"reconcile.fact_{outcome}",
            subject_id=obs.subject_id,
            fact_type=str(candidate.fact_type),
            fact_key=candidate.fact_key,
            confidence=candidate.confidence,
        )
