"""Observation materializer: raw records -> one observation per (record, subject)."""

from collections.abc import Callable, Iterator
from datetime import datetime, timezone

import structlog

from db import Database, to_db_time
from observability import metrics
from records.models import ChatTranscript, Subject
from records.store import RecordStore
from shared_types import RecordType

from .linking import infer_chat_subjects, parse_linked_subject_ids
from .models import MaterializeStats, Observation
from .rendering import render_chat, render_event, render_gift, render_note, render_profile
from .store import ObservationStore

logger = structlog.get_logger()

ChatSubjectStrategy = Callable[[ChatTranscript, list[Subject]], list[int]]


class ObservationMaterializer:
    """Scans a user's records and upserts rendered observations.

    Re-running over unchanged data writes nothing new: the unique key
    (record_type, natural_key, subject_id) absorbs duplicates and rows keep
    their processed flag.
    """

    def __init__(
        self,
        db: Database,
        records: RecordStore | None = None,
        observations: ObservationStore | None = None,
        chat_subject_strategy: ChatSubjectStrategy = infer_chat_subjects,
    ):
        self.db = db
        self.records = records or RecordStore(db)
        self.observations = observations or ObservationStore(db)
        self.chat_subject_strategy = chat_subject_strategy

    def materialize(
        self,
        user_id: int,
        subject_ids: list[int] | None = None,
        created_after: datetime | None = None,
    ) -> MaterializeStats:
        """Materialize observations for one user in a single transaction.

        Args:
            user_id: Owner of the records.
            subject_ids: Restrict to these subjects. None or empty means all.
            created_after: Keep only notes, events, gifts and chats created
                at or after this instant. Profiles are never time-filtered.
        """
        subjects = {s.id: s for s in self.records.list_subjects(user_id)}
        targets = set(subject_ids) if subject_ids else None
        cutoff = _aware(created_after)
        stats = MaterializeStats()

        with metrics.timer("materialize_duration"), self.db.transaction():
            existing = self.observations.existing_state(user_id)
            for obs in self._collect(user_id, subjects, targets, cutoff, stats):
                counts = stats.by_type[obs.record_type]
                state = (obs.rendered_text, to_db_time(obs.occurred_at))
                previous = existing.get(obs.key)
                if previous is None:
                    counts.inserted += 1
                elif previous != state:
                    counts.updated += 1
                else:
                    counts.unchanged += 1
                    continue
                self.observations.upsert(obs)
                existing[obs.key] = state

        metrics.counter("observations_inserted", stats.inserted)
        metrics.counter("observations_updated", stats.updated)
        logger.info(
            "materialize.complete",
            user_id=user_id,
            inserted=stats.inserted,
            updated=stats.updated,
            unchanged=stats.unchanged,
            skipped_orphans=stats.skipped_orphans,
        )
        return stats

    def _collect(
        self,
        user_id: int,
        subjects: dict[int, Subject],
        targets: set[int] | None,
        cutoff: datetime | None,
        stats: MaterializeStats,
    ) -> Iterator[Observation]:
        def wanted(subject_id: int) -> bool:
            return targets is None or subject_id in targets

        def fresh(created_at: datetime | None, fallback: datetime | None = None) -> bool:
            stamp = created_at or fallback
            return cutoff is None or (stamp is not None and _aware(stamp) >= cutoff)

        for subject in subjects.values():
            stats.by_type[RecordType.PROFILE].scanned += 1
            if wanted(subject.id):
                yield self._observation(
                    user_id, subject.id, RecordType.PROFILE, subject.id,
                    subject.created_at, render_profile(subject),
                )

        for note in self.records.list_notes(user_id):
            stats.by_type[RecordType.NOTE].scanned += 1
            if not fresh(note.created_at, note.updated_at):
                continue
            subject = subjects.get(note.subject_id)
            if subject is None:
                stats.skipped_orphans += 1
                continue
            if wanted(subject.id):
                yield self._observation(
                    user_id, subject.id, RecordType.NOTE, note.id,
                    note.created_at or note.updated_at, render_note(note, subject),
                )

        for event in self.records.list_events(user_id):
            stats.by_type[RecordType.CALENDAR_EVENT].scanned += 1
            if not fresh(event.created_at, event.start_at):
                continue
            for subject_id in parse_linked_subject_ids(event.linked_subject_ids):
                subject = subjects.get(subject_id)
                if subject is None:
                    stats.skipped_orphans += 1
                    continue
                if wanted(subject_id):
                    yield self._observation(
                        user_id, subject_id, RecordType.CALENDAR_EVENT, event.id,
                        event.start_at, render_event(event, subject),
                    )

        for gift in self.records.list_gifts(user_id):
            stats.by_type[RecordType.GIFT].scanned += 1
            if not fresh(gift.created_at, gift.purchased_at):
                continue
            subject = subjects.get(gift.subject_id)
            if subject is None:
                stats.skipped_orphans += 1
                continue
            if wanted(subject.id):
                yield self._observation(
                    user_id, subject.id, RecordType.GIFT, gift.id,
                    gift.purchased_at or gift.created_at, render_gift(gift, subject),
                )

        for chat in self.records.list_chats(user_id, active_only=True):
            stats.by_type[RecordType.CHAT].scanned += 1
            if not fresh(chat.created_at):
                continue
            if chat.subject_id in subjects:
                linked = [chat.subject_id]
            else:
                linked = self.chat_subject_strategy(chat, list(subjects.values()))
            for subject_id in linked:
                subject = subjects.get(subject_id)
                if subject is None or not wanted(subject_id):
                    continue
                yield self._observation(
                    user_id, subject_id, RecordType.CHAT, chat.id,
                    chat.created_at, render_chat(chat, subject),
                )

    @staticmethod
    def _observation(
        user_id: int,
        subject_id: int,
        record_type: RecordType,
        natural_key: int,
        occurred_at: datetime | None,
        text: str,
    ) -> Observation:
        return Observation(
            id=None,
            user_id=user_id,
            subject_id=subject_id,
            record_type=record_type,
            natural_key=natural_key,
            occurred_at=occurred_at,
            rendered_text=text,
        )


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
