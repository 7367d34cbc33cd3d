"""Tests for orphan cleanup of legacy history rows."""

from facts.models import CandidateFact
from facts.store import FactStore
from observations.materializer import ObservationMaterializer
from observations.store import ObservationStore
from records.cleanup import cleanup_orphans
from records.models import Note
from shared_types import FactType


class TestCleanupOrphans:
    def test_deletes_dangling_rows(self, db, records, build, subject):
        gone = build.subject("퇴사자")
        build.note(subject.id, "keep")
        build.note(gone.id, "drop")
        build.gift(gone.id)
        ObservationMaterializer(db).materialize(1)
        FactStore(db).merge(
            1, gone.id, CandidateFact(FactType.DATE, "birthday", 0, 1.0, "생일"), None
        )
        records.delete_subject(gone.id)

        stats = cleanup_orphans(db, 1)

        assert stats.notes_deleted == 1
        assert stats.gifts_deleted == 1
        assert stats.facts_deleted == 1
        assert stats.observations_deleted == 3  # profile, note, gift
        assert [n.content for n in records.list_notes(1)] == ["keep"]
        assert {o.subject_id for o in ObservationStore(db).list_for_user(1)} == {subject.id}

    def test_events_relinked_or_deleted(self, db, records, build, subject):
        partial = build.event(f"{subject.id}, 999")
        dead = build.event("999,1000")
        untouched = build.event(str(subject.id))
        unlinked = build.event(None)

        stats = cleanup_orphans(db, 1)

        assert (stats.events_relinked, stats.events_deleted) == (1, 1)
        events = {e.id: e for e in records.list_events(1)}
        assert events[partial.id].linked_subject_ids == str(subject.id)
        assert dead.id not in events
        assert events[untouched.id].linked_subject_ids == str(subject.id)
        assert unlinked.id in events

    def test_other_users_untouched(self, db, records, subject):
        records.add_note(Note(id=None, user_id=2, subject_id=999, content="not mine"))
        stats = cleanup_orphans(db, 1)
        assert stats.notes_deleted == 0
        assert len(records.list_notes(2)) == 1

    def test_chats_left_alone(self, db, records, build, subject):
        build.chat([{"role": "user", "content": "hi"}], subject_id=999)
        cleanup_orphans(db, 1)
        assert len(records.list_chats(1)) == 1
