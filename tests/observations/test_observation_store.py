"""Tests for ObservationStore upsert and pending queue."""

from datetime import datetime, timezone

import pytest

from observations.models import Observation
from observations.store import ObservationStore
from shared_types import RecordType


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def store(db):
    return ObservationStore(db)


def _obs(natural_key, occurred_at, subject_id=1, text="text", record_type=RecordType.NOTE):
    return Observation(
        id=None,
        user_id=1,
        subject_id=subject_id,
        record_type=record_type,
        natural_key=natural_key,
        occurred_at=occurred_at,
        rendered_text=text,
    )


class TestUpsert:
    def test_same_key_single_row(self, store):
        store.upsert(_obs(1, utc(2024, 1, 1)))
        store.upsert(_obs(1, utc(2024, 1, 1)))
        assert len(store.list_for_user(1)) == 1

    def test_text_change_keeps_processed(self, store):
        store.upsert(_obs(1, utc(2024, 1, 1), text="old"))
        obs = store.list_for_user(1)[0]
        store.mark_processed(obs.id)

        store.upsert(_obs(1, utc(2024, 1, 1), text="new"))
        refreshed = store.get(obs.id)
        assert refreshed.rendered_text == "new"
        assert refreshed.processed is True

    def test_existing_state(self, store):
        obs = _obs(1, None, text="hello")
        store.upsert(obs)
        assert store.existing_state(1) == {obs.key: ("hello", None)}

    def test_moved_occurrence_refreshed_with_same_text(self, store):
        store.upsert(_obs(1, utc(2024, 1, 1), text="same"))
        obs = store.list_for_user(1)[0]
        store.mark_processed(obs.id)

        store.upsert(_obs(1, utc(2024, 2, 1), text="same"))
        refreshed = store.get(obs.id)
        assert refreshed.occurred_at == utc(2024, 2, 1)
        assert refreshed.processed is True


class TestPending:
    def test_oldest_first_nulls_last(self, store):
        store.upsert(_obs(1, None))
        store.upsert(_obs(2, utc(2024, 3, 1)))
        store.upsert(_obs(3, utc(2024, 1, 1)))
        assert [o.natural_key for o in store.pending(1)] == [3, 2, 1]

    def test_limit_and_subject_filter(self, store):
        store.upsert(_obs(1, utc(2024, 1, 1), subject_id=1))
        store.upsert(_obs(2, utc(2024, 1, 2), subject_id=2))
        store.upsert(_obs(3, utc(2024, 1, 3), subject_id=2))
        assert [o.natural_key for o in store.pending(1, subject_ids=[2], limit=1)] == [2]
        assert store.count_pending(1, [2]) == 2
        assert store.count_pending(1) == 3

    def test_processed_excluded(self, store):
        store.upsert(_obs(1, utc(2024, 1, 1)))
        obs = store.pending(1)[0]
        store.mark_processed(obs.id, utc(2024, 2, 1))
        assert store.pending(1) == []
        assert store.get(obs.id).processed_at == utc(2024, 2, 1)

    def test_counts_by_type(self, store):
        store.upsert(_obs(1, None))
        store.upsert(_obs(1, None, record_type=RecordType.GIFT))
        store.mark_processed(store.pending(1)[0].id)
        counts = store.counts_by_type(1)
        assert sum(c["processed"] for c in counts.values()) == 1
        assert counts["NOTE"]["total"] == 1
