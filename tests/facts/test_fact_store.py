"""Tests for FactStore merge rules and invalidation."""

from datetime import datetime, timezone

import pytest

from facts.models import CandidateFact
from facts.store import FactStore
from shared_types import FactType, MergeOutcome


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def store(db):
    return FactStore(db)


def _candidate(key="coffee", confidence=0.8, fact_type=FactType.PREFERENCE, polarity=1, evidence="커피"):
    return CandidateFact(
        fact_type=fact_type, fact_key=key, polarity=polarity, confidence=confidence, evidence=evidence
    )


class TestMerge:
    def test_insert(self, store):
        assert store.merge(1, 10, _candidate(), observation_id=5, at=utc(2024, 1, 1)) == MergeOutcome.INSERTED
        fact = store.find(10, FactType.PREFERENCE, "coffee")
        assert fact.confidence == 0.8
        assert fact.observation_id == 5
        assert fact.extracted_at == utc(2024, 1, 1)

    def test_lower_confidence_skipped(self, store):
        store.merge(1, 10, _candidate(confidence=0.8), 1)
        assert store.merge(1, 10, _candidate(confidence=0.6, evidence="other"), 2) == MergeOutcome.SKIPPED
        fact = store.find(10, FactType.PREFERENCE, "coffee")
        assert fact.confidence == 0.8
        assert fact.evidence == "커피"
        assert fact.observation_id == 1

    def test_higher_confidence_overwrites(self, store):
        store.merge(1, 10, _candidate(confidence=0.8), 1)
        assert store.merge(1, 10, _candidate(confidence=0.9, evidence="new"), 2) == MergeOutcome.UPDATED
        fact = store.find(10, FactType.PREFERENCE, "coffee")
        assert fact.confidence == 0.9
        assert fact.evidence == "new"
        assert fact.observation_id == 2

    def test_equal_confidence_newer_wins(self, store):
        store.merge(1, 10, _candidate(confidence=0.8), 1)
        assert store.merge(1, 10, _candidate(confidence=0.8, evidence="newer"), 2) == MergeOutcome.UPDATED
        assert store.find(10, FactType.PREFERENCE, "coffee").evidence == "newer"

    def test_one_row_per_identity(self, store, db):
        for conf in (0.5, 0.7, 0.6):
            store.merge(1, 10, _candidate(confidence=conf), None)
        store.merge(1, 10, _candidate(fact_type=FactType.DISLIKE, polarity=-1), None)
        store.merge(1, 11, _candidate(), None)
        assert db.query("SELECT COUNT(*) FROM facts")[0][0] == 3

    def test_invalidated_fact_revived_by_merge(self, store):
        store.merge(1, 10, _candidate(confidence=0.8), 1)
        store.invalidate(10, "coffee")
        assert store.merge(1, 10, _candidate(confidence=0.3), 2) == MergeOutcome.UPDATED
        assert store.find(10, FactType.PREFERENCE, "coffee").confidence == 0.3


class TestInvalidate:
    def test_zeroes_all_types_with_key(self, store):
        store.merge(1, 10, _candidate("coffee", 0.9), 1)
        store.merge(1, 10, _candidate("coffee", 0.7, FactType.CONTEXT, 0), 1)
        store.merge(1, 11, _candidate("coffee", 0.9), 1)

        assert store.invalidate(10, "coffee") == 2
        assert all(f.invalidated for f in store.for_subject(10))
        assert store.find(11, FactType.PREFERENCE, "coffee").confidence == 0.9

    def test_row_kept_and_idempotent(self, store):
        store.merge(1, 10, _candidate(), 1)
        store.invalidate(10, "coffee")
        assert store.invalidate(10, "coffee") == 0
        assert len(store.for_subject(10)) == 1
        assert store.known_facts(10) == []

    def test_missing_key(self, store):
        assert store.invalidate(10, "nothing") == 0


class TestQueries:
    def test_for_subject_ordering_and_filters(self, store):
        store.merge(1, 10, _candidate("tea", 0.6), 1)
        store.merge(1, 10, _candidate("coffee", 0.9), 1)
        store.merge(1, 10, _candidate("nuts", 1.0, FactType.RISK, -1), 1)
        store.invalidate(10, "nuts")

        assert [f.fact_key for f in store.for_subject(10)] == ["coffee", "tea", "nuts"]
        assert [f.fact_key for f in store.for_subject(10, include_invalidated=False)] == ["coffee", "tea"]
        assert [f.fact_key for f in store.for_subject(10, fact_type=FactType.RISK)] == ["nuts"]
        assert [f.fact_key for f in store.known_facts(10, limit=1)] == ["coffee"]

    def test_stats_by_type(self, store):
        store.merge(1, 10, _candidate("tea", 0.6), 1)
        store.merge(1, 10, _candidate("coffee", 0.8), 1)
        store.merge(1, 10, _candidate("nuts", 1.0, FactType.RISK, -1), 1)
        store.invalidate(10, "nuts")

        stats = store.stats_by_type(1)
        assert stats["PREFERENCE"] == {"total": 2, "live": 2, "avg_confidence": 0.7}
        assert stats["RISK"] == {"total": 1, "live": 0, "avg_confidence": 0.0}
