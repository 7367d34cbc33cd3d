"""Shared test fixtures for relmem."""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from db import Database  # noqa: E402
from observability import metrics  # noqa: E402
from records.models import CalendarEvent, ChatTranscript, GiftRecord, Note, Subject  # noqa: E402
from records.store import RecordStore  # noqa: E402


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def db(tmp_path):
    """Open SQLite database with the full schema in a temp dir."""
    database = Database(tmp_path / "relmem.db").open()
    yield database
    database.close()


@pytest.fixture
def records(db):
    return RecordStore(db)


@pytest.fixture
def subject(records):
    return records.add_subject(
        Subject(
            id=None,
            user_id=1,
            name="김민수",
            role="영업이사",
            company="한빛상사",
            phone="010-1234-5678",
            created_at=utc(2024, 1, 2, 9, 0),
        )
    )


@pytest.fixture
def provider():
    """Mock LLM provider returning one PREFERENCE fact."""
    p = MagicMock()
    p.generate.return_value = json.dumps(
        [
            {
                "fact_type": "PREFERENCE",
                "fact_key": "coffee",
                "polarity": 1,
                "confidence": 0.9,
                "evidence": "고객은 커피를 좋아함",
            }
        ],
        ensure_ascii=False,
    )
    return p


class Builder:
    """Terse record constructors for tests."""

    def __init__(self, records: RecordStore, user_id: int = 1):
        self.records = records
        self.user_id = user_id

    def subject(self, name, company=None, created_at=None) -> Subject:
        return self.records.add_subject(
            Subject(
                id=None,
                user_id=self.user_id,
                name=name,
                company=company,
                created_at=created_at or utc(2024, 1, 3, 9, 0),
            )
        )

    def note(self, subject_id, content, created_at=None) -> Note:
        return self.records.add_note(
            Note(
                id=None,
                user_id=self.user_id,
                subject_id=subject_id,
                content=content,
                created_at=created_at or utc(2024, 1, 10, 14, 0),
            )
        )

    def event(self, linked, title="분기 미팅", start=None) -> CalendarEvent:
        start = start or utc(2024, 2, 5, 10, 0)
        return self.records.add_event(
            CalendarEvent(
                id=None,
                user_id=self.user_id,
                title=title,
                start_at=start,
                end_at=start + timedelta(hours=1),
                category="미팅",
                linked_subject_ids=linked,
                created_at=start,
            )
        )

    def gift(self, subject_id, name="홍삼 세트", purchased=None) -> GiftRecord:
        purchased = purchased or utc(2024, 3, 1, 15, 30)
        return self.records.add_gift(
            GiftRecord(
                id=None,
                user_id=self.user_id,
                subject_id=subject_id,
                name=name,
                price=150000,
                category="건강",
                occasion="명절",
                purchased_at=purchased,
                created_at=purchased,
            )
        )

    def chat(self, messages, subject_id=None, created_at=None) -> ChatTranscript:
        return self.records.add_chat(
            ChatTranscript(
                id=None,
                user_id=self.user_id,
                title="선물 추천 대화",
                messages=messages,
                subject_id=subject_id,
                created_at=created_at or utc(2024, 4, 1, 11, 0),
            )
        )


@pytest.fixture
def build(records):
    return Builder(records)
