"""Data models for the observation log."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple

from shared_types import RecordType


class ObservationKey(NamedTuple):
    """Identity of an observation: one per (record, linked subject)."""

    record_type: RecordType
    natural_key: int
    subject_id: int


@dataclass
class Observation:
    id: int | None
    user_id: int
    subject_id: int
    record_type: RecordType
    natural_key: int
    occurred_at: datetime | None
    rendered_text: str
    processed: bool = False
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> ObservationKey:
        return ObservationKey(RecordType(self.record_type), self.natural_key, self.subject_id)


@dataclass
class TypeCounts:
    scanned: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0


@dataclass
class MaterializeStats:
    """Per-run materialization counts."""

    by_type: dict[RecordType, TypeCounts] = field(
        default_factory=lambda: {t: TypeCounts() for t in RecordType}
    )
    skipped_orphans: int = 0

    @property
    def inserted(self) -> int:
        return sum(c.inserted for c in self.by_type.values())

    @property
    def updated(self) -> int:
        return sum(c.updated for c in self.by_type.values())

    @property
    def unchanged(self) -> int:
        return sum(c.unchanged for c in self.by_type.values())

    @property
    def total_written(self) -> int:
        return self.inserted + self.updated

    def to_dict(self) -> dict:
        return {
            "by_type": {
                t.value: {
                    "scanned": c.scanned,
                    "inserted": c.inserted,
                    "updated": c.updated,
                    "unchanged": c.unchanged,
                }
                for t, c in self.by_type.items()
            },
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped_orphans": self.skipped_orphans,
        }
