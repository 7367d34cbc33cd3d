"""Data models for extracted and stored facts."""

from dataclasses import dataclass, field
from datetime import datetime

from shared_types import FactType


@dataclass
class CandidateFact:
    """A validated, sanitized extraction result. Never persisted as-is."""

    fact_type: FactType
    fact_key: str
    polarity: int
    confidence: float
    evidence: str
    action: str | None = None
    invalidate_key: str | None = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (str(self.fact_type), self.fact_key.lower())


@dataclass
class Fact:
    id: int | None
    user_id: int
    subject_id: int
    fact_type: FactType
    fact_key: str
    polarity: int
    confidence: float
    evidence: str
    observation_id: int | None = None
    extracted_at: datetime | None = None

    @property
    def invalidated(self) -> bool:
        return self.confidence <= 0


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    sanitized: dict = field(default_factory=dict)


@dataclass
class InvalidFact:
    index: int
    raw: object
    errors: list[str]


@dataclass
class BatchValidation:
    valid: list[CandidateFact] = field(default_factory=list)
    invalid: list[InvalidFact] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        return {
            "total": len(self.valid) + len(self.invalid),
            "valid": len(self.valid),
            "invalid": len(self.invalid),
        }


@dataclass
class ReconcileStats:
    observations_seen: int = 0
    processed: int = 0
    empty: int = 0
    failed: int = 0
    remaining: int = 0
    facts_extracted: int = 0
    facts_valid: int = 0
    facts_invalid: int = 0
    facts_inserted: int = 0
    facts_updated: int = 0
    facts_skipped: int = 0
    facts_invalidated: int = 0
    stopped: bool = False

    @property
    def facts_saved(self) -> int:
        return self.facts_inserted + self.facts_updated

    def to_dict(self) -> dict:
        return {
            "observations_seen": self.observations_seen,
            "processed": self.processed,
            "empty": self.empty,
            "failed": self.failed,
            "remaining": self.remaining,
            "facts_extracted": self.facts_extracted,
            "facts_valid": self.facts_valid,
            "facts_invalid": self.facts_invalid,
            "facts_inserted": self.facts_inserted,
            "facts_updated": self.facts_updated,
            "facts_skipped": self.facts_skipped,
            "facts_invalidated": self.facts_invalidated,
            "facts_saved": self.facts_saved,
            "stopped": self.stopped,
        }
