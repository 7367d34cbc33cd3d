"""SQLite persistence for reconciled facts."""

import sqlite3
from datetime import datetime

import structlog

from db import Database, from_db_time, to_db_time, utcnow
from shared_types import FactType, MergeOutcome

from .models import CandidateFact, Fact

logger = structlog.get_logger()


class FactStore:
    """Fact rows, one per (subject_id, fact_type, fact_key).

    Keys compare case-insensitively (ASCII, via the column collation), so
    "Tea" and "tea" are the same fact and the first spelling is kept.
    Rows are never deleted here; invalidation zeroes the confidence.
    """

    def __init__(self, db: Database):
        self.db = db

    def get(self, fact_id: int) -> Fact | None:
        row = self.db.conn.execute("SELECT * FROM facts WHERE id = ?", (fact_id,)).fetchone()
        return self._row_to_fact(row) if row else None

    def find(self, subject_id: int, fact_type: FactType | str, fact_key: str) -> Fact | None:
        row = self.db.conn.execute(
            "SELECT * FROM facts WHERE subject_id = ? AND fact_type = ? AND fact_key = ?",
            (subject_id, str(fact_type), fact_key),
        ).fetchone()
        return self._row_to_fact(row) if row else None

    def for_subject(
        self,
        subject_id: int,
        include_invalidated: bool = True,
        fact_type: FactType | str | None = None,
    ) -> list[Fact]:
        """Facts for one subject, highest confidence first."""
        sql = "SELECT * FROM facts WHERE subject_id = ?"
        params: list = [subject_id]
        if not include_invalidated:
            sql += " AND confidence > 0"
        if fact_type:
            sql += " AND fact_type = ?"
            params.append(str(fact_type))
        sql += " ORDER BY confidence DESC, id ASC"
        return [self._row_to_fact(r) for r in self.db.query(sql, params)]

    def known_facts(self, subject_id: int, limit: int | None = None) -> list[Fact]:
        """Live facts used as extraction context."""
        facts = self.for_subject(subject_id, include_invalidated=False)
        return facts[:limit] if limit is not None else facts

    def for_user(self, user_id: int, fact_type: FactType | str | None = None) -> list[Fact]:
        sql = "SELECT * FROM facts WHERE user_id = ?"
        params: list = [user_id]
        if fact_type:
            sql += " AND fact_type = ?"
            params.append(str(fact_type))
        sql += " ORDER BY subject_id, confidence DESC, id"
        return [self._row_to_fact(r) for r in self.db.query(sql, params)]

    def merge(
        self,
        user_id: int,
        subject_id: int,
        candidate: CandidateFact,
        observation_id: int | None,
        at: datetime | None = None,
    ) -> MergeOutcome:
        """Insert, or overwrite when the candidate is at least as confident."""
        now = to_db_time(at or utcnow())
        existing = self.find(subject_id, candidate.fact_type, candidate.fact_key)

        if existing is None:
            self.db.execute(
                """INSERT INTO facts
                   (user_id, subject_id, fact_type, fact_key, polarity, confidence,
                    evidence, observation_id, extracted_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    user_id,
                    subject_id,
                    str(candidate.fact_type),
                    candidate.fact_key,
                    candidate.polarity,
                    candidate.confidence,
                    candidate.evidence,
                    observation_id,
                    now,
                ),
            )
            return MergeOutcome.INSERTED

        if candidate.confidence >= existing.confidence:
            self.db.execute(
                """UPDATE facts SET polarity = ?, confidence = ?, evidence = ?,
                   observation_id = ?, extracted_at = ? WHERE id = ?""",
                (
                    candidate.polarity,
                    candidate.confidence,
                    candidate.evidence,
                    observation_id,
                    now,
                    existing.id,
                ),
            )
            return MergeOutcome.UPDATED

        return MergeOutcome.SKIPPED

    def invalidate(self, subject_id: int, fact_key: str) -> int:
        """Zero the confidence of live facts with this key. Returns rows changed."""
        cur = self.db.execute(
            "UPDATE facts SET confidence = 0 WHERE subject_id = ? AND fact_key = ? AND confidence > 0",
            (subject_id, fact_key),
        )
        if cur.rowcount:
            logger.debug("facts_invalidated", subject_id=subject_id, fact_key=fact_key, count=cur.rowcount)
        return cur.rowcount

    def stats_by_type(self, user_id: int) -> dict[str, dict]:
        rows = self.db.query(
            """SELECT fact_type, COUNT(*) AS total,
                      SUM(CASE WHEN confidence > 0 THEN 1 ELSE 0 END) AS live,
                      AVG(CASE WHEN confidence > 0 THEN confidence END) AS avg_confidence
               FROM facts WHERE user_id = ? GROUP BY fact_type ORDER BY fact_type""",
            (user_id,),
        )
        return {
            r["fact_type"]: {
                "total": r["total"],
                "live": r["live"] or 0,
                "avg_confidence": round(r["avg_confidence"] or 0.0, 3),
            }
            for r in rows
        }

    @staticmethod
    def _row_to_fact(row: sqlite3.Row) -> Fact:
        return Fact(
            id=row["id"],
            user_id=row["user_id"],
            subject_id=row["subject_id"],
            fact_type=FactType(row["fact_type"]),
            fact_key=row["fact_key"],
            polarity=row["polarity"],
            confidence=row["confidence"],
            evidence=row["evidence"],
            observation_id=row["observation_id"],
            extracted_at=from_db_time(row["extracted_at"]),
        )
