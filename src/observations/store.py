"""SQLite persistence for the observation log."""

import sqlite3
from datetime import datetime

import structlog

from db import Database, from_db_time, to_db_time, utcnow
from shared_types import RecordType

from .models import Observation, ObservationKey

logger = structlog.get_logger()


class ObservationStore:
    """Observation rows keyed by (record_type, natural_key, subject_id)."""

    def __init__(self, db: Database):
        self.db = db

    def existing_state(self, user_id: int) -> dict[ObservationKey, tuple[str, str | None]]:
        """(rendered_text, occurred_at db text) per identity, for change detection."""
        rows = self.db.query(
            """SELECT record_type, natural_key, subject_id, rendered_text, occurred_at
               FROM observations WHERE user_id = ?""",
            (user_id,),
        )
        return {
            ObservationKey(RecordType(r["record_type"]), r["natural_key"], r["subject_id"]): (
                r["rendered_text"],
                r["occurred_at"],
            )
            for r in rows
        }

    def upsert(self, obs: Observation) -> None:
        """Insert, or refresh text and occurrence time when either changed.

        The processed flag of an existing row is never touched.
        """
        now = to_db_time(utcnow())
        self.db.execute(
            """INSERT INTO observations
               (user_id, subject_id, record_type, natural_key, occurred_at,
                rendered_text, processed, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
               ON CONFLICT(record_type, natural_key, subject_id) DO UPDATE SET
                 rendered_text = excluded.rendered_text,
                 occurred_at = excluded.occurred_at,
                 updated_at = excluded.updated_at
               WHERE observations.rendered_text != excluded.rendered_text
                  OR observations.occurred_at IS NOT excluded.occurred_at""",
            (
                obs.user_id,
                obs.subject_id,
                str(obs.record_type),
                obs.natural_key,
                to_db_time(obs.occurred_at),
                obs.rendered_text,
                now,
                now,
            ),
        )

    def get(self, observation_id: int) -> Observation | None:
        row = self.db.conn.execute(
            "SELECT * FROM observations WHERE id = ?", (observation_id,)
        ).fetchone()
        return self._row_to_observation(row) if row else None

    def get_by_key(self, key: ObservationKey) -> Observation | None:
        row = self.db.conn.execute(
            """SELECT * FROM observations
               WHERE record_type = ? AND natural_key = ? AND subject_id = ?""",
            (str(key.record_type), key.natural_key, key.subject_id),
        ).fetchone()
        return self._row_to_observation(row) if row else None

    def list_for_user(self, user_id: int, subject_id: int | None = None) -> list[Observation]:
        sql = "SELECT * FROM observations WHERE user_id = ?"
        params: list = [user_id]
        if subject_id is not None:
            sql += " AND subject_id = ?"
            params.append(subject_id)
        rows = self.db.query(sql + " ORDER BY id", params)
        return [self._row_to_observation(r) for r in rows]

    def pending(
        self,
        user_id: int,
        subject_ids: list[int] | None = None,
        limit: int | None = None,
    ) -> list[Observation]:
        """Unprocessed observations, oldest first (ties by id)."""
        sql, params = self._pending_filter(user_id, subject_ids)
        sql = "SELECT * FROM observations WHERE " + sql
        sql += " ORDER BY occurred_at IS NULL, occurred_at ASC, id ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._row_to_observation(r) for r in self.db.query(sql, params)]

    def count_pending(self, user_id: int, subject_ids: list[int] | None = None) -> int:
        sql, params = self._pending_filter(user_id, subject_ids)
        row = self.db.conn.execute(
            "SELECT COUNT(*) FROM observations WHERE " + sql, params
        ).fetchone()
        return row[0]

    def mark_processed(self, observation_id: int, at: datetime | None = None) -> None:
        self.db.execute(
            "UPDATE observations SET processed = 1, processed_at = ? WHERE id = ?",
            (to_db_time(at or utcnow()), observation_id),
        )
        logger.debug("observation_processed", observation_id=observation_id)

    def counts_by_type(self, user_id: int) -> dict[str, dict[str, int]]:
        """{record_type: {"total": n, "processed": m}} for status reports."""
        rows = self.db.query(
            """SELECT record_type, COUNT(*) AS total, SUM(processed) AS done
               FROM observations WHERE user_id = ? GROUP BY record_type""",
            (user_id,),
        )
        return {r["record_type"]: {"total": r["total"], "processed": r["done"] or 0} for r in rows}

    @staticmethod
    def _pending_filter(user_id: int, subject_ids: list[int] | None) -> tuple[str, list]:
        sql = "user_id = ? AND processed = 0"
        params: list = [user_id]
        if subject_ids:
            sql += f" AND subject_id IN ({','.join('?' * len(subject_ids))})"
            params.extend(subject_ids)
        return sql, params

    @staticmethod
    def _row_to_observation(row: sqlite3.Row) -> Observation:
        return Observation(
            id=row["id"],
            user_id=row["user_id"],
            subject_id=row["subject_id"],
            record_type=RecordType(row["record_type"]),
            natural_key=row["natural_key"],
            occurred_at=from_db_time(row["occurred_at"]),
            rendered_text=row["rendered_text"],
            processed=bool(row["processed"]),
            processed_at=from_db_time(row["processed_at"]),
            created_at=from_db_time(row["created_at"]),
            updated_at=from_db_time(row["updated_at"]),
        )
