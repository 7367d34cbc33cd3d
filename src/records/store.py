"""SQLite persistence for raw relationship records."""

import json
import sqlite3
from datetime import datetime

import structlog

from db import Database, from_db_time, to_db_time, utcnow

from .models import CalendarEvent, ChatTranscript, GiftRecord, Note, Subject

logger = structlog.get_logger()


class RecordStore:
    """Row-level CRUD for subjects and the four history record kinds."""

    def __init__(self, db: Database):
        self.db = db

    # --- subjects ---

    def add_subject(self, subject: Subject) -> Subject:
        created = subject.created_at or utcnow()
        cur = self.db.execute(
            """INSERT INTO subjects
               (user_id, name, role, company, phone, email, gender, memo, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                subject.user_id,
                subject.name,
                subject.role,
                subject.company,
                subject.phone,
                subject.email,
                subject.gender,
                subject.memo,
                to_db_time(created),
            ),
        )
        subject.id = cur.lastrowid
        subject.created_at = from_db_time(to_db_time(created))
        return subject

    def get_subject(self, subject_id: int, user_id: int | None = None) -> Subject | None:
        sql = "SELECT * FROM subjects WHERE id = ?"
        params: list = [subject_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        row = self.db.conn.execute(sql, params).fetchone()
        return self._row_to_subject(row) if row else None

    def list_subjects(self, user_id: int) -> list[Subject]:
        rows = self.db.query("SELECT * FROM subjects WHERE user_id = ? ORDER BY id", (user_id,))
        return [self._row_to_subject(r) for r in rows]

    def delete_subject(self, subject_id: int) -> None:
        """Remove the subject row only; dependent history is left to cleanup."""
        self.db.execute("DELETE FROM subjects WHERE id = ?", (subject_id,))
        logger.debug("subject_deleted", subject_id=subject_id)

    # --- notes ---

    def add_note(self, note: Note) -> Note:
        created = note.created_at or utcnow()
        cur = self.db.execute(
            """INSERT INTO notes (user_id, subject_id, content, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                note.user_id,
                note.subject_id,
                note.content,
                to_db_time(created),
                to_db_time(note.updated_at or created),
            ),
        )
        note.id = cur.lastrowid
        return note

    def list_notes(self, user_id: int) -> list[Note]:
        rows = self.db.query("SELECT * FROM notes WHERE user_id = ? ORDER BY id", (user_id,))
        return [
            Note(
                id=r["id"],
                user_id=r["user_id"],
                subject_id=r["subject_id"],
                content=r["content"],
                created_at=from_db_time(r["created_at"]),
                updated_at=from_db_time(r["updated_at"]),
            )
            for r in rows
        ]

    # --- calendar events ---

    def add_event(self, event: CalendarEvent) -> CalendarEvent:
        cur = self.db.execute(
            """INSERT INTO calendar_events
               (user_id, title, start_at, end_at, is_all_day, category, location,
                participants, description, memo, linked_subject_ids, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.user_id,
                event.title,
                to_db_time(event.start_at),
                to_db_time(event.end_at),
                1 if event.is_all_day else 0,
                event.category,
                event.location,
                event.participants,
                event.description,
                event.memo,
                event.linked_subject_ids,
                to_db_time(event.created_at or utcnow()),
            ),
        )
        event.id = cur.lastrowid
        return event

    def list_events(self, user_id: int) -> list[CalendarEvent]:
        rows = self.db.query(
            "SELECT * FROM calendar_events WHERE user_id = ? ORDER BY id", (user_id,)
        )
        return [
            CalendarEvent(
                id=r["id"],
                user_id=r["user_id"],
                title=r["title"],
                start_at=from_db_time(r["start_at"]),
                end_at=from_db_time(r["end_at"]),
                is_all_day=bool(r["is_all_day"]),
                category=r["category"],
                location=r["location"],
                participants=r["participants"],
                description=r["description"],
                memo=r["memo"],
                linked_subject_ids=r["linked_subject_ids"],
                created_at=from_db_time(r["created_at"]),
            )
            for r in rows
        ]

    def set_event_links(self, event_id: int, linked_subject_ids: str) -> None:
        self.db.execute(
            "UPDATE calendar_events SET linked_subject_ids = ? WHERE id = ?",
            (linked_subject_ids, event_id),
        )

    # --- gifts ---

    def add_gift(self, gift: GiftRecord) -> GiftRecord:
        cur = self.db.execute(
            """INSERT INTO gifts
               (user_id, subject_id, name, description, price, category, occasion,
                notes, purchased_at, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                gift.user_id,
                gift.subject_id,
                gift.name,
                gift.description,
                gift.price,
                gift.category,
                gift.occasion,
                gift.notes,
                to_db_time(gift.purchased_at),
                to_db_time(gift.created_at or utcnow()),
            ),
        )
        gift.id = cur.lastrowid
        return gift

    def list_gifts(self, user_id: int) -> list[GiftRecord]:
        rows = self.db.query("SELECT * FROM gifts WHERE user_id = ? ORDER BY id", (user_id,))
        return [
            GiftRecord(
                id=r["id"],
                user_id=r["user_id"],
                subject_id=r["subject_id"],
                name=r["name"],
                description=r["description"],
                price=r["price"],
                category=r["category"],
                occasion=r["occasion"],
                notes=r["notes"],
                purchased_at=from_db_time(r["purchased_at"]),
                created_at=from_db_time(r["created_at"]),
            )
            for r in rows
        ]

    # --- chats ---

    def add_chat(self, chat: ChatTranscript) -> ChatTranscript:
        messages = chat.messages if isinstance(chat.messages, str) else json.dumps(
            chat.messages, ensure_ascii=False
        )
        cur = self.db.execute(
            """INSERT INTO chats (user_id, subject_id, title, messages, is_active, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                chat.user_id,
                chat.subject_id,
                chat.title,
                messages,
                1 if chat.is_active else 0,
                to_db_time(chat.created_at or utcnow()),
            ),
        )
        chat.id = cur.lastrowid
        return chat

    def list_chats(self, user_id: int, active_only: bool = True) -> list[ChatTranscript]:
        sql = "SELECT * FROM chats WHERE user_id = ?"
        if active_only:
            sql += " AND is_active = 1"
        rows = self.db.query(sql + " ORDER BY id", (user_id,))
        return [
            ChatTranscript(
                id=r["id"],
                user_id=r["user_id"],
                subject_id=r["subject_id"],
                title=r["title"],
                messages=r["messages"],
                is_active=bool(r["is_active"]),
                created_at=from_db_time(r["created_at"]),
            )
            for r in rows
        ]

    def existing_timestamps(self, user_id: int) -> list[datetime]:
        """Every stored timestamp for the user, for timeline collision checks."""
        queries = [
            "SELECT created_at FROM subjects WHERE user_id = ?",
            "SELECT created_at FROM notes WHERE user_id = ?",
            "SELECT updated_at FROM notes WHERE user_id = ?",
            "SELECT start_at FROM calendar_events WHERE user_id = ?",
            "SELECT end_at FROM calendar_events WHERE user_id = ?",
            "SELECT created_at FROM calendar_events WHERE user_id = ?",
            "SELECT purchased_at FROM gifts WHERE user_id = ?",
            "SELECT created_at FROM gifts WHERE user_id = ?",
            "SELECT created_at FROM chats WHERE user_id = ?",
        ]
        stamps = []
        for sql in queries:
            for row in self.db.query(sql, (user_id,)):
                parsed = from_db_time(row[0])
                if parsed:
                    stamps.append(parsed)
        return stamps

    @staticmethod
    def _row_to_subject(row: sqlite3.Row) -> Subject:
        return Subject(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            role=row["role"],
            company=row["company"],
            phone=row["phone"],
            email=row["email"],
            gender=row["gender"],
            memo=row["memo"],
            created_at=from_db_time(row["created_at"]),
        )
