"""Shared SQLite helpers: WAL mode, explicit connection lifecycle, schema."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import structlog

logger = structlog.get_logger()

_TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS subjects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        role TEXT,
        company TEXT,
        phone TEXT,
        email TEXT,
        gender TEXT,
        memo TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        subject_id INTEGER,
        content TEXT NOT NULL,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS calendar_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        title TEXT NOT NULL,
        start_at TEXT NOT NULL,
        end_at TEXT NOT NULL,
        is_all_day INTEGER NOT NULL DEFAULT 0,
        category TEXT,
        location TEXT,
        participants TEXT,
        description TEXT,
        memo TEXT,
        linked_subject_ids TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gifts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        subject_id INTEGER,
        name TEXT NOT NULL,
        description TEXT,
        price INTEGER,
        category TEXT,
        occasion TEXT,
        notes TEXT,
        purchased_at TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chats (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        subject_id INTEGER,
        title TEXT,
        messages TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS observations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        subject_id INTEGER NOT NULL,
        record_type TEXT NOT NULL,
        natural_key INTEGER NOT NULL,
        occurred_at TEXT,
        rendered_text TEXT NOT NULL,
        processed INTEGER NOT NULL DEFAULT 0,
        processed_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (record_type, natural_key, subject_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_observations_pending
    ON observations(user_id, processed, occurred_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS facts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        subject_id INTEGER NOT NULL,
        fact_type TEXT NOT NULL,
        fact_key TEXT NOT NULL COLLATE NOCASE,
        polarity INTEGER NOT NULL DEFAULT 0,
        confidence REAL NOT NULL,
        evidence TEXT NOT NULL,
        observation_id INTEGER,
        extracted_at TEXT NOT NULL,
        UNIQUE (subject_id, fact_type, fact_key)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_facts_key
    ON facts(subject_id, fact_key)
    """,
]


def wal_connect(db_path: str | Path, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    The connection runs in autocommit mode; transactions are opened
    explicitly through ``Database.transaction``.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path), isolation_level=None)
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


def to_db_time(value: datetime | str | None) -> str | None:
    """Normalize a datetime to fixed-width UTC text. Naive values are UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        value = from_db_time(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TS_FORMAT)


def from_db_time(value: str | None) -> datetime | None:
    """Parse stored (or ISO 8601) text into an aware UTC datetime."""
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """Explicitly opened SQLite handle shared by all stores.

    Usage:
        with Database(path) as db:
            store = FactStore(db)
    """

    def __init__(self, db_path: str | Path):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None

    def open(self) -> "Database":
        if self._conn is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = wal_connect(self.db_path, row_factory=True)
            self.init_schema()
            logger.debug("db.opened", path=str(self.db_path))
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("db.closed", path=str(self.db_path))

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not open")
        return self._conn

    def init_schema(self) -> None:
        for statement in SCHEMA:
            self.conn.execute(statement)

    @contextmanager
    def transaction(self):
        """BEGIN/COMMIT around the block; ROLLBACK on error.

        A nested call joins the already-open transaction.
        """
        conn = self.conn
        if conn.in_transaction:
            yield conn
            return
        conn.execute("BEGIN")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")

    def execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        return self.conn.execute(sql, params).fetchall()
