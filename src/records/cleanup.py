"""Maintenance: remove history rows that point at subjects which no longer exist."""

from dataclasses import asdict, dataclass

import structlog

from db import Database
from observations.linking import parse_linked_subject_ids
from records.store import RecordStore

logger = structlog.get_logger()

_ORPHAN = "(subject_id IS NULL OR subject_id NOT IN (SELECT id FROM subjects WHERE user_id = ?))"


@dataclass
class CleanupStats:
    notes_deleted: int = 0
    gifts_deleted: int = 0
    events_relinked: int = 0
    events_deleted: int = 0
    observations_deleted: int = 0
    facts_deleted: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def cleanup_orphans(db: Database, user_id: int) -> CleanupStats:
    """Delete or repair one user's rows that reference missing subjects.

    Notes, gifts, observations and facts with a dangling subject are deleted.
    Calendar events keep only their valid links, and are deleted when none
    remain. Chats are left alone: a missing subject there is normal.
    """
    stats = CleanupStats()
    records = RecordStore(db)
    with db.transaction():
        valid = {r["id"] for r in db.query("SELECT id FROM subjects WHERE user_id = ?", (user_id,))}

        for table, counter in (
            ("notes", "notes_deleted"),
            ("gifts", "gifts_deleted"),
            ("observations", "observations_deleted"),
            ("facts", "facts_deleted"),
        ):
            cur = db.execute(f"DELETE FROM {table} WHERE user_id = ? AND {_ORPHAN}", (user_id, user_id))
            setattr(stats, counter, cur.rowcount)

        events = db.query(
            "SELECT id, linked_subject_ids FROM calendar_events WHERE user_id = ?", (user_id,)
        )
        for event in events:
            text = event["linked_subject_ids"]
            if not text or not text.strip():
                continue
            linked = parse_linked_subject_ids(text)
            kept = [sid for sid in linked if sid in valid]
            if not kept:
                db.execute("DELETE FROM calendar_events WHERE id = ?", (event["id"],))
                stats.events_deleted += 1
            elif len(kept) < len(linked) or ",".join(map(str, kept)) != text.replace(" ", ""):
                records.set_event_links(event["id"], ",".join(map(str, kept)))
                stats.events_relinked += 1

    logger.info("cleanup.complete", user_id=user_id, **stats.to_dict())
    return stats
