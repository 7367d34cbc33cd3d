"""Raw relationship records scanned by the materializer."""

import json
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Subject:
    """A contact (business card). Facts are extracted about subjects."""

    id: int | None
    user_id: int
    name: str
    role: str | None = None
    company: str | None = None
    phone: str | None = None
    email: str | None = None
    gender: str | None = None
    memo: str | None = None
    created_at: datetime | None = None


@dataclass
class Note:
    id: int | None
    user_id: int
    subject_id: int | None
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class CalendarEvent:
    id: int | None
    user_id: int
    title: str
    start_at: datetime
    end_at: datetime
    is_all_day: bool = False
    category: str | None = None
    location: str | None = None
    participants: str | None = None
    description: str | None = None
    memo: str | None = None
    linked_subject_ids: str | None = None  # "3,7"
    created_at: datetime | None = None


@dataclass
class GiftRecord:
    id: int | None
    user_id: int
    subject_id: int | None
    name: str
    description: str | None = None
    price: int | None = None
    category: str | None = None
    occasion: str | None = None
    notes: str | None = None
    purchased_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class ChatTranscript:
    """Gift-recommendation conversation. ``subject_id`` is often missing."""

    id: int | None
    user_id: int
    title: str | None = None
    messages: list[dict] | str = field(default_factory=list)
    subject_id: int | None = None
    is_active: bool = True
    created_at: datetime | None = None

    def message_list(self) -> list[dict]:
        """Messages as a list of dicts; unparseable JSON yields []."""
        msgs = self.messages
        if isinstance(msgs, str):
            try:
                msgs = json.loads(msgs)
            except json.JSONDecodeError:
                return []
        if not isinstance(msgs, list):
            return []
        return [m for m in msgs if isinstance(m, dict)]

    def full_text(self) -> str:
        """Concatenated message contents (raw string if not JSON)."""
        msgs = self.message_list()
        if not msgs and isinstance(self.messages, str):
            return self.messages
        return " ".join(str(m.get("content") or "") for m in msgs)
