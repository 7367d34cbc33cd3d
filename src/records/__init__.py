"""Raw relationship records: subjects, notes, events, gifts, chats."""

from .models import CalendarEvent, ChatTranscript, GiftRecord, Note, Subject
from .store import RecordStore

__all__ = [
    "Subject",
    "Note",
    "CalendarEvent",
    "GiftRecord",
    "ChatTranscript",
    "RecordStore",
]
