"""Render raw records into the labelled text blocks the extractor reads.

Output is deterministic for a given record: the same inputs always render
the same bytes, which is what makes re-materialization a no-op.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from records.models import CalendarEvent, ChatTranscript, GiftRecord, Note, Subject
from shared_types import RecordType

_ADDITIONAL_RE = re.compile(r"추가\s*정보\s*[:：]\s*(.+)", re.IGNORECASE)
_SELECTED_RE = re.compile(r"선택한\s*선물\s*[:：]\s*(.+)", re.IGNORECASE)

EMPTY_CHAT = "[대화 내용 없음]"


@dataclass
class ParsedChat:
    additional: str | None = None
    user_prompt: str | None = None
    selected_gift: str | None = None
    user_messages: list[str] = field(default_factory=list)

    @property
    def follow_ups(self) -> list[str]:
        """User turns after the first, minus the gift-selection line."""
        return [m for m in self.user_messages[1:] if "선택한 선물" not in m]


def parse_chat_messages(chat: ChatTranscript) -> ParsedChat:
    """Pull the additional-info line, first question and selected gift out of a transcript."""
    parsed = ParsedChat()
    for msg in chat.message_list():
        content = str(msg.get("content") or "")
        role = msg.get("role") or ""

        if parsed.additional is None:
            match = _ADDITIONAL_RE.search(content)
            if match:
                parsed.additional = match.group(1).strip()

        if role == "user":
            parsed.user_messages.append(content)
            if parsed.user_prompt is None:
                parsed.user_prompt = content.strip()
            match = _SELECTED_RE.search(content)
            if match:
                parsed.selected_gift = match.group(1).strip()
    return parsed


def format_date(value: datetime) -> str:
    return _utc(value).strftime("%Y. %m. %d.")


def format_time(value: datetime) -> str:
    return _utc(value).strftime("%H:%M")


def format_price(price: int | float) -> str:
    return f"{int(price):,}원"


def format_range(start: datetime, end: datetime, all_day: bool) -> str:
    start_date, end_date = format_date(start), format_date(end)
    if all_day:
        if start_date == end_date:
            return f"{start_date} (종일)"
        return f"{start_date} ~ {end_date} (종일)"
    if start_date == end_date:
        return f"{start_date} {format_time(start)} ~ {format_time(end)}"
    return f"{start_date} {format_time(start)} ~ {end_date} {format_time(end)}"


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _subject_label(subject: Subject) -> str:
    if subject.company:
        return f"{subject.name} ({subject.company})"
    return subject.name


def render_profile(subject: Subject) -> str:
    parts = ["[명함 정보]"]
    for label, value in (
        ("이름", subject.name),
        ("직책", subject.role),
        ("회사", subject.company),
        ("전화", subject.phone),
        ("이메일", subject.email),
        ("성별", subject.gender),
    ):
        if value:
            parts.append(f"{label}: {value}")
    if subject.memo:
        parts.append(f"[메모] {subject.memo}")
    return "\n".join(parts)


def render_note(note: Note, subject: Subject | None = None) -> str:
    parts = []
    if subject:
        parts.append(f"[대상] {_subject_label(subject)}")
    if note.created_at:
        parts.append(f"[작성일] {format_date(note.created_at)}")
    parts.append(f"[메모 내용]\n{note.content}")
    return "\n".join(parts)


def render_event(event: CalendarEvent, subject: Subject | None = None) -> str:
    parts = [
        f"[일정] {event.title}",
        f"[시간] {format_range(event.start_at, event.end_at, event.is_all_day)}",
    ]
    if event.category:
        parts.append(f"[카테고리] {event.category}")
    if event.location:
        parts.append(f"[장소] {event.location}")
    if event.participants:
        parts.append(f"[참석자] {event.participants}")
    if subject:
        info = [subject.name] + [v for v in (subject.role, subject.company) if v]
        parts.append(f"[관련인물] {', '.join(info)}")
    if event.description:
        parts.append(f"[설명] {event.description}")
    if event.memo:
        parts.append(f"[메모] {event.memo}")
    return "\n".join(parts)


def render_gift(gift: GiftRecord, subject: Subject | None = None) -> str:
    parts = [f"[선물] {gift.name}"]
    if subject:
        parts.append(f"[수령인] {_subject_label(subject)}")
    if gift.purchased_at:
        parts.append(f"[날짜] {format_date(gift.purchased_at)}")
    if gift.category:
        parts.append(f"[카테고리] {gift.category}")
    if gift.price:
        parts.append(f"[가격] {format_price(gift.price)}")
    if gift.occasion:
        parts.append(f"[행사] {gift.occasion}")
    if gift.description:
        parts.append(f"[설명] {gift.description}")
    if gift.notes:
        parts.append(f"[메모] {gift.notes}")
    return "\n".join(parts)


def render_chat(chat: ChatTranscript, subject: Subject | None = None) -> str:
    parsed = parse_chat_messages(chat)
    parts = [f"[선물 추천 대화] {chat.title}" if chat.title else "[선물 추천 대화]"]
    if subject:
        parts.append(f"[대상] {_subject_label(subject)}")

    body = []
    if parsed.additional:
        body.append(f"[추가 정보] {parsed.additional}")
    if parsed.user_prompt:
        body.append(f"[사용자 질문] {parsed.user_prompt}")
    if parsed.selected_gift:
        body.append(f"[선택한 선물] {parsed.selected_gift}")
    follow_ups = " | ".join(parsed.follow_ups)
    if follow_ups:
        body.append(f"[추가 대화] {follow_ups}")
    parts.extend(body or [EMPTY_CHAT])

    if chat.created_at:
        parts.append(f"[대화 시작] {format_date(chat.created_at)}")
    return "\n".join(parts)


_RENDERERS = {
    Note: (RecordType.NOTE, render_note),
    CalendarEvent: (RecordType.CALENDAR_EVENT, render_event),
    GiftRecord: (RecordType.GIFT, render_gift),
    ChatTranscript: (RecordType.CHAT, render_chat),
}


def record_type_of(record) -> RecordType:
    if isinstance(record, Subject):
        return RecordType.PROFILE
    try:
        return _RENDERERS[type(record)][0]
    except KeyError:
        raise ValueError(f"Unknown record type: {type(record).__name__}") from None


def render_record(record, subject: Subject | None = None) -> str:
    """Render any raw record. Raises ValueError for unknown record classes."""
    if isinstance(record, Subject):
        return render_profile(record)
    record_type_of(record)
    return _RENDERERS[type(record)][1](record, subject)
