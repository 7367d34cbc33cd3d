"""Tests for record rendering and linking helpers."""

import json
from datetime import datetime, timezone

import pytest

from observations.linking import infer_chat_subjects, match_chat_subjects, parse_linked_subject_ids
from observations.rendering import (
    EMPTY_CHAT,
    format_price,
    format_range,
    parse_chat_messages,
    record_type_of,
    render_chat,
    render_gift,
    render_profile,
    render_record,
)
from records.models import CalendarEvent, ChatTranscript, GiftRecord, Note, Subject
from shared_types import RecordType


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def _subject(id=1, name="김민수", company="한빛상사"):
    return Subject(id=id, user_id=1, name=name, role="영업이사", company=company)


def _chat(messages, title="선물 추천 대화"):
    return ChatTranscript(id=1, user_id=1, title=title, messages=messages, created_at=utc(2024, 4, 1, 11))


class TestParseLinkedSubjectIds:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("3, 7,abc,-1", [3, 7]),
            ("7,3,7", [7, 3]),
            (" 12 ", [12]),
            ("0", []),
            ("", []),
            (None, []),
            ("a,b", []),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_linked_subject_ids(text) == expected


class TestChatInference:
    def test_match_is_case_insensitive(self):
        subjects = [_subject(1, "Alice", "Acme"), _subject(2, "Bob", "Globex")]
        chat = _chat([{"role": "user", "content": "gift for someone at GLOBEX"}])
        assert match_chat_subjects(chat, subjects) == [2]

    def test_multiple_mentions(self):
        subjects = [_subject(1, "Alice", None), _subject(2, "Bob", None)]
        chat = _chat([{"role": "user", "content": "alice and bob"}])
        assert infer_chat_subjects(chat, subjects) == [1, 2]

    def test_fallback_lowest_id(self):
        subjects = [_subject(5, "Eve", None), _subject(3, "Dan", None)]
        chat = _chat([{"role": "user", "content": "nobody"}])
        assert infer_chat_subjects(chat, subjects) == [3]

    def test_no_subjects(self):
        assert infer_chat_subjects(_chat([]), []) == []


class TestFormatting:
    def test_price(self):
        assert format_price(150000) == "150,000원"

    def test_all_day_single(self):
        assert format_range(utc(2024, 5, 1), utc(2024, 5, 1), True) == "2024. 05. 01. (종일)"

    def test_all_day_multi(self):
        assert (
            format_range(utc(2024, 5, 1), utc(2024, 5, 3), True)
            == "2024. 05. 01. ~ 2024. 05. 03. (종일)"
        )

    def test_spanning_days(self):
        assert (
            format_range(utc(2024, 5, 1, 22, 0), utc(2024, 5, 2, 1, 30), False)
            == "2024. 05. 01. 22:00 ~ 2024. 05. 02. 01:30"
        )


class TestRenderers:
    def test_profile_skips_empty_fields(self):
        text = render_profile(Subject(id=1, user_id=1, name="김민수", memo="골프 동호회"))
        assert text == "[명함 정보]\n이름: 김민수\n[메모] 골프 동호회"

    def test_gift(self):
        gift = GiftRecord(
            id=1,
            user_id=1,
            subject_id=1,
            name="홍삼 세트",
            price=150000,
            occasion="명절",
            purchased_at=utc(2024, 3, 1, 15, 30),
        )
        text = render_gift(gift, _subject())
        assert text.splitlines()[:3] == ["[선물] 홍삼 세트", "[수령인] 김민수 (한빛상사)", "[날짜] 2024. 03. 01."]
        assert "[가격] 150,000원" in text
        assert "[행사] 명절" in text

    def test_chat_sections(self):
        chat = _chat(
            [
                {"role": "user", "content": "거래처 이사님 선물 추천해줘"},
                {"role": "assistant", "content": "좋아요. 추가 정보: 50대 남성, 등산을 즐김"},
                {"role": "user", "content": "예산은 10만원"},
                {"role": "user", "content": "선택한 선물: 등산 스틱"},
            ]
        )
        text = render_chat(chat, _subject())
        assert "[추가 정보] 50대 남성, 등산을 즐김" in text
        assert "[사용자 질문] 거래처 이사님 선물 추천해줘" in text
        assert "[선택한 선물] 등산 스틱" in text
        assert "[추가 대화] 예산은 10만원" in text
        assert text.endswith("[대화 시작] 2024. 04. 01.")

    def test_chat_messages_as_json_string(self):
        chat = _chat(json.dumps([{"role": "user", "content": "hi"}]))
        assert parse_chat_messages(chat).user_prompt == "hi"

    def test_empty_chat(self):
        assert EMPTY_CHAT in render_chat(_chat("not json"))

    def test_deterministic(self):
        chat = _chat([{"role": "user", "content": "hi"}])
        assert render_chat(chat, _subject()) == render_chat(chat, _subject())


class TestRenderRecord:
    def test_dispatch(self):
        note = Note(id=1, user_id=1, subject_id=1, content="메모", created_at=utc(2024, 1, 10))
        assert render_record(note, _subject()).startswith("[대상] 김민수 (한빛상사)")
        assert record_type_of(note) == RecordType.NOTE
        assert record_type_of(_subject()) == RecordType.PROFILE

    def test_event_dispatch(self):
        event = CalendarEvent(
            id=1, user_id=1, title="점심", start_at=utc(2024, 1, 1, 12), end_at=utc(2024, 1, 1, 13)
        )
        assert render_record(event).startswith("[일정] 점심")

    def test_unknown_record_type(self):
        with pytest.raises(ValueError, match="Unknown record type"):
            render_record(object())
