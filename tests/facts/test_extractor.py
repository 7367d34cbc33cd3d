"""Tests for FactExtractor prompt building and response parsing."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from facts.errors import ExtractionError
from facts.extractor import FactExtractor
from facts.models import Fact
from llm.base import LLMError
from observability import metrics
from observations.models import Observation
from shared_types import FactType, RecordType


def _obs(text="[메모 내용]\n고객은 커피를 좋아함"):
    return Observation(
        id=7,
        user_id=1,
        subject_id=1,
        record_type=RecordType.NOTE,
        natural_key=3,
        occurred_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
        rendered_text=text,
    )


def _fact(key, confidence):
    return Fact(
        id=None,
        user_id=1,
        subject_id=1,
        fact_type=FactType.PREFERENCE,
        fact_key=key,
        polarity=1,
        confidence=confidence,
        evidence="e",
    )


@pytest.fixture
def extractor(provider):
    return FactExtractor(provider=provider)


class TestExtract:
    def test_returns_raw_items(self, extractor, provider):
        items = extractor.extract(_obs(), [])
        assert items[0]["fact_key"] == "coffee"
        kwargs = provider.generate.call_args.kwargs
        assert "fact extraction" in kwargs["system"]
        assert kwargs["temperature"] == 0.1
        assert "record_type: NOTE" in kwargs["messages"][0]["content"]
        assert len(metrics.durations("oracle.extract")) == 1

    def test_fenced_response(self, provider):
        provider.generate.return_value = '```json\n[{"fact_type": "DATE"}]\n```'
        assert FactExtractor(provider=provider).extract(_obs()) == [{"fact_type": "DATE"}]

    def test_prose_around_array(self, provider):
        provider.generate.return_value = 'Here you go:\n[{"fact_type": "DATE"}]\nDone.'
        assert FactExtractor(provider=provider).extract(_obs()) == [{"fact_type": "DATE"}]

    def test_empty_array(self, provider):
        provider.generate.return_value = "[]"
        assert FactExtractor(provider=provider).extract(_obs()) == []

    def test_object_instead_of_array(self, provider):
        provider.generate.return_value = '{"fact_type": "DATE"}'
        with pytest.raises(ExtractionError, match="JSON array"):
            FactExtractor(provider=provider).extract(_obs())

    def test_garbage(self, provider):
        provider.generate.return_value = "I could not find any facts."
        with pytest.raises(ExtractionError) as exc:
            FactExtractor(provider=provider).extract(_obs())
        assert exc.value.observation_id == 7

    def test_provider_error_wrapped(self, provider):
        provider.generate.side_effect = LLMError("rate limited")
        with pytest.raises(ExtractionError, match="rate limited"):
            FactExtractor(provider=provider).extract(_obs())
        assert metrics.get("oracle.errors") == 1


class TestPrompt:
    def test_known_facts_sorted_capped_and_live_only(self):
        extractor = FactExtractor(provider=MagicMock(), max_context_facts=2)
        prompt = extractor.build_prompt(
            _obs(), [_fact("tea", 0.5), _fact("coffee", 0.9), _fact("golf", 0.7), _fact("nuts", 0.0)]
        )
        assert "coffee" in prompt
        assert "golf" in prompt
        assert "tea" not in prompt
        assert "nuts" not in prompt
        assert prompt.index("coffee") < prompt.index("golf")
        assert "INVALIDATE" in prompt

    def test_no_known_section_without_facts(self):
        prompt = FactExtractor(provider=MagicMock()).build_prompt(_obs(), [])
        assert "already known" not in prompt
        assert "occurred_at: 2024-01-10" in prompt


class TestStrictEvidence:
    def test_drops_unquoted(self, provider):
        provider.generate.return_value = json.dumps(
            [
                {"fact_key": "coffee", "evidence": "커피를 좋아함"},
                {"fact_key": "tea", "evidence": "차를 즐김"},
            ],
            ensure_ascii=False,
        )
        items = FactExtractor(provider=provider, strict_evidence=True).extract(_obs())
        assert [i["fact_key"] for i in items] == ["coffee"]

    def test_off_by_default(self, provider):
        provider.generate.return_value = json.dumps([{"evidence": "없는 문장"}], ensure_ascii=False)
        assert len(FactExtractor(provider=provider).extract(_obs())) == 1
