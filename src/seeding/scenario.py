"""Scenario seeding: write synthetic relationship histories into the record tables."""

from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from db import Database
from llm.base import LLMError
from llm.parsing import parse_json_payload
from records.models import CalendarEvent, ChatTranscript, GiftRecord, Note, Subject
from records.store import RecordStore

from .models import Scenario
from .timeline import EventTime, TimelineGenerator

logger = structlog.get_logger()


class SeedError(Exception):
    """Seeding cannot start: bad scenario or missing subject. Nothing was written."""


@dataclass
class SeedResult:
    user_id: int
    subject_ids: list[int] = field(default_factory=list)
    counts: dict[str, int] = field(
        default_factory=lambda: {
            "subjects": 0,
            "events": 0,
            "gifts": 0,
            "chats": 0,
            "notes": 0,
            "skipped": 0,
        }
    )


def parse_scenario(data) -> Scenario:
    if isinstance(data, Scenario):
        return data
    if not isinstance(data, dict):
        raise SeedError(f"scenario must be an object, got {type(data).__name__}")
    try:
        return Scenario.model_validate(data)
    except ValidationError as e:
        raise SeedError(f"invalid scenario: {e}") from e


class ScenarioSeeder:
    """Inserts subjects and their history with timeline-generated timestamps.

    All history items attach to the first seeded subject. A run is a single
    transaction; validation errors surface before anything is written.
    """

    def __init__(
        self,
        db: Database,
        records: RecordStore | None = None,
        timeline: TimelineGenerator | None = None,
    ):
        self.db = db
        self.records = records or RecordStore(db)
        self.timeline = timeline or TimelineGenerator()

    def seed(self, user_id: int, data) -> SeedResult:
        scenario = parse_scenario(data)
        if not scenario.subjects:
            raise SeedError("scenario has no subjects; at least one is required")
        for index, subject in enumerate(scenario.subjects):
            if not subject.name or not subject.name.strip():
                raise SeedError(f"subjects[{index}]: name is required")

        result = SeedResult(user_id=user_id)
        with self.db.transaction():
            self.timeline.register_existing(self.records.existing_timestamps(user_id))
            created = []
            for seed in scenario.subjects:
                subject = self.records.add_subject(
                    Subject(
                        id=None,
                        user_id=user_id,
                        name=seed.name.strip(),
                        role=seed.role,
                        company=seed.company,
                        phone=seed.phone,
                        email=seed.email,
                        gender=seed.gender,
                        memo=seed.memo,
                        created_at=self.timeline.subject_creation_time(),
                    )
                )
                created.append(subject)
                result.subject_ids.append(subject.id)
            result.counts["subjects"] = len(created)
            self._seed_history(user_id, created[0], scenario, result)

        logger.info("seed.complete", user_id=user_id, subject_ids=result.subject_ids, **result.counts)
        return result

    def seed_for_subject(self, user_id: int, subject_id: int, data) -> SeedResult:
        """Add history to a subject that already exists. Scenario subjects are ignored."""
        scenario = parse_scenario(data)
        subject = self.records.get_subject(subject_id, user_id=user_id)
        if subject is None:
            raise SeedError(f"subject {subject_id} not found for user {user_id}")

        result = SeedResult(user_id=user_id, subject_ids=[subject.id])
        with self.db.transaction():
            self.timeline.register_existing(self.records.existing_timestamps(user_id))
            self._seed_history(user_id, subject, scenario, result)

        logger.info("seed.subject_complete", user_id=user_id, subject_id=subject_id, **result.counts)
        return result

    def _seed_history(
        self, user_id: int, subject: Subject, scenario: Scenario, result: SeedResult
    ) -> None:
        anchor = subject.created_at or self.timeline.subject_creation_time()
        counts = result.counts

        event_times = self.timeline.event_times(anchor, len(scenario.events))
        for seed, slot in zip(scenario.events, event_times):
            if not seed.title:
                counts["skipped"] += 1
                continue
            self.records.add_event(
                CalendarEvent(
                    id=None,
                    user_id=user_id,
                    title=seed.title,
                    start_at=slot.start,
                    end_at=slot.end,
                    is_all_day=seed.is_all_day,
                    category=seed.category,
                    location=seed.location,
                    participants=seed.participants,
                    description=seed.description,
                    memo=seed.memo,
                    linked_subject_ids=str(subject.id),
                    created_at=slot.start,
                )
            )
            counts["events"] += 1

        gift_times = self.timeline.gift_times(anchor, len(scenario.gifts))
        for seed, slot in zip(scenario.gifts, gift_times):
            if not seed.name:
                counts["skipped"] += 1
                continue
            self.records.add_gift(
                GiftRecord(
                    id=None,
                    user_id=user_id,
                    subject_id=subject.id,
                    name=seed.name,
                    description=seed.description,
                    price=seed.price,
                    category=seed.category,
                    occasion=seed.occasion,
                    notes=seed.notes,
                    purchased_at=slot.purchased_at,
                    created_at=slot.purchased_at,
                )
            )
            counts["gifts"] += 1

        for index, seed in enumerate(scenario.chats):
            if not seed.messages:
                counts["skipped"] += 1
                continue
            if index < len(gift_times):
                started = gift_times[index].conversation_at
            else:
                started = self.timeline.realistic_timestamp(anchor, 1, 30)
            self.records.add_chat(
                ChatTranscript(
                    id=None,
                    user_id=user_id,
                    subject_id=subject.id,
                    title=seed.title,
                    messages=seed.messages,
                    is_active=True,
                    created_at=started,
                )
            )
            counts["chats"] += 1

        self._seed_notes(user_id, subject, scenario, event_times, counts)

    def _seed_notes(
        self,
        user_id: int,
        subject: Subject,
        scenario: Scenario,
        event_times: list[EventTime],
        counts: dict[str, int],
    ) -> None:
        note_times = self.timeline.note_times(event_times, len(scenario.notes))
        for seed, written in zip(scenario.notes, note_times):
            if not seed.content or not seed.content.strip():
                counts["skipped"] += 1
                continue
            self.records.add_note(
                Note(
                    id=None,
                    user_id=user_id,
                    subject_id=subject.id,
                    content=seed.content.strip(),
                    created_at=written,
                    updated_at=written,
                )
            )
            counts["notes"] += 1


_SUGGEST_SYSTEM = (
    "You generate realistic business-relationship test scenarios. "
    "Always respond with a valid JSON array only. Never describe the user themself."
)

_SUGGEST_PROMPT = """Propose 5 different test scenarios for a relationship-management app in the "{domain}" domain.
Write all names and details in Korean.

Each scenario has exactly ONE contact, described in detail:
- at least 2 likes, 1 dislike or allergy, 2 important dates
- at least 4 kinds of interaction (meeting, meal, call, event)
- at least 2 gift occasions (thanks, birthday, holiday)

Output a JSON array:
[{{"id": 1, "title": "...", "description": "...",
   "contacts": [{{"name": "...", "role": "...", "company": "...", "gender": "...",
                 "traits": ["..."], "interactions": ["..."], "gifts": ["..."]}}],
   "preview": "..."}}]"""

_EXPAND_SYSTEM = (
    "You are a database test data generator. Generate realistic, coherent records "
    "for the scenario. Respond with one valid JSON object only."
)

_EXPAND_PROMPT = """Read the scenario and generate the records for exactly ONE contact, in Korean.

## Scenario
{scenario}

## Output (one JSON object; omit ids and timestamps, they are assigned later)
{{
  "subjects": [{{"name": "", "role": "", "company": "", "phone": "", "email": "", "gender": "", "memo": ""}}],
  "events": [{{"title": "", "category": "미팅|업무|개인|기타", "location": "", "participants": "", "description": "", "memo": ""}}],
  "gifts": [{{"name": "", "description": "", "price": 0, "category": "", "occasion": "", "notes": ""}}],
  "chats": [{{"title": "", "messages": [{{"role": "user", "content": ""}}, {{"role": "assistant", "content": "... 추가 정보: ..."}}, {{"role": "user", "content": "선택한 선물: ..."}}]}}],
  "notes": [{{"content": ""}}]
}}

Amounts: 10 events, 10 notes, 1 gift, 1 chat.
Notes are meeting follow-ups mentioning preferences, cautions and plans.
Each chat starts with a natural, colloquial user question."""


class ScenarioWriter:
    """Uses the LLM to propose scenarios and expand one into seedable records."""

    def __init__(self, provider=None, max_tokens: int = 8000):
        self._provider = provider
        self.max_tokens = max_tokens

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_llm_provider

        self._provider = create_llm_provider()
        return self._provider

    def suggest(self, domain: str = "비즈니스") -> list[dict]:
        payload = self._ask(_SUGGEST_SYSTEM, _SUGGEST_PROMPT.format(domain=domain), 0.9, 4000)
        if not isinstance(payload, list):
            raise SeedError("scenario suggestions must be a JSON array")
        return [item for item in payload if isinstance(item, dict)]

    def expand(self, scenario_text: str) -> dict:
        if not scenario_text or not scenario_text.strip():
            raise SeedError("scenario text is empty")
        payload = self._ask(
            _EXPAND_SYSTEM, _EXPAND_PROMPT.format(scenario=scenario_text.strip()), 0.7, self.max_tokens
        )
        if not isinstance(payload, dict):
            raise SeedError("expanded scenario must be a JSON object")
        return payload

    def _ask(self, system: str, prompt: str, temperature: float, max_tokens: int):
        try:
            response = self._get_provider().generate(
                messages=[{"role": "user", "content": prompt}],
                system=system,
                max_tokens=max_tokens,
                temperature=temperature,
            )
            return parse_json_payload(response or "")
        except (LLMError, ValueError) as e:
            logger.warning("scenario_generation_failed", error=str(e))
            raise SeedError(f"scenario generation failed: {e}") from e
