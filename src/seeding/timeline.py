"""Synthetic timestamps for seeded relationship histories.

Every timestamp handed out by a TimelineGenerator is unique (at millisecond
resolution) for the life of the generator, and every adjustment it makes
moves time forward, so the ordering guarantees below survive collisions:

- event starts are at least ``min_event_gap_days`` apart, one per calendar day
- event ends fall 1-3 hours after their start
- a note follows its event's end
- a gift purchase follows its conversation by 1-5 days
"""

import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple

import structlog

logger = structlog.get_logger()

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class TimelineSettings:
    base_date: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)
    span_days: int = 756
    creation_window_days: int = 90
    business_start_hour: int = 9
    business_end_hour: int = 18
    weekday_bias: float = 0.8
    min_event_gap_days: int = 7
    max_event_gap_days: int = 30
    note_offset_minutes: int = 4
    max_collision_attempts: int = 100


class EventTime(NamedTuple):
    start: datetime
    end: datetime


class GiftTime(NamedTuple):
    conversation_at: datetime
    purchased_at: datetime


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_ms(value: datetime) -> int:
    return (_aware(value) - _EPOCH) // _MS


def _truncate_ms(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class TimelineGenerator:
    """Hands out realistic, collision-free timestamps for one seeding session."""

    def __init__(self, rng: random.Random | None = None, settings: TimelineSettings | None = None):
        self.rng = rng or random.Random()
        self.settings = settings or TimelineSettings()
        self._used: set[int] = set()

    @property
    def used_count(self) -> int:
        return len(self._used)

    def register_existing(self, timestamps) -> int:
        """Mark stored timestamps as taken. Returns how many were new."""
        before = len(self._used)
        for stamp in timestamps:
            if stamp is not None:
                self._used.add(_to_ms(stamp))
        added = len(self._used) - before
        logger.debug("timeline.registered_existing", count=added)
        return added

    def is_used(self, value: datetime) -> bool:
        return _to_ms(value) in self._used

    def ensure_unique(self, value: datetime) -> datetime:
        """Return ``value`` or the next free instant after it, and claim it.

        Collisions move forward by a random 1-2 hours. After
        ``max_collision_attempts`` of those, whole-day jumps take over.
        """
        candidate = _truncate_ms(_aware(value))
        attempts = 0
        while _to_ms(candidate) in self._used and attempts < self.settings.max_collision_attempts:
            offset = timedelta(hours=self.rng.uniform(1, 2), milliseconds=self.rng.randrange(1000))
            candidate = _truncate_ms(candidate + offset)
            attempts += 1

        if _to_ms(candidate) in self._used:
            logger.warning("timeline.collision_fallback", attempts=attempts)
            while _to_ms(candidate) in self._used:
                candidate += timedelta(days=1)

        self._used.add(_to_ms(candidate))
        return candidate

    def realistic_timestamp(
        self,
        after: datetime | None = None,
        min_days: float = 1,
        max_days: float = 30,
    ) -> datetime:
        """A business-hours timestamp ``min_days``..``max_days`` after ``after``.

        Without ``after`` the anchor is a random point in the first 70% of
        the configured span. The result is never earlier than
        ``after + min_days``.
        """
        s = self.settings
        if after is None:
            anchor = s.base_date + timedelta(days=self.rng.random() * s.span_days * 0.7)
            floor = None
        else:
            anchor = _aware(after)
            floor = anchor + timedelta(days=min_days)

        candidate = anchor + timedelta(days=self.rng.uniform(min_days, max_days))
        avoid_weekend = self.rng.random() < s.weekday_bias
        while True:
            if avoid_weekend:
                candidate = self._skip_weekend(candidate)
            candidate = self._business_time(candidate)
            if floor is None or candidate >= floor:
                break
            candidate += timedelta(days=1)

        return self.ensure_unique(candidate)

    def subject_creation_time(self) -> datetime:
        s = self.settings
        start = s.base_date + timedelta(days=self.rng.random() * s.creation_window_days)
        return self.realistic_timestamp(start, 0, 7)

    def event_times(self, after: datetime, count: int) -> list[EventTime]:
        s = self.settings
        events: list[EventTime] = []
        used_dates: set[date] = set()
        previous = _aware(after)

        for _ in range(count):
            start = self.realistic_timestamp(previous, s.min_event_gap_days, s.max_event_gap_days)
            while start.date() in used_dates:
                start = self.ensure_unique(start + timedelta(days=1))
            end = self.ensure_unique(start + timedelta(hours=self.rng.uniform(1, 3)))
            used_dates.add(start.date())
            events.append(EventTime(start, end))
            previous = start
        return events

    def note_times(self, events: list[EventTime], count: int) -> list[datetime]:
        """Notes written just after each event, then every 7-14 days."""
        offset = timedelta(minutes=self.settings.note_offset_minutes)
        notes: list[datetime] = []
        used_dates: set[date] = set()

        def place(candidate: datetime) -> datetime:
            while candidate.date() in used_dates:
                candidate += timedelta(days=1)
            stamp = self.ensure_unique(candidate)
            used_dates.add(stamp.date())
            notes.append(stamp)
            return stamp

        for event in events[:count]:
            place(event.end + offset)

        last = notes[-1] if notes else (events[-1].end if events else self.settings.base_date)
        for _ in range(count - len(notes)):
            candidate = last + timedelta(days=self.rng.uniform(7, 14)) + offset
            floor = candidate
            candidate = self._business_time(candidate)
            if candidate < floor:
                candidate += timedelta(days=1)
            last = place(candidate)

        return sorted(notes)

    def gift_times(self, after: datetime, count: int) -> list[GiftTime]:
        gifts = []
        last = _aware(after)
        for _ in range(count):
            conversation = self.realistic_timestamp(last, 30, 90)
            purchased = self.realistic_timestamp(conversation, 1, 5)
            gifts.append(GiftTime(conversation, purchased))
            last = purchased
        return gifts

    @staticmethod
    def _skip_weekend(value: datetime) -> datetime:
        weekday = value.weekday()
        if weekday == 5:
            return value + timedelta(days=2)
        if weekday == 6:
            return value + timedelta(days=1)
        return value

    def _business_time(self, value: datetime) -> datetime:
        s = self.settings
        return value.replace(
            hour=self.rng.randrange(s.business_start_hour, s.business_end_hour),
            minute=self.rng.randrange(60),
            second=self.rng.randrange(60),
            microsecond=self.rng.randrange(1000) * 1000,
        )
