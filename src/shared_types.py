"""Shared enums and types for the relationship fact pipeline."""

from enum import StrEnum


class RecordType(StrEnum):
    PROFILE = "PROFILE"
    NOTE = "NOTE"
    CALENDAR_EVENT = "CALENDAR_EVENT"
    GIFT = "GIFT"
    CHAT = "CHAT"


class FactType(StrEnum):
    PREFERENCE = "PREFERENCE"
    DISLIKE = "DISLIKE"
    RISK = "RISK"
    CONSTRAINT = "CONSTRAINT"
    DATE = "DATE"
    ROLE_OR_ORG = "ROLE_OR_ORG"
    INTERACTION = "INTERACTION"
    CONTEXT = "CONTEXT"


class FactAction(StrEnum):
    INVALIDATE = "INVALIDATE"


class MergeOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
